"""Quest scope filtering and sorting for the quest tables.

Every view builds a ScopeFilters describing what the user has toggled and
passes the catalog through ``filter_quests`` and ``sort_quests``.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from favortracker.catalog import FREE_TO_PLAY, Quest
from favortracker.favor import is_fully_completed, max_favor


# Quests only shown when the regional filter is switched on
REGIONAL_EXCEPTIONS = ("The Curse of the Five Fangs",)

SORT_FIELDS = ("name", "level", "pack", "location", "quest_giver", "area_favor")

EXP_SORT_FIELDS = ("level", "name", "location", "xp_casual", "xp_normal", "xp_hard", "xp_elite")


@dataclass(frozen=True)
class ScopeFilters:
    """User toggles and character state that decide which quests are shown.

    Attributes:
        owned_packs: Adventure packs the account owns
        apply_pack_ownership: Hide quests from packs the account does not own
        character_level: Level of the selected character
        apply_level_ceiling: Hide quests above the character's level
        show_raids: Include raids
        regional_filter: Include the regional exception quests
        search_term: Case-insensitive substring of the quest name
        show_completed: Include quests completed on every available tier
        completions: Completion flags keyed by quest id
        weights: Duration weights used for the zero-favor check
        regional_exceptions: Names gated by the regional filter
    """

    owned_packs: FrozenSet[str] = frozenset()
    apply_pack_ownership: bool = True
    character_level: int = 40
    apply_level_ceiling: bool = True
    show_raids: bool = False
    regional_filter: bool = False
    search_term: str = ""
    show_completed: bool = True
    completions: Mapping[str, Mapping] = field(default_factory=dict)
    weights: Optional[Mapping] = None
    regional_exceptions: Tuple[str, ...] = REGIONAL_EXCEPTIONS


def pack_owned(quest: Quest, owned_packs: Iterable[str]) -> bool:
    return quest.pack == FREE_TO_PLAY or quest.pack in owned_packs


def in_scope(quest: Quest, filters: ScopeFilters) -> bool:
    """Check whether a quest passes every active filter.

    Args:
        quest: Catalog quest
        filters: Current view filters

    Returns:
        True if the quest should be listed, False otherwise
    """
    if filters.apply_pack_ownership and not pack_owned(quest, filters.owned_packs):
        return False

    if filters.apply_level_ceiling and quest.level > filters.character_level:
        return False

    if quest.is_raid and not filters.show_raids:
        return False

    search = (filters.search_term or "").lower()
    if search and search not in quest.name.lower():
        return False

    if not filters.regional_filter and quest.name in filters.regional_exceptions:
        return False

    if not filters.show_completed:
        completion = filters.completions.get(quest.id)
        # Zero-favor quests have nothing to complete, so they stay visible
        if is_fully_completed(quest, completion) and max_favor(quest, filters.weights) > 0:
            return False

    return True


def filter_quests(quests: Iterable[Quest], filters: ScopeFilters) -> List[Quest]:
    return [quest for quest in quests if in_scope(quest, filters)]


def normalize_name_for_sort(name: Optional[str]) -> str:
    """Lowercase a quest name and drop a leading "The " article.

    Example:
        >>> normalize_name_for_sort("The Reaver's Reach")
        "reaver's reach"
    """
    if not name:
        return ""
    trimmed = name.strip()
    if trimmed.lower().startswith("the "):
        trimmed = trimmed[4:]
    return trimmed.lower()


def _lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value else None


def sort_value_getter(
    sort_field: str,
    remaining_by_area: Optional[Dict[str, float]] = None,
) -> Callable[[Quest], object]:
    """Return a function extracting the primary sort value from a quest."""
    remaining_by_area = remaining_by_area or {}

    if sort_field == "name":
        return lambda quest: normalize_name_for_sort(quest.name)
    if sort_field == "level":
        return lambda quest: quest.level
    if sort_field == "pack":
        return lambda quest: _lower(quest.pack)
    if sort_field == "location":
        return lambda quest: _lower(quest.location)
    if sort_field == "quest_giver":
        return lambda quest: _lower(quest.quest_giver)
    if sort_field == "area_favor":
        return lambda quest: remaining_by_area.get(quest.favor_area) if quest.favor_area else None
    raise ValueError(f"Unknown sort field: {sort_field}")


def sort_quests(
    quests: Iterable,
    sort_field: str = "level",
    descending: bool = False,
    remaining_by_area: Optional[Dict[str, float]] = None,
    value_getter: Optional[Callable] = None,
    name_getter: Callable = lambda item: item.name,
) -> list:
    """Stable sort of quests by a primary field with a name tie-break.

    The direction applies to the primary field only; ties are always broken
    by normalized name in ascending order. Missing values sort lowest.

    Args:
        quests: Quests (or rows wrapping quests) to sort
        sort_field: One of SORT_FIELDS, ignored when value_getter is given
        descending: Reverse the primary ordering
        remaining_by_area: Remaining favor per area for "area_favor"
        value_getter: Custom primary value extractor
        name_getter: Extracts the display name used for the tie-break

    Returns:
        New sorted list
    """
    if value_getter is None:
        value_getter = sort_value_getter(sort_field, remaining_by_area)

    def primary_key(item):
        value = value_getter(item)
        return (value is not None, value if value is not None else 0)

    # Equal primary values keep the ascending name order of the first pass
    by_name = sorted(quests, key=lambda item: normalize_name_for_sort(name_getter(item)))
    return sorted(by_name, key=primary_key, reverse=descending)
