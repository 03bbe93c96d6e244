"""Level-adjusted experience for the experience guide."""

import math
from typing import Dict, Iterable, List, Optional

from favortracker.catalog import DIFFICULTIES, Quest
from favortracker.filters import sort_quests, sort_value_getter


# Multiplier by (character level - quest level); 7 or more gives nothing
LEVEL_DIFF_MULTIPLIERS = {
    0: 1.0,
    1: 1.0,
    2: 0.9,
    3: 0.75,
    4: 0.5,
    5: 0.25,
    6: 0.01,
}


def adjusted_exp(base_exp: Optional[int], quest_level: int, character_level: int) -> Optional[int]:
    """Scale a quest's base experience by how far the character out-levels it.

    Args:
        base_exp: Base experience for one difficulty (None when unknown)
        quest_level: Quest level
        character_level: Character level

    Returns:
        None if base_exp is None, 0 for zero base experience or a quest above
        the character's level, otherwise floor(base_exp * multiplier).

    Example:
        >>> adjusted_exp(100, 10, 12)
        90
    """
    if base_exp is None:
        return None
    if base_exp == 0:
        return 0
    if quest_level > character_level:
        return 0

    level_diff = character_level - quest_level
    multiplier = LEVEL_DIFF_MULTIPLIERS.get(level_diff, 0.0)
    return math.floor(base_exp * multiplier)


def quest_experience(quest: Quest, character_level: int) -> Dict[str, Optional[int]]:
    """Adjusted experience for every difficulty of a quest."""
    return {
        difficulty: adjusted_exp(quest.base_exp(difficulty), quest.level, character_level)
        for difficulty in DIFFICULTIES
    }


def has_positive_experience(experience: Dict[str, Optional[int]]) -> bool:
    return any(value is not None and value > 0 for value in experience.values())


def experience_guide_rows(
    quests: Iterable[Quest],
    character_level: int,
    sort_field: str = "level",
    descending: bool = False,
) -> List[dict]:
    """Build the sorted experience guide table.

    Only quests with positive adjusted experience on some difficulty are kept.
    Sorting by "xp_<difficulty>" uses that difficulty's adjusted experience;
    quests without data for it sort lowest. Other fields sort as in
    ``sort_quests``.

    Returns:
        List of {'quest': Quest, 'experience': {difficulty: int | None}}
    """
    rows = []
    for quest in quests:
        experience = quest_experience(quest, character_level)
        if has_positive_experience(experience):
            rows.append({"quest": quest, "experience": experience})

    if sort_field.startswith("xp_") and sort_field[3:] in DIFFICULTIES:
        difficulty = sort_field[3:]
        value_getter = lambda row: row["experience"][difficulty]
    else:
        quest_value = sort_value_getter(sort_field)
        value_getter = lambda row: quest_value(row["quest"])

    return sort_quests(
        rows,
        descending=descending,
        value_getter=value_getter,
        name_getter=lambda row: row["quest"].name,
    )
