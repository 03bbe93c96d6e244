"""Static quest catalog for the favor tracker.

The catalog is a read-only table of quests loaded once at startup and passed
to every calculation that needs it. It is never mutated after construction.
"""

import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple


DIFFICULTIES = ("casual", "normal", "hard", "elite")

DURATION_TYPES = ("Very Short", "Short", "Medium", "Long", "Very Long")

FREE_TO_PLAY = "Free to Play"

MIN_QUEST_LEVEL = 1
MAX_QUEST_LEVEL = 40

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "quests.json"

ADVENTURE_PACKS = sorted([
    "Attack on Stormreach",
    "Fables of the Feywild",
    "Isle of Dread",
    "Masterminds of Sharn",
    "Menace of the Underdark",
    "Mists of Ravenloft",
    "Sentinels of Stormreach",
    "Sinister Secret of Saltmarsh",
    "The Catacombs",
    "The Devils of Shavarath",
    "The Haunted Halls of Eveningstar",
    "The High Road of Cormanthor",
    "The Lost Gatekeepers",
    "The Necropolis Part 1",
    "The Necropolis Part 2",
    "The Necropolis Part 3",
    "The Necropolis Part 4",
    "The Path of Inspiration",
    "The Phiarlan Carnival",
    "The Reaver's Reach",
    "The Red Fens",
    "The Restless Isles",
    "The Seal of Shan-To-Kor",
    "The Shadowfell Conspiracy",
    "The Sharn Syndicate",
    "The Tear of Dhakaan",
    "The Temple of Elemental Evil",
    "The Vale of Twilight",
    "Vault of Night",
    "Vecna Unleashed",
], key=str.lower)


@dataclass(frozen=True)
class Quest:
    """A single quest entry from the static catalog."""

    id: str
    name: str
    level: int
    pack: str
    is_raid: bool = False
    base_favor: float = 0
    available_difficulties: Optional[Tuple[str, ...]] = None
    quest_length: Optional[str] = None
    location: Optional[str] = None
    favor_area: Optional[str] = None
    quest_giver: Optional[str] = None
    xp_casual: Optional[int] = None
    xp_normal: Optional[int] = None
    xp_hard: Optional[int] = None
    xp_elite: Optional[int] = None

    @property
    def difficulties(self) -> Tuple[str, ...]:
        """Difficulties this quest can be run on (all four when unspecified)."""
        if self.available_difficulties is None:
            return DIFFICULTIES
        return self.available_difficulties

    def base_exp(self, difficulty: str) -> Optional[int]:
        return getattr(self, f"xp_{difficulty}")

    @classmethod
    def from_dict(cls, data: dict) -> "Quest":
        """Build a quest from a catalog record.

        Accepts both the snake_case field names and the camelCase keys used by
        the spreadsheet export (``baseFavor``, ``isRaid``, ``questLength`` ...).
        """
        def pick(snake, camel, default=None):
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        available = pick("available_difficulties", "availableDifficulties")
        if available is not None:
            available = tuple(d for d in DIFFICULTIES if d in available)

        name = data["name"]
        pack = data.get("pack") or "Unknown Pack"
        quest = cls(
            id=data.get("id") or derive_quest_id(pack, name),
            name=name,
            level=int(data.get("level", 0)),
            pack=pack,
            is_raid=bool(pick("is_raid", "isRaid", False)),
            base_favor=pick("base_favor", "baseFavor", 0) or 0,
            available_difficulties=available,
            quest_length=pick("quest_length", "questLength"),
            location=data.get("location"),
            favor_area=pick("favor_area", "favorArea"),
            quest_giver=pick("quest_giver", "questGiver"),
            xp_casual=pick("xp_casual", "xpCasual"),
            xp_normal=pick("xp_normal", "xpNormal"),
            xp_hard=pick("xp_hard", "xpHard"),
            xp_elite=pick("xp_elite", "xpElite"),
        )
        is_valid, error_message = validate_quest(quest)
        if not is_valid:
            raise ValueError(f"Invalid quest \"{name}\": {error_message}")
        return quest


def validate_quest(quest: Quest) -> Tuple[bool, str]:
    """Check a quest against the catalog invariants.

    Args:
        quest: Quest to check

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not MIN_QUEST_LEVEL <= quest.level <= MAX_QUEST_LEVEL:
        return False, f"Level must be between {MIN_QUEST_LEVEL} and {MAX_QUEST_LEVEL}."
    base_favor = quest.base_favor
    if isinstance(base_favor, bool) or not isinstance(base_favor, (int, float)) or not math.isfinite(base_favor):
        return False, "Base favor must be a number."
    if base_favor < 0:
        return False, "Base favor cannot be negative."
    if quest.available_difficulties is not None and not quest.available_difficulties:
        return False, "Available difficulties cannot be empty."
    return True, ""


class QuestCatalog:
    """Immutable, ordered collection of quests indexed by id."""

    def __init__(self, quests: Iterable[Quest]):
        self._quests = tuple(quests)
        self._by_id = {}
        self._by_name = {}
        for quest in self._quests:
            is_valid, error_message = validate_quest(quest)
            if not is_valid:
                raise ValueError(f"Invalid quest \"{quest.name}\": {error_message}")
            if quest.id in self._by_id:
                raise ValueError(f"Duplicate quest id in catalog: {quest.id}")
            self._by_id[quest.id] = quest
            self._by_name.setdefault(quest.name.lower(), quest)

    def __iter__(self) -> Iterator[Quest]:
        return iter(self._quests)

    def __len__(self) -> int:
        return len(self._quests)

    def __contains__(self, quest_id: str) -> bool:
        return quest_id in self._by_id

    @property
    def quests(self) -> Tuple[Quest, ...]:
        return self._quests

    def get(self, quest_id: str) -> Optional[Quest]:
        return self._by_id.get(quest_id)

    def find_by_name(self, name: str) -> Optional[Quest]:
        """Case-insensitive exact name lookup."""
        if not name:
            return None
        return self._by_name.get(name.strip().lower())

    def packs(self) -> List[str]:
        return sorted({quest.pack for quest in self._quests}, key=str.lower)


def derive_quest_id(pack: str, name: str) -> str:
    """Derive a stable quest identifier from its pack and name.

    Example:
        >>> derive_quest_id("Free to Play", "The Kobold's New Ringleader")
        'free-to-play-the-kobolds-new-ringleader'
    """
    text = f"{pack}-{name}".lower().strip()
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"[^\w-]+", "", text, flags=re.ASCII)
    text = re.sub(r"--+", "-", text)
    return text.strip("-")


def load_quest_catalog(path: Optional[Path] = None) -> QuestCatalog:
    """Load a quest catalog from a JSON array of quest records.

    Args:
        path: JSON file to read (defaults to the bundled catalog)

    Returns:
        QuestCatalog built from the file contents
    """
    path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    with open(path, encoding="utf-8") as f:
        records = json.load(f)
    return QuestCatalog(Quest.from_dict(record) for record in records)


def _cell(row: List[str], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index]).strip()
    return ""


def _parse_xp(value: str) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_catalog_rows(rows: List[List[str]]) -> Tuple[List[Quest], int]:
    """Convert rows from the quest spreadsheet export into quests.

    The first three rows of the export are headers. Rows that are blank, have
    no quest name, are test entries, have an unreadable level, or fail
    validate_quest are skipped.

    Args:
        rows: Raw CSV rows (lists of cell strings)

    Returns:
        Tuple of (quests, skipped_row_count)
    """
    quests = []
    skipped = 0

    for row in rows[3:]:
        if not any(cell and str(cell).strip() for cell in row):
            skipped += 1
            continue

        name = _cell(row, 2)
        if not name or "test" in name.lower():
            skipped += 1
            continue

        level_str = _cell(row, 4)
        try:
            level = int(level_str) if level_str else 0
        except ValueError:
            skipped += 1
            continue

        pack = _cell(row, 18) or "Unknown Pack"
        location = _cell(row, 3) or None

        match = re.match(r"^(\d+)", _cell(row, 15))
        base_favor = int(match.group(1)) if match else 0

        # Lengths are exported with an ordering prefix, e.g. "3 Medium"
        length = _cell(row, 9)
        if len(length) > 2:
            length = length[2:]

        # Columns 20-23 flag difficulties that are NOT available
        available = None
        if len(row) > 20:
            available = tuple(
                difficulty for offset, difficulty in enumerate(DIFFICULTIES)
                if _cell(row, 20 + offset).lower() != "true"
            )
            if available == DIFFICULTIES:
                available = None

        quest = Quest(
            id=derive_quest_id(pack, name),
            name=name,
            level=level,
            pack=pack,
            is_raid=_cell(row, 27).lower() in ("y", "yes"),
            base_favor=base_favor,
            available_difficulties=available,
            quest_length=length or None,
            location=location,
            favor_area=location,
            quest_giver=_cell(row, 0) or None,
            xp_casual=_parse_xp(_cell(row, 5)),
            xp_normal=_parse_xp(_cell(row, 6)),
            xp_hard=_parse_xp(_cell(row, 7)),
            xp_elite=_parse_xp(_cell(row, 8)),
        )
        if not validate_quest(quest)[0]:
            skipped += 1
            continue
        quests.append(quest)

    return quests, skipped
