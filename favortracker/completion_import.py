"""Import quest completions from a CSV export.

Expected header: Quest Name, Casual, Normal, Hard, Elite.
"""

import csv
import io
from typing import List, Tuple

from favortracker.catalog import QuestCatalog


def _parse_flag(value) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1")


def parse_completion_csv(text: str, catalog: QuestCatalog) -> Tuple[List[dict], List[str]]:
    """Turn CSV text into completion updates for the store.

    Args:
        text: CSV file contents
        catalog: Quest catalog used to resolve names to ids

    Returns:
        Tuple of (updates, errors)
        - updates: list of {'quest_id': str, 'status': dict}
        - errors: one message per rejected row, numbered as in the spreadsheet
    """
    updates = []
    errors = []

    reader = csv.DictReader(io.StringIO(text))
    for index, row in enumerate(reader):
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue

        row_number = index + 2
        quest_name = (row.get("Quest Name") or "").strip()
        if not quest_name:
            errors.append(f"Row {row_number}: Quest Name is missing.")
            continue

        quest = catalog.find_by_name(quest_name)
        if quest is None:
            errors.append(f'Row {row_number}: Quest "{quest_name}" not found in known quests.')
            continue

        updates.append({
            "quest_id": quest.id,
            "status": {
                "casual": _parse_flag(row.get("Casual")),
                "normal": _parse_flag(row.get("Normal")),
                "hard": _parse_flag(row.get("Hard")),
                "elite": _parse_flag(row.get("Elite")),
            },
        })

    return updates, errors
