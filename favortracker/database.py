"""
Database layer for the favor tracker.

Handles Google Sheets operations with retry logic for rate limits.

The spreadsheet holds three worksheets:
- Characters: Character_ID, User_ID, Name, Level, UI_Preferences, Favor_Details,
  Created_At, Updated_At
- Completions: User_ID, Character_ID, Quest_ID, Casual, Normal, Hard, Elite,
  Updated_At (one row per character and quest)
- Accounts: User_ID, Owned_Packs, Updated_At
"""

import json
import logging
import time
import uuid
from datetime import datetime, UTC
from typing import Callable, Any, Dict, List

from favortracker.catalog import DIFFICULTIES
from favortracker.characters import merge_ui_preferences

logger = logging.getLogger(__name__)

# 1-indexed column numbers
CHARACTER_COLUMNS = {
    'name': 3,
    'level': 4,
    'ui_preferences': 5,
    'favor_details': 6,
    'updated_at': 8,
}
COMPLETION_TIER_COLUMNS = {
    'casual': 4,
    'normal': 5,
    'hard': 6,
    'elite': 7,
}
COMPLETION_UPDATED_COLUMN = 8


class RateLimitError(Exception):
    """Raised when Google Sheets API returns a rate limit error."""
    pass


class PersistenceError(Exception):
    """Raised when Google Sheets operations fail."""
    pass


def retry_with_backoff(func: Callable, max_attempts: int = 3) -> Any:
    """
    Retry a function with exponential backoff for rate limit errors.

    Implements exponential backoff: 1s, 2s, 4s between attempts.

    Args:
        func: The function to retry (should be a callable with no arguments)
        max_attempts: Maximum number of retry attempts (default: 3)

    Returns:
        The return value of the successful function call

    Raises:
        RateLimitError: If all retry attempts fail with rate limit errors
        PersistenceError: If the function fails with a non-rate-limit error

    Example:
        >>> result = retry_with_backoff(lambda: sheet.get_all_records())
    """
    for attempt in range(max_attempts):
        try:
            return func()
        except PersistenceError:
            raise
        except Exception as e:
            error_msg = str(e).lower()
            is_rate_limit = ('rate limit' in error_msg or
                           'quota' in error_msg or
                           '429' in error_msg)

            if is_rate_limit:
                if attempt == max_attempts - 1:
                    raise RateLimitError(f"Rate limit exceeded after {max_attempts} attempts") from e

                wait_time = 2 ** attempt
                logger.warning(f"Rate limited by Google Sheets, retrying in {wait_time}s")
                time.sleep(wait_time)
            else:
                raise PersistenceError(f"Database operation failed: {e}") from e

    raise RateLimitError(f"Rate limit exceeded after {max_attempts} attempts")


def _now() -> str:
    return datetime.now(UTC).isoformat().replace('+00:00', 'Z')


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1')


def _parse_json(value, default):
    if not value:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unreadable JSON cell: {value!r}")
        return default


def _character_from_record(record: dict) -> dict:
    """Convert a Characters sheet row to a character dict."""
    return {
        'id': str(record.get('Character_ID')),
        'user_id': str(record.get('User_ID')),
        'name': record.get('Name', ''),
        'level': int(record.get('Level') or 1),
        'ui_preferences': merge_ui_preferences(_parse_json(record.get('UI_Preferences'), {})),
        'favor_details': _parse_json(record.get('Favor_Details'), {}),
        'created_at': record.get('Created_At', ''),
        'updated_at': record.get('Updated_At', ''),
    }


def _completion_from_record(record: dict) -> Dict[str, bool]:
    return {
        'casual': _parse_bool(record.get('Casual')),
        'normal': _parse_bool(record.get('Normal')),
        'hard': _parse_bool(record.get('Hard')),
        'elite': _parse_bool(record.get('Elite')),
    }


def _find_character_row(records: List[dict], user_id: str, character_id: str) -> int | None:
    """Sheet row number of a character owned by user_id, or None."""
    for idx, record in enumerate(records):
        if (str(record.get('Character_ID')) == character_id
                and str(record.get('User_ID')) == user_id):
            return idx + 2  # +2 for header row and 1-indexing
    return None


def get_characters(user_id: str, characters_sheet) -> List[dict]:
    """
    Fetch every character owned by a user.

    Only rows whose User_ID matches exactly are returned.

    Args:
        user_id: The owning user's identifier
        characters_sheet: Characters worksheet (gspread worksheet object)

    Returns:
        List of character dicts (see get_character)

    Raises:
        PersistenceError: If database operation fails
        RateLimitError: If rate limit is exceeded after retries
    """
    def _get_characters():
        records = characters_sheet.get_all_records()
        return [
            _character_from_record(record)
            for record in records
            if str(record.get('User_ID')) == user_id
        ]

    return retry_with_backoff(_get_characters)


def get_character(user_id: str, character_id: str, characters_sheet) -> dict | None:
    """
    Fetch a single character owned by a user.

    Args:
        user_id: The owning user's identifier
        character_id: The character's identifier
        characters_sheet: Characters worksheet (gspread worksheet object)

    Returns:
        Character dict if found, None if missing or owned by another user

    Character dict structure:
        {
            'id': str,
            'user_id': str,
            'name': str,
            'level': int,
            'ui_preferences': dict,
            'favor_details': dict,
            'created_at': str,
            'updated_at': str
        }

    Raises:
        PersistenceError: If database operation fails
        RateLimitError: If rate limit is exceeded after retries
    """
    def _get_character():
        for record in characters_sheet.get_all_records():
            if str(record.get('Character_ID')) != character_id:
                continue
            if str(record.get('User_ID')) != user_id:
                logger.error(f"Character {character_id} requested by user {user_id} belongs to another user")
                return None
            return _character_from_record(record)
        return None

    return retry_with_backoff(_get_character)


def create_character(user_id: str, name: str, level: int, characters_sheet) -> dict:
    """
    Create a new character with default preferences and no completions.

    Args:
        user_id: The owning user's identifier
        name: Validated character name
        level: Validated character level
        characters_sheet: Characters worksheet (gspread worksheet object)

    Returns:
        Character dict for the newly created character

    Raises:
        PersistenceError: If database operation fails
        RateLimitError: If rate limit is exceeded after retries
    """
    def _create_character():
        timestamp = _now()
        character_id = uuid.uuid4().hex
        preferences = merge_ui_preferences(None)

        new_row = [
            character_id,              # Character_ID
            user_id,                   # User_ID
            name.strip(),              # Name
            level,                     # Level
            json.dumps(preferences),   # UI_Preferences
            json.dumps({}),            # Favor_Details
            timestamp,                 # Created_At
            timestamp                  # Updated_At
        ]
        characters_sheet.append_row(new_row)
        logger.info(f"Created character {character_id} for user {user_id}")

        return {
            'id': character_id,
            'user_id': user_id,
            'name': name.strip(),
            'level': level,
            'ui_preferences': preferences,
            'favor_details': {},
            'created_at': timestamp,
            'updated_at': timestamp,
        }

    return retry_with_backoff(_create_character)


def _update_character_fields(user_id: str, character_id: str, values: dict, characters_sheet) -> bool:
    """Write the given character columns and bump Updated_At."""
    def _update():
        records = characters_sheet.get_all_records()
        row_num = _find_character_row(records, user_id, character_id)
        if row_num is None:
            raise PersistenceError(f"Character '{character_id}' not found for user '{user_id}'")

        for field, value in values.items():
            characters_sheet.update_cell(row_num, CHARACTER_COLUMNS[field], value)
        characters_sheet.update_cell(row_num, CHARACTER_COLUMNS['updated_at'], _now())
        return True

    try:
        return retry_with_backoff(_update)
    except (PersistenceError, RateLimitError) as e:
        logger.error(f"Failed to update character {character_id}: {e}")
        return False


def update_character_name(user_id: str, character_id: str, name: str, characters_sheet) -> bool:
    """Rename a character. Returns True on success, False on failure."""
    return _update_character_fields(user_id, character_id, {'name': name.strip()}, characters_sheet)


def update_character_level(user_id: str, character_id: str, level: int, characters_sheet) -> bool:
    """Set a character's level. Returns True on success, False on failure."""
    return _update_character_fields(user_id, character_id, {'level': level}, characters_sheet)


def update_ui_preferences(user_id: str, character_id: str, preferences: dict, characters_sheet) -> bool:
    """
    Persist a character's UI preferences (weights and display toggles).

    Preferences are normalized before writing so the stored weights always
    cover every length class.

    Returns:
        True on success, False on failure
    """
    normalized = merge_ui_preferences(preferences)
    return _update_character_fields(
        user_id, character_id, {'ui_preferences': json.dumps(normalized)}, characters_sheet
    )


def update_favor_details(user_id: str, character_id: str, favor_details: dict, characters_sheet) -> bool:
    """Persist per-faction favor overrides. Returns True on success, False on failure."""
    return _update_character_fields(
        user_id, character_id, {'favor_details': json.dumps(favor_details)}, characters_sheet
    )


def _delete_rows_descending(sheet, row_numbers: List[int]) -> None:
    # Deleting bottom-up keeps the remaining row numbers valid
    for row_num in sorted(row_numbers, reverse=True):
        sheet.delete_rows(row_num)


def delete_character(user_id: str, character_id: str, characters_sheet, completions_sheet) -> bool:
    """
    Delete a character and all of its completion rows.

    Returns:
        True if the character was deleted, False if it was not found

    Raises:
        PersistenceError: If database operation fails
        RateLimitError: If rate limit is exceeded after retries
    """
    def _delete():
        records = characters_sheet.get_all_records()
        row_num = _find_character_row(records, user_id, character_id)
        if row_num is None:
            return False

        completion_rows = [
            idx + 2
            for idx, record in enumerate(completions_sheet.get_all_records())
            if str(record.get('Character_ID')) == character_id
            and str(record.get('User_ID')) == user_id
        ]
        _delete_rows_descending(completions_sheet, completion_rows)
        characters_sheet.delete_rows(row_num)
        logger.info(f"Deleted character {character_id} and {len(completion_rows)} completion rows")
        return True

    return retry_with_backoff(_delete)


def get_quest_completions(user_id: str, character_id: str, completions_sheet) -> Dict[str, Dict[str, bool]]:
    """
    Fetch a character's completion map.

    Returns:
        Dict keyed by quest id:
            {
                'casual': bool,
                'normal': bool,
                'hard': bool,
                'elite': bool
            }

    Raises:
        PersistenceError: If database operation fails
        RateLimitError: If rate limit is exceeded after retries
    """
    def _get_completions():
        completions = {}
        for record in completions_sheet.get_all_records():
            if (str(record.get('User_ID')) == user_id
                    and str(record.get('Character_ID')) == character_id):
                completions[str(record.get('Quest_ID'))] = _completion_from_record(record)
        return completions

    return retry_with_backoff(_get_completions)


def _completion_row(user_id: str, character_id: str, quest_id: str, status: dict, timestamp: str) -> list:
    return [
        user_id,
        character_id,
        quest_id,
        *[bool(status.get(tier)) for tier in DIFFICULTIES],
        timestamp
    ]


def _completion_rows_by_quest(records: List[dict], user_id: str, character_id: str) -> Dict[str, int]:
    rows = {}
    for idx, record in enumerate(records):
        if (str(record.get('User_ID')) == user_id
                and str(record.get('Character_ID')) == character_id):
            rows[str(record.get('Quest_ID'))] = idx + 2
    return rows


def _write_completion_cells(sheet, row_num: int, status: dict, timestamp: str) -> None:
    for tier, col_num in COMPLETION_TIER_COLUMNS.items():
        sheet.update_cell(row_num, col_num, bool(status.get(tier)))
    sheet.update_cell(row_num, COMPLETION_UPDATED_COLUMN, timestamp)


def save_quest_completion(user_id: str, character_id: str, quest_id: str, status: dict,
                          completions_sheet) -> bool:
    """
    Save the completion flags of a single quest.

    Only the row for this (character, quest) pair is written, so concurrent
    edits to different quests do not overwrite each other.

    Args:
        user_id: The owning user's identifier
        character_id: The character's identifier
        quest_id: Catalog quest id
        status: Completion flags keyed by difficulty
        completions_sheet: Completions worksheet (gspread worksheet object)

    Returns:
        True on success, False on failure
    """
    def _save():
        timestamp = _now()
        records = completions_sheet.get_all_records()
        row_num = _completion_rows_by_quest(records, user_id, character_id).get(quest_id)

        if row_num is None:
            completions_sheet.append_row(_completion_row(user_id, character_id, quest_id, status, timestamp))
        else:
            _write_completion_cells(completions_sheet, row_num, status, timestamp)
        return True

    try:
        return retry_with_backoff(_save)
    except (PersistenceError, RateLimitError) as e:
        logger.error(f"Failed to save completion of {quest_id} for character {character_id}: {e}")
        return False


def batch_update_quest_completions(user_id: str, character_id: str, updates: List[dict],
                                   completions_sheet) -> bool:
    """
    Write many quest completions at once (CSV import).

    Each listed quest's row is replaced by the imported flags; quests not in
    the batch are left untouched. The last writer wins for listed quests.

    Args:
        updates: List of {'quest_id': str, 'status': dict}

    Returns:
        True on success, False on failure
    """
    def _batch():
        timestamp = _now()
        records = completions_sheet.get_all_records()
        existing = _completion_rows_by_quest(records, user_id, character_id)

        new_rows = []
        for update in updates:
            quest_id = update['quest_id']
            row_num = existing.get(quest_id)
            if row_num is None:
                new_rows.append(_completion_row(user_id, character_id, quest_id, update['status'], timestamp))
            else:
                _write_completion_cells(completions_sheet, row_num, update['status'], timestamp)

        if new_rows:
            completions_sheet.append_rows(new_rows)
        logger.info(f"Imported {len(updates)} quest completions for character {character_id}")
        return True

    try:
        return retry_with_backoff(_batch)
    except (PersistenceError, RateLimitError) as e:
        logger.error(f"Failed to import quest completions for character {character_id}: {e}")
        return False


def reset_quest_completions(user_id: str, character_id: str, completions_sheet) -> bool:
    """
    Clear every quest completion of a character.

    Returns:
        True on success, False on failure
    """
    def _reset():
        records = completions_sheet.get_all_records()
        rows = _completion_rows_by_quest(records, user_id, character_id)
        _delete_rows_descending(completions_sheet, list(rows.values()))
        return True

    try:
        return retry_with_backoff(_reset)
    except (PersistenceError, RateLimitError) as e:
        logger.error(f"Failed to reset quest completions for character {character_id}: {e}")
        return False


def get_owned_packs(user_id: str, accounts_sheet) -> List[str]:
    """
    Fetch the adventure packs a user owns.

    Returns:
        List of pack names (empty if the account has no row yet)

    Raises:
        PersistenceError: If database operation fails
        RateLimitError: If rate limit is exceeded after retries
    """
    def _get_packs():
        for record in accounts_sheet.get_all_records():
            if str(record.get('User_ID')) == user_id:
                packs = _parse_json(record.get('Owned_Packs'), [])
                return [str(pack) for pack in packs] if isinstance(packs, list) else []
        return []

    return retry_with_backoff(_get_packs)


def update_owned_packs(user_id: str, owned_packs: List[str], accounts_sheet) -> bool:
    """
    Store the adventure packs a user owns, creating the account row if needed.

    Returns:
        True on success, False on failure
    """
    def _update_packs():
        timestamp = _now()
        packs_json = json.dumps(sorted(set(owned_packs), key=str.lower))

        for idx, record in enumerate(accounts_sheet.get_all_records()):
            if str(record.get('User_ID')) == user_id:
                row_num = idx + 2
                accounts_sheet.update_cell(row_num, 2, packs_json)
                accounts_sheet.update_cell(row_num, 3, timestamp)
                return True

        accounts_sheet.append_row([user_id, packs_json, timestamp])
        return True

    try:
        return retry_with_backoff(_update_packs)
    except (PersistenceError, RateLimitError) as e:
        logger.error(f"Failed to update owned packs for user {user_id}: {e}")
        return False
