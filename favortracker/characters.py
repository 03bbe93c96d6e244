"""Character record helpers for the favor tracker.

This module provides validation for character edits, default UI preferences,
and the helpers used to merge stored preferences and parse weight inputs.
"""

import copy
import math
from typing import Dict, List, Optional, Tuple

from favortracker.catalog import DURATION_TYPES
from favortracker.favor import DEFAULT_DURATION_WEIGHTS, normalize_duration_weights


MIN_LEVEL = 1
MAX_LEVEL = 40

DEFAULT_UI_PREFERENCES = {
    "duration_weights": dict(DEFAULT_DURATION_WEIGHTS),
    "show_raids": False,
    "on_cormyr_filter": False,
    "show_completed_quests": False,
}

CHARACTER_SORT_FIELDS = ("name", "level", "created_at")


def validate_character_name(name: str) -> Tuple[bool, str]:
    """Validate a character name.

    Args:
        name: Proposed character name

    Returns:
        Tuple of (is_valid, error_message)
    """
    name = (name or "").strip()
    if len(name) < 2:
        return False, "Character name must be at least 2 characters."
    if len(name) > 50:
        return False, "Character name too long."
    return True, ""


def validate_level(value) -> Tuple[bool, str, Optional[int]]:
    """Validate a character level from form input.

    Args:
        value: Level as int or numeric string

    Returns:
        Tuple of (is_valid, error_message, level)
    """
    try:
        level = int(str(value).strip())
    except (TypeError, ValueError):
        return False, "Level must be a whole number.", None

    if level < MIN_LEVEL:
        return False, f"Level must be at least {MIN_LEVEL}.", None
    if level > MAX_LEVEL:
        return False, f"Level cannot exceed {MAX_LEVEL}.", None
    return True, "", level


def validate_favor_details(favor_details: dict) -> Tuple[bool, str]:
    """Validate per-faction favor overrides ({faction: {"currentFavor": n}})."""
    if not isinstance(favor_details, dict):
        return False, "Favor details must be a mapping of faction to favor."

    for faction, details in favor_details.items():
        if not isinstance(details, dict) or "currentFavor" not in details:
            return False, f"Missing current favor for {faction}."
        value = details["currentFavor"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"Favor for {faction} must be a number."
        if value < 0:
            return False, "Favor cannot be negative."
    return True, ""


def merge_ui_preferences(stored: Optional[dict]) -> dict:
    """Overlay stored preferences on the defaults.

    Unknown keys are dropped and duration weights are normalized so every
    length class has a numeric weight.
    """
    preferences = copy.deepcopy(DEFAULT_UI_PREFERENCES)
    stored = stored or {}

    for key in ("show_raids", "on_cormyr_filter", "show_completed_quests"):
        if isinstance(stored.get(key), bool):
            preferences[key] = stored[key]

    preferences["duration_weights"] = normalize_duration_weights(stored.get("duration_weights"))
    return preferences


def parse_duration_weight_input(duration: str, text: str) -> Tuple[Optional[float], str]:
    """Parse a duration weight typed by the user.

    Args:
        duration: Length class being edited
        text: Raw input text

    Returns:
        Tuple of (value, error_message). Blank input resets to the default
        weight; invalid input returns (None, error).
    """
    if duration not in DURATION_TYPES:
        return None, f"Unknown quest length: {duration}"

    text = (text or "").strip()
    if text == "":
        return DEFAULT_DURATION_WEIGHTS[duration], ""

    try:
        value = float(text)
    except ValueError:
        return None, "Enter a valid number."
    if not math.isfinite(value):
        return None, "Enter a valid number."
    return value, ""


def sort_characters(characters: List[Dict], field: str = "created_at", descending: bool = True) -> List[Dict]:
    """Sort character dicts for the dashboard list."""
    if field not in CHARACTER_SORT_FIELDS:
        raise ValueError(f"Unknown character sort field: {field}")

    def key(character):
        value = character.get(field)
        if field == "name":
            value = (value or "").lower()
        return (value is not None, value if value is not None else 0)

    return sorted(characters, key=key, reverse=descending)
