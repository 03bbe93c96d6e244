"""
Unit tests for characters module.
"""

import pytest

from favortracker.characters import (
    DEFAULT_UI_PREFERENCES,
    merge_ui_preferences,
    parse_duration_weight_input,
    sort_characters,
    validate_character_name,
    validate_favor_details,
    validate_level,
)
from favortracker.favor import DEFAULT_DURATION_WEIGHTS


class TestValidateCharacterName:
    """Test character name validation."""

    def test_valid_name(self):
        """Normal names pass."""
        assert validate_character_name("Thorgrim") == (True, "")

    def test_too_short(self):
        """Names under two characters after trimming fail."""
        is_valid, error = validate_character_name("  a ")
        assert is_valid is False
        assert "at least 2" in error

    def test_empty(self):
        """Empty and missing names fail."""
        assert validate_character_name("")[0] is False
        assert validate_character_name(None)[0] is False

    def test_too_long(self):
        """Names over fifty characters fail."""
        assert validate_character_name("x" * 50)[0] is True
        assert validate_character_name("x" * 51) == (False, "Character name too long.")


class TestValidateLevel:
    """Test level validation."""

    @pytest.mark.parametrize("value,expected", [(1, 1), ("40", 40), (" 12 ", 12)])
    def test_valid_levels(self, value, expected):
        """Integers and numeric strings in range pass."""
        assert validate_level(value) == (True, "", expected)

    def test_out_of_range(self):
        """Levels outside 1..40 fail."""
        assert validate_level(0) == (False, "Level must be at least 1.", None)
        assert validate_level(41) == (False, "Level cannot exceed 40.", None)

    def test_not_a_number(self):
        """Non-integer input fails."""
        assert validate_level("ten")[0] is False
        assert validate_level(None)[0] is False
        assert validate_level("1.5")[0] is False


class TestValidateFavorDetails:
    """Test per-faction favor validation."""

    def test_valid(self):
        """Non-negative favor values pass."""
        assert validate_favor_details({"The Harbor": {"currentFavor": 120}}) == (True, "")
        assert validate_favor_details({}) == (True, "")

    def test_negative(self):
        """Negative favor fails."""
        assert validate_favor_details({"The Harbor": {"currentFavor": -1}}) == \
            (False, "Favor cannot be negative.")

    def test_malformed(self):
        """Missing or non-numeric values fail."""
        assert validate_favor_details({"The Harbor": {}})[0] is False
        assert validate_favor_details({"The Harbor": {"currentFavor": "lots"}})[0] is False
        assert validate_favor_details([])[0] is False


class TestMergeUiPreferences:
    """Test preference defaults and merging."""

    def test_defaults(self):
        """Missing preferences give the defaults."""
        assert merge_ui_preferences(None) == DEFAULT_UI_PREFERENCES

    def test_defaults_not_shared(self):
        """Mutating merged preferences never touches the defaults."""
        merged = merge_ui_preferences(None)
        merged["duration_weights"]["Short"] = 9
        assert DEFAULT_UI_PREFERENCES["duration_weights"]["Short"] == DEFAULT_DURATION_WEIGHTS["Short"]

    def test_stored_values_overlay(self):
        """Stored toggles and weights replace the defaults."""
        merged = merge_ui_preferences({
            "show_raids": True,
            "duration_weights": {"Long": 2.0, "Short": "oops"},
            "legacy_key": 1,
        })
        assert merged["show_raids"] is True
        assert merged["on_cormyr_filter"] is False
        assert merged["duration_weights"]["Long"] == 2.0
        assert merged["duration_weights"]["Short"] == DEFAULT_DURATION_WEIGHTS["Short"]
        assert "legacy_key" not in merged

    def test_non_bool_toggle_ignored(self):
        """Toggles must be booleans."""
        assert merge_ui_preferences({"show_raids": "yes"})["show_raids"] is False


class TestParseDurationWeightInput:
    """Test duration weight text input parsing."""

    def test_number(self):
        """Numeric text is parsed."""
        assert parse_duration_weight_input("Short", "1.25") == (1.25, "")

    def test_blank_resets(self):
        """Blank input gives the default weight."""
        assert parse_duration_weight_input("Long", "  ") == (DEFAULT_DURATION_WEIGHTS["Long"], "")

    def test_invalid(self):
        """Non-numeric text gives an error and no value."""
        assert parse_duration_weight_input("Long", "abc") == (None, "Enter a valid number.")
        assert parse_duration_weight_input("Long", "nan") == (None, "Enter a valid number.")
        assert parse_duration_weight_input("Long", "inf") == (None, "Enter a valid number.")
        assert parse_duration_weight_input("Long", "-Infinity") == (None, "Enter a valid number.")

    def test_unknown_duration(self):
        """Unknown length classes are rejected."""
        value, error = parse_duration_weight_input("Eternal", "1")
        assert value is None
        assert error


class TestSortCharacters:
    """Test dashboard character sorting."""

    CHARACTERS = [
        {"name": "bravo", "level": 20, "created_at": "2026-01-02T00:00:00Z"},
        {"name": "Alpha", "level": 5, "created_at": "2026-01-03T00:00:00Z"},
        {"name": "Charlie", "level": 12, "created_at": "2026-01-01T00:00:00Z"},
    ]

    def test_default_newest_first(self):
        """Default order is newest first."""
        result = sort_characters(self.CHARACTERS)
        assert [c["name"] for c in result] == ["Alpha", "bravo", "Charlie"]

    def test_name_case_insensitive(self):
        """Names sort without regard to case."""
        result = sort_characters(self.CHARACTERS, "name", descending=False)
        assert [c["name"] for c in result] == ["Alpha", "bravo", "Charlie"]

    def test_level_descending(self):
        """Levels sort numerically."""
        result = sort_characters(self.CHARACTERS, "level")
        assert [c["level"] for c in result] == [20, 12, 5]

    def test_unknown_field(self):
        """Unknown fields are rejected."""
        with pytest.raises(ValueError):
            sort_characters(self.CHARACTERS, "class")
