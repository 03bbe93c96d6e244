"""
Unit tests for experience module.
"""

import pytest

from favortracker.catalog import Quest
from favortracker.experience import (
    adjusted_exp,
    experience_guide_rows,
    has_positive_experience,
    quest_experience,
)


class TestAdjustedExp:
    """Test level-difference experience scaling."""

    @pytest.mark.parametrize("character_level,expected", [
        (10, 100),
        (11, 100),
        (12, 90),
        (13, 75),
        (14, 50),
        (15, 25),
        (16, 1),
        (17, 0),
        (30, 0),
    ])
    def test_multiplier_table(self, character_level, expected):
        """Each level difference applies its fixed multiplier."""
        assert adjusted_exp(100, 10, character_level) == expected

    def test_quest_above_character(self):
        """Quests above the character's level give nothing."""
        assert adjusted_exp(100, 12, 10) == 0

    def test_missing_base_exp(self):
        """Unknown experience stays unknown."""
        assert adjusted_exp(None, 5, 10) is None

    def test_zero_base_exp(self):
        """Zero experience stays zero, even for over-level quests."""
        assert adjusted_exp(0, 5, 10) == 0
        assert adjusted_exp(0, 15, 10) == 0

    def test_floor_not_round(self):
        """Fractional results are truncated."""
        assert adjusted_exp(199, 10, 12) == 179
        assert adjusted_exp(3, 10, 13) == 2


class TestQuestExperience:
    """Test per-difficulty experience for a quest."""

    def test_all_difficulties(self):
        """Every difficulty is scaled independently."""
        quest = Quest(
            id="q", name="Q", level=10, pack="Free to Play",
            xp_casual=None, xp_normal=1000, xp_hard=1100, xp_elite=0,
        )
        assert quest_experience(quest, 12) == {
            "casual": None,
            "normal": 900,
            "hard": 990,
            "elite": 0,
        }

    def test_has_positive_experience(self):
        """Only a positive value counts as experience."""
        assert has_positive_experience({"casual": None, "normal": 5}) is True
        assert has_positive_experience({"casual": None, "normal": 0}) is False
        assert has_positive_experience({}) is False


class TestExperienceGuideRows:
    """Test the experience guide table."""

    LOW = Quest(id="low", name="The Sunken Sewer", level=5, pack="Free to Play",
                xp_casual=None, xp_normal=400, xp_hard=450, xp_elite=500)
    MID = Quest(id="mid", name="Irreverent Acts", level=7, pack="Free to Play",
                xp_casual=300, xp_normal=350, xp_hard=380, xp_elite=420)
    OLD = Quest(id="old", name="Misery's Peak", level=1, pack="Free to Play",
                xp_casual=100, xp_normal=200, xp_hard=300, xp_elite=400)

    def test_zero_experience_quests_dropped(self):
        """Quests giving nothing at this level are left out."""
        rows = experience_guide_rows([self.LOW, self.MID, self.OLD], 8)
        assert [row["quest"].id for row in rows] == ["low", "mid"]

    def test_sort_by_tier_experience(self):
        """Sorting by a tier uses its adjusted experience."""
        rows = experience_guide_rows([self.LOW, self.MID], 8, "xp_elite", descending=True)
        # low: 500 * 0.75 = 375, mid: 420 * 1.0 = 420
        assert [row["quest"].id for row in rows] == ["mid", "low"]
        assert rows[0]["experience"]["elite"] == 420

    def test_missing_tier_sorts_lowest(self):
        """Quests without data for the tier sort below the rest."""
        rows = experience_guide_rows([self.LOW, self.MID], 8, "xp_casual")
        assert [row["quest"].id for row in rows] == ["low", "mid"]
        rows = experience_guide_rows([self.LOW, self.MID], 8, "xp_casual", descending=True)
        assert [row["quest"].id for row in rows] == ["mid", "low"]

    def test_quest_fields(self):
        """Quest fields sort the rows like the other tables."""
        rows = experience_guide_rows([self.MID, self.LOW], 8, "name")
        assert [row["quest"].name for row in rows] == ["Irreverent Acts", "The Sunken Sewer"]
