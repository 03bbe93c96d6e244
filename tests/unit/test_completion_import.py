"""
Unit tests for completion_import module.
"""

import pytest

from favortracker.catalog import Quest, QuestCatalog
from favortracker.completion_import import parse_completion_csv


@pytest.fixture
def catalog():
    return QuestCatalog([
        Quest(id="harbor-peak", name="Misery's Peak", level=3, pack="Free to Play", base_favor=9),
        Quest(id="harbor-sewer", name="The Sunken Sewer", level=5, pack="Free to Play", base_favor=6),
    ])


class TestParseCompletionCsv:
    """Test CSV completion import parsing."""

    def test_valid_rows(self, catalog):
        """Rows are matched by name and flags parsed."""
        text = (
            "Quest Name,Casual,Normal,Hard,Elite\n"
            "misery's peak,TRUE,true,1,false\n"
            "The Sunken Sewer,0,,no,\n"
        )
        updates, errors = parse_completion_csv(text, catalog)

        assert errors == []
        assert updates == [
            {"quest_id": "harbor-peak",
             "status": {"casual": True, "normal": True, "hard": True, "elite": False}},
            {"quest_id": "harbor-sewer",
             "status": {"casual": False, "normal": False, "hard": False, "elite": False}},
        ]

    def test_unknown_quest(self, catalog):
        """Unknown names are reported with their spreadsheet row."""
        text = "Quest Name,Casual,Normal,Hard,Elite\nMisery's Peak,1,1,1,1\nNowhere,1,0,0,0\n"
        updates, errors = parse_completion_csv(text, catalog)

        assert len(updates) == 1
        assert errors == ['Row 3: Quest "Nowhere" not found in known quests.']

    def test_missing_name(self, catalog):
        """Rows without a quest name are reported."""
        text = "Quest Name,Casual,Normal,Hard,Elite\n,1,0,0,0\n"
        updates, errors = parse_completion_csv(text, catalog)

        assert updates == []
        assert errors == ["Row 2: Quest Name is missing."]

    def test_blank_lines_skipped(self, catalog):
        """Empty rows are skipped silently."""
        text = "Quest Name,Casual,Normal,Hard,Elite\n,,,,\nMisery's Peak,1,0,0,0\n"
        updates, errors = parse_completion_csv(text, catalog)

        assert errors == []
        assert [u["quest_id"] for u in updates] == ["harbor-peak"]

    def test_missing_columns_default_false(self, catalog):
        """Absent difficulty columns are treated as not completed."""
        updates, errors = parse_completion_csv("Quest Name,Elite\nMisery's Peak,true\n", catalog)

        assert errors == []
        assert updates[0]["status"] == {"casual": False, "normal": False, "hard": False, "elite": True}
