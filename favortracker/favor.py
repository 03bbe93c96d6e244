"""Favor calculation for quest completions.

This module converts per-quest completion flags into favor values:
earned favor, the maximum favor a quest can give, per-area totals, and the
difficulty cascade applied when a user ticks or unticks a tier.
"""

import math
from typing import Dict, Iterable, Mapping, Optional

from favortracker.catalog import DIFFICULTIES, DURATION_TYPES, Quest


TIER_MULTIPLIERS = {
    "elite": 3.0,
    "hard": 2.0,
    "normal": 1.0,
    "casual": 0.5,
}

DEFAULT_DURATION_WEIGHTS = {
    "Very Short": 1.2,
    "Short": 1.1,
    "Medium": 1.0,
    "Long": 0.9,
    "Very Long": 0.8,
}


def empty_completion() -> Dict[str, bool]:
    return {difficulty: False for difficulty in DIFFICULTIES}


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def normalize_duration_weights(weights: Optional[Mapping]) -> Dict[str, float]:
    """Return a full weights mapping with every duration class present.

    Missing or non-numeric entries fall back to the default for that class.
    """
    weights = weights or {}
    normalized = {}
    for duration in DURATION_TYPES:
        value = weights.get(duration)
        normalized[duration] = value if _is_number(value) else DEFAULT_DURATION_WEIGHTS[duration]
    return normalized


def duration_weight(quest: Quest, weights: Optional[Mapping]) -> float:
    """Weight applied to a quest's favor based on its length class.

    Quests without a recognized length are weighted 1.0.
    """
    if quest.quest_length not in DURATION_TYPES:
        return 1.0
    value = (weights or {}).get(quest.quest_length)
    if not _is_number(value):
        return DEFAULT_DURATION_WEIGHTS[quest.quest_length]
    return value


def highest_completed_tier(quest: Quest, completion: Optional[Mapping]) -> Optional[str]:
    """Highest difficulty marked complete among those the quest offers."""
    if not completion:
        return None
    available = quest.difficulties
    for difficulty in reversed(DIFFICULTIES):
        if difficulty in available and completion.get(difficulty):
            return difficulty
    return None


def highest_available_tier(quest: Quest) -> Optional[str]:
    available = quest.difficulties
    for difficulty in reversed(DIFFICULTIES):
        if difficulty in available:
            return difficulty
    return None


def earned_favor(quest: Quest, completion: Optional[Mapping], weights: Optional[Mapping]) -> float:
    """Calculate favor earned on a quest from its completion flags.

    Args:
        quest: Catalog quest
        completion: Completion flags keyed by difficulty (may be None)
        weights: Duration weights keyed by length class

    Returns:
        Base favor times the highest completed tier's multiplier, times the
        duration weight. Zero when nothing available has been completed.
    """
    tier = highest_completed_tier(quest, completion)
    if tier is None:
        return 0
    return quest.base_favor * TIER_MULTIPLIERS[tier] * duration_weight(quest, weights)


def max_favor(quest: Quest, weights: Optional[Mapping]) -> float:
    """Favor ceiling for a quest, using its highest available difficulty."""
    tier = highest_available_tier(quest)
    if tier is None:
        return 0
    return quest.base_favor * TIER_MULTIPLIERS[tier] * duration_weight(quest, weights)


def is_fully_completed(quest: Quest, completion: Optional[Mapping]) -> bool:
    """True when every available difficulty is marked complete.

    A quest with no available difficulties is vacuously complete.
    """
    completion = completion or {}
    return all(completion.get(difficulty) for difficulty in quest.difficulties)


def favor_by_location(
    quests: Iterable[Quest],
    completions: Mapping[str, Mapping],
    weights: Optional[Mapping],
) -> Dict[str, Dict[str, float]]:
    """Aggregate earned, max and remaining favor per favor area.

    Quests without a favor area do not contribute. Completion entries for
    quests that are not in ``quests`` are ignored.

    Returns:
        Dict keyed by favor area:
            {
                'earned': float,
                'max': float,
                'remaining': float
            }
    """
    totals = {}
    for quest in quests:
        if not quest.favor_area:
            continue
        area = totals.setdefault(quest.favor_area, {"earned": 0, "max": 0})
        area["earned"] += earned_favor(quest, completions.get(quest.id), weights)
        area["max"] += max_favor(quest, weights)

    for area in totals.values():
        area["remaining"] = area["max"] - area["earned"]
    return totals


def remaining_favor_by_location(
    quests: Iterable[Quest],
    completions: Mapping[str, Mapping],
    weights: Optional[Mapping],
) -> Dict[str, float]:
    return {
        area: values["remaining"]
        for area, values in favor_by_location(quests, completions, weights).items()
    }


def apply_completion_change(
    completion: Optional[Mapping],
    difficulty: str,
    checked: bool,
    available: Iterable[str] = DIFFICULTIES,
) -> Dict[str, bool]:
    """Return a new completion record with one tier toggled.

    Completing a tier also completes every lower tier the quest offers;
    clearing a tier also clears every higher tier the quest offers. The input
    record is not modified.

    Example:
        >>> apply_completion_change(None, "hard", True)
        {'casual': True, 'normal': True, 'hard': True, 'elite': False}
    """
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {difficulty}")

    updated = empty_completion()
    for tier in DIFFICULTIES:
        updated[tier] = bool((completion or {}).get(tier))

    available = set(available)
    rank = DIFFICULTIES.index(difficulty)
    updated[difficulty] = checked

    if checked:
        cascade = DIFFICULTIES[:rank]
    else:
        cascade = DIFFICULTIES[rank + 1:]
    for tier in cascade:
        if tier in available:
            updated[tier] = checked

    return updated
