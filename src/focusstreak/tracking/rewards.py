"""Rank ladder and coin rewards.

Pure functions, no DB access.
"""

from __future__ import annotations

RANK_THRESHOLDS: list[dict] = [
    {"rank": "Novice", "min_streak": 0},
    {"rank": "Beginner", "min_streak": 7},
    {"rank": "Intermediate", "min_streak": 14},
    {"rank": "Advanced", "min_streak": 30},
    {"rank": "Expert", "min_streak": 60},
    {"rank": "Master", "min_streak": 100},
]

RANKS: tuple[str, ...] = tuple(t["rank"] for t in RANK_THRESHOLDS)

BASE_COINS_PER_DAY = 10
WEEK_BONUS_COINS = 50
MONTH_BONUS_COINS = 200
MISSED_DAY_PENALTY = 1


def compute_rank(max_streak: int) -> str:
    """Rank label for the best streak across all of a user's goals.

    Checked from the top down so the highest threshold met wins.
    """
    for threshold in reversed(RANK_THRESHOLDS):
        if max_streak >= threshold["min_streak"]:
            return threshold["rank"]
    return RANK_THRESHOLDS[0]["rank"]


def rank_index(rank: str) -> int:
    """Position of a rank on the ladder (Novice == 0)."""
    return RANKS.index(rank)


def coins_for_completion(streak: int) -> int:
    """Coins for completing a day, given the streak length including that day.

    10 base, +50 on every 7th day, +200 on every 30th day. Both bonuses stack
    (day 210 pays 260).
    """
    coins = BASE_COINS_PER_DAY
    if streak > 0 and streak % 7 == 0:
        coins += WEEK_BONUS_COINS
    if streak > 0 and streak % 30 == 0:
        coins += MONTH_BONUS_COINS
    return coins


def coin_penalty_for_miss() -> int:
    """Coins deducted per goal missed yesterday. Balances are clamped at zero by the caller."""
    return MISSED_DAY_PENALTY
