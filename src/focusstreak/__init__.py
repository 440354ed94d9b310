"""Focus timer backend: daily goal progress, streaks, coins and ranks."""
