"""Session recording, daily progress, streaks and rewards."""
