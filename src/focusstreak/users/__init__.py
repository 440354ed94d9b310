"""User reward profile."""
