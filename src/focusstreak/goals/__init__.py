"""Goal management."""
