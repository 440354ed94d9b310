"""Progress views over daily aggregates."""
