"""Transaction/document reconciliation engine."""
