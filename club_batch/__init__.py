"""Per-item isolated batch execution (one SAVEPOINT per item)."""
