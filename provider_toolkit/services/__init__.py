"""Per-service resource modules."""
