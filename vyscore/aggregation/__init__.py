"""Per-second aggregation of scored detection rows."""
