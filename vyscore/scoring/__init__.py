"""Profile weighting and row scoring."""
