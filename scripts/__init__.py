"""Command line entrypoints for VyScore Aggregator."""
