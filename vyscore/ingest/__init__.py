"""Batched fetching of detection rows."""
