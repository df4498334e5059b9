"""Persistent score store and its adapter."""
