"""Exception types raised across the vyscore package."""

from __future__ import annotations


class VyScoreError(Exception):
    """Base class for all vyscore failures."""


class UnknownEmotionError(VyScoreError, KeyError):
    """Emotion label is not part of the core taxonomy."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown emotion label: {self.name!r}"


class MalformedRowError(VyScoreError, ValueError):
    """Detection row is missing fields or carries unusable values."""


class ProfileError(VyScoreError, ValueError):
    """Profile document could not be read or has invalid weights."""


class FetchError(VyScoreError):
    """A batch of detection rows could not be fetched."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {source}: {reason}")
        self.source = source
        self.reason = reason


class StoreError(VyScoreError):
    """The persistent score store failed to open, clear, write or read."""
