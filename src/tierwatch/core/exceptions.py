"""TierWatch exception hierarchy."""

from __future__ import annotations

from typing import Any


class TierWatchError(Exception):
    """Base exception for all TierWatch errors."""


class InvalidDateError(TierWatchError, ValueError):
    """A date-like value could not be resolved to a calendar day."""

    def __init__(self, value: Any, message: str = "") -> None:
        self.value = value
        super().__init__(message or f"Unparseable date: {value!r}")


class ConfigurationError(TierWatchError):
    """Engine configuration is inconsistent."""


class UnknownTierError(TierWatchError):
    """Tier name not present in the tier table."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tier: {name}")


class InvalidQuarterKeyError(TierWatchError, ValueError):
    """Quarter key is not of the form YYYY-Qn."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Invalid quarter key: {key!r} (expected YYYY-Qn)")
