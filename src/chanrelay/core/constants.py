"""Shared constants and operation outcomes."""

from __future__ import annotations

from enum import Enum

# Discord caps autocomplete suggestions at 25 choices
MAX_SUGGESTIONS = 25
# Sort key for candidates that do not match the query at all
NO_MATCH_PENALTY = 1_000_000
CHANNEL_PREFIX = "#"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///chanrelay.db"


class Outcome(str, Enum):
    """Result of a registry or resolver mutation."""

    CREATED = "created"
    ADDED = "added"
    ALREADY_EXISTS = "already_exists"
    DELETED = "deleted"
    NOT_FOUND = "not_found"


def channel_display_name(name: str) -> str:
    """Return the stored form of a channel name (leading '#')."""
    name = name.strip()
    return name if name.startswith(CHANNEL_PREFIX) else f"{CHANNEL_PREFIX}{name}"
