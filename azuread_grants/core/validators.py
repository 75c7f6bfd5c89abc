"""Input validation helpers for permission grant fields.

Each validator takes the raw value and the field name, returns the
normalized value, and raises ValueError with a field-prefixed message.
"""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Iterable


def validate_uuid(value: str, field: str) -> str:
    """Validate a UUID string (any case, canonical 8-4-4-4-12 form)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{field} is required")
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a valid UUID, got {value!r}")
    value = value.strip()
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        raise ValueError(f"{field} must be a valid UUID, got {value!r}")
    if str(parsed) != value.lower():
        raise ValueError(f"{field} must be a valid UUID, got {value!r}")
    return value


def validate_non_empty(value: str, field: str) -> str:
    """Validate a string that must contain something other than whitespace."""
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    if not value.strip():
        raise ValueError(f"{field} must not be empty")
    return value


def validate_in_set(value: str, field: str, allowed: Iterable[str]) -> str:
    """Validate that a value is one of an allowed set (case-sensitive)."""
    allowed = list(allowed)
    if value not in allowed:
        raise ValueError(f"{field} must be one of {', '.join(allowed)}, got {value!r}")
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp.

    Accepts a trailing ``Z`` for UTC. Naive timestamps are treated as UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_timestamp(value: str, field: str) -> str:
    """Validate a non-empty ISO-8601 timestamp string."""
    validate_non_empty(value, field)
    try:
        parse_timestamp(value)
    except ValueError:
        raise ValueError(f"{field} must be an ISO-8601 timestamp, got {value!r}")
    return value
