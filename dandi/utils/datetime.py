"""Datetime helpers.

Provides UTC timestamp helpers without using deprecated ``datetime.utcnow()``.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return current UTC time as a naive datetime.

    Timestamps are stored as naive UTC datetimes so that SQLite and
    PostgreSQL round-trip them identically.
    """
    return datetime.now(UTC).replace(tzinfo=None)
