"""Backend-neutral cache record and the shared expiry/decode step.

Every adapter reduces its backend's lookup to ``CacheRecord | None`` --
``None`` meaning the backend reported "not found" in whatever form it uses
(a status code, a sentinel, a missing object).  :func:`resolve_record` then
applies the one rule all backends share: a record whose ``expire_at`` is at
or before *now* is a miss, and is left in place (no active eviction).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from querycache.models.result import QueryResult
from querycache.utils import codec

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_timedelta(ttl: timedelta | float | int) -> timedelta:
    """Accept a ``timedelta`` or a number of seconds."""
    if isinstance(ttl, timedelta):
        return ttl
    return timedelta(seconds=ttl)


def expire_at_for(ttl: timedelta | float | int, clock: Clock = utc_now) -> datetime:
    """Return ``now(UTC) + ttl``."""
    return clock().astimezone(timezone.utc) + as_timedelta(ttl)


def is_expired(expire_at: datetime | None, now: datetime) -> bool:
    """Return ``True`` if *expire_at* is missing or at/before *now*.

    Naive datetimes are read as UTC, which is how every backend stores them.
    """
    if expire_at is None:
        return True
    if expire_at.tzinfo is None:
        expire_at = expire_at.replace(tzinfo=timezone.utc)
    return expire_at <= now


@dataclass(frozen=True)
class CacheRecord:
    """Per-backend projection of a cached query result."""

    id: str
    data: bytes
    expire_at: datetime | None


def resolve_record(
    record: CacheRecord | None,
    clock: Clock = utc_now,
    provider_name: str | None = None,
) -> QueryResult | None:
    """Turn a normalized lookup into a hit (decoded result) or a miss (``None``).

    Raises :class:`~querycache.utils.errors.SerializationError` if the stored
    bytes cannot be decoded.
    """
    if record is None or is_expired(record.expire_at, clock()):
        return None
    return codec.decode(record.data, provider_name=provider_name)
