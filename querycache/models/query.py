"""Query identity and per-query cache options.

A :class:`QueryFingerprint` is the normalized description of a query (SQL
text, bind arguments and any cache-scoping options).  :func:`key_of` hashes
it into the identifier every backend stores records under.

KEY DERIVATION:
    The fingerprint is first rewritten into a *canonical* structure --
    mapping keys sorted, sets sorted, non-msgpack scalars rendered as
    type-tagged strings -- then packed with msgpack and hashed with SHA-256.
    The lowercase hex digest is 64 printable characters with no ``/``, so it
    is valid as a Firestore document id, a Datastore key name and a Cloud
    Storage object name.  Collisions are not detected.

CACHE DIRECTIVES:
    Callers can override the default TTL and row cap per statement with SQL
    comments::

        -- @cache-ttl 30s
        -- @cache-max-rows 100
        SELECT * FROM customer
"""

from __future__ import annotations

import hashlib
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

import msgpack
from pydantic import BaseModel, ConfigDict, Field, field_validator

from querycache.utils.errors import ConfigurationError


class QueryFingerprint(BaseModel):
    """Normalized representation of a query used to derive its cache key."""

    model_config = ConfigDict(frozen=True)

    sql: str
    args: tuple[Any, ...] = ()
    scope: dict[str, str] = Field(default_factory=dict)

    @field_validator("sql")
    @classmethod
    def _strip_sql(cls, value: str) -> str:
        return value.strip()


class QueryKey:
    """Opaque cache identity derived from a :class:`QueryFingerprint`."""

    __slots__ = ("_digest",)

    def __init__(self, fingerprint: QueryFingerprint) -> None:
        payload = msgpack.packb(
            [fingerprint.sql, _canonical(fingerprint.args), _canonical(fingerprint.scope)],
            use_bin_type=True,
        )
        self._digest = hashlib.sha256(payload).hexdigest()

    def __str__(self) -> str:
        return self._digest

    def __repr__(self) -> str:
        return f"QueryKey({self._digest!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryKey):
            return NotImplemented
        return self._digest == other._digest

    def __hash__(self) -> int:
        return hash(self._digest)


def key_of(fingerprint: QueryFingerprint) -> str:
    """Return the stable cache key string for *fingerprint*."""
    return str(QueryKey(fingerprint))


def _canonical(value: Any) -> Any:
    """Rewrite *value* into a deterministic, msgpack-packable structure."""
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, dict):
        items = [(_canonical(k), _canonical(v)) for k, v in value.items()]
        return [["map"], *sorted(items, key=lambda kv: repr(kv[0]))]
    if isinstance(value, (set, frozenset)):
        return [["set"], *sorted((_canonical(item) for item in value), key=repr)]
    if isinstance(value, (datetime, date, time)):
        return f"{type(value).__name__}:{value.isoformat()}"
    if isinstance(value, (Decimal, UUID)):
        return f"{type(value).__name__}:{value}"
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return f"{type(value).__module__}.{type(value).__qualname__}:{value!r}"


# ---------------------------------------------------------------------------
# Per-query cache options
# ---------------------------------------------------------------------------

_DIRECTIVE_RE = re.compile(r"--\s*@cache-(ttl|max-rows)\s+(\S+)", re.IGNORECASE)
_DURATION_PART_RE = re.compile(r"(\d*\.?\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS_US = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as ``"30s"``, ``"1h30m"`` or ``"250ms"``.

    A leading ``+`` or ``-`` sign is allowed and ``"0"`` means zero.  Both
    ``µ`` (U+00B5) and ``μ`` (U+03BC) spell microseconds.
    """
    original = text.strip()
    sign, text = 1, original
    if text[:1] in ("+", "-"):
        sign, text = (-1 if text[0] == "-" else 1), text[1:]
    if text == "0":
        return timedelta(0)

    total = timedelta(0)
    position = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != position:
            break
        total += timedelta(microseconds=float(match.group(1)) * _DURATION_UNITS_US[match.group(2)])
        position = match.end()

    if position == 0 or position != len(text):
        raise ConfigurationError(message=f"Invalid duration: {original!r}")
    return sign * total


class QueryOptions(BaseModel):
    """Caching policy for a single query.

    ``max_lifetime`` is the TTL handed to the adapter; zero disables caching.
    ``max_rows`` caps how many rows a result may have and still be cached;
    zero means no cap.
    """

    model_config = ConfigDict(frozen=True)

    max_lifetime: timedelta = timedelta(0)
    max_rows: int = Field(default=0, ge=0)

    @classmethod
    def from_sql(cls, sql: str, defaults: QueryOptions | None = None) -> QueryOptions:
        """Return *defaults* overridden by any ``-- @cache-*`` directives in *sql*."""
        options = defaults or cls()
        overrides: dict[str, Any] = {}
        for name, raw in _DIRECTIVE_RE.findall(sql):
            if name.lower() == "ttl":
                overrides["max_lifetime"] = parse_duration(raw)
            else:
                if not raw.isdigit():
                    raise ConfigurationError(message=f"Invalid @cache-max-rows value: {raw!r}")
                overrides["max_rows"] = int(raw)
        if not overrides:
            return options
        return options.model_copy(update=overrides)
