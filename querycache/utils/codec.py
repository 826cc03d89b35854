"""Binary serialization of :class:`QueryResult` payloads using msgpack.

Cached result sets can hold many rows, so the payload is packed as compact
msgpack rather than JSON.  Timezone-aware datetimes use msgpack's timestamp
extension; every other cell must be a msgpack-native value.

Both directions raise :class:`SerializationError` on failure -- malformed
bytes, trailing garbage, or a payload written with a different shape are
hard errors, never misses.
"""

from __future__ import annotations

import msgpack
from pydantic import ValidationError

from querycache.models.result import QueryResult
from querycache.utils.errors import SerializationError

# Unpacked timestamps come back as tz-aware UTC ``datetime`` objects.
_TIMESTAMP_AS_DATETIME = 3


def encode(result: QueryResult, provider_name: str | None = None) -> bytes:
    """Pack *result* into msgpack bytes.

    *provider_name* only labels the raised error.
    """
    try:
        return msgpack.packb(
            result.model_dump(mode="python"),
            use_bin_type=True,
            datetime=True,
        )
    except (TypeError, ValueError, OverflowError) as exc:
        raise SerializationError(
            message=f"Cannot encode query result: {exc}",
            provider_name=provider_name,
        ) from exc


def decode(data: bytes, provider_name: str | None = None) -> QueryResult:
    """Unpack msgpack *data* produced by :func:`encode`."""
    try:
        payload = msgpack.unpackb(
            data,
            raw=False,
            timestamp=_TIMESTAMP_AS_DATETIME,
            strict_map_key=False,
        )
    except (msgpack.UnpackException, ValueError, TypeError) as exc:
        raise SerializationError(
            message=f"Cannot decode cached payload: {exc}",
            provider_name=provider_name,
        ) from exc

    if not isinstance(payload, dict):
        raise SerializationError(
            message=f"Cached payload has unexpected type {type(payload).__name__}",
            provider_name=provider_name,
        )

    try:
        return QueryResult.model_validate(payload)
    except ValidationError as exc:
        raise SerializationError(
            message=f"Cached payload does not match the query result shape: {exc}",
            provider_name=provider_name,
        ) from exc
