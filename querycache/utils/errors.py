"""Custom exception hierarchy for querycache.

All library exceptions inherit from :class:`QueryCacheError`, which carries
an optional ``provider_name`` so error handlers can identify which backend
(e.g. "firestore", "datastore", "storage", "cloudsql") was involved.

    QueryCacheError  (base -- catch-all for any querycache error)
    +-- SerializationError   (payload cannot be encoded or decoded)
    +-- ConfigurationError   (invalid settings / dialer construction failure)

A cache *miss* is not an error: adapters return ``None``.  Transport, auth
and quota failures raised by the Google client libraries are deliberately
**not** wrapped -- they propagate verbatim (``google.api_core.exceptions``)
so the caller's retry policy sees the original status.
"""


class QueryCacheError(Exception):
    """Base exception for all querycache errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[firestore] Cached payload is corrupt``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Payload errors
# ---------------------------------------------------------------------------

class SerializationError(QueryCacheError):
    """Raised when a query result cannot be encoded, or cached bytes cannot be decoded.

    Always a hard error.  Callers must never treat it as a cache miss.
    """

    def __init__(
        self,
        message: str = "Query result serialization failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(QueryCacheError):
    """Raised when configuration is invalid or a dialer cannot be constructed."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
