"""Utility modules for querycache.

- **errors** -- exception hierarchy rooted at QueryCacheError.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **concurrency** -- deadline and thread-offload helpers shared by the
  adapters.
- **codec** (not re-exported here) -- msgpack encode/decode of query results.
"""

from querycache.utils.concurrency import close_client, run_blocking, with_deadline
from querycache.utils.errors import ConfigurationError, QueryCacheError, SerializationError
from querycache.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "QueryCacheError",
    "SerializationError",
    "close_client",
    "configure_logging",
    "get_logger",
    "run_blocking",
    "with_deadline",
]
