"""Services built on the provider interfaces.

- **authenticator** -- ``ConnectionAuthenticator``, the before-connect hook
  that routes dials through a shared authenticated dialer.
- **cached_query** -- ``CachedQuerier``, read-through caching for a query
  executor.
"""

from querycache.services.authenticator import ConnectionAuthenticator, detect_credentials
from querycache.services.cached_query import CachedQuerier

__all__ = ["CachedQuerier", "ConnectionAuthenticator", "detect_credentials"]
