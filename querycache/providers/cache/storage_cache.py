"""Google Cloud Storage query-cache adapter.

Each cached result is an object ``<bucket>/<key>`` whose body is the msgpack
payload.  Expiry travels as the object's native ``customTime`` attribute,
assigned on the blob *before* the upload so the timestamp is part of the
same write request -- the object never exists without its expiry.

Reads are two-phase:

1. ``blob.reload()`` fetches metadata only.  A missing object, or a
   ``customTime`` at or before now, is a miss and the body is **not**
   downloaded.
2. ``blob.download_as_bytes()`` fetches the body.  An object deleted between
   the two calls is also a miss.

A bucket lifecycle rule such as ``daysSinceCustomTime: 0`` lets Cloud
Storage reclaim expired objects; the adapter does not delete anything.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from google.api_core.exceptions import NotFound
from google.cloud import storage

from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.models.cache import (
    CacheRecord,
    Clock,
    expire_at_for,
    is_expired,
    resolve_record,
    utc_now,
)
from querycache.models.result import QueryResult
from querycache.utils import codec
from querycache.utils.concurrency import close_client, run_blocking, with_deadline
from querycache.utils.logging import get_logger

CONTENT_TYPE = "application/msgpack"


class StorageQueryCache(IQueryCacheProvider):
    """Query cache backed by objects in a Cloud Storage bucket."""

    def __init__(
        self,
        client: storage.Client,
        bucket: str,
        *,
        owns_client: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._bucket_name = bucket
        self._owns_client = owns_client
        self._clock = clock
        self._closed = False
        self._logger = get_logger(__name__)

    def _blob(self, key: str) -> storage.Blob:
        return self._client.bucket(self._bucket_name).blob(key)

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    def _expiry_sync(self, blob: storage.Blob) -> tuple[bool, datetime | None]:
        """Reload object metadata; return ``(exists, custom_time)``."""
        try:
            blob.reload()
        except NotFound:
            return False, None
        return True, blob.custom_time

    def _download_sync(self, blob: storage.Blob) -> bytes | None:
        try:
            return blob.download_as_bytes()
        except NotFound:
            return None

    def _upload_sync(self, key: str, data: bytes, expire_at: datetime) -> None:
        blob = self._blob(key)
        blob.custom_time = expire_at
        blob.upload_from_string(data, content_type=CONTENT_TYPE)

    # -- IQueryCacheProvider implementation ------------------------------------

    async def get(self, key: str, *, timeout: float | None = None) -> QueryResult | None:
        """Return the cached result for *key*, or ``None`` if missing/expired.

        *timeout* bounds the metadata read and the download together.
        """
        return await with_deadline(self._lookup(key), timeout)

    async def _lookup(self, key: str) -> QueryResult | None:
        blob = self._blob(key)
        exists, expire_at = await run_blocking(self._expiry_sync, blob)
        if not exists:
            self._logger.debug("query_cache_miss", key=key, bucket=self._bucket_name, found=False)
            return None
        if is_expired(expire_at, self._clock()):
            self._logger.debug("query_cache_expired", key=key, bucket=self._bucket_name)
            return None

        data = await run_blocking(self._download_sync, blob)
        if data is None:
            self._logger.debug("query_cache_miss", key=key, bucket=self._bucket_name, found=False)
            return None

        record = CacheRecord(id=key, data=data, expire_at=expire_at)
        result = resolve_record(record, self._clock, provider_name=self.get_provider_name())
        if result is not None:
            self._logger.debug("query_cache_hit", key=key, bucket=self._bucket_name)
        return result

    async def set(
        self,
        key: str,
        result: QueryResult,
        ttl: timedelta | float,
        *,
        timeout: float | None = None,
    ) -> None:
        """Upload the encoded result with ``customTime = now + ttl``."""
        data = codec.encode(result, provider_name=self.get_provider_name())
        expire_at = expire_at_for(ttl, self._clock)
        await run_blocking(self._upload_sync, key, data, expire_at, timeout=timeout)
        self._logger.debug(
            "query_cache_set",
            key=key,
            bucket=self._bucket_name,
            expire_at=expire_at.isoformat(),
            size=len(data),
        )

    async def close(self) -> None:
        """Close the Storage client if this cache owns it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await close_client(self._client)
            self._logger.info("query_cache_closed", provider=self.get_provider_name())

    def get_provider_name(self) -> str:
        return "storage"
