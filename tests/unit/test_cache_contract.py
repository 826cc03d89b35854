"""Behaviour every IQueryCacheProvider must share, run against all three adapters."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import pytest
from google.api_core.exceptions import ServiceUnavailable

from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.models.query import QueryFingerprint, key_of
from querycache.models.result import QueryResult
from querycache.providers.cache.datastore_cache import DatastoreQueryCache
from querycache.providers.cache.firestore_cache import FirestoreQueryCache
from querycache.providers.cache.storage_cache import StorageQueryCache
from querycache.utils.errors import SerializationError
from tests.fakes import (
    FakeDatastoreClient,
    FakeFirestoreClient,
    FakeStorageClient,
    FrozenClock,
)


@dataclass
class Backend:
    cache: IQueryCacheProvider
    client: Any
    get_error_attr: str
    set_error_attr: str

    def fail_reads(self, exc: Exception) -> None:
        setattr(self.client, self.get_error_attr, exc)

    def fail_writes(self, exc: Exception) -> None:
        setattr(self.client, self.set_error_attr, exc)


def _firestore(clock: FrozenClock, owns_client: bool) -> Backend:
    client = FakeFirestoreClient()
    cache = FirestoreQueryCache(client, "queries", owns_client=owns_client, clock=clock)
    return Backend(cache, client, "get_error", "set_error")


def _datastore(clock: FrozenClock, owns_client: bool) -> Backend:
    client = FakeDatastoreClient()
    cache = DatastoreQueryCache(client, "queries", owns_client=owns_client, clock=clock)
    return Backend(cache, client, "get_error", "put_error")


def _storage(clock: FrozenClock, owns_client: bool) -> Backend:
    client = FakeStorageClient()
    cache = StorageQueryCache(client, "query-cache", owns_client=owns_client, clock=clock)
    return Backend(cache, client, "reload_error", "upload_error")


_BUILDERS = {"firestore": _firestore, "datastore": _datastore, "storage": _storage}


@pytest.fixture(params=sorted(_BUILDERS))
def backend(request: pytest.FixtureRequest, clock: FrozenClock) -> Backend:
    return _BUILDERS[request.param](clock, owns_client=True)


@pytest.fixture
def key() -> str:
    return key_of(QueryFingerprint(sql="SELECT * FROM customer WHERE id = $1", args=(42,)))


class TestQueryCacheContract:
    @pytest.mark.asyncio
    async def test_get_unwritten_key_returns_none(self, backend: Backend, key: str) -> None:
        assert await backend.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_set_then_get_returns_result(
        self, backend: Backend, key: str, sample_result: QueryResult
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(minutes=5))
        assert await backend.cache.get(key) == sample_result

    @pytest.mark.asyncio
    async def test_ttl_accepts_seconds(
        self, backend: Backend, key: str, sample_result: QueryResult, clock: FrozenClock
    ) -> None:
        await backend.cache.set(key, sample_result, 30)
        clock.advance(29)
        assert await backend.cache.get(key) == sample_result

    @pytest.mark.asyncio
    async def test_expired_record_is_a_miss(
        self, backend: Backend, key: str, sample_result: QueryResult, clock: FrozenClock
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(seconds=1))
        clock.advance(2)
        assert await backend.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_expiry_instant_itself_is_a_miss(
        self, backend: Backend, key: str, sample_result: QueryResult, clock: FrozenClock
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(seconds=10))
        clock.advance(10)
        assert await backend.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_zero_ttl_is_immediately_expired(
        self, backend: Backend, key: str, sample_result: QueryResult
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(0))
        assert await backend.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_overwrite_returns_latest(
        self,
        backend: Backend,
        key: str,
        sample_result: QueryResult,
        other_result: QueryResult,
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(minutes=5))
        await backend.cache.set(key, other_result, timedelta(minutes=5))
        assert await backend.cache.get(key) == other_result

    @pytest.mark.asyncio
    async def test_set_after_expiry_revives_key(
        self,
        backend: Backend,
        key: str,
        sample_result: QueryResult,
        other_result: QueryResult,
        clock: FrozenClock,
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(seconds=1))
        clock.advance(5)
        await backend.cache.set(key, other_result, timedelta(seconds=60))
        assert await backend.cache.get(key) == other_result

    @pytest.mark.asyncio
    async def test_keys_are_independent(
        self, backend: Backend, sample_result: QueryResult
    ) -> None:
        first = key_of(QueryFingerprint(sql="SELECT 1"))
        second = key_of(QueryFingerprint(sql="SELECT 2"))
        await backend.cache.set(first, sample_result, timedelta(minutes=1))
        assert await backend.cache.get(second) is None

    @pytest.mark.asyncio
    async def test_transport_error_on_get_propagates(self, backend: Backend, key: str) -> None:
        error = ServiceUnavailable("backend down")
        backend.fail_reads(error)
        with pytest.raises(ServiceUnavailable) as exc_info:
            await backend.cache.get(key)
        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_transport_error_on_set_propagates(
        self, backend: Backend, key: str, sample_result: QueryResult
    ) -> None:
        backend.fail_writes(ServiceUnavailable("backend down"))
        with pytest.raises(ServiceUnavailable):
            await backend.cache.set(key, sample_result, timedelta(minutes=1))

    @pytest.mark.asyncio
    async def test_unencodable_result_raises_serialization_error(
        self, backend: Backend, key: str
    ) -> None:
        bad = QueryResult.from_rows(["value"], [[object()]])
        with pytest.raises(SerializationError) as exc_info:
            await backend.cache.set(key, bad, timedelta(minutes=1))
        assert exc_info.value.provider_name == backend.cache.get_provider_name()

    @pytest.mark.asyncio
    async def test_concurrent_gets_share_one_cache(
        self, backend: Backend, key: str, sample_result: QueryResult
    ) -> None:
        await backend.cache.set(key, sample_result, timedelta(minutes=1))
        results = await asyncio.gather(*(backend.cache.get(key) for _ in range(10)))
        assert all(r == sample_result for r in results)

    @pytest.mark.asyncio
    async def test_close_releases_owned_client_once(self, backend: Backend) -> None:
        await backend.cache.close()
        await backend.cache.close()
        assert backend.client.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_leaves_borrowed_client_open(self, clock: FrozenClock) -> None:
        for build in _BUILDERS.values():
            borrowed = build(clock, owns_client=False)
            await borrowed.cache.close()
            assert borrowed.client.close_calls == 0
