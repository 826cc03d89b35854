"""Read-through query caching on top of an :class:`IQueryCacheProvider`.

``CachedQuerier`` is the executor-side glue: derive the key, try the cache,
and on a miss run the real query and store its result.  Per-statement
``-- @cache-ttl`` / ``-- @cache-max-rows`` directives override the
querier's defaults.

Cache failures propagate by default.  With ``fail_open=True`` the querier
logs them and runs the query directly instead -- that is the executor's
choice to make, never the adapters'.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Sequence

from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.models.query import QueryFingerprint, QueryOptions, key_of
from querycache.models.result import QueryResult
from querycache.utils.logging import get_logger

QueryRunner = Callable[[], Awaitable[QueryResult]]


class CachedQuerier:
    """Serves query results from a cache, falling back to the real query."""

    def __init__(
        self,
        cache: IQueryCacheProvider,
        options: QueryOptions | None = None,
        fail_open: bool = False,
        timeout: float | None = None,
    ) -> None:
        self._cache = cache
        self._options = options or QueryOptions()
        self._fail_open = fail_open
        self._timeout = timeout
        self._logger = get_logger(__name__)

    async def fetch(
        self,
        sql: str,
        run: QueryRunner,
        args: Sequence[Any] = (),
        scope: dict[str, str] | None = None,
    ) -> QueryResult:
        """Return the result of *sql* with *args*, from cache when possible.

        Parameters
        ----------
        sql:
            Statement text, optionally carrying ``-- @cache-*`` directives.
        run:
            Coroutine function that executes the query on a miss.
        args:
            Bind arguments; part of the cache key.
        scope:
            Extra cache-scoping values (tenant, role, ...); part of the key.
        """
        options = QueryOptions.from_sql(sql, self._options)
        if options.max_lifetime.total_seconds() <= 0:
            return await run()

        key = key_of(QueryFingerprint(sql=sql, args=tuple(args), scope=scope or {}))

        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        result = await run()
        if options.max_rows and result.row_count > options.max_rows:
            self._logger.debug(
                "query_cache_skip_large_result",
                key=key,
                row_count=result.row_count,
                max_rows=options.max_rows,
            )
            return result

        await self._cache_set(key, result, options)
        return result

    async def _cache_get(self, key: str) -> QueryResult | None:
        try:
            return await self._cache.get(key, timeout=self._timeout)
        except Exception as exc:
            if not self._fail_open:
                raise
            self._logger.warning(
                "query_cache_get_failed",
                key=key,
                provider=self._cache.get_provider_name(),
                error=str(exc),
            )
            return None

    async def _cache_set(self, key: str, result: QueryResult, options: QueryOptions) -> None:
        try:
            await self._cache.set(key, result, options.max_lifetime, timeout=self._timeout)
        except Exception as exc:
            if not self._fail_open:
                raise
            self._logger.warning(
                "query_cache_set_failed",
                key=key,
                provider=self._cache.get_provider_name(),
                error=str(exc),
            )
