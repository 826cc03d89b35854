"""querycache assembly: builds the configured cache adapter and connection hook.

Callers pick the backend through settings (``QUERY_CACHE_BACKEND``) rather
than by importing an adapter directly, e.g.::

    settings = load_config()
    init_logging(settings)
    cache = build_query_cache(settings)
    authenticator = await build_authenticator(settings)
    pool_config.before_connect = authenticator.before_connect

Adapters built here own their Google client and close it in ``close()``.
"""

from __future__ import annotations

import structlog
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import datastore, firestore, storage

from querycache.config.settings import Settings
from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.interfaces.dialer_provider import IDialer
from querycache.providers.cache.datastore_cache import DatastoreQueryCache
from querycache.providers.cache.firestore_cache import FirestoreQueryCache
from querycache.providers.cache.storage_cache import StorageQueryCache
from querycache.providers.dialer.cloudsql_dialer import CloudSQLDialer
from querycache.services.authenticator import (
    ConnectionAuthenticator,
    DialerFactory,
    detect_credentials,
)
from querycache.utils.errors import ConfigurationError
from querycache.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def init_logging(app_settings: Settings) -> structlog.BoundLogger:
    """Configure structlog from settings (JSON in production)."""
    return configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )


# ---------------------------------------------------------------------------
# Cache backend selection
# ---------------------------------------------------------------------------


def build_query_cache(app_settings: Settings) -> IQueryCacheProvider:
    """Construct the adapter named by ``query_cache_backend``.

    Raises :class:`ConfigurationError` for a missing bucket or when the
    Google client cannot find credentials.
    """
    backend = app_settings.query_cache_backend
    project = app_settings.google_project_id or None

    try:
        if backend == "firestore":
            cache: IQueryCacheProvider = FirestoreQueryCache(
                firestore.AsyncClient(project=project),
                collection=app_settings.cache_collection,
                owns_client=True,
            )
        elif backend == "datastore":
            cache = DatastoreQueryCache(
                datastore.Client(project=project),
                kind=app_settings.cache_kind,
                owns_client=True,
            )
        elif backend == "storage":
            if not app_settings.cache_bucket:
                raise ConfigurationError(
                    message="CACHE_BUCKET is required for the storage backend",
                    provider_name="storage",
                )
            cache = StorageQueryCache(
                storage.Client(project=project),
                bucket=app_settings.cache_bucket,
                owns_client=True,
            )
        else:
            raise ConfigurationError(message=f"Unknown query cache backend: {backend!r}")
    except DefaultCredentialsError as exc:
        raise ConfigurationError(
            message=f"No Google credentials available for {backend}: {exc}",
            provider_name=backend,
        ) from exc

    _logger.info("query_cache_built", backend=backend, project=project)
    return cache


# ---------------------------------------------------------------------------
# Connection authentication
# ---------------------------------------------------------------------------


def _build_dialer_factory(app_settings: Settings) -> DialerFactory:
    """Return a coroutine function that builds a Cloud SQL dialer from settings."""

    async def _factory() -> IDialer:
        return await CloudSQLDialer.create(
            driver=app_settings.cloudsql_driver,
            ip_type=app_settings.cloudsql_ip_type,
            enable_iam_auth=app_settings.cloudsql_enable_iam_auth,
        )

    return _factory


async def build_authenticator(
    app_settings: Settings,
    credentials_detected: bool | None = None,
    dialer_factory: DialerFactory | None = None,
) -> ConnectionAuthenticator:
    """Construct the before-connect hook described by the auth settings.

    The credential probe runs here, once, unless *credentials_detected* is
    given.  With ``auth_eager`` the dialer is built immediately and a
    failure raises :class:`ConfigurationError`.
    """
    if credentials_detected is None:
        credentials_detected = detect_credentials(app_settings)

    authenticator = await ConnectionAuthenticator.create(
        dialer_factory or _build_dialer_factory(app_settings),
        mode=app_settings.auth_mode,
        credentials_detected=credentials_detected,
        eager=app_settings.auth_eager,
    )
    _logger.info(
        "authenticator_built",
        mode=authenticator.mode.value,
        active=authenticator.is_active,
        eager=app_settings.auth_eager,
    )
    return authenticator
