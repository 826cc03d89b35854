"""Cloud SQL dialer backed by the Cloud SQL Python Connector.

Wraps ``google.cloud.sql.connector.Connector`` to implement :class:`IDialer`.
The connector handles IAM credential refresh, ephemeral client certificates
and the mTLS tunnel; this adapter only builds it once and asks it to
connect to a named instance with the configured driver.
"""

from __future__ import annotations

from typing import Any

from google.cloud.sql.connector import Connector, IPTypes, create_async_connector

from querycache.interfaces.dialer_provider import IDialer
from querycache.utils.logging import get_logger

_DEFAULT_DRIVER = "asyncpg"


class CloudSQLDialer(IDialer):
    """Authenticated dialer for Cloud SQL instances.

    Use :meth:`create` from inside a running event loop; the connector binds
    to that loop.
    """

    def __init__(self, connector: Connector, driver: str = _DEFAULT_DRIVER) -> None:
        self._connector = connector
        self._driver = driver
        self._closed = False
        self._logger = get_logger(__name__)

    @classmethod
    async def create(
        cls,
        driver: str = _DEFAULT_DRIVER,
        ip_type: str | None = None,
        **connector_options: Any,
    ) -> CloudSQLDialer:
        """Build a connector bound to the running loop.

        Parameters
        ----------
        driver:
            Database driver the connector hands sockets to (``"asyncpg"``).
        ip_type:
            ``"public"``, ``"private"`` or ``"psc"``; ``None`` keeps the
            connector default.
        connector_options:
            Passed to ``create_async_connector`` (``credentials``,
            ``enable_iam_auth``, ``quota_project``, ...).
        """
        if ip_type:
            connector_options["ip_type"] = IPTypes[ip_type.upper()]
        connector = await create_async_connector(**connector_options)
        return cls(connector, driver=driver)

    async def dial(self, instance: str, **connect_kwargs: Any) -> Any:
        """Connect to *instance* (``project:region:instance``) through the connector."""
        self._logger.debug("cloudsql_dial", instance=instance, driver=self._driver)
        return await self._connector.connect_async(instance, self._driver, **connect_kwargs)

    async def close(self) -> None:
        """Stop the connector's background refresh tasks.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self._connector.close_async()

    def get_provider_name(self) -> str:
        return "cloudsql"
