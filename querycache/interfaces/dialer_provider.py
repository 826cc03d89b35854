"""Abstract base class for authenticated database dialers.

A dialer opens a database connection through an authenticated secure
channel (for Google Cloud SQL, the connector's mTLS tunnel).  Building one
may involve credential refresh and network setup, so the
:class:`~querycache.services.authenticator.ConnectionAuthenticator` builds
exactly one and reuses it for every connection attempt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IDialer(ABC):
    """Contract for authenticated dialers."""

    @abstractmethod
    async def dial(self, instance: str, **connect_kwargs: Any) -> Any:
        """Open a connection to *instance* and return the driver connection.

        Parameters
        ----------
        instance:
            The target host identifier (Cloud SQL instance connection name).
        connect_kwargs:
            Driver arguments such as ``user``, ``password`` and ``db``.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release background resources held by the dialer."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"cloudsql"``."""
