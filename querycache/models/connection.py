"""Connection-attempt models used by the authentication hook.

The connection pool builds one :class:`ConnectionAttempt` per physical dial
and hands it to :meth:`ConnectionAuthenticator.before_connect` -- always a
fresh copy (:meth:`ConnectionAttempt.copy`) so that the hook can rewrite the
attempt's ``dial`` function without touching open connections or other
attempts being prepared concurrently.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable

# dial(host, port) -> driver connection
DialFunc = Callable[[str, int], Awaitable[Any]]


class AuthMode(str, Enum):
    """How the authenticator decides whether to route dials through a dialer."""

    AUTO = "auto"          # use the dialer iff the caller's credential probe succeeded
    SKIP = "skip"          # never touch the dial function
    EXPLICIT = "explicit"  # always use the dialer built from explicit options


@dataclass
class ConnectionAttempt:
    """Mutable per-attempt connection configuration.

    ``host`` is what the authenticated dialer connects to (for Cloud SQL, the
    instance connection name ``project:region:instance``).  ``dial`` is the
    coroutine function the pool will call to open the connection.
    """

    host: str
    port: int = 5432
    user: str = ""
    password: str | None = None
    database: str = ""
    dial: DialFunc | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> ConnectionAttempt:
        """Return a copy for a single connection attempt.

        ``options`` is a new dict, so adding or removing keys on the copy never
        affects the original.  Option values (an ``ssl.SSLContext``, for
        instance) and ``dial`` are shared; the hook only replaces ``dial``.
        """
        return replace(self, options=dict(self.options))

    def connect_kwargs(self) -> dict[str, Any]:
        """Driver keyword arguments for an authenticated dial."""
        kwargs: dict[str, Any] = {"user": self.user, "db": self.database}
        if self.password is not None:
            kwargs["password"] = self.password
        kwargs.update(self.options)
        return kwargs
