"""Per-connection-attempt authentication hook for database connection pools.

The pool calls :meth:`ConnectionAuthenticator.before_connect` immediately
before each physical dial, passing that attempt's own copy of the connection
configuration.  When authentication is active the hook swaps the attempt's
``dial`` for one that connects through the shared authenticated dialer;
otherwise it returns without touching anything.

DIALER LIFECYCLE:
    Unconfigured ──(first attempt needing auth, or eager create())──▶ DialerReady

    The dialer is built at most once per authenticator, under an
    ``asyncio.Lock``, and reused for every later attempt.  A failed build
    raises :class:`ConfigurationError` (from ``create(eager=True)`` or from
    the attempt that triggered it) and leaves the authenticator
    Unconfigured, so the next attempt tries again.

    DialerReady ──close()──▶ Closed.  A closed authenticator never builds
    another dialer; active attempts raise :class:`ConfigurationError`.

CREDENTIAL DETECTION:
    Whether credentials are configured is probed once by the caller
    (:func:`detect_credentials`) and passed in; the hook never reads the
    environment itself.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from querycache.config.settings import Settings
from querycache.interfaces.dialer_provider import IDialer
from querycache.models.connection import AuthMode, ConnectionAttempt
from querycache.utils.concurrency import with_deadline
from querycache.utils.errors import ConfigurationError, QueryCacheError

logger = structlog.get_logger(logger_name=__name__)

DialerFactory = Callable[[], Awaitable[IDialer]]


def detect_credentials(settings: Settings) -> bool:
    """Return ``True`` if Google application credentials are configured.

    Meant to be called once at startup; the result feeds
    :class:`ConnectionAuthenticator` in ``AuthMode.AUTO``.
    """
    return bool(settings.google_application_credentials.strip())


class ConnectionAuthenticator:
    """Routes connection attempts through a lazily built, shared dialer.

    Parameters
    ----------
    dialer_factory:
        Coroutine function returning a new :class:`IDialer`.  Called at most
        once successfully.
    mode:
        ``SKIP`` never authenticates; ``EXPLICIT`` always does; ``AUTO``
        authenticates only if *credentials_detected* is true.
    credentials_detected:
        Result of the caller's one-time credential probe (``AUTO`` only).
    """

    def __init__(
        self,
        dialer_factory: DialerFactory,
        mode: AuthMode | str = AuthMode.AUTO,
        credentials_detected: bool = False,
    ) -> None:
        self._dialer_factory = dialer_factory
        self._mode = AuthMode(mode)
        self._active = self._mode is AuthMode.EXPLICIT or (
            self._mode is AuthMode.AUTO and credentials_detected
        )
        self._dialer: IDialer | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def create(
        cls,
        dialer_factory: DialerFactory,
        mode: AuthMode | str = AuthMode.AUTO,
        credentials_detected: bool = False,
        eager: bool = False,
    ) -> ConnectionAuthenticator:
        """Build an authenticator, optionally constructing the dialer right away.

        With ``eager=True`` a dialer construction failure surfaces here as
        :class:`ConfigurationError` instead of on the first connection.
        """
        authenticator = cls(dialer_factory, mode=mode, credentials_detected=credentials_detected)
        if eager and authenticator.is_active:
            await authenticator._ensure_dialer()
        return authenticator

    @property
    def mode(self) -> AuthMode:
        return self._mode

    @property
    def is_active(self) -> bool:
        """``True`` if connection attempts are routed through the dialer."""
        return self._active

    @property
    def dialer(self) -> IDialer | None:
        """The constructed dialer, or ``None`` while Unconfigured."""
        return self._dialer

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ConfigurationError(message="authenticator is closed")

    async def _ensure_dialer(self) -> IDialer:
        self._check_open()
        if self._dialer is not None:
            return self._dialer
        async with self._lock:
            self._check_open()
            # Another attempt may have finished construction while we waited.
            if self._dialer is None:
                try:
                    dialer = await self._dialer_factory()
                except QueryCacheError:
                    raise
                except Exception as exc:
                    logger.error("dialer_construction_failed", mode=self._mode.value, error=str(exc))
                    raise ConfigurationError(
                        message=f"Failed to construct authenticated dialer: {exc}",
                    ) from exc
                self._dialer = dialer
                logger.info("dialer_constructed", provider=dialer.get_provider_name())
        return self._dialer

    async def before_connect(self, attempt: ConnectionAttempt, *, timeout: float | None = None) -> None:
        """Rewrite *attempt* to dial through the authenticated dialer.

        *attempt* must be this attempt's private copy; it is mutated in place.
        The replacement dial ignores the host/port the pool passes and
        connects to ``attempt.host`` instead.  A no-op when inactive.

        Raises :class:`ConfigurationError` if the dialer cannot be built or the
        authenticator has been closed.
        """
        if not self._active:
            return

        dialer = await with_deadline(self._ensure_dialer(), timeout)

        async def _dial(_host: str, _port: int) -> Any:
            return await dialer.dial(attempt.host, **attempt.connect_kwargs())

        attempt.dial = _dial

    async def close(self) -> None:
        """Close the dialer if one was built.  Idempotent.

        Later active attempts raise :class:`ConfigurationError` instead of
        building a new dialer.
        """
        async with self._lock:
            self._closed = True
            dialer, self._dialer = self._dialer, None
        if dialer is not None:
            await dialer.close()
            logger.info("dialer_closed", provider=dialer.get_provider_name())
