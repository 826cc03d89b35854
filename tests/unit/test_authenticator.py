"""Unit tests for ConnectionAuthenticator, the pool's before-connect hook."""

from __future__ import annotations

import asyncio
import ssl
from typing import Any

import pytest

from querycache.config.settings import Settings
from querycache.interfaces.dialer_provider import IDialer
from querycache.models.connection import AuthMode, ConnectionAttempt
from querycache.services.authenticator import ConnectionAuthenticator, detect_credentials
from querycache.utils.errors import ConfigurationError

INSTANCE = "my-project:us-central1:orders"


class _RecordingDialer(IDialer):
    def __init__(self) -> None:
        self.dials: list[tuple[str, dict[str, Any]]] = []
        self.close_calls = 0

    async def dial(self, instance: str, **connect_kwargs: Any) -> Any:
        self.dials.append((instance, connect_kwargs))
        return f"conn-to-{instance}"

    async def close(self) -> None:
        self.close_calls += 1

    def get_provider_name(self) -> str:
        return "recording"


class _CountingFactory:
    """Dialer factory that counts invocations and can be told to fail."""

    def __init__(self, failures: int = 0) -> None:
        self.calls = 0
        self.failures = failures
        self.dialers: list[_RecordingDialer] = []

    async def __call__(self) -> IDialer:
        self.calls += 1
        # Yield so concurrent attempts pile up on the lock.
        await asyncio.sleep(0)
        if self.failures:
            self.failures -= 1
            raise RuntimeError("no credentials")
        dialer = _RecordingDialer()
        self.dialers.append(dialer)
        return dialer


async def _pool_dial(host: str, port: int) -> str:
    return f"plain-{host}:{port}"


def _attempt() -> ConnectionAttempt:
    return ConnectionAttempt(
        host=INSTANCE,
        port=5432,
        user="app",
        password="secret",
        database="orders",
        dial=_pool_dial,
        options={"ssl": False},
    )


# ======================================================================
# Inactive modes
# ======================================================================


class TestInactiveAuthenticator:
    @pytest.mark.asyncio
    async def test_skip_mode_leaves_attempt_unchanged(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.SKIP, credentials_detected=True)
        attempt = _attempt()

        await authenticator.before_connect(attempt)

        assert attempt.dial is _pool_dial
        assert factory.calls == 0
        assert authenticator.is_active is False

    @pytest.mark.asyncio
    async def test_auto_mode_without_credentials_is_a_no_op(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode="auto", credentials_detected=False)
        attempt = _attempt()

        await authenticator.before_connect(attempt)

        assert attempt.dial is _pool_dial
        assert factory.calls == 0

    @pytest.mark.asyncio
    async def test_eager_create_does_nothing_when_inactive(self) -> None:
        factory = _CountingFactory(failures=1)
        authenticator = await ConnectionAuthenticator.create(factory, mode=AuthMode.SKIP, eager=True)
        assert authenticator.dialer is None
        assert factory.calls == 0


# ======================================================================
# Active modes
# ======================================================================


class TestActiveAuthenticator:
    @pytest.mark.asyncio
    async def test_auto_mode_with_credentials_rewrites_dial(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.AUTO, credentials_detected=True)
        attempt = _attempt()

        await authenticator.before_connect(attempt)

        assert attempt.dial is not _pool_dial
        assert authenticator.is_active is True

    @pytest.mark.asyncio
    async def test_replacement_dial_targets_attempt_host(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.EXPLICIT)
        attempt = _attempt()
        await authenticator.before_connect(attempt)

        conn = await attempt.dial("10.0.0.9", 6543)

        assert conn == f"conn-to-{INSTANCE}"
        instance, kwargs = factory.dialers[0].dials[0]
        assert instance == INSTANCE
        assert kwargs == {"user": "app", "password": "secret", "db": "orders", "ssl": False}

    @pytest.mark.asyncio
    async def test_dialer_is_built_lazily(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.EXPLICIT)
        assert authenticator.dialer is None
        assert factory.calls == 0

        await authenticator.before_connect(_attempt())
        assert authenticator.dialer is factory.dialers[0]

    @pytest.mark.asyncio
    async def test_concurrent_first_attempts_build_one_dialer(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.EXPLICIT)
        template = _attempt()
        attempts = [template.copy() for _ in range(20)]

        await asyncio.gather(*(authenticator.before_connect(a) for a in attempts))

        assert factory.calls == 1
        for attempt in attempts:
            await attempt.dial("ignored", 0)
        assert len(factory.dialers[0].dials) == 20

    @pytest.mark.asyncio
    async def test_rewriting_a_copy_leaves_the_template_alone(self) -> None:
        authenticator = ConnectionAuthenticator(_CountingFactory(), mode=AuthMode.EXPLICIT)
        template = _attempt()
        attempt = template.copy()

        await authenticator.before_connect(attempt)

        assert template.dial is _pool_dial
        assert attempt.dial is not _pool_dial

    def test_copy_keeps_uncopyable_option_values(self) -> None:
        context = ssl.create_default_context()
        template = ConnectionAttempt(host=INSTANCE, dial=_pool_dial, options={"ssl": context})

        attempt = template.copy()
        attempt.options["timeout"] = 5

        assert attempt.options["ssl"] is context
        assert attempt.dial is _pool_dial
        assert template.options == {"ssl": context}

    @pytest.mark.asyncio
    async def test_each_attempt_dials_with_its_own_config(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.EXPLICIT)
        first = _attempt().copy()
        second = _attempt().copy()
        second.host = "my-project:us-central1:replica"

        await authenticator.before_connect(first)
        await authenticator.before_connect(second)
        await second.dial("x", 1)
        await first.dial("x", 1)

        targets = [instance for instance, _ in factory.dialers[0].dials]
        assert targets == ["my-project:us-central1:replica", INSTANCE]


# ======================================================================
# Construction failures
# ======================================================================


class TestDialerConstruction:
    @pytest.mark.asyncio
    async def test_eager_create_builds_dialer(self) -> None:
        factory = _CountingFactory()
        authenticator = await ConnectionAuthenticator.create(
            factory, mode=AuthMode.EXPLICIT, eager=True
        )
        assert factory.calls == 1
        assert authenticator.dialer is factory.dialers[0]

        await authenticator.before_connect(_attempt())
        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_eager_failure_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await ConnectionAuthenticator.create(
                _CountingFactory(failures=1), mode=AuthMode.EXPLICIT, eager=True
            )
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_lazy_failure_is_retried_on_next_attempt(self) -> None:
        factory = _CountingFactory(failures=1)
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.EXPLICIT)
        attempt = _attempt()

        with pytest.raises(ConfigurationError):
            await authenticator.before_connect(attempt)
        assert attempt.dial is _pool_dial
        assert authenticator.dialer is None

        await authenticator.before_connect(attempt)
        assert factory.calls == 2
        assert authenticator.dialer is not None

    @pytest.mark.asyncio
    async def test_querycache_errors_are_not_rewrapped(self) -> None:
        original = ConfigurationError(message="bad ip type", provider_name="cloudsql")

        async def _factory() -> IDialer:
            raise original

        authenticator = ConnectionAuthenticator(_factory, mode=AuthMode.EXPLICIT)
        with pytest.raises(ConfigurationError) as exc_info:
            await authenticator.before_connect(_attempt())
        assert exc_info.value is original


# ======================================================================
# close / detect_credentials
# ======================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_closes_the_dialer_once(self) -> None:
        factory = _CountingFactory()
        authenticator = await ConnectionAuthenticator.create(
            factory, mode=AuthMode.EXPLICIT, eager=True
        )

        await authenticator.close()
        await authenticator.close()

        assert factory.dialers[0].close_calls == 1
        assert authenticator.dialer is None

    @pytest.mark.asyncio
    async def test_closed_authenticator_never_builds_another_dialer(self) -> None:
        factory = _CountingFactory()
        authenticator = ConnectionAuthenticator(factory, mode=AuthMode.EXPLICIT)
        await authenticator.before_connect(_attempt())
        await authenticator.close()

        attempt = _attempt()
        with pytest.raises(ConfigurationError, match="closed"):
            await authenticator.before_connect(attempt)

        assert factory.calls == 1
        assert attempt.dial is _pool_dial
        assert authenticator.closed is True

    @pytest.mark.asyncio
    async def test_closed_inactive_authenticator_stays_a_no_op(self) -> None:
        authenticator = ConnectionAuthenticator(_CountingFactory(), mode=AuthMode.SKIP)
        await authenticator.close()
        attempt = _attempt()

        await authenticator.before_connect(attempt)
        assert attempt.dial is _pool_dial

    @pytest.mark.asyncio
    async def test_close_without_dialer_is_a_no_op(self) -> None:
        authenticator = ConnectionAuthenticator(_CountingFactory(), mode=AuthMode.SKIP)
        await authenticator.close()

    def test_detect_credentials(self) -> None:
        assert detect_credentials(Settings(google_application_credentials="/tmp/sa.json")) is True
        assert detect_credentials(Settings(google_application_credentials="  ")) is False
