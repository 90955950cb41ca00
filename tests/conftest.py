from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from jarvis_web.core.config import settings
from jarvis_web.services import factory

# Security: These are test-only secrets. Production reads them from env.
TEST_PASSWORD = "correct"  # nosec B105
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow
TEST_SERVICE_KEY = "test-service-key-0123456789abcdef"  # nosec B105
TEST_CLIENT_IP = "203.0.113.7"


class FakeClock:
    """Controllable UTC clock shared by every service under test."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeChannel:
    """OTP delivery channel that records codes instead of sending them."""

    def __init__(self, *, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[str] = []

    async def send(self, code: str) -> bool:
        self.sent.append(code)
        return self.succeed

    @property
    def last_code(self) -> str:
        return self.sent[-1]


def wrong_code(code: str) -> str:
    """A valid-format code guaranteed to differ from *code*."""
    return "111111" if code != "111111" else "222222"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture(autouse=True)
def reset_services() -> Iterator[None]:
    """Ensure clean singletons and stores between tests.

    Yields:
        None (autouse fixture).
    """
    factory.reset_services()
    yield
    factory.reset_services()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable route throttling during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from jarvis_web.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled


@pytest.fixture
def auth_settings() -> Iterator[None]:
    """Configure the credential, signing secret and service key for a test."""
    originals = {
        "auth_password": settings.auth_password,
        "auth_secret": settings.auth_secret,
        "otp_secret": settings.otp_secret,
        "service_api_key": settings.service_api_key,
        "trust_forwarded_for": settings.trust_forwarded_for,
    }
    settings.auth_password = SecretStr(TEST_PASSWORD)
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.otp_secret = SecretStr("")
    settings.service_api_key = SecretStr(TEST_SERVICE_KEY)
    settings.trust_forwarded_for = True

    yield

    for name, value in originals.items():
        setattr(settings, name, value)


@pytest_asyncio.fixture
async def client(
    auth_settings,  # noqa: ARG001 - configures credentials
    clock: FakeClock,
    channel: FakeChannel,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to a fake clock and delivery channel.

    Requests carry X-Forwarded-For: TEST_CLIENT_IP unless a test overrides it.

    Yields:
        Configured AsyncClient for making API requests.
    """
    from jarvis_web.main import app

    factory._clock = clock
    factory._delivery_channel = channel

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Forwarded-For": TEST_CLIENT_IP},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
