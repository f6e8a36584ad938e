"""
Campeiro Test Suite — Shared Fixtures
"""

import sys
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Ensure the project is on the path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from campeiro.core.settings import DatabaseSettings, SecuritySettings, Settings  # noqa: E402
from campeiro.data.memory import memory_backend  # noqa: E402
from campeiro.data.store import build_store  # noqa: E402
from campeiro.gateway.app import create_app  # noqa: E402

ACCESS_SECRET = "access-7Qk2mZ9vXw4Rt8Lp1Hy6Ns3Bd5Fg0Jc"
REFRESH_SECRET = "refresh-Ue4Wq8Zx2Cv6Bn0Ma3Sd7Fg1Hj5Kl9Po"

ANA = {
    "name": "Ana",
    "email": "ana@example.com",
    "cpf": "12345678901",
    "phone": "11987654321",
    "password": "secret1",
}

BRUNO = {
    "name": "Bruno",
    "email": "bruno@example.com",
    "cpf": "98765432100",
    "phone": "21912345678",
    "password": "hunter22",
}


def make_settings(environment: str = "test", **overrides) -> Settings:
    """Settings with valid secrets, fast bcrypt and the in-memory store."""
    return Settings(
        environment=environment,
        database=DatabaseSettings(url="memory://"),
        security=SecuritySettings(
            jwt_access_secret=ACCESS_SECRET,
            jwt_refresh_secret=REFRESH_SECRET,
            bcrypt_rounds=4,
        ),
        **overrides,
    )


def refresh_cookie(response: httpx.Response, name: str = "rtok") -> str | None:
    """Value of the refresh cookie set by a response, or None."""
    for header in response.headers.get_list("set-cookie"):
        key, _, rest = header.partition("=")
        if key.strip() == name:
            return rest.split(";", 1)[0].strip('"')
    return None


def set_cookie_header(response: httpx.Response, name: str = "rtok") -> str | None:
    """Raw Set-Cookie header for the refresh cookie, or None."""
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{name}="):
            return header
    return None


def cookie_expires(response: httpx.Response, name: str = "rtok") -> datetime | None:
    """Expires attribute of the refresh cookie as an aware UTC datetime."""
    for attribute in (set_cookie_header(response, name) or "").split(";")[1:]:
        key, _, value = attribute.strip().partition("=")
        if key.lower() == "expires":
            return parsedate_to_datetime(value)
    return None


def with_cookie(token: str, name: str = "rtok") -> dict[str, str]:
    # The cookie domain never matches the test host, so send it explicitly
    return {"Cookie": f"{name}={token}"}


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def security(settings):
    return settings.security


@pytest.fixture
def store():
    """Fresh in-memory store with the default audit configuration."""
    return build_store(memory_backend())


@pytest.fixture
def app(settings, store):
    return create_app(settings, store)


@pytest_asyncio.fixture
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


async def audit_entries(store, event: str | None = None) -> list[dict]:
    """All persisted audit entries (optionally for one event), oldest first."""
    await store.audit_sink.drain()
    entries = await store.audit_logs.find_many(
        {"event": event} if event else None, order_by="created_at"
    )
    return entries
