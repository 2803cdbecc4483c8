"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- Session store and challenge registry
- A scripted stand-in for the Telegram provider
- Auth service and API clients
"""

import os
import sys
import json
import tempfile
from pathlib import Path
from typing import Dict, Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before imports
os.environ["TELEGRAM_API_ID"] = "12345"
os.environ["TELEGRAM_API_HASH"] = "test_api_hash"
os.environ["LOG_LEVEL"] = "WARNING"

from telethon.errors import AuthKeyUnregisteredError, PhoneCodeInvalidError

from kerjaya.auth import ChallengeRegistry, SessionStore
from kerjaya.config import Config
from kerjaya.services import AuthService
from kerjaya.telegram_provider import ChallengeHandle, Identity


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def test_config():
    """Test configuration values."""
    return {
        "test_phone": "+60123456789",
        "other_phone": "+60111222333",
        "first_name": "Aisyah",
        "last_name": "Rahman",
        "username": "aisyah_r",
    }


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeTelegramProvider:
    """
    In-memory provider that behaves like Telegram's code login.

    Every request_code issues a fresh code bound to a fresh phone_code_hash.
    Errors can be scripted per operation through `fail_with`.
    """

    def __init__(self, first_name: str = "Aisyah", last_name: str = "Rahman", username: str = "aisyah_r"):
        self.first_name = first_name
        self.last_name = last_name
        self.username = username
        self.codes: Dict[str, str] = {}
        self.sent: Dict[str, str] = {}  # phone -> latest code
        self.revoked: set = set()
        self.logged_out: list = []
        self.fail_with: Dict[str, Exception] = {}
        self.calls: Dict[str, int] = {}
        self._counter = 0

    def _record(self, operation: str):
        self.calls[operation] = self.calls.get(operation, 0) + 1
        error = self.fail_with.get(operation)
        if error is not None:
            raise error

    async def request_code(self, phone: str) -> ChallengeHandle:
        self._record("request_code")
        self._counter += 1
        code = f"{10000 + self._counter}"
        phone_code_hash = f"hash-{self._counter}"
        self.codes[phone_code_hash] = code
        self.sent[phone] = code
        return ChallengeHandle(phone_code_hash=phone_code_hash, session_string=f"tmp-{self._counter}")

    async def complete_code(self, handle: ChallengeHandle, phone: str, code: str) -> str:
        self._record("complete_code")
        if self.codes.get(handle.phone_code_hash) != code:
            raise PhoneCodeInvalidError(request=None)
        return f"credential-{phone}-{handle.phone_code_hash}"

    async def fetch_identity(self, credential: str) -> Identity:
        self._record("fetch_identity")
        if credential in self.revoked:
            raise AuthKeyUnregisteredError(request=None)
        phone = credential.split("-")[1]
        return Identity(
            id="777000",
            first_name=self.first_name,
            last_name=self.last_name,
            username=self.username,
            phone=phone.lstrip("+"),
        )

    async def revoke(self, credential: str) -> None:
        self._record("revoke")
        self.logged_out.append(credential)
        self.revoked.add(credential)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def temp_sessions_file() -> Generator[Path, None, None]:
    """Create a temporary file for session storage."""
    with tempfile.NamedTemporaryFile(
        mode='w', suffix='.json', delete=False
    ) as f:
        json.dump({}, f)
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    for suffix in ("", ".corrupt", ".lock", ".tmp"):
        path = temp_path.with_name(temp_path.name + suffix)
        if path.exists():
            path.unlink()


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary data directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def session_store(temp_sessions_file) -> SessionStore:
    """Create a SessionStore with temporary file."""
    return SessionStore(temp_sessions_file)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def challenges(clock) -> ChallengeRegistry:
    """Create a ChallengeRegistry with a 5 minute TTL and a fake clock."""
    return ChallengeRegistry(ttl_seconds=300, clock=clock)


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def provider(test_config) -> FakeTelegramProvider:
    return FakeTelegramProvider(
        first_name=test_config["first_name"],
        last_name=test_config["last_name"],
        username=test_config["username"],
    )


@pytest.fixture
def auth_service(provider, challenges, session_store) -> AuthService:
    """AuthService wired to the fake provider."""
    return AuthService(
        provider=provider,
        challenges=challenges,
        sessions=session_store,
        timeout_seconds=5,
    )


@pytest.fixture
def services(auth_service):
    """Services container as built by api.deps."""
    from api.deps import Services
    return Services(config=Config(), auth=auth_service)


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_app():
    """Create FastAPI app for testing."""
    from api.main import app
    return app


@pytest.fixture
def api_client(api_app, services) -> Generator[TestClient, None, None]:
    """Create synchronous test client with services patched in."""
    with patch("api.deps.get_services", return_value=services):
        yield TestClient(api_app)


@pytest.fixture
def logged_in_token(api_client, provider, test_config) -> str:
    """Run the full two-step login over HTTP and return the app token."""
    phone = test_config["test_phone"]
    response = api_client.post("/api/login", json={"phone": phone})
    assert response.status_code == 200
    response = api_client.post("/api/verify", json={"phone": phone, "code": provider.sent[phone]})
    assert response.status_code == 200
    return response.json()["appToken"]


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as API endpoint test"
    )
