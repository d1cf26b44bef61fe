"""Shared test fixtures for the OCR notes test suite."""

import io
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from ocrnotes.api.app import create_app
from ocrnotes.auth.session import AuthSession, Identity
from ocrnotes.errors import AuthorizationError
from ocrnotes.utils.config import AppConfig, DatabaseConfig

ALICE = Identity(id="user-alice", email="alice@example.com", name="Alice")
BOB = Identity(id="user-bob", email="bob@example.com")

_ENV_VARS = ("MISTRAL_API_KEY", "SUPABASE_URL", "SUPABASE_ANON_KEY", "DATABASE_URL", "LOG_LEVEL")


class FakeOCRProvider:
    """OCR provider returning a canned response and recording its calls."""

    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = (
            response
            if response is not None
            else {"pages": [{"markdown": "# Title\n\nHello **world**"}]}
        )
        self.error = error
        self.calls: list[str] = []

    async def process(self, data_url: str) -> Any:
        self.calls.append(data_url)
        if self.error is not None:
            raise self.error
        return self.response


class FakeAuthProvider:
    """Auth provider with two known users and a single valid OAuth code."""

    def __init__(self) -> None:
        self.users = {"token-alice": ALICE, "token-bob": BOB}
        self.lookups = 0
        self.exchanges: list[tuple[str, str]] = []
        self.signed_out: list[str] = []

    def authorize_url(self, redirect_to: str, code_challenge: str) -> str:
        return (
            "https://auth.example.com/authorize"
            f"?redirect_to={redirect_to}&code_challenge={code_challenge}"
        )

    async def exchange_code(self, code: str, code_verifier: str) -> AuthSession:
        self.exchanges.append((code, code_verifier))
        if code != "good-code":
            raise AuthorizationError("Failed to sign in")
        return AuthSession("token-alice", "refresh-alice", 3600, ALICE)

    async def get_user(self, access_token: str) -> Identity | None:
        self.lookups += 1
        return self.users.get(access_token)

    async def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials in the environment out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def png_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.new("RGB", (40, 20), color=(255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "scan.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Default configuration with a throwaway SQLite database."""
    return AppConfig(database=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"))


@pytest.fixture
def ocr_provider() -> FakeOCRProvider:
    return FakeOCRProvider()


@pytest.fixture
def auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def client(
    app_config: AppConfig,
    ocr_provider: FakeOCRProvider,
    auth_provider: FakeAuthProvider,
) -> Iterator[TestClient]:
    """Test client for an app wired to the fake providers."""
    app = create_app(app_config, ocr_provider=ocr_provider, auth_provider=auth_provider)
    with TestClient(app) as test_client:
        yield test_client
