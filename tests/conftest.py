"""Pytest configuration and fixtures for PayBot MCP tests."""

from typing import Any

import httpx
import pytest

from paybot_mcp.config import Settings, load_settings
from paybot_mcp.tools import PayBotTools

PAYBOT_ENV_VARS = (
    "PAYBOT_API_KEY",
    "API_KEY",
    "PAYBOT_FACILITATOR_URL",
    "X402_FACILITATOR_URL",
    "PAYBOT_BOT_ID",
    "PAYBOT_WALLET_KEY",
    "PAYBOT_NETWORK",
    "PAYBOT_EXPLORER_TX_URL",
    "PAYBOT_HISTORY_LIMIT",
    "PAYBOT_DEFAULT_TRUST_LEVEL",
    "PAYBOT_REQUEST_TIMEOUT",
    "LOG_LEVEL",
)

FACILITATOR_URL = "http://facilitator.test"


class FakeFacilitator:
    """In-memory facilitator behind an httpx.MockTransport.

    Records every request so tests can assert what was (or was not) sent.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], dict[str, Any]] = {}

    def respond(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json: Any = None,
        text: str | None = None,
    ) -> None:
        """Register the response for a method and path."""
        self._routes[(method, path)] = {
            "status_code": status_code,
            "json": json,
            "text": text,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "route not stubbed"})
        if route["text"] is not None:
            return httpx.Response(route["status_code"], text=route["text"])
        return httpx.Response(route["status_code"], json=route["json"])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate every test from the caller's environment and any .env file."""
    for name in PAYBOT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def paybot_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Minimal environment for a working server."""
    monkeypatch.setenv("PAYBOT_API_KEY", "test-key")
    monkeypatch.setenv("PAYBOT_FACILITATOR_URL", FACILITATOR_URL)


@pytest.fixture
def settings(paybot_env: None) -> Settings:
    """Settings resolved from the minimal environment."""
    return load_settings()


@pytest.fixture
def facilitator() -> FakeFacilitator:
    """Create a fake facilitator."""
    return FakeFacilitator()


@pytest.fixture
def paybot_tools(facilitator: FakeFacilitator) -> PayBotTools:
    """Create PayBotTools wired to the fake facilitator."""
    return PayBotTools(transport=facilitator.transport)
