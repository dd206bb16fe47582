"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- A fresh token broker per test (no state leaks between tests)
- A fake Google OAuth client that never touches the network
- Test client (FastAPI TestClient) wired to both
- Helpers to switch auth modes and to seed sessions
- A stand-in for the Google REST APIs at the httpx transport level
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Generator, Optional
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from workspace_relay.deps import get_auth_client, get_auth_strategy, get_token_broker
from workspace_relay.environments.base import OAuthTokens
from workspace_relay.environments.google import GoogleAuthClient
from workspace_relay.main import app
from workspace_relay.routers import google_auth
from workspace_relay.services.auth_modes import get_strategy
from workspace_relay.services.token_broker import TokenBroker


VALID_CODE = "4/0valid-code"
REFRESH_TOKEN = "1//refresh-token"


# ---------------------------------------------------------------------------
# FAKE OAUTH CLIENT
# ---------------------------------------------------------------------------

class FakeGoogleAuthClient(GoogleAuthClient):
    """
    GoogleAuthClient whose token endpoint is a dict lookup.

    - VALID_CODE exchanges once (codes are single-use), anything else fails
    - refresh tokens in `valid_refresh_tokens` refresh successfully
    """

    def __init__(self):
        super().__init__(
            client_id="test-client-id",
            client_secret="test-client-secret",
            redirect_uri="http://testserver/auth/google/callback",
        )
        self.valid_codes = {VALID_CODE}
        self.valid_refresh_tokens = {REFRESH_TOKEN}
        self.token_requests = []
        self.revoked = []
        self._issued = 0

    async def _post_token_request(self, data: dict) -> httpx.Response:
        self.token_requests.append(data)
        self._issued += 1

        if data["grant_type"] == "authorization_code":
            if data["code"] not in self.valid_codes:
                return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Bad Request"})
            self.valid_codes.discard(data["code"])
            return httpx.Response(200, json={
                "access_token": f"ya29.access-{self._issued}",
                "expires_in": 3599,
                "refresh_token": REFRESH_TOKEN,
                "scope": "https://www.googleapis.com/auth/spreadsheets",
                "token_type": "Bearer",
            })

        if data["refresh_token"] not in self.valid_refresh_tokens:
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."})
        return httpx.Response(200, json={
            "access_token": f"ya29.refreshed-{self._issued}",
            "expires_in": 3599,
            "token_type": "Bearer",
        })

    async def revoke_token(self, token: str) -> bool:
        self.revoked.append(token)
        return True


# ---------------------------------------------------------------------------
# DATA HELPERS
# ---------------------------------------------------------------------------

def make_tokens(
    access_token: str = "ya29.stored",
    refresh_token: Optional[str] = REFRESH_TOKEN,
    expires_in: Optional[int] = 3600,
) -> OAuthTokens:
    """Credential pair expiring expires_in seconds from now (negative = already expired)."""
    expires_at = None
    if expires_in is not None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    return OAuthTokens(access_token=access_token, refresh_token=refresh_token, expires_at=expires_at)


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def broker() -> TokenBroker:
    """A fresh in-memory broker."""
    return TokenBroker()


@pytest.fixture
def auth_client() -> FakeGoogleAuthClient:
    return FakeGoogleAuthClient()


@pytest.fixture
def client(broker: TokenBroker, auth_client: FakeGoogleAuthClient) -> Generator[TestClient, None, None]:
    """
    Test client using the test broker and fake OAuth client.

    Defaults to minted_token mode; see use_auth_mode to switch.
    """
    app.dependency_overrides[get_token_broker] = lambda: broker
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    app.dependency_overrides[get_auth_strategy] = lambda: get_strategy("minted_token")
    google_auth._oauth_states.clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    google_auth._oauth_states.clear()


@pytest.fixture
def use_auth_mode(client: TestClient) -> Callable[[str], None]:
    """Switch the gate to another auth mode for the rest of the test."""
    def _use(mode: str) -> None:
        app.dependency_overrides[get_auth_strategy] = lambda: get_strategy(mode)
    return _use


@pytest.fixture
def session_id(broker: TokenBroker) -> str:
    """A live minted session holding fresh tokens."""
    sid = broker.mint()
    broker.store(sid, make_tokens())
    return sid


@pytest.fixture
def auth_headers(session_id: str) -> dict:
    return {"Authorization": f"Bearer {session_id}"}


@pytest.fixture
def google_api() -> Generator[Callable, None, None]:
    """
    Answer every outbound httpx.AsyncClient request with a handler.

    Usage:
        requests = google_api(lambda request: httpx.Response(200, json={...}))

    Returns the list of requests the handler saw. The Drive and Sheets
    clients run unpatched, down to URL building and error translation.
    """
    real_async_client = httpx.AsyncClient
    patchers = []

    def _install(handler: Callable[[httpx.Request], httpx.Response]) -> list:
        seen = []

        def _record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        transport = httpx.MockTransport(_record)
        patcher = patch.object(httpx, "AsyncClient", lambda *args, **kwargs: real_async_client(transport=transport))
        patcher.start()
        patchers.append(patcher)
        return seen

    yield _install

    for patcher in patchers:
        patcher.stop()
