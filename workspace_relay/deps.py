"""
Dependencies module - reusable FastAPI dependencies for route handlers.

The main dependency is require_google_session, the authenticated request
gate in front of every /api route:

    Unauthenticated → credential present? → resolves? → Authenticated

Any failed step raises UnauthenticatedError (401 with an authUrl hint).
On success the gate refreshes the Google access token if it is about to
expire, stores the refreshed pair back, and hands the route an
AuthorizedSession that builds fresh API clients for this request only.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request

from workspace_relay.core.config import settings
from workspace_relay.core.logging import mask_token
from workspace_relay.environments.base import (
    OAuthTokens,
    SessionNotFoundError,
    TokenExpiredError,
    UnauthenticatedError,
)
from workspace_relay.environments.google import GoogleAuthClient, GoogleDriveClient, GoogleSheetsClient
from workspace_relay.services.auth_modes import AuthStrategy, get_strategy
from workspace_relay.services.token_broker import TokenBroker, token_broker


logger = logging.getLogger("relay.deps")


def get_token_broker() -> TokenBroker:
    """The process-wide broker (overridden in tests)."""
    return token_broker


def get_auth_client() -> GoogleAuthClient:
    """A Google OAuth client built from settings."""
    return GoogleAuthClient()


def get_auth_strategy() -> AuthStrategy:
    """The strategy selected by AUTH_MODE."""
    return get_strategy(settings.AUTH_MODE)


@dataclass
class AuthorizedSession:
    """
    An authenticated request's view of Google.

    Clients are created on demand and never shared between requests.
    """
    key: str
    tokens: OAuthTokens
    mode: str

    def drive(self) -> GoogleDriveClient:
        return GoogleDriveClient(
            access_token=self.tokens.access_token,
            timeout=settings.GOOGLE_API_TIMEOUT,
            page_size=settings.drive_page_size,
        )

    def sheets(self) -> GoogleSheetsClient:
        return GoogleSheetsClient(
            access_token=self.tokens.access_token,
            timeout=settings.GOOGLE_API_TIMEOUT,
        )


async def require_google_session(
    request: Request,
    broker: TokenBroker = Depends(get_token_broker),
    strategy: AuthStrategy = Depends(get_auth_strategy),
    auth_client: GoogleAuthClient = Depends(get_auth_client),
) -> AuthorizedSession:
    """
    Validate the caller's credential and return an AuthorizedSession.

    Usage:
        @router.get("/files")
        async def list_files(session: AuthorizedSession = Depends(require_google_session)):
            ...

    Raises:
        UnauthenticatedError: Missing credential, unknown session, or a
            token that expired and could not be refreshed
    """
    try:
        key, tokens = strategy.resolve(request, broker)
    except SessionNotFoundError as e:
        logger.info(f"Rejected request to {request.url.path}: unknown session")
        raise UnauthenticatedError(e.message, auth_url=settings.auth_url)
    except UnauthenticatedError as e:
        logger.info(f"Rejected request to {request.url.path}: {e.message}")
        e.auth_url = e.auth_url or settings.auth_url
        raise

    try:
        tokens, refreshed = await auth_client.ensure_fresh(tokens)
    except TokenExpiredError as e:
        logger.warning(f"Could not refresh session {mask_token(key)}: {e.details or e.message}")
        raise UnauthenticatedError(e.message, auth_url=settings.auth_url, details=e.details)

    if refreshed:
        strategy.persist(key, tokens, broker)
        logger.info(f"Refreshed Google token for session {mask_token(key)}")

    session = AuthorizedSession(key=key, tokens=tokens, mode=strategy.mode)
    request.state.google_session = session
    return session
