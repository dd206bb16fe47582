"""
Google Auth Router - OAuth 2.0 endpoints for the plugin host.

Endpoints:
==========
- GET /auth/google          → Redirect to Google OAuth consent screen
- GET /auth/google/callback → Exchange the code, store tokens, show the result page
- DELETE /auth/google       → Revoke the Google token and forget the session

OAuth Flow:
===========
1. The user opens /auth/google (from a link in the plugin host)
2. Backend redirects to Google's consent screen
3. Google redirects to /auth/google/callback with a code
4. Backend exchanges the code for tokens (once; codes are single-use)
5. The active auth mode stores the tokens and picks the page to show:
   the minted session id, or a page that closes the popup
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from workspace_relay.core.config import settings
from workspace_relay.core.logging import mask_token
from workspace_relay.deps import (
    AuthorizedSession,
    get_auth_client,
    get_auth_strategy,
    get_token_broker,
    require_google_session,
)
from workspace_relay.environments.base import (
    AuthExchangeError,
    MissingParameterError,
    NotConfiguredError,
    RelayError,
)
from workspace_relay.environments.google import GoogleAuthClient, RELAY_SCOPES
from workspace_relay.environments.google.auth.schemas import GoogleAuthState
from workspace_relay.services.auth_modes import COOKIE_MAX_AGE_SECONDS, ERROR_LOGIN_USER_ID, AuthStrategy
from workspace_relay.services.auth_pages import AuthPageRenderer
from workspace_relay.services.token_broker import TokenBroker


logger = logging.getLogger("relay.routers.google_auth")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/auth/google", tags=["google-auth"])


# ---------------------------------------------------------------------------
# STATE STORAGE (In-memory)
# ---------------------------------------------------------------------------
# Pending consent screens, keyed by the state parameter sent to Google.
# Entries are dropped on use and after STATE_TTL.
STATE_TTL = timedelta(minutes=10)

_oauth_states: Dict[str, GoogleAuthState] = {}


def _store_state(state: str, data: GoogleAuthState) -> None:
    """Store OAuth state data, pruning abandoned logins."""
    cutoff = datetime.now(timezone.utc) - STATE_TTL
    for key in [k for k, v in _oauth_states.items() if v.created_at < cutoff]:
        del _oauth_states[key]
    _oauth_states[state] = data


def _get_and_remove_state(state: str) -> Optional[GoogleAuthState]:
    """Retrieve and remove OAuth state data."""
    data = _oauth_states.pop(state, None)
    if data and data.created_at < datetime.now(timezone.utc) - STATE_TTL:
        return None
    return data


def _renderer() -> AuthPageRenderer:
    return AuthPageRenderer(app_name=settings.APP_NAME, auth_url=settings.auth_url)


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------


@router.get("")
async def google_login(
    user_id: Optional[str] = Query(None, alias="userId", description="Caller-chosen user key (header_user_id mode)"),
    strategy: AuthStrategy = Depends(get_auth_strategy),
    auth_client: GoogleAuthClient = Depends(get_auth_client),
):
    """
    Initiate Google OAuth login flow.

    Returns:
        302 redirect to Google's OAuth consent screen

    Raises:
        400 if userId is required by the auth mode and missing
        503 if the OAuth client is not configured
    """
    if not auth_client.is_configured:
        logger.error("Google OAuth not configured - missing GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET")
        raise NotConfiguredError(
            "Google OAuth is not configured. Please set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET."
        )

    user_id = (user_id or "").strip() or None
    if strategy.requires_user_id and not user_id:
        raise MissingParameterError(ERROR_LOGIN_USER_ID)

    state = auth_client.generate_state()
    _store_state(state, GoogleAuthState(user_id=user_id))

    auth_url = auth_client.get_authorization_url(scopes=RELAY_SCOPES, state=state)

    logger.info(f"Initiating Google OAuth ({strategy.mode})")
    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/callback", response_class=HTMLResponse)
async def google_callback(
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="CSRF state token"),
    error: Optional[str] = Query(None, description="Error from Google"),
    error_description: Optional[str] = Query(None, description="Error details"),
    broker: TokenBroker = Depends(get_token_broker),
    strategy: AuthStrategy = Depends(get_auth_strategy),
    auth_client: GoogleAuthClient = Depends(get_auth_client),
):
    """
    Handle Google OAuth callback.

    Flow:
        1. Reject provider errors and missing codes (400)
        2. Validate the state token if one came back (400 if unknown)
        3. Exchange code for tokens (500 page on failure, never retried)
        4. Let the auth mode store the tokens
        5. Render the session id page or the window-closing page

    Returns:
        HTML page
    """
    renderer = _renderer()

    if error:
        logger.warning(f"Google OAuth error: {error} - {error_description}")
        return HTMLResponse(
            renderer.render_error("Google authorization was not granted.", error_description or error),
            status_code=400,
        )

    if not code:
        logger.warning("Missing code in OAuth callback")
        return HTMLResponse(renderer.render_error("Missing authorization code."), status_code=400)

    state_data: Optional[GoogleAuthState] = None
    if state:
        state_data = _get_and_remove_state(state)
        if state_data is None:
            logger.warning(f"Invalid or expired OAuth state: {mask_token(state)}")
            return HTMLResponse(
                renderer.render_error("Invalid or expired state. Please try again."),
                status_code=400,
            )

    try:
        tokens = await auth_client.exchange_code_for_tokens(code=code)
    except AuthExchangeError as e:
        logger.error(f"Failed to exchange code for tokens: {e.details or e.message}")
        return HTMLResponse(renderer.render_error(e.message, e.details), status_code=500)

    try:
        result = strategy.establish(tokens, state_data, broker)
    except RelayError as e:
        logger.error(f"Could not establish session: {e.message}")
        return HTMLResponse(renderer.render_error(e.message, e.details), status_code=e.status_code)

    logger.info(f"Google account connected ({strategy.mode}, key {mask_token(result.key)})")

    if result.close_window:
        response = HTMLResponse(renderer.render_close_window_page())
    else:
        label = "access token" if strategy.mode == "passthrough_bearer" else "session token"
        response = HTMLResponse(renderer.render_token_page(result.display_token or "", label=label))

    if result.cookie_value:
        response.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=result.cookie_value,
            httponly=True,
            samesite="lax",
            secure=settings.PUBLIC_BASE_URL.startswith("https://"),
            path="/",
            max_age=COOKIE_MAX_AGE_SECONDS,
        )

    return response


@router.delete("")
async def disconnect_google(
    session: AuthorizedSession = Depends(require_google_session),
    broker: TokenBroker = Depends(get_token_broker),
    auth_client: GoogleAuthClient = Depends(get_auth_client),
):
    """
    Disconnect the caller's Google account.

    Revokes the token on Google's side (best effort) and forgets the
    session, so the same bearer/cookie/user id gets 401 afterwards.
    """
    revoked = await auth_client.revoke_token(session.tokens.refresh_token or session.tokens.access_token)
    if not revoked:
        logger.warning(f"Google did not confirm revocation for session {mask_token(session.key)}")

    if session.mode != "passthrough_bearer":
        broker.revoke(session.key)

    response = JSONResponse({
        "status": "success",
        "message": "Google account disconnected",
        "revoked": revoked,
    })
    if session.mode == "cookie_session":
        response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")

    logger.info(f"Disconnected session {mask_token(session.key)}")
    return response
