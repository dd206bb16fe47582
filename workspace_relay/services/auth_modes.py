"""
Auth Modes - the ways a caller can prove which Google account it speaks for.

One strategy is active per deployment (settings.AUTH_MODE). Every strategy
answers the same two questions:

- resolve(request, broker): which credential pair does this request carry?
  Raises UnauthenticatedError when the answer is "none".
- establish(tokens, state, broker): after a successful OAuth callback,
  where do the tokens go and what does the user get back?

Modes:
======
- minted_token:       Authorization: Bearer <session id>; the callback page shows the id
- passthrough_bearer: Authorization: Bearer <Google access token>; nothing stored
- cookie_session:     signed JWT cookie whose subject is a session id
- header_user_id:     X-User-Id header; tokens stored under the userId given at login
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple, Type

from fastapi import Request
from jose import JWTError, jwt

from workspace_relay.core.config import Settings, settings
from workspace_relay.environments.base import (
    MissingParameterError,
    OAuthTokens,
    UnauthenticatedError,
)
from workspace_relay.environments.google.auth.schemas import GoogleAuthState
from workspace_relay.services.token_broker import TokenBroker


logger = logging.getLogger("relay.services.auth_modes")


ERROR_MISSING_BEARER = "Authorization header with Bearer token is required."
ERROR_MISSING_COOKIE = "Session cookie is required. Please sign in."
ERROR_INVALID_COOKIE = "Session cookie is invalid or expired. Please sign in again."
ERROR_MISSING_USER_ID = "X-User-Id header is required."
ERROR_LOGIN_USER_ID = "Missing required parameter: userId."

USER_ID_HEADER = "X-User-Id"

# Cookie sessions are re-issued on every login; a week matches the browser cookie
COOKIE_MAX_AGE_SECONDS = 7 * 24 * 3600


def extract_bearer(request: Request) -> Optional[str]:
    """Return the token from 'Authorization: Bearer <token>', or None."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@dataclass
class LoginResult:
    """What the OAuth callback hands back to the user."""
    key: Optional[str]
    # Shown on the callback page for the user to paste into the plugin host
    display_token: Optional[str] = None
    # Set as the session cookie (cookie_session mode)
    cookie_value: Optional[str] = None
    # Render a page that closes the popup instead of showing a token
    close_window: bool = False


class AuthStrategy(ABC):
    """Common contract for all auth modes."""

    mode: str = ""
    # /auth/google must be called with ?userId=
    requires_user_id: bool = False

    def __init__(self, config: Settings = settings):
        self.config = config

    @abstractmethod
    def resolve(self, request: Request, broker: TokenBroker) -> Tuple[str, OAuthTokens]:
        """
        Find the credential pair for a request.

        Returns:
            (session key, tokens)

        Raises:
            UnauthenticatedError / SessionNotFoundError
        """
        pass

    @abstractmethod
    def establish(self, tokens: OAuthTokens, state: Optional[GoogleAuthState], broker: TokenBroker) -> LoginResult:
        """Store freshly exchanged tokens and describe what to show the user."""
        pass

    def persist(self, key: str, tokens: OAuthTokens, broker: TokenBroker) -> None:
        """Store a refreshed pair back under its key."""
        broker.store(key, tokens)


class MintedTokenStrategy(AuthStrategy):
    """Bearer token is a session id minted by the callback."""

    mode = "minted_token"

    def resolve(self, request: Request, broker: TokenBroker) -> Tuple[str, OAuthTokens]:
        session_id = extract_bearer(request)
        if not session_id:
            raise UnauthenticatedError(ERROR_MISSING_BEARER)
        return session_id, broker.resolve(session_id)

    def establish(self, tokens: OAuthTokens, state: Optional[GoogleAuthState], broker: TokenBroker) -> LoginResult:
        session_id = broker.mint()
        broker.store(session_id, tokens)
        return LoginResult(key=session_id, display_token=session_id)


class PassthroughBearerStrategy(AuthStrategy):
    """Bearer token is a Google access token; the relay stores nothing."""

    mode = "passthrough_bearer"

    def resolve(self, request: Request, broker: TokenBroker) -> Tuple[str, OAuthTokens]:
        access_token = extract_bearer(request)
        if not access_token:
            raise UnauthenticatedError(ERROR_MISSING_BEARER)
        return access_token, OAuthTokens(access_token=access_token)

    def establish(self, tokens: OAuthTokens, state: Optional[GoogleAuthState], broker: TokenBroker) -> LoginResult:
        return LoginResult(key=None, display_token=tokens.access_token)

    def persist(self, key: str, tokens: OAuthTokens, broker: TokenBroker) -> None:
        # Passed-through tokens carry no refresh token, so there is nothing to store
        return None


class CookieSessionStrategy(AuthStrategy):
    """Signed cookie (JWT, SESSION_SECRET) carrying a session id."""

    mode = "cookie_session"

    def issue_cookie(self, session_id: str) -> str:
        """Sign a session id into a cookie value."""
        expire = datetime.now(timezone.utc) + timedelta(seconds=COOKIE_MAX_AGE_SECONDS)
        payload = {"sub": session_id, "exp": expire, "type": "relay_session"}
        return jwt.encode(payload, self.config.SESSION_SECRET, algorithm=self.config.SESSION_ALGORITHM)

    def read_cookie(self, value: str) -> str:
        """Verify a cookie value and return its session id."""
        try:
            payload = jwt.decode(value, self.config.SESSION_SECRET, algorithms=[self.config.SESSION_ALGORITHM])
        except JWTError as e:
            logger.warning(f"Rejected session cookie: {e}")
            raise UnauthenticatedError(ERROR_INVALID_COOKIE)

        session_id = payload.get("sub")
        if payload.get("type") != "relay_session" or not session_id:
            raise UnauthenticatedError(ERROR_INVALID_COOKIE)
        return session_id

    def resolve(self, request: Request, broker: TokenBroker) -> Tuple[str, OAuthTokens]:
        cookie = request.cookies.get(self.config.SESSION_COOKIE_NAME)
        if not cookie:
            raise UnauthenticatedError(ERROR_MISSING_COOKIE)
        session_id = self.read_cookie(cookie)
        return session_id, broker.resolve(session_id)

    def establish(self, tokens: OAuthTokens, state: Optional[GoogleAuthState], broker: TokenBroker) -> LoginResult:
        session_id = broker.mint()
        broker.store(session_id, tokens)
        return LoginResult(key=session_id, cookie_value=self.issue_cookie(session_id), close_window=True)


class HeaderUserIdStrategy(AuthStrategy):
    """X-User-Id header picks the record stored at login for that user."""

    mode = "header_user_id"
    requires_user_id = True

    def resolve(self, request: Request, broker: TokenBroker) -> Tuple[str, OAuthTokens]:
        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            raise UnauthenticatedError(ERROR_MISSING_USER_ID)
        return user_id, broker.resolve(user_id)

    def establish(self, tokens: OAuthTokens, state: Optional[GoogleAuthState], broker: TokenBroker) -> LoginResult:
        user_id = state.user_id if state else None
        if not user_id:
            raise MissingParameterError(ERROR_LOGIN_USER_ID)
        broker.store(user_id, tokens)
        return LoginResult(key=user_id, close_window=True)


STRATEGIES: Dict[str, Type[AuthStrategy]] = {
    MintedTokenStrategy.mode: MintedTokenStrategy,
    PassthroughBearerStrategy.mode: PassthroughBearerStrategy,
    CookieSessionStrategy.mode: CookieSessionStrategy,
    HeaderUserIdStrategy.mode: HeaderUserIdStrategy,
}


def get_strategy(mode: Optional[str] = None, config: Settings = settings) -> AuthStrategy:
    """
    Build the strategy for a mode name.

    Unknown names fall back to minted_token (and are reported by
    Settings.config_problems at startup).
    """
    mode = mode or config.AUTH_MODE
    strategy_cls = STRATEGIES.get(mode)
    if strategy_cls is None:
        logger.error(f"Unknown AUTH_MODE {mode!r}, falling back to minted_token")
        strategy_cls = MintedTokenStrategy
    return strategy_cls(config)
