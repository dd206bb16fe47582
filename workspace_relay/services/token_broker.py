"""
Token Broker - maps locally minted session ids to Google credential pairs.

The plugin host never sees Google tokens. After the OAuth callback the
relay mints an opaque session id, stores the credential pair under it,
and the host presents that id as a bearer token on every API call.

Storage is an injected SessionStore:
- InMemorySessionStore: plain dict, records live as long as the process
- ExpiringSessionStore: same, but each record expires after a TTL

Both are single-process. Single-key dict operations are atomic on one
event loop, so no lock is taken.

Usage:
    from workspace_relay.services.token_broker import token_broker

    session_id = token_broker.mint()
    token_broker.store(session_id, tokens)

    tokens = token_broker.resolve(session_id)   # raises SessionNotFoundError
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from workspace_relay.core.config import Settings, settings
from workspace_relay.core.logging import mask_token
from workspace_relay.environments.base import (
    OAuthTokens,
    SessionCollisionError,
    SessionNotFoundError,
)


logger = logging.getLogger("relay.services.token_broker")


# ---------------------------------------------------------------------------
# SESSION STORES
# ---------------------------------------------------------------------------


class SessionStore(ABC):
    """Key-value storage for session records."""

    @abstractmethod
    def get(self, key: str) -> Optional[OAuthTokens]:
        pass

    @abstractmethod
    def set(self, key: str, tokens: OAuthTokens) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a record; True if one existed."""
        pass

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemorySessionStore(SessionStore):
    """Records live until the process exits."""

    def __init__(self):
        self._records: Dict[str, OAuthTokens] = {}

    def get(self, key: str) -> Optional[OAuthTokens]:
        return self._records.get(key)

    def set(self, key: str, tokens: OAuthTokens) -> None:
        self._records[key] = tokens

    def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._records)


class ExpiringSessionStore(SessionStore):
    """
    In-memory store where every record expires ttl_seconds after it was set.

    Expired records are dropped lazily, on the next access to that key and
    on every set().
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: Dict[str, Tuple[OAuthTokens, float]] = {}

    def _cleanup_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._records.items() if now >= expires_at]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired session(s)")
        return len(expired)

    def get(self, key: str) -> Optional[OAuthTokens]:
        record = self._records.get(key)
        if record is None:
            return None
        tokens, expires_at = record
        if self._clock() >= expires_at:
            del self._records[key]
            return None
        return tokens

    def set(self, key: str, tokens: OAuthTokens) -> None:
        self._cleanup_expired()
        self._records[key] = (tokens, self._clock() + self.ttl_seconds)

    def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    def __len__(self) -> int:
        self._cleanup_expired()
        return len(self._records)


# ---------------------------------------------------------------------------
# TOKEN BROKER
# ---------------------------------------------------------------------------


class TokenBroker:
    """
    Mints session ids and resolves them to credential pairs.

    Each key maps to at most one pair; store() replaces, never merges.
    """

    # 32 random bytes, ~43 URL-safe characters
    SESSION_ID_BYTES = 32

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        # Stores define __len__, so an empty one is falsy
        self.store_backend = store if store is not None else InMemorySessionStore()
        self._id_factory = id_factory or (lambda: secrets.token_urlsafe(self.SESSION_ID_BYTES))

    def mint(self) -> str:
        """
        Generate a session id not used by any live record.

        Raises:
            SessionCollisionError: The generated id is already live
        """
        session_id = self._id_factory()
        if session_id in self.store_backend:
            logger.error(f"Minted session id collides with a live session: {mask_token(session_id)}")
            raise SessionCollisionError("Could not create a new session. Please try again.")
        return session_id

    def store(self, session_id: str, tokens: OAuthTokens) -> None:
        """Insert or replace the credential pair for session_id."""
        self.store_backend.set(session_id, tokens)
        logger.info(f"Stored credentials for session {mask_token(session_id)}")

    def resolve(self, session_id: Optional[str]) -> OAuthTokens:
        """
        Look up the credential pair for session_id.

        Raises:
            SessionNotFoundError: Unknown, expired or revoked session
        """
        tokens = self.store_backend.get(session_id) if session_id else None
        if tokens is None:
            raise SessionNotFoundError("Session not found. Please sign in again.")
        return tokens

    def revoke(self, session_id: str) -> bool:
        """Forget a session; True if it existed."""
        removed = self.store_backend.delete(session_id)
        if removed:
            logger.info(f"Revoked session {mask_token(session_id)}")
        return removed

    def __len__(self) -> int:
        return len(self.store_backend)


def build_token_broker(config: Settings) -> TokenBroker:
    """Pick the session store from settings."""
    if config.SESSION_TTL_SECONDS > 0:
        logger.info(f"Using expiring session store (ttl={config.SESSION_TTL_SECONDS}s)")
        return TokenBroker(store=ExpiringSessionStore(config.SESSION_TTL_SECONDS))
    return TokenBroker(store=InMemorySessionStore())


# Process-wide broker; routes get it through workspace_relay.deps.get_token_broker
token_broker = build_token_broker(settings)
