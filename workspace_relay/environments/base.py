"""
Base classes and interfaces for Environment integrations.

This module defines the error taxonomy, the credential data structure, and
the abstract contracts that the Google auth provider and the Google API
services implement.

Design Pattern: Template Method + Strategy Pattern
==================================================
- EnvironmentProvider: Abstract base for OAuth providers (strategy for auth)
- EnvironmentService: Abstract base for API services (strategy for API calls)

Every error raised by the relay derives from RelayError. Each carries the
HTTP status it maps to, so main.py can translate any of them into a JSON
response in one place.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------

# details attached when Google answers 200 with a body we cannot parse
ERROR_MALFORMED_RESPONSE = "Malformed response"


class RelayError(Exception):
    """Base exception for all relay errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """JSON body for this error."""
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class AuthExchangeError(RelayError):
    """Raised when an authorization code cannot be exchanged for tokens."""
    status_code = 500


class UnauthenticatedError(RelayError):
    """Raised when a request carries no credential, or one that does not resolve."""

    status_code = 401

    def __init__(self, message: str, auth_url: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message, details=details)
        self.auth_url = auth_url

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.auth_url:
            body["authUrl"] = self.auth_url
        return body


class TokenExpiredError(RelayError):
    """Raised when an OAuth token has expired and refresh failed."""
    status_code = 401


class MissingParameterError(RelayError):
    """Raised when a required request parameter is absent."""
    status_code = 400


class ShapeValidationError(RelayError):
    """Raised when sheet values are not a list of rows."""
    status_code = 400


class UpstreamError(RelayError):
    """Raised when a call to a Google API fails for any reason."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, upstream_status: Optional[int] = None):
        super().__init__(message, details=details)
        self.upstream_status = upstream_status


class UpstreamListError(UpstreamError):
    """Raised when any page of a Drive listing fails."""
    pass


class NotConfiguredError(RelayError):
    """Raised when the OAuth client id/secret are missing from the environment."""
    status_code = 503


class SessionNotFoundError(RelayError):
    """Raised by the token broker for unknown or evicted session ids."""
    status_code = 401


class SessionCollisionError(RelayError):
    """Raised when a freshly minted session id is already live."""
    status_code = 500


# ---------------------------------------------------------------------------
# DATA STRUCTURES
# ---------------------------------------------------------------------------

# Refresh a little before Google's expiry to absorb clock skew and request time
EXPIRY_BUFFER = timedelta(minutes=5)


@dataclass(frozen=True)
class OAuthTokens:
    """
    Credential pair from an OAuth provider.

    Frozen: a refresh produces a new OAuthTokens, which the caller
    stores back under the same session key.
    """
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: List[str] = field(default_factory=list)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        True if the access token is expired or about to expire.

        Tokens without expiry information (e.g. a passed-through access
        token) are treated as valid; Google will reject them if not.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= (self.expires_at - EXPIRY_BUFFER)

    def with_refresh(self, refreshed: "OAuthTokens") -> "OAuthTokens":
        """Merge a refresh result, keeping our refresh token if Google sent none."""
        return replace(
            refreshed,
            refresh_token=refreshed.refresh_token or self.refresh_token,
            scopes=refreshed.scopes or self.scopes,
        )


# ---------------------------------------------------------------------------
# ABSTRACT BASE CLASSES
# ---------------------------------------------------------------------------


class EnvironmentProvider(ABC):
    """
    Abstract base class for OAuth providers.

    The provider is responsible for:
    - Generating authorization URLs
    - Exchanging authorization codes for tokens
    - Refreshing expired tokens
    - Revoking tokens
    """

    @abstractmethod
    def get_authorization_url(
        self,
        scopes: List[str],
        state: str,
        redirect_uri: Optional[str] = None,
    ) -> str:
        """Generate the OAuth authorization URL."""
        pass

    @abstractmethod
    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access/refresh tokens.

        Raises:
            AuthExchangeError: If code exchange fails
        """
        pass

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Raises:
            TokenExpiredError: If refresh token is invalid/expired
        """
        pass

    @abstractmethod
    async def revoke_token(self, token: str) -> bool:
        """Revoke an access or refresh token."""
        pass


class EnvironmentService(ABC):
    """
    Abstract base class for API services within a provider.

    Each service (Drive, Sheets) is bound to one access token and is built
    fresh for every request.
    """

    def __init__(self, access_token: str, timeout: float = 30.0):
        self.access_token = access_token
        self.timeout = timeout

    def _get_headers(self) -> dict:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    @staticmethod
    def _vendor_message(response: Any) -> str:
        """
        Extract the human-readable message from a Google API error body.

        Google wraps errors as {"error": {"code": 403, "message": "...", "status": "..."}}.
        Falls back to the raw body when it is not JSON.
        """
        try:
            data = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(error, str):
            return data.get("error_description") or error
        return response.text or f"HTTP {response.status_code}"
