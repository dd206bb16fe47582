"""
Google OAuth Schemas - Data structures for Google authentication.

Using Pydantic models ensures type safety and validation of what Google's
token endpoint sends back.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# OAUTH SCOPE CONSTANTS
# ---------------------------------------------------------------------------
# Reference: https://developers.google.com/identity/protocols/oauth2/scopes

# Drive scopes - listing file metadata only
DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive.metadata.readonly",
]

# Sheets scopes - read and write cell values
SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]

# Everything the relay asks for on the consent screen
RELAY_SCOPES = DRIVE_SCOPES + SHEETS_SCOPES


# ---------------------------------------------------------------------------
# TOKEN RESPONSES
# ---------------------------------------------------------------------------

class GoogleTokenResponse(BaseModel):
    """
    Response from Google's token endpoint.

    Returned both for the authorization-code exchange and for refreshes.

    Example response from Google:
    {
        "access_token": "ya29.a0AfB_byC...",
        "expires_in": 3599,
        "refresh_token": "1//0eXyz...",
        "scope": "https://www.googleapis.com/auth/spreadsheets",
        "token_type": "Bearer"
    }
    """
    access_token: str = Field(..., min_length=1, description="OAuth access token")
    token_type: str = Field(default="Bearer", description="Token type (usually Bearer)")
    expires_in: Optional[int] = Field(None, description="Seconds until expiration")
    refresh_token: Optional[str] = Field(None, description="Refresh token for renewal")
    scope: Optional[str] = Field(None, description="Space-separated scopes granted")
    id_token: Optional[str] = Field(None, description="JWT with user info (OpenID)")

    def get_scopes_list(self) -> List[str]:
        """Convert space-separated scope string to list."""
        if self.scope:
            return self.scope.split()
        return []

    def get_expires_at(self) -> Optional[datetime]:
        """Calculate expiration datetime from expires_in seconds."""
        if self.expires_in:
            return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)
        return None


# ---------------------------------------------------------------------------
# AUTH STATE
# ---------------------------------------------------------------------------

class GoogleAuthState(BaseModel):
    """
    State data kept between /auth/google and the callback.

    The 'state' parameter is passed to Google and returned in the callback,
    which both protects against CSRF and carries the userId in
    header_user_id mode.
    """
    user_id: Optional[str] = Field(None, description="Caller-chosen key (header_user_id mode)")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
