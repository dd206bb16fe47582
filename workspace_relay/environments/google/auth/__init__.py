"""
Google Auth Module - OAuth 2.0 Authentication for Google Services

This module handles the OAuth 2.0 flow for Google APIs.
It provides the authentication layer that Drive and Sheets share.

OAuth 2.0 Flow Overview:
========================
1. Plugin host sends the user to /auth/google
2. Backend generates authorization URL with Drive + Sheets scopes
3. User grants permissions on Google's consent screen
4. Google redirects back with an authorization code
5. Backend exchanges code for access + refresh tokens
6. Tokens are stored in the token broker under a fresh session id
"""

from workspace_relay.environments.google.auth.client import GoogleAuthClient
from workspace_relay.environments.google.auth.schemas import (
    GoogleAuthState,
    GoogleTokenResponse,
    DRIVE_SCOPES,
    SHEETS_SCOPES,
    RELAY_SCOPES,
)

__all__ = [
    "GoogleAuthClient",
    "GoogleAuthState",
    "GoogleTokenResponse",
    "DRIVE_SCOPES",
    "SHEETS_SCOPES",
    "RELAY_SCOPES",
]
