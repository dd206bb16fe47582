"""
Google OAuth Client - Handles the OAuth 2.0 authorization code flow.

Key Features:
=============
1. Authorization URL generation with Drive + Sheets scopes
2. Code-to-token exchange (single use, never retried)
3. Explicit refresh-if-needed before API calls
4. Token revocation for disconnect

OAuth 2.0 Flow Implementation:
==============================
1. get_authorization_url() → User redirected to Google
2. exchange_code_for_tokens() → Called in callback, gets tokens
3. ensure_fresh() → Called by the request gate before every API call
4. revoke_token() → Called by DELETE /auth/google

References:
===========
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2/web-server
- Token endpoint: https://oauth2.googleapis.com/token
"""

import logging
import secrets
from typing import List, Optional, Tuple
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from workspace_relay.core.config import settings
from workspace_relay.environments.base import (
    EnvironmentProvider,
    OAuthTokens,
    AuthExchangeError,
    TokenExpiredError,
)
from workspace_relay.environments.google.auth.schemas import GoogleTokenResponse


logger = logging.getLogger("relay.environments.google.auth")


class GoogleAuthClient(EnvironmentProvider):
    """
    Google OAuth 2.0 Client implementation.

    Example Usage:
        client = GoogleAuthClient()

        # Step 1: Generate auth URL
        auth_url = client.get_authorization_url(scopes=RELAY_SCOPES, state=state)

        # Step 2: Handle callback
        tokens = await client.exchange_code_for_tokens(code="4/0Ab...")

        # Step 3: Before each API call
        tokens, refreshed = await client.ensure_fresh(tokens)
    """

    # Google OAuth endpoints
    AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the Google OAuth client.

        Args:
            client_id: Google OAuth Client ID (defaults to settings)
            client_secret: Google OAuth Client Secret (defaults to settings)
            redirect_uri: OAuth callback URL (defaults to settings)
            timeout: Seconds per token endpoint call (defaults to settings)
        """
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.GOOGLE_REDIRECT_URI
        self.timeout = timeout or settings.GOOGLE_API_TIMEOUT

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # -------------------------------------------------------------------------
    # AUTHORIZATION URL
    # -------------------------------------------------------------------------

    def get_authorization_url(
        self,
        scopes: List[str],
        state: str,
        redirect_uri: Optional[str] = None,
        access_type: str = "offline",
        prompt: str = "consent",
    ) -> str:
        """
        Generate the Google OAuth authorization URL.

        Args:
            scopes: List of OAuth scopes to request
            state: CSRF protection token
            redirect_uri: Override default callback URL
            access_type: "offline" for refresh token, "online" for access only
            prompt: "consent" forces consent screen (gets refresh token)

        Returns:
            Full authorization URL to redirect the user to
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
            "access_type": access_type,
            "prompt": prompt,
        }

        auth_url = f"{self.AUTHORIZATION_URL}?{urlencode(params)}"
        logger.info(f"Generated Google auth URL with {len(scopes)} scopes")
        return auth_url

    # -------------------------------------------------------------------------
    # TOKEN ENDPOINT
    # -------------------------------------------------------------------------

    async def _post_token_request(self, data: dict) -> httpx.Response:
        """POST form data to Google's token endpoint."""
        async with httpx.AsyncClient() as client:
            return await client.post(self.TOKEN_URL, data=data, timeout=self.timeout)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull Google's error_description out of a failed token response."""
        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            return response.text
        if not isinstance(error_data, dict):
            return response.text
        return error_data.get("error_description") or error_data.get("error") or response.text

    # -------------------------------------------------------------------------
    # TOKEN EXCHANGE
    # -------------------------------------------------------------------------

    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access and refresh tokens.

        Authorization codes are single-use, so a failure here is terminal:
        the user has to go through /auth/google again.

        Args:
            code: Authorization code from Google callback
            redirect_uri: Must match the redirect_uri used in authorization

        Returns:
            OAuthTokens with a non-empty access_token

        Raises:
            AuthExchangeError: If the code is empty, invalid, expired or consumed
        """
        if not code:
            raise AuthExchangeError("Authorization code is required.")

        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri or self.redirect_uri,
        }

        logger.info("Exchanging authorization code for tokens")

        try:
            response = await self._post_token_request(token_data)
        except httpx.RequestError as e:
            logger.error(f"Network error during token exchange: {e}")
            raise AuthExchangeError("Failed to complete authentication.", details=f"Network error: {e}")

        if response.status_code != 200:
            error_msg = self._error_message(response)
            logger.error(f"Token exchange failed: {error_msg}")
            raise AuthExchangeError("Failed to complete authentication.", details=error_msg)

        try:
            token_response = GoogleTokenResponse(**response.json())
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Malformed token response: {e}")
            raise AuthExchangeError("Failed to complete authentication.", details="Malformed token response")

        logger.info(
            "Successfully obtained Google tokens",
            extra={
                "has_refresh_token": token_response.refresh_token is not None,
                "expires_in": token_response.expires_in,
            },
        )

        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    # -------------------------------------------------------------------------
    # TOKEN REFRESH
    # -------------------------------------------------------------------------

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Raises:
            TokenExpiredError: If refresh token is invalid or revoked
        """
        refresh_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        logger.info("Refreshing access token")

        try:
            response = await self._post_token_request(refresh_data)
        except httpx.RequestError as e:
            logger.error(f"Network error during token refresh: {e}")
            raise TokenExpiredError("Google session expired. Please sign in again.", details=f"Network error: {e}")

        if response.status_code != 200:
            error_msg = self._error_message(response)
            logger.error(f"Token refresh failed: {error_msg}")
            raise TokenExpiredError("Google session expired. Please sign in again.", details=error_msg)

        try:
            token_response = GoogleTokenResponse(**response.json())
        except (ValueError, TypeError, ValidationError):
            raise TokenExpiredError("Google session expired. Please sign in again.", details="Malformed token response")

        logger.info("Successfully refreshed access token", extra={"expires_in": token_response.expires_in})

        # Google may or may not return a new refresh_token
        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token or refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    async def ensure_fresh(self, tokens: OAuthTokens) -> Tuple[OAuthTokens, bool]:
        """
        Refresh the credential pair if it is about to expire.

        Nothing is mutated: the caller gets back either the same pair or a
        new one, and is responsible for storing the new one.

        Args:
            tokens: Current credential pair

        Returns:
            (tokens to use, True if a refresh happened)

        Raises:
            TokenExpiredError: If the pair is expired and cannot be refreshed
        """
        if not tokens.is_expired():
            return tokens, False

        if not tokens.refresh_token:
            raise TokenExpiredError("Google session expired. Please sign in again.")

        refreshed = await self.refresh_access_token(tokens.refresh_token)
        return tokens.with_refresh(refreshed), True

    # -------------------------------------------------------------------------
    # TOKEN REVOCATION
    # -------------------------------------------------------------------------

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke an access or refresh token.

        Returns:
            True if revocation succeeded
        """
        logger.info("Revoking Google token")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.REVOKE_URL,
                    params={"token": token},
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token revocation: {e}")
                return False

        success = response.status_code == 200
        if not success:
            logger.warning(f"Token revocation returned status {response.status_code}")
        return success

    # -------------------------------------------------------------------------
    # UTILITY METHODS
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_state() -> str:
        """Generate a random URL-safe state parameter for CSRF protection."""
        return secrets.token_urlsafe(32)
