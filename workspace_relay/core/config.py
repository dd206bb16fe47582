"""
Configuration module - centralized settings for the relay.
Uses pydantic-settings to load values from environment variables and .env file.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


# Auth strategies understood by the request gate (see workspace_relay.services.auth_modes)
AUTH_MODES = ("minted_token", "passthrough_bearer", "cookie_session", "header_user_id")

# Google Drive refuses pageSize values above this
DRIVE_MAX_PAGE_SIZE = 1000


class Settings(BaseSettings):
    """
    Relay settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    None of the Google values are required to boot: a relay without them
    still serves / and /health, and logs a warning at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    APP_NAME: str = "Workspace Relay"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Listener used by `workspace-relay` / run()
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Public URL of this relay, used to build the authUrl hint in 401 bodies
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Comma-separated list, "*" for any origin
    CORS_ORIGINS: str = "*"

    # ---------------------------------------------------------------------------
    # GOOGLE OAUTH SETTINGS
    # ---------------------------------------------------------------------------
    # Google Cloud Console: https://console.cloud.google.com/apis/credentials
    #
    # Setup Instructions:
    # 1. Enable the Google Drive API and Google Sheets API
    # 2. Configure the OAuth consent screen (External, add test users)
    # 3. Create an OAuth 2.0 Client ID (Web application)
    # 4. Add authorized redirect URI: http://localhost:8000/auth/google/callback
    # 5. Copy Client ID and Client Secret to .env file
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/auth/google/callback"

    # Timeout (seconds) for every outbound Google call
    GOOGLE_API_TIMEOUT: float = 30.0

    # Page size requested from Drive files.list (clamped to 1..1000)
    DRIVE_PAGE_SIZE: int = DRIVE_MAX_PAGE_SIZE

    # ---------------------------------------------------------------------------
    # SESSION SETTINGS
    # ---------------------------------------------------------------------------
    # AUTH_MODE selects how callers prove who they are:
    # - minted_token:       Authorization: Bearer <session id minted by /auth/google/callback>
    # - passthrough_bearer: Authorization: Bearer <Google access token>
    # - cookie_session:     signed session cookie set by the callback
    # - header_user_id:     X-User-Id header, key chosen at /auth/google?userId=
    AUTH_MODE: str = "minted_token"

    # SESSION_SECRET: signs cookie_session JWTs
    # - Generate with: openssl rand -hex 32
    SESSION_SECRET: str = "change-me-in-production"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "relay_session"

    # 0 keeps sessions for the lifetime of the process
    SESSION_TTL_SECONDS: int = 0

    # ---------------------------------------------------------------------------
    # DERIVED VALUES
    # ---------------------------------------------------------------------------
    @property
    def google_configured(self) -> bool:
        """True when both OAuth client id and secret are set."""
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)

    @property
    def auth_url(self) -> str:
        """Where a caller should go to (re)start authorization."""
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/auth/google"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def drive_page_size(self) -> int:
        return max(1, min(self.DRIVE_PAGE_SIZE, DRIVE_MAX_PAGE_SIZE))

    def config_problems(self) -> List[str]:
        """List human-readable misconfigurations (empty when healthy)."""
        problems = []
        if not self.google_configured:
            problems.append("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are not set")
        if not self.GOOGLE_REDIRECT_URI:
            problems.append("GOOGLE_REDIRECT_URI is not set")
        if self.AUTH_MODE not in AUTH_MODES:
            problems.append(
                f"AUTH_MODE={self.AUTH_MODE!r} is unknown (expected one of {', '.join(AUTH_MODES)})"
            )
        if self.AUTH_MODE == "cookie_session" and self.SESSION_SECRET == "change-me-in-production":
            problems.append("SESSION_SECRET is still the default value")
        return problems


# Usage: from workspace_relay.core.config import settings
settings = Settings()
