"""
Environments Module - External Service Integrations

environments/
├── __init__.py           # Module exports
├── base.py               # Error taxonomy, OAuthTokens, abstract bases
└── google/               # Google OAuth, Drive and Sheets
"""

from workspace_relay.environments.base import (
    EnvironmentProvider,
    EnvironmentService,
    OAuthTokens,
    RelayError,
    AuthExchangeError,
    UnauthenticatedError,
    TokenExpiredError,
    NotConfiguredError,
    MissingParameterError,
    ShapeValidationError,
    UpstreamError,
    UpstreamListError,
    SessionNotFoundError,
    SessionCollisionError,
)

__all__ = [
    "EnvironmentProvider",
    "EnvironmentService",
    "OAuthTokens",
    "RelayError",
    "AuthExchangeError",
    "UnauthenticatedError",
    "TokenExpiredError",
    "NotConfiguredError",
    "MissingParameterError",
    "ShapeValidationError",
    "UpstreamError",
    "UpstreamListError",
    "SessionNotFoundError",
    "SessionCollisionError",
]
