"""
Google Environment Module - Google Workspace integration for the relay.

Architecture:
=============
google/
├── __init__.py           # Module exports
├── auth/                 # Shared OAuth authentication
│   ├── client.py         # Code exchange, refresh, revoke
│   └── schemas.py        # Token responses, scopes
├── drive/                # Google Drive API (file listing)
│   ├── client.py
│   └── schemas.py
└── sheets/               # Google Sheets API (values read/append/update)
    ├── client.py
    └── schemas.py

Drive and Sheets clients are bound to one access token and are built
fresh for every request by the request gate (workspace_relay.deps).
"""

from workspace_relay.environments.google.auth import GoogleAuthClient, RELAY_SCOPES
from workspace_relay.environments.google.drive import GoogleDriveClient, DriveFile
from workspace_relay.environments.google.sheets import GoogleSheetsClient

__all__ = [
    "GoogleAuthClient",
    "GoogleDriveClient",
    "GoogleSheetsClient",
    "DriveFile",
    "RELAY_SCOPES",
]
