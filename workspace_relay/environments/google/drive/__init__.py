"""
Google Drive Module - file listing for the plugin host.

Usage:
======
    from workspace_relay.environments.google.drive import GoogleDriveClient

    client = GoogleDriveClient(access_token="ya29.xxx")
    files = await client.list_all_files()
"""

from workspace_relay.environments.google.drive.client import GoogleDriveClient
from workspace_relay.environments.google.drive.schemas import DriveFile, DriveFilesPage

__all__ = [
    "GoogleDriveClient",
    "DriveFile",
    "DriveFilesPage",
]
