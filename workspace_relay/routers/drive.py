"""
Drive Router - Google Drive endpoints for the plugin host.

Endpoints:
==========
- GET /api/drive/files → every file the user can see, as [{id, name}]
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from workspace_relay.deps import AuthorizedSession, require_google_session
from workspace_relay.environments.google.drive import DriveFile


logger = logging.getLogger("relay.routers.drive")


router = APIRouter(prefix="/api/drive", tags=["drive"])


@router.get("/files", response_model=List[DriveFile])
async def list_drive_files(session: AuthorizedSession = Depends(require_google_session)):
    """
    List all Drive files (id and name), following pagination to the end.

    Errors:
        401 without a valid session, 500 if any page fails
    """
    files = await session.drive().list_all_files()
    logger.info(f"Returning {len(files)} Drive files")
    return files
