"""
Google Drive Schemas - Data structures for Drive file listings.

Only the fields the relay asks Google for (id, name) are modelled.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DriveFile(BaseModel):
    """One entry of a listing, as returned to the plugin host."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Drive file ID")
    name: str = Field("", description="File name as shown in Drive")


class DriveFilesPage(BaseModel):
    """
    One page of a files.list response.

    Example:
    {
        "nextPageToken": "~!!~AI9FV7...",
        "files": [{"id": "1abc", "name": "Budget 2025"}]
    }
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    files: List[DriveFile] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
