"""
Google Drive API Client - List every file visible to the user.

Pagination:
===========
files.list returns at most 1000 entries per call plus a nextPageToken.
list_all_files() follows the token until Google stops sending one and
returns the concatenation of every page in fetch order. Pages are fetched
one after another; if any page fails the whole listing fails, so callers
never see a partial result.

API Reference:
==============
- Files: list https://developers.google.com/drive/api/reference/rest/v3/files/list
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from workspace_relay.core.config import DRIVE_MAX_PAGE_SIZE
from workspace_relay.environments.base import (
    ERROR_MALFORMED_RESPONSE,
    EnvironmentService,
    UpstreamError,
    UpstreamListError,
)
from workspace_relay.environments.google.drive.schemas import DriveFile, DriveFilesPage


logger = logging.getLogger("relay.environments.google.drive")


ERROR_LIST_FAILED = "Failed to retrieve files from Google Drive."

# Only id and name are relayed to the plugin host
LIST_FIELDS = "nextPageToken, files(id, name)"


class GoogleDriveClient(EnvironmentService):
    """
    Google Drive API client.

    Example:
        client = GoogleDriveClient(access_token="ya29.xxx")
        files = await client.list_all_files()
    """

    BASE_URL = "https://www.googleapis.com/drive/v3"

    def __init__(self, access_token: str, timeout: float = 30.0, page_size: int = DRIVE_MAX_PAGE_SIZE):
        super().__init__(access_token, timeout=timeout)
        self.page_size = max(1, min(page_size, DRIVE_MAX_PAGE_SIZE))

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict:
        """
        Make an authenticated request to the Drive API.

        Raises:
            UpstreamError: On any non-200 answer or network failure
        """
        url = f"{self.BASE_URL}{endpoint}"

        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    params=params,
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error in Drive API: {e}")
                raise UpstreamError(ERROR_LIST_FAILED, details=f"Network error: {e}")

        if response.status_code != 200:
            detail = self._vendor_message(response)
            logger.error(f"Drive API error: {response.status_code} - {detail}")
            raise UpstreamError(ERROR_LIST_FAILED, details=detail, upstream_status=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(f"Drive API returned an unexpected body: {response.text[:200]}")
            raise UpstreamError(ERROR_LIST_FAILED, details=ERROR_MALFORMED_RESPONSE, upstream_status=response.status_code)

        return data

    # -------------------------------------------------------------------------
    # FILE LISTING
    # -------------------------------------------------------------------------

    async def list_all_files(self) -> List[DriveFile]:
        """
        List every file, following nextPageToken until it runs out.

        Returns:
            DriveFile entries in Google's page order (not deduplicated)

        Raises:
            UpstreamListError: If any page fails; no partial result is returned
        """
        files: List[DriveFile] = []
        page_token: Optional[str] = None
        page_number = 0

        while True:
            params = {"pageSize": self.page_size, "fields": LIST_FIELDS}
            if page_token:
                params["pageToken"] = page_token

            page_number += 1
            try:
                data = await self._make_request("GET", "/files", params=params)
            except UpstreamError as e:
                logger.error(f"Drive listing aborted on page {page_number}: {e.details}")
                raise UpstreamListError(
                    ERROR_LIST_FAILED,
                    details=e.details,
                    upstream_status=e.upstream_status,
                ) from e

            try:
                page = DriveFilesPage.model_validate(data)
            except ValidationError as e:
                logger.error(f"Drive listing aborted on page {page_number}: {e}")
                raise UpstreamListError(ERROR_LIST_FAILED, details=ERROR_MALFORMED_RESPONSE) from e

            files.extend(page.files)

            page_token = page.next_page_token
            if not page_token:
                break

        logger.info(f"Listed {len(files)} Drive files across {page_number} page(s)")
        return files
