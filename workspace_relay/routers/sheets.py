"""
Sheets Router - Google Sheets value endpoints for the plugin host.

Endpoints:
==========
- GET  /api/sheets/read   → ?spreadsheetId=&range=  → 2D array ([] when empty)
- POST /api/sheets/write  → {spreadsheetId, range, values} → append rows
- PUT  /api/sheets/update → {spreadsheetId, range, values} → overwrite range

Bodies are parsed by hand so that missing or malformed fields come back
as 400 with a specific message rather than FastAPI's 422.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError

from workspace_relay.deps import AuthorizedSession, require_google_session
from workspace_relay.environments.base import MissingParameterError
from workspace_relay.environments.google.sheets import SheetsValuesBody
from workspace_relay.environments.google.sheets.client import ERROR_MISSING_BODY_PARAMS


logger = logging.getLogger("relay.routers.sheets")


router = APIRouter(prefix="/api/sheets", tags=["sheets"])


async def _parse_values_body(request: Request) -> SheetsValuesBody:
    """Read the JSON body of write/update; anything but an object is a 400."""
    try:
        payload = await request.json()
    except ValueError:
        raise MissingParameterError(ERROR_MISSING_BODY_PARAMS, details="Request body must be a JSON object.")

    if not isinstance(payload, dict):
        logger.info(f"Rejected {request.method} {request.url.path}: body is {type(payload).__name__}")
        raise MissingParameterError(ERROR_MISSING_BODY_PARAMS, details="Request body must be a JSON object.")

    try:
        return SheetsValuesBody.model_validate(payload)
    except ValidationError as e:
        raise MissingParameterError(ERROR_MISSING_BODY_PARAMS, details=str(e))


@router.get("/read")
async def read_sheet(
    spreadsheet_id: Optional[str] = Query(None, alias="spreadsheetId"),
    range_name: Optional[str] = Query(None, alias="range"),
    session: AuthorizedSession = Depends(require_google_session),
) -> List[List[Any]]:
    """Read a range; an empty range is []."""
    return await session.sheets().read_values(spreadsheet_id, range_name)


@router.post("/write")
async def append_to_sheet(
    request: Request,
    session: AuthorizedSession = Depends(require_google_session),
) -> dict:
    """Append rows (USER_ENTERED) and return Google's response unchanged."""
    body = await _parse_values_body(request)
    return await session.sheets().append_values(body.spreadsheet_id, body.range, body.values)


@router.put("/update")
async def update_sheet(
    request: Request,
    session: AuthorizedSession = Depends(require_google_session),
) -> dict:
    """Overwrite a range (USER_ENTERED) and return Google's response unchanged."""
    body = await _parse_values_body(request)
    return await session.sheets().update_values(body.spreadsheet_id, body.range, body.values)
