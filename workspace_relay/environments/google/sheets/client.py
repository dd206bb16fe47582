"""
Google Sheets API Client - read, append and update cell values.

Three independent operations on one range of one spreadsheet. All
parameter checks happen before any network call. Written values use
valueInputOption=USER_ENTERED so formulas, dates and numbers are parsed
the way the Sheets UI would parse them.

Nothing here is retried: append is not idempotent (a retry duplicates
rows), so retries are left to the caller.

API Reference:
==============
- values.get:    https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets.values/get
- values.append: https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets.values/append
- values.update: https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets.values/update
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from workspace_relay.environments.base import ERROR_MALFORMED_RESPONSE, EnvironmentService, UpstreamError
from workspace_relay.environments.google.sheets.schemas import (
    RangeValues,
    ValueRange,
    VALUE_INPUT_OPTION,
    validate_target,
    validate_values,
)


logger = logging.getLogger("relay.environments.google.sheets")


# ---------------------------------------------------------------------------
# ERROR MESSAGES
# ---------------------------------------------------------------------------
ERROR_READ_FAILED = "Failed to retrieve data from Google Sheets."
ERROR_WRITE_FAILED = "Failed to write data to Google Sheets."
ERROR_UPDATE_FAILED = "Failed to update data in Google Sheets."

ERROR_MISSING_READ_PARAMS = "Missing required parameters: spreadsheetId and range."
ERROR_MISSING_BODY_PARAMS = "Missing required body parameters: spreadsheetId, range, values."

# A1 notation characters left unescaped in the URL path ('Sheet 1'!A1:B2)
RANGE_SAFE_CHARS = "!:$'"


class GoogleSheetsClient(EnvironmentService):
    """
    Google Sheets API client.

    Example:
        client = GoogleSheetsClient(access_token="ya29.xxx")
        rows = await client.read_values("1abc...", "Sheet1!A1:C10")
        await client.append_values("1abc...", "Sheet1!A1", [["a", "b"]])
    """

    BASE_URL = "https://sheets.googleapis.com/v4"

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    @staticmethod
    def _values_endpoint(spreadsheet_id: str, range_name: str, suffix: str = "") -> str:
        """Build /spreadsheets/{id}/values/{range}[suffix] with the range path-quoted."""
        sheet = quote(spreadsheet_id.strip(), safe="")
        cells = quote(range_name.strip(), safe=RANGE_SAFE_CHARS)
        return f"/spreadsheets/{sheet}/values/{cells}{suffix}"

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        error_message: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
    ) -> dict:
        """
        Make an authenticated request to the Sheets API.

        Args:
            method: HTTP method
            endpoint: Path below BASE_URL
            error_message: Fixed user-facing message for failures
            params: Query parameters
            json_data: JSON body

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
                    json=json_data,
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error in Sheets API: {e}")
                raise UpstreamError(error_message, details=f"Network error: {e}")

        if response.status_code != 200:
            detail = self._vendor_message(response)
            logger.error(f"Sheets API error: {response.status_code} - {detail}")
            raise UpstreamError(error_message, details=detail, upstream_status=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(f"Sheets API returned an unexpected body: {response.text[:200]}")
            raise UpstreamError(error_message, details=ERROR_MALFORMED_RESPONSE, upstream_status=response.status_code)

        return data

    # -------------------------------------------------------------------------
    # VALUE OPERATIONS
    # -------------------------------------------------------------------------

    async def read_values(self, spreadsheet_id: Optional[str], range_name: Optional[str]) -> RangeValues:
        """
        Read the values of a range.

        Returns:
            Rows of cell values; [] when the range holds no data

        Raises:
            MissingParameterError: spreadsheet_id or range_name missing
            UpstreamError: Google rejected the call
        """
        validate_target(spreadsheet_id, range_name, ERROR_MISSING_READ_PARAMS)

        data = await self._make_request(
            "GET",
            self._values_endpoint(spreadsheet_id, range_name),
            ERROR_READ_FAILED,
        )
        try:
            value_range = ValueRange.model_validate(data)
        except ValidationError as e:
            logger.error(f"Unexpected values.get body for {range_name}: {e}")
            raise UpstreamError(ERROR_READ_FAILED, details=ERROR_MALFORMED_RESPONSE) from e

        logger.info(f"Read {len(value_range.values)} row(s) from {range_name}")
        return value_range.values

    async def append_values(
        self,
        spreadsheet_id: Optional[str],
        range_name: Optional[str],
        values: Any,
    ) -> dict:
        """
        Append rows after the last populated row of the range's table.

        Returns:
            Google's response, unchanged (spreadsheetId, tableRange, updates)

        Raises:
            MissingParameterError: a parameter is missing
            ShapeValidationError: values is not a list of rows
            UpstreamError: Google rejected the call
        """
        validate_target(spreadsheet_id, range_name, ERROR_MISSING_BODY_PARAMS)
        rows = validate_values(values, ERROR_MISSING_BODY_PARAMS)

        data = await self._make_request(
            "POST",
            self._values_endpoint(spreadsheet_id, range_name, ":append"),
            ERROR_WRITE_FAILED,
            params={"valueInputOption": VALUE_INPUT_OPTION},
            json_data={"values": rows},
        )

        logger.info(f"Appended {len(rows)} row(s) to {range_name}")
        return data

    async def update_values(
        self,
        spreadsheet_id: Optional[str],
        range_name: Optional[str],
        values: Any,
    ) -> dict:
        """
        Overwrite a range with values.

        Returns:
            Google's response, unchanged (updatedRange, updatedCells, ...)

        Raises:
            MissingParameterError: a parameter is missing
            ShapeValidationError: values is not a list of rows
            UpstreamError: Google rejected the call
        """
        validate_target(spreadsheet_id, range_name, ERROR_MISSING_BODY_PARAMS)
        rows = validate_values(values, ERROR_MISSING_BODY_PARAMS)

        data = await self._make_request(
            "PUT",
            self._values_endpoint(spreadsheet_id, range_name),
            ERROR_UPDATE_FAILED,
            params={"valueInputOption": VALUE_INPUT_OPTION},
            json_data={"values": rows},
        )

        logger.info(f"Updated {range_name} with {len(rows)} row(s)")
        return data
