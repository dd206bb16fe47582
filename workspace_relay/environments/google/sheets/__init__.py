"""
Google Sheets Module - read / append / update of a single range.

Usage:
======
    from workspace_relay.environments.google.sheets import GoogleSheetsClient

    client = GoogleSheetsClient(access_token="ya29.xxx")
    rows = await client.read_values("1abc...", "Sheet1!A1:B2")
"""

from workspace_relay.environments.google.sheets.client import GoogleSheetsClient
from workspace_relay.environments.google.sheets.schemas import (
    SheetsValuesBody,
    ValueRange,
    VALUE_INPUT_OPTION,
)

__all__ = [
    "GoogleSheetsClient",
    "SheetsValuesBody",
    "ValueRange",
    "VALUE_INPUT_OPTION",
]
