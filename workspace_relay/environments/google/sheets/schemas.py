"""
Google Sheets Schemas - request bodies and value validation.

Request bodies are modelled loosely on purpose: a missing field or a badly
shaped `values` has to come back as a 400 with our own error message, not
as FastAPI's generic 422, so the checks live in validate_* below.
"""

from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from workspace_relay.environments.base import MissingParameterError, ShapeValidationError


# A cell as Google returns it with the default FORMATTED_VALUE render option,
# or as the caller sends it for USER_ENTERED input
CellValue = Any
RangeValues = List[List[CellValue]]

# How Google should interpret written values: parse like typed into the UI
VALUE_INPUT_OPTION = "USER_ENTERED"


class SheetsValuesBody(BaseModel):
    """Body of POST /api/sheets/write and PUT /api/sheets/update."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    spreadsheet_id: Optional[str] = Field(None, alias="spreadsheetId")
    range: Optional[str] = None
    values: Any = None


class ValueRange(BaseModel):
    """
    Response of spreadsheets.values.get.

    Google omits "values" entirely when the range is empty.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    range: Optional[str] = None
    major_dimension: Optional[str] = Field(None, alias="majorDimension")
    values: RangeValues = Field(default_factory=list)


# ---------------------------------------------------------------------------
# VALIDATION
# ---------------------------------------------------------------------------

def _is_row_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def validate_target(spreadsheet_id: Optional[str], range_name: Optional[str], message: str) -> None:
    """Fail fast when the spreadsheet id or range is missing or blank."""
    if not spreadsheet_id or not str(spreadsheet_id).strip() or not range_name or not str(range_name).strip():
        raise MissingParameterError(message)


def validate_values(values: Any, message: str) -> RangeValues:
    """
    Check that values is a (possibly jagged) list of rows.

    Args:
        values: Payload from the caller
        message: Error message when values is missing altogether

    Returns:
        values as a list of lists

    Raises:
        MissingParameterError: values is None
        ShapeValidationError: values is not a list, is empty, or has a non-list row
    """
    if values is None:
        raise MissingParameterError(message)

    if not _is_row_sequence(values):
        raise ShapeValidationError(
            "Invalid values: expected a 2D array (a list of rows).",
            details=f"Got {type(values).__name__}",
        )

    if len(values) == 0:
        raise ShapeValidationError("Invalid values: at least one row is required.")

    rows: Sequence[Any] = values
    for index, row in enumerate(rows):
        if not _is_row_sequence(row):
            raise ShapeValidationError(
                "Invalid values: expected a 2D array (a list of rows).",
                details=f"Row {index} is {type(row).__name__}, not a list",
            )

    return [list(row) for row in rows]
