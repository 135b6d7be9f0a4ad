"""
Sheet Reader
Fetches a snapshot of a sheet through the public query endpoint.

The endpoint answers with a JavaScript wrapper around a JSON document:
    /*O_o*/
    google.visualization.Query.setResponse({...});
Everything outside the first "{" and the last "}" is dropped before parsing.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from app.core.config import settings
from app.sheets.columns import FIRST_DATA_ROW
from app.sheets.errors import SheetReadError

logger = logging.getLogger(__name__)


@dataclass
class Cell:
    value: Any = None
    formatted: Optional[str] = None


def cell_text(value: Any) -> str:
    """Render a raw cell value the way it reads in the sheet."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


@dataclass
class SheetRow:
    """One sheet row. row_index is the 1-based sheet row number."""

    row_index: int
    cells: List[Cell] = field(default_factory=list)

    @classmethod
    def from_values(cls, row_index: int, values: List[Any]) -> "SheetRow":
        return cls(row_index=row_index, cells=[Cell(value=v) for v in values])

    def cell(self, column: int) -> Cell:
        if 0 <= column < len(self.cells):
            return self.cells[column]
        return Cell()

    def value(self, column: int) -> Any:
        return self.cell(column).value

    def text(self, column: int) -> str:
        return cell_text(self.value(column))

    def formatted(self, column: int) -> str:
        cell = self.cell(column)
        if cell.formatted:
            return cell.formatted
        return cell_text(cell.value)

    def is_blank(self, column: int) -> bool:
        return self.text(column) == ""


def strip_wrapper(text: str) -> dict:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise SheetReadError("Query response does not contain a JSON payload")
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise SheetReadError(f"Query response is not valid JSON: {e}") from e


def parse_table(payload: dict) -> List[List[Cell]]:
    table = payload.get("table")
    if not isinstance(table, dict):
        status = payload.get("status")
        raise SheetReadError(f"Query response has no table (status: {status})")

    parsed = []
    for row in table.get("rows") or []:
        cells = []
        for raw in (row or {}).get("c") or []:
            if raw is None:
                cells.append(Cell())
            else:
                cells.append(Cell(value=raw.get("v"), formatted=raw.get("f")))
        parsed.append(cells)
    return parsed


class SheetReader:
    """
    Client for the read-only query endpoint of one spreadsheet document.
    """

    def __init__(self, sheet_id: str = None, query_url: str = None, timeout: float = None, session: requests.Session = None):
        self.sheet_id = sheet_id or settings.SHEET_ID
        self.query_url = query_url or settings.SHEET_QUERY_URL.format(sheet_id=self.sheet_id)
        self.timeout = timeout or settings.SHEET_READ_TIMEOUT
        self.session = session or requests.Session()

    def _fetch_text(self, sheet_name: str) -> str:
        params = {"tqx": "out:json", "sheet": sheet_name}
        try:
            response = self.session.get(self.query_url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"Timed out reading sheet '{sheet_name}'")
            raise SheetReadError(f"Timed out reading sheet '{sheet_name}'") from e
        except requests.RequestException as e:
            logger.error(f"Connection error reading sheet '{sheet_name}': {e}")
            raise SheetReadError(f"Could not reach the spreadsheet: {e}") from e

        if response.status_code != 200:
            logger.error(f"Reading sheet '{sheet_name}' failed with status {response.status_code}")
            raise SheetReadError(f"Spreadsheet returned status {response.status_code}")
        return response.text

    def fetch_table(self, sheet_name: str) -> List[SheetRow]:
        """
        Return every row the endpoint reports, numbered from the first one.
        """
        table = parse_table(strip_wrapper(self._fetch_text(sheet_name)))
        logger.debug(f"Read {len(table)} rows from sheet '{sheet_name}'")
        return [SheetRow(row_index=i + 1, cells=cells) for i, cells in enumerate(table)]

    def fetch_rows(self, sheet_name: str = None) -> List[SheetRow]:
        """
        Return the data rows of a sheet. The first reported row is the
        sub-header; the rest are numbered from FIRST_DATA_ROW.
        """
        sheet_name = sheet_name or settings.SHEET_NAME
        table = parse_table(strip_wrapper(self._fetch_text(sheet_name)))
        rows = [
            SheetRow(row_index=i + FIRST_DATA_ROW, cells=cells)
            for i, cells in enumerate(table[1:])
        ]
        logger.info(f"Read {len(rows)} data rows from sheet '{sheet_name}'")
        return rows
