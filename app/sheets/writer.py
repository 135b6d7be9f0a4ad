"""
Mutation Submitter
Sends row inserts, sparse row updates and file uploads to the script endpoint
and returns the endpoint's acknowledgment.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from app.core.config import settings
from app.sheets.columns import FIRST_DATA_ROW
from app.sheets.errors import SheetWriteError

logger = logging.getLogger(__name__)

ACTION_INSERT = "insert"
ACTION_ADD = "add"
ACTION_UPDATE = "update"
ACTION_UPLOAD_FILE = "uploadFile"
ACTION_UPLOAD_AND_INSERT = "uploadAndInsert"
ACTION_UPLOAD_AND_UPDATE_PAYMENT = "uploadAndUpdatePayment"


@dataclass
class FileUpload:
    file_name: str
    mime_type: str
    base64_data: str
    folder_id: Optional[str] = None


@dataclass
class MutationResult:
    success: bool
    message: str = ""
    action: str = ""
    image_url: Optional[str] = None
    file_url: Optional[str] = None
    updated_row: Optional[int] = None
    indent_no: Optional[str] = None
    row_count: Optional[int] = None
    replayed: bool = False

    @classmethod
    def from_response(cls, action: str, data: Dict[str, Any]) -> "MutationResult":
        indent_no = data.get("indentNo")
        return cls(
            success=bool(data.get("success")),
            message=str(data.get("message") or ""),
            action=action,
            image_url=data.get("imageUrl") or None,
            file_url=data.get("fileUrl") or None,
            updated_row=data.get("updatedRow"),
            indent_no=str(indent_no) if indent_no not in (None, "") else None,
            row_count=data.get("rowCount"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "action": self.action,
            "image_url": self.image_url,
            "file_url": self.file_url,
            "updated_row": self.updated_row,
            "indent_no": self.indent_no,
            "row_count": self.row_count,
            "replayed": self.replayed,
        }


def validate_row_index(row_index: int) -> int:
    if row_index is None or int(row_index) < FIRST_DATA_ROW:
        raise SheetWriteError(f"Invalid row index for update: {row_index}")
    return int(row_index)


class SheetWriter:
    """
    Client for the script endpoint that mutates the maintenance sheet.
    """

    def __init__(self, script_url: str = None, timeout: float = None, folder_id: str = None, session: requests.Session = None):
        self.script_url = script_url or settings.APP_SCRIPT_URL
        self.timeout = timeout or settings.SHEET_WRITE_TIMEOUT
        self.folder_id = folder_id or settings.DRIVE_FOLDER_ID
        self.session = session or requests.Session()

    def _post(self, action: str, fields: Dict[str, Any]) -> MutationResult:
        form = {"action": action}
        form.update({k: v for k, v in fields.items() if v is not None})

        logger.info(f"Sending '{action}' to script endpoint (sheet={fields.get('sheetName')}, row={fields.get('rowIndex')})")
        try:
            response = self.session.post(self.script_url, data=form, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"'{action}' request timed out")
            raise SheetWriteError(f"Script endpoint timed out during '{action}'") from e
        except requests.RequestException as e:
            logger.error(f"Connection error during '{action}': {e}")
            raise SheetWriteError(f"Could not reach the script endpoint: {e}") from e

        if response.status_code not in (200, 201):
            logger.error(f"'{action}' failed (Status: {response.status_code}): {response.text[:500]}")
            raise SheetWriteError(
                f"Script endpoint returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"'{action}' returned a non-JSON body: {response.text[:500]}")
            raise SheetWriteError("Script endpoint returned an unreadable response") from e

        if not isinstance(data, dict):
            raise SheetWriteError("Script endpoint returned an unexpected response")

        result = MutationResult.from_response(action, data)
        if not result.success:
            message = result.message or str(data.get("error") or "Unknown error")
            logger.error(f"'{action}' rejected by script endpoint: {message}")
            raise SheetWriteError(message, status_code=response.status_code)

        logger.info(f"'{action}' acknowledged: {result.message}")
        return result

    def _upload_fields(self, upload: FileUpload) -> Dict[str, Any]:
        return {
            "base64Data": upload.base64_data,
            "fileName": upload.file_name,
            "mimeType": upload.mime_type,
            "folderId": upload.folder_id or self.folder_id,
        }

    def insert(self, sheet_name: str, row_data: List[Any], action: str = ACTION_INSERT) -> MutationResult:
        if action not in (ACTION_INSERT, ACTION_ADD):
            raise ValueError(f"Not an append action: {action}")
        if not row_data:
            raise SheetWriteError("Invalid or empty row data array")
        return self._post(action, {
            "sheetName": sheet_name,
            "rowData": json.dumps(row_data),
        })

    def update(self, sheet_name: str, row_index: int, row_data: List[Any]) -> MutationResult:
        row_index = validate_row_index(row_index)
        return self._post(ACTION_UPDATE, {
            "sheetName": sheet_name,
            "rowIndex": str(row_index),
            "rowData": json.dumps(row_data),
        })

    def upload_file(self, upload: FileUpload) -> MutationResult:
        return self._post(ACTION_UPLOAD_FILE, self._upload_fields(upload))

    def upload_and_insert(self, sheet_name: str, row_data: List[Any], upload: FileUpload) -> MutationResult:
        if not row_data:
            raise SheetWriteError("Invalid or empty row data array")
        fields = {
            "sheetName": sheet_name,
            "rowData": json.dumps(row_data),
        }
        fields.update(self._upload_fields(upload))
        return self._post(ACTION_UPLOAD_AND_INSERT, fields)

    def upload_and_update_payment(self, sheet_name: str, row_index: int, row_data: List[Any], upload: FileUpload) -> MutationResult:
        row_index = validate_row_index(row_index)
        fields = {
            "sheetName": sheet_name,
            "rowIndex": str(row_index),
            "rowData": json.dumps(row_data),
        }
        fields.update(self._upload_fields(upload))
        return self._post(ACTION_UPLOAD_AND_UPDATE_PAYMENT, fields)
