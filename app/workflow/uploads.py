import base64
import binascii
import time
from typing import Optional

from app.core.config import settings
from app.sheets.writer import FileUpload


class UploadValidationError(ValueError):
    pass


def strip_data_url(data: str) -> str:
    if "base64," in data:
        return data.split("base64,", 1)[1]
    return data


def prepare_image_upload(
    file_name: str,
    mime_type: str,
    base64_data: str,
    prefix: str,
    max_bytes: Optional[int] = None,
    folder_id: Optional[str] = None,
) -> FileUpload:
    """
    Check an image payload before it is sent anywhere and give it a unique
    Drive file name (<prefix>_<epoch ms>_<original name>).
    """
    max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    if not mime_type or not mime_type.startswith("image/"):
        raise UploadValidationError("Please upload an image file")

    payload = strip_data_url(base64_data or "").strip()
    if not payload:
        raise UploadValidationError("Image data is empty")
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise UploadValidationError("Image data is not valid base64")

    if len(decoded) > max_bytes:
        raise UploadValidationError(f"Image size should be less than {max_bytes // (1024 * 1024)}MB")

    timestamp = int(time.time() * 1000)
    return FileUpload(
        file_name=f"{prefix}_{timestamp}_{file_name}",
        mime_type=mime_type,
        base64_data=payload,
        folder_id=folder_id or settings.DRIVE_FOLDER_ID,
    )
