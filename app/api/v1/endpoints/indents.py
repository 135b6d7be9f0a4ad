from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Any, List, Optional
import logging

from app.schemas.indent import IndentCreate, IndentCreateResponse, IndentRecord
from app.schemas.user import User
from app.api.deps import get_db, get_any_user, get_sheet_reader, get_sheet_writer
from app.api.workflow import load_rows, submit
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.sheets.writer import ACTION_INSERT, ACTION_UPLOAD_AND_INSERT, SheetWriter
from app.workflow.mutations import encode_indent
from app.workflow.stages import has_indent
from app.workflow.uploads import UploadValidationError, prepare_image_upload
from app.workflow.views import indent_record

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[IndentRecord])
def list_indents(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_any_user),
    stage: Optional[str] = None,
) -> Any:
    """All indents with the stage each one currently sits in"""
    records = [indent_record(row) for row in load_rows(reader) if has_indent(row)]
    if stage:
        records = [r for r in records if r["stage"].value == stage]
    return records


@router.post("", response_model=IndentCreateResponse, status_code=status.HTTP_201_CREATED)
def create_indent(
    indent_in: IndentCreate,
    db: Session = Depends(get_db),
    writer: SheetWriter = Depends(get_sheet_writer),
    current_user: User = Depends(get_any_user),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> Any:
    """Submit a new maintenance indent, optionally with a photo of the problem"""
    upload = None
    if indent_in.image is not None:
        try:
            upload = prepare_image_upload(
                file_name=indent_in.image.file_name,
                mime_type=indent_in.image.mime_type,
                base64_data=indent_in.image.base64_data,
                prefix="indent",
            )
        except UploadValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    row_data = encode_indent(
        machine_name=indent_in.machine_name,
        department=indent_in.department,
        problem=indent_in.problem,
        priority=indent_in.priority,
        expected_date=indent_in.expected_date,
    )

    if upload is not None:
        action = ACTION_UPLOAD_AND_INSERT
        send = lambda: writer.upload_and_insert(settings.SHEET_NAME, row_data, upload)  # noqa: E731
    else:
        action = ACTION_INSERT
        send = lambda: writer.insert(settings.SHEET_NAME, row_data)  # noqa: E731

    result = submit(
        db,
        send,
        action=action,
        row_data=row_data,
        current_user=current_user,
        payload=indent_in.model_dump(mode="json"),
        idempotency_key=idempotency_key,
        stage="indent",
    )
    logger.info(f"Indent for {indent_in.machine_name} submitted by {current_user.username}")
    return {"row_data": row_data, "result": result.to_dict()}
