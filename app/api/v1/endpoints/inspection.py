from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from typing import Any, Optional

from app.schemas.indent import InspectionCreate, InspectionItem, StageActionResponse, StageBoard
from app.schemas.user import User
from app.api.deps import get_db, get_admin, get_sheet_reader, get_sheet_writer
from app.api.workflow import build_board, perform_stage_action
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.sheets.writer import ACTION_UPDATE, SheetWriter
from app.workflow.mutations import encode_inspection
from app.workflow.stages import Stage, StageStatus
from app.workflow.views import inspection_item

router = APIRouter()


@router.get("", response_model=StageBoard[InspectionItem])
def get_inspection_board(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_admin),
) -> Any:
    """Completed work waiting for inspection, and work already inspected"""
    return build_board(reader, Stage.INSPECTION, inspection_item)


@router.post("/{row_index}", response_model=StageActionResponse)
def record_inspection(
    row_index: int,
    inspection_in: InspectionCreate,
    db: Session = Depends(get_db),
    reader: SheetReader = Depends(get_sheet_reader),
    writer: SheetWriter = Depends(get_sheet_writer),
    current_user: User = Depends(get_admin),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> Any:
    """Record the inspection of completed work"""
    row_data = encode_inspection(
        inspected_by=inspection_in.inspected_by,
        inspection_date=inspection_in.inspection_date,
        inspection_result=inspection_in.inspection_result,
        remarks=inspection_in.remarks,
    )

    return perform_stage_action(
        db=db,
        reader=reader,
        stage=Stage.INSPECTION,
        row_index=row_index,
        indent_no=inspection_in.indent_no,
        action=ACTION_UPDATE,
        row_data=row_data,
        send=lambda: writer.update(settings.SHEET_NAME, row_index, row_data),
        new_status=StageStatus.INSPECTED,
        current_user=current_user,
        payload=inspection_in.model_dump(mode="json"),
        idempotency_key=idempotency_key,
    )
