from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from typing import Any, Optional

from app.schemas.indent import StageActionResponse, StageBoard, WorkItem, WorkUpdate
from app.schemas.user import User
from app.api.deps import get_db, get_admin, get_sheet_reader, get_sheet_writer
from app.api.workflow import build_board, perform_stage_action
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.sheets.writer import ACTION_UPDATE, SheetWriter
from app.workflow.mutations import encode_work
from app.workflow.stages import WORK_COMPLETED, Stage, StageStatus
from app.workflow.views import work_item

router = APIRouter()


@router.get("", response_model=StageBoard[WorkItem])
def get_work_board(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_admin),
) -> Any:
    """Assigned work still open, and work completed or terminated"""
    return build_board(reader, Stage.WORK, work_item)


@router.post("/{row_index}", response_model=StageActionResponse)
def close_work(
    row_index: int,
    work_in: WorkUpdate,
    db: Session = Depends(get_db),
    reader: SheetReader = Depends(get_sheet_reader),
    writer: SheetWriter = Depends(get_sheet_writer),
    current_user: User = Depends(get_admin),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> Any:
    """Mark assigned work as Completed or Terminate"""
    row_data = encode_work(work_in.completion_status, work_in.additional_notes)
    new_status = StageStatus.COMPLETED if work_in.completion_status == WORK_COMPLETED else StageStatus.TERMINATED

    return perform_stage_action(
        db=db,
        reader=reader,
        stage=Stage.WORK,
        row_index=row_index,
        indent_no=work_in.indent_no,
        action=ACTION_UPDATE,
        row_data=row_data,
        send=lambda: writer.update(settings.SHEET_NAME, row_index, row_data),
        new_status=new_status,
        current_user=current_user,
        payload=work_in.model_dump(mode="json"),
        idempotency_key=idempotency_key,
    )
