from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from typing import Any, Optional

from app.schemas.indent import AssignmentItem, StageActionResponse, StageBoard, TechnicianAssignmentCreate
from app.schemas.user import User
from app.api.deps import get_db, get_admin, get_sheet_reader, get_sheet_writer
from app.api.workflow import build_board, perform_stage_action
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.sheets.writer import ACTION_UPDATE, SheetWriter
from app.workflow.mutations import encode_assignment
from app.workflow.stages import Stage, StageStatus
from app.workflow.views import assignment_item

router = APIRouter()


@router.get("", response_model=StageBoard[AssignmentItem])
def get_assignment_board(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_admin),
) -> Any:
    """Approved indents without a technician, and indents already assigned"""
    return build_board(reader, Stage.ASSIGNMENT, assignment_item)


@router.post("/{row_index}", response_model=StageActionResponse)
def assign_technician(
    row_index: int,
    assignment_in: TechnicianAssignmentCreate,
    db: Session = Depends(get_db),
    reader: SheetReader = Depends(get_sheet_reader),
    writer: SheetWriter = Depends(get_sheet_writer),
    current_user: User = Depends(get_admin),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> Any:
    """Assign a technician to an approved indent"""
    row_data = encode_assignment(
        technician_name=assignment_in.technician_name,
        technician_phone=assignment_in.technician_phone,
        assigned_date=assignment_in.assigned_date,
        work_notes=assignment_in.work_notes,
    )

    return perform_stage_action(
        db=db,
        reader=reader,
        stage=Stage.ASSIGNMENT,
        row_index=row_index,
        indent_no=assignment_in.indent_no,
        action=ACTION_UPDATE,
        row_data=row_data,
        send=lambda: writer.update(settings.SHEET_NAME, row_index, row_data),
        new_status=StageStatus.ASSIGNED,
        current_user=current_user,
        payload=assignment_in.model_dump(mode="json"),
        idempotency_key=idempotency_key,
    )
