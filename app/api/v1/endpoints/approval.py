from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from typing import Any, Optional

from app.schemas.indent import ApprovalDecision, ApprovalItem, StageActionResponse, StageBoard
from app.schemas.user import User
from app.api.deps import get_db, get_admin, get_sheet_reader, get_sheet_writer
from app.api.workflow import build_board, perform_stage_action
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.sheets.writer import ACTION_UPDATE, SheetWriter
from app.workflow.mutations import encode_approval
from app.workflow.stages import APPROVED, Stage, StageStatus
from app.workflow.views import approval_item

router = APIRouter()


@router.get("", response_model=StageBoard[ApprovalItem])
def get_approval_board(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_admin),
) -> Any:
    """Indents waiting for a decision, and indents already approved or rejected"""
    return build_board(reader, Stage.APPROVAL, approval_item)


@router.post("/{row_index}", response_model=StageActionResponse)
def decide_indent(
    row_index: int,
    decision_in: ApprovalDecision,
    db: Session = Depends(get_db),
    reader: SheetReader = Depends(get_sheet_reader),
    writer: SheetWriter = Depends(get_sheet_writer),
    current_user: User = Depends(get_admin),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> Any:
    """Approve or reject an indent"""
    row_data = encode_approval(decision_in.decision, decision_in.remarks)
    new_status = StageStatus.APPROVED if decision_in.decision == APPROVED else StageStatus.REJECTED

    return perform_stage_action(
        db=db,
        reader=reader,
        stage=Stage.APPROVAL,
        row_index=row_index,
        indent_no=decision_in.indent_no,
        action=ACTION_UPDATE,
        row_data=row_data,
        send=lambda: writer.update(settings.SHEET_NAME, row_index, row_data),
        new_status=new_status,
        current_user=current_user,
        payload=decision_in.model_dump(mode="json"),
        idempotency_key=idempotency_key,
    )
