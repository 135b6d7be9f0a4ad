"""
Shared steps of the stage endpoints: load rows, resolve the target row,
validate the transition and submit the mutation through the ledger.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.user import User
from app.sheets.columns import Column
from app.sheets.errors import SheetReadError, SheetWriteError
from app.sheets.reader import SheetReader, SheetRow
from app.sheets.writer import MutationResult
from app.workflow.dashboard import dashboard_cache
from app.workflow.ledger import IdempotencyKeyReuseError, find_replay, request_fingerprint, submit_mutation
from app.workflow.stages import InvalidTransitionError, Stage, StageStatus, ensure_pending, partition, stage_status

logger = logging.getLogger(__name__)


def load_rows(reader: SheetReader) -> List[SheetRow]:
    try:
        return reader.fetch_rows(settings.SHEET_NAME)
    except SheetReadError as e:
        logger.error(f"Error fetching sheet data: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not read the maintenance sheet: {e}"
        )


def build_board(reader: SheetReader, stage: Stage, to_item: Callable[[SheetRow], Dict[str, Any]]) -> Dict[str, list]:
    pending, history = partition(load_rows(reader), stage)
    return {
        "pending": [to_item(row) for row in pending],
        "history": [to_item(row) for row in history],
    }


def resolve_row(reader: SheetReader, row_index: int, indent_no: str) -> SheetRow:
    """
    Find the row an action targets and check it still holds the expected indent.
    """
    row = next((r for r in load_rows(reader) if r.row_index == row_index), None)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Row {row_index} not found"
        )

    current_indent = row.text(Column.INDENT_NO)
    if current_indent != indent_no:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Row {row_index} holds indent '{current_indent}', not '{indent_no}'. Refresh and try again."
        )
    return row


def submit(
    db: Session,
    send: Callable[[], MutationResult],
    *,
    action: str,
    row_data: List[Any],
    current_user: User,
    idempotency_key: Optional[str],
    payload: Dict[str, Any],
    stage: Optional[str] = None,
    row_index: Optional[int] = None,
    indent_no: Optional[str] = None,
) -> MutationResult:
    fingerprint = request_fingerprint(action, stage, row_index, payload)
    try:
        result = submit_mutation(
            db,
            send,
            action=action,
            stage=stage,
            sheet_name=settings.SHEET_NAME,
            row_index=row_index,
            indent_no=indent_no,
            row_data=row_data,
            submitted_by=current_user.username,
            idempotency_key=idempotency_key,
            fingerprint=fingerprint,
        )
    except IdempotencyKeyReuseError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    except SheetWriteError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to update the maintenance sheet: {e.message}"
        )

    if not result.replayed:
        dashboard_cache.clear()
    return result


def perform_stage_action(
    *,
    db: Session,
    reader: SheetReader,
    stage: Stage,
    row_index: int,
    indent_no: str,
    action: str,
    row_data: List[Any],
    send: Callable[[], MutationResult],
    new_status: StageStatus,
    current_user: User,
    payload: Dict[str, Any],
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    indent_no = indent_no.strip()
    row = resolve_row(reader, row_index, indent_no)

    try:
        replayed = find_replay(
            db,
            idempotency_key,
            request_fingerprint(action, stage.value, row_index, payload),
        )
    except IdempotencyKeyReuseError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    if replayed is not None:
        logger.info(f"{stage.value} action on row {row_index} replayed from ledger")
        now_status = stage_status(row, stage)
        return _action_response(stage, row, now_status, now_status, replayed)

    try:
        previous_status = ensure_pending(row, stage)
    except InvalidTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    result = submit(
        db,
        send,
        action=action,
        row_data=row_data,
        current_user=current_user,
        idempotency_key=idempotency_key,
        payload=payload,
        stage=stage.value,
        row_index=row_index,
        indent_no=indent_no,
    )
    logger.info(f"{stage.value} action on row {row_index} ({indent_no}) by {current_user.username}: {new_status.value}")
    return _action_response(stage, row, previous_status, new_status, result)


def _action_response(
    stage: Stage,
    row: SheetRow,
    previous_status: StageStatus,
    new_status: StageStatus,
    result: MutationResult,
) -> Dict[str, Any]:
    return {
        "stage": stage,
        "row_index": row.row_index,
        "indent_no": row.text(Column.INDENT_NO),
        "previous_status": previous_status,
        "new_status": new_status,
        "result": result.to_dict(),
    }
