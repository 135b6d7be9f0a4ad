"""
Row classification for the five workflow stages.

A record's position is never stored as such; it is read off which columns of
the row are filled in. Each stage answers two questions about a row:
    - does the row belong to this stage at all (applicable)?
    - is the stage's action still outstanding (pending) or done (history)?
"""
from enum import Enum
from typing import Iterable, List, Tuple

from app.sheets.columns import Column
from app.sheets.reader import SheetRow


class Stage(str, Enum):
    APPROVAL = "approval"
    ASSIGNMENT = "assignment"
    WORK = "work"
    INSPECTION = "inspection"
    PAYMENT = "payment"


STAGE_ORDER = (Stage.APPROVAL, Stage.ASSIGNMENT, Stage.WORK, Stage.INSPECTION, Stage.PAYMENT)


class Bucket(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"
    HISTORY = "history"


class StageStatus(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    AWAITING_TECHNICIAN = "awaiting_technician"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    TERMINATED = "terminated"
    AWAITING_INSPECTION = "awaiting_inspection"
    INSPECTED = "inspected"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"


# Sheet values
APPROVED = "approved"
REJECTED = "rejected"
WORK_COMPLETED = "Completed"
WORK_TERMINATED = "Terminate"
WORK_TERMINAL_VALUES = (WORK_COMPLETED, WORK_TERMINATED)
INSPECTION_DONE = "Done"


class InvalidTransitionError(Exception):
    def __init__(self, stage: Stage, row_index: int, status: StageStatus):
        self.stage = stage
        self.row_index = row_index
        self.status = status
        super().__init__(
            f"Row {row_index} is not pending for {stage.value} (current status: {status.value})"
        )


def _norm(value: str) -> str:
    return value.strip().lower()


def _equals(row: SheetRow, column: Column, expected: str) -> bool:
    return _norm(row.text(column)) == _norm(expected)


def approval_status(row: SheetRow) -> str:
    return _norm(row.text(Column.APPROVAL_STATUS))


def is_approved(row: SheetRow) -> bool:
    return approval_status(row) == APPROVED


def is_rejected(row: SheetRow) -> bool:
    return approval_status(row) == REJECTED


def has_indent(row: SheetRow) -> bool:
    return not row.is_blank(Column.INDENT_NO)


def _approved_indent(row: SheetRow) -> bool:
    # Rejected indents never reach a downstream stage
    return has_indent(row) and is_approved(row)


def _approval_status(row: SheetRow) -> StageStatus:
    if not has_indent(row):
        return StageStatus.NOT_APPLICABLE
    if row.is_blank(Column.APPROVAL_TIMESTAMP):
        return StageStatus.AWAITING_APPROVAL
    if is_approved(row):
        return StageStatus.APPROVED
    return StageStatus.REJECTED


def _assignment_status(row: SheetRow) -> StageStatus:
    if not _approved_indent(row):
        return StageStatus.NOT_APPLICABLE
    if row.is_blank(Column.TECHNICIAN_NAME):
        return StageStatus.AWAITING_TECHNICIAN
    return StageStatus.ASSIGNED


def _work_status(row: SheetRow) -> StageStatus:
    if not _approved_indent(row) or row.is_blank(Column.TECHNICIAN_NAME):
        return StageStatus.NOT_APPLICABLE
    if _equals(row, Column.COMPLETION_STATUS, WORK_COMPLETED):
        return StageStatus.COMPLETED
    if _equals(row, Column.COMPLETION_STATUS, WORK_TERMINATED):
        return StageStatus.TERMINATED
    return StageStatus.IN_PROGRESS


def _inspection_status(row: SheetRow) -> StageStatus:
    if (
        not _approved_indent(row)
        or row.is_blank(Column.TECHNICIAN_NAME)
        or not _equals(row, Column.COMPLETION_STATUS, WORK_COMPLETED)
    ):
        return StageStatus.NOT_APPLICABLE
    if row.is_blank(Column.INSPECTION_ACTUAL):
        return StageStatus.AWAITING_INSPECTION
    return StageStatus.INSPECTED


def _payment_status(row: SheetRow) -> StageStatus:
    if not _approved_indent(row) or not _equals(row, Column.INSPECTION_RESULT, INSPECTION_DONE):
        return StageStatus.NOT_APPLICABLE
    if row.is_blank(Column.BILL_NO):
        return StageStatus.AWAITING_PAYMENT
    return StageStatus.PAID


_STATUS_FUNCS = {
    Stage.APPROVAL: _approval_status,
    Stage.ASSIGNMENT: _assignment_status,
    Stage.WORK: _work_status,
    Stage.INSPECTION: _inspection_status,
    Stage.PAYMENT: _payment_status,
}

PENDING_STATUSES = {
    StageStatus.AWAITING_APPROVAL,
    StageStatus.AWAITING_TECHNICIAN,
    StageStatus.IN_PROGRESS,
    StageStatus.AWAITING_INSPECTION,
    StageStatus.AWAITING_PAYMENT,
}


def stage_status(row: SheetRow, stage: Stage) -> StageStatus:
    return _STATUS_FUNCS[Stage(stage)](row)


def classify(row: SheetRow, stage: Stage) -> Bucket:
    status = stage_status(row, stage)
    if status == StageStatus.NOT_APPLICABLE:
        return Bucket.NOT_APPLICABLE
    if status in PENDING_STATUSES:
        return Bucket.PENDING
    return Bucket.HISTORY


def partition(rows: Iterable[SheetRow], stage: Stage) -> Tuple[List[SheetRow], List[SheetRow]]:
    """Split rows into (pending, history) for a stage, dropping the rest."""
    pending, history = [], []
    for row in rows:
        bucket = classify(row, stage)
        if bucket == Bucket.PENDING:
            pending.append(row)
        elif bucket == Bucket.HISTORY:
            history.append(row)
    return pending, history


def ensure_pending(row: SheetRow, stage: Stage) -> StageStatus:
    status = stage_status(row, stage)
    if status not in PENDING_STATUSES:
        raise InvalidTransitionError(Stage(stage), row.row_index, status)
    return status


def workflow_position(row: SheetRow) -> Tuple[Stage, StageStatus]:
    """
    Where a record stands overall: the first stage still pending, or the
    terminal status that ended the workflow.
    """
    last = (Stage.APPROVAL, StageStatus.NOT_APPLICABLE)
    for stage in STAGE_ORDER:
        status = stage_status(row, stage)
        if status == StageStatus.NOT_APPLICABLE:
            break
        last = (stage, status)
        if status in PENDING_STATUSES or status in (StageStatus.REJECTED, StageStatus.TERMINATED):
            break
    return last


def display_approval_status(row: SheetRow) -> str:
    status = row.text(Column.APPROVAL_STATUS)
    return status.capitalize() if status else ""
