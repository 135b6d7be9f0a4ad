"""
Row payloads sent to the script endpoint.

Stage updates are sparse: the list is as long as the stage's highest written
column and every other entry is "", which the endpoint leaves untouched.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from app.sheets.columns import Column
from app.utils.dates import format_sheet_date, format_sheet_datetime
from app.workflow.stages import APPROVED, REJECTED, WORK_TERMINAL_VALUES, Stage

STAGE_WIDTHS = {
    Stage.APPROVAL: Column.APPROVAL_PLANNED + 1,
    Stage.ASSIGNMENT: Column.ASSIGNMENT_PLANNED + 1,
    Stage.WORK: Column.WORK_PLANNED + 1,
    Stage.INSPECTION: Column.INSPECTION_PLANNED + 1,
    Stage.PAYMENT: Column.BILL_IMAGE_URL + 1,
}

INDENT_ROW_WIDTH = Column.PLANNED_DATE + 1


def sparse_row(values: Dict[int, Any], width: int) -> List[Any]:
    row = [""] * width
    for column, value in values.items():
        if column >= width:
            raise ValueError(f"Column {column} is outside a row of width {width}")
        row[column] = "" if value is None else value
    return row


def _stamp(now: Optional[datetime]) -> str:
    return format_sheet_datetime(now or datetime.now())


def encode_indent(
    machine_name: str,
    department: str,
    problem: str,
    priority: str,
    expected_date: Union[str, date, None] = None,
    now: Optional[datetime] = None,
) -> List[Any]:
    """Full row appended for a new indent. The indent number is filled by the sheet."""
    stamp = _stamp(now)
    return sparse_row({
        Column.TIMESTAMP: stamp,
        Column.INDENT_NO: "",
        Column.MACHINE_NAME: machine_name,
        Column.DEPARTMENT: department,
        Column.PROBLEM: problem,
        Column.PRIORITY: priority,
        Column.EXPECTED_DATE: format_sheet_date(expected_date),
        Column.IMAGE_URL: "",
        Column.PLANNED_DATE: stamp,
    }, INDENT_ROW_WIDTH)


def encode_approval(decision: str, remarks: str = "", now: Optional[datetime] = None) -> List[Any]:
    if decision not in (APPROVED, REJECTED):
        raise ValueError(f"Unknown approval decision: {decision}")
    stamp = _stamp(now)
    return sparse_row({
        Column.APPROVAL_TIMESTAMP: stamp,
        Column.APPROVAL_STATUS: decision,
        Column.APPROVAL_REMARKS: remarks,
        Column.APPROVAL_PLANNED: stamp,
    }, STAGE_WIDTHS[Stage.APPROVAL])


def encode_assignment(
    technician_name: str,
    technician_phone: str,
    assigned_date: Union[str, date, None] = None,
    work_notes: str = "",
    now: Optional[datetime] = None,
) -> List[Any]:
    stamp = _stamp(now)
    return sparse_row({
        Column.ASSIGNMENT_ACTUAL: stamp,
        Column.TECHNICIAN_NAME: technician_name,
        Column.TECHNICIAN_PHONE: technician_phone,
        Column.ASSIGNED_DATE: format_sheet_date(assigned_date),
        Column.WORK_NOTES: work_notes,
        Column.ASSIGNMENT_PLANNED: stamp,
    }, STAGE_WIDTHS[Stage.ASSIGNMENT])


def encode_work(completion_status: str, additional_notes: str = "", now: Optional[datetime] = None) -> List[Any]:
    if completion_status not in WORK_TERMINAL_VALUES:
        raise ValueError(f"Unknown completion status: {completion_status}")
    stamp = _stamp(now)
    return sparse_row({
        Column.WORK_ACTUAL: stamp,
        Column.COMPLETION_STATUS: completion_status,
        Column.ADDITIONAL_NOTES: additional_notes,
        Column.WORK_PLANNED: stamp,
    }, STAGE_WIDTHS[Stage.WORK])


def encode_inspection(
    inspected_by: str,
    inspection_date: Union[str, date, None],
    inspection_result: str,
    remarks: str = "",
    now: Optional[datetime] = None,
) -> List[Any]:
    stamp = _stamp(now)
    return sparse_row({
        Column.INSPECTION_ACTUAL: stamp,
        Column.INSPECTED_BY: inspected_by,
        Column.INSPECTION_DATE: format_sheet_date(inspection_date),
        Column.INSPECTION_RESULT: inspection_result,
        Column.INSPECTION_REMARKS: remarks,
        Column.INSPECTION_PLANNED: stamp,
    }, STAGE_WIDTHS[Stage.INSPECTION])


def encode_payment(
    bill_no: str,
    amount: str,
    payment_date: Union[str, date, None],
    bill_image_url: str = "",
    now: Optional[datetime] = None,
) -> List[Any]:
    return sparse_row({
        Column.PAYMENT_ACTUAL: _stamp(now),
        Column.BILL_NO: bill_no,
        Column.AMOUNT: amount,
        Column.PAYMENT_DATE: format_sheet_date(payment_date),
        Column.BILL_IMAGE_URL: bill_image_url,
    }, STAGE_WIDTHS[Stage.PAYMENT])
