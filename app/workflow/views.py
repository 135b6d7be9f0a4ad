"""
Row to response-item mapping for the stage boards.
"""
from typing import Any, Dict

from app.sheets.columns import Column
from app.sheets.reader import SheetRow
from app.utils.dates import format_display_date
from app.workflow.stages import Stage, display_approval_status, stage_status, workflow_position


def _date(row: SheetRow, column: Column) -> str:
    return format_display_date(row.value(column))


def indent_summary(row: SheetRow) -> Dict[str, Any]:
    indent_no = row.text(Column.INDENT_NO)
    return {
        "id": f"{indent_no}-{row.row_index}",
        "row_index": row.row_index,
        "indent_no": indent_no,
        "machine_name": row.text(Column.MACHINE_NAME),
        "department": row.text(Column.DEPARTMENT),
        "problem": row.text(Column.PROBLEM),
        "priority": row.text(Column.PRIORITY) or "Medium",
        "expected_delivery_date": _date(row, Column.EXPECTED_DATE),
        "image_link": row.text(Column.IMAGE_URL),
        "tat": row.text(Column.TAT),
    }


def indent_record(row: SheetRow) -> Dict[str, Any]:
    stage, status = workflow_position(row)
    item = indent_summary(row)
    item.update({
        "created_at": row.formatted(Column.TIMESTAMP),
        "approval_status": display_approval_status(row),
        "stage": stage,
        "stage_status": status,
    })
    return item


def approval_item(row: SheetRow) -> Dict[str, Any]:
    item = indent_summary(row)
    item.update({
        "stage_status": stage_status(row, Stage.APPROVAL),
        "approval_status": display_approval_status(row),
        "remarks": row.text(Column.APPROVAL_REMARKS),
        "decided_at": row.formatted(Column.APPROVAL_TIMESTAMP),
    })
    return item


def assignment_item(row: SheetRow) -> Dict[str, Any]:
    item = indent_summary(row)
    item.update({
        "stage_status": stage_status(row, Stage.ASSIGNMENT),
        "approval_remarks": row.text(Column.APPROVAL_REMARKS),
        "technician_name": row.text(Column.TECHNICIAN_NAME),
        "technician_phone": row.text(Column.TECHNICIAN_PHONE),
        "assigned_date": _date(row, Column.ASSIGNED_DATE),
        "work_notes": row.text(Column.WORK_NOTES),
        "planned_date": row.formatted(Column.ASSIGNMENT_PLANNED),
        "actual_date": row.formatted(Column.ASSIGNMENT_ACTUAL),
    })
    return item


def work_item(row: SheetRow) -> Dict[str, Any]:
    item = indent_summary(row)
    item.update({
        "stage_status": stage_status(row, Stage.WORK),
        "technician_name": row.text(Column.TECHNICIAN_NAME),
        "technician_phone": row.text(Column.TECHNICIAN_PHONE),
        "work_notes": row.text(Column.WORK_NOTES),
        "completion_status": row.text(Column.COMPLETION_STATUS),
        "additional_notes": row.text(Column.ADDITIONAL_NOTES),
    })
    return item


def inspection_item(row: SheetRow) -> Dict[str, Any]:
    item = indent_summary(row)
    item.update({
        "stage_status": stage_status(row, Stage.INSPECTION),
        "technician_name": row.text(Column.TECHNICIAN_NAME),
        "technician_phone": row.text(Column.TECHNICIAN_PHONE),
        "completion_status": row.text(Column.COMPLETION_STATUS),
        "inspected_by": row.text(Column.INSPECTED_BY),
        "inspection_date": _date(row, Column.INSPECTION_DATE),
        "inspection_result": row.text(Column.INSPECTION_RESULT),
        "remarks": row.text(Column.INSPECTION_REMARKS),
        "planned_date": _date(row, Column.INSPECTION_PLANNED),
    })
    return item


def format_amount(amount: str) -> str:
    return f"₹{amount}" if amount else ""


def payment_item(row: SheetRow) -> Dict[str, Any]:
    amount = row.text(Column.AMOUNT)
    item = indent_summary(row)
    item.update({
        "stage_status": stage_status(row, Stage.PAYMENT),
        "inspected_by": row.text(Column.INSPECTED_BY),
        "inspection_date": _date(row, Column.INSPECTION_DATE),
        "inspection_result": row.text(Column.INSPECTION_RESULT),
        "remarks": row.text(Column.INSPECTION_REMARKS),
        "bill_no": row.text(Column.BILL_NO),
        "amount": amount,
        "amount_display": format_amount(amount),
        "payment_date": _date(row, Column.PAYMENT_DATE),
        "bill_image_url": row.text(Column.BILL_IMAGE_URL),
    })
    return item
