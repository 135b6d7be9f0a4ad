from pydantic import BaseModel, Field
from typing import Generic, List, Optional, TypeVar
from datetime import date, datetime

from app.workflow.stages import Stage, StageStatus

ItemT = TypeVar("ItemT")


# Upload Schemas
class ImageUpload(BaseModel):
    """Image sent as base64; a data URL prefix is accepted"""
    file_name: str = Field(..., min_length=1)
    mime_type: str
    base64_data: str


# Mutation acknowledgment
class MutationResult(BaseModel):
    success: bool
    message: str = ""
    action: str = ""
    image_url: Optional[str] = None
    file_url: Optional[str] = None
    updated_row: Optional[int] = None
    indent_no: Optional[str] = None
    row_count: Optional[int] = None
    replayed: bool = False


class StageActionResponse(BaseModel):
    stage: Stage
    row_index: int
    indent_no: str
    previous_status: StageStatus
    new_status: StageStatus
    result: MutationResult


# Indent Schemas
class IndentCreate(BaseModel):
    machine_name: str = Field(..., min_length=1)
    department: str = "Production"
    problem: str = Field(..., min_length=1)
    priority: str = Field(default="Medium", pattern='^(High|Medium|Low)$')
    expected_date: Optional[date] = None
    image: Optional[ImageUpload] = None


class IndentCreateResponse(BaseModel):
    row_data: List[str]
    result: MutationResult


class IndentSummary(BaseModel):
    id: str  # "<indent no>-<row index>"
    row_index: int
    indent_no: str
    machine_name: str = ""
    department: str = ""
    problem: str = ""
    priority: str = "Medium"
    expected_delivery_date: str = ""
    image_link: str = ""
    tat: str = ""


class IndentRecord(IndentSummary):
    created_at: str = ""
    approval_status: str = ""
    stage: Stage
    stage_status: StageStatus


# Approval Schemas
class ApprovalDecision(BaseModel):
    indent_no: str = Field(..., min_length=1)
    decision: str = Field(..., pattern='^(approved|rejected)$')
    remarks: str = ""


class ApprovalItem(IndentSummary):
    stage_status: StageStatus
    approval_status: str = ""  # Approved, Rejected
    remarks: str = ""
    decided_at: str = ""


# Technician Assignment Schemas
class TechnicianAssignmentCreate(BaseModel):
    indent_no: str = Field(..., min_length=1)
    technician_name: str = Field(..., min_length=1)
    technician_phone: str = Field(..., min_length=1)
    assigned_date: Optional[date] = None
    work_notes: str = ""


class AssignmentItem(IndentSummary):
    stage_status: StageStatus
    approval_remarks: str = ""
    technician_name: str = ""
    technician_phone: str = ""
    assigned_date: str = ""
    work_notes: str = ""
    planned_date: str = ""
    actual_date: str = ""


# Work Tracking Schemas
class WorkUpdate(BaseModel):
    indent_no: str = Field(..., min_length=1)
    completion_status: str = Field(..., pattern='^(Completed|Terminate)$')
    additional_notes: str = ""


class WorkItem(IndentSummary):
    stage_status: StageStatus
    technician_name: str = ""
    technician_phone: str = ""
    work_notes: str = ""
    completion_status: str = ""
    additional_notes: str = ""


# Inspection Schemas
class InspectionCreate(BaseModel):
    indent_no: str = Field(..., min_length=1)
    inspected_by: str = Field(..., min_length=1)
    inspection_date: date
    inspection_result: str = Field(default="Done", min_length=1)
    remarks: str = ""


class InspectionItem(IndentSummary):
    stage_status: StageStatus
    technician_name: str = ""
    technician_phone: str = ""
    completion_status: str = ""
    inspected_by: str = ""
    inspection_date: str = ""
    inspection_result: str = ""
    remarks: str = ""
    planned_date: str = ""


# Payment Schemas
class PaymentCreate(BaseModel):
    indent_no: str = Field(..., min_length=1)
    bill_no: str = Field(..., min_length=1)
    amount: str = Field(..., min_length=1)
    payment_date: Optional[date] = None
    bill_image: Optional[ImageUpload] = None
    bill_image_url: Optional[str] = None


class PaymentItem(IndentSummary):
    stage_status: StageStatus
    inspected_by: str = ""
    inspection_date: str = ""
    inspection_result: str = ""
    remarks: str = ""
    bill_no: str = ""
    amount: str = ""
    amount_display: str = ""  # "₹<amount>"
    payment_date: str = ""
    bill_image_url: str = ""


# Boards
class StageBoard(BaseModel, Generic[ItemT]):
    pending: List[ItemT] = []
    history: List[ItemT] = []


# Dashboard Schemas
class ChartPoint(BaseModel):
    name: str
    value: int


class TrendPoint(BaseModel):
    name: str  # "Jan 2025"
    month: str  # "2025-01"
    completed: int
    pending: int


class DashboardSummary(BaseModel):
    total_indents: int
    pending_approvals: int
    approved: int
    completed: int
    work_in_progress: int
    inspected: int
    payment_done: int
    bar_data: List[ChartPoint]
    pie_data: List[ChartPoint]
    trend: List[TrendPoint]
    is_fallback: bool = False
    warning: Optional[str] = None
    generated_at: Optional[datetime] = None
