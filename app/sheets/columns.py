from enum import IntEnum

# Sheet rows 1-2 are header and sub-header; data starts at row 3
FIRST_DATA_ROW = 3


class Column(IntEnum):
    """0-based column offsets of the maintenance sheet."""
    # Creation
    TIMESTAMP = 0
    INDENT_NO = 1
    MACHINE_NAME = 2
    DEPARTMENT = 3
    PROBLEM = 4
    PRIORITY = 5
    EXPECTED_DATE = 6
    IMAGE_URL = 7
    PLANNED_DATE = 8

    # Approval
    APPROVAL_TIMESTAMP = 9
    APPROVAL_STATUS = 11
    APPROVAL_REMARKS = 12
    APPROVAL_PLANNED = 13

    # Technician assignment
    ASSIGNMENT_ACTUAL = 14
    TECHNICIAN_NAME = 16
    TECHNICIAN_PHONE = 17
    ASSIGNED_DATE = 18
    WORK_NOTES = 19
    ASSIGNMENT_PLANNED = 20

    # Work tracking
    WORK_ACTUAL = 21
    COMPLETION_STATUS = 23
    ADDITIONAL_NOTES = 24
    WORK_PLANNED = 25

    # Inspection
    INSPECTION_ACTUAL = 26
    INSPECTED_BY = 28
    INSPECTION_DATE = 29
    INSPECTION_RESULT = 30
    INSPECTION_REMARKS = 31
    INSPECTION_PLANNED = 32

    # Payment
    PAYMENT_ACTUAL = 33
    BILL_NO = 35
    AMOUNT = 36
    PAYMENT_DATE = 37
    BILL_IMAGE_URL = 38

    # Sheet formula
    TAT = 39


class MasterColumn(IntEnum):
    """0-based column offsets of the Master (users) sheet."""
    USERNAME = 0
    PASSWORD = 1
    NAME = 2
    ROLE = 3
