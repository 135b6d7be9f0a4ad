import os
import tempfile

# Settings are read at import time, so point them at throwaway resources first
_tmpdir = tempfile.mkdtemp(prefix="indent-tracker-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'ledger.db')}"
os.environ["DASHBOARD_REFRESH_MINUTES"] = "0"

from typing import Any, Dict, List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.deps import get_sheet_reader, get_sheet_writer  # noqa: E402
from app.core import security  # noqa: E402
from app.db.database import SessionLocal, init_db  # noqa: E402
from app.db.models.mutation import MutationLog  # noqa: E402
from app.main import app  # noqa: E402
from app.sheets.columns import Column  # noqa: E402
from app.sheets.errors import SheetReadError, SheetWriteError  # noqa: E402
from app.sheets.reader import SheetRow  # noqa: E402
from app.sheets.writer import MutationResult  # noqa: E402
from app.workflow.dashboard import dashboard_cache  # noqa: E402

ROW_WIDTH = Column.TAT + 1


def make_row(row_index: int, **fields: Any) -> SheetRow:
    """Build a sheet row from Column member names, e.g. make_row(3, INDENT_NO="IND001")."""
    values: List[Any] = [None] * ROW_WIDTH
    for name, value in fields.items():
        values[Column[name]] = value
    return SheetRow.from_values(row_index, values)


def new_indent(row_index: int = 3, indent_no: str = "IND001", **fields: Any) -> SheetRow:
    base = dict(
        TIMESTAMP="15/01/2025 10:00:00",
        INDENT_NO=indent_no,
        MACHINE_NAME="Lathe-1",
        DEPARTMENT="Production",
        PROBLEM="Bearing noise",
        PRIORITY="High",
        EXPECTED_DATE="15/01/2025",
    )
    base.update(fields)
    return make_row(row_index, **base)


def approved_indent(row_index: int = 3, indent_no: str = "IND001", **fields: Any) -> SheetRow:
    base = dict(APPROVAL_TIMESTAMP="16/01/2025 09:00:00", APPROVAL_STATUS="approved")
    base.update(fields)
    return new_indent(row_index, indent_no, **base)


def assigned_indent(row_index: int = 3, indent_no: str = "IND001", **fields: Any) -> SheetRow:
    base = dict(TECHNICIAN_NAME="Ravi", TECHNICIAN_PHONE=9876543210.0, ASSIGNED_DATE="Date(2025,0,17)")
    base.update(fields)
    return approved_indent(row_index, indent_no, **base)


def completed_indent(row_index: int = 3, indent_no: str = "IND001", **fields: Any) -> SheetRow:
    base = dict(COMPLETION_STATUS="Completed", WORK_ACTUAL="18/01/2025 12:00:00")
    base.update(fields)
    return assigned_indent(row_index, indent_no, **base)


def inspected_indent(row_index: int = 3, indent_no: str = "IND001", **fields: Any) -> SheetRow:
    base = dict(
        INSPECTION_ACTUAL="19/01/2025 11:00:00",
        INSPECTED_BY="Meena",
        INSPECTION_DATE="Date(2025,0,19)",
        INSPECTION_RESULT="Done",
    )
    base.update(fields)
    return completed_indent(row_index, indent_no, **base)


class FakeReader:
    def __init__(self, rows: List[SheetRow] = None, master: List[SheetRow] = None):
        self.rows = rows or []
        self.master = master or []
        self.fail = False
        self.calls: List[str] = []

    def fetch_rows(self, sheet_name: str = None) -> List[SheetRow]:
        self.calls.append(sheet_name)
        if self.fail:
            raise SheetReadError("spreadsheet unreachable")
        return list(self.rows)

    def fetch_table(self, sheet_name: str) -> List[SheetRow]:
        self.calls.append(sheet_name)
        if self.fail:
            raise SheetReadError("spreadsheet unreachable")
        return list(self.master)


class FakeWriter:
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail_with: str = None

    def _ack(self, action: str, **call: Any) -> MutationResult:
        self.calls.append(dict(action=action, **call))
        if self.fail_with:
            raise SheetWriteError(self.fail_with)
        return MutationResult(
            success=True,
            message=f"{action} ok",
            action=action,
            updated_row=call.get("row_index"),
            image_url="https://drive.google.com/uc?export=view&id=abc" if call.get("upload") else None,
        )

    def insert(self, sheet_name, row_data, action="insert"):
        return self._ack(action, sheet_name=sheet_name, row_data=row_data)

    def update(self, sheet_name, row_index, row_data):
        return self._ack("update", sheet_name=sheet_name, row_index=row_index, row_data=row_data)

    def upload_and_insert(self, sheet_name, row_data, upload):
        return self._ack("uploadAndInsert", sheet_name=sheet_name, row_data=row_data, upload=upload)

    def upload_and_update_payment(self, sheet_name, row_index, row_data, upload):
        return self._ack(
            "uploadAndUpdatePayment",
            sheet_name=sheet_name, row_index=row_index, row_data=row_data, upload=upload,
        )


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def writer() -> FakeWriter:
    return FakeWriter()


@pytest.fixture
def client(reader, writer):
    init_db()
    db = SessionLocal()
    try:
        db.query(MutationLog).delete()
        db.commit()
    finally:
        db.close()
    dashboard_cache.clear()

    app.dependency_overrides[get_sheet_reader] = lambda: reader
    app.dependency_overrides[get_sheet_writer] = lambda: writer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        dashboard_cache.clear()


def auth_headers(username: str, role: str, name: str = "") -> Dict[str, str]:
    token = security.create_access_token(subject=username, claims={"role": role, "name": name})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return auth_headers("admin", "admin", "Plant Admin")


@pytest.fixture
def user_headers() -> Dict[str, str]:
    return auth_headers("operator", "user", "Line Operator")
