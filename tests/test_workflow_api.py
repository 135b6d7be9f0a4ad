import base64

from app.db.database import SessionLocal
from app.db.models.mutation import MutationLog
from app.sheets.columns import Column

from conftest import (
    approved_indent,
    assigned_indent,
    completed_indent,
    inspected_indent,
    new_indent,
)

PNG_B64 = base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16).decode()


def _ledger():
    db = SessionLocal()
    try:
        return db.query(MutationLog).order_by(MutationLog.id).all()
    finally:
        db.close()


def test_approval_board_splits_pending_and_history(client, reader, admin_headers):
    reader.rows = [
        new_indent(3, "IND001"),
        approved_indent(4, "IND002", APPROVAL_STATUS="Approved"),
    ]

    board = client.get("/api/v1/approvals", headers=admin_headers).json()

    assert [i["id"] for i in board["pending"]] == ["IND001-3"]
    assert board["pending"][0]["expected_delivery_date"] == "15/01/2025"
    assert board["history"][0]["approval_status"] == "Approved"
    assert board["history"][0]["stage_status"] == "approved"


def test_approve_sends_sparse_update(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001")]

    response = client.post(
        "/api/v1/approvals/3",
        json={"indent_no": "IND001", "decision": "approved", "remarks": "go ahead"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["previous_status"] == "awaiting_approval"
    assert body["new_status"] == "approved"
    assert body["result"]["success"] is True

    call = writer.calls[0]
    assert call["action"] == "update"
    assert call["row_index"] == 3
    assert len(call["row_data"]) == 14
    assert call["row_data"][Column.APPROVAL_STATUS] == "approved"
    assert call["row_data"][Column.APPROVAL_REMARKS] == "go ahead"

    entries = _ledger()
    assert len(entries) == 1
    assert entries[0].success is True
    assert entries[0].stage == "approval"
    assert entries[0].submitted_by == "admin"


def test_action_on_shifted_row_is_a_conflict(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND007")]

    response = client.post(
        "/api/v1/approvals/3",
        json={"indent_no": "IND001", "decision": "approved"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert writer.calls == []


def test_missing_row_is_not_found(client, reader, admin_headers):
    reader.rows = [new_indent(3, "IND001")]
    response = client.post(
        "/api/v1/approvals/9",
        json={"indent_no": "IND001", "decision": "approved"},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_action_on_finished_stage_is_a_conflict(client, reader, writer, admin_headers):
    reader.rows = [approved_indent(3, "IND001")]

    response = client.post(
        "/api/v1/approvals/3",
        json={"indent_no": "IND001", "decision": "rejected"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert "not pending for approval" in response.json()["detail"]
    assert writer.calls == []


def test_rejected_indent_cannot_be_assigned(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001", APPROVAL_TIMESTAMP="16/01/2025 09:00:00", APPROVAL_STATUS="rejected")]

    board = client.get("/api/v1/technician-assignments", headers=admin_headers).json()
    assert board == {"pending": [], "history": []}

    response = client.post(
        "/api/v1/technician-assignments/3",
        json={"indent_no": "IND001", "technician_name": "Ravi", "technician_phone": "9876543210"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert writer.calls == []


def test_assign_technician(client, reader, writer, admin_headers):
    reader.rows = [approved_indent(3, "IND001")]

    response = client.post(
        "/api/v1/technician-assignments/3",
        json={
            "indent_no": "IND001",
            "technician_name": "Ravi",
            "technician_phone": "9876543210",
            "assigned_date": "2025-01-17",
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["new_status"] == "assigned"
    row_data = writer.calls[0]["row_data"]
    assert len(row_data) == 21
    assert row_data[Column.ASSIGNED_DATE] == "17/01/2025"


def test_work_board_shows_phone_as_digits(client, reader, admin_headers):
    reader.rows = [assigned_indent(3, "IND001"), assigned_indent(4, "IND002", COMPLETION_STATUS="Terminate")]

    board = client.get("/api/v1/work-tracking", headers=admin_headers).json()

    assert board["pending"][0]["technician_phone"] == "9876543210"
    assert board["history"][0]["stage_status"] == "terminated"


def test_terminate_work(client, reader, writer, admin_headers):
    reader.rows = [assigned_indent(3, "IND001")]

    response = client.post(
        "/api/v1/work-tracking/3",
        json={"indent_no": "IND001", "completion_status": "Terminate", "additional_notes": "no spares"},
        headers=admin_headers,
    )

    assert response.json()["new_status"] == "terminated"
    assert writer.calls[0]["row_data"][Column.COMPLETION_STATUS] == "Terminate"


def test_record_inspection(client, reader, writer, admin_headers):
    reader.rows = [completed_indent(3, "IND001")]

    response = client.post(
        "/api/v1/inspections/3",
        json={"indent_no": "IND001", "inspected_by": "Meena", "inspection_date": "2025-01-19"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    row_data = writer.calls[0]["row_data"]
    assert len(row_data) == 33
    assert row_data[Column.INSPECTION_RESULT] == "Done"


def test_payment_board_shows_rupee_amount(client, reader, admin_headers):
    reader.rows = [inspected_indent(3, "IND001", BILL_NO="B-17", AMOUNT=1500.0, PAYMENT_DATE="Date(2025,0,20)")]

    board = client.get("/api/v1/payments", headers=admin_headers).json()

    item = board["history"][0]
    assert item["amount"] == "1500"
    assert item["amount_display"] == "₹1500"
    assert item["payment_date"] == "20/01/2025"


def test_payment_with_bill_image_uploads_and_updates(client, reader, writer, admin_headers):
    reader.rows = [inspected_indent(3, "IND001")]

    response = client.post(
        "/api/v1/payments/3",
        json={
            "indent_no": "IND001",
            "bill_no": "B-17",
            "amount": "1500",
            "payment_date": "2025-01-20",
            "bill_image": {"file_name": "bill.png", "mime_type": "image/png", "base64_data": PNG_B64},
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    call = writer.calls[0]
    assert call["action"] == "uploadAndUpdatePayment"
    assert call["upload"].file_name.startswith("bill_")
    assert len(call["row_data"]) == 39
    assert call["row_data"][Column.BILL_IMAGE_URL] == ""
    assert response.json()["result"]["image_url"]


def test_payment_with_non_image_bill_is_rejected(client, reader, writer, admin_headers):
    reader.rows = [inspected_indent(3, "IND001")]

    response = client.post(
        "/api/v1/payments/3",
        json={
            "indent_no": "IND001",
            "bill_no": "B-17",
            "amount": "1500",
            "bill_image": {"file_name": "bill.pdf", "mime_type": "application/pdf", "base64_data": PNG_B64},
        },
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert writer.calls == []


def test_failed_write_is_reported_and_recorded(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001")]
    writer.fail_with = "Sheet not found"

    response = client.post(
        "/api/v1/approvals/3",
        json={"indent_no": "IND001", "decision": "approved"},
        headers=admin_headers,
    )

    assert response.status_code == 502
    assert "Sheet not found" in response.json()["detail"]
    entries = _ledger()
    assert entries[0].success is False
    assert entries[0].message == "Sheet not found"


def test_idempotent_retry_replays_without_second_write(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001")]
    headers = dict(admin_headers, **{"Idempotency-Key": "approve-IND001"})
    body = {"indent_no": "IND001", "decision": "approved"}

    first = client.post("/api/v1/approvals/3", json=body, headers=headers)
    assert first.status_code == 200

    # The sheet now reflects the approval
    reader.rows = [approved_indent(3, "IND001")]
    second = client.post("/api/v1/approvals/3", json=body, headers=headers)

    assert second.status_code == 200
    assert second.json()["result"]["replayed"] is True
    assert len(writer.calls) == 1
    assert len(_ledger()) == 1


def test_failed_attempt_can_be_retried_with_same_key(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001")]
    headers = dict(admin_headers, **{"Idempotency-Key": "approve-retry"})
    body = {"indent_no": "IND001", "decision": "approved"}

    writer.fail_with = "Service unavailable"
    assert client.post("/api/v1/approvals/3", json=body, headers=headers).status_code == 502

    writer.fail_with = None
    retry = client.post("/api/v1/approvals/3", json=body, headers=headers)

    assert retry.status_code == 200
    assert retry.json()["result"]["replayed"] is False
    assert len(writer.calls) == 2
    entries = _ledger()
    assert len(entries) == 1
    assert entries[0].success is True


def test_create_indent(client, writer, user_headers):
    response = client.post(
        "/api/v1/indents",
        json={
            "machine_name": "Lathe-1",
            "department": "Production",
            "problem": "Bearing noise",
            "priority": "High",
            "expected_date": "2025-01-20",
        },
        headers=user_headers,
    )

    assert response.status_code == 201
    row_data = response.json()["row_data"]
    assert len(row_data) == 9
    assert row_data[Column.INDENT_NO] == ""
    assert row_data[Column.EXPECTED_DATE] == "20/01/2025"
    assert writer.calls[0]["action"] == "insert"


def test_create_indent_with_photo(client, writer, user_headers):
    response = client.post(
        "/api/v1/indents",
        json={
            "machine_name": "Press-2",
            "problem": "Oil leak",
            "image": {"file_name": "leak.png", "mime_type": "image/png", "base64_data": f"data:image/png;base64,{PNG_B64}"},
        },
        headers=user_headers,
    )

    assert response.status_code == 201
    call = writer.calls[0]
    assert call["action"] == "uploadAndInsert"
    assert call["upload"].file_name.startswith("indent_")
    assert call["upload"].base64_data == PNG_B64


def test_create_indent_rejects_unknown_priority(client, writer, user_headers):
    response = client.post(
        "/api/v1/indents",
        json={"machine_name": "Lathe-1", "problem": "Noise", "priority": "Urgent"},
        headers=user_headers,
    )
    assert response.status_code == 422
    assert writer.calls == []


def test_indent_list_reports_stage(client, reader, user_headers):
    reader.rows = [
        new_indent(3, "IND001"),
        assigned_indent(4, "IND002"),
        new_indent(5, "IND003", APPROVAL_TIMESTAMP="16/01/2025 09:00:00", APPROVAL_STATUS="rejected"),
    ]

    records = client.get("/api/v1/indents", headers=user_headers).json()
    positions = {r["indent_no"]: (r["stage"], r["stage_status"]) for r in records}

    assert positions == {
        "IND001": ("approval", "awaiting_approval"),
        "IND002": ("work", "in_progress"),
        "IND003": ("approval", "rejected"),
    }

    work_only = client.get("/api/v1/indents", params={"stage": "work"}, headers=user_headers).json()
    assert [r["indent_no"] for r in work_only] == ["IND002"]


def test_unreadable_sheet_on_board_is_a_gateway_error(client, reader, admin_headers):
    reader.fail = True
    assert client.get("/api/v1/approvals", headers=admin_headers).status_code == 502


def test_dashboard_falls_back_with_warning(client, reader, user_headers):
    reader.fail = True

    summary = client.get("/api/v1/dashboard", headers=user_headers).json()

    assert summary["is_fallback"] is True
    assert summary["warning"]
    assert summary["total_indents"] == 120


def test_dashboard_is_cached_until_refresh(client, reader, user_headers):
    reader.rows = [new_indent(3, "IND001")]
    first = client.get("/api/v1/dashboard", headers=user_headers).json()
    assert first["total_indents"] == 1

    reader.rows = [new_indent(3, "IND001"), new_indent(4, "IND002")]
    assert client.get("/api/v1/dashboard", headers=user_headers).json()["total_indents"] == 1
    refreshed = client.get("/api/v1/dashboard", params={"refresh": True}, headers=user_headers).json()
    assert refreshed["total_indents"] == 2


def test_dashboard_recovers_once_sheet_is_readable(client, reader, user_headers):
    reader.fail = True
    assert client.get("/api/v1/dashboard", headers=user_headers).json()["is_fallback"] is True

    reader.fail = False
    reader.rows = [new_indent(3, "IND001")]
    summary = client.get("/api/v1/dashboard", headers=user_headers).json()

    assert summary["is_fallback"] is False
    assert summary["total_indents"] == 1


def test_dashboard_reflects_new_indent_without_refresh(client, reader, user_headers):
    reader.rows = [new_indent(3, "IND001")]
    assert client.get("/api/v1/dashboard", headers=user_headers).json()["total_indents"] == 1

    response = client.post(
        "/api/v1/indents",
        json={"machine_name": "Press-2", "problem": "Oil leak"},
        headers=user_headers,
    )
    assert response.status_code == 201
    reader.rows = [new_indent(3, "IND001"), new_indent(4, "IND002")]

    assert client.get("/api/v1/dashboard", headers=user_headers).json()["total_indents"] == 2


def test_dashboard_reflects_stage_action(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001")]
    assert client.get("/api/v1/dashboard", headers=admin_headers).json()["approved"] == 0

    client.post(
        "/api/v1/approvals/3",
        json={"indent_no": "IND001", "decision": "approved"},
        headers=admin_headers,
    )
    reader.rows = [approved_indent(3, "IND001")]

    assert client.get("/api/v1/dashboard", headers=admin_headers).json()["approved"] == 1


def test_idempotency_key_reused_for_another_row_is_refused(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001"), inspected_indent(4, "IND002")]
    headers = dict(admin_headers, **{"Idempotency-Key": "k1"})

    first = client.post(
        "/api/v1/approvals/3",
        json={"indent_no": "IND001", "decision": "approved"},
        headers=headers,
    )
    assert first.status_code == 200

    second = client.post(
        "/api/v1/payments/4",
        json={"indent_no": "IND002", "bill_no": "B-17", "amount": "1500"},
        headers=headers,
    )

    assert second.status_code == 422
    assert "k1" in second.json()["detail"]
    assert len(writer.calls) == 1
    assert len(_ledger()) == 1


def test_idempotency_key_reused_for_another_indent_is_refused(client, writer, user_headers):
    headers = dict(user_headers, **{"Idempotency-Key": "new-indent"})

    first = client.post("/api/v1/indents", json={"machine_name": "Lathe-1", "problem": "Noise"}, headers=headers)
    second = client.post("/api/v1/indents", json={"machine_name": "Press-2", "problem": "Oil leak"}, headers=headers)
    replay = client.post("/api/v1/indents", json={"machine_name": "Lathe-1", "problem": "Noise"}, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 422
    assert replay.json()["result"]["replayed"] is True
    assert len(writer.calls) == 1


def test_indent_number_with_surrounding_spaces_matches_row(client, reader, writer, admin_headers):
    reader.rows = [new_indent(3, "IND001")]

    response = client.post(
        "/api/v1/approvals/3",
        json={"indent_no": " IND001 ", "decision": "approved"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["indent_no"] == "IND001"
    assert _ledger()[0].indent_no == "IND001"
