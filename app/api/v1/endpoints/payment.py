from datetime import date
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Any, Optional

from app.schemas.indent import PaymentCreate, PaymentItem, StageActionResponse, StageBoard
from app.schemas.user import User
from app.api.deps import get_db, get_admin, get_sheet_reader, get_sheet_writer
from app.api.workflow import build_board, perform_stage_action
from app.core.config import settings
from app.sheets.reader import SheetReader
from app.sheets.writer import ACTION_UPDATE, ACTION_UPLOAD_AND_UPDATE_PAYMENT, SheetWriter
from app.workflow.mutations import encode_payment
from app.workflow.stages import Stage, StageStatus
from app.workflow.uploads import UploadValidationError, prepare_image_upload
from app.workflow.views import payment_item

router = APIRouter()


@router.get("", response_model=StageBoard[PaymentItem])
def get_payment_board(
    reader: SheetReader = Depends(get_sheet_reader),
    current_user: User = Depends(get_admin),
) -> Any:
    """Inspected indents waiting for payment, and indents already paid"""
    return build_board(reader, Stage.PAYMENT, payment_item)


@router.post("/{row_index}", response_model=StageActionResponse)
def record_payment(
    row_index: int,
    payment_in: PaymentCreate,
    db: Session = Depends(get_db),
    reader: SheetReader = Depends(get_sheet_reader),
    writer: SheetWriter = Depends(get_sheet_writer),
    current_user: User = Depends(get_admin),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> Any:
    """Record the bill and payment of an inspected indent, optionally with a bill image"""
    upload = None
    if payment_in.bill_image is not None:
        try:
            upload = prepare_image_upload(
                file_name=payment_in.bill_image.file_name,
                mime_type=payment_in.bill_image.mime_type,
                base64_data=payment_in.bill_image.base64_data,
                prefix="bill",
            )
        except UploadValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # With an upload the script endpoint fills the bill image column itself
    row_data = encode_payment(
        bill_no=payment_in.bill_no,
        amount=payment_in.amount,
        payment_date=payment_in.payment_date or date.today(),
        bill_image_url="" if upload else (payment_in.bill_image_url or ""),
    )

    if upload is not None:
        action = ACTION_UPLOAD_AND_UPDATE_PAYMENT
        send = lambda: writer.upload_and_update_payment(settings.SHEET_NAME, row_index, row_data, upload)  # noqa: E731
    else:
        action = ACTION_UPDATE
        send = lambda: writer.update(settings.SHEET_NAME, row_index, row_data)  # noqa: E731

    return perform_stage_action(
        db=db,
        reader=reader,
        stage=Stage.PAYMENT,
        row_index=row_index,
        indent_no=payment_in.indent_no,
        action=action,
        row_data=row_data,
        send=send,
        new_status=StageStatus.PAID,
        current_user=current_user,
        payload=payment_in.model_dump(mode="json"),
        idempotency_key=idempotency_key,
    )
