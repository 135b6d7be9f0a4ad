"""
Idempotent submission of sheet mutations.

Every mutation is recorded in the local ledger. When the caller passes an
idempotency key that already has a successful entry for the same request,
the recorded result is returned and nothing is sent to the script endpoint
again. A key reused for a different request is refused.
"""
import hashlib
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.mutation import MutationLog
from app.sheets.errors import SheetWriteError
from app.sheets.writer import MutationResult

logger = logging.getLogger(__name__)


class IdempotencyKeyReuseError(Exception):
    def __init__(self, idempotency_key: str):
        self.idempotency_key = idempotency_key
        super().__init__(
            f"Idempotency key '{idempotency_key}' was already used for a different request"
        )


def request_fingerprint(
    action: str,
    stage: Optional[str],
    row_index: Optional[int],
    payload: Dict[str, Any],
) -> str:
    """
    Hash of what the client asked for. Built from the request body rather
    than the encoded row, which carries the submission time.
    """
    body = json.dumps(
        {"action": action, "stage": stage, "row_index": row_index, "payload": payload},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def _replay(entry: MutationLog) -> MutationResult:
    data = json.loads(entry.response or "{}")
    data["replayed"] = True
    return MutationResult(**data)


def _entry_for_key(db: Session, idempotency_key: str, fingerprint: Optional[str]) -> Optional[MutationLog]:
    entry = db.query(MutationLog).filter(MutationLog.idempotency_key == idempotency_key).first()
    if entry is not None and fingerprint and entry.fingerprint != fingerprint:
        logger.warning(f"Idempotency key {idempotency_key} reused for a different request")
        raise IdempotencyKeyReuseError(idempotency_key)
    return entry


def find_replay(db: Session, idempotency_key: Optional[str], fingerprint: Optional[str] = None) -> Optional[MutationResult]:
    """Recorded result for a key whose mutation already succeeded, if any."""
    if not idempotency_key:
        return None
    entry = _entry_for_key(db, idempotency_key, fingerprint)
    if entry is None or not entry.success:
        return None
    return _replay(entry)


def submit_mutation(
    db: Session,
    send: Callable[[], MutationResult],
    *,
    action: str,
    sheet_name: str,
    row_data: List[Any],
    stage: Optional[str] = None,
    row_index: Optional[int] = None,
    indent_no: Optional[str] = None,
    submitted_by: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    fingerprint: Optional[str] = None,
) -> MutationResult:
    entry = None
    if idempotency_key:
        entry = _entry_for_key(db, idempotency_key, fingerprint)
        if entry is not None and entry.success:
            logger.info(f"Replaying recorded result for idempotency key {idempotency_key}")
            return _replay(entry)

    if entry is None:
        entry = MutationLog(idempotency_key=idempotency_key)
        db.add(entry)

    entry.action = action
    entry.stage = stage
    entry.sheet_name = sheet_name
    entry.row_index = row_index
    entry.indent_no = indent_no
    entry.row_data = json.dumps(row_data)
    entry.fingerprint = fingerprint
    entry.submitted_by = submitted_by

    try:
        result = send()
    except SheetWriteError as e:
        entry.success = False
        entry.message = e.message
        entry.response = None
        _commit(db)
        raise

    entry.success = True
    entry.message = result.message
    entry.response = json.dumps(result.to_dict())
    if result.indent_no and not entry.indent_no:
        entry.indent_no = result.indent_no
    _commit(db)
    return result


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        # The remote write already happened; losing the ledger entry only loses replay
        logger.error(f"Could not record mutation in ledger: {e}")
