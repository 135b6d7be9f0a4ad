from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from sqlalchemy.sql import func
from app.db.base import Base


class MutationLog(Base):
    __tablename__ = "mutation_log"

    id = Column(Integer, primary_key=True, index=True)
    idempotency_key = Column(String, unique=True, index=True, nullable=True)  # Client supplied, optional

    # What was sent
    action = Column(String, nullable=False)  # insert, update, uploadAndInsert, uploadAndUpdatePayment
    stage = Column(String, nullable=True)  # approval, assignment, work, inspection, payment, indent
    sheet_name = Column(String, nullable=False)
    row_index = Column(Integer, nullable=True)  # None for appends
    indent_no = Column(String, nullable=True, index=True)
    row_data = Column(Text, nullable=True)  # JSON array as string
    fingerprint = Column(String(64), nullable=True)  # sha256 of the client request

    # Outcome
    success = Column(Boolean, default=False, nullable=False)
    message = Column(Text, nullable=True)
    response = Column(Text, nullable=True)  # JSON object as string

    # Audit
    submitted_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
