# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import utcnow


DOC_BILL = "BILL"
DOC_WORK_ORDER = "WORK_ORDER"

PREFIXES = {
    DOC_BILL: "BILL",
    DOC_WORK_ORDER: "WO",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _ensure_sequence_row(owner_id: int, document_type: str) -> None:
    """Create the counter row if missing, without failing when a concurrent writer wins."""
    dialect = db.session.get_bind().dialect.name
    values = {"owner_id": owner_id, "document_type": document_type, "next_number": 1}

    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            from sqlalchemy.dialects.postgresql import insert
        stmt = insert(DocumentSequence).values(**values).on_conflict_do_nothing(
            index_elements=["owner_id", "document_type"]
        )
        db.session.execute(stmt)
        return

    exists = (
        db.session.query(DocumentSequence.id)
        .filter_by(owner_id=owner_id, document_type=document_type)
        .first()
    )
    if not exists:
        db.session.add(DocumentSequence(**values))
        db.session.flush()


def next_sequence(*, owner_id: int, document_type: str) -> int:
    """
    Atomically allocate the next sequence value for an owner/type.

    The increment is a single UPDATE ... SET next_number = next_number + 1,
    so two concurrent callers never read the same value. Runs inside the
    caller's transaction (no commit).
    """
    if not owner_id:
        raise DocumentSequenceError("owner_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    _ensure_sequence_row(owner_id, document_type)

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.owner_id == owner_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt, execution_options={"synchronize_session": False})
    if not result.rowcount:
        raise DocumentSequenceError(f"Sequence {document_type} missing for owner {owner_id}")

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(owner_id=owner_id, document_type=document_type)
        .scalar()
    )
    return current - 1


def format_document_number(document_type: str, sequence: int, when: datetime | None = None, pad: int = 4) -> str:
    """PREFIX-YYMM-NNNN, e.g. BILL-2610-0007."""
    when = when or utcnow()
    return f"{PREFIXES[document_type]}-{when:%y%m}-{sequence:0{pad}d}"


def next_document_number(*, owner_id: int, document_type: str, when: datetime | None = None) -> str:
    seq = next_sequence(owner_id=owner_id, document_type=document_type)
    return format_document_number(document_type, seq, when)
