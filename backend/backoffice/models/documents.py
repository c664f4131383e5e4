from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Atomic per-owner document sequences.

    Bill and work order numbers are allocated from here instead of counting
    existing rows.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "document_type", name="uq_doc_sequences_owner_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "document_type": self.document_type,
            "next_number": self.next_number,
        }
