from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic per-prefix document sequences.

    WHY: Prevent race conditions when generating document numbers
    (BILL-n, INV-n, PAY-IN-n, PAY-OUT-n). next_number is the value the
    next allocation will hand out.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("prefix", name="uq_doc_sequences_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prefix": self.prefix,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


class ReconciliationEvent(db.Model):
    """
    Append-only log of every balance and stock effect the reconciliation
    engine applied (or skipped) for a document.

    Written in the same DB transaction as the effect it records, so a rolled
    back operation leaves no events behind. A "skipped" row is a best-effort
    stock adjustment that could not be applied (unknown item, store error).
    """
    __tablename__ = "reconciliation_events"
    __table_args__ = (
        db.Index("ix_recon_events_document", "document_type", "document_id"),
        db.Index("ix_recon_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Which document caused it
    document_type = db.Column(db.String(16), nullable=False)  # purchase, sale, payment
    document_id = db.Column(db.Integer, nullable=False)
    document_number = db.Column(db.String(32), nullable=True)
    operation = db.Column(db.String(16), nullable=False)  # create, update, delete, status

    # What it touched
    entity_type = db.Column(db.String(16), nullable=False)  # party, item
    entity_id = db.Column(db.Integer, nullable=True)
    effect = db.Column(db.String(16), nullable=False)  # add, subtract, set, increase, decrease
    amount = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    outcome = db.Column(db.String(16), nullable=False, default="applied")  # applied, skipped
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "document_id": self.document_id,
            "document_number": self.document_number,
            "operation": self.operation,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "effect": self.effect,
            "amount": as_float(self.amount),
            "outcome": self.outcome,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
