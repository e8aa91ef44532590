from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class TradeDocumentMixin:
    """
    Columns shared by Purchase and Sale documents.

    WHY denormalized party_name/phone_number: a party may be deleted without
    cascading; the document keeps who it was issued to and party_id goes NULL.

    total_amount is derived from lines (sum of quantity * price) and is
    recomputed by the service before every flush. Never set it directly.
    """
    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "BILL-12", "INV-7")
    document_number = db.Column(db.String(32), nullable=False, unique=True)

    party_name = db.Column(db.String(100), nullable=False)
    phone_number = db.Column(db.String(20), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # Business date as entered (MM/DD/YYYY or YYYY-MM-DD)
    date = db.Column(db.String(10), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    # Blob storage URL of the printed bill/invoice
    pdf_uri = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @declared_attr
    def party_id(cls):
        return db.Column(db.Integer, db.ForeignKey("parties.id", ondelete="SET NULL"), nullable=True, index=True)

    @declared_attr
    def party(cls):
        return db.relationship("Party")

    def line_snapshot(self) -> list[tuple]:
        """Ordered (item_id, quantity, price) tuples for structural comparison."""
        return [(line.item_id, line.quantity, line.price) for line in self.lines]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "party_id": self.party_id,
            "party_name": self.party_name,
            "phone_number": self.phone_number,
            "items": [line.to_dict() for line in self.lines],
            "total_amount": as_float(self.total_amount),
            "date": self.date,
            "status": self.status,
            "pdf_uri": self.pdf_uri,
            "party": self.party.to_summary() if self.party else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TradeLineMixin:
    """
    One line of a purchase or sale.

    quantity is in kg; stock effects convert to bags.
    item_id is intentionally not a foreign key: stock adjustment for an
    unknown item is skipped and reported, it never blocks the document.
    """
    id = db.Column(db.Integer, primary_key=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    item_id = db.Column(db.Integer, nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    line_total = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": as_float(self.quantity),
            "price": as_float(self.price),
            "line_total": as_float(self.line_total),
        }


class Purchase(TradeDocumentMixin, db.Model):
    """Purchase bill from a supplier. Increases stock and the supplier balance."""
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_party_name", "party_name"),
        {"sqlite_autoincrement": True},
    )

    lines = db.relationship(
        "PurchaseLine",
        order_by="PurchaseLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PurchaseLine(TradeLineMixin, db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)


class Sale(TradeDocumentMixin, db.Model):
    """Sale invoice to a customer. Decreases stock, increases the customer balance."""
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_party_name", "party_name"),
        {"sqlite_autoincrement": True},
    )

    lines = db.relationship(
        "SaleLine",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SaleLine(TradeLineMixin, db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)


class Payment(db.Model):
    """
    Payment received from (payment-in) or paid to (payment-out) a party.

    Unified model for both directions; document_number prefix follows the
    type (PAY-IN-n / PAY-OUT-n). total_amount mirrors amount unless the
    client sends it explicitly.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_type_party_name", "type", "party_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(32), nullable=False, unique=True)
    type = db.Column(db.String(16), nullable=False, default="payment-in", index=True)  # payment-in, payment-out

    party_id = db.Column(db.Integer, db.ForeignKey("parties.id", ondelete="SET NULL"), nullable=True, index=True)
    party_name = db.Column(db.String(100), nullable=False, index=True)
    phone_number = db.Column(db.String(20), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    date = db.Column(db.String(10), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    description = db.Column(db.String(500), nullable=True)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    reference = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    party = db.relationship("Party")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "type": self.type,
            "party_id": self.party_id,
            "party_name": self.party_name,
            "phone_number": self.phone_number,
            "amount": as_float(self.amount),
            "total_amount": as_float(self.total_amount),
            "date": self.date,
            "status": self.status,
            "description": self.description,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "party": self.party.to_summary() if self.party else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
