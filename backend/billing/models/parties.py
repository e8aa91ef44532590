from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class Party(db.Model):
    """
    Customer or supplier with a single running balance.

    BALANCE SIGN: positive means the party is owed money by us (suppliers,
    after a purchase) or owes money to us (customers, after a sale).
    Payments reduce it. Balance is only changed through ledger_service or
    an explicit edit.

    IDENTITY: (name, phone_number) is unique. phone_number is stored
    normalized (see party_service.normalize_phone).
    """
    __tablename__ = "parties"
    __table_args__ = (
        db.UniqueConstraint("name", "phone_number", name="uq_parties_name_phone"),
        db.Index("ix_parties_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    phone_number = db.Column(db.String(20), nullable=False, index=True)
    role = db.Column(db.String(16), nullable=False, default="general")  # customer, supplier, general
    address = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Party id={self.id} name={self.name!r} phone={self.phone_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "role": self.role,
            "address": self.address,
            "email": self.email,
            "balance": as_float(self.balance),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }

    def to_summary(self) -> dict:
        """Compact view embedded in transaction responses."""
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "balance": as_float(self.balance),
        }
