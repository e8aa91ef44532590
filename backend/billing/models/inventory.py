from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class Item(db.Model):
    """
    Inventory item. Stock is held in bags in opening_stock.

    INVARIANT: opening_stock >= 0. Every write path clamps at zero.

    UNIVERSAL ITEM:
    Exactly one row carries is_universal=True (the "Bardana" tracking item).
    Its stock follows the total kg moved by every purchase and sale. The
    uniqueness is enforced by the store through universal_key: the universal
    row has a fixed key, every other row leaves it NULL.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("universal_key", name="uq_items_universal_key"),
        db.Index("ix_items_category_name", "category", "product_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, default="Primary")  # Primary, Kirana

    purchase_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    sale_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # Bags, not kg
    opening_stock = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    as_of_date = db.Column(db.String(10), nullable=True)  # YYYY-MM-DD
    low_stock_alert = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    is_universal = db.Column(db.Boolean, nullable=False, default=False, index=True)
    universal_key = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return (self.opening_stock or 0) <= (self.low_stock_alert or 0)

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.product_name!r} stock={self.opening_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "category": self.category,
            "purchase_price": as_float(self.purchase_price),
            "sale_price": as_float(self.sale_price),
            "opening_stock": as_float(self.opening_stock),
            "as_of_date": self.as_of_date,
            "low_stock_alert": as_float(self.low_stock_alert),
            "is_low_stock": self.is_low_stock,
            "is_universal": self.is_universal,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
