# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/billing/services/inventory_service.py

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Item
from ..money import DEFAULT_KG_PER_BAG, kg_to_bags, to_bags, to_decimal
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_item,
    validate_payload,
)
from .concurrency import lock_for_update
from .ledger_service import DocumentContext, append_reconciliation_event
"""
Inventory Invariants (authoritative)

Units:
- Stock (opening_stock) is stored in bags. Document lines carry kg.
- kg -> bags divides by KG_PER_BAG (30) and rounds to 4 places, half-up.

Business invariants:
- opening_stock is never negative. A decrease that would go below zero is
  clamped to zero, silently. A later reversal of that decrease therefore
  over-restores; this is accepted.
- Exactly one universal item exists ("Bardana"). Its uniqueness is a store
  constraint on universal_key, not an application check. It is created at
  startup when absent and can never be deleted.

Best effort:
- adjust_stock raises NotFoundError for unknown items. The reconciliation
  engine absorbs that per line; this module never swallows errors itself.
"""

logger = logging.getLogger(__name__)

INCREASE = "increase"
DECREASE = "decrease"
VALID_DIRECTIONS = (INCREASE, DECREASE)

UNIVERSAL_KEY = "UNIVERSAL"

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_name",
        "category",
        "purchase_price",
        "sale_price",
        "opening_stock",
        "as_of_date",
        "low_stock_alert",
    },
    required_on_create={"product_name", "category"},
)


def kg_per_bag() -> int:
    return int(current_app.config.get("KG_PER_BAG", DEFAULT_KG_PER_BAG))


def universal_item_name() -> str:
    return current_app.config.get("UNIVERSAL_ITEM_NAME", "Bardana")


def bags_for_kg(quantity_kg) -> Decimal:
    return kg_to_bags(quantity_kg, kg_per_bag())


# =============================================================================
# ITEM QUERIES / CRUD
# =============================================================================

def get_item(item_id: int, *, lock: bool = False) -> Item:
    query = db.session.query(Item).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def list_items(*, category: str | None = None, search: str | None = None, low_stock: bool = False) -> list[Item]:
    q = db.session.query(Item)
    if category and category != "all":
        q = q.filter(Item.category == category)
    if search:
        q = q.filter(Item.product_name.ilike(f"%{search}%"))
    if low_stock:
        q = q.filter(Item.opening_stock <= Item.low_stock_alert)
    return q.order_by(Item.created_at.desc(), Item.id.desc()).all()


def _prepare_item_patch(data: dict, *, partial: bool) -> dict:
    data = dict(data or {})

    # Clients may enter stock in kg; it is stored in bags
    stock_kg = data.pop("opening_stock_kg", None)
    if stock_kg is not None:
        if "opening_stock" in data:
            raise ValidationError("Send either opening_stock or opening_stock_kg, not both")
        try:
            data["opening_stock"] = bags_for_kg(stock_kg)
        except ValueError:
            raise ValidationError("opening_stock_kg must be a number")

    patch = validate_payload(model=Item, payload=data, policy=ITEM_POLICY, partial=partial)
    enforce_rules_item(patch)
    if patch.get("opening_stock") is not None:
        patch["opening_stock"] = to_bags(patch["opening_stock"])
    return patch


def create_item(data: dict) -> Item:
    patch = _prepare_item_patch(data, partial=False)
    item = Item(is_universal=False, **patch)
    db.session.add(item)
    db.session.commit()
    logger.info("Created item %s (%s)", item.id, item.product_name)
    return item


def update_item(item_id: int, data: dict) -> Item:
    patch = _prepare_item_patch(data, partial=True)
    item = get_item(item_id, lock=True)
    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def delete_item(item_id: int) -> None:
    item = get_item(item_id)
    if item.is_universal:
        raise ConflictError("The universal item cannot be deleted")
    db.session.delete(item)
    db.session.commit()
    logger.info("Deleted item %s", item_id)


# =============================================================================
# UNIVERSAL ITEM
# =============================================================================

def get_universal_item(*, lock: bool = False) -> Item | None:
    query = db.session.query(Item).filter_by(universal_key=UNIVERSAL_KEY)
    if lock:
        query = lock_for_update(query)
    return query.first()


def ensure_universal_item() -> Item:
    """
    Ensure the universal tracking item exists.

    Safe to call repeatedly (idempotent). Concurrent callers race on the
    unique universal_key; the loser re-reads the winner's row.
    """
    item = get_universal_item()
    if item:
        return item

    try:
        with db.session.begin_nested():
            item = Item(
                product_name=universal_item_name(),
                category="Primary",
                purchase_price=0,
                sale_price=0,
                opening_stock=0,
                low_stock_alert=0,
                is_universal=True,
                universal_key=UNIVERSAL_KEY,
            )
            db.session.add(item)
            db.session.flush()
    except IntegrityError:
        item = get_universal_item()
        if item is None:
            raise
    db.session.commit()
    logger.info("Universal item ready: %s (id=%s)", item.product_name, item.id)
    return item


# =============================================================================
# STOCK ADJUSTMENT
# =============================================================================

def _apply_bags(item: Item, signed_bags: Decimal) -> tuple[Decimal, bool]:
    """Add signed_bags to item stock, clamping at zero. Returns (new_stock, clamped)."""
    current = to_decimal(item.opening_stock or 0)
    new_stock = to_bags(current + signed_bags)
    clamped = new_stock < 0
    if clamped:
        new_stock = Decimal("0.0000")
    item.opening_stock = new_stock
    db.session.flush()
    return new_stock, clamped


def _record(context, item_id, direction, bags, clamped, note=None):
    if context is None:
        return
    if clamped:
        note = ((note + "; ") if note else "") + "clamped at 0"
    append_reconciliation_event(
        context=context,
        entity_type="item",
        entity_id=item_id,
        effect=direction,
        amount=bags,
        note=note,
    )


def adjust_stock(
    item_id: int,
    delta_kg,
    direction: str,
    *,
    context: DocumentContext | None = None,
) -> Item:
    """
    Move stock for one item by a kg quantity.

    Args:
        item_id: Item to adjust
        delta_kg: Quantity in kg (converted to bags)
        direction: increase (purchase) or decrease (sale)
        context: Document operation on whose behalf this runs (logged)

    Raises:
        ValidationError: Unknown direction
        NotFoundError: Item does not exist
    """
    if direction not in VALID_DIRECTIONS:
        raise ValidationError("direction must be increase or decrease")

    bags = bags_for_kg(delta_kg)
    item = get_item(item_id, lock=True)
    signed = bags if direction == INCREASE else -bags
    new_stock, clamped = _apply_bags(item, signed)
    if clamped:
        logger.info("Stock for item %s clamped at 0 (requested %s %s bags)", item_id, direction, bags)
    _record(context, item.id, direction, bags, clamped)
    return item


def adjust_universal_stock(
    signed_bags,
    *,
    context: DocumentContext | None = None,
) -> Item:
    """
    Apply an already-converted bag delta to the universal item.

    The caller converts the whole-document kg total once, so create/update/
    delete of the same document always use identical bag amounts.
    """
    item = get_universal_item(lock=True)
    if item is None:
        raise NotFoundError("Universal item not found")

    signed = to_bags(signed_bags)
    direction = INCREASE if signed >= 0 else DECREASE
    new_stock, clamped = _apply_bags(item, signed)
    _record(context, item.id, direction, abs(signed), clamped, note="universal")
    return item
