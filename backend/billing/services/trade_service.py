# Overview: Shared lifecycle for purchase and sale documents (create, update, status, delete, queries).

"""
Trade Document Lifecycle

Purchases and sales share one lifecycle; they differ only in numbering
prefix, the party role they resolve to, and the stock direction:

    purchase: BILL-n, supplier, stock increases
    sale:     INV-n,  customer, stock decreases

Both add the document total to the party balance on create.

Every mutating call is one DB transaction run through run_in_transaction.
Creates also retry on IntegrityError so a document number collision simply
allocates a fresh number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Purchase, PurchaseLine, Sale, SaleLine
from ..money import to_decimal, to_money, to_quantity
from ..time_utils import parse_range_bound
from ..validation import (
    NotFoundError,
    ValidationError,
    validate_date_text,
    validate_line_items,
    validate_status,
)
from . import party_service, reconciliation_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .ledger_service import DocumentContext

logger = logging.getLogger(__name__)

CREATE_RETRY_ON = (OperationalError, StaleDataError, IntegrityError)


@dataclass(frozen=True)
class TradeKind:
    document_type: str
    label: str
    model: type
    line_model: type
    party_role: str
    party_alias: str


PURCHASE = TradeKind(
    document_type="purchase",
    label="Purchase",
    model=Purchase,
    line_model=PurchaseLine,
    party_role="supplier",
    party_alias="supplier_name",
)

SALE = TradeKind(
    document_type="sale",
    label="Sale",
    model=Sale,
    line_model=SaleLine,
    party_role="customer",
    party_alias="customer_name",
)


# =============================================================================
# HELPERS
# =============================================================================

def _party_name(kind: TradeKind, data: dict) -> str | None:
    name = data.get("party_name") or data.get(kind.party_alias)
    return name.strip() if isinstance(name, str) else name


def _build_lines(kind: TradeKind, lines: list[dict]) -> tuple[list, Decimal]:
    rows = []
    total = Decimal("0")
    for position, line in enumerate(lines):
        quantity, price = to_quantity(line["quantity"]), to_money(line["price"])
        line_total = to_money(quantity * price)
        total += line_total
        rows.append(kind.line_model(
            position=position,
            item_id=line["item_id"],
            item_name=line.get("item_name"),
            quantity=quantity,
            price=price,
            line_total=line_total,
        ))
    return rows, to_money(total)


def _lines_total(lines: list[dict]) -> Decimal:
    # Same rounding as _build_lines so an unchanged line list keeps its total
    return to_money(sum(
        (to_money(to_quantity(line["quantity"]) * to_money(line["price"])) for line in lines),
        Decimal("0"),
    ))


def _line_dicts(doc) -> list[dict]:
    return [
        {"item_id": item_id, "quantity": to_decimal(quantity), "price": to_decimal(price)}
        for item_id, quantity, price in doc.line_snapshot()
    ]


def _load(kind: TradeKind, doc_id: int, *, lock: bool = False):
    query = db.session.query(kind.model).filter_by(id=doc_id)
    if lock:
        query = lock_for_update(query)
    doc = query.first()
    if doc is None:
        raise NotFoundError(f"{kind.label} not found")
    return doc


def _context(kind: TradeKind, doc, operation: str) -> DocumentContext:
    return DocumentContext(
        document_type=kind.document_type,
        document_id=doc.id,
        document_number=doc.document_number,
        operation=operation,
    )


def _validate_create(kind: TradeKind, data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[str] = []
    name = _party_name(kind, data)
    if not name or not data.get("phone_number"):
        errors.append(f"{kind.party_role.capitalize()} name and phone number are required")

    lines = None
    try:
        lines = validate_line_items(data.get("items"))
    except ValidationError as exc:
        errors.extend(exc.errors)

    date = None
    if not data.get("date"):
        errors.append("date is required")
    else:
        try:
            date = validate_date_text(data["date"])
        except ValidationError as exc:
            errors.extend(exc.errors)

    status = data.get("status") or "pending"
    try:
        validate_status(status)
    except ValidationError as exc:
        errors.extend(exc.errors)

    if errors:
        raise ValidationError(errors)

    return {
        "party_name": name,
        "phone_number": data["phone_number"],
        "address": data.get("address"),
        "email": data.get("email"),
        "lines": lines,
        "date": date,
        "status": status,
        "pdf_uri": data.get("pdf_uri"),
    }


# =============================================================================
# QUERIES
# =============================================================================

def get_document(kind: TradeKind, doc_id: int):
    return _load(kind, doc_id)


def list_documents(
    kind: TradeKind,
    *,
    status: str | None = None,
    party_name: str | None = None,
    phone_number: str | None = None,
    date: str | None = None,
    search: str | None = None,
) -> list:
    model = kind.model
    q = db.session.query(model)
    if status and status != "all":
        q = q.filter(model.status == status)
    if party_name:
        q = q.filter(model.party_name.ilike(f"%{party_name}%"))
    if phone_number:
        q = q.filter(model.phone_number.ilike(f"%{phone_number}%"))
    if date:
        q = q.filter(model.date == date)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            model.party_name.ilike(like),
            model.phone_number.ilike(like),
            model.document_number.ilike(like),
        ))
    return q.order_by(model.created_at.desc(), model.id.desc()).all()


def list_by_party(kind: TradeKind, party_name: str) -> list:
    model = kind.model
    return (
        db.session.query(model)
        .filter(model.party_name.ilike(f"%{party_name}%"))
        .order_by(model.created_at.desc(), model.id.desc())
        .all()
    )


def parse_date_range(start_date, end_date) -> tuple[datetime, datetime]:
    if not start_date or not end_date:
        raise ValidationError("Start date and end date are required")
    try:
        start = parse_range_bound(start_date)
        end = parse_range_bound(end_date, end=True)
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO-8601 dates")
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    return start, end


def list_by_date_range(kind: TradeKind, start_date, end_date) -> list:
    start, end = parse_date_range(start_date, end_date)
    model = kind.model
    return (
        db.session.query(model)
        .filter(model.created_at >= start, model.created_at <= end)
        .order_by(model.created_at.desc(), model.id.desc())
        .all()
    )


# =============================================================================
# CREATE
# =============================================================================

def create_document(kind: TradeKind, data: dict):
    """
    Create a purchase/sale and apply its forward effects.

    Returns:
        (document, stock_warnings)
    """
    fields = _validate_create(kind, data)

    def _op():
        number = next_document_number(kind.document_type)
        party, _ = party_service.find_or_create(
            {
                "name": fields["party_name"],
                "phone_number": fields["phone_number"],
                "role": kind.party_role,
                "address": fields["address"],
                "email": fields["email"],
            },
            default_role=kind.party_role,
        )

        rows, total = _build_lines(kind, fields["lines"])
        doc = kind.model(
            document_number=number,
            party_id=party.id,
            party_name=party.name,
            phone_number=party.phone_number,
            date=fields["date"],
            status=fields["status"],
            pdf_uri=fields["pdf_uri"],
            total_amount=total,
        )
        doc.lines = rows
        db.session.add(doc)
        db.session.flush()

        context = _context(kind, doc, "create")
        reconciliation_service.apply_trade_ledger(kind.document_type, party.id, total, context=context)
        warnings = reconciliation_service.apply_stock(kind.document_type, fields["lines"], context=context)

        db.session.commit()
        return doc, warnings

    doc, warnings = run_in_transaction(_op, retry_on=CREATE_RETRY_ON)
    logger.info("Created %s %s total=%s", kind.document_type, doc.document_number, doc.total_amount)
    return doc, warnings


# =============================================================================
# UPDATE
# =============================================================================

def update_document(kind: TradeKind, doc_id: int, data: dict):
    """
    Apply field changes and reconcile the difference.

    Ledger: add (new_total - old_total). When the party changes, the old
    party gets the full reversal and the new party the full forward effect.
    Stock: only when the line list changed structurally.

    Returns:
        (document, stock_warnings)
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    lines = validate_line_items(data["items"]) if "items" in data else None
    date = validate_date_text(data["date"]) if data.get("date") else None
    new_status = data.get("status")

    def _op():
        doc = _load(kind, doc_id, lock=True)
        old_total = to_decimal(doc.total_amount)
        old_lines = _line_dicts(doc)
        old_party_id = doc.party_id

        name = _party_name(kind, data)
        if name or data.get("phone_number"):
            party, _ = party_service.find_or_create(
                {
                    "name": name or doc.party_name,
                    "phone_number": data.get("phone_number") or doc.phone_number,
                    "role": kind.party_role,
                },
                default_role=kind.party_role,
            )
            doc.party_id = party.id
            doc.party_name = party.name
            doc.phone_number = party.phone_number

        if date is not None:
            doc.date = date
        if "pdf_uri" in data:
            doc.pdf_uri = data.get("pdf_uri")
        if new_status is not None:
            if reconciliation_service.check_status_transition(doc.status, new_status):
                doc.status = new_status

        new_lines = old_lines
        if lines is not None:
            rows, _ = _build_lines(kind, lines)
            doc.lines = rows
            new_lines = lines

        new_total = _lines_total(new_lines)
        doc.total_amount = new_total
        db.session.flush()

        context = _context(kind, doc, "update")
        if doc.party_id != old_party_id:
            reconciliation_service.apply_trade_ledger(
                kind.document_type, old_party_id, old_total, context=context, reverse=True
            )
            reconciliation_service.apply_trade_ledger(kind.document_type, doc.party_id, new_total, context=context)
        else:
            reconciliation_service.apply_trade_ledger_delta(doc.party_id, old_total, new_total, context=context)

        warnings: list[dict] = []
        if reconciliation_service.lines_differ(old_lines, new_lines):
            warnings = reconciliation_service.replace_stock(kind.document_type, old_lines, new_lines, context=context)

        db.session.commit()
        return doc, warnings

    return run_in_transaction(_op)


# =============================================================================
# STATUS
# =============================================================================

def set_status(kind: TradeKind, doc_id: int, status):
    """Status change only; trade documents keep their ledger and stock effects in every status."""
    validate_status(status)

    def _op():
        doc = _load(kind, doc_id, lock=True)
        if reconciliation_service.check_status_transition(doc.status, status):
            logger.info("%s %s status %s -> %s", kind.label, doc.document_number, doc.status, status)
            doc.status = status
        db.session.commit()
        return doc

    return run_in_transaction(_op)


# =============================================================================
# DELETE
# =============================================================================

def delete_document(kind: TradeKind, doc_id: int) -> list[dict]:
    """
    Reverse every effect, then remove the row.

    The row is deleted last so a failure while reversing leaves it in place.

    Returns:
        stock_warnings
    """
    def _op():
        doc = _load(kind, doc_id, lock=True)
        context = _context(kind, doc, "delete")
        lines = _line_dicts(doc)

        warnings = reconciliation_service.apply_stock(kind.document_type, lines, context=context, reverse=True)
        reconciliation_service.apply_trade_ledger(
            kind.document_type, doc.party_id, doc.total_amount, context=context, reverse=True
        )

        db.session.delete(doc)
        db.session.commit()
        logger.info("Deleted %s %s", kind.document_type, context.document_number)
        return warnings

    return run_in_transaction(_op)
