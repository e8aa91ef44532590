# Overview: Service-layer operations for payments; encapsulates business logic and database work.

"""
Payment Service

WHY: Record money received from customers (payment-in) and paid to
suppliers (payment-out), keeping the party balance in step.

BALANCE POLICY:
- create: subtract amount from the party balance, for BOTH directions.
  payment-out arguably should add; the symmetric behaviour is kept and
  isolated in PAYMENT_BALANCE_OPERATION so it can be changed in one place.
- status completed <-> cancelled: the create-time operation runs again.
- update with a changed amount (or party): add the old amount back to the
  original party, then apply the new amount to the current party.
- delete: add the amount back, only when the payment is completed.

Payments never touch inventory.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Payment
from ..money import as_float, to_decimal, to_money
from ..validation import (
    PAYMENT_METHODS,
    PAYMENT_TYPES,
    TRANSACTION_STATUSES,
    NotFoundError,
    ValidationError,
    validate_amount,
    validate_date_text,
    validate_status,
)
from . import party_service, reconciliation_service
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .ledger_service import OP_SUBTRACT, REVERSE_OPERATION, DocumentContext
from .trade_service import parse_date_range

logger = logging.getLogger(__name__)


PAYMENT_BALANCE_OPERATION = {
    "payment-in": OP_SUBTRACT,
    "payment-out": OP_SUBTRACT,
}

CREATE_RETRY_ON = (OperationalError, StaleDataError, IntegrityError)

TOGGLE_TRANSITIONS = {("completed", "cancelled"), ("cancelled", "completed")}


def _context(payment: Payment, operation: str) -> DocumentContext:
    return DocumentContext(
        document_type="payment",
        document_id=payment.id,
        document_number=payment.document_number,
        operation=operation,
    )


def _apply_balance(payment: Payment, party_id, amount, *, context, reverse: bool = False):
    operation = PAYMENT_BALANCE_OPERATION[payment.type]
    if reverse:
        operation = REVERSE_OPERATION[operation]
    return reconciliation_service.apply_ledger(party_id, amount, operation, context=context)


def _validate_type(payment_type) -> str:
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError("type must be payment-in or payment-out")
    return payment_type


def _validate_method(method) -> str:
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def _load(payment_id: int, *, lock: bool = False) -> Payment:
    query = db.session.query(Payment).filter_by(id=payment_id)
    if lock:
        query = lock_for_update(query)
    payment = query.first()
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


# =============================================================================
# QUERIES
# =============================================================================

def get_payment(payment_id: int) -> Payment:
    return _load(payment_id)


def list_payments(
    *,
    payment_type: str | None = None,
    status: str | None = None,
    party_name: str | None = None,
    phone_number: str | None = None,
    date: str | None = None,
    payment_method: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    search: str | None = None,
) -> list[Payment]:
    q = db.session.query(Payment)
    if payment_type and payment_type != "all":
        q = q.filter(Payment.type == payment_type)
    if status and status != "all":
        q = q.filter(Payment.status == status)
    if party_name:
        q = q.filter(Payment.party_name.ilike(f"%{party_name}%"))
    if phone_number:
        q = q.filter(Payment.phone_number == phone_number)
    if date:
        q = q.filter(Payment.date == date)
    if payment_method and payment_method != "all":
        q = q.filter(Payment.payment_method == payment_method)
    if start_date and end_date:
        start, end = parse_date_range(start_date, end_date)
        q = q.filter(Payment.created_at >= start, Payment.created_at <= end)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            Payment.party_name.ilike(like),
            Payment.phone_number.ilike(like),
            Payment.document_number.ilike(like),
            Payment.description.ilike(like),
        ))
    return q.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def list_by_party(party_name: str, *, phone_number: str | None = None, payment_type: str | None = None) -> list[Payment]:
    return list_payments(party_name=party_name, phone_number=phone_number, payment_type=payment_type)


def list_by_date_range(start_date, end_date, *, payment_type: str | None = None) -> list[Payment]:
    parse_date_range(start_date, end_date)
    return list_payments(start_date=start_date, end_date=end_date, payment_type=payment_type)


def list_by_type(payment_type: str) -> list[Payment]:
    return list_payments(payment_type=_validate_type(payment_type))


def get_summary(*, payment_type: str | None = None, start_date: str | None = None, end_date: str | None = None) -> list[dict]:
    """Per payment type: total amount, total count and count per status."""
    q = db.session.query(
        Payment.type,
        Payment.status,
        func.count(Payment.id),
        func.coalesce(func.sum(Payment.amount), 0),
    )
    if payment_type:
        q = q.filter(Payment.type == payment_type)
    if start_date and end_date:
        start, end = parse_date_range(start_date, end_date)
        q = q.filter(Payment.created_at >= start, Payment.created_at <= end)

    summary: dict[str, dict] = {}
    for kind, status, count, amount in q.group_by(Payment.type, Payment.status).all():
        row = summary.setdefault(kind, {
            "type": kind,
            "total_amount": Decimal("0"),
            "total_count": 0,
            **{f"{s}_count": 0 for s in TRANSACTION_STATUSES},
        })
        row["total_amount"] += to_decimal(amount)
        row["total_count"] += count
        row[f"{status}_count"] = row.get(f"{status}_count", 0) + count

    result = []
    for kind in sorted(summary):
        row = summary[kind]
        row["total_amount"] = as_float(to_money(row["total_amount"]))
        result.append(row)
    return result


# =============================================================================
# CREATE
# =============================================================================

def _validate_create(data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    if not data.get("party_name") or not data.get("phone_number") or data.get("amount") in (None, "") or not data.get("date"):
        raise ValidationError("Party name, phone number, amount, and date are required")

    errors: list[str] = []
    fields: dict = {
        "party_name": str(data["party_name"]).strip(),
        "phone_number": data["phone_number"],
        "description": data.get("description"),
        "reference": data.get("reference"),
    }

    checks = (
        ("type", lambda: _validate_type(data.get("type") or "payment-in")),
        ("amount", lambda: validate_amount(data["amount"])),
        ("date", lambda: validate_date_text(data["date"])),
        ("status", lambda: validate_status(data.get("status") or "completed")),
        ("payment_method", lambda: _validate_method(data.get("payment_method") or "cash")),
    )
    for key, check in checks:
        try:
            fields[key] = check()
        except ValidationError as exc:
            errors.extend(exc.errors)

    total = data.get("total_amount")
    if total not in (None, ""):
        try:
            fields["total_amount"] = validate_amount(total, field="total_amount")
        except ValidationError as exc:
            errors.extend(exc.errors)

    if fields.get("description") and len(str(fields["description"])) > 500:
        errors.append("description exceeds max length 500")
    if fields.get("reference") and len(str(fields["reference"])) > 100:
        errors.append("reference exceeds max length 100")

    if errors:
        raise ValidationError(errors)
    return fields


def create_payment(data: dict) -> Payment:
    """
    Record a payment and subtract it from the party balance.

    The party is resolved (or created) from party_name + phone_number.
    """
    fields = _validate_create(data)

    def _op():
        number = next_document_number(fields["type"])
        party, _ = party_service.find_or_create({
            "name": fields["party_name"],
            "phone_number": fields["phone_number"],
        })
        amount = to_money(fields["amount"])
        payment = Payment(
            document_number=number,
            type=fields["type"],
            party_id=party.id,
            party_name=party.name,
            phone_number=party.phone_number,
            amount=amount,
            total_amount=to_money(fields.get("total_amount") or amount),
            date=fields["date"],
            status=fields["status"],
            description=fields["description"],
            payment_method=fields["payment_method"],
            reference=fields["reference"],
        )
        db.session.add(payment)
        db.session.flush()

        _apply_balance(payment, party.id, amount, context=_context(payment, "create"))
        db.session.commit()
        return payment

    payment = run_in_transaction(_op, retry_on=CREATE_RETRY_ON)
    logger.info("Created %s %s amount=%s", payment.type, payment.document_number, payment.amount)
    return payment


# =============================================================================
# UPDATE
# =============================================================================

def update_payment(payment_id: int, data: dict) -> Payment:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    new_amount = validate_amount(data["amount"]) if data.get("amount") not in (None, "") else None
    new_total = (
        validate_amount(data["total_amount"], field="total_amount")
        if data.get("total_amount") not in (None, "") else None
    )
    date = validate_date_text(data["date"]) if data.get("date") else None
    method = _validate_method(data["payment_method"]) if data.get("payment_method") else None
    new_status = data.get("status")
    if new_status is not None:
        validate_status(new_status)

    def _op():
        payment = _load(payment_id, lock=True)
        old_amount = to_money(payment.amount)
        old_party_id = payment.party_id
        old_status = payment.status

        if data.get("party_name") or data.get("phone_number"):
            party, _ = party_service.find_or_create({
                "name": data.get("party_name") or payment.party_name,
                "phone_number": data.get("phone_number") or payment.phone_number,
            })
            payment.party_id = party.id
            payment.party_name = party.name
            payment.phone_number = party.phone_number

        if new_amount is not None:
            payment.amount = to_money(new_amount)
        if new_total is not None:
            payment.total_amount = to_money(new_total)
        elif new_amount is not None:
            payment.total_amount = to_money(new_amount)
        if date is not None:
            payment.date = date
        if method is not None:
            payment.payment_method = method
        if "description" in data:
            payment.description = data.get("description")
        if "reference" in data:
            payment.reference = data.get("reference")

        toggled = False
        if new_status is not None and reconciliation_service.check_status_transition(old_status, new_status):
            payment.status = new_status
            toggled = (old_status, new_status) in TOGGLE_TRANSITIONS

        db.session.flush()
        context = _context(payment, "update")

        amount = to_money(payment.amount)
        if amount != old_amount or payment.party_id != old_party_id:
            _apply_balance(payment, old_party_id, old_amount, context=context, reverse=True)
            _apply_balance(payment, payment.party_id, amount, context=context)
        if toggled:
            _apply_balance(payment, payment.party_id, amount, context=context)

        db.session.commit()
        return payment

    return run_in_transaction(_op)


# =============================================================================
# STATUS
# =============================================================================

def set_status(payment_id: int, status) -> Payment:
    """
    Change status. completed <-> cancelled re-runs the balance operation;
    transitions from pending leave the balance alone.
    """
    validate_status(status)

    def _op():
        payment = _load(payment_id, lock=True)
        old_status = payment.status
        if reconciliation_service.check_status_transition(old_status, status):
            payment.status = status
            db.session.flush()
            if (old_status, status) in TOGGLE_TRANSITIONS:
                _apply_balance(payment, payment.party_id, payment.amount, context=_context(payment, "status"))
            logger.info("Payment %s status %s -> %s", payment.document_number, old_status, status)
        db.session.commit()
        return payment

    return run_in_transaction(_op)


# =============================================================================
# DELETE
# =============================================================================

def delete_payment(payment_id: int) -> None:
    """Reverse the balance effect (completed payments only), then remove the row."""
    def _op():
        payment = _load(payment_id, lock=True)
        if payment.status == "completed":
            _apply_balance(payment, payment.party_id, payment.amount, context=_context(payment, "delete"), reverse=True)
        number = payment.document_number
        db.session.delete(payment)
        db.session.commit()
        logger.info("Deleted payment %s", number)

    run_in_transaction(_op)
