# Overview: Reconciliation engine; applies and reverses ledger and stock effects of documents.

"""
Reconciliation Engine

Every purchase/sale/payment mutation goes through here to keep party
balances and item stock consistent with document history.

ORDERING (per operation, inside one DB transaction):
- create: ledger forward -> each line forward -> universal forward
- update: ledger delta -> (lines changed) reverse old lines, apply new lines,
  universal net delta
- delete: reverse lines -> reverse universal -> reverse ledger -> remove row

FAILURE POLICY:
- Ledger errors propagate and roll the whole operation back.
- Stock errors are absorbed per line. Each line runs in its own savepoint,
  so a failed line leaves siblings untouched. The failure is logged, written
  to the reconciliation log as "skipped" and returned as a stock warning.
- StaleDataError (concurrent edit of the same row) is never absorbed; the
  caller's retry loop re-runs the operation from scratch.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..money import as_float, to_decimal
from ..validation import NotFoundError, ValidationError, validate_status
from . import inventory_service
from .inventory_service import DECREASE, INCREASE
from .ledger_service import (
    OP_ADD,
    REVERSE_OPERATION,
    DocumentContext,
    adjust_balance,
    append_reconciliation_event,
)

logger = logging.getLogger(__name__)


# Direction each document type moves stock when it is created
STOCK_DIRECTION = {
    "purchase": INCREASE,
    "sale": DECREASE,
}

REVERSE_DIRECTION = {INCREASE: DECREASE, DECREASE: INCREASE}

# Ledger operation applied when each trade document is created
TRADE_LEDGER_OPERATION = {
    "purchase": OP_ADD,
    "sale": OP_ADD,
}

STATUS_TRANSITIONS = {
    "pending": {"completed", "cancelled"},
    "completed": {"cancelled"},
    "cancelled": {"completed"},
}


def check_status_transition(current: str, new: str) -> bool:
    """
    Validate a status change.

    Returns True when the status actually changes, False for a no-op.
    Raises ValidationError for transitions outside the state machine.
    """
    validate_status(new)
    if current == new:
        return False
    if new not in STATUS_TRANSITIONS.get(current, set()):
        raise ValidationError(f"Cannot change status from {current} to {new}")
    return True


# =============================================================================
# LEDGER
# =============================================================================

def apply_ledger(party_id: int | None, amount, operation: str, *, context: DocumentContext):
    """
    Apply one ledger effect. Documents whose party was deleted skip this step.

    Errors propagate; the ledger is never best-effort.
    """
    if party_id is None:
        logger.info("%s %s has no party; ledger step skipped", context.document_type, context.document_number)
        return None
    value = to_decimal(amount)
    if value == 0:
        return None
    return adjust_balance(party_id, value, operation, context=context)


def apply_trade_ledger(document_type: str, party_id, total, *, context: DocumentContext, reverse: bool = False):
    operation = TRADE_LEDGER_OPERATION[document_type]
    if reverse:
        operation = REVERSE_OPERATION[operation]
    return apply_ledger(party_id, total, operation, context=context)


def apply_trade_ledger_delta(party_id, old_total, new_total, *, context: DocumentContext):
    """add (new_total - old_total) when the totals differ."""
    delta = to_decimal(new_total) - to_decimal(old_total)
    if delta == 0:
        return None
    return apply_ledger(party_id, delta, OP_ADD, context=context)


# =============================================================================
# INVENTORY (best effort)
# =============================================================================

def _warning(item_id, effect, quantity_kg, exc) -> dict:
    return {
        "item_id": item_id,
        "effect": effect,
        "quantity_kg": as_float(quantity_kg),
        "error": str(exc),
    }


def _record_skipped(context, entity_id, effect, amount, exc):
    append_reconciliation_event(
        context=context,
        entity_type="item",
        entity_id=entity_id,
        effect=effect,
        amount=amount,
        outcome="skipped",
        note=str(exc),
    )


def _apply_line(line: dict, direction: str, *, context: DocumentContext, warnings: list):
    item_id = line["item_id"]
    quantity = line["quantity"]
    try:
        with db.session.begin_nested():
            inventory_service.adjust_stock(item_id, quantity, direction, context=context)
    except StaleDataError:
        raise
    except (NotFoundError, SQLAlchemyError) as exc:
        logger.warning(
            "Stock %s skipped for item %s on %s %s: %s",
            direction, item_id, context.document_type, context.document_number, exc,
        )
        _record_skipped(context, item_id, direction, quantity, exc)
        warnings.append(_warning(item_id, direction, quantity, exc))


def _apply_universal(signed_bags: Decimal, *, context: DocumentContext, warnings: list):
    if signed_bags == 0:
        return
    effect = INCREASE if signed_bags > 0 else DECREASE
    try:
        with db.session.begin_nested():
            inventory_service.adjust_universal_stock(signed_bags, context=context)
    except StaleDataError:
        raise
    except (NotFoundError, SQLAlchemyError) as exc:
        logger.warning(
            "Universal stock %s skipped on %s %s: %s",
            effect, context.document_type, context.document_number, exc,
        )
        _record_skipped(context, None, effect, abs(signed_bags), exc)
        warnings.append({
            "item_id": None,
            "effect": effect,
            "quantity_bags": as_float(abs(signed_bags)),
            "error": str(exc),
        })


def total_bags(lines: list[dict]) -> Decimal:
    """Universal item amount: the whole document's kg converted once."""
    total_kg = sum((to_decimal(line["quantity"]) for line in lines), Decimal("0"))
    return inventory_service.bags_for_kg(total_kg)


def apply_stock(document_type: str, lines: list[dict], *, context: DocumentContext, reverse: bool = False) -> list[dict]:
    """
    Forward (or reversed) stock effect of a whole document: each line, then
    the universal item with the sum of all line quantities.

    Returns the stock warnings collected for failed lines.
    """
    direction = STOCK_DIRECTION[document_type]
    if reverse:
        direction = REVERSE_DIRECTION[direction]

    warnings: list[dict] = []
    for line in lines:
        _apply_line(line, direction, context=context, warnings=warnings)

    bags = total_bags(lines)
    signed = bags if direction == INCREASE else -bags
    _apply_universal(signed, context=context, warnings=warnings)
    return warnings


def replace_stock(document_type: str, old_lines: list[dict], new_lines: list[dict], *, context: DocumentContext) -> list[dict]:
    """
    Line list changed: reverse every old line, apply every new line, then
    move the universal item by bags(sum(new)) - bags(sum(old)).
    """
    direction = STOCK_DIRECTION[document_type]
    reverse_direction = REVERSE_DIRECTION[direction]

    warnings: list[dict] = []
    for line in old_lines:
        _apply_line(line, reverse_direction, context=context, warnings=warnings)
    for line in new_lines:
        _apply_line(line, direction, context=context, warnings=warnings)

    net = total_bags(new_lines) - total_bags(old_lines)
    signed = net if direction == INCREASE else -net
    _apply_universal(signed, context=context, warnings=warnings)
    return warnings


def lines_differ(old_lines: list[dict], new_lines: list[dict]) -> bool:
    """Structural comparison: same items, quantities and prices in the same order."""
    def key(lines):
        return [
            (line["item_id"], to_decimal(line["quantity"]), to_decimal(line.get("price", 0)))
            for line in lines
        ]
    return key(old_lines) != key(new_lines)
