# Overview: Party ledger: running balance adjustments plus the append-only reconciliation log.

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from ..extensions import db
from ..models import Party, ReconciliationEvent
from ..money import to_decimal, to_money
from ..validation import NotFoundError, ValidationError
from .concurrency import lock_for_update
"""
Party Ledger Invariants (authoritative)

- One running balance per party, rounded to 2 places (half-up).
- add/subtract apply a signed delta to the current balance; set overwrites.
- A missing party raises NotFoundError. Every other failure propagates:
  ledger errors are never absorbed, they abort the enclosing operation.
- Balance rows are read with FOR UPDATE and carry a version column, so a
  concurrent writer fails with StaleDataError instead of losing an update.
- Each adjustment made on behalf of a document is recorded as a
  ReconciliationEvent in the same DB transaction.
"""

logger = logging.getLogger(__name__)

OP_ADD = "add"
OP_SUBTRACT = "subtract"
OP_SET = "set"
VALID_OPERATIONS = (OP_ADD, OP_SUBTRACT, OP_SET)

REVERSE_OPERATION = {OP_ADD: OP_SUBTRACT, OP_SUBTRACT: OP_ADD}


@dataclass(frozen=True)
class DocumentContext:
    """Which document operation an effect belongs to (for the reconciliation log)."""
    document_type: str
    document_id: int
    document_number: str | None
    operation: str


def append_reconciliation_event(
    *,
    context: DocumentContext,
    entity_type: str,
    entity_id: int | None,
    effect: str,
    amount,
    outcome: str = "applied",
    note: str | None = None,
) -> ReconciliationEvent:
    """
    Append-only reconciliation event.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    ev = ReconciliationEvent(
        document_type=context.document_type,
        document_id=context.document_id,
        document_number=context.document_number,
        operation=context.operation,
        entity_type=entity_type,
        entity_id=entity_id,
        effect=effect,
        amount=to_decimal(amount),
        outcome=outcome,
        note=note[:255] if note else None,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def get_party_for_update(party_id: int) -> Party:
    party = lock_for_update(db.session.query(Party).filter_by(id=party_id)).first()
    if party is None:
        raise NotFoundError("Party not found")
    return party


def adjust_balance(
    party_id: int,
    amount,
    operation: str,
    *,
    context: DocumentContext | None = None,
) -> Party:
    """
    Apply a balance operation to a party.

    Args:
        party_id: Party to adjust
        amount: Currency amount (rounded to 2 places)
        operation: add, subtract or set
        context: Document operation on whose behalf this runs (logged)

    Returns:
        The updated Party (flushed, not committed)

    Raises:
        ValidationError: Unknown operation or non-numeric amount
        NotFoundError: Party does not exist
    """
    if operation not in VALID_OPERATIONS:
        raise ValidationError("Operation must be add, subtract, or set")
    try:
        value = to_money(amount)
    except ValueError:
        raise ValidationError("amount must be a number")

    party = get_party_for_update(party_id)
    current = Decimal(party.balance or 0)

    if operation == OP_ADD:
        party.balance = to_money(current + value)
    elif operation == OP_SUBTRACT:
        party.balance = to_money(current - value)
    else:
        party.balance = value

    db.session.flush()

    if context is not None:
        append_reconciliation_event(
            context=context,
            entity_type="party",
            entity_id=party.id,
            effect=operation,
            amount=value,
        )

    logger.debug("Party %s balance %s %s -> %s", party.id, operation, value, party.balance)
    return party
