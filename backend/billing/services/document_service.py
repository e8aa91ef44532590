# Overview: Document number allocation for purchases, sales and payments.

"""
Document numbering

Numbers are PREFIX-n with one independent integer sequence per prefix:

    purchase     -> BILL-n
    sale         -> INV-n
    payment-in   -> PAY-IN-n
    payment-out  -> PAY-OUT-n

Allocation increments a DocumentSequence row with a single UPDATE, so two
concurrent requests never read the same "latest" number. The first
allocation for a prefix seeds the row from the highest existing numeric
suffix, which keeps numbering continuous for data created before the
sequence table existed. A fresh prefix starts at 1.

If the sequence lookup itself fails the allocator logs and returns PREFIX-1.
document_number is unique, so such a fallback surfaces as an IntegrityError
on insert and the create operation is retried instead of storing a duplicate.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import DocumentSequence, Payment, Purchase, Sale
from ..validation import ValidationError

logger = logging.getLogger(__name__)


DOCUMENT_PREFIXES = {
    "purchase": ("BILL", Purchase),
    "sale": ("INV", Sale),
    "payment-in": ("PAY-IN", Payment),
    "payment-out": ("PAY-OUT", Payment),
}


def _max_existing_suffix(prefix: str, model) -> int:
    """Greatest trailing integer among existing PREFIX-n numbers (numeric, not lexicographic)."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    numbers = (
        db.session.query(model.document_number)
        .filter(model.document_number.like(f"{prefix}-%"))
        .all()
    )
    highest = 0
    for (number,) in numbers:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def _bump(prefix: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.prefix == prefix)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(prefix=prefix)
        .scalar()
    )
    return current - 1


def _allocate(prefix: str, model) -> int:
    allocated = _bump(prefix)
    if allocated is not None:
        return allocated

    first = _max_existing_suffix(prefix, model) + 1
    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(prefix=prefix, next_number=first + 1))
            db.session.flush()
        return first
    except IntegrityError:
        # Another request created the row first
        allocated = _bump(prefix)
        if allocated is None:
            raise
        return allocated


def next_document_number(document_type: str) -> str:
    """
    Allocate the next number for a document type.

    Runs in a savepoint; a store error rolls back only the allocation and
    falls back to PREFIX-1.
    """
    prefix, model = DOCUMENT_PREFIXES.get(document_type, (None, None))
    if prefix is None:
        raise ValidationError(f"Unknown document type: {document_type}")

    try:
        with db.session.begin_nested():
            number = _allocate(prefix, model)
    except SQLAlchemyError:
        logger.exception("Document sequence lookup failed for %s; falling back to %s-1", prefix, prefix)
        return f"{prefix}-1"

    return f"{prefix}-{number}"


def list_sequences() -> list[DocumentSequence]:
    return db.session.query(DocumentSequence).order_by(DocumentSequence.prefix).all()
