# Overview: Service-layer operations for parties; phone normalization, find-or-create and CRUD.

# backend/billing/services/party_service.py

from __future__ import annotations

import logging
import re

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Party, Payment, Purchase, Sale
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_party,
    validate_payload,
)
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


PARTY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone_number", "role", "address", "email", "balance"},
    required_on_create={"name", "phone_number"},
)

_PHONE_STRIP = re.compile(r"[^\d+]")


def normalize_phone(phone: str | None) -> str:
    """
    Canonical phone form used for party identity.

    Drops whitespace and every character except digits and "+". Numbers
    without a leading "+" get the default country code.
    """
    cleaned = _PHONE_STRIP.sub("", phone or "")
    if not cleaned:
        return ""
    if cleaned.startswith("+"):
        return cleaned
    country_code = current_app.config.get("DEFAULT_COUNTRY_CODE", "+91")
    return f"{country_code}{cleaned}"


def _prepare_patch(data: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Party, payload=data, policy=PARTY_POLICY, partial=partial)
    if "phone_number" in patch:
        patch["phone_number"] = normalize_phone(patch["phone_number"])
        if not patch["phone_number"]:
            raise ValidationError("phone_number cannot be blank")
    enforce_rules_party(patch)
    return patch


def _find_by_identity(name: str, phone_number: str) -> Party | None:
    return db.session.query(Party).filter_by(name=name, phone_number=phone_number).first()


# =============================================================================
# QUERIES
# =============================================================================

def get_party(party_id: int) -> Party:
    party = db.session.get(Party, party_id)
    if party is None:
        raise NotFoundError("Party not found")
    return party


def list_parties(*, role: str | None = None, search: str | None = None) -> list[Party]:
    q = db.session.query(Party)
    if role and role != "all":
        q = q.filter(Party.role == role)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Party.name.ilike(like), Party.phone_number.ilike(like)))
    return q.order_by(Party.created_at.desc(), Party.id.desc()).all()


# =============================================================================
# FIND OR CREATE
# =============================================================================

def find_or_create(data: dict, *, default_role: str = "general") -> tuple[Party, bool]:
    """
    Resolve a party by exact (name, normalized phone), creating it if absent.

    An existing party is returned untouched (its balance is never reset).
    A concurrent insert of the same identity loses on the unique constraint
    and re-reads the winner's row. Flushes but does not commit; the caller
    owns the transaction.

    Returns:
        (party, created)
    """
    data = data or {}
    name = (data.get("name") or "").strip()
    phone_number = normalize_phone(data.get("phone_number"))
    if not name or not phone_number:
        raise ValidationError("Party name and phone number are required")

    existing = _find_by_identity(name, phone_number)
    if existing is not None:
        return existing, False

    patch = _prepare_patch(
        {
            "name": name,
            "phone_number": phone_number,
            "role": data.get("role") or default_role,
            "address": data.get("address"),
            "email": data.get("email"),
        },
        partial=False,
    )

    try:
        with db.session.begin_nested():
            party = Party(balance=0, **patch)
            db.session.add(party)
            db.session.flush()
    except IntegrityError:
        party = _find_by_identity(name, phone_number)
        if party is None:
            raise
        return party, False

    logger.info("Created party %s (%s, %s)", party.id, party.name, party.phone_number)
    return party, True


# =============================================================================
# CRUD
# =============================================================================

def create_party(data: dict) -> Party:
    patch = _prepare_patch(data, partial=False)
    if _find_by_identity(patch["name"], patch["phone_number"]) is not None:
        raise ConflictError("A party with this name and phone number already exists")

    party = Party(**patch)
    db.session.add(party)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A party with this name and phone number already exists")
    return party


def update_party(party_id: int, data: dict) -> Party:
    """Direct edit. Balance may be overwritten here; it is the only path besides the ledger."""
    patch = _prepare_patch(data, partial=True)
    party = lock_for_update(db.session.query(Party).filter_by(id=party_id)).first()
    if party is None:
        raise NotFoundError("Party not found")

    name = patch.get("name", party.name)
    phone_number = patch.get("phone_number", party.phone_number)
    if (name, phone_number) != (party.name, party.phone_number):
        other = _find_by_identity(name, phone_number)
        if other is not None and other.id != party.id:
            raise ConflictError("Another party with this name and phone number already exists")

    for key, value in patch.items():
        setattr(party, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Another party with this name and phone number already exists")
    return party


def delete_party(party_id: int) -> None:
    """
    Delete a party without touching its transactions.

    Transactions keep their denormalized name/phone; their party reference
    is cleared so later updates skip the ledger step.
    """
    party = get_party(party_id)
    for model in (Purchase, Sale, Payment):
        db.session.query(model).filter(model.party_id == party.id).update(
            {model.party_id: None}, synchronize_session=False
        )
    db.session.delete(party)
    db.session.commit()
    logger.info("Deleted party %s", party_id)
