from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .money import to_decimal, to_money, to_quantity


# Maximum monetary value: 999,999,999,999.99
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT = Decimal("999999999999.99")
# Line quantities are stored as Numeric(14, 3)
MAX_QUANTITY = Decimal("99999999999.999")

DATE_PATTERNS = (
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),  # MM/DD/YYYY
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),  # YYYY-MM-DD
)
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")

TRANSACTION_STATUSES = ("pending", "completed", "cancelled")
PARTY_ROLES = ("customer", "supplier", "general")
ITEM_CATEGORIES = ("Primary", "Kirana")
PAYMENT_TYPES = ("payment-in", "payment-out")
PAYMENT_METHODS = ("cash", "bank_transfer", "cheque", "upi", "card", "other")


class ValidationError(ValueError):
    """400-level input problem. Carries every message found, not just the first."""

    def __init__(self, errors: str | list[str]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate party, deleting the universal item)."""


class NotFoundError(LookupError):
    """404-level: a referenced party, item or transaction id does not resolve."""


class InternalError(RuntimeError):
    """500-level: store or collaborator failure. Details stay in the server log."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric before Integer: Numeric is not an Integer subclass, but keep order explicit
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, str) and not value.strip():
            raise ValidationError(f"{col.key} must be a number")
        try:
            number = to_decimal(value.strip() if isinstance(value, str) else value)
        except ValueError:
            raise ValidationError(f"{col.key} must be a number")
        if not number.is_finite():
            raise ValidationError(f"{col.key} must be a finite number")
        if abs(number) > MAX_AMOUNT:
            raise ValidationError(f"{col.key} cannot exceed {MAX_AMOUNT}")
        return number

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    All problems are collected and raised together in one ValidationError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[str] = []

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            errors.append(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields:
            errors.append(f"Field not allowed: {k}")
            continue
        if k not in cols:
            errors.append(f"Unknown field: {k}")
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                if not partial and k in required:
                    continue  # already reported as missing
                errors.append(f"{k} cannot be null")
                continue
            patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValidationError as exc:
            errors.extend(exc.errors)
            continue

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                if not (not partial and k in required):
                    errors.append(f"{k} cannot be blank")
                continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.append(f"{k} exceeds max length {col.type.length}")
                continue

        patch[k] = val

    if errors:
        raise ValidationError(errors)
    return patch


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(re.sub(r"\s", "", phone or "")))


def is_valid_date_text(value: str) -> bool:
    return any(p.match(value) for p in DATE_PATTERNS)


def enforce_rules_party(patch: dict) -> None:
    errors = []
    if "role" in patch and patch["role"] not in PARTY_ROLES:
        errors.append(f"role must be one of: {', '.join(PARTY_ROLES)}")
    if patch.get("phone_number") and not is_valid_phone(patch["phone_number"]):
        errors.append("Invalid phone number format")
    if patch.get("email") and "@" not in patch["email"]:
        errors.append("email must be a valid email address")
    if errors:
        raise ValidationError(errors)


def enforce_rules_item(patch: dict) -> None:
    errors = []
    if "category" in patch and patch["category"] not in ITEM_CATEGORIES:
        errors.append('Category must be either "Primary" or "Kirana"')
    for field in ("purchase_price", "sale_price", "opening_stock", "low_stock_alert"):
        if patch.get(field) is not None and patch[field] < 0:
            errors.append(f"{field} must be a non-negative number")
    if patch.get("as_of_date") and not DATE_PATTERNS[1].match(patch["as_of_date"]):
        errors.append("as_of_date must be in YYYY-MM-DD format")
    if errors:
        raise ValidationError(errors)


def validate_status(status, *, field: str = "status") -> str:
    if status not in TRANSACTION_STATUSES:
        raise ValidationError(f"Valid {field} is required (pending, completed, cancelled)")
    return status


def validate_date_text(value, *, field: str = "date") -> str:
    if not isinstance(value, str) or not is_valid_date_text(value.strip()):
        raise ValidationError(f"{field} must be in MM/DD/YYYY or YYYY-MM-DD format")
    return value.strip()


def validate_line_items(items) -> list[dict]:
    """
    Normalize purchase/sale line items.

    Accepts [{"item_id"|"id": int, "quantity": kg, "price": number, "item_name"?}].
    Returns [{"item_id", "item_name", "quantity", "price"}] with Decimals,
    quantity rounded to 3 places and price to 2, the precision the line
    columns store. Line and document totals are bounded by MAX_AMOUNT.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    errors: list[str] = []
    lines: list[dict] = []
    for idx, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            errors.append(f"items[{idx}] must be an object")
            continue

        item_id = raw.get("item_id", raw.get("id"))
        if isinstance(item_id, str) and item_id.strip().isdigit():
            item_id = int(item_id.strip())
        if not isinstance(item_id, int) or isinstance(item_id, bool) or item_id <= 0:
            errors.append(f"items[{idx}].item_id must be a positive integer")
            continue

        try:
            quantity = to_decimal(raw.get("quantity"))
        except ValueError:
            errors.append(f"items[{idx}].quantity must be a number")
            continue
        if not quantity.is_finite() or to_quantity(quantity) <= 0:
            errors.append(f"items[{idx}].quantity must be greater than 0")
            continue
        quantity = to_quantity(quantity)
        if quantity > MAX_QUANTITY:
            errors.append(f"items[{idx}].quantity cannot exceed {MAX_QUANTITY}")
            continue

        try:
            price = to_decimal(raw.get("price", 0) if raw.get("price") is not None else 0)
        except ValueError:
            errors.append(f"items[{idx}].price must be a number")
            continue
        if not price.is_finite() or price < 0:
            errors.append(f"items[{idx}].price must be a non-negative number")
            continue
        price = to_money(price)
        if price > MAX_AMOUNT:
            errors.append(f"items[{idx}].price cannot exceed {MAX_AMOUNT}")
            continue

        line_total = to_money(quantity * price)
        if line_total > MAX_AMOUNT:
            errors.append(f"items[{idx}] total cannot exceed {MAX_AMOUNT}")
            continue

        name = raw.get("item_name") or raw.get("name")
        lines.append({
            "item_id": item_id,
            "item_name": str(name).strip()[:255] if name else None,
            "quantity": quantity,
            "price": price,
        })

    if not errors and sum(to_money(line["quantity"] * line["price"]) for line in lines) > MAX_AMOUNT:
        errors.append(f"Total amount cannot exceed {MAX_AMOUNT}")

    if errors:
        raise ValidationError(errors)
    return lines


def validate_amount(value, *, field: str = "amount", allow_zero: bool = False) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field.capitalize()} must be greater than 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount
