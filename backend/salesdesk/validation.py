from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInput
from .money import quantize


# Maximum price: 99,999,999.99 fits Numeric(10, 2)
MAX_PRICE = Decimal("99999999.99")


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


def parse_int(name: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise InvalidInput(f"{name} must be an integer")


def required_id(label: str, value: Any) -> int:
    """Resolve an ?id= query value; absent gives '<label> ID is required'."""
    if value is None or value == "":
        raise InvalidInput(f"{label} ID is required")
    return parse_int(f"{label} ID", value)


def parse_decimal(name: str, value: Any) -> Decimal:
    """Accept JSON numbers or numeric strings; reject bools and NaN/Infinity."""
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{name} must be a number")
    if not isinstance(value, (int, float, str, Decimal)):
        raise InvalidInput(f"{name} must be a number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidInput(f"{name} must be a number")
    if not number.is_finite():
        raise InvalidInput(f"{name} must be a number")
    return number


def parse_money(name: str, value: Any, *, allow_negative: bool = False) -> Decimal:
    amount = quantize(parse_decimal(name, value))
    if not allow_negative and amount < 0:
        raise InvalidInput(f"{name} must be >= 0")
    if abs(amount) > MAX_PRICE:
        raise InvalidInput(f"{name} cannot exceed {MAX_PRICE}")
    return amount


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Numeric):
        return parse_money(col.key, value)

    if isinstance(coltype, Integer):
        return parse_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidInput(f"{col.key} must be a boolean")

    # Strings / Text: objects and arrays never reach a text column
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, str):
            raise InvalidInput(f"{col.key} must be a string")
        return value.strip()

    # Default: leave as-is
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

    Keys outside writable_fields are ignored rather than rejected, so
    clients may send back whole records they received.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise InvalidInput(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank strings: required text fields may not be blank, optional ones become NULL
        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                raise InvalidInput(f"{k} cannot be blank")
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidInput(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("min_stock_level") is not None and patch["min_stock_level"] < 0:
        raise InvalidInput("min_stock_level must be >= 0")
    # Sales may drive stock below zero; an entered quantity may not
    if patch.get("stock_quantity") is not None and patch["stock_quantity"] < 0:
        raise InvalidInput("stock_quantity must be >= 0")


def enforce_rules_customer(patch: dict) -> None:
    if "customer_type" in patch and patch["customer_type"] not in ("individual", "business"):
        raise InvalidInput("customer_type must be individual or business")
