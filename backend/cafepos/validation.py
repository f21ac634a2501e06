from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import to_cents


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Upper bound for a single line quantity
MAX_LINE_QUANTITY = 10_000

# Largest value a 64-bit signed INTEGER column can hold
MAX_DB_INT = 2**63 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: JSON keys clients are allowed to set (security boundary)
    - required_on_create: JSON keys required for POST
    - field_map: JSON key -> column key, when they differ (camelCase API)
    - converters: JSON key -> callable(raw) used instead of column coercion
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    field_map: dict[str, str] = field(default_factory=dict)
    converters: dict[str, Callable[[Any], Any]] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _field_error(field_name: str, message: str) -> dict:
    return {"field": field_name, "message": message}


def _check_db_range(value: int, label: str) -> int:
    if abs(value) > MAX_DB_INT:
        raise ValueError(f"{label} is out of range")
    return value


def parse_strict_int(value: Any, label: str) -> int:
    """
    Integers only: rejects bools, floats, decimals, scientific notation and
    values outside the 64-bit signed range.
    Raises ValueError with a field-level message.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return _check_db_range(value, label)
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError(f"{label} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValueError(f"{label} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValueError(f"{label} must be an integer (no decimals)")
        try:
            parsed = int(stripped)
        except ValueError:
            raise ValueError(f"{label} must be an integer")
        return _check_db_range(parsed, label)
    if isinstance(value, float):
        raise ValueError(f"{label} must be an integer, not a decimal")
    raise ValueError(f"{label} must be an integer")


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_strict_int(value, label)

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValueError(f"{label} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{label} must be a number")

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
    Returns a cleaned patch dict keyed by column name.

    All field problems are collected and raised together as one
    ValidationError with a field-level error list.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []

    if not partial:
        for f in sorted(policy.required_on_create):
            if f not in payload or payload[f] is None or payload[f] == "":
                errors.append(_field_error(f, f"{f} is required"))

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields:
            errors.append(_field_error(k, f"Field not allowed: {k}"))
            continue
        col_key = policy.field_map.get(k, k)
        col = cols.get(col_key)
        if col is None:
            errors.append(_field_error(k, f"Unknown field: {k}"))
            continue

        # NULL handling
        if raw is None:
            if not col.nullable and not any(e["field"] == k for e in errors):
                errors.append(_field_error(k, f"{k} cannot be null"))
            else:
                patch[col_key] = None
            continue

        try:
            converter = policy.converters.get(k)
            val = converter(raw) if converter else _coerce_value(col, raw, k)
        except ValueError as exc:
            errors.append(_field_error(k, str(exc)))
            continue

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                if not any(e["field"] == k for e in errors):
                    errors.append(_field_error(k, f"{k} cannot be blank"))
                continue

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.append(_field_error(k, f"{k} exceeds max length {col.type.length}"))
                continue

        patch[col_key] = val

    if errors:
        raise ValidationError.from_fields(errors)

    return patch


def money_field(label: str) -> Callable[[Any], int]:
    """Converter for decimal JSON amounts stored as cents."""
    def _convert(raw):
        try:
            return to_cents(raw)
        except ValueError:
            raise ValueError(f"{label} must be a number")
    return _convert


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    errors = []
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            errors.append(_field_error("price", "price must be >= 0"))
        elif price > MAX_PRICE_CENTS:
            errors.append(_field_error("price", f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}"))
    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        errors.append(_field_error("stock", "stock must be >= 0"))
    if errors:
        raise ValidationError.from_fields(errors)


def enforce_rules_ingredient(patch: dict) -> None:
    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError.from_fields([_field_error("stock", "stock must be >= 0")])


# =============================================================================
# NESTED PAYLOADS (order items, recipe lines)
# =============================================================================

@dataclass(frozen=True)
class RequestedItem:
    """One line of an order placement request."""
    product_id: int
    quantity: int
    name: str | None = None


@dataclass(frozen=True)
class ItemSnapshot:
    """A line item as written by an order correction (no catalog lookup)."""
    product_id: int | None
    name: str
    price_cents: int
    quantity: int


def _parse_quantity(raw: Any, label: str, errors: list[dict]) -> int | None:
    try:
        qty = parse_strict_int(raw, label)
    except ValueError as exc:
        errors.append(_field_error(label, str(exc)))
        return None
    if qty < 1:
        errors.append(_field_error(label, f"{label} must be >= 1"))
        return None
    if qty > MAX_LINE_QUANTITY:
        errors.append(_field_error(label, f"{label} cannot exceed {MAX_LINE_QUANTITY}"))
        return None
    return qty


def _parse_product_ref(raw: Any, label: str, errors: list[dict], required: bool = True) -> int | None:
    if raw is None or raw == "":
        if required:
            errors.append(_field_error(label, f"{label} is required"))
        return None
    try:
        return parse_strict_int(raw, label)
    except ValueError as exc:
        errors.append(_field_error(label, str(exc)))
        return None


def _require_item_list(raw: Any) -> list:
    if not isinstance(raw, list) or not raw:
        raise ValidationError(
            "Order must contain at least one item",
            [_field_error("items", "items must be a non-empty list")],
        )
    return raw


def parse_total_amount(raw: Any) -> int | None:
    """totalAmount is optional; when present it must be a non-negative amount."""
    if raw is None:
        return None
    try:
        cents = to_cents(raw)
    except ValueError:
        raise ValidationError.from_fields([_field_error("totalAmount", "totalAmount must be a number")])
    if cents < 0:
        raise ValidationError.from_fields([_field_error("totalAmount", "totalAmount must be >= 0")])
    return cents


def parse_order_request(payload: Any) -> tuple[list[RequestedItem], int | None]:
    """
    Validate an order placement body: {items: [{productId, name?, price?, quantity}], totalAmount?}.

    Client name/price are informational; snapshots come from the catalog.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_items = _require_item_list(payload.get("items"))

    errors: list[dict] = []
    items: list[RequestedItem] = []
    for i, raw in enumerate(raw_items):
        prefix = f"items[{i}]"
        if not isinstance(raw, dict):
            errors.append(_field_error(prefix, f"{prefix} must be an object"))
            continue
        product_id = _parse_product_ref(raw.get("productId"), f"{prefix}.productId", errors)
        quantity = _parse_quantity(raw.get("quantity"), f"{prefix}.quantity", errors)
        name = raw.get("name")
        if product_id is not None and quantity is not None:
            items.append(RequestedItem(
                product_id=product_id,
                quantity=quantity,
                name=str(name).strip() if name else None,
            ))

    total_cents = None
    try:
        total_cents = parse_total_amount(payload.get("totalAmount"))
    except ValidationError as exc:
        errors.extend(exc.errors)

    if errors:
        raise ValidationError.from_fields(errors)
    return items, total_cents


def parse_item_snapshots(raw_items: Any) -> list[ItemSnapshot]:
    """Validate replacement line items supplied by an order correction."""
    raw_items = _require_item_list(raw_items)

    errors: list[dict] = []
    snapshots: list[ItemSnapshot] = []
    for i, raw in enumerate(raw_items):
        prefix = f"items[{i}]"
        if not isinstance(raw, dict):
            errors.append(_field_error(prefix, f"{prefix} must be an object"))
            continue
        product_id = _parse_product_ref(raw.get("productId"), f"{prefix}.productId", errors, required=False)
        quantity = _parse_quantity(raw.get("quantity"), f"{prefix}.quantity", errors)

        name = str(raw.get("name") or "").strip()
        if not name:
            errors.append(_field_error(f"{prefix}.name", f"{prefix}.name is required"))

        price_cents = None
        try:
            price_cents = to_cents(raw.get("price"))
        except ValueError:
            errors.append(_field_error(f"{prefix}.price", f"{prefix}.price must be a number"))
        if price_cents is not None and price_cents < 0:
            errors.append(_field_error(f"{prefix}.price", f"{prefix}.price must be >= 0"))
            price_cents = None
        elif price_cents is not None and price_cents > MAX_PRICE_CENTS:
            errors.append(_field_error(f"{prefix}.price", f"{prefix}.price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}"))
            price_cents = None

        if name and quantity is not None and price_cents is not None:
            snapshots.append(ItemSnapshot(
                product_id=product_id,
                name=name,
                price_cents=price_cents,
                quantity=quantity,
            ))

    if errors:
        raise ValidationError.from_fields(errors)
    return snapshots


def parse_ingredient_lines(raw_lines: Any) -> list[dict]:
    """Recipe lines: [{ingredientId, quantityUsed, unit}]. May be empty."""
    if raw_lines is None:
        return []
    if not isinstance(raw_lines, list):
        raise ValidationError.from_fields([_field_error("ingredients", "ingredients must be a list")])

    errors: list[dict] = []
    lines: list[dict] = []
    for i, raw in enumerate(raw_lines):
        prefix = f"ingredients[{i}]"
        if not isinstance(raw, dict):
            errors.append(_field_error(prefix, f"{prefix} must be an object"))
            continue
        ingredient_id = _parse_product_ref(raw.get("ingredientId"), f"{prefix}.ingredientId", errors)

        quantity_used = raw.get("quantityUsed")
        if isinstance(quantity_used, bool) or not isinstance(quantity_used, (int, float)) or quantity_used < 0:
            errors.append(_field_error(f"{prefix}.quantityUsed", f"{prefix}.quantityUsed must be a number >= 0"))
            quantity_used = None

        unit = str(raw.get("unit") or "").strip()
        if not unit:
            errors.append(_field_error(f"{prefix}.unit", f"{prefix}.unit is required"))

        if ingredient_id is not None and quantity_used is not None and unit:
            lines.append({"ingredient_id": ingredient_id, "quantity_used": float(quantity_used), "unit": unit})

    if errors:
        raise ValidationError.from_fields(errors)
    return lines


ORDER_WRITABLE_FIELDS = {"items", "totalAmount", "status"}


def parse_order_patch(payload: Any) -> dict:
    """
    Validate an order correction: any of items, totalAmount, status.

    orderDate and orderedBy are immutable and rejected like any other
    non-writable field. Status is returned raw; the ledger normalizes it.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = [
        _field_error(k, f"Field not allowed: {k}")
        for k in payload
        if k not in ORDER_WRITABLE_FIELDS
    ]
    if errors:
        raise ValidationError.from_fields(errors)
    if not payload:
        raise ValidationError("Nothing to update")

    patch: dict = {}
    if "items" in payload:
        patch["items"] = parse_item_snapshots(payload["items"])
    if "totalAmount" in payload:
        if payload["totalAmount"] is None:
            raise ValidationError.from_fields([_field_error("totalAmount", "totalAmount cannot be null")])
        patch["total_amount_cents"] = parse_total_amount(payload["totalAmount"])
    if "status" in payload:
        if not isinstance(payload["status"], str) or not payload["status"].strip():
            raise ValidationError.from_fields([_field_error("status", "status must be a non-empty string")])
        patch["status"] = payload["status"]
    return patch
