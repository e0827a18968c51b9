from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from mbdara.money import to_decimal, quantize_units
from mbdara.time_utils import parse_iso_datetime
from mbdara.services.pricing_service import BundleTier, DISCOUNT_SCOPES, SCOPE_SINGLE_PRODUCT, SCOPE_WHOLE_ORDER


# Largest value a Numeric(10, 2) column holds
MAX_MONEY = Decimal("99999999.99")


class DetailedError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(DetailedError, ValueError):
    """400-level input problem."""


class ConflictError(DetailedError, ValueError):
    """409-level business rule conflict (e.g., duplicate discount code)."""


class NotFoundError(DetailedError, LookupError):
    """404-level: the entity does not exist in the caller's organization."""


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


def _coerce_value(key: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")
        # Whole floats from JSON (e.g. 3.0) are accepted, fractional ones are not
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{key} must be an integer, not a decimal")
        raise ValidationError(f"{key} must be an integer")

    # Fixed-precision numbers (money, percentages)
    if isinstance(coltype, Numeric):
        try:
            return to_decimal(value)
        except ValueError:
            raise ValidationError(f"{key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)):
            raise ValidationError(f"{key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
    field_map: dict[str, str] | None = None,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model attribute.

    field_map renames wire fields to model attributes (e.g. product_id on the
    wire is product_id on the model, but "date" may be stored elsewhere).

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    field_map = field_map or {}

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if field_map.get(k, k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        attr = field_map.get(k, k)
        col = cols[attr]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[attr] = None
            continue

        val = _coerce_value(k, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[attr] = val

    return patch


def _require_money_range(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0:
            raise ValidationError(f"{key} must be greater than or equal to 0")
        if value > MAX_MONEY:
            raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.

    Bundle fields are folded into a single "bundle_tier" entry
    (BundleTier or None) so the pair can never be half-set.
    """
    _require_money_range(patch, "price")
    _require_money_range(patch, "cogs")

    if "cogs" in patch and patch["cogs"] is not None:
        # COGS is tracked in whole currency units
        patch["cogs"] = quantize_units(patch["cogs"])

    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError("stock must be greater than or equal to 0")

    has_quantity = "bundle_quantity" in patch
    has_price = "bundle_price" in patch
    if has_quantity != has_price:
        raise ValidationError("bundle_quantity and bundle_price must be provided together or both omitted")

    if has_quantity:
        quantity = patch.pop("bundle_quantity")
        price = patch.pop("bundle_price")
        if quantity is None and price is None:
            patch["bundle_tier"] = None
        elif quantity is None or price is None:
            raise ValidationError("bundle_quantity and bundle_price must both be set or both be null")
        else:
            if price > MAX_MONEY:
                raise ValidationError(f"bundle_price cannot exceed {MAX_MONEY}")
            try:
                patch["bundle_tier"] = BundleTier(quantity=quantity, price=price)
            except ValueError as e:
                raise ValidationError(str(e))


def enforce_rules_discount(patch: dict) -> None:
    if "type" in patch and patch["type"] not in DISCOUNT_SCOPES:
        raise ValidationError(
            f"type must be one of: {SCOPE_SINGLE_PRODUCT}, {SCOPE_WHOLE_ORDER}"
        )
    if "percentage" in patch and patch["percentage"] is not None:
        pct = patch["percentage"]
        if pct < 0 or pct > 100:
            raise ValidationError("percentage must be between 0 and 100")


def enforce_rules_expense(patch: dict) -> None:
    _require_money_range(patch, "amount")


def parse_pagination(args, *, default_limit: int = 100, max_limit: int = 500) -> tuple[int, int]:
    """Read offset/limit query parameters. Malformed values are a 400, not a silent default."""
    def _read(name: str, default: int) -> int:
        raw = args.get(name)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an integer")
        if value < 0:
            raise ValidationError(f"{name} must be >= 0")
        return value

    offset = _read("offset", 0)
    limit = _read("limit", default_limit)
    if limit == 0:
        raise ValidationError("limit must be >= 1")
    return offset, min(limit, max_limit)


def _is_date_only(value: str) -> bool:
    return len(value.strip()) == 10 and "T" not in value


def parse_date_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """
    Parse inclusive ISO-8601 bounds.

    A date-only end bound ("2026-01-31") covers that whole day.
    """
    try:
        start_dt = parse_iso_datetime(start)
    except ValueError:
        raise ValidationError("Invalid start_date format. Use ISO 8601 format (e.g., 2026-01-01T00:00:00Z)")
    try:
        end_dt = parse_iso_datetime(end)
    except ValueError:
        raise ValidationError("Invalid end_date format. Use ISO 8601 format (e.g., 2026-01-31T23:59:59Z)")

    if end_dt is not None and _is_date_only(end):
        end_dt = datetime.combine(end_dt.date(), time.max)

    if start_dt is not None and end_dt is not None and start_dt > end_dt:
        raise ValidationError("start_date must be before or equal to end_date")

    return start_dt, end_dt


def error_body(e: Exception) -> dict:
    """JSON error payload: {"error": message} plus "details" when the error carries any."""
    body = {"error": str(e)}
    details = getattr(e, "details", None)
    if details:
        body["details"] = details
    return body
