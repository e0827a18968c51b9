# Overview: Service-layer operations for transactions; pricing, stock settlement and read views.

"""
Transaction Orchestrator

WHY: A transaction is priced, stock-checked and persisted as one unit.
Either the transaction row, its items and every stock deduction exist
together, or none of them do.

FLOW (create_transaction):
1. Validate input (non-empty, positive quantities)
2. Batch-load products for the org (one query)
3. Resolve discount code (if any)
4. Check stock, price each line, accumulate total and COGS
5. Apply whole-order discount
6. Compute profit (rounded per PROFIT_ROUNDING)
7. Commit atomically: transaction row, in-place stock decrements, items
8. Re-read items joined with product names (one query)

Every failure in steps 1-6 happens before any write. A failure in step 7
rolls back the whole unit.

READS: list and get load items for all transactions on the page with a
single joined query, never one query per transaction or per item.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Transaction, TransactionItem, Product
from ..validation import DetailedError, ValidationError
from mbdara.time_utils import parse_iso_datetime, utcnow
from .concurrency import atomic
from .discount_service import resolve_discount, line_discount_for
from .pricing_service import (
    SCOPE_WHOLE_ORDER,
    apply_order_discount,
    compute_profit,
    price_line_item,
)
from .stock_service import check_availability, deduct_stock, load_products
from .tenant_service import get_scoped, scoped_query


class TransactionError(DetailedError):
    """Raised when the write unit fails for a reason the caller cannot fix."""


class EmptyOrderError(ValidationError):
    def __init__(self):
        super().__init__("Transaction must have at least one item")


@dataclass(frozen=True)
class TransactionItemInput:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class TransactionCreateInput:
    items: list[TransactionItemInput] = field(default_factory=list)
    discount_code: str | None = None
    payment_method: str | None = None
    created_at: datetime | None = None


def _positive_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a positive integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def _optional_str(payload: dict, key: str, max_length: int) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value


def parse_transaction_payload(payload) -> TransactionCreateInput:
    """
    Validate a POST /transactions body into TransactionCreateInput.

    An empty items list is accepted here and rejected by create_transaction.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_items = payload.get("items")
    if raw_items is None:
        raise ValidationError("Missing required fields: items")
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        items.append(
            TransactionItemInput(
                product_id=_positive_int(raw.get("product_id"), f"items[{index}].product_id"),
                quantity=_positive_int(raw.get("quantity"), f"items[{index}].quantity"),
            )
        )

    created_at = None
    if payload.get("created_at") is not None:
        if not isinstance(payload["created_at"], str):
            raise ValidationError("created_at must be an ISO-8601 datetime")
        try:
            created_at = parse_iso_datetime(payload["created_at"])
        except ValueError:
            raise ValidationError("created_at must be an ISO-8601 datetime")

    return TransactionCreateInput(
        items=items,
        discount_code=_optional_str(payload, "discount_code", 50),
        payment_method=_optional_str(payload, "payment_method", 50),
        created_at=created_at,
    )


def items_by_transaction(transaction_ids: list[int]) -> dict[int, list[dict]]:
    """
    Items (with product names) for a set of transactions, in one query.

    Returns {transaction_id: [item_dict, ...]} ordered by item id.
    """
    grouped: dict[int, list[dict]] = {tid: [] for tid in transaction_ids}
    if not transaction_ids:
        return grouped

    rows = (
        db.session.query(TransactionItem, Product.name)
        .join(Product, Product.id == TransactionItem.product_id)
        .filter(
            TransactionItem.transaction_id.isnot(None),
            TransactionItem.transaction_id.in_(transaction_ids),
        )
        .order_by(TransactionItem.transaction_id.asc(), TransactionItem.id.asc())
        .all()
    )
    for item, product_name in rows:
        grouped.setdefault(item.transaction_id, []).append(item.to_dict(product_name=product_name))
    return grouped


def _transaction_view(txn: Transaction, items: list[dict]) -> dict:
    data = txn.to_dict()
    data["items"] = items
    return data


def create_transaction(
    org_id: int,
    items: list[TransactionItemInput],
    discount_code: str | None = None,
    payment_method: str | None = None,
    created_at: datetime | None = None,
) -> dict:
    """
    Price, settle and persist a transaction.

    Raises:
        EmptyOrderError: no items
        ProductsNotFoundError: any product id missing from the org
        DiscountNotFoundError: discount_code given but unknown in the org
        InsufficientStockError: not enough stock (before or during commit)
        TransactionError: storage failure inside the write unit
    """
    # 1. Validate
    if not items:
        raise EmptyOrderError()
    for item in items:
        _positive_int(item.quantity, "quantity")

    # 2. Batch-load products
    products = load_products((item.product_id for item in items), org_id)

    # 3. Resolve discount
    discount = resolve_discount(discount_code, org_id) if discount_code else None

    # 4. Stock check + per-line pricing
    check_availability(products, items)

    total_amount = Decimal("0")
    total_cogs = Decimal("0")
    lines: list[tuple[TransactionItemInput, Decimal]] = []
    for item in items:
        product = products[item.product_id]
        line_total = price_line_item(
            product.price,
            item.quantity,
            bundle_tier=product.bundle_tier,
            discount=line_discount_for(discount, product.id),
        )
        total_amount += line_total
        total_cogs += (product.cogs or Decimal("0")) * item.quantity
        lines.append((item, line_total))

    # 5. Whole-order discount
    if discount is not None and discount.type == SCOPE_WHOLE_ORDER:
        total_amount = apply_order_discount(total_amount, discount.percentage)

    # 6. Profit
    profit = compute_profit(total_amount, total_cogs, current_app.config.get("PROFIT_ROUNDING", "ROUND_HALF_UP"))

    # 7. Commit atomically
    try:
        with atomic():
            txn = Transaction(
                org_id=org_id,
                total_amount=total_amount,
                profit=profit,
                created_at=created_at or utcnow(),
                discount=discount_code if discount is not None else None,
                payment_method=payment_method,
            )
            db.session.add(txn)
            db.session.flush()

            for item, line_total in lines:
                deduct_stock(item.product_id, item.quantity, org_id)
                db.session.add(TransactionItem(
                    transaction_id=txn.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=line_total,
                ))
            db.session.flush()
            txn_id = txn.id
    except SQLAlchemyError as exc:
        current_app.logger.exception("Transaction commit failed for org_id=%s", org_id)
        raise TransactionError("Failed to create transaction") from exc

    current_app.logger.info(
        "Created transaction id=%s org_id=%s items=%d total=%s profit=%s",
        txn_id, org_id, len(lines), total_amount, profit,
    )

    # 8. Materialize response
    txn = db.session.get(Transaction, txn_id)
    return _transaction_view(txn, items_by_transaction([txn_id])[txn_id])


def list_transactions(
    *,
    org_id: int,
    offset: int = 0,
    limit: int = 100,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[dict]:
    """Newest-first page of the org's transactions, items batched per page."""
    query = scoped_query(Transaction, org_id)
    if start_date is not None:
        query = query.filter(Transaction.created_at >= start_date)
    if end_date is not None:
        query = query.filter(Transaction.created_at <= end_date)

    transactions = (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    if not transactions:
        return []

    grouped = items_by_transaction([t.id for t in transactions])
    return [_transaction_view(t, grouped.get(t.id, [])) for t in transactions]


def get_transaction(*, transaction_id: int, org_id: int) -> dict | None:
    txn = get_scoped(Transaction, transaction_id, org_id)
    if txn is None:
        return None
    return _transaction_view(txn, items_by_transaction([txn.id])[txn.id])
