# Overview: Stock ledger; batch product loading, availability checks and in-place stock deduction.

"""
Stock Ledger

WHY: Stock is the one value that concurrent transactions fight over.
Availability is checked up front (for a useful error before any write) and
then enforced again by the database at deduction time:

    UPDATE products SET stock = stock - :qty
    WHERE id = :id AND org_id = :org AND stock >= :qty

A zero rowcount means another transaction consumed the stock in between.
The caller's write unit is rolled back and InsufficientStockError raised,
so stock never goes negative and no partial deduction survives.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Iterable

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError


class ProductsNotFoundError(NotFoundError):
    def __init__(self, missing_ids: list[int]):
        super().__init__(
            f"Products not found: {', '.join(str(i) for i in missing_ids)}",
            details={"missing_ids": list(missing_ids)},
        )
        self.missing_ids = list(missing_ids)


class InsufficientStockError(ValidationError):
    def __init__(self, product_name: str, available: int, requested: int, product_id: int | None = None):
        super().__init__(
            f"Not enough stock for product '{product_name}'. Available: {available}, Requested: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


def load_products(product_ids: Iterable[int], org_id: int) -> dict[int, Product]:
    """
    Fetch every referenced product of the organization in one query.

    Raises ProductsNotFoundError listing ids that do not exist in the org
    (foreign-org ids are reported as missing).
    """
    wanted = list(OrderedDict.fromkeys(product_ids))
    if not wanted:
        return {}

    products = (
        db.session.query(Product)
        .filter(Product.org_id == org_id, Product.id.in_(wanted))
        .all()
    )
    by_id = {p.id: p for p in products}

    missing = [pid for pid in wanted if pid not in by_id]
    if missing:
        raise ProductsNotFoundError(missing)
    return by_id


def requested_quantities(items) -> "OrderedDict[int, int]":
    """Total requested quantity per product, in first-seen order."""
    totals: OrderedDict[int, int] = OrderedDict()
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def check_availability(products: dict[int, Product], items) -> None:
    """Raise InsufficientStockError for the first product that cannot cover its quantity."""
    for product_id, qty in requested_quantities(items).items():
        product = products[product_id]
        if product.stock < qty:
            raise InsufficientStockError(product.name, product.stock, qty, product_id=product.id)


def deduct_stock(product_id: int, quantity: int, org_id: int) -> None:
    """
    Decrement stock in place inside the caller's write unit.

    Raises InsufficientStockError when the guarded UPDATE matches no row.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.org_id == org_id,
            Product.stock >= quantity,
        )
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = (
            db.session.query(Product.name, Product.stock)
            .filter(Product.id == product_id, Product.org_id == org_id)
            .first()
        )
        if current is None:
            raise ProductsNotFoundError([product_id])
        raise InsufficientStockError(current.name, current.stock, quantity, product_id=product_id)
