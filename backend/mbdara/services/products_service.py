# backend/mbdara/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are tenant-scoped by org_id.
Products of another organization behave exactly like missing products.
"""
from __future__ import annotations
from ..extensions import db
from ..models import Product, TransactionItem, Discount
from ..validation import ConflictError
from .tenant_service import get_scoped, scoped_query

PRODUCT_MUTABLE_FIELDS = {"name", "price", "cogs", "description", "stock", "bundle_tier"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    *,
    org_id: int,
    offset: int = 0,
    limit: int = 100,
    search: str | None = None,
) -> list[dict]:
    """
    Tenant-scoped product listing.

    search matches name or description, case-insensitive.
    """
    query = scoped_query(Product, org_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

    products = query.order_by(Product.id.asc()).offset(offset).limit(limit).all()
    return [p.to_dict() for p in products]


def get_product(*, product_id: int, org_id: int) -> dict | None:
    p = get_scoped(Product, product_id, org_id)
    return p.to_dict() if p else None


def create_product(*, patch: dict, org_id: int) -> dict:
    """Create product in the organization from a validated patch dict."""
    p = Product(org_id=org_id, stock=0, cogs=0)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict, org_id: int) -> dict | None:
    """
    Update a product.

    Returns updated product dict, or None if not found in the organization.
    """
    p = get_scoped(Product, product_id, org_id)
    if not p:
        return None

    apply_product_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int, org_id: int) -> bool:
    """
    Hard-delete a product.

    Returns False if not found. Raises ConflictError while transaction
    items or discounts still reference it.
    """
    p = get_scoped(Product, product_id, org_id)
    if not p:
        return False

    if db.session.query(TransactionItem.id).filter_by(product_id=p.id).first() is not None:
        raise ConflictError("Product is referenced by existing transactions")
    if db.session.query(Discount.id).filter_by(product_id=p.id).first() is not None:
        raise ConflictError("Product is referenced by a discount")

    db.session.delete(p)
    db.session.commit()
    return True
