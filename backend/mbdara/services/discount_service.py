# Overview: Service-layer operations for discounts; lookup by code and scope validation.

"""
Discount Resolver

MULTI-TENANT: Codes are unique per organization and every lookup is
scoped by org_id.

SCOPES:
- individual_item: product_id required, product must belong to the same org
- for_all_item: product_id must be absent

Scope rules are validated when a discount is created or updated, never at
redemption time.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Discount, Product
from ..validation import ConflictError, NotFoundError, ValidationError
from .pricing_service import LineDiscount, SCOPE_SINGLE_PRODUCT, SCOPE_WHOLE_ORDER
from .tenant_service import get_scoped, scoped_query

DISCOUNT_MUTABLE_FIELDS = {"name", "code", "type", "percentage", "product_id"}


class DiscountNotFoundError(NotFoundError):
    def __init__(self, code: str):
        super().__init__(f"Discount code '{code}' not found", details={"code": code})
        self.code = code


def resolve_discount(code: str, org_id: int) -> Discount:
    """Discount with this code in the organization, or DiscountNotFoundError."""
    discount = scoped_query(Discount, org_id).filter(Discount.code == code).first()
    if discount is None:
        raise DiscountNotFoundError(code)
    return discount


def line_discount_for(discount: Discount | None, product_id: int) -> LineDiscount | None:
    """Pricing view of a discount for one product's line."""
    if discount is None:
        return None
    return LineDiscount(
        scope=discount.type,
        percentage=discount.percentage,
        applies_to_this_product=(
            discount.type == SCOPE_SINGLE_PRODUCT
            and discount.product_id is not None
            and discount.product_id == product_id
        ),
    )


def _validate_scope(discount_type: str, product_id: int | None, org_id: int, product_id_supplied: bool) -> None:
    if discount_type == SCOPE_SINGLE_PRODUCT:
        if not product_id:
            raise ValidationError("product_id is required when discount type is 'individual_item'")
        if get_scoped(Product, product_id, org_id) is None:
            raise NotFoundError(f"Product with id {product_id} not found")
    elif discount_type == SCOPE_WHOLE_ORDER:
        if product_id_supplied and product_id is not None:
            raise ValidationError("product_id should not be provided when discount type is 'for_all_item'")


def _ensure_code_available(code: str, org_id: int, exclude_id: int | None = None) -> None:
    query = scoped_query(Discount, org_id).filter(Discount.code == code)
    if exclude_id is not None:
        query = query.filter(Discount.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Discount code already exists")


def _commit_unique_code() -> None:
    # A concurrent writer can claim the code after the read check
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Discount code already exists") from exc


def create_discount(*, patch: dict, org_id: int) -> dict:
    """
    Create a discount from a validated patch dict.

    Raises ValidationError / NotFoundError for scope violations and
    ConflictError for a duplicate code.
    """
    _validate_scope(patch["type"], patch.get("product_id"), org_id, "product_id" in patch)
    _ensure_code_available(patch["code"], org_id)

    discount = Discount(org_id=org_id)
    for k, v in patch.items():
        if k in DISCOUNT_MUTABLE_FIELDS:
            setattr(discount, k, v)
    if discount.type == SCOPE_WHOLE_ORDER:
        discount.product_id = None

    db.session.add(discount)
    _commit_unique_code()
    return discount.to_dict()


def list_discounts(*, org_id: int, offset: int = 0, limit: int = 100, search: str | None = None) -> list[dict]:
    query = scoped_query(Discount, org_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(Discount.name.ilike(pattern), Discount.code.ilike(pattern)))
    discounts = query.order_by(Discount.id.asc()).offset(offset).limit(limit).all()
    return [d.to_dict() for d in discounts]


def get_discount(*, discount_id: int, org_id: int) -> dict | None:
    discount = get_scoped(Discount, discount_id, org_id)
    return discount.to_dict() if discount else None


def get_discount_by_code(*, code: str, org_id: int) -> dict | None:
    try:
        return resolve_discount(code, org_id).to_dict()
    except DiscountNotFoundError:
        return None


def update_discount(*, discount_id: int, patch: dict, org_id: int) -> dict | None:
    """
    Partially update a discount.

    The scope is validated against the state the discount will have after
    the patch. Switching to for_all_item clears product_id.
    """
    discount = get_scoped(Discount, discount_id, org_id)
    if not discount:
        return None

    final_type = patch.get("type", discount.type)
    if final_type == SCOPE_SINGLE_PRODUCT:
        final_product_id = patch["product_id"] if "product_id" in patch else discount.product_id
        _validate_scope(final_type, final_product_id, org_id, True)
    else:
        _validate_scope(final_type, patch.get("product_id"), org_id, "product_id" in patch)

    if "code" in patch and patch["code"] != discount.code:
        _ensure_code_available(patch["code"], org_id, exclude_id=discount.id)

    for k, v in patch.items():
        if k in DISCOUNT_MUTABLE_FIELDS:
            setattr(discount, k, v)
    if discount.type == SCOPE_WHOLE_ORDER:
        discount.product_id = None

    _commit_unique_code()
    return discount.to_dict()


def delete_discount(*, discount_id: int, org_id: int) -> bool:
    discount = get_scoped(Discount, discount_id, org_id)
    if not discount:
        return False
    db.session.delete(discount)
    db.session.commit()
    return True
