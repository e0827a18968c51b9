# Overview: Flask API routes for discounts; parses input and returns JSON responses.

# backend/mbdara/routes/discounts.py
"""
Discount management routes with multi-tenant support.

MULTI-TENANT: Discounts and their target products must belong to the
caller's organization. Codes are unique per organization.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..models import Discount
from ..services import discount_service
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_discount,
    error_body,
    parse_pagination,
    validate_payload,
)

DISCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "type", "percentage", "product_id"},
    required_on_create={"name", "code", "type", "percentage"},
)

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


@discounts_bp.get("")
@require_auth
def list_discounts_route():
    try:
        offset, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
    except ValidationError as e:
        return error_body(e), 400

    return discount_service.list_discounts(
        org_id=g.org_id,
        offset=offset,
        limit=limit,
        search=(request.args.get("search") or "").strip() or None,
    )


@discounts_bp.post("")
@require_auth
def create_discount_route():
    """
    Create a discount.

    individual_item requires product_id (a product of this organization),
    for_all_item must not carry one.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=False)
        enforce_rules_discount(patch)
        created = discount_service.create_discount(patch=patch, org_id=g.org_id)
    except ValidationError as e:
        return error_body(e), 400
    except NotFoundError as e:
        return error_body(e), 404
    except ConflictError as e:
        return error_body(e), 409

    return created, 201


@discounts_bp.get("/<int:discount_id>")
@require_auth
def get_discount_route(discount_id: int):
    discount = discount_service.get_discount(discount_id=discount_id, org_id=g.org_id)
    if not discount:
        return {"error": "Discount not found"}, 404
    return discount


@discounts_bp.get("/code/<string:code>")
@require_auth
def get_discount_by_code_route(code: str):
    discount = discount_service.get_discount_by_code(code=code, org_id=g.org_id)
    if not discount:
        return {"error": f"Discount code '{code}' not found"}, 404
    return discount


@discounts_bp.patch("/<int:discount_id>")
@require_auth
def update_discount_route(discount_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Discount, payload=payload, policy=DISCOUNT_POLICY, partial=True)
        enforce_rules_discount(patch)
        updated = discount_service.update_discount(discount_id=discount_id, patch=patch, org_id=g.org_id)
    except ValidationError as e:
        return error_body(e), 400
    except NotFoundError as e:
        return error_body(e), 404
    except ConflictError as e:
        return error_body(e), 409

    if not updated:
        return {"error": "Discount not found"}, 404
    return updated


@discounts_bp.delete("/<int:discount_id>")
@require_auth
def delete_discount_route(discount_id: int):
    if not discount_service.delete_discount(discount_id=discount_id, org_id=g.org_id):
        return {"error": "Discount not found"}, 404
    return "", 204
