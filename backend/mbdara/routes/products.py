# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/mbdara/routes/products.py
"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's organization.
The org_id is derived from g.org_id (set by @require_auth).

BUNDLES: bundle_quantity and bundle_price are written as a pair. Sending
both as null removes the tier.
"""
from flask import Blueprint, request, g, current_app

from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_pagination,
    error_body,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "cogs", "description", "stock", "bundle_quantity", "bundle_price"},
    required_on_create={"name", "price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products in the caller's organization.

    Query params:
    - offset, limit: pagination (limit capped at MAX_PAGE_LIMIT)
    - search: case-insensitive match on name or description
    """
    try:
        offset, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
    except ValidationError as e:
        return error_body(e), 400

    return products_service.list_products(
        org_id=g.org_id,
        offset=offset,
        limit=limit,
        search=(request.args.get("search") or "").strip() or None,
    )


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return error_body(e), 400

    return products_service.create_product(patch=patch, org_id=g.org_id), 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = products_service.get_product(product_id=product_id, org_id=g.org_id)
    if not product:
        return {"error": "Product not found"}, 404
    return product


@products_bp.patch("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """Partial update; only the fields present in the body change."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return error_body(e), 400

    updated = products_service.update_product(product_id=product_id, patch=patch, org_id=g.org_id)
    if not updated:
        return {"error": "Product not found"}, 404
    return updated


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """
    Delete a product.

    409 while transaction items or discounts still reference it.
    """
    try:
        deleted = products_service.delete_product(product_id=product_id, org_id=g.org_id)
    except ConflictError as e:
        return error_body(e), 409

    if not deleted:
        return {"error": "Product not found"}, 404
    return "", 204
