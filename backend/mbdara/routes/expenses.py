# Overview: Flask API routes for expenses; parses input and returns JSON responses.

# backend/mbdara/routes/expenses.py
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..models import Expense
from ..services import expense_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_expense,
    error_body,
    parse_date_range,
    parse_pagination,
    validate_payload,
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"amount", "description", "date", "category", "payment_method"},
    required_on_create={"amount"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
def list_expenses_route():
    """
    List expenses, most recent first.

    Query params: offset, limit, search (description or category),
    start_date, end_date.
    """
    try:
        offset, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
        start, end = parse_date_range(request.args.get("start_date"), request.args.get("end_date"))
    except ValidationError as e:
        return error_body(e), 400

    return expense_service.list_expenses(
        org_id=g.org_id,
        offset=offset,
        limit=limit,
        search=(request.args.get("search") or "").strip() or None,
        start_date=start,
        end_date=end,
    )


@expenses_bp.post("")
@require_auth
def create_expense_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return error_body(e), 400

    return expense_service.create_expense(patch=patch, org_id=g.org_id), 201


@expenses_bp.get("/<int:expense_id>")
@require_auth
def get_expense_route(expense_id: int):
    expense = expense_service.get_expense(expense_id=expense_id, org_id=g.org_id)
    if not expense:
        return {"error": "Expense not found"}, 404
    return expense


@expenses_bp.patch("/<int:expense_id>")
@require_auth
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return error_body(e), 400

    updated = expense_service.update_expense(expense_id=expense_id, patch=patch, org_id=g.org_id)
    if not updated:
        return {"error": "Expense not found"}, 404
    return updated


@expenses_bp.delete("/<int:expense_id>")
@require_auth
def delete_expense_route(expense_id: int):
    if not expense_service.delete_expense(expense_id=expense_id, org_id=g.org_id):
        return {"error": "Expense not found"}, 404
    return "", 204
