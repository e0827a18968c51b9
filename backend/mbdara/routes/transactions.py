# Overview: Flask API routes for transactions; parses input and returns JSON responses.

# backend/mbdara/routes/transactions.py
"""
Transaction routes with multi-tenant support.

MULTI-TENANT: Transactions are created in and read from the caller's
organization only (g.org_id, set by @require_auth). A transaction id from
another organization is a 404.

ERRORS:
- 400: invalid payload, empty order, insufficient stock
- 404: unknown product or discount code
- 500: storage failure while committing
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..services import transaction_service
from ..services.transaction_service import TransactionError
from ..validation import (
    NotFoundError,
    ValidationError,
    error_body,
    parse_date_range,
    parse_pagination,
)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Create a transaction.

    Body: {items: [{product_id, quantity}], discount_code?, payment_method?, created_at?}
    """
    payload = request.get_json(silent=True)

    try:
        data = transaction_service.parse_transaction_payload(payload)
        created = transaction_service.create_transaction(
            g.org_id,
            data.items,
            discount_code=data.discount_code,
            payment_method=data.payment_method,
            created_at=data.created_at,
        )
    except ValidationError as e:
        return error_body(e), 400
    except NotFoundError as e:
        return error_body(e), 404
    except TransactionError as e:
        return error_body(e), 500
    except Exception:
        current_app.logger.exception("Unexpected error creating transaction")
        return {"error": "Internal server error"}, 500

    return created, 201


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    List transactions, newest first.

    Query params: offset, limit, start_date, end_date (ISO-8601, inclusive).
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

    return transaction_service.list_transactions(
        org_id=g.org_id,
        offset=offset,
        limit=limit,
        start_date=start,
        end_date=end,
    )


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    txn = transaction_service.get_transaction(transaction_id=transaction_id, org_id=g.org_id)
    if not txn:
        return {"error": "Transaction not found"}, 404
    return txn
