# Overview: Flask API route for the financial summary report.

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..services.summary_service import summary
from ..validation import ValidationError, error_body, parse_date_range

summary_bp = Blueprint("summary", __name__, url_prefix="/api/summary")


@summary_bp.get("")
@require_auth
def get_summary():
    """
    Revenue, profit and expense totals for the caller's organization.

    Query params: start_date, end_date (ISO-8601, inclusive; a date-only
    end_date covers the whole day).
    """
    try:
        start, end = parse_date_range(request.args.get("start_date"), request.args.get("end_date"))
    except ValidationError as e:
        return error_body(e), 400

    return summary(org_id=g.org_id, start=start, end=end)
