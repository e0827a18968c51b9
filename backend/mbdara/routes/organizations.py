# Overview: Flask API routes for organizations; membership-scoped listing, creation and activation.

# backend/mbdara/routes/organizations.py
"""
Organization routes.

MULTI-TENANT: A caller only sees organizations they are a member of. Other
organizations are reported as 404, never 403, so their existence is not
revealed.

These routes accept sessions without an active organization, so a new
session can create or activate one.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_session
from ..services import organization_service, session_service
from ..validation import NotFoundError, ValidationError, error_body, parse_pagination

organizations_bp = Blueprint("organizations", __name__, url_prefix="/api/organizations")


@organizations_bp.get("")
@require_session
def list_organizations_route():
    try:
        offset, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_LIMIT"],
            max_limit=current_app.config["MAX_PAGE_LIMIT"],
        )
    except ValidationError as e:
        return error_body(e), 400

    orgs = organization_service.list_user_organizations(
        g.current_user.id,
        offset=offset,
        limit=limit,
        search=(request.args.get("search") or "").strip() or None,
    )
    return [org.to_dict() for org in orgs]


@organizations_bp.post("")
@require_session
def create_organization_route():
    """
    Create an organization; the caller becomes its admin.

    Body: {name, logo?, metadata?}
    """
    payload = request.get_json(silent=True) or {}
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        return {"error": "Missing required fields: name"}, 400

    for key in ("logo", "metadata"):
        if payload.get(key) is not None and not isinstance(payload[key], str):
            return {"error": f"{key} must be a string"}, 400

    try:
        org = organization_service.create_organization(
            name=name,
            owner_user_id=g.current_user.id,
            logo=payload.get("logo"),
            metadata=payload.get("metadata"),
        )
    except ValidationError as e:
        return error_body(e), 400

    current_app.logger.info("Organization created id=%s slug=%s by user_id=%s", org.id, org.slug, g.current_user.id)
    return org.to_dict(), 201


@organizations_bp.get("/<int:org_id>")
@require_session
def get_organization_route(org_id: int):
    try:
        org = organization_service.get_user_organization(org_id, g.current_user.id)
    except NotFoundError as e:
        return error_body(e), 404
    return org.to_dict()


@organizations_bp.post("/<int:org_id>/activate")
@require_session
def activate_organization_route(org_id: int):
    """Make org_id the active organization of the calling session."""
    try:
        session_service.set_active_organization(g.session_context.session, org_id)
    except ValueError as e:
        return {"error": str(e)}, 404

    return {"active_organization_id": org_id}
