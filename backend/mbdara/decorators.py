# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service
from .services.session_service import SessionError


def _authenticate(require_org: bool):
    try:
        context = session_service.resolve_session(request.headers.get("Authorization"), require_org=require_org)
    except SessionError as e:
        current_app.logger.info("Rejected request to %s: %s", request.path, e)
        return jsonify({"error": f"Unauthorized: {e}"}), 401

    # Store user and tenant context in Flask g for access in routes
    g.current_user = context.user
    g.org_id = context.org_id
    g.session_context = context
    return None


def require_auth(f):
    """
    Require a valid bearer session and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.org_id: The session's active organization ID - REQUIRED
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 (and touches no tenant data) if:
    - No Authorization header, or not "Bearer <token>"
    - Unknown, revoked or expired token
    - User account deactivated
    - No active organization, or organization deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        rejected = _authenticate(require_org=True)
        if rejected is not None:
            return rejected
        return f(*args, **kwargs)

    return decorated_function


def require_session(f):
    """
    Require a valid bearer session; an active organization is optional.

    Used by the organization routes so a session can pick its first
    organization. g.org_id may be None here.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        rejected = _authenticate(require_org=False)
        if rejected is not None:
            return rejected
        return f(*args, **kwargs)

    return decorated_function
