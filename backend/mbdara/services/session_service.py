# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service with Multi-Tenant Support

WHY: Every request is authorized by a bearer session token that names the
active organization. The core only needs "which organization is this
request for?", and a reason when the answer is "none".

MULTI-TENANT: The session's active_org_id establishes the tenant context
for every authenticated request.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute expiry (SESSION_TTL_HOURS, default 24h)
- Revocable

Issuing tokens is an operator action (flask sessions issue); there is no
login endpoint.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, Organization, Member
from mbdara.time_utils import as_naive_utc, utcnow


DEFAULT_SESSION_TTL = timedelta(hours=24)


class SessionError(Exception):
    """Raised when a request cannot be tied to an active organization."""


@dataclass
class SessionContext:
    """
    Complete session context returned by resolve_session.

    MULTI-TENANT: Contains both user identity and tenant context.
    """
    user: User
    session: SessionToken
    org_id: int | None


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so a fast hash
    is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def extract_bearer_token(auth_header: str | None) -> str:
    """
    Return the token from an "Authorization: Bearer <token>" header.

    Raises SessionError naming what is wrong with the header.
    """
    if not auth_header:
        raise SessionError("Missing Authorization header")

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1].strip():
        raise SessionError("Invalid Authorization header format. Expected: Bearer <token>")

    return parts[1].strip()


def _session_ttl() -> timedelta:
    hours = current_app.config.get("SESSION_TTL_HOURS")
    if hours:
        return timedelta(hours=hours)
    return DEFAULT_SESSION_TTL


def create_session(user_id: int, org_id: int | None = None) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    org_id becomes the active organization; the user must be a member of it.
    Returns (session_record, plaintext_token). Only the hash is stored.

    Raises ValueError if the user does not exist, is inactive, or is not a
    member of org_id.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User is not active")

    if org_id is not None and not is_member(user_id, org_id):
        raise ValueError("User is not a member of this organization")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        active_org_id=org_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + _session_ttl(),
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def is_member(user_id: int, org_id: int) -> bool:
    return db.session.query(Member.id).filter_by(user_id=user_id, org_id=org_id).first() is not None


def validate_token(token: str, require_org: bool = True) -> SessionContext:
    """
    Validate session token and return its SessionContext.

    Raises SessionError if:
    - Token is unknown or revoked
    - Session expired
    - User account is deactivated
    - No active organization is set, or it was deactivated (only when
      require_org is True; otherwise org_id may be None)
    """
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()

    if not session:
        raise SessionError("Session not found. Token may be invalid.")

    if session.is_revoked:
        raise SessionError("Session has been revoked. Please login again.")

    if as_naive_utc(session.expires_at) < utcnow():
        raise SessionError("Session expired. Please login again.")

    user = session.user
    if not user or not user.is_active:
        raise SessionError("User account is not active.")

    if not require_org:
        return SessionContext(user=user, session=session, org_id=session.active_org_id)

    if not session.active_org_id:
        raise SessionError("No active organization set for this session.")

    org = session.active_organization
    if not org or not org.is_active:
        raise SessionError("Active organization is not available.")

    return SessionContext(user=user, session=session, org_id=session.active_org_id)


def resolve_session(auth_header: str | None, require_org: bool = True) -> SessionContext:
    """Authorization collaborator: request header in, tenant context out."""
    return validate_token(extract_bearer_token(auth_header), require_org=require_org)


def set_active_organization(session: SessionToken, org_id: int) -> SessionToken:
    """
    Switch the organization a session acts for.

    Raises ValueError when the session's user is not a member or the
    organization is inactive.
    """
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org or not org.is_active or not is_member(session.user_id, org_id):
        raise ValueError("Organization not found")

    session.active_org_id = org_id
    db.session.commit()
    return session


def revoke_session(token: str) -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()

    db.session.commit()
    return True
