# Overview: Service-layer operations for organizations and memberships.

from __future__ import annotations

import re

from ..extensions import db
from ..models import Organization, Member, User
from ..validation import ConflictError, NotFoundError, ValidationError


MEMBER_ROLES = ("admin", "member")


def generate_slug(name: str) -> str:
    """Lowercase, hyphen-separated slug from an organization name."""
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def ensure_unique_slug(base_slug: str) -> str:
    """Append -1, -2, ... until the slug is unused."""
    base_slug = base_slug or "organization"
    slug = base_slug
    counter = 1
    while db.session.query(Organization.id).filter_by(slug=slug).first() is not None:
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug


def create_organization(
    *,
    name: str,
    owner_user_id: int | None = None,
    logo: str | None = None,
    metadata: str | None = None,
) -> Organization:
    """
    Create an organization; the owner (if given) becomes an admin member.

    Organization and membership are committed together.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    org = Organization(
        name=name,
        slug=ensure_unique_slug(generate_slug(name)),
        logo=logo,
        metadata_json=metadata,
        is_active=True,
    )
    db.session.add(org)
    db.session.flush()

    if owner_user_id is not None:
        db.session.add(Member(org_id=org.id, user_id=owner_user_id, role="admin"))

    db.session.commit()
    return org


def list_user_organizations(user_id: int, *, offset: int = 0, limit: int = 100, search: str | None = None) -> list[Organization]:
    query = (
        db.session.query(Organization)
        .join(Member, Member.org_id == Organization.id)
        .filter(Member.user_id == user_id)
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(Organization.name.ilike(pattern), Organization.slug.ilike(pattern)))
    return (
        query.order_by(Organization.created_at.desc(), Organization.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_user_organization(org_id: int, user_id: int) -> Organization:
    """Organization visible to the user (a membership exists), else NotFoundError."""
    org = (
        db.session.query(Organization)
        .join(Member, Member.org_id == Organization.id)
        .filter(Organization.id == org_id, Member.user_id == user_id)
        .first()
    )
    if not org:
        raise NotFoundError("Organization not found")
    return org


def add_member(*, org_id: int, user_id: int, role: str = "member") -> Member:
    if role not in MEMBER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(MEMBER_ROLES)}")
    if db.session.query(Organization.id).filter_by(id=org_id).first() is None:
        raise NotFoundError("Organization not found")
    if db.session.query(User.id).filter_by(id=user_id).first() is None:
        raise NotFoundError("User not found")
    if db.session.query(Member.id).filter_by(org_id=org_id, user_id=user_id).first() is not None:
        raise ConflictError("User is already a member of this organization")

    member = Member(org_id=org_id, user_id=user_id, role=role)
    db.session.add(member)
    db.session.commit()
    return member
