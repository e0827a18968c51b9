"""
Multi-Tenant Service: Tenant Scoping Helpers

WHY: Centralize tenant scoping for reuse across services and routes.
Every request is scoped to a tenant (organization), and rows owned by
another tenant must look exactly like rows that do not exist.

SECURITY INVARIANTS:
1. Every authenticated request has g.org_id set
2. Queries touching tenant data filter by org_id
3. Cross-tenant lookups return None / 404, never 403

USAGE:
    from mbdara.services.tenant_service import scoped_query, get_scoped

    products = scoped_query(Product, g.org_id).all()
    product = get_scoped(Product, product_id, g.org_id)
"""

from ..extensions import db


class TenantAccessError(Exception):
    """Raised when no tenant context is available."""
    pass


def scoped_query(model, org_id: int):
    """Query for `model` restricted to one organization."""
    if org_id is None:
        raise TenantAccessError("Tenant context not established")
    return db.session.query(model).filter(model.org_id == org_id)


def get_scoped(model, entity_id: int, org_id: int):
    """Fetch one row by id within the organization, or None."""
    return scoped_query(model, org_id).filter(model.id == entity_id).first()
