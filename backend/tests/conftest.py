"""
Pytest fixtures for mbdara backend tests.

Provides test database setup, tenant fixtures (two organizations, each with
a member user and a live session), product factories and a test client.
"""

from contextlib import contextmanager
from decimal import Decimal

import pytest
from sqlalchemy import event

from mbdara import create_app
from mbdara.extensions import db
from mbdara.models import Organization, Member, User, Product, Discount
from mbdara.services.pricing_service import BundleTier
from mbdara.services.session_service import create_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Acme Corp", slug="org-a-acme-corp", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Beta Inc", slug="org-b-beta-inc", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


def _member(db_session, org, name, email, role="admin"):
    user = User(name=name, email=email, is_active=True)
    db_session.add(user)
    db_session.flush()
    db_session.add(Member(org_id=org.id, user_id=user.id, role=role))
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user_a(db_session, org_a):
    """Create User A, admin of Organization A."""
    return _member(db_session, org_a, "User A", "user_a@acme.com")


@pytest.fixture(scope='function')
def user_b(db_session, org_b):
    """Create User B, admin of Organization B."""
    return _member(db_session, org_b, "User B", "user_b@beta.com")


@pytest.fixture(scope='function')
def token_a(user_a, org_a):
    _, token = create_session(user_a.id, org_a.id)
    return token


@pytest.fixture(scope='function')
def token_b(user_b, org_b):
    _, token = create_session(user_b.id, org_b.id)
    return token


@pytest.fixture(scope='function')
def headers_a(token_a):
    return auth_headers(token_a)


@pytest.fixture(scope='function')
def headers_b(token_b):
    return auth_headers(token_b)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(org, name, price, stock=..., cogs=..., bundle=(qty, price))."""
    def _make(org, name, price, *, stock=100, cogs=0, bundle=None, description=None):
        product = Product(
            org_id=org.id,
            name=name,
            price=Decimal(str(price)),
            cogs=Decimal(str(cogs)),
            stock=stock,
            description=description,
        )
        if bundle is not None:
            product.bundle_tier = BundleTier(quantity=bundle[0], price=Decimal(str(bundle[1])))
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_discount(db_session):
    """Factory: make_discount(org, code, type, percentage, product=None)."""
    def _make(org, code, discount_type, percentage, product=None, name=None):
        discount = Discount(
            org_id=org.id,
            name=name or code,
            code=code,
            type=discount_type,
            percentage=Decimal(str(percentage)),
            product_id=product.id if product is not None else None,
        )
        db_session.add(discount)
        db_session.commit()
        return discount
    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@contextmanager
def count_queries():
    """Collect every SQL statement sent to the engine inside the block."""
    statements = []

    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", _before_cursor_execute)
    try:
        yield statements
    finally:
        event.remove(db.engine, "before_cursor_execute", _before_cursor_execute)
