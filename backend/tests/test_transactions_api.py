# Overview: Pytest coverage for transaction creation, settlement and read views.

"""
Transaction API Tests

Verifies:
1. Line totals, discounts and profit are computed and persisted
2. Every rejected order leaves stock untouched
3. Error responses carry the right status and details
4. Reads batch item loading (query counts do not grow with page size)
"""

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from conftest import count_queries
from mbdara.extensions import db
from mbdara.models import Product, Transaction, TransactionItem
from mbdara.services import transaction_service
from mbdara.services.pricing_service import SCOPE_SINGLE_PRODUCT, SCOPE_WHOLE_ORDER
from mbdara.services.stock_service import InsufficientStockError
from mbdara.services.transaction_service import TransactionError, TransactionItemInput


def _stock(product_id):
    return db.session.get(Product, product_id, populate_existing=True).stock


class TestCreateTransaction:

    def test_round_trip(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "Coffee", 10000, cogs=4000, stock=10)

        resp = client.post("/api/transactions", json={
            "items": [{"product_id": product.id, "quantity": 3}],
            "payment_method": "cash",
        }, headers=headers_a)
        assert resp.status_code == 201
        created = resp.json
        assert created["total_amount"] == 30000
        assert created["profit"] == 18000
        assert created["payment_method"] == "cash"
        assert created["discount"] is None
        assert created["organization_id"] == org_a.id

        fetched = client.get(f"/api/transactions/{created['id']}", headers=headers_a)
        assert fetched.status_code == 200
        [item] = fetched.json["items"]
        assert item["quantity"] == 3
        assert item["price"] == 30000
        assert item["product_name"] == "Coffee"
        assert item["product_id"] == product.id

        assert _stock(product.id) == 7

    def test_bundle_pricing_applied(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "Water", 10000, stock=50, bundle=(10, 90000))

        resp = client.post("/api/transactions", json={
            "items": [{"product_id": product.id, "quantity": 15}],
        }, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["total_amount"] == 140000
        assert resp.json["items"][0]["price"] == 140000

    def test_single_product_discount(self, client, headers_a, org_a, make_product, make_discount):
        a = make_product(org_a, "A", 10000)
        b = make_product(org_a, "B", 5000)
        make_discount(org_a, "TENOFF", SCOPE_SINGLE_PRODUCT, 10, product=a)

        resp = client.post("/api/transactions", json={
            "items": [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
            "discount_code": "TENOFF",
        }, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["total_amount"] == 23000
        assert resp.json["discount"] == "TENOFF"
        prices = {i["product_id"]: i["price"] for i in resp.json["items"]}
        assert prices == {a.id: 18000, b.id: 5000}

    def test_whole_order_discount(self, client, headers_a, org_a, make_product, make_discount):
        a = make_product(org_a, "A", 10000, cogs=2000)
        b = make_product(org_a, "B", 5000, cogs=1000)
        make_discount(org_a, "ALL10", SCOPE_WHOLE_ORDER, 10)

        resp = client.post("/api/transactions", json={
            "items": [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
            "discount_code": "ALL10",
        }, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["total_amount"] == 22500
        assert resp.json["profit"] == 22500 - 5000
        # Line totals are stored before the whole-order discount
        assert sorted(i["price"] for i in resp.json["items"]) == [5000, 20000]

    def test_created_at_honored(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        resp = client.post("/api/transactions", json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "created_at": "2026-01-15T08:30:00Z",
        }, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["created_at"] == "2026-01-15T08:30:00Z"


class TestRejectedTransactions:

    def test_empty_order(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100, stock=5)
        resp = client.post("/api/transactions", json={"items": []}, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == "Transaction must have at least one item"
        assert _stock(product.id) == 5
        assert db.session.query(Transaction).count() == 0

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, "3", None, True])
    def test_invalid_quantity(self, client, headers_a, org_a, make_product, quantity):
        product = make_product(org_a, "A", 100, stock=5)
        resp = client.post("/api/transactions", json={
            "items": [{"product_id": product.id, "quantity": quantity}],
        }, headers=headers_a)
        assert resp.status_code == 400
        assert _stock(product.id) == 5

    def test_insufficient_stock(self, client, headers_a, org_a, make_product):
        a = make_product(org_a, "A", 100, stock=5)
        b = make_product(org_a, "Scarce", 100, stock=1)

        resp = client.post("/api/transactions", json={
            "items": [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 2}],
        }, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == "Not enough stock for product 'Scarce'. Available: 1, Requested: 2"
        assert resp.json["details"]["available"] == 1
        assert resp.json["details"]["requested"] == 2
        assert _stock(a.id) == 5
        assert _stock(b.id) == 1
        assert db.session.query(TransactionItem).count() == 0

    def test_repeated_product_quantities_are_summed(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100, stock=3)
        resp = client.post("/api/transactions", json={
            "items": [{"product_id": product.id, "quantity": 2}, {"product_id": product.id, "quantity": 2}],
        }, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["details"]["requested"] == 4
        assert _stock(product.id) == 3

    def test_missing_products_listed(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100, stock=5)
        resp = client.post("/api/transactions", json={
            "items": [
                {"product_id": product.id, "quantity": 1},
                {"product_id": 9998, "quantity": 1},
                {"product_id": 9999, "quantity": 1},
            ],
        }, headers=headers_a)
        assert resp.status_code == 404
        assert resp.json["details"]["missing_ids"] == [9998, 9999]
        assert _stock(product.id) == 5

    def test_unknown_discount_code(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100, stock=5)
        resp = client.post("/api/transactions", json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "discount_code": "NOPE",
        }, headers=headers_a)
        assert resp.status_code == 404
        assert resp.json["error"] == "Discount code 'NOPE' not found"
        assert _stock(product.id) == 5

    def test_items_must_be_a_list(self, client, headers_a):
        resp = client.post("/api/transactions", json={"items": "nope"}, headers=headers_a)
        assert resp.status_code == 400

    def test_stock_consumed_between_check_and_commit(self, app, db_session, org_a, make_product, monkeypatch):
        """The guarded decrement is the last line of defence against overselling."""
        product = make_product(org_a, "A", 100, stock=2)

        # Skip the up-front check so the guarded UPDATE is what fails
        monkeypatch.setattr(transaction_service, "check_availability", lambda products, items: None)

        with pytest.raises(InsufficientStockError):
            transaction_service.create_transaction(org_a.id, [TransactionItemInput(product.id, 3)])

        assert _stock(product.id) == 2
        assert db_session.query(Transaction).count() == 0

    def test_storage_failure_rolls_back_earlier_lines(self, client, headers_a, db_session, org_a, make_product, monkeypatch):
        """A failure on the second line undoes the first line's decrement."""
        first = make_product(org_a, "First", 100, stock=5)
        second = make_product(org_a, "Second", 100, stock=5)

        real_deduct = transaction_service.deduct_stock
        calls = []

        def flaky_deduct(product_id, quantity, org_id):
            calls.append(product_id)
            if len(calls) > 1:
                raise OperationalError("UPDATE products", {}, Exception("disk I/O error"))
            real_deduct(product_id, quantity, org_id)

        monkeypatch.setattr(transaction_service, "deduct_stock", flaky_deduct)

        resp = client.post("/api/transactions", json={
            "items": [{"product_id": first.id, "quantity": 2}, {"product_id": second.id, "quantity": 1}],
        }, headers=headers_a)
        assert resp.status_code == 500
        assert resp.json["error"] == "Failed to create transaction"
        assert calls == [first.id, second.id]

        assert _stock(first.id) == 5
        assert _stock(second.id) == 5
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(TransactionItem).count() == 0

    def test_storage_failure_raises_transaction_error(self, db_session, org_a, make_product, monkeypatch):
        product = make_product(org_a, "A", 100, stock=5)

        def failing_deduct(product_id, quantity, org_id):
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        monkeypatch.setattr(transaction_service, "deduct_stock", failing_deduct)

        with pytest.raises(TransactionError):
            transaction_service.create_transaction(org_a.id, [TransactionItemInput(product.id, 1)])

        assert _stock(product.id) == 5
        assert db_session.query(Transaction).count() == 0


class TestReadTransactions:

    def _seed(self, org, product, count, day=1):
        for i in range(count):
            transaction_service.create_transaction(
                org.id,
                [TransactionItemInput(product.id, 1), TransactionItemInput(product.id, 1)],
                created_at=datetime(2026, 1, day, 10, i),
            )

    def test_list_newest_first(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        self._seed(org_a, product, 3)

        resp = client.get("/api/transactions", headers=headers_a)
        assert resp.status_code == 200
        created = [t["created_at"] for t in resp.json]
        assert created == sorted(created, reverse=True)
        assert all(len(t["items"]) == 2 for t in resp.json)

    def test_pagination(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        self._seed(org_a, product, 5)

        first = client.get("/api/transactions?limit=2", headers=headers_a).json
        second = client.get("/api/transactions?limit=2&offset=2", headers=headers_a).json
        assert len(first) == 2
        assert len(second) == 2
        assert not {t["id"] for t in first} & {t["id"] for t in second}

    @pytest.mark.parametrize("query", ["limit=abc", "offset=-1", "limit=0"])
    def test_bad_pagination(self, client, headers_a, query):
        resp = client.get(f"/api/transactions?{query}", headers=headers_a)
        assert resp.status_code == 400

    def test_date_filters_inclusive(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        self._seed(org_a, product, 1, day=1)
        self._seed(org_a, product, 1, day=2)
        self._seed(org_a, product, 1, day=3)

        resp = client.get("/api/transactions?start_date=2026-01-02&end_date=2026-01-02", headers=headers_a)
        assert resp.status_code == 200
        assert [t["created_at"][:10] for t in resp.json] == ["2026-01-02"]

    def test_malformed_date(self, client, headers_a):
        resp = client.get("/api/transactions?start_date=yesterday", headers=headers_a)
        assert resp.status_code == 400
        assert "Invalid start_date format" in resp.json["error"]

    def test_start_after_end(self, client, headers_a):
        resp = client.get("/api/transactions?start_date=2026-02-01&end_date=2026-01-01", headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == "start_date must be before or equal to end_date"

    def test_get_is_idempotent(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        created = transaction_service.create_transaction(org_a.id, [TransactionItemInput(product.id, 2)])

        first = client.get(f"/api/transactions/{created['id']}", headers=headers_a)
        second = client.get(f"/api/transactions/{created['id']}", headers=headers_a)
        assert first.status_code == second.status_code == 200
        assert first.json == second.json

    def test_unknown_transaction(self, client, headers_a):
        resp = client.get("/api/transactions/12345", headers=headers_a)
        assert resp.status_code == 404

    def test_list_query_count_independent_of_page_size(self, db_session, org_a, make_product):
        product = make_product(org_a, "A", 100)
        self._seed(org_a, product, 6)
        org_id = org_a.id
        db_session.expire_all()

        with count_queries() as small:
            page = transaction_service.list_transactions(org_id=org_id, limit=2)
        assert len(page) == 2

        with count_queries() as large:
            page = transaction_service.list_transactions(org_id=org_id, limit=6)
        assert len(page) == 6
        assert sum(len(t["items"]) for t in page) == 12

        # One query for the page, one for all of its items
        assert len(small) == len(large) == 2

    def test_get_loads_items_in_one_query(self, db_session, org_a, make_product):
        product = make_product(org_a, "A", 100)
        other = make_product(org_a, "B", 200)
        created = transaction_service.create_transaction(
            org_a.id, [TransactionItemInput(product.id, 1), TransactionItemInput(other.id, 1)]
        )
        org_id = org_a.id
        db_session.expire_all()

        with count_queries() as statements:
            view = transaction_service.get_transaction(transaction_id=created["id"], org_id=org_id)
        assert {i["product_name"] for i in view["items"]} == {"A", "B"}
        assert len(statements) == 2
