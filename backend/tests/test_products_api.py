# Overview: Pytest coverage for product CRUD, validation and bundle fields.

import pytest

from mbdara.services import transaction_service
from mbdara.services.pricing_service import SCOPE_SINGLE_PRODUCT
from mbdara.services.transaction_service import TransactionItemInput


class TestCreateProduct:

    def test_create_minimal(self, client, headers_a, org_a):
        resp = client.post("/api/products", json={"name": "Tea", "price": 12.5}, headers=headers_a)
        assert resp.status_code == 201
        body = resp.json
        assert body["name"] == "Tea"
        assert body["price"] == 12.5
        assert body["stock"] == 0
        assert body["cogs"] == 0
        assert body["bundle_quantity"] is None
        assert body["bundle_price"] is None
        assert body["organization_id"] == org_a.id

    def test_create_with_bundle(self, client, headers_a):
        resp = client.post("/api/products", json={
            "name": "Water", "price": 10000, "stock": 40, "cogs": 4000,
            "bundle_quantity": 10, "bundle_price": 90000,
        }, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["bundle_quantity"] == 10
        assert resp.json["bundle_price"] == 90000

    @pytest.mark.parametrize("payload", [
        {"bundle_quantity": 10},
        {"bundle_price": 90000},
        {"bundle_quantity": 10, "bundle_price": None},
    ])
    def test_bundle_fields_come_in_pairs(self, client, headers_a, payload):
        resp = client.post("/api/products", json={"name": "X", "price": 1, **payload}, headers=headers_a)
        assert resp.status_code == 400

    def test_bundle_quantity_must_be_positive(self, client, headers_a):
        resp = client.post("/api/products", json={
            "name": "X", "price": 1, "bundle_quantity": 0, "bundle_price": 5,
        }, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == "bundle_quantity must be greater than 0"

    def test_bundle_price_must_not_be_negative(self, client, headers_a):
        resp = client.post("/api/products", json={
            "name": "X", "price": 1, "bundle_quantity": 2, "bundle_price": -1,
        }, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == "bundle_price must be greater than or equal to 0"

    @pytest.mark.parametrize("payload,message", [
        ({"price": 1}, "Missing required fields: name"),
        ({"name": "X"}, "Missing required fields: price"),
        ({"name": "X", "price": -1}, "price must be greater than or equal to 0"),
        ({"name": "X", "price": "abc"}, "price must be a number"),
        ({"name": "X", "price": 1, "stock": -1}, "stock must be greater than or equal to 0"),
        ({"name": "X", "price": 1, "stock": 2.5}, "stock must be an integer, not a decimal"),
        ({"name": "X", "price": 1, "org_id": 2}, "Field not allowed: org_id"),
        ({"name": "  ", "price": 1}, "name cannot be blank"),
    ])
    def test_validation(self, client, headers_a, payload, message):
        resp = client.post("/api/products", json=payload, headers=headers_a)
        assert resp.status_code == 400
        assert resp.json["error"] == message

    def test_cogs_rounded_to_whole_units(self, client, headers_a):
        resp = client.post("/api/products", json={"name": "X", "price": 10, "cogs": 4.5}, headers=headers_a)
        assert resp.status_code == 201
        assert resp.json["cogs"] == 5


class TestReadUpdateDelete:

    def test_search(self, client, headers_a, org_a, make_product):
        make_product(org_a, "Green Tea", 10)
        make_product(org_a, "Coffee", 10, description="dark roast, not tea")
        make_product(org_a, "Juice", 10)

        names = {p["name"] for p in client.get("/api/products?search=TEA", headers=headers_a).json}
        assert names == {"Green Tea", "Coffee"}

    def test_list_pagination(self, client, headers_a, org_a, make_product):
        for i in range(5):
            make_product(org_a, f"P{i}", 10)
        page = client.get("/api/products?offset=1&limit=2", headers=headers_a).json
        assert [p["name"] for p in page] == ["P1", "P2"]

    def test_patch_partial(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100, stock=3)
        resp = client.patch(f"/api/products/{product.id}", json={"stock": 10}, headers=headers_a)
        assert resp.status_code == 200
        assert resp.json["stock"] == 10
        assert resp.json["name"] == "A"
        assert resp.json["price"] == 100

    def test_patch_clears_bundle(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100, bundle=(3, 250))
        resp = client.patch(f"/api/products/{product.id}", json={
            "bundle_quantity": None, "bundle_price": None,
        }, headers=headers_a)
        assert resp.status_code == 200
        assert resp.json["bundle_quantity"] is None
        assert resp.json["bundle_price"] is None

    def test_patch_unknown(self, client, headers_a):
        resp = client.patch("/api/products/999", json={"name": "x"}, headers=headers_a)
        assert resp.status_code == 404

    def test_delete(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        resp = client.delete(f"/api/products/{product.id}", headers=headers_a)
        assert resp.status_code == 204
        assert client.get(f"/api/products/{product.id}", headers=headers_a).status_code == 404

    def test_delete_sold_product_conflicts(self, client, headers_a, org_a, make_product):
        product = make_product(org_a, "A", 100)
        transaction_service.create_transaction(org_a.id, [TransactionItemInput(product.id, 1)])

        resp = client.delete(f"/api/products/{product.id}", headers=headers_a)
        assert resp.status_code == 409
        assert client.get(f"/api/products/{product.id}", headers=headers_a).status_code == 200

    def test_delete_discounted_product_conflicts(self, client, headers_a, org_a, make_product, make_discount):
        product = make_product(org_a, "A", 100)
        make_discount(org_a, "A10", SCOPE_SINGLE_PRODUCT, 10, product=product)

        resp = client.delete(f"/api/products/{product.id}", headers=headers_a)
        assert resp.status_code == 409
