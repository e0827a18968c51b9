from __future__ import annotations

from ..extensions import db
from mbdara.money import as_json_number
from mbdara.services.pricing_service import BundleTier
from mbdara.time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable product with stock on hand.

    MULTI-TENANT: Scoped to an organization via org_id.

    PRICING:
    - price: unit price, 2 decimals
    - cogs: cost of goods per unit, whole currency units
    - bundle_quantity / bundle_price: optional bundle tier ("N for a flat
      price"). Both set or both NULL (CHECK constraint); use bundle_tier
      from Python code.

    STOCK: Only ever decremented in place (stock = stock - n) by the stock
    service so concurrent transactions cannot lose updates.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint(
            "(bundle_quantity IS NULL AND bundle_price IS NULL)"
            " OR (bundle_quantity IS NOT NULL AND bundle_price IS NOT NULL)",
            name="ck_products_bundle_pair",
        ),
        db.Index("ix_products_org_name", "org_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    cogs = db.Column(db.Numeric(10, 0), nullable=False, default=0)
    description = db.Column(db.String(1000), nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)

    bundle_quantity = db.Column(db.Integer, nullable=True)
    bundle_price = db.Column(db.Numeric(10, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("products", lazy=True))

    @property
    def bundle_tier(self) -> BundleTier | None:
        if self.bundle_quantity is None or self.bundle_price is None:
            return None
        return BundleTier(quantity=self.bundle_quantity, price=self.bundle_price)

    @bundle_tier.setter
    def bundle_tier(self, tier: BundleTier | None) -> None:
        if tier is None:
            self.bundle_quantity = None
            self.bundle_price = None
        else:
            self.bundle_quantity = tier.quantity
            self.bundle_price = tier.price

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} org_id={self.org_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": as_json_number(self.price),
            "cogs": as_json_number(self.cogs),
            "description": self.description,
            "stock": self.stock,
            "bundle_quantity": self.bundle_quantity,
            "bundle_price": as_json_number(self.bundle_price),
            "organization_id": self.org_id,
            "created_at": to_utc_z(self.created_at),
        }


class Discount(db.Model):
    """
    Percentage discount redeemable by code.

    TYPES:
    - individual_item: applies to line totals of product_id only
    - for_all_item: applies once to the whole order, product_id is NULL

    Codes are unique within an organization.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.UniqueConstraint("org_id", "code", name="uq_discounts_org_code"),
        db.CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_discounts_percentage_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(50), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # individual_item, for_all_item
    percentage = db.Column(db.Numeric(5, 2), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<Discount id={self.id} code={self.code!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "type": self.type,
            "percentage": as_json_number(self.percentage),
            "product_id": self.product_id,
            "organization_id": self.org_id,
        }
