from __future__ import annotations

from ..extensions import db
from mbdara.money import as_json_number
from mbdara.time_utils import to_utc_z


class Transaction(db.Model):
    """
    A completed sale.

    WHY: Created once, atomically, together with its items and the matching
    stock deductions. Never updated afterwards.

    AMOUNTS:
    - total_amount: sum of item line totals after discounts (2 decimals)
    - profit: total_amount - total COGS, rounded to whole units
    - discount: the code that was redeemed (denormalized, not a FK, so
      deleting a discount does not rewrite history)
    """
    __tablename__ = "transactions"
    __table_args__ = (
        # Org-scoped listing is always newest first
        db.Index("ix_transactions_org_created", "org_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    profit = db.Column(db.Numeric(10, 0), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    discount = db.Column(db.String(50), nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} org_id={self.org_id} total={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "total_amount": as_json_number(self.total_amount),
            "profit": as_json_number(self.profit),
            "created_at": to_utc_z(self.created_at),
            "discount": self.discount,
            "payment_method": self.payment_method,
            "organization_id": self.org_id,
        }


class TransactionItem(db.Model):
    """
    One line of a transaction.

    price is the LINE TOTAL (bundle and discount math already applied),
    not the unit price.
    """
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transaction_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    transaction = db.relationship("Transaction", backref=db.backref("items", lazy=True))
    product = db.relationship("Product")

    def to_dict(self, product_name: str | None = None) -> dict:
        return {
            "id": self.id,
            "quantity": self.quantity,
            "price": as_json_number(self.price),
            "product_id": self.product_id,
            "transaction_id": self.transaction_id,
            "product_name": product_name,
        }
