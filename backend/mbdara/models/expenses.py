from __future__ import annotations

from ..extensions import db
from mbdara.money import as_json_number
from mbdara.time_utils import to_utc_z


class Expense(db.Model):
    """Money spent by an organization; feeds the summary report."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_org_date", "org_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    description = db.Column(db.String(1000), nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    category = db.Column(db.String(100), nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": as_json_number(self.amount),
            "description": self.description,
            "date": to_utc_z(self.date),
            "category": self.category,
            "payment_method": self.payment_method,
            "organization_id": self.org_id,
        }
