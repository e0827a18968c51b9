from __future__ import annotations

from ..extensions import db
from mbdara.time_utils import to_utc_z


class Organization(db.Model):
    """
    Multi-tenant root: Every tenant is an Organization.

    WHY: Enables shared-database multi-tenancy with strict isolation.
    Products, discounts, transactions and expenses belong to exactly one
    organization. No data may cross organization boundaries.

    DESIGN:
    - Organizations are the tenant boundary
    - Users join organizations through Member rows
    - A session carries the active organization; all queries filter by it
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    logo = db.Column(db.String(1024), nullable=True)
    metadata_json = db.Column("metadata", db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "logo": self.logo,
            "metadata": self.metadata_json,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Member(db.Model):
    """Membership of a user in an organization."""
    __tablename__ = "members"
    __table_args__ = (
        db.UniqueConstraint("org_id", "user_id", name="uq_members_org_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, default="member")  # admin, member

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("members", lazy=True))
    user = db.relationship("User", backref=db.backref("memberships", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "user_id": self.user_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }
