from __future__ import annotations

from ..extensions import db
from salesdesk.money import to_json_number
from salesdesk.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer master data.

    total_purchases is a denormalized aggregate: incremented by the sale
    total when a sale is recorded and decremented when that sale is deleted.
    No floor is applied.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(100), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.Text, nullable=True)
    # individual | business
    customer_type = db.Column(db.String(20), nullable=False, default="individual")

    total_purchases = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    creator = db.relationship("User", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "customer_type": self.customer_type,
            "total_purchases": to_json_number(self.total_purchases),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
