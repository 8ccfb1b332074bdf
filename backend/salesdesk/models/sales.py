from __future__ import annotations

from ..extensions import db
from salesdesk.money import to_json_number
from salesdesk.time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    Sale record, written once with its lines by sales_service.create_sale.

    AMOUNTS: total_amount = subtotal - discount_amount + tax_amount and
    commission_amount = total_amount * commission_rate / 100, both fixed at
    creation time. Only payment_method, payment_status and notes change later.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("idx_sales_customer", "customer_id"),
        db.Index("idx_sales_rep", "sales_rep_id"),
        db.Index("idx_sales_date", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "SALE-123456789")
    sale_number = db.Column(db.String(50), nullable=False, unique=True)

    # NULL for walk-in sales
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    sales_rep_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    subtotal = db.Column(db.Numeric(15, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(15, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(50), nullable=True)
    payment_status = db.Column(db.String(20), nullable=False, default="completed")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    sales_rep = db.relationship("User", foreign_keys=[sales_rep_id])
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} sale_number={self.sale_number!r} total={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "sales_rep_id": self.sales_rep_id,
            "subtotal": to_json_number(self.subtotal),
            "discount_amount": to_json_number(self.discount_amount),
            "tax_amount": to_json_number(self.tax_amount),
            "total_amount": to_json_number(self.total_amount),
            "commission_amount": to_json_number(self.commission_amount),
            "commission_rate": to_json_number(self.commission_rate),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    """Individual line items on a sale."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("idx_sale_items_sale", "sale_id"),
        db.Index("idx_sale_items_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    # quantity * unit_price
    total_price = db.Column(db.Numeric(15, 2), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": to_json_number(self.unit_price),
            "total_price": to_json_number(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }
