from __future__ import annotations

from ..extensions import db
from salesdesk.time_utils import to_utc_z, utcnow


# movement_type
MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"

# reference_type: why the stock changed
CAUSE_SALE = "sale"
CAUSE_SALE_REVERSAL = "sale_reversal"
CAUSE_MANUAL_ADJUSTMENT = "manual_adjustment"
CAUSE_RESTOCK = "restock"

MOVEMENT_CAUSES = (CAUSE_SALE, CAUSE_SALE_REVERSAL, CAUSE_MANUAL_ADJUSTMENT, CAUSE_RESTOCK)


class StockMovement(db.Model):
    """
    Append-only stock ledger row.

    quantity is always positive; movement_type carries the sign. Rows are
    never updated or deleted by the application. When a product is deleted
    its movements stay behind with product_id set to NULL by the database.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("idx_stock_movements_product", "product_id"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)

    movement_type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(50), nullable=False)
    # sale id for sale / sale_reversal movements
    reference_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
