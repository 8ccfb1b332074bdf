# Overview: Stock ledger; the only code path that changes Product.stock_quantity.

from __future__ import annotations

import logging

from sqlalchemy import func, case

from ..extensions import db
from ..errors import InvalidInput, NotFound
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_CAUSES,
    CAUSE_MANUAL_ADJUSTMENT,
    CAUSE_RESTOCK,
)
from .concurrency import lock_for_update, unit_of_work

"""
Stock Ledger Invariants (authoritative)

- Every change to Product.stock_quantity is paired with exactly one
  StockMovement written in the same DB transaction.
- Movements are append-only: no updates, no deletes.
- quantity is positive; movement_type ('in' / 'out') carries the direction.
- reference_type is one of MOVEMENT_CAUSES.
- No floor: stock may go negative (sales do not check availability).
- Replaying SUM(in) - SUM(out) per product reproduces stock_quantity.
"""

logger = logging.getLogger(__name__)

MAX_MOVEMENT_LIMIT = 500


def record_movement(
    *,
    product: Product,
    direction: str,
    quantity: int,
    cause: str,
    actor_id: int | None,
    reference_id: int | None = None,
    notes: str | None = None,
) -> StockMovement:
    """
    Apply a stock change to product and append its movement.

    Does not commit; the caller owns the transaction.
    """
    if direction not in (MOVEMENT_IN, MOVEMENT_OUT):
        raise ValueError(f"invalid movement direction {direction!r}")
    if cause not in MOVEMENT_CAUSES:
        raise ValueError(f"invalid movement cause {cause!r}")
    if quantity <= 0:
        raise ValueError("movement quantity must be positive")

    delta = quantity if direction == MOVEMENT_IN else -quantity
    product.stock_quantity = (product.stock_quantity or 0) + delta

    movement = StockMovement(
        product_id=product.id,
        movement_type=direction,
        quantity=quantity,
        reference_type=cause,
        reference_id=reference_id,
        notes=notes,
        created_by=actor_id,
    )
    db.session.add(movement)
    return movement


def apply_delta(
    *,
    product: Product,
    quantity_delta: int,
    cause: str,
    actor_id: int | None,
    notes: str | None = None,
) -> StockMovement | None:
    """Record a signed change as one movement. Zero delta records nothing."""
    if quantity_delta == 0:
        return None
    direction = MOVEMENT_IN if quantity_delta > 0 else MOVEMENT_OUT
    return record_movement(
        product=product,
        direction=direction,
        quantity=abs(quantity_delta),
        cause=cause,
        actor_id=actor_id,
        notes=notes,
    )


def adjust_stock(
    *,
    actor_id: int,
    product_id: int,
    quantity_delta,
    cause: str = CAUSE_MANUAL_ADJUSTMENT,
    notes: str | None = None,
) -> tuple[Product, StockMovement]:
    """Manual adjustment or restock, committed on its own."""
    if cause not in (CAUSE_MANUAL_ADJUSTMENT, CAUSE_RESTOCK):
        raise InvalidInput(f"reason must be one of: {CAUSE_MANUAL_ADJUSTMENT}, {CAUSE_RESTOCK}")
    if isinstance(quantity_delta, bool) or not isinstance(quantity_delta, int):
        raise InvalidInput("quantity_delta must be an integer")
    if quantity_delta == 0:
        raise InvalidInput("quantity_delta must be non-zero")
    if cause == CAUSE_RESTOCK and quantity_delta < 0:
        raise InvalidInput("quantity_delta must be > 0 for restock")

    with unit_of_work():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFound("Product not found")
        movement = apply_delta(
            product=product,
            quantity_delta=quantity_delta,
            cause=cause,
            actor_id=actor_id,
            notes=notes,
        )

    logger.info(
        "Stock %s for product %s: %+d (now %s)",
        cause, product.id, quantity_delta, product.stock_quantity,
    )
    return product, movement


def list_movements(
    *,
    product_id: int | None = None,
    reference_type: str | None = None,
    limit: int = 100,
) -> list[StockMovement]:
    """Most recent movements first."""
    if reference_type is not None and reference_type not in MOVEMENT_CAUSES:
        raise InvalidInput(f"reference_type must be one of: {', '.join(MOVEMENT_CAUSES)}")
    limit = max(1, min(limit, MAX_MOVEMENT_LIMIT))

    query = db.session.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if reference_type is not None:
        query = query.filter(StockMovement.reference_type == reference_type)
    return query.order_by(StockMovement.id.desc()).limit(limit).all()


def replayed_quantities(product_id: int | None = None) -> dict[int, int]:
    """SUM(in) - SUM(out) per product, from the movement log alone."""
    signed = case(
        (StockMovement.movement_type == MOVEMENT_IN, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )
    query = db.session.query(
        StockMovement.product_id,
        func.coalesce(func.sum(signed), 0),
    ).filter(StockMovement.product_id.isnot(None))
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    rows = query.group_by(StockMovement.product_id).all()
    return {pid: int(total) for pid, total in rows}


def reconcile(product_id: int | None = None) -> dict:
    """
    Compare each product's stored stock_quantity with the ledger replay.

    Returns {"checked": n, "mismatches": [...]}; an empty mismatch list
    means the fast-path quantities and the audit log agree.
    """
    query = db.session.query(Product)
    if product_id is not None:
        query = query.filter(Product.id == product_id)
    products = query.order_by(Product.id.asc()).all()
    if product_id is not None and not products:
        raise NotFound("Product not found")

    replayed = replayed_quantities(product_id)
    mismatches = []
    for product in products:
        ledger_qty = replayed.get(product.id, 0)
        if ledger_qty != product.stock_quantity:
            mismatches.append({
                "product_id": product.id,
                "name": product.name,
                "stock_quantity": product.stock_quantity,
                "ledger_quantity": ledger_qty,
                "difference": product.stock_quantity - ledger_qty,
            })

    return {"checked": len(products), "mismatches": mismatches}
