"""
Sales Service - sale recording, compensation on delete, payment edits

WHY: A sale, its lines, the stock it consumes and the customer's lifetime
spend must change together. create_sale and delete_sale each run as one
unit of work; any failure leaves no partial state behind.

AMOUNTS (Decimal, 2 places, half-up):
    subtotal          = sum(quantity * unit_price)
    total_amount      = subtotal - discount_amount + tax_amount
    commission_amount = total_amount * commission_rate / 100
commission_rate comes from permissions.COMMISSION_RATES for the recording
user's role and is frozen on the sale.

STOCK: availability is not checked; stock may go negative. Deleting a sale
appends sale_reversal movements and leaves the original sale movements in
place. Customer totals are not floored at zero.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import InvalidInput, Forbidden, NotFound, DuplicateKey
from ..models import Sale, SaleLine, Product, Customer, User
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT, CAUSE_SALE, CAUSE_SALE_REVERSAL
from ..money import quantize
from ..permissions import commission_rate_for_role, role_has_capability
from ..validation import ModelValidationPolicy, parse_int, parse_money, validate_payload
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .ledger_service import record_movement
from .session_service import Identity

logger = logging.getLogger(__name__)

# Free-text fields a client may set on a sale; amounts are never client-writable
SALE_TEXT_POLICY = ModelValidationPolicy(
    writable_fields={"payment_method", "payment_status", "notes"},
)


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return quantize(self.unit_price * self.quantity)


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal


def generate_sale_number() -> str:
    """SALE-<last 6 digits of epoch millis><3 random digits>."""
    millis = str(int(time.time() * 1000))
    return f"SALE-{millis[-6:]}{random.randint(0, 999):03d}"


def parse_line_items(items) -> list[LineItem]:
    """Validate the cart before anything is written."""
    if not isinstance(items, list) or not items:
        raise InvalidInput("Sale items are required")

    parsed = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict) or any(
            item.get(k) is None for k in ("product_id", "quantity", "unit_price")
        ):
            raise InvalidInput("Each item must have product_id, quantity, and unit_price")

        product_id = parse_int(f"items[{index}].product_id", item["product_id"])
        quantity = parse_int(f"items[{index}].quantity", item["quantity"])
        if quantity <= 0:
            raise InvalidInput(f"items[{index}].quantity must be a positive integer")
        unit_price = parse_money(f"items[{index}].unit_price", item["unit_price"])

        parsed.append(LineItem(product_id=product_id, quantity=quantity, unit_price=unit_price))
    return parsed


def compute_totals(
    lines: list[LineItem],
    *,
    discount_amount: Decimal,
    tax_amount: Decimal,
    role: str,
) -> SaleTotals:
    subtotal = quantize(sum((line.total_price for line in lines), Decimal("0")))
    total = quantize(subtotal - discount_amount + tax_amount)
    rate = commission_rate_for_role(role)
    commission = quantize(total * rate / Decimal("100"))
    return SaleTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total_amount=total,
        commission_rate=rate,
        commission_amount=commission,
    )


def create_sale(
    *,
    actor: Identity,
    items,
    customer_id=None,
    discount_amount=0,
    tax_amount=0,
    payment_method: str | None = None,
    notes: str | None = None,
) -> Sale:
    """
    Record a sale with its lines, stock movements and customer total.

    Raises:
        InvalidInput: empty cart, missing item field, malformed amount
        NotFound: customer or a product does not exist (nothing is written)
        DuplicateKey: sale numbers kept colliding after all retries
    """
    lines = parse_line_items(items)
    discount = parse_money("discount_amount", discount_amount if discount_amount is not None else 0)
    tax = parse_money("tax_amount", tax_amount if tax_amount is not None else 0)
    # An empty customer select means a walk-in sale
    if customer_id == "":
        customer_id = None
    if customer_id is not None:
        customer_id = parse_int("customer_id", customer_id)
    text = validate_payload(
        model=Sale,
        payload={"payment_method": payment_method, "notes": notes},
        policy=SALE_TEXT_POLICY,
        partial=True,
    )
    totals = compute_totals(lines, discount_amount=discount, tax_amount=tax, role=actor.role)

    def _op():
        with unit_of_work():
            return _insert_sale(
                actor=actor,
                lines=lines,
                totals=totals,
                customer_id=customer_id,
                payment_method=text["payment_method"],
                notes=text["notes"],
            )

    sale = run_with_retry(_op, attempts=current_app.config["SALE_NUMBER_ATTEMPTS"])
    logger.info(
        "Sale %s recorded by %s: %d lines, total %s",
        sale.sale_number, actor.username, len(lines), totals.total_amount,
    )
    return sale


def _insert_sale(
    *,
    actor: Identity,
    lines: list[LineItem],
    totals: SaleTotals,
    customer_id: int | None,
    payment_method: str | None,
    notes: str | None,
) -> Sale:
    customer = None
    if customer_id is not None:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if customer is None:
            raise NotFound("Customer not found")

    sale = Sale(
        sale_number=generate_sale_number(),
        customer_id=customer_id,
        sales_rep_id=actor.id,
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        tax_amount=totals.tax_amount,
        total_amount=totals.total_amount,
        commission_rate=totals.commission_rate,
        commission_amount=totals.commission_amount,
        payment_method=payment_method or None,
        payment_status="completed",
        notes=notes or None,
    )
    db.session.add(sale)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise DuplicateKey("Sale number already exists") from exc

    for line in lines:
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
        if product is None:
            raise NotFound(f"Product {line.product_id} not found")

        db.session.add(SaleLine(
            sale_id=sale.id,
            product_id=product.id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        ))
        record_movement(
            product=product,
            direction=MOVEMENT_OUT,
            quantity=line.quantity,
            cause=CAUSE_SALE,
            actor_id=actor.id,
            reference_id=sale.id,
            notes=f"Sale: {sale.sale_number}",
        )

    if customer is not None:
        customer.total_purchases = (customer.total_purchases or Decimal("0")) + totals.total_amount

    return sale


def delete_sale(*, actor: Identity, sale_id: int) -> None:
    """
    Delete a sale and reverse its ledger effects in one unit of work.

    Raises:
        Forbidden: actor lacks DELETE_SALE
        NotFound: sale absent
    """
    if not role_has_capability(actor.role, "DELETE_SALE"):
        raise Forbidden("Only admins can delete sales")

    with unit_of_work():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFound("Sale not found")

        for line in sale.lines:
            product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
            if product is None:
                continue
            record_movement(
                product=product,
                direction=MOVEMENT_IN,
                quantity=line.quantity,
                cause=CAUSE_SALE_REVERSAL,
                actor_id=actor.id,
                reference_id=sale.id,
                notes=f"Sale deletion: {sale.sale_number}",
            )

        if sale.customer_id is not None:
            customer = lock_for_update(db.session.query(Customer).filter_by(id=sale.customer_id)).first()
            if customer is not None:
                customer.total_purchases = (customer.total_purchases or Decimal("0")) - sale.total_amount

        sale_number = sale.sale_number
        db.session.delete(sale)

    logger.info("Sale %s deleted by %s", sale_number, actor.username)


def update_sale(*, sale_id: int, payment_method=None, payment_status=None, notes=None, notes_provided: bool = False) -> Sale:
    """
    Change payment_method, payment_status and notes only.

    Amounts and lines are immutable; nothing is recomputed. Empty
    payment_method / payment_status keep the stored value; notes is replaced
    whenever notes_provided is True (None clears it).
    """
    payload = {
        key: value
        for key, value in (("payment_method", payment_method), ("payment_status", payment_status))
        if value is not None and value != ""
    }
    if notes_provided:
        payload["notes"] = notes
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_TEXT_POLICY, partial=True)

    with unit_of_work():
        sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise NotFound("Sale not found")

        for key, value in patch.items():
            setattr(sale, key, value)

    return sale


def list_sales() -> list[dict]:
    """All sales, most recent first, with customer name, rep username and line count."""
    item_count = (
        db.session.query(SaleLine.sale_id, func.count(SaleLine.id).label("item_count"))
        .group_by(SaleLine.sale_id)
        .subquery()
    )
    rows = (
        db.session.query(Sale, Customer.name, User.username, item_count.c.item_count)
        .outerjoin(Customer, Sale.customer_id == Customer.id)
        .outerjoin(User, Sale.sales_rep_id == User.id)
        .outerjoin(item_count, item_count.c.sale_id == Sale.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
    items = []
    for sale, customer_name, rep_username, count in rows:
        item = sale.to_dict()
        item["customer_name"] = customer_name
        item["sales_rep_username"] = rep_username
        item["item_count"] = int(count or 0)
        items.append(item)
    return items


def get_sale(sale_id: int) -> dict:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound("Sale not found")

    result = sale.to_dict()
    result["customer_name"] = sale.customer.name if sale.customer else None
    result["sales_rep_username"] = sale.sales_rep.username if sale.sales_rep else None
    result["items"] = [line.to_dict() for line in sale.lines]
    return result
