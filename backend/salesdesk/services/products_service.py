# backend/salesdesk/services/products_service.py
"""
Products Service

STOCK: stock_quantity is never assigned here. An initial quantity on create
is posted as a restock movement; a changed quantity on update is posted as
a manual adjustment for the difference. Both go through ledger_service.

PRICE HISTORY: creation writes a 'created' entry; every change of
selling_price writes an 'updated' entry with the old and new price.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import Conflict, NotFound
from ..models import Product, PriceHistory, SaleLine, Category, User
from ..models.inventory import CAUSE_RESTOCK, CAUSE_MANUAL_ADJUSTMENT
from .concurrency import lock_for_update, unit_of_work
from .ledger_service import apply_delta

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category_id", "sku",
    "cost_price", "selling_price", "min_stock_level",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_sku_available(sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise Conflict("SKU already exists")


def _ensure_category_exists(category_id: int | None) -> None:
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise NotFound("Category not found")


def list_products() -> list[dict]:
    """All products, newest first, with category name and creator username."""
    rows = (
        db.session.query(Product, Category.name, User.username)
        .outerjoin(Category, Product.category_id == Category.id)
        .outerjoin(User, Product.created_by == User.id)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )
    items = []
    for product, category_name, username in rows:
        item = product.to_dict()
        item["category_name"] = category_name
        item["created_by_username"] = username
        items.append(item)
    return items


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def create_product(*, patch: dict, actor_id: int) -> Product:
    """
    Create a product from a validated patch.

    patch may carry stock_quantity; it is posted to the ledger as a restock.
    """
    _ensure_sku_available(patch.get("sku"))
    _ensure_category_exists(patch.get("category_id"))

    initial_stock = patch.get("stock_quantity") or 0

    with unit_of_work():
        product = Product(stock_quantity=0, min_stock_level=0, created_by=actor_id)
        apply_product_patch(product, patch)
        db.session.add(product)
        db.session.flush()

        db.session.add(PriceHistory(
            product_id=product.id,
            event_type="created",
            new_price=product.selling_price,
            changed_by=actor_id,
        ))

        apply_delta(
            product=product,
            quantity_delta=initial_stock,
            cause=CAUSE_RESTOCK,
            actor_id=actor_id,
            notes="Initial stock",
        )

    return product


def update_product(*, product_id: int, patch: dict, actor_id: int) -> Product:
    """Partial update. Returns the updated product."""
    with unit_of_work():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFound("Product not found")

        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_sku_available(patch["sku"], exclude_id=product.id)
        if "category_id" in patch:
            _ensure_category_exists(patch["category_id"])

        old_price = product.selling_price
        apply_product_patch(product, patch)

        new_price = patch.get("selling_price")
        if new_price is not None and new_price != old_price:
            db.session.add(PriceHistory(
                product_id=product.id,
                event_type="updated",
                old_price=old_price,
                new_price=new_price,
                changed_by=actor_id,
            ))

        target_stock = patch.get("stock_quantity")
        if target_stock is not None:
            apply_delta(
                product=product,
                quantity_delta=target_stock - product.stock_quantity,
                cause=CAUSE_MANUAL_ADJUSTMENT,
                actor_id=actor_id,
                notes="Stock edited on product",
            )

    return product


def delete_product(*, product_id: int) -> None:
    """
    Hard-delete a product that no sale line references.

    Raises:
        NotFound: product absent
        Conflict: product appears on at least one sale
    """
    with unit_of_work():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")

        used = db.session.query(SaleLine.id).filter(SaleLine.product_id == product_id).first()
        if used is not None:
            raise Conflict("Cannot delete product that has been used in sales")

        db.session.delete(product)


def price_history(product_id: int) -> list[PriceHistory]:
    product = get_product(product_id)
    return list(product.price_history)


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(*, name: str, description: str | None = None) -> Category:
    category = Category(name=name, description=description)
    with unit_of_work():
        db.session.add(category)
    return category
