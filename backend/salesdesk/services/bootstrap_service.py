# Overview: Service-layer operations for bootstrap; creates the schema and seeds demo data.

"""
Database Bootstrap

initialize_database() is idempotent: tables are created if missing and each
seed group (users, categories, products, customers) is only inserted when
its table is empty. Seeding runs as one unit of work.

Seeded product stock is posted to the ledger as restock movements, so a
freshly seeded database reconciles cleanly.
"""

from __future__ import annotations

import hmac
import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import Forbidden, Internal
from ..models import User, Category, Product, PriceHistory, Customer
from ..models.inventory import CAUSE_RESTOCK
from ..permissions import ROLE_ADMIN, ROLE_SALES_REP
from .auth_service import hash_password
from .concurrency import unit_of_work
from .ledger_service import apply_delta

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    ("admin", "admin@nerho.com", "admin123", "System Administrator", ROLE_ADMIN),
    ("sales_rep", "sales@nerho.com", "sales123", "Demo Sales Representative", ROLE_SALES_REP),
]

DEFAULT_CATEGORIES = [
    ("Electronics", "Electronic devices and accessories"),
    ("Clothing", "Apparel and fashion items"),
    ("Books", "Books and educational materials"),
    ("Home & Garden", "Home improvement and garden supplies"),
    ("Sports", "Sports equipment and accessories"),
]

# (name, description, category, sku, cost, price, stock, min level)
DEFAULT_PRODUCTS = [
    ("Wireless Bluetooth Headphones", "High-quality wireless headphones with noise cancellation",
     "Electronics", "WBH-001", "75.00", "149.99", 50, 10),
    ("Premium Cotton T-Shirt", "Comfortable 100% cotton t-shirt",
     "Clothing", "CT-001", "8.00", "24.99", 100, 20),
    ("JavaScript Programming Guide", "Complete guide to modern JavaScript programming",
     "Books", "JS-001", "15.00", "39.99", 25, 5),
    ("Smart Home Security Camera", "WiFi-enabled security camera with mobile app",
     "Electronics", "SC-001", "45.00", "89.99", 30, 5),
    ("Running Shoes", "Professional running shoes for athletes",
     "Clothing", "RS-001", "35.00", "79.99", 75, 15),
]

DEFAULT_CUSTOMERS = [
    ("John Smith", "john.smith@email.com", "+1-555-0101", "123 Main St, City, State 12345", "individual"),
    ("Sarah Johnson", "sarah.j@email.com", "+1-555-0102", "456 Oak Ave, City, State 12345", "individual"),
    ("ABC Corporation", "orders@abc-corp.com", "+1-555-0200", "789 Business Blvd, City, State 12345", "business"),
]


def check_init_key(provided) -> None:
    """Raise Forbidden unless provided matches DB_INIT_KEY; an unset key always fails."""
    expected = current_app.config.get("DB_INIT_KEY")
    if not expected or not isinstance(provided, str):
        raise Forbidden("Invalid initialization key")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise Forbidden("Invalid initialization key")


def _table_empty(model) -> bool:
    return db.session.query(model.id).first() is None


def _seed_users() -> int:
    if db.session.query(User.id).filter_by(username="admin").first() is not None:
        return 0
    for username, email, password, full_name, role in DEFAULT_USERS:
        db.session.add(User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=role,
            is_active=True,
        ))
    db.session.flush()
    return len(DEFAULT_USERS)


def _seed_categories() -> int:
    if not _table_empty(Category):
        return 0
    for name, description in DEFAULT_CATEGORIES:
        db.session.add(Category(name=name, description=description))
    db.session.flush()
    return len(DEFAULT_CATEGORIES)


def _seed_products(admin_id: int | None) -> int:
    if not _table_empty(Product):
        return 0
    categories = {c.name: c.id for c in db.session.query(Category).all()}
    for name, description, category, sku, cost, price, stock, min_level in DEFAULT_PRODUCTS:
        product = Product(
            name=name,
            description=description,
            category_id=categories.get(category),
            sku=sku,
            cost_price=Decimal(cost),
            selling_price=Decimal(price),
            stock_quantity=0,
            min_stock_level=min_level,
            created_by=admin_id,
        )
        db.session.add(product)
        db.session.flush()
        db.session.add(PriceHistory(
            product_id=product.id,
            event_type="created",
            new_price=product.selling_price,
            changed_by=admin_id,
        ))
        apply_delta(
            product=product,
            quantity_delta=stock,
            cause=CAUSE_RESTOCK,
            actor_id=admin_id,
            notes="Initial stock",
        )
    return len(DEFAULT_PRODUCTS)


def _seed_customers(admin_id: int | None) -> int:
    if not _table_empty(Customer):
        return 0
    for name, email, phone, address, customer_type in DEFAULT_CUSTOMERS:
        db.session.add(Customer(
            name=name,
            email=email,
            phone=phone,
            address=address,
            customer_type=customer_type,
            total_purchases=Decimal("0"),
            created_by=admin_id,
        ))
    return len(DEFAULT_CUSTOMERS)


def initialize_database() -> dict:
    """Create tables and seed any empty seed group. Returns counts inserted."""
    try:
        db.create_all()
    except SQLAlchemyError as exc:
        logger.exception("Schema creation failed")
        raise Internal("Database initialization failed") from exc

    with unit_of_work():
        users = _seed_users()
        admin = db.session.query(User).filter_by(username="admin").first()
        admin_id = admin.id if admin else None
        seeded = {
            "users": users,
            "categories": _seed_categories(),
            "products": _seed_products(admin_id),
            "customers": _seed_customers(admin_id),
        }

    logger.info("Database initialized; seeded %s", seeded)
    return seeded
