# Overview: Service-layer operations for reporting; read-only dashboard aggregates.

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..errors import InvalidInput
from ..models import Sale, SaleLine, Product, Customer, User
from ..money import to_json_number
from ..permissions import ROLE_SALES_REP, role_has_capability
from .session_service import Identity
from salesdesk.time_utils import utcnow, to_utc_z

DAILY_SALES_DAYS = 7
TOP_PRODUCTS_LIMIT = 5
RECENT_SALES_LIMIT = 10
MAX_WINDOW_DAYS = 365
WALK_IN_CUSTOMER = "Walk-in Customer"


def resolve_window_days(raw) -> int:
    """Window from a ?days= value; None means the configured default."""
    if raw is None or raw == "":
        return current_app.config["ANALYTICS_WINDOW_DAYS"]
    try:
        days = int(raw)
    except (TypeError, ValueError):
        raise InvalidInput("days must be an integer")
    if not 1 <= days <= MAX_WINDOW_DAYS:
        raise InvalidInput(f"days must be between 1 and {MAX_WINDOW_DAYS}")
    return days


def _sales_summary(since) -> dict:
    row = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount), 0),
        func.coalesce(func.avg(Sale.total_amount), 0),
        func.coalesce(func.sum(Sale.commission_amount), 0),
    ).filter(Sale.created_at >= since).one()
    return {
        "total_sales": int(row[0] or 0),
        "total_revenue": to_json_number(row[1]),
        "avg_sale_amount": to_json_number(row[2]),
        "total_commission": to_json_number(row[3]),
    }


def _product_summary() -> dict:
    low = case((Product.stock_quantity <= Product.min_stock_level, 1), else_=0)
    row = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(low), 0),
        func.coalesce(func.sum(Product.stock_quantity * Product.cost_price), 0),
    ).one()
    return {
        "total_products": int(row[0] or 0),
        "low_stock_products": int(row[1] or 0),
        "inventory_value": to_json_number(row[2]),
    }


def _customer_summary(since) -> dict:
    new = case((Customer.created_at >= since, 1), else_=0)
    row = db.session.query(
        func.count(Customer.id),
        func.coalesce(func.sum(new), 0),
        func.coalesce(func.avg(Customer.total_purchases), 0),
    ).one()
    return {
        "total_customers": int(row[0] or 0),
        "new_customers_this_month": int(row[1] or 0),
        "avg_customer_value": to_json_number(row[2]),
    }


def _top_products(since) -> list[dict]:
    total_sold = func.sum(SaleLine.quantity).label("total_sold")
    rows = (
        db.session.query(
            Product.name,
            Product.selling_price,
            total_sold,
            func.sum(SaleLine.total_price).label("total_revenue"),
        )
        .join(SaleLine, SaleLine.product_id == Product.id)
        .join(Sale, SaleLine.sale_id == Sale.id)
        .filter(Sale.created_at >= since)
        .group_by(Product.id, Product.name, Product.selling_price)
        .order_by(total_sold.desc(), Product.id.asc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )
    return [
        {
            "name": row.name,
            "selling_price": to_json_number(row.selling_price),
            "total_sold": int(row.total_sold or 0),
            "total_revenue": to_json_number(row.total_revenue),
        }
        for row in rows
    ]


def _daily_sales(now) -> list[dict]:
    sale_date = func.date(Sale.created_at).label("sale_date")
    rows = (
        db.session.query(
            sale_date,
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_amount), 0).label("revenue"),
        )
        .filter(Sale.created_at >= now - timedelta(days=DAILY_SALES_DAYS))
        .group_by(sale_date)
        .order_by(sale_date.desc())
        .all()
    )
    # SQLite hands back 'YYYY-MM-DD' strings, Postgres hands back dates
    return [
        {
            "date": row.sale_date.isoformat() if isinstance(row.sale_date, date) else str(row.sale_date),
            "sales_count": int(row.sales_count or 0),
            "revenue": to_json_number(row.revenue),
        }
        for row in rows
    ]


def _sales_rep_performance(since) -> list[dict]:
    """Every active sales rep, including those with no sales in the window."""
    revenue = func.coalesce(func.sum(Sale.total_amount), 0).label("total_revenue")
    rows = (
        db.session.query(
            User.username,
            User.full_name,
            func.count(Sale.id).label("total_sales"),
            revenue,
            func.coalesce(func.sum(Sale.commission_amount), 0).label("total_commission"),
        )
        .outerjoin(Sale, (Sale.sales_rep_id == User.id) & (Sale.created_at >= since))
        .filter(User.role == ROLE_SALES_REP, User.is_active.is_(True))
        .group_by(User.id, User.username, User.full_name)
        .order_by(revenue.desc(), User.id.asc())
        .all()
    )
    return [
        {
            "username": row.username,
            "full_name": row.full_name,
            "total_sales": int(row.total_sales or 0),
            "total_revenue": to_json_number(row.total_revenue),
            "total_commission": to_json_number(row.total_commission),
        }
        for row in rows
    ]


def _my_performance(user_id: int, since) -> dict:
    row = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount), 0),
        func.coalesce(func.sum(Sale.commission_amount), 0),
    ).filter(Sale.sales_rep_id == user_id, Sale.created_at >= since).one()
    return {
        "total_sales": int(row[0] or 0),
        "total_revenue": to_json_number(row[1]),
        "total_commission": to_json_number(row[2]),
    }


def _recent_sales() -> list[dict]:
    rows = (
        db.session.query(Sale.sale_number, Sale.total_amount, Sale.created_at, Customer.name, User.username)
        .outerjoin(Customer, Sale.customer_id == Customer.id)
        .outerjoin(User, Sale.sales_rep_id == User.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(RECENT_SALES_LIMIT)
        .all()
    )
    return [
        {
            "sale_number": sale_number,
            "total_amount": to_json_number(total),
            "created_at": to_utc_z(created_at),
            "customer_name": customer_name or WALK_IN_CUSTOMER,
            "sales_rep": rep,
        }
        for sale_number, total, created_at, customer_name, rep in rows
    ]


def _low_stock_alerts() -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.stock_quantity <= Product.min_stock_level)
        .order_by((Product.stock_quantity - Product.min_stock_level).asc(), Product.id.asc())
        .all()
    )
    return [
        {
            "id": p.id,
            "name": p.name,
            "current_stock": p.stock_quantity,
            "min_level": p.min_stock_level,
            "selling_price": to_json_number(p.selling_price),
        }
        for p in products
    ]


def generate_analytics(identity: Identity, days: int | None = None) -> dict:
    """
    Dashboard aggregates for identity.

    Callers with VIEW_COMPANY_FINANCIALS get sales_rep_performance; everyone
    else gets my_performance scoped to their own sales. Money values are
    JSON numbers.
    """
    if days is None:
        days = current_app.config["ANALYTICS_WINDOW_DAYS"]
    now = utcnow()
    since = now - timedelta(days=days)

    analytics = {
        "window_days": days,
        "sales": _sales_summary(since),
        "products": _product_summary(),
        "customers": _customer_summary(since),
        "top_products": _top_products(since),
        "daily_sales": _daily_sales(now),
    }

    if role_has_capability(identity.role, "VIEW_COMPANY_FINANCIALS"):
        analytics["sales_rep_performance"] = _sales_rep_performance(since)
    else:
        analytics["my_performance"] = _my_performance(identity.id, since)

    analytics["recent_sales"] = _recent_sales()
    analytics["low_stock_alerts"] = _low_stock_alerts()
    return analytics
