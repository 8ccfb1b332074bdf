# backend/salesdesk/routes/system.py
"""
System health and bootstrap endpoints.

POST /api/init-db is guarded by a shared secret (DB_INIT_KEY) rather than a
bearer token, since it runs before any user exists.
"""

import time
from flask import Blueprint, current_app, request, jsonify
from sqlalchemy import text

from ..extensions import db
from ..models import User, Product
from ..services import bootstrap_service
from salesdesk.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "products": product_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable or schema missing
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503


@system_bp.post("/init-db")
def init_db_route():
    """
    Create the schema and seed demo data where absent.

    Body: {"init_key": "..."}; 403 when it does not match DB_INIT_KEY or
    DB_INIT_KEY is unset.
    """
    data = request.get_json(silent=True) or {}
    bootstrap_service.check_init_key(data.get("init_key"))

    seeded = bootstrap_service.initialize_database()
    return jsonify({
        "message": "Database initialized successfully",
        "seeded": seeded,
    })
