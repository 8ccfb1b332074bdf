# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

One dashboard payload. Admins see every sales rep's performance; sales reps
see only their own.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import reporting_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("")
@require_auth
def analytics_route():
    """Query params: days (optional, 1-365) overrides the reporting window."""
    days = reporting_service.resolve_window_days(request.args.get("days"))
    return jsonify(reporting_service.generate_analytics(g.current_user, days))
