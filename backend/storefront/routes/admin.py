# Overview: Flask API routes for the admin dashboard.

from flask import Blueprint, jsonify, current_app

from ..services import reporting_service
from ..decorators import require_auth, require_role

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/stats")
@require_auth
@require_role("ADMIN")
def dashboard_stats_route():
    """Headline counts, delivered revenue, recent orders and low-stock products."""
    try:
        return jsonify(reporting_service.dashboard_stats())
    except Exception:
        current_app.logger.exception("Failed to build dashboard stats")
        return jsonify({"error": "Internal server error"}), 500
