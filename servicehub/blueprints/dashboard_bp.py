"""
Dashboard Blueprint: summary KPIs with trends.

    GET /api/v1/dashboard/stats?period=day|week|month|year
"""

import logging

from flask import Blueprint, request

from servicehub.blueprints import current_stats_config
from servicehub.core.permission_codes import SystemPermission
from servicehub.middleware.permission_required import require_permission
from servicehub.services import dashboard_service as svc
from servicehub.utils.errors import E, api_error
from servicehub.utils.helpers import api_success

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("/stats", methods=["GET"])
@require_permission(SystemPermission.DASHBOARD_VIEW)
def dashboard_stats():
    """Summary KPIs for the chosen period (default: month)."""
    period = request.args.get("period", svc.DEFAULT_PERIOD)
    try:
        stats = svc.get_dashboard_stats(period, config=current_stats_config())
    except Exception:
        logger.exception("Failed to build dashboard statistics", extra={"period": period})
        return api_error(E.INTERNAL, "Failed to retrieve dashboard statistics")
    return api_success(stats, "Dashboard statistics retrieved successfully")
