"""
Statistics Blueprint: weekly / monthly / yearly charts and counts.

    GET /api/v1/<entity>/stats/weekly?weeks=12
    GET /api/v1/<entity>/stats/monthly?months=12
    GET /api/v1/<entity>/stats/yearly?years=3
    GET /api/v1/<entity>/count

<entity> is customers, requests, appointments or users; each route is
guarded by ``<entity>.view``. Lookback values that are missing or invalid
fall back to the default window.
"""

import logging

from flask import Blueprint, request

from servicehub.blueprints import current_stats_config
from servicehub.core.permission_codes import SystemPermission
from servicehub.middleware.permission_required import require_permission
from servicehub.services import stats_service
from servicehub.services.record_source import count_records
from servicehub.utils.errors import E, api_error
from servicehub.utils.helpers import api_success

logger = logging.getLogger(__name__)

stats_bp = Blueprint("stats", __name__, url_prefix="/api/v1")

_LABELS = {
    "customers": "customer",
    "requests": "request",
    "appointments": "appointment",
    "users": "user",
}
_LOOKBACK_PARAM = {"weekly": "weeks", "monthly": "months", "yearly": "years"}


def _stats(entity: str, granularity: str):
    lookback = request.args.get(_LOOKBACK_PARAM[granularity])
    try:
        rows = stats_service.build_entity_stats(
            entity,
            stats_service.GRANULARITIES[granularity],
            lookback,
            config=current_stats_config(),
        )
    except Exception:
        logger.exception(
            "Failed to build %s %s statistics", granularity, entity,
            extra={"entity": entity, "granularity": granularity},
        )
        return api_error(E.INTERNAL, f"Server error while retrieving {_LABELS[entity]} statistics")
    return api_success(rows, f"{granularity.capitalize()} {_LABELS[entity]} statistics retrieved successfully")


def _count(entity: str):
    try:
        result = count_records(entity)
    except Exception:
        logger.exception("Failed to count %s", entity, extra={"entity": entity})
        return api_error(E.INTERNAL, f"Server error while counting {entity}")
    return api_success({"count": result.count}, f"{_LABELS[entity].capitalize()} count retrieved successfully")


# ═════════════════════════════════════════════════════════════════════════════
# Customers
# ═════════════════════════════════════════════════════════════════════════════

@stats_bp.route("/customers/stats/weekly", methods=["GET"])
@require_permission(SystemPermission.CUSTOMERS_VIEW)
def customers_weekly():
    return _stats("customers", "weekly")


@stats_bp.route("/customers/stats/monthly", methods=["GET"])
@require_permission(SystemPermission.CUSTOMERS_VIEW)
def customers_monthly():
    return _stats("customers", "monthly")


@stats_bp.route("/customers/stats/yearly", methods=["GET"])
@require_permission(SystemPermission.CUSTOMERS_VIEW)
def customers_yearly():
    return _stats("customers", "yearly")


@stats_bp.route("/customers/count", methods=["GET"])
@require_permission(SystemPermission.CUSTOMERS_VIEW)
def customers_count():
    return _count("customers")


# ═════════════════════════════════════════════════════════════════════════════
# Contact requests
# ═════════════════════════════════════════════════════════════════════════════

@stats_bp.route("/requests/stats/weekly", methods=["GET"])
@require_permission(SystemPermission.REQUESTS_VIEW)
def requests_weekly():
    return _stats("requests", "weekly")


@stats_bp.route("/requests/stats/monthly", methods=["GET"])
@require_permission(SystemPermission.REQUESTS_VIEW)
def requests_monthly():
    return _stats("requests", "monthly")


@stats_bp.route("/requests/stats/yearly", methods=["GET"])
@require_permission(SystemPermission.REQUESTS_VIEW)
def requests_yearly():
    return _stats("requests", "yearly")


@stats_bp.route("/requests/count", methods=["GET"])
@require_permission(SystemPermission.REQUESTS_VIEW)
def requests_count():
    return _count("requests")


# ═════════════════════════════════════════════════════════════════════════════
# Appointments
# ═════════════════════════════════════════════════════════════════════════════

@stats_bp.route("/appointments/stats/weekly", methods=["GET"])
@require_permission(SystemPermission.APPOINTMENTS_VIEW)
def appointments_weekly():
    return _stats("appointments", "weekly")


@stats_bp.route("/appointments/stats/monthly", methods=["GET"])
@require_permission(SystemPermission.APPOINTMENTS_VIEW)
def appointments_monthly():
    return _stats("appointments", "monthly")


@stats_bp.route("/appointments/stats/yearly", methods=["GET"])
@require_permission(SystemPermission.APPOINTMENTS_VIEW)
def appointments_yearly():
    return _stats("appointments", "yearly")


@stats_bp.route("/appointments/count", methods=["GET"])
@require_permission(SystemPermission.APPOINTMENTS_VIEW)
def appointments_count():
    return _count("appointments")


# ═════════════════════════════════════════════════════════════════════════════
# Users
# ═════════════════════════════════════════════════════════════════════════════

@stats_bp.route("/users/stats/weekly", methods=["GET"])
@require_permission(SystemPermission.USERS_VIEW)
def users_weekly():
    return _stats("users", "weekly")


@stats_bp.route("/users/stats/monthly", methods=["GET"])
@require_permission(SystemPermission.USERS_VIEW)
def users_monthly():
    return _stats("users", "monthly")


@stats_bp.route("/users/stats/yearly", methods=["GET"])
@require_permission(SystemPermission.USERS_VIEW)
def users_yearly():
    return _stats("users", "yearly")


@stats_bp.route("/users/count", methods=["GET"])
@require_permission(SystemPermission.USERS_VIEW)
def users_count():
    return _count("users")
