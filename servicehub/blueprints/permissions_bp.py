"""
Permissions Blueprint: permission checks and per-user grants.

    GET /api/v1/users/permissions/check?user_id=&permission=
    GET /api/v1/users/<id>/permissions
    PUT /api/v1/users/<id>/permissions     {"permissions": ["customers.view", ...]}
    GET /api/v1/permissions/role-defaults/<role>
"""

import logging

from flask import Blueprint, g, request

from servicehub.core.permission_codes import SystemPermission
from servicehub.middleware.permission_required import login_required, require_permission
from servicehub.services import permission_service as svc
from servicehub.utils.errors import E, api_error
from servicehub.utils.helpers import api_success, parse_int

logger = logging.getLogger(__name__)

permissions_bp = Blueprint("permissions", __name__, url_prefix="/api/v1")


@permissions_bp.route("/users/permissions/check", methods=["GET"])
@login_required
def check_permission():
    """Does user ``user_id`` hold ``permission``? Answers with a bare bool."""
    user_id = parse_int(request.args.get("user_id"))
    if user_id is None or user_id <= 0:
        return api_error(E.VALIDATION_INVALID, "Invalid or missing user_id")
    permission = (request.args.get("permission") or "").strip()
    if not permission:
        return api_error(E.VALIDATION_REQUIRED, "Missing permission parameter")

    allowed = svc.check_user_permission(user_id, permission)
    logger.debug(
        "Permission check by %s", g.user_id,
        extra={"user_id": user_id, "permission": permission},
    )
    message = (
        f"User has permission: {permission}" if allowed
        else f"User does not have permission: {permission}"
    )
    return api_success(allowed, message)


@permissions_bp.route("/users/<int:user_id>/permissions", methods=["GET"])
@require_permission(SystemPermission.PERMISSIONS_VIEW)
def get_user_permissions(user_id):
    return api_success(svc.get_user_permission_codes(user_id), "User permissions retrieved successfully")


@permissions_bp.route("/users/<int:user_id>/permissions", methods=["PUT"])
@require_permission(SystemPermission.PERMISSIONS_MANAGE)
def update_user_permissions(user_id):
    data = request.get_json(silent=True) or {}
    if "permissions" not in data:
        return api_error(E.VALIDATION_REQUIRED, "permissions is required")
    result = svc.set_user_permissions(user_id, data["permissions"], granted_by=g.user_id)
    return api_success(result, "User permissions updated successfully")


@permissions_bp.route("/permissions/role-defaults/<role>", methods=["GET"])
@require_permission(SystemPermission.PERMISSIONS_VIEW)
def role_defaults(role):
    return api_success(
        {"role": role.lower(), "permissions": svc.get_default_permissions_for_role(role)},
        "Default permissions retrieved successfully",
    )
