"""
Permission Decorators: route guards over the permission evaluator.

Usage:
    @bp.route("/customers/stats/monthly", methods=["GET"])
    @require_permission(SystemPermission.CUSTOMERS_VIEW)
    def customers_monthly():
        ...

    @bp.route("/reports", methods=["GET"])
    @require_any_permission("customers.view", "requests.view")
    def reports():
        ...

No authenticated caller (see jwt_auth) → 401 ERR_UNAUTHORIZED.
Authenticated but denied → 403 ERR_FORBIDDEN.
"""

import functools
import logging

from flask import g

from servicehub.services.permission_service import (
    check_user_has_all_permissions,
    check_user_has_any_permission,
    check_user_permission,
)
from servicehub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def _unauthenticated():
    return api_error(E.UNAUTHORIZED, "Authentication required")


def login_required(f):
    """Decorator: require an authenticated caller, no specific permission."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "user_id", None) is None:
            return _unauthenticated()
        return f(*args, **kwargs)
    return decorated


def require_permission(code: str):
    """
    Decorator: require the caller to hold *code*.

    Administrators pass without an explicit grant.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_id = getattr(g, "user_id", None)
            if user_id is None:
                return _unauthenticated()

            if not check_user_permission(user_id, code):
                logger.warning(
                    "User %d denied: missing permission '%s' on %s",
                    user_id, code, f.__name__,
                    extra={"user_id": user_id, "permission": code},
                )
                return api_error(E.FORBIDDEN, "Permission denied", details={"required": code})

            return f(*args, **kwargs)
        return decorated
    return decorator


def require_any_permission(*codes: str):
    """Decorator: require at least ONE of the listed permissions."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_id = getattr(g, "user_id", None)
            if user_id is None:
                return _unauthenticated()

            if not check_user_has_any_permission(user_id, list(codes)):
                logger.warning(
                    "User %d denied: missing any of %s on %s",
                    user_id, codes, f.__name__,
                    extra={"user_id": user_id},
                )
                return api_error(E.FORBIDDEN, "Permission denied", details={"required_any": list(codes)})

            return f(*args, **kwargs)
        return decorated
    return decorator


def require_all_permissions(*codes: str):
    """Decorator: require ALL of the listed permissions."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_id = getattr(g, "user_id", None)
            if user_id is None:
                return _unauthenticated()

            if not check_user_has_all_permissions(user_id, list(codes)):
                logger.warning(
                    "User %d denied: missing all of %s on %s",
                    user_id, codes, f.__name__,
                    extra={"user_id": user_id},
                )
                return api_error(E.FORBIDDEN, "Permission denied", details={"required_all": list(codes)})

            return f(*args, **kwargs)
        return decorated
    return decorator
