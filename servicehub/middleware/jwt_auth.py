"""
JWT Auth Middleware: parses ``Authorization: Bearer <token>`` and sets
``g.user_id`` / ``g.user_role``.

The middleware never rejects a request itself. A missing, expired or
invalid token leaves ``g.user_id`` as None and the route guards in
``permission_required`` answer 401.
"""

import logging

import jwt as pyjwt
from flask import g, request

from servicehub.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/webhooks/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.user_id = None
        g.user_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        if path.startswith(JWT_SKIP_PREFIXES):
            return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired bearer token", extra={"path": path})
            return
        except pyjwt.InvalidTokenError:
            logger.warning("Invalid bearer token", extra={"path": path})
            return

        try:
            g.user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            logger.warning("Bearer token without numeric subject", extra={"path": path})
            return
        g.user_role = payload.get("role")
