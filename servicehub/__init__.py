"""
ServiceHub
Flask Application Factory.

Usage:
    from servicehub import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from servicehub.config import config
from servicehub.core.exceptions import NotFoundError, ValidationError, WorkflowError
from servicehub.middleware.jwt_auth import init_jwt_middleware
from servicehub.middleware.logging_config import configure_logging
from servicehub.middleware.timing import init_request_timing
from servicehub.models import db
from servicehub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    import sqlite3
    if isinstance(dbapi_conn, sqlite3.Connection):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(key_func=get_remote_address, default_limits=[])


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Falls back to APP_ENV, then "development".

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + JWT caller resolution ───────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from servicehub.models import appointment as _appointment_models  # noqa: F401
    from servicehub.models import auth as _auth_models  # noqa: F401
    from servicehub.models import customer as _customer_models  # noqa: F401
    from servicehub.models import service_request as _request_models  # noqa: F401

    if not app.config.get("TESTING"):
        with app.app_context():
            try:
                db.create_all()
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from servicehub.blueprints.dashboard_bp import dashboard_bp
    from servicehub.blueprints.permissions_bp import permissions_bp
    from servicehub.blueprints.stats_bp import stats_bp
    from servicehub.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(stats_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(permissions_bp)
    app.register_blueprint(workflow_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-permissions")
    def seed_permissions_cmd():
        """Insert the system permission catalogue (idempotent)."""
        from servicehub.services.permission_service import seed_permissions
        count = seed_permissions()
        logger.info("Seeded %s new permissions.", count)

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "ServiceHub"}

    # ── Domain exceptions ────────────────────────────────────────────────
    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        logger.info("Not found: %s", e)
        return api_error(E.NOT_FOUND, f"{e.resource} not found")

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details or None)

    @app.errorhandler(WorkflowError)
    def handle_workflow(e):
        logger.warning("Workflow engine error: %s", e, extra={"status": e.status_code})
        return api_error(E.UPSTREAM, str(e))

    # ── HTTP error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": E.NOT_FOUND, "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "code": E.RATE_LIMITED, "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": E.INTERNAL}, 500

    return app
