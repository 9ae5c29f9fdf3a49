"""
ServiceHub
Configuration classes for the Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])

Collaborators never read ``app.config`` directly; they receive one of the
frozen config structs at the bottom of this module, built with the
matching ``*_from_app_config`` helper.
"""

import os
import secrets
from dataclasses import dataclass

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'servicehub_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _csv(value: str) -> tuple[str, ...]:
    return tuple(v.strip().lower() for v in value.split(",") if v.strip())


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", "900"))
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,   # recycle connections every 5 min
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Permissions
    ADMIN_ROLES = _csv(os.getenv("ADMIN_ROLES", "admin"))
    PERMISSION_CACHE_TTL = int(os.getenv("PERMISSION_CACHE_TTL", "300"))
    ADMIN_BYPASS_ALL_PERMISSIONS = os.getenv("ADMIN_BYPASS_ALL_PERMISSIONS", "false").lower() == "true"

    # Statistics
    STATS_RECORD_LIMIT = int(os.getenv("STATS_RECORD_LIMIT", "1000"))

    # n8n workflow engine (optional; workflow endpoints answer 502 when unset)
    N8N_BASE_URL = os.getenv("N8N_BASE_URL", "")
    N8N_API_KEY = os.getenv("N8N_API_KEY", "")
    N8N_WEBHOOK_SECRET = os.getenv("N8N_WEBHOOK_SECRET", "")
    N8N_TIMEOUT = int(os.getenv("N8N_TIMEOUT", "30"))

    # Rate limiting (Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    WEBHOOK_RATE_LIMIT = os.getenv("WEBHOOK_RATE_LIMIT", "120 per minute")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = (
        _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else _SQLITE_DEV
    )


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    JWT_SECRET_KEY = None
    RATELIMIT_ENABLED = False
    N8N_BASE_URL = "http://n8n.test"
    N8N_API_KEY = "test-n8n-key"
    N8N_WEBHOOK_SECRET = ""


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    # Heroku-style postgres:// URLs must be rewritten for SQLAlchemy 2.0
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


# ═════════════════════════════════════════════════════════════════════════════
# Explicit collaborator configuration
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PermissionConfig:
    """Settings for the permission evaluator and its store."""

    admin_roles: frozenset[str] = frozenset({"admin"})
    admin_bypass_all: bool = False
    cache_ttl: int = 300


@dataclass(frozen=True)
class StatsConfig:
    """Settings for the statistics pipelines."""

    record_limit: int = 1000


@dataclass(frozen=True)
class WorkflowConfig:
    """Connection settings for the n8n workflow engine."""

    base_url: str = ""
    api_key: str = ""
    webhook_secret: str = ""
    timeout: int = 30

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.api_key)


def permission_config_from_app_config(app_config) -> PermissionConfig:
    roles = app_config.get("ADMIN_ROLES") or ("admin",)
    return PermissionConfig(
        admin_roles=frozenset(r.lower() for r in roles),
        admin_bypass_all=bool(app_config.get("ADMIN_BYPASS_ALL_PERMISSIONS", False)),
        cache_ttl=int(app_config.get("PERMISSION_CACHE_TTL", 300)),
    )


def stats_config_from_app_config(app_config) -> StatsConfig:
    return StatsConfig(record_limit=int(app_config.get("STATS_RECORD_LIMIT", 1000)))


def workflow_config_from_app_config(app_config) -> WorkflowConfig:
    return WorkflowConfig(
        base_url=(app_config.get("N8N_BASE_URL") or "").rstrip("/"),
        api_key=app_config.get("N8N_API_KEY") or "",
        webhook_secret=app_config.get("N8N_WEBHOOK_SECRET") or "",
        timeout=int(app_config.get("N8N_TIMEOUT", 30)),
    )
