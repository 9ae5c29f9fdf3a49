"""
Shared pytest fixtures for the ServiceHub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - permissions: Seeded permission catalogue
    - make_user: User factory (role + explicit grants)
    - auth_headers: Bearer header builder for a user
"""

import pytest

from servicehub import create_app
from servicehub.models import db as _db
from servicehub.models.auth import User
from servicehub.services.jwt_service import generate_access_token
from servicehub.services.permission_service import (
    invalidate_all_cache,
    seed_permissions,
    set_user_permissions,
)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Tables are recreated per test and ids are reused; a stale cache
        # entry would leak one test's grants into the next.
        invalidate_all_cache()
        yield
        invalidate_all_cache()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def permissions():
    """Seed the permission catalogue and return the number of rows created."""
    return seed_permissions()


_user_counter = 0


@pytest.fixture()
def make_user(permissions):
    """Factory: create a user with *role* and exactly *grants*."""

    def _make(role="user", grants=(), email=None, **fields):
        global _user_counter
        _user_counter += 1
        user = User(
            email=email or f"user{_user_counter}@example.com",
            full_name=f"Test User {_user_counter}",
            role=role,
            **fields,
        )
        _db.session.add(user)
        _db.session.commit()
        if grants:
            set_user_permissions(user.id, list(grants))
        return user

    return _make


@pytest.fixture()
def auth_headers(app):
    """Build an ``Authorization: Bearer`` header for *user*."""

    def _headers(user):
        token = generate_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
