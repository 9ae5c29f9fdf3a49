"""Tests for servicehub.services.permission_service.

Evaluator behaviour is tested against an in-memory store so failure modes
can be injected; the database store, cache and grants management run
against the test database.
"""

import logging
from unittest.mock import patch

import pytest

from servicehub.config import PermissionConfig, permission_config_from_app_config
from servicehub.core.exceptions import NotFoundError, ValidationError
from servicehub.core.permission_codes import ALL_PERMISSIONS, ROLE_PERMISSIONS, SystemPermission
from servicehub.models import db
from servicehub.models.auth import Permission, UserPermission
from servicehub.services import permission_service as svc
from servicehub.services.permission_service import (
    DatabasePermissionStore,
    PermissionEvaluator,
    PermissionSet,
    UserIdentity,
)


class MemoryStore:
    def __init__(self, users=None, grants=None, fail=False):
        self.users = users or {}
        self.grants = grants or {}
        self.fail = fail
        self.permission_lookups = 0

    def get_user(self, user_id):
        if self.fail:
            raise RuntimeError("store unavailable")
        role = self.users.get(user_id)
        return UserIdentity(user_id=user_id, role=role) if user_id in self.users else None

    def get_permissions(self, user_id):
        if self.fail:
            raise RuntimeError("store unavailable")
        self.permission_lookups += 1
        return PermissionSet(user_id=user_id, codes=frozenset(self.grants.get(user_id, ())))


def _evaluator(store, **config):
    return PermissionEvaluator(store, PermissionConfig(**config))


# ═════════════════════════════════════════════════════════════════════════════
# Single permission
# ═════════════════════════════════════════════════════════════════════════════

class TestHasPermission:
    def test_granted_code(self):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"customers.view"}}))
        assert ev.has_permission(1, "customers.view") is True
        assert ev.has_permission(1, "customers.delete") is False

    @pytest.mark.parametrize("bad_id", [0, -5, None, "abc", "", True, False, 1.5, "-3", "\u00b2"])
    def test_invalid_user_id_denies(self, bad_id, caplog):
        store = MemoryStore({1: "admin"})
        with caplog.at_level(logging.WARNING):
            assert _evaluator(store).has_permission(bad_id, "customers.view") is False
        assert "Invalid user id" in caplog.text

    def test_numeric_string_user_id_is_accepted(self):
        ev = _evaluator(MemoryStore({7: "user"}, {7: {"profile.view"}}))
        assert ev.has_permission("7", "profile.view") is True

    @pytest.mark.parametrize("bad_code", ["", "   ", None, 42])
    def test_invalid_code_denies(self, bad_code):
        ev = _evaluator(MemoryStore({1: "admin"}))
        assert ev.has_permission(1, bad_code) is False

    def test_store_failure_denies_and_logs(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert _evaluator(MemoryStore(fail=True)).has_permission(1, "customers.view") is False
        assert "Permission check failed" in caplog.text

    def test_unknown_user_denies(self):
        assert _evaluator(MemoryStore()).has_permission(99, "customers.view") is False

    @pytest.mark.parametrize("role", ["admin", "Admin", "ADMIN"])
    def test_admin_shortcut_is_case_insensitive(self, role):
        store = MemoryStore({1: role})
        assert _evaluator(store).has_permission(1, "anything.at_all") is True
        assert store.permission_lookups == 0

    def test_configured_admin_roles(self):
        store = MemoryStore({1: "owner", 2: "admin"})
        ev = _evaluator(store, admin_roles=frozenset({"owner"}))
        assert ev.has_permission(1, "customers.view") is True
        assert ev.has_permission(2, "customers.view") is False


# ═════════════════════════════════════════════════════════════════════════════
# Any / all
# ═════════════════════════════════════════════════════════════════════════════

class TestHasAnyPermission:
    def test_one_match_is_enough(self):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"requests.view"}}))
        assert ev.has_any_permission(1, ["customers.view", "requests.view"]) is True
        assert ev.has_any_permission(1, ["customers.view", "users.view"]) is False

    @pytest.mark.parametrize("role", ["admin", "aDmIn"])
    def test_admin_passes_regardless_of_codes(self, role):
        store = MemoryStore({1: role})
        ev = _evaluator(store)
        assert ev.has_any_permission(1, ["no.such.code"]) is True
        assert ev.has_any_permission(1, ["", "x"]) is True
        assert store.permission_lookups == 0

    @pytest.mark.parametrize("codes", [[], (), None, 5, "customers.view", {"customers.view": True}])
    def test_missing_code_list_denies(self, codes):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"customers.view"}}))
        assert ev.has_any_permission(1, codes) is False

    def test_non_collection_codes_never_raise(self, caplog):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"customers.view"}}))
        with caplog.at_level(logging.WARNING):
            assert ev.has_any_permission(1, 5) is False
        assert "No permissions specified" in caplog.text

    def test_invalid_user_id_denies(self):
        assert _evaluator(MemoryStore({1: "admin"})).has_any_permission(0, ["customers.view"]) is False

    def test_store_failure_denies(self):
        assert _evaluator(MemoryStore(fail=True)).has_any_permission(1, ["customers.view"]) is False


class TestHasAllPermissions:
    def test_requires_every_code(self):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"customers.view", "requests.view"}}))
        assert ev.has_all_permissions(1, ["customers.view", "requests.view"]) is True
        assert ev.has_all_permissions(1, ["customers.view", "users.view"]) is False

    def test_admin_without_grants_denied_by_default(self):
        ev = _evaluator(MemoryStore({1: "admin"}))
        assert ev.has_all_permissions(1, ["customers.view"]) is False

    def test_admin_bypass_when_enabled(self):
        ev = _evaluator(MemoryStore({1: "Admin"}), admin_bypass_all=True)
        assert ev.has_all_permissions(1, ["customers.view", "users.delete"]) is True

    def test_empty_list_denies(self):
        ev = _evaluator(MemoryStore({1: "admin"}), admin_bypass_all=True)
        assert ev.has_all_permissions(1, []) is False

    @pytest.mark.parametrize("codes", [5, None, "customers.view", {"customers.view": True}, iter(["customers.view"])])
    def test_non_collection_codes_deny(self, codes):
        ev = _evaluator(MemoryStore({1: "Admin"}, {1: {"customers.view"}}), admin_bypass_all=True)
        assert ev.has_all_permissions(1, codes) is False

    def test_tuple_and_set_are_accepted(self):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"customers.view", "requests.view"}}))
        assert ev.has_all_permissions(1, ("customers.view", "requests.view")) is True
        assert ev.has_all_permissions(1, frozenset({"customers.view"})) is True

    def test_blank_code_in_list_denies(self):
        ev = _evaluator(MemoryStore({1: "employee"}, {1: {"customers.view"}}))
        assert ev.has_all_permissions(1, ["customers.view", " "]) is False

    def test_invalid_user_id_denies(self):
        assert _evaluator(MemoryStore()).has_all_permissions(-1, ["customers.view"]) is False

    def test_store_failure_denies(self):
        assert _evaluator(MemoryStore(fail=True)).has_all_permissions(1, ["customers.view"]) is False


# ═════════════════════════════════════════════════════════════════════════════
# Config
# ═════════════════════════════════════════════════════════════════════════════

def test_permission_config_from_app_config():
    cfg = permission_config_from_app_config({
        "ADMIN_ROLES": ("Admin", "owner"),
        "ADMIN_BYPASS_ALL_PERMISSIONS": True,
        "PERMISSION_CACHE_TTL": 60,
    })
    assert cfg.admin_roles == frozenset({"admin", "owner"})
    assert cfg.admin_bypass_all is True
    assert cfg.cache_ttl == 60


def test_permission_config_defaults():
    cfg = permission_config_from_app_config({})
    assert cfg == PermissionConfig()


# ═════════════════════════════════════════════════════════════════════════════
# Database store + module wrappers
# ═════════════════════════════════════════════════════════════════════════════

class TestDatabaseStore:
    def test_reads_grants(self, make_user):
        user = make_user(role="employee", grants=["customers.view", "requests.view"])
        codes = DatabasePermissionStore().get_permissions(user.id).codes
        assert codes == {"customers.view", "requests.view"}

    def test_unknown_user_is_none(self, permissions):
        assert DatabasePermissionStore().get_user(12345) is None

    def test_results_are_cached(self, make_user):
        user = make_user(grants=["customers.view"])
        store = DatabasePermissionStore()
        store.get_permissions(user.id)

        # Remove the grant behind the service's back: cache still answers
        UserPermission.query.filter_by(user_id=user.id).delete()
        db.session.commit()
        assert "customers.view" in store.get_permissions(user.id).codes

        svc.invalidate_cache(user.id)
        assert store.get_permissions(user.id).codes == frozenset()

    def test_expired_entries_are_reloaded(self, make_user):
        user = make_user(grants=["customers.view"])
        store = DatabasePermissionStore(cache_ttl=300)
        store.get_permissions(user.id)
        UserPermission.query.filter_by(user_id=user.id).delete()
        db.session.commit()

        real_time = svc.time.time
        with patch.object(svc.time, "time", return_value=real_time() + 301):
            assert store.get_permissions(user.id).codes == frozenset()


class TestModuleWrappers:
    def test_check_user_permission(self, make_user):
        user = make_user(role="employee", grants=[SystemPermission.CUSTOMERS_VIEW])
        assert svc.check_user_permission(user.id, "customers.view") is True
        assert svc.check_user_permission(user.id, "customers.delete") is False

    def test_admin_bypass_on_single_and_any(self, make_user):
        admin = make_user(role="ADMIN")
        assert svc.check_user_permission(admin.id, "users.delete") is True
        assert svc.check_user_has_any_permission(admin.id, ["users.delete"]) is True
        assert svc.check_user_has_all_permissions(admin.id, ["users.delete"]) is False

    def test_admin_bypass_all_follows_app_config(self, app, make_user):
        admin = make_user(role="admin")
        app.config["ADMIN_BYPASS_ALL_PERMISSIONS"] = True
        try:
            assert svc.check_user_has_all_permissions(admin.id, ["users.delete", "users.edit"]) is True
        finally:
            app.config["ADMIN_BYPASS_ALL_PERMISSIONS"] = False

    def test_database_error_fails_closed(self, make_user):
        user = make_user(grants=["customers.view"])
        with patch.object(DatabasePermissionStore, "get_user", side_effect=RuntimeError("db down")):
            assert svc.check_user_permission(user.id, "customers.view") is False


# ═════════════════════════════════════════════════════════════════════════════
# Grants management
# ═════════════════════════════════════════════════════════════════════════════

class TestGrants:
    def test_seed_is_idempotent(self):
        assert svc.seed_permissions() == len(ALL_PERMISSIONS)
        assert svc.seed_permissions() == 0
        assert Permission.query.count() == len(ALL_PERMISSIONS)

    def test_role_defaults(self):
        assert svc.get_default_permissions_for_role("Manager") == sorted(ROLE_PERMISSIONS["manager"])
        assert set(svc.get_default_permissions_for_role("admin")) == ALL_PERMISSIONS

    def test_unknown_role_raises(self):
        with pytest.raises(NotFoundError):
            svc.get_default_permissions_for_role("wizard")

    def test_set_user_permissions_replaces_and_invalidates(self, make_user):
        user = make_user(grants=["customers.view"])
        assert svc.check_user_permission(user.id, "customers.view") is True

        result = svc.set_user_permissions(user.id, ["requests.view"], granted_by=None)
        assert result["permissions"] == ["requests.view"]
        assert svc.check_user_permission(user.id, "customers.view") is False
        assert svc.check_user_permission(user.id, "requests.view") is True

    def test_set_user_permissions_rejects_unknown_codes(self, make_user):
        user = make_user(grants=["customers.view"])
        with pytest.raises(ValidationError) as exc:
            svc.set_user_permissions(user.id, ["customers.view", "made.up"])
        assert exc.value.details == {"unknown": ["made.up"]}
        # nothing changed
        assert svc.get_user_permission_codes(user.id)["permissions"] == ["customers.view"]

    def test_set_user_permissions_rejects_non_list(self, make_user):
        user = make_user()
        with pytest.raises(ValidationError):
            svc.set_user_permissions(user.id, "customers.view")

    def test_set_user_permissions_unknown_user(self, permissions):
        with pytest.raises(NotFoundError):
            svc.set_user_permissions(999, ["customers.view"])

    def test_apply_role_defaults(self, make_user):
        user = make_user(role="employee")
        svc.apply_role_defaults(user.id)
        codes = svc.get_user_permission_codes(user.id)["permissions"]
        assert codes == sorted(ROLE_PERMISSIONS["employee"])
