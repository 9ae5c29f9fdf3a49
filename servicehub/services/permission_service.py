"""
Permission Service: fail-closed permission evaluation with a TTL cache.

Evaluation order for every check:
  1. validate the user id and the requested code(s); invalid input denies
  2. administrator role shortcut (case-insensitive, ``PermissionConfig.admin_roles``)
  3. lookup of the user's granted codes through the permission store

Any exception raised by the store is logged and resolves to a deny.
Nothing in this module raises to route guards.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from flask import current_app

from servicehub.config import PermissionConfig, permission_config_from_app_config
from servicehub.core.exceptions import NotFoundError, ValidationError
from servicehub.core.permission_codes import PERMISSION_DEFINITIONS, ROLE_PERMISSIONS
from servicehub.models import db
from servicehub.models.auth import Permission, User, UserPermission

logger = logging.getLogger(__name__)

# Cache key: user_id -> (cached_at, codes)
_permission_cache: dict[int, tuple[float, frozenset[str]]] = {}
_cache_lock = threading.Lock()


@dataclass(frozen=True)
class UserIdentity:
    user_id: int
    role: Optional[str]


@dataclass(frozen=True)
class PermissionSet:
    user_id: int
    codes: frozenset[str]


class PermissionStore(Protocol):
    def get_user(self, user_id: int) -> Optional[UserIdentity]: ...

    def get_permissions(self, user_id: int) -> PermissionSet: ...


# ═════════════════════════════════════════════════════════════════════════════
# Cache
# ═════════════════════════════════════════════════════════════════════════════

def _get_cached(user_id: int, ttl: int) -> Optional[frozenset[str]]:
    with _cache_lock:
        entry = _permission_cache.get(user_id)
        if entry is None:
            return None
        cached_at, codes = entry
        if time.time() - cached_at > ttl:
            del _permission_cache[user_id]
            return None
        return codes


def _set_cached(user_id: int, codes: frozenset[str]) -> None:
    with _cache_lock:
        _permission_cache[user_id] = (time.time(), codes)


def invalidate_cache(user_id: int) -> None:
    with _cache_lock:
        _permission_cache.pop(user_id, None)


def invalidate_all_cache() -> None:
    with _cache_lock:
        _permission_cache.clear()


# ═════════════════════════════════════════════════════════════════════════════
# Store
# ═════════════════════════════════════════════════════════════════════════════

class DatabasePermissionStore:
    """Reads users and their granted codes through SQLAlchemy."""

    def __init__(self, cache_ttl: int = 300):
        self.cache_ttl = cache_ttl

    def get_user(self, user_id: int) -> Optional[UserIdentity]:
        user = db.session.get(User, user_id)
        if user is None:
            return None
        return UserIdentity(user_id=user.id, role=user.role)

    def get_permissions(self, user_id: int) -> PermissionSet:
        cached = _get_cached(user_id, self.cache_ttl)
        if cached is not None:
            return PermissionSet(user_id=user_id, codes=cached)

        rows = (
            db.session.query(Permission.code)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.user_id == user_id)
            .all()
        )
        codes = frozenset(r[0] for r in rows)
        _set_cached(user_id, codes)
        return PermissionSet(user_id=user_id, codes=codes)


# ═════════════════════════════════════════════════════════════════════════════
# Evaluator
# ═════════════════════════════════════════════════════════════════════════════

def _valid_user_id(user_id) -> Optional[int]:
    if isinstance(user_id, bool):
        return None
    if isinstance(user_id, str):
        user_id = user_id.strip()
        if not user_id.isdecimal():
            return None
        try:
            user_id = int(user_id)
        except ValueError:
            return None
    if not isinstance(user_id, int) or user_id <= 0:
        return None
    return user_id


_CODE_COLLECTIONS = (list, tuple, set, frozenset)


def _valid_code_list(codes) -> bool:
    return isinstance(codes, _CODE_COLLECTIONS) and len(codes) > 0


def _valid_code(code) -> bool:
    return isinstance(code, str) and code.strip() != ""


class PermissionEvaluator:
    """Answers "may this user do X" with a plain bool."""

    def __init__(self, store: PermissionStore, config: PermissionConfig):
        self.store = store
        self.config = config

    def _is_admin(self, user_id: int) -> bool:
        identity = self.store.get_user(user_id)
        if identity is None or not identity.role:
            return False
        return identity.role.lower() in self.config.admin_roles

    def _granted(self, user_id: int) -> frozenset[str]:
        return self.store.get_permissions(user_id).codes

    def has_permission(self, user_id, code) -> bool:
        uid = _valid_user_id(user_id)
        if uid is None:
            logger.warning("Invalid user id for permission check", extra={"user_id": repr(user_id)})
            return False
        if not _valid_code(code):
            logger.warning("Invalid permission code for permission check", extra={"permission": repr(code)})
            return False

        try:
            if self._is_admin(uid):
                return True
            return code in self._granted(uid)
        except Exception:
            logger.exception(
                "Permission check failed, denying",
                extra={"user_id": uid, "permission": code},
            )
            return False

    def has_any_permission(self, user_id, codes) -> bool:
        uid = _valid_user_id(user_id)
        if uid is None:
            logger.warning("Invalid user id for permission check", extra={"user_id": repr(user_id)})
            return False
        if not _valid_code_list(codes):
            logger.warning(
                "No permissions specified for any-permission check",
                extra={"user_id": uid, "permission": repr(codes)},
            )
            return False

        try:
            if self._is_admin(uid):
                return True
            granted = self._granted(uid)
            return any(c in granted for c in codes if _valid_code(c))
        except Exception:
            logger.exception(
                "Permission check failed, denying",
                extra={"user_id": uid, "permission": repr(codes)},
            )
            return False

    def has_all_permissions(self, user_id, codes) -> bool:
        uid = _valid_user_id(user_id)
        if uid is None:
            logger.warning("Invalid user id for permission check", extra={"user_id": repr(user_id)})
            return False
        if not _valid_code_list(codes):
            logger.warning(
                "No permissions specified for all-permissions check",
                extra={"user_id": uid, "permission": repr(codes)},
            )
            return False
        if not all(_valid_code(c) for c in codes):
            logger.warning("Invalid permission code in all-permissions check", extra={"user_id": uid})
            return False

        try:
            if self.config.admin_bypass_all and self._is_admin(uid):
                return True
            return set(codes).issubset(self._granted(uid))
        except Exception:
            logger.exception(
                "Permission check failed, denying",
                extra={"user_id": uid, "permission": repr(codes)},
            )
            return False


def get_evaluator(app_config=None) -> PermissionEvaluator:
    """Build an evaluator over the database store for the given (or current) app config."""
    config = permission_config_from_app_config(app_config if app_config is not None else current_app.config)
    return PermissionEvaluator(DatabasePermissionStore(cache_ttl=config.cache_ttl), config)


def check_user_permission(user_id, permission) -> bool:
    return get_evaluator().has_permission(user_id, permission)


def check_user_has_any_permission(user_id, permissions) -> bool:
    return get_evaluator().has_any_permission(user_id, permissions)


def check_user_has_all_permissions(user_id, permissions) -> bool:
    return get_evaluator().has_all_permissions(user_id, permissions)


# ═════════════════════════════════════════════════════════════════════════════
# Grants management
# ═════════════════════════════════════════════════════════════════════════════

def get_default_permissions_for_role(role: str) -> list[str]:
    """Codes a new user of *role* starts with. Unknown roles raise NotFoundError."""
    key = (role or "").strip().lower()
    if key not in ROLE_PERMISSIONS:
        raise NotFoundError(resource="Role", resource_id=role)
    return sorted(ROLE_PERMISSIONS[key])


def get_user_permission_codes(user_id: int) -> dict:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    codes = DatabasePermissionStore().get_permissions(user.id).codes
    return {"user_id": user.id, "role": user.role, "permissions": sorted(codes)}


def set_user_permissions(user_id: int, codes: list[str], granted_by: int | None = None) -> dict:
    """Replace every grant of *user_id* with *codes*.

    Raises:
        NotFoundError: unknown user.
        ValidationError: *codes* is not a list of strings, or names unknown codes.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    if not isinstance(codes, list) or not all(isinstance(c, str) for c in codes):
        raise ValidationError("permissions must be a list of permission codes")

    wanted = set(codes)
    perms = Permission.query.filter(Permission.code.in_(wanted)).all() if wanted else []
    unknown = wanted - {p.code for p in perms}
    if unknown:
        raise ValidationError(
            "Unknown permission codes",
            details={"unknown": sorted(unknown)},
        )

    UserPermission.query.filter_by(user_id=user.id).delete()
    for perm in perms:
        db.session.add(UserPermission(user_id=user.id, permission_id=perm.id, granted_by=granted_by))
    db.session.commit()
    invalidate_cache(user.id)

    logger.info(
        "Replaced user permissions",
        extra={"user_id": user.id, "granted_by": granted_by, "count": len(perms)},
    )
    return {"user_id": user.id, "role": user.role, "permissions": sorted(wanted)}


def apply_role_defaults(user_id: int, granted_by: int | None = None) -> dict:
    """Reset a user's grants to the preset of their role."""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return set_user_permissions(user.id, get_default_permissions_for_role(user.role), granted_by=granted_by)


def seed_permissions() -> int:
    """Insert missing rows of PERMISSION_DEFINITIONS. Returns the number created."""
    existing = {code for (code,) in db.session.query(Permission.code).all()}
    created = 0
    for code, (category, name, description) in PERMISSION_DEFINITIONS.items():
        if code in existing:
            continue
        db.session.add(Permission(code=code, name=name, description=description, category=category))
        created += 1
    db.session.commit()
    return created
