"""
Auth Models: users, permissions, user_permissions.

A user carries a single role string (admin, manager, employee, user).
Fine-grained access is granted per user through the user_permissions
junction; role presets in servicehub.core.permission_codes are only used
to seed a new user's grants.
"""

from datetime import datetime, timezone

from servicehub.models import db


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    role = db.Column(db.String(50), default="user")  # admin, manager, employee, user
    status = db.Column(db.String(20), default="active")  # active, inactive, suspended, deleted
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user_permissions = db.relationship(
        "UserPermission", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan", foreign_keys="UserPermission.user_id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "status": self.status,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════
# 2. PERMISSIONS
# ═══════════════════════════════════════════════════════════════
class Permission(db.Model):
    __tablename__ = "permissions"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(100), unique=True, nullable=False)  # e.g. "customers.view"
    name = db.Column(db.String(200))
    description = db.Column(db.Text)
    category = db.Column(db.String(50), nullable=False)  # e.g. "Customers"
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    user_permissions = db.relationship("UserPermission", back_populates="permission", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
        }


# ═══════════════════════════════════════════════════════════════
# 3. USER_PERMISSIONS (Junction table)
# ═══════════════════════════════════════════════════════════════
class UserPermission(db.Model):
    __tablename__ = "user_permissions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    permission_id = db.Column(
        db.Integer, db.ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False
    )
    granted_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "permission_id", name="uq_user_permission"),
        db.Index("ix_user_permissions_user_id", "user_id"),
    )

    user = db.relationship("User", back_populates="user_permissions", foreign_keys=[user_id])
    permission = db.relationship("Permission", back_populates="user_permissions")
