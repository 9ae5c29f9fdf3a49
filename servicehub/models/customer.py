"""Customer model."""

from datetime import datetime, timezone

from servicehub.models import db

CUSTOMER_TYPES = ("private", "business", "individual", "government", "non_profit")
CUSTOMER_STATUSES = ("active", "inactive", "pending", "archived", "suspended", "deleted")


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200))
    phone = db.Column(db.String(50))
    company = db.Column(db.String(200))
    type = db.Column(db.String(30), default="private")
    status = db.Column(db.String(20), default="active")
    newsletter = db.Column(db.Boolean, default=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    requests = db.relationship("ContactRequest", back_populates="customer", lazy="dynamic")
    appointments = db.relationship("Appointment", back_populates="customer", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "type": self.type,
            "status": self.status,
            "newsletter": self.newsletter,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
