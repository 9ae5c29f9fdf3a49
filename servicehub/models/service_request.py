"""
Contact request model.

A contact request is an inbound lead or service request. Linking it to a
customer (customer_id set) marks it as converted. ``workflow_meta`` holds
the progress reported back by the workflow engine.
"""

from datetime import datetime, timezone

from servicehub.models import db

REQUEST_STATUSES = ("new", "in_progress", "completed", "cancelled")


class ContactRequest(db.Model):
    __tablename__ = "contact_requests"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50))
    service = db.Column(db.String(100))
    message = db.Column(db.Text)
    status = db.Column(db.String(20), default="new")
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    processor_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    workflow_meta = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_contact_requests_status", "status"),
        db.Index("ix_contact_requests_created_at", "created_at"),
    )

    customer = db.relationship("Customer", back_populates="requests")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "service": self.service,
            "message": self.message,
            "status": self.status,
            "customer_id": self.customer_id,
            "processor_id": self.processor_id,
            "workflow_meta": self.workflow_meta or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
