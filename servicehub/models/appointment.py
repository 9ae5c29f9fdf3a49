"""Appointment model."""

from datetime import datetime, timezone

from servicehub.models import db

APPOINTMENT_STATUSES = (
    "planned", "confirmed", "cancelled", "in_progress", "completed", "rescheduled", "scheduled",
)


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    appointment_date = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Integer, default=60)  # minutes
    location = db.Column(db.String(300))
    description = db.Column(db.Text)
    status = db.Column(db.String(20), default="planned")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_appointments_appointment_date", "appointment_date"),
    )

    customer = db.relationship("Customer", back_populates="appointments")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "customer_id": self.customer_id,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "duration": self.duration,
            "location": self.location,
            "description": self.description,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
