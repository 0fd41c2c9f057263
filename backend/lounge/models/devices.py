from __future__ import annotations

from ..extensions import db
from lounge.time_utils import to_utc_z

DEVICE_TYPES = ("external", "internal", "vip")
DEVICE_STATUSES = ("available", "occupied", "maintenance")
SESSION_STATUSES = ("active", "completed")
BILLING_MODES = ("open", "timed")


def _money(value):
    return None if value is None else str(value)


class Device(db.Model):
    """
    A rentable console station and its rate card.

    Status moves between available and occupied only through the session
    lifecycle; maintenance is set by an admin on an idle device.
    """
    __tablename__ = "devices"
    __table_args__ = (
        db.CheckConstraint("type IN ('external', 'internal', 'vip')", name="ck_devices_type"),
        db.CheckConstraint("status IN ('available', 'occupied', 'maintenance')", name="ck_devices_status"),
        db.CheckConstraint("hourly_rate >= 0", name="ck_devices_hourly_rate"),
        db.CheckConstraint("extra_controller_rate >= 0", name="ck_devices_extra_controller_rate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="available", index=True)

    # Rates per hour, stored with extra precision; amounts are rounded later
    hourly_rate = db.Column(db.Numeric(12, 4), nullable=False)
    extra_controller_rate = db.Column(db.Numeric(12, 4), nullable=False, default=0)

    location = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "hourly_rate": _money(self.hourly_rate),
            "extra_controller_rate": _money(self.extra_controller_rate),
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
        }


class PlaySession(db.Model):
    """
    One occupancy of a device, billed per minute.

    WHY scheduled_end_time: timed sessions keep their booked end separately
    from end_time, which always records when the session actually ended.
    """
    __tablename__ = "sessions"
    __table_args__ = (
        db.CheckConstraint("status IN ('active', 'completed')", name="ck_sessions_status"),
        db.CheckConstraint("billing_mode IN ('open', 'timed')", name="ck_sessions_billing_mode"),
        db.CheckConstraint("extra_controllers >= 0", name="ck_sessions_extra_controllers"),
        db.Index("ix_sessions_device_status", "device_id", "status"),
        # At most one running session per device
        db.Index(
            "uq_sessions_device_active",
            "device_id",
            unique=True,
            sqlite_where=db.text("status = 'active'"),
            postgresql_where=db.text("status = 'active'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.Integer, db.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    scheduled_end_time = db.Column(db.DateTime(timezone=True), nullable=True)
    billing_mode = db.Column(db.String(8), nullable=False, default="open")

    extra_controllers = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    total_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    customer_name = db.Column(db.String(128), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    device = db.relationship("Device", backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
            "scheduled_end_time": to_utc_z(self.scheduled_end_time),
            "billing_mode": self.billing_mode,
            "extra_controllers": self.extra_controllers,
            "status": self.status,
            "total_cost": _money(self.total_cost),
            "discount_amount": _money(self.discount_amount),
            "final_amount": _money(self.final_amount),
            "customer_name": self.customer_name,
            "created_at": to_utc_z(self.created_at),
        }
