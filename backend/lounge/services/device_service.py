# Overview: Service-layer operations for devices; rate cards, maintenance, and the device board.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Device, PlaySession, DEVICE_TYPES
from ..validation import ModelValidationPolicy
from .concurrency import lock_for_update
from .play_session_service import active_session_for_device, live_view
from .summary_service import recompute_for_dates
from lounge.time_utils import utcnow

DEVICE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "hourly_rate", "extra_controller_rate", "location"},
    required_on_create={"name", "type", "hourly_rate", "location"},
    choices={"type": DEVICE_TYPES},
    non_negative={"hourly_rate", "extra_controller_rate"},
)

DEVICE_MUTABLE_FIELDS = DEVICE_POLICY.writable_fields


class DeviceError(Exception):
    """Raised for device operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def _get_device(device_id: int, *, lock: bool = False) -> Device:
    query = db.session.query(Device).filter_by(id=device_id)
    if lock:
        query = lock_for_update(query)
    device = query.first()
    if not device:
        raise DeviceError("Device not found", status_code=404)
    return device


def get_device(device_id: int) -> Device:
    return _get_device(device_id)


def create_device(patch: dict) -> Device:
    device = Device(status="available", **patch)
    if device.extra_controller_rate is None:
        device.extra_controller_rate = 0
    db.session.add(device)
    db.session.commit()
    return device


def update_device(device_id: int, patch: dict) -> Device:
    """Rate card edits take effect on the next tick of any running session."""
    device = _get_device(device_id)
    for k, v in patch.items():
        if k in DEVICE_MUTABLE_FIELDS:
            setattr(device, k, v)
    db.session.commit()
    return device


def delete_device(device_id: int) -> None:
    """Remove a device and its session history; refused while a session is running."""
    device = _get_device(device_id, lock=True)
    if active_session_for_device(device_id) is not None:
        raise DeviceError("Cannot delete a device with an active session", status_code=409)

    affected_dates = {s.created_at.date() for s in device.sessions if s.status == "completed"}
    db.session.delete(device)
    db.session.flush()
    recompute_for_dates(affected_dates)
    db.session.commit()


def set_maintenance(device_id: int, under_maintenance: bool) -> Device:
    """
    Move an idle device into or out of maintenance.

    Occupied devices are left alone: only the session lifecycle frees them.
    """
    device = _get_device(device_id, lock=True)
    if device.status == "occupied":
        raise DeviceError(
            "Device is occupied",
            details={"device_id": device_id, "status": device.status},
            status_code=409,
        )
    device.status = "maintenance" if under_maintenance else "available"
    db.session.commit()
    return device


def list_devices(*, device_type: str | None = None, status: str | None = None) -> list[Device]:
    query = db.session.query(Device)
    if device_type:
        query = query.filter(Device.type == device_type)
    if status:
        query = query.filter(Device.status == status)
    return query.order_by(Device.id.asc()).all()


def device_board(now: datetime | None = None) -> list[dict]:
    """Every device with the live view of its running session, if any."""
    now = now or utcnow()
    devices = list_devices()
    active = {
        s.device_id: s
        for s in db.session.query(PlaySession).filter_by(status="active").all()
    }
    board = []
    for device in devices:
        entry = device.to_dict()
        session = active.get(device.id)
        entry["session"] = live_view(session, device, now) if session else None
        board.append(entry)
    return board
