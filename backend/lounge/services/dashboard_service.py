# Overview: Home-screen figures; occupancy, today's session counts, and the next timed session to end.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Device, PlaySession, DEVICE_TYPES
from .debt_service import outstanding_total
from .summary_service import day_bounds
from lounge.time_utils import utcnow, format_hms, to_utc_z


def device_stats() -> dict:
    rows = db.session.query(Device.status, db.func.count(Device.id)).group_by(Device.status).all()
    by_status = {status: int(count) for status, count in rows}
    return {
        "occupied": by_status.get("occupied", 0),
        "available": by_status.get("available", 0),
        "maintenance": by_status.get("maintenance", 0),
        "total": sum(by_status.values()),
    }


def session_stats(now: datetime) -> dict:
    """Sessions started today, split by device type."""
    start, end = day_bounds(now.date())
    rows = db.session.query(Device.type, db.func.count(PlaySession.id)).join(
        Device, Device.id == PlaySession.device_id
    ).filter(
        PlaySession.created_at >= start,
        PlaySession.created_at < end,
    ).group_by(Device.type).all()

    stats = {device_type: 0 for device_type in DEVICE_TYPES}
    for device_type, count in rows:
        stats[device_type] = int(count)
    stats["total"] = sum(stats.values())
    return stats


def next_ending_session(now: datetime) -> dict | None:
    """The active timed session closest to its scheduled end, if it has not ended yet."""
    session = db.session.query(PlaySession).filter(
        PlaySession.status == "active",
        PlaySession.scheduled_end_time.isnot(None),
        PlaySession.scheduled_end_time > now,
    ).order_by(PlaySession.scheduled_end_time.asc()).first()
    if session is None:
        return None
    return {
        "session_id": session.id,
        "device_name": session.device.name,
        "end_time": to_utc_z(session.scheduled_end_time),
        "remaining_time": format_hms(session.scheduled_end_time - now),
    }


def dashboard(now: datetime | None = None) -> dict:
    now = now or utcnow()
    return {
        "devices": device_stats(),
        "sessions_today": session_stats(now),
        "next_ending_session": next_ending_session(now),
        "outstanding_debts": outstanding_total(),
    }
