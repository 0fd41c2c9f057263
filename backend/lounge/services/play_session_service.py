# Overview: Service-layer operations for play sessions; device occupancy and live billing.

"""
Play Session Lifecycle

pending-create -> active(open) | active(timed) -> [timed: expired] -> completed

WHY one transaction per transition: the device row and the session row
change together. Starting marks the device occupied and inserts the
session; ending completes the session and frees the device. If the start
transaction fails anyway, the device is reverted to available as a
best-effort compensation and the original error is re-raised.

Live cost is not kept in timers here. A scheduler outside this module
(the `flask sessions tick` command or a client hitting /api/sessions/tick)
calls refresh_active_sessions(now) on a fixed cadence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Device, PlaySession, BILLING_MODES
from ..validation import ValidationError, parse_discount_percent, parse_positive_int
from . import billing
from .concurrency import lock_for_update
from .summary_service import recompute_daily_summary, recompute_for_dates
from lounge.time_utils import utcnow, format_hms

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised for play session operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


@dataclass
class TickResult:
    updated_session_ids: list[int] = field(default_factory=list)
    expired_session_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "updated": len(self.updated_session_ids),
            "updated_session_ids": self.updated_session_ids,
            "expired_session_ids": self.expired_session_ids,
        }


def active_session_for_device(device_id: int) -> PlaySession | None:
    return db.session.query(PlaySession).filter_by(device_id=device_id, status="active").first()


def _load_session(session_id: int, *, lock: bool = False) -> PlaySession:
    query = db.session.query(PlaySession).filter_by(id=session_id)
    if lock:
        query = lock_for_update(query)
    session = query.first()
    if not session:
        raise SessionError("Session not found", status_code=404)
    return session


def _load_active_session(session_id: int) -> PlaySession:
    session = _load_session(session_id, lock=True)
    if session.status != "active":
        raise SessionError("Session is already completed", details={"session_id": session_id}, status_code=409)
    return session


def _set_live_cost(session: PlaySession, cost: Decimal) -> bool:
    """Store an accruing cost; discounts only apply at the end. Returns True if it changed."""
    if session.total_cost is not None and Decimal(session.total_cost) == cost:
        return False
    session.total_cost = cost
    session.discount_amount = Decimal("0.00")
    session.final_amount = cost
    return True


def _revert_device(device_id: int) -> None:
    """Best-effort: put a device back to available after a failed start."""
    try:
        device = db.session.query(Device).filter_by(id=device_id).first()
        if device and device.status == "occupied" and active_session_for_device(device_id) is None:
            device.status = "available"
            db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to revert device %s to available", device_id)


def start_session(
    device_id: int,
    mode: str = billing.OPEN,
    duration_minutes=None,
    customer_name: str | None = None,
    now: datetime | None = None,
) -> PlaySession:
    """
    Occupy an available device and open a session on it.

    Timed sessions get scheduled_end_time = start + duration_minutes
    (DEFAULT_SESSION_MINUTES when omitted).
    """
    if mode not in BILLING_MODES:
        raise ValidationError(f"mode must be one of: {', '.join(BILLING_MODES)}")

    scheduled_end = None
    now = now or utcnow()
    if mode == billing.TIMED:
        if duration_minutes is None:
            duration_minutes = current_app.config.get("DEFAULT_SESSION_MINUTES", 60)
        minutes = parse_positive_int(duration_minutes, "duration_minutes")
        scheduled_end = now + timedelta(minutes=minutes)

    if customer_name is not None:
        customer_name = str(customer_name).strip() or None

    try:
        device = lock_for_update(db.session.query(Device).filter_by(id=device_id)).first()
        if not device:
            raise SessionError("Device not found", status_code=404)

        if device.status != "available":
            raise SessionError(
                "Device is not available",
                details={"device_id": device_id, "status": device.status},
                status_code=409,
            )

        if active_session_for_device(device_id) is not None:
            raise SessionError(
                "Device already has an active session",
                details={"device_id": device_id},
                status_code=409,
            )

        device.status = "occupied"

        session = PlaySession(
            device_id=device.id,
            start_time=now,
            scheduled_end_time=scheduled_end,
            billing_mode=mode,
            extra_controllers=0,
            status="active",
            customer_name=customer_name,
            created_at=now,
        )
        _set_live_cost(session, billing.session_cost(session, device, now))

        db.session.add(session)
        db.session.flush()
        recompute_daily_summary(now.date(), commit=False)
        db.session.commit()
    except SessionError:
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        _revert_device(device_id)
        raise

    logger.info("Started %s session %s on device %s", mode, session.id, device_id)
    return session


def set_extra_controllers(session_id: int, count, now: datetime | None = None) -> PlaySession:
    """Set the extra-controller count on an active, unexpired session and re-bill it."""
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError("extra_controllers must be an integer")
    if count < 0:
        raise ValidationError("extra_controllers must be >= 0")

    now = now or utcnow()
    session = _load_active_session(session_id)
    if billing.is_expired(session, now):
        raise SessionError("Session has expired", details={"session_id": session_id}, status_code=409)

    session.extra_controllers = count
    _set_live_cost(session, billing.session_cost(session, session.device, now))
    recompute_daily_summary(session.created_at.date(), commit=False)
    db.session.commit()
    return session


def adjust_extra_controllers(session_id: int, delta: int, now: datetime | None = None) -> PlaySession:
    """Add or remove controllers; the count never drops below zero."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")
    session = _load_session(session_id)
    return set_extra_controllers(session_id, max(0, session.extra_controllers + delta), now=now)


def refresh_session_cost(session_id: int, now: datetime | None = None) -> tuple[PlaySession, bool]:
    """
    Recompute one active session's running cost.

    Returns (session, changed). Timed sessions are billed only up to their
    scheduled end, so once expired the value stops changing.
    """
    now = now or utcnow()
    session = _load_active_session(session_id)
    changed = _set_live_cost(session, billing.session_cost(session, session.device, now))
    if changed:
        recompute_daily_summary(session.created_at.date(), commit=False)
        db.session.commit()
    return session, changed


def refresh_active_sessions(now: datetime | None = None) -> TickResult:
    """The once-per-tick recomputation over every active session."""
    now = now or utcnow()
    result = TickResult()
    touched_dates = set()

    sessions = db.session.query(PlaySession).filter_by(status="active").order_by(PlaySession.id.asc()).all()
    for session in sessions:
        if billing.is_expired(session, now):
            result.expired_session_ids.append(session.id)
        if _set_live_cost(session, billing.session_cost(session, session.device, now)):
            result.updated_session_ids.append(session.id)
            touched_dates.add(session.created_at.date())

    if result.updated_session_ids:
        recompute_for_dates(touched_dates)
        db.session.commit()
    return result


def end_session(session_id: int, discount_percent=0, now: datetime | None = None) -> PlaySession:
    """
    Complete a session, apply the discount, and free its device.

    Timed sessions ended after expiry are charged up to the scheduled end.
    """
    pct = parse_discount_percent(discount_percent)
    now = now or utcnow()

    try:
        session = _load_active_session(session_id)
        device = lock_for_update(db.session.query(Device).filter_by(id=session.device_id)).first()

        session.end_time = now
        session.status = "completed"

        total = billing.session_cost(session, device, now)
        discount_amount, final_amount = billing.apply_discount(total, pct)
        session.total_cost = total
        session.discount_amount = discount_amount
        session.final_amount = final_amount

        device.status = "available"

        recompute_daily_summary(session.created_at.date(), commit=False)
        db.session.commit()
    except SessionError:
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info("Ended session %s on device %s: final_amount=%s", session.id, session.device_id, session.final_amount)
    return session


def get_session(session_id: int) -> PlaySession:
    return _load_session(session_id)


def list_sessions(
    *,
    status: str | None = None,
    device_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[PlaySession]:
    query = db.session.query(PlaySession)
    if status:
        query = query.filter(PlaySession.status == status)
    if device_id is not None:
        query = query.filter(PlaySession.device_id == device_id)
    if start is not None:
        query = query.filter(PlaySession.created_at >= start)
    if end is not None:
        query = query.filter(PlaySession.created_at < end)
    return query.order_by(PlaySession.created_at.desc(), PlaySession.id.desc()).all()


def live_view(session: PlaySession, device: Device | None = None, now: datetime | None = None) -> dict:
    """Session plus the readouts the device board shows every second."""
    now = now or utcnow()
    device = device or session.device
    data = session.to_dict()
    if session.status != "active":
        data["expired"] = False
        return data

    elapsed = billing.effective_end(session, now) - session.start_time
    data.update({
        "live_cost": str(billing.session_cost(session, device, now)),
        "elapsed": format_hms(elapsed),
        "remaining": format_hms(billing.remaining_time(session, now)) if session.billing_mode == billing.TIMED else None,
        "expired": billing.is_expired(session, now),
        "extra_time": format_hms(billing.extra_time(session, now)) if billing.is_expired(session, now) else None,
    })
    return data
