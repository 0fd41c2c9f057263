"""
Session cost calculation.

Pure functions of (session, device, now). Nothing here touches the
database or the clock; callers pass `now` in, which keeps the live-cost
tick and the end-of-session charge on the same arithmetic.

Billing modes:
- open:  minutes * hourly_rate / 60
- timed: whole hours at hourly_rate plus leftover minutes at hourly_rate / 60,
         accruing only up to scheduled_end_time

Both modes add extra_controllers * extra_controller_rate per elapsed hour.
Rounding (half-up, 2 places) happens once, on the final amount.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from lounge.validation import ValidationError

TWO_PLACES = Decimal("0.01")
MINUTES_PER_HOUR = Decimal(60)
ZERO = Decimal("0")
HUNDRED = Decimal("100")

OPEN = "open"
TIMED = "timed"


def round_money(value) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def elapsed_minutes(start: datetime, end: datetime) -> Decimal:
    """Exact fractional minutes between two instants; never negative."""
    delta = end - start
    seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(1_000_000)
    if seconds <= 0:
        return ZERO
    return seconds / MINUTES_PER_HOUR


def base_cost(minutes: Decimal, hourly_rate, mode: str) -> Decimal:
    rate = _as_decimal(hourly_rate)
    if mode == OPEN:
        return minutes * rate / MINUTES_PER_HOUR
    if mode == TIMED:
        hours = minutes // MINUTES_PER_HOUR
        leftover = minutes % MINUTES_PER_HOUR
        return hours * rate + leftover * rate / MINUTES_PER_HOUR
    raise ValueError(f"Unknown billing mode: {mode}")


def controller_surcharge(minutes: Decimal, extra_controllers: int, extra_controller_rate) -> Decimal:
    if not extra_controllers:
        return ZERO
    return Decimal(extra_controllers) * _as_decimal(extra_controller_rate) * minutes / MINUTES_PER_HOUR


def calculate_cost(
    *,
    minutes: Decimal,
    hourly_rate,
    extra_controllers: int = 0,
    extra_controller_rate=ZERO,
    mode: str = OPEN,
) -> Decimal:
    """Base cost plus controller surcharge, rounded to 2 places."""
    total = base_cost(minutes, hourly_rate, mode) + controller_surcharge(
        minutes, extra_controllers, extra_controller_rate
    )
    return round_money(total)


def effective_end(session, now: datetime) -> datetime:
    """
    The instant billing runs up to.

    Completed sessions bill to their recorded end; active ones to `now`.
    Timed sessions never bill past their scheduled end.
    """
    if session.status == "completed" and session.end_time is not None:
        end = session.end_time
    else:
        end = now
    scheduled = session.scheduled_end_time
    if session.billing_mode == TIMED and scheduled is not None and end > scheduled:
        end = scheduled
    return end


def is_expired(session, now: datetime) -> bool:
    return (
        session.billing_mode == TIMED
        and session.status == "active"
        and session.scheduled_end_time is not None
        and now >= session.scheduled_end_time
    )


def session_cost(session, device, now: datetime) -> Decimal:
    if session.start_time is None:
        return round_money(ZERO)
    minutes = elapsed_minutes(session.start_time, effective_end(session, now))
    return calculate_cost(
        minutes=minutes,
        hourly_rate=device.hourly_rate,
        extra_controllers=session.extra_controllers or 0,
        extra_controller_rate=device.extra_controller_rate,
        mode=session.billing_mode,
    )


def apply_discount(total, percent) -> tuple[Decimal, Decimal]:
    """
    Split a total into (discount_amount, final_amount).

    final_amount = round(total * (1 - percent/100), 2); the discount is
    whatever remains, so the two always add back up to the total.
    """
    pct = _as_decimal(percent)
    if pct < 0 or pct > HUNDRED:
        raise ValidationError("discount_percent must be between 0 and 100")
    total = round_money(_as_decimal(total))
    final_amount = round_money(total * (1 - pct / HUNDRED))
    return total - final_amount, final_amount


def remaining_time(session, now: datetime) -> timedelta | None:
    """Countdown to the scheduled end; None for open sessions."""
    if session.billing_mode != TIMED or session.scheduled_end_time is None:
        return None
    remaining = session.scheduled_end_time - now
    return remaining if remaining > timedelta(0) else timedelta(0)


def extra_time(session, now: datetime) -> timedelta | None:
    """Overrun past the scheduled end. Shown to staff, never billed."""
    if not is_expired(session, now):
        return None
    return now - session.scheduled_end_time
