# Overview: Service-layer operations for daily summaries; aggregation, upsert, and report windows.

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable

from lounge.extensions import db
from lounge.models import DailySummary, Expense, PlaySession, Sale
from lounge.services.billing import round_money
from lounge.time_utils import utcnow

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
REPORT_PERIODS = ("daily", "weekly", "monthly")
SUMMARY_FIELDS = ("sessions_revenue", "sales_revenue", "expenses_total", "discounts_total", "net_income")


class ReportError(Exception):
    """Raised when report generation fails."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class DailyFigures:
    date: date
    sessions_revenue: Decimal = ZERO
    sales_revenue: Decimal = ZERO
    expenses_total: Decimal = ZERO
    discounts_total: Decimal = ZERO
    net_income: Decimal = ZERO

    def to_dict(self) -> dict:
        data = {"date": self.date.isoformat()}
        for name in SUMMARY_FIELDS:
            data[name] = str(getattr(self, name))
        return data


def _amount(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _created_on(row, day: date) -> bool:
    return row.created_at is not None and row.created_at.date() == day


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC range covering one calendar date."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def aggregate_daily_summary(
    day: date,
    sessions: Iterable,
    sales: Iterable,
    expenses: Iterable,
) -> DailyFigures:
    """
    Roll one day's facts into a DailyFigures.

    Rows from other dates are ignored, so callers may pass a wider snapshot.
    Discounts are summed per row: each sale and each completed session
    contributes its own (gross - final) exactly once.
    """
    sessions_revenue = ZERO
    sales_revenue = ZERO
    expenses_total = ZERO
    discounts_total = ZERO

    for session in sessions:
        if session.status != "completed" or not _created_on(session, day):
            continue
        sessions_revenue += _amount(session.final_amount)
        discounts_total += _amount(session.total_cost) - _amount(session.final_amount)

    for sale in sales:
        if not _created_on(sale, day):
            continue
        sales_revenue += _amount(sale.final_amount)
        discounts_total += _amount(sale.total_price) - _amount(sale.final_amount)

    for expense in expenses:
        if expense.date != day:
            continue
        expenses_total += _amount(expense.amount)

    return DailyFigures(
        date=day,
        sessions_revenue=round_money(sessions_revenue),
        sales_revenue=round_money(sales_revenue),
        expenses_total=round_money(expenses_total),
        discounts_total=round_money(discounts_total),
        net_income=round_money(sessions_revenue + sales_revenue - expenses_total),
    )


def load_day_snapshot(day: date) -> tuple[list[PlaySession], list[Sale], list[Expense]]:
    start, end = day_bounds(day)
    sessions = db.session.query(PlaySession).filter(
        PlaySession.status == "completed",
        PlaySession.created_at >= start,
        PlaySession.created_at < end,
    ).all()
    sales = db.session.query(Sale).filter(
        Sale.created_at >= start,
        Sale.created_at < end,
    ).all()
    expenses = db.session.query(Expense).filter(Expense.date == day).all()
    return sessions, sales, expenses


def recompute_daily_summary(day: date, *, commit: bool = True) -> DailySummary:
    """
    Recompute and upsert the summary row for `day`.

    Called after every write to sales, sessions, or expenses. A date with
    no underlying rows yields an all-zero row.
    """
    figures = aggregate_daily_summary(day, *load_day_snapshot(day))

    summary = db.session.query(DailySummary).filter_by(date=day).first()
    if summary is None:
        summary = DailySummary(date=day)
        db.session.add(summary)

    for name in SUMMARY_FIELDS:
        setattr(summary, name, getattr(figures, name))
    summary.updated_at = utcnow()

    if commit:
        db.session.commit()
    else:
        db.session.flush()

    logger.debug("Recomputed daily summary for %s: net_income=%s", day, figures.net_income)
    return summary


def recompute_for_dates(days: Iterable[date | None]) -> None:
    """Recompute each distinct date once, inside the caller's transaction."""
    for day in sorted({d for d in days if d is not None}):
        recompute_daily_summary(day, commit=False)


def rebuild_summaries(start: date, end: date) -> int:
    """Recompute every date in [start, end]. Returns the number of dates touched."""
    if end < start:
        raise ReportError("end must not be before start")
    count = 0
    day = start
    while day <= end:
        recompute_daily_summary(day, commit=False)
        count += 1
        day += timedelta(days=1)
    db.session.commit()
    return count


def _minus_one_month(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def report_window(period: str, anchor: date) -> tuple[date, date]:
    """
    Date range shown by the reports screen, ending at `anchor`.

    daily: the anchor only; weekly: the 7 days before it and the anchor;
    monthly: from the same day last month through the anchor.
    """
    if period == "daily":
        return anchor, anchor
    if period == "weekly":
        return anchor - timedelta(days=7), anchor
    if period == "monthly":
        return _minus_one_month(anchor), anchor
    raise ReportError(f"period must be one of: {', '.join(REPORT_PERIODS)}")


def list_summaries(start: date, end: date) -> list[DailySummary]:
    return db.session.query(DailySummary).filter(
        DailySummary.date >= start,
        DailySummary.date <= end,
    ).order_by(DailySummary.date.desc()).all()


def summary_totals(rows: Iterable) -> dict:
    totals = {name: ZERO for name in SUMMARY_FIELDS}
    for row in rows:
        for name in SUMMARY_FIELDS:
            totals[name] += _amount(getattr(row, name))
    return {name: str(round_money(value)) for name, value in totals.items()}


def build_report(period: str, anchor: date) -> dict:
    start, end = report_window(period, anchor)
    rows = list_summaries(start, end)
    return {
        "period": period,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "rows": [row.to_dict() for row in rows],
        "totals": summary_totals(rows),
    }
