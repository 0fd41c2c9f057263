# backend/lounge/routes/reports.py
from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_auth, require_admin
from ..services import summary_service, dashboard_service
from lounge.time_utils import parse_iso_date, utcnow


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summaries")
@require_auth
@require_admin
def summaries_report():
    """
    Daily summaries for a window ending at `date` (default today).

    Query params:
    - period: "daily" | "weekly" | "monthly" (default "daily")
    - date: YYYY-MM-DD
    """
    period = request.args.get("period", "daily")
    try:
        anchor = parse_iso_date(request.args.get("date")) or utcnow().date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        report = summary_service.build_report(period, anchor)
        return jsonify(report), 200
    except summary_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.post("/summaries/recompute")
@require_auth
@require_admin
def recompute_summaries():
    """
    Rebuild summary rows from the underlying facts.

    Body: {"date": "YYYY-MM-DD"} or {"start": ..., "end": ...}
    """
    data = request.get_json(silent=True) or {}
    try:
        day = parse_iso_date(data.get("date"))
        start = parse_iso_date(data.get("start")) or day
        end = parse_iso_date(data.get("end")) or day
    except ValueError:
        return jsonify({"error": "dates must be YYYY-MM-DD"}), 400

    if start is None or end is None:
        return jsonify({"error": "date or start and end required"}), 400

    try:
        count = summary_service.rebuild_summaries(start, end)
        return jsonify({"recomputed": count, "start": start.isoformat(), "end": end.isoformat()}), 200
    except summary_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to recompute summaries")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@reports_bp.get("/dashboard")
@require_auth
def dashboard_report():
    return jsonify(dashboard_service.dashboard()), 200
