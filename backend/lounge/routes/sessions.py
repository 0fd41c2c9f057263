# backend/lounge/routes/sessions.py
"""
Play session API routes.

Open to every signed-in user; this is the device board's write side.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import play_session_service
from ..services.play_session_service import SessionError
from ..services.summary_service import day_bounds
from ..validation import ValidationError
from ..decorators import require_auth
from lounge.time_utils import parse_iso_date


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


@sessions_bp.post("")
@require_auth
def start_session_route():
    """
    Start a session on an available device.

    Body:
    - device_id: int (required)
    - mode: "open" (default) or "timed"
    - duration_minutes: int (timed only; defaults to DEFAULT_SESSION_MINUTES)
    - customer_name: str (optional)
    """
    data = request.get_json(silent=True) or {}
    device_id = data.get("device_id")
    if not isinstance(device_id, int) or isinstance(device_id, bool):
        return jsonify({"error": "device_id required"}), 400

    try:
        session = play_session_service.start_session(
            device_id,
            mode=data.get("mode") or "open",
            duration_minutes=data.get("duration_minutes"),
            customer_name=data.get("customer_name"),
        )
        return jsonify({"session": play_session_service.live_view(session)}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to start session")
        return jsonify({"error": "Could not start the session", "retryable": True}), 500


@sessions_bp.get("")
@require_auth
def list_sessions_route():
    """
    List sessions, newest first.

    Query params: status, device_id, date (YYYY-MM-DD)
    """
    try:
        day = parse_iso_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    start = end = None
    if day is not None:
        start, end = day_bounds(day)

    sessions = play_session_service.list_sessions(
        status=request.args.get("status"),
        device_id=request.args.get("device_id", type=int),
        start=start,
        end=end,
    )
    return jsonify({
        "items": [play_session_service.live_view(s) for s in sessions],
        "count": len(sessions),
    }), 200


@sessions_bp.get("/<int:session_id>")
@require_auth
def get_session_route(session_id: int):
    try:
        session = play_session_service.get_session(session_id)
        return jsonify({"session": play_session_service.live_view(session)}), 200
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code


@sessions_bp.post("/<int:session_id>/controllers")
@require_auth
def controllers_route(session_id: int):
    """
    Change extra controllers.

    Body: {"delta": +1|-1} or {"count": n}
    """
    data = request.get_json(silent=True) or {}
    try:
        if "count" in data:
            session = play_session_service.set_extra_controllers(session_id, data.get("count"))
        elif "delta" in data:
            session = play_session_service.adjust_extra_controllers(session_id, data.get("delta"))
        else:
            return jsonify({"error": "count or delta required"}), 400
        return jsonify({"session": play_session_service.live_view(session)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update extra controllers")
        return jsonify({"error": "Could not update controllers", "retryable": True}), 500


@sessions_bp.post("/<int:session_id>/end")
@require_auth
def end_session_route(session_id: int):
    """
    End a session and free its device.

    Body: {"discount_percent": 0..100} (optional)
    """
    data = request.get_json(silent=True) or {}
    try:
        session = play_session_service.end_session(session_id, data.get("discount_percent", 0))
        return jsonify({"session": session.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SessionError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to end session")
        return jsonify({"error": "Could not end the session", "retryable": True}), 500


@sessions_bp.post("/tick")
@require_auth
def tick_route():
    """Recompute every running session's cost. Clients poll this once per second."""
    try:
        result = play_session_service.refresh_active_sessions()
        return jsonify(result.to_dict()), 200
    except Exception:
        current_app.logger.exception("Failed to refresh active sessions")
        return jsonify({"error": "Internal server error", "retryable": True}), 500
