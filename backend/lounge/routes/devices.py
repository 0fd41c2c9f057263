# backend/lounge/routes/devices.py
"""
Device board and device administration.

Anyone signed in can read the board. Creating, editing, deleting, and
maintenance toggles are admin-only (the settings surface).
"""

from flask import Blueprint, request, jsonify, current_app

from ..models import Device
from ..services import device_service
from ..services.device_service import DeviceError, DEVICE_POLICY
from ..services.play_session_service import active_session_for_device, live_view
from ..validation import validate_payload, ValidationError
from ..decorators import require_auth, require_admin


devices_bp = Blueprint("devices", __name__, url_prefix="/api/devices")


@devices_bp.get("")
@require_auth
def list_devices_route():
    """
    The device board: every device with its running session's live cost.

    Query params:
    - board: "false" to return bare device rows without sessions
    - type, status: optional filters (bare listing only)
    """
    if request.args.get("board", "true").lower() == "false":
        devices = device_service.list_devices(
            device_type=request.args.get("type"),
            status=request.args.get("status"),
        )
        return jsonify({"items": [d.to_dict() for d in devices], "count": len(devices)}), 200

    board = device_service.device_board()
    return jsonify({"items": board, "count": len(board)}), 200


@devices_bp.get("/<int:device_id>")
@require_auth
def get_device_route(device_id: int):
    try:
        device = device_service.get_device(device_id)
    except DeviceError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code

    session = active_session_for_device(device_id)
    data = device.to_dict()
    data["session"] = live_view(session, device) if session else None
    return jsonify({"device": data}), 200


@devices_bp.post("")
@require_auth
@require_admin
def create_device_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Device, payload=payload, policy=DEVICE_POLICY, partial=False)
        device = device_service.create_device(patch)
        return jsonify({"device": device.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create device")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@devices_bp.patch("/<int:device_id>")
@require_auth
@require_admin
def update_device_route(device_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Device, payload=payload, policy=DEVICE_POLICY, partial=True)
        device = device_service.update_device(device_id, patch)
        return jsonify({"device": device.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DeviceError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update device")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@devices_bp.delete("/<int:device_id>")
@require_auth
@require_admin
def delete_device_route(device_id: int):
    try:
        device_service.delete_device(device_id)
        return jsonify({"ok": True}), 200

    except DeviceError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete device")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@devices_bp.post("/<int:device_id>/maintenance")
@require_auth
@require_admin
def maintenance_route(device_id: int):
    """
    Toggle maintenance on an idle device.

    Body: {"maintenance": true|false}
    """
    data = request.get_json(silent=True) or {}
    flag = data.get("maintenance")
    if not isinstance(flag, bool):
        return jsonify({"error": "maintenance must be true or false"}), 400

    try:
        device = device_service.set_maintenance(device_id, flag)
        return jsonify({"device": device.to_dict()}), 200

    except DeviceError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change device maintenance")
        return jsonify({"error": "Internal server error", "retryable": True}), 500
