# backend/lounge/routes/auth.py
"""
Authentication API routes

- POST /api/auth/register: self sign-up (always role "user")
- POST /api/auth/login: exchange email/password for a bearer token
- POST /api/auth/logout: revoke the current token
- GET  /api/auth/me: the caller's account
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import token_service
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """Create a plain user account and log it in."""
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.register(
            data.get("email"),
            data.get("password"),
            data.get("confirm_password"),
        )
        _, token = token_service.create_token(user)
        return jsonify({"user": user.to_dict(), "token": token}), 201

    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        auth_service.normalize_email(email)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        record, token = token_service.create_token(user)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": record.to_dict()["expires_at"],
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token_service.revoke_token(g.auth_token)
        return jsonify({"ok": True}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error", "retryable": True}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
