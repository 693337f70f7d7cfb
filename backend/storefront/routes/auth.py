# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- Sign-up with password strength validation
- Login by email or username, returning an access + refresh token pair
- Refresh and logout using the refresh token
- Password reset by emailed token
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError, json_object
from ..decorators import bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

RESET_REQUESTED_MESSAGE = "If an account exists, a reset link has been sent."


def _token_response(user, issued, status: int = 200):
    return jsonify({
        "token": issued.access_token,
        "refresh_token": issued.refresh_token,
        "expires_at": issued.session.to_dict()["access_expires_at"],
        "user": user.to_dict(),
    }), status


@auth_bp.post("/signup")
def signup_route():
    """Create an account (role USER) and log it in."""
    try:
        data = json_object(request.get_json(silent=True))
        email = data.get("email")
        password = data.get("password")
        name = data.get("name")
        username = data.get("username")

        if not all([email, password, name, username]):
            return jsonify({"error": "All fields are required"}), 400

        user = auth_service.create_user(email=email, username=username, name=name, password=password)
        issued = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return _token_response(user, issued, 201)

    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create a session.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = json_object(request.get_json(silent=True))
        identifier = data.get("email") or data.get("username") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "Email and password are required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(identifier, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=str(identifier)[:64],
                reason="Invalid credentials",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        issued = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )
        return _token_response(user, issued)

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/refresh-token")
def refresh_token_route():
    """Exchange a refresh token for a new access token."""
    try:
        data = json_object(request.get_json(silent=True))
        refresh_token = data.get("refresh_token") or data.get("refreshToken")

        if not refresh_token:
            return jsonify({"error": "Refresh token required"}), 400

        issued = session_service.refresh_session(refresh_token)
        if not issued:
            return jsonify({"error": "Invalid or expired refresh token"}), 401

        return jsonify({
            "token": issued.access_token,
            "expires_at": issued.session.to_dict()["access_expires_at"],
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke the session (logout).

    Accepts the refresh token in the body or the access token as a Bearer
    header. Always succeeds so clients can clear local state.
    """
    try:
        data = json_object(request.get_json(silent=True))
        token = data.get("refresh_token") or data.get("refreshToken") or bearer_token()
        if token:
            session_service.revoke_session(token, reason="User logout")

        return jsonify({"message": "Logged out successfully"}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/forgot-password")
def forgot_password_route():
    """Start a password reset. The response never reveals whether the account exists."""
    try:
        data = json_object(request.get_json(silent=True))
        auth_service.request_password_reset(data.get("email"))
        return jsonify({"message": RESET_REQUESTED_MESSAGE}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to start password reset")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/reset-password")
def reset_password_route():
    try:
        data = json_object(request.get_json(silent=True))
        token = data.get("token")
        new_password = data.get("new_password") or data.get("newPassword")

        if not all([token, new_password]):
            return jsonify({"error": "token and new_password required"}), 400

        user = auth_service.reset_password(token, new_password)
        permission_service.log_security_event(
            user_id=user.id,
            event_type="PASSWORD_RESET",
            success=True,
            resource=request.path,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"message": "Password updated successfully"}), 200

    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500
