# Overview: Flask API routes for user accounts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service, user_service
from ..services.auth_service import PasswordValidationError
from ..services.permission_service import PermissionDeniedError
from ..validation import ConflictError, NotFoundError, ValidationError, json_object
from ..decorators import require_auth, require_role

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role("ADMIN")
def list_users_route():
    users = user_service.list_users()
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@users_bp.get("/check-username")
def check_username_route():
    """Public: is a username free for sign-up?"""
    username = request.args.get("username", "")
    if not username.strip():
        return jsonify({"error": "Username is required"}), 400
    return jsonify({"available": user_service.is_username_available(username)})


@users_bp.get("/me")
@require_auth
def get_me_route():
    return jsonify({"user": g.current_user.to_dict()})


@users_bp.put("/me")
@require_auth
def update_me_route():
    """
    Update the caller's profile.

    Request body (all optional): name, email, username, profile_picture
    """
    try:
        user = user_service.update_profile(g.current_user.id, request.get_json(silent=True) or {})
        return jsonify({"user": user.to_dict()})

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/me/password")
@require_auth
def change_password_route():
    try:
        data = json_object(request.get_json(silent=True))
        current_password = data.get("current_password") or data.get("currentPassword")
        new_password = data.get("new_password") or data.get("newPassword")

        if not all([current_password, new_password]):
            return jsonify({"error": "current_password and new_password required"}), 400

        auth_service.change_password(g.current_user.id, current_password, new_password)
        return jsonify({"message": "Password updated successfully"})

    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>/role")
@require_auth
def change_role_route(user_id: int):
    """
    Change a user's role.

    Requires: SUPERADMIN, and the target must not be the caller.
    """
    try:
        data = json_object(request.get_json(silent=True))
        user = user_service.change_role(
            g.current_user,
            user_id,
            data.get("role"),
            ip_address=request.remote_addr,
        )
        return jsonify({"user": user.to_dict()})

    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update user role")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
def delete_user_route(user_id: int):
    """
    Delete an account.

    Self-deletion ends every session of the caller; the response tells the
    client to drop its tokens.
    """
    try:
        was_self = user_service.delete_user(g.current_user, user_id, ip_address=request.remote_addr)
        return jsonify({"success": True, "session_terminated": was_self})

    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
