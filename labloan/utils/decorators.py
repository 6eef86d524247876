from functools import wraps
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity
from flask import jsonify

MANAGER_ROLES = ("lab_manager", "admin")


def role_required(*roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = (get_jwt() or {}).get("role")
            if role not in roles:
                return jsonify({"success": False, "message": "Forbidden"}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def current_actor() -> str:
    """Display name for history/notifications: username claim, else the identity."""
    claims = get_jwt() or {}
    return claims.get("username") or str(get_jwt_identity())
