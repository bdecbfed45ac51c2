# utils/decorators.py
"""Authorization decorators for role-based access control."""
from functools import wraps

from flask import current_app, g, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from users.utils import authoritative_user


def roles_required(*roles, authoritative=False):
    """
    Bearer-token gate plus role allow-list.

    - No roles: any authenticated caller.
    - authoritative=True: the user row is re-read and its stored role is
      checked instead of the token claim; the row is exposed as ``g.actor``.

    Missing/invalid/expired token -> 401 (JWT loaders), wrong role -> 403.
    """
    allowed = {r.lower() for r in roles}

    def decorator(view_func):
        @wraps(view_func)
        @jwt_required()
        def wrapped(*args, **kwargs):
            if authoritative:
                actor = authoritative_user()
                if actor is None:
                    return jsonify({"error": "User no longer exists"}), 401
                g.actor = actor
                role = (actor.role or "").lower()
            else:
                role = (get_jwt().get("role") or "").lower()

            if allowed and role not in allowed:
                current_app.logger.warning(
                    "Forbidden role access attempt user=%s role=%s path=%s",
                    get_jwt_identity(), role, request.path,
                )
                return jsonify({"error": "Forbidden: insufficient role"}), 403
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


def request_meta():
    """ip / user-agent pair recorded with every audit row."""
    return {
        "ipAddress": request.headers.get("X-Forwarded-For", request.remote_addr),
        "userAgent": request.headers.get("User-Agent", "unknown"),
    }
