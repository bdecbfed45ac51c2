from flask_jwt_extended import create_access_token, get_jwt_identity
from extensions import db
from users.models import User


def issue_token(user):
    """
    Sign an access token for a freshly loaded user.
    The role/name claims are a capability hint only; see authoritative_user().
    """
    return create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role, "name": user.name},
    )


def authoritative_user():
    """
    Re-read the acting user from storage. Sensitive decisions (authorship,
    status transitions, rating) must use this role, never the token claim.
    Requires a verified JWT in the current request.
    """
    identity = get_jwt_identity()
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)
