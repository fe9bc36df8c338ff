"""Custom decorators for resolving the acting user."""
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity, jwt_required

from presence.models.user import User
from presence.services.authorization import resolve_capabilities
from presence.utils.errors import AuthorizationError, NotFoundError


def current_actor(f):
    """Require a JWT and expose the user and capability set on ``g``.

    Capabilities are resolved once here and reused by the whole request.
    """
    @wraps(f)
    @jwt_required()
    def decorated_function(*args, **kwargs):
        identity = get_jwt_identity()
        try:
            user_id = int(identity)
        except (TypeError, ValueError):
            raise AuthorizationError("Invalid token identity")

        user = User.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise AuthorizationError("Account is deactivated")

        g.current_user = user
        g.capabilities = resolve_capabilities(user)
        return f(*args, **kwargs)
    return decorated_function
