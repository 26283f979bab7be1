"""Middleware for authentication and request context."""
import uuid
from functools import wraps
from flask import session, g, jsonify, current_app
from storefront.database import get_session
from storefront.models import User, ServiceProvider, UserRole

CART_SESSION_KEY = 'cart_session_id'
ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.MANAGER.value)


def load_user():
    """
    Load the current user, provider and cart owner into g.

    Called before each request. Sets g.user, g.provider and
    g.cart_session_id (anonymous cart key, created on first use).
    """
    g.user = None
    g.provider = None

    try:
        db_session = get_session()

        user_id = session.get('user_id')
        if user_id:
            user = db_session.query(User).filter_by(id=user_id, is_active=True).first()
            if user:
                g.user = user
            else:
                session.pop('user_id', None)

        provider_id = session.get('provider_id')
        if provider_id:
            provider = db_session.query(ServiceProvider).filter_by(id=provider_id, is_active=True).first()
            if provider:
                g.provider = provider
            else:
                session.pop('provider_id', None)
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_user: {e}")

    g.cart_session_id = session.get(CART_SESSION_KEY)


def ensure_cart_session_id() -> str:
    """Anonymous cart key for the current browser session."""
    if not g.get('cart_session_id'):
        g.cart_session_id = uuid.uuid4().hex
        session[CART_SESSION_KEY] = g.cart_session_id
    return g.cart_session_id


def _error(message, status_code):
    return jsonify({'status': 'error', 'message': message}), status_code


def require_login(f):
    """Decorator: Require a logged in customer or staff user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return _error('Authentication required', 401)
        return f(*args, **kwargs)
    return decorated_function


def require_role(*allowed_roles):
    """
    Decorator: Restrict access to specific roles.

    Usage:
        @require_role('admin', 'manager')
    """
    allowed = allowed_roles or ADMIN_ROLES

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if g.get('user') is None:
                return _error('Authentication required', 401)
            if g.user.role not in allowed:
                return _error('You do not have permission to perform this action', 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


require_admin = require_role(*ADMIN_ROLES)


def require_provider(f):
    """Decorator: Require a logged in, approved service provider."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('provider') is None:
            return _error('Provider login required', 401)
        if not g.provider.is_approved:
            return _error('Your provider account is awaiting approval', 403)
        return f(*args, **kwargs)
    return decorated_function
