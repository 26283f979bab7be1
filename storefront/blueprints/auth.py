"""
Authentication blueprint.
Handles customer registration, login, logout and the current session.
"""
import logging
from flask import Blueprint, session, g, jsonify
from flask_wtf.csrf import generate_csrf
from storefront.database import get_session
from storefront.forms import parse_form
from storefront.forms.customer_forms import RegisterForm, LoginForm
from storefront.middleware import require_login, CART_SESSION_KEY
from storefront.services.account_service import register_customer, authenticate_user
from storefront.services.cart_service import merge_guest_cart

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _start_session(user):
    """Log the user in, carrying the anonymous cart over to the account."""
    guest_cart = session.get(CART_SESSION_KEY)
    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    if guest_cart:
        merged = merge_guest_cart(get_session(), guest_cart, user.id)
        if merged:
            logger.info(f"[CART] Merged {merged} guest cart lines into user {user.id}")


@auth_bp.route('/csrf')
def csrf_token():
    """CSRF token for JSON clients (send it back in X-CSRFToken)."""
    return {'csrf_token': generate_csrf()}


@auth_bp.route('/register', methods=['POST'])
def register():
    data = parse_form(RegisterForm)
    user = register_customer(get_session(), data)
    _start_session(user)
    return jsonify({'status': 'success', 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = parse_form(LoginForm)
    user = authenticate_user(get_session(), data['email'], data['password'])
    _start_session(user)
    logger.info(f"User {user.id} logged in")
    return {'status': 'success', 'user': user.to_dict()}


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return {'status': 'success'}


@auth_bp.route('/me')
@require_login
def me():
    return {'user': g.user.to_dict()}
