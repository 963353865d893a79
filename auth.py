"""
Identity for every request.

Browsers authenticate with the Flask-Login session cookie. API clients
may instead send "Authorization: Bearer <jwt>" with a token obtained from
/api/login. Admin-only endpoints are declared with @admin_required.
"""

import logging
from datetime import datetime, timedelta
from functools import wraps

import jwt
from flask import current_app, request, jsonify
from flask_login import current_user, login_required

from extensions import db, login_manager
from errors import AuthorizationError
from models import User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'
TOKEN_TTL = timedelta(days=7)


def issue_token(user):
    payload = {
        'user_id': user.id,
        'email': user.email,
        'exp': datetime.utcnow() + TOKEN_TTL,
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm=JWT_ALGORITHM)


@login_manager.user_loader
def load_user(user_id):
    user = db.session.get(User, int(user_id))
    # Deactivation ends existing sessions too
    if user and not user.is_active:
        return None
    return user


@login_manager.request_loader
def load_user_from_token(req):
    token = req.headers.get('Authorization')
    if not token or not token.startswith('Bearer '):
        return None
    try:
        data = jwt.decode(token[7:], current_app.config['JWT_SECRET_KEY'],
                          algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("[AUTH] Token expired")
        return None
    except jwt.InvalidTokenError:
        logger.info("[AUTH] Invalid token")
        return None
    user = db.session.get(User, data.get('user_id'))
    if user and not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': 'Unauthorized'}), 401


def admin_required(f):
    """Require an authenticated admin. Non-admins get a bare 403."""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            logger.warning(f"[AUTH] Admin access denied for user={current_user.id} on {request.path}")
            raise AuthorizationError()
        return f(*args, **kwargs)
    return decorated_function
