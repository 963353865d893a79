import re
import logging

from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, login_required, current_user

from extensions import db
from errors import ValidationError, AuthenticationError
from models import User, ROLE_ADMIN, ROLE_EMPLOYEE
from auth import issue_token
from notification_service import get_notifier

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')

EMAIL_PATTERN = re.compile(r'^[^@]+@[^@]+\.[^@]+$')


def _session_user(user):
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'role': user.role,
    }


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a new account. The configured admin email becomes an admin."""
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')
    first_name = (data.get('firstName') or '').strip()
    last_name = (data.get('lastName') or '').strip()

    logger.info(f"[REGISTER] Registration attempt for: {email}")

    if not all([email, password, first_name, last_name]):
        raise ValidationError('All fields are required')
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Invalid email address')
    if User.query.filter_by(email=email).first():
        raise ValidationError('User already exists')

    is_admin = email == current_app.config['ADMIN_EMAIL'].lower()
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=ROLE_ADMIN if is_admin else ROLE_EMPLOYEE,
        is_active=True,
    )
    user.set_password(password)
    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[REGISTER] User created with ID: {user.id} role={user.role}")

    if not is_admin:
        get_notifier().notify(
            'new_user',
            'New User Registered',
            f'{first_name} {last_name} ({email}) has joined the system',
            related_id=user.id,
        )

    return jsonify({'success': True, 'message': 'User created successfully', 'userId': user.id}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    if not email or not password:
        raise ValidationError('Email and password required')

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.info(f"[LOGIN] Invalid credentials for: {email}")
        raise AuthenticationError('Invalid email or password')
    if not user.is_active:
        logger.info(f"[LOGIN] Deactivated account: {email}")
        raise AuthenticationError('Account is deactivated')

    session.permanent = True
    login_user(user)
    logger.info(f"[LOGIN] Login successful for: {email}")

    return jsonify({'success': True, 'user': _session_user(user), 'token': issue_token(user)})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({'success': True, 'message': 'Logged out successfully'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'user': _session_user(current_user)})
