import logging
from functools import wraps
from flask import flash, jsonify, redirect, request, url_for
from flask_login import current_user
from werkzeug.security import check_password_hash, generate_password_hash

from database import db
from errors import ConflictError, ValidationError
from models import User, UserType
from utils import sanitize_input, validate_email, validate_password

logger = logging.getLogger(__name__)

SELF_SERVICE_TYPES = (UserType.CANDIDATE, UserType.EMPLOYER)

def _wants_json():
    return request.path.startswith('/api/')

def _deny(message):
    if _wants_json():
        return jsonify({'success': False, 'error': message}), 403
    flash(message, 'error')
    return redirect(url_for('dashboard'))

def _role_required(check, message):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                if _wants_json():
                    return jsonify({'success': False, 'error': 'Authentication required'}), 401
                return redirect(url_for('login', next=request.path))
            if not check(current_user):
                return _deny(message)
            return view(*args, **kwargs)
        return wrapper
    return decorator

candidate_required = _role_required(lambda user: user.is_candidate, 'This page is only available to candidates')
employer_required = _role_required(lambda user: user.is_employer or user.is_admin,
                                   'This page is only available to employers')
admin_required = _role_required(lambda user: user.is_admin, 'Administrator access required')

def register_user(data):
    """Create a candidate or employer account"""
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    name = sanitize_input(data.get('name') or '')

    if not validate_email(email):
        raise ValidationError("Please enter a valid email address")

    errors = validate_password(password)
    if errors:
        raise ValidationError(errors[0], errors)

    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters")

    try:
        user_type = UserType(data.get('user_type') or UserType.CANDIDATE.value)
    except ValueError:
        raise ValidationError("Account type must be candidate or employer")
    if user_type not in SELF_SERVICE_TYPES:
        raise ValidationError("Account type must be candidate or employer")

    if User.query.filter_by(email=email).first():
        raise ConflictError("An account with this email already exists")

    user = User(
        email=email,
        name=name,
        password_hash=generate_password_hash(password),
        user_type=user_type,
    )
    if user_type == UserType.EMPLOYER:
        user.company = sanitize_input(data.get('company') or '') or None

    db.session.add(user)
    db.session.commit()

    logger.info(f"Registered {user_type.value} account {user.id}")
    return user

def authenticate(email, password):
    """The user with these credentials, or None"""
    user = User.query.filter_by(email=(email or '').strip().lower()).first()
    if user and check_password_hash(user.password_hash, password or ''):
        return user
    logger.warning(f"Failed login attempt for {email}")
    return None

def needs_profile_setup(user):
    """Candidates must give a name and location before using the dashboard"""
    return user.is_candidate and not (user.name and user.location)
