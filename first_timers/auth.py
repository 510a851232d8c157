import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import Blueprint, current_app, flash, g, jsonify, redirect, render_template, request, session, url_for
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from .models import User, db
from .schemas import LoginIn, RegisterIn, load, validation_message

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def issue_token(user):
    now = datetime.now(timezone.utc)
    payload = {
        'id': user.id,
        'role': user.role,
        'iat': now,
        'exp': now + timedelta(hours=current_app.config['JWT_EXPIRATION_HOURS']),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=current_app.config['JWT_ALGORITHM'])


def decode_token(token):
    """Return the token payload or raise jwt.InvalidTokenError."""
    return jwt.decode(
        token,
        current_app.config['JWT_SECRET'],
        algorithms=[current_app.config['JWT_ALGORITHM']],
    )


def _bearer_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return ''


def token_required(view):
    """Decorator for API handlers: require a valid bearer token and load g.current_user."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({'error': 'No token, authorization denied'}), 401
        try:
            payload = decode_token(token)
            user = db.session.get(User, int(payload['id']))
        except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
            return jsonify({'error': 'Token is not valid'}), 401
        if user is None:
            return jsonify({'error': 'Token is not valid'}), 401
        g.current_user = user
        return view(*args, **kwargs)
    return wrapped


def role_required(*roles):
    """Gate a handler on the current user's role. Apply below token_required."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user = g.get('current_user')
            if user is None:
                return jsonify({'error': 'No token, authorization denied'}), 401
            if user.role not in roles:
                logger.info('user %s (%s) denied %s %s', user.id, user.role, request.method, request.path)
                return jsonify({'error': 'Insufficient permissions'}), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator


def login_required(view):
    """Decorator for page handlers that require a logged-in session."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        uid = session.get('user_id')
        user = db.session.get(User, uid) if uid else None
        if user is None:
            session.clear()
            # preserve requested path in `next` so user can return after login
            return redirect(url_for('auth.login', next=request.path))
        g.current_user = user
        return view(*args, **kwargs)
    return wrapped


# ---------------- API ----------------

@auth_bp.route('/api/auth/register', methods=['POST'])
def register():
    try:
        body = load(RegisterIn, request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    try:
        # self-registration never grants elevated roles
        user = User(email=body.email, first_name=body.first_name, last_name=body.last_name, role='user')
        user.set_password(body.password)
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Registration failed'}), 400
    except Exception:
        db.session.rollback()
        logger.exception('registration failed')
        return jsonify({'error': 'Registration failed'}), 500
    logger.info('registered user %s', user.id)
    return jsonify({'user': user.to_dict(), 'token': issue_token(user)}), 201


@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    try:
        body = load(LoginIn, request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({'error': validation_message(e)}), 400
    email = body.email.strip().lower()
    password = body.password
    user = User.query.filter_by(email=email).first() if email else None
    if not user or not user.check_password(password):
        return jsonify({'error': 'Invalid credentials'}), 401
    return jsonify({'user': user.to_dict(), 'token': issue_token(user)})


@auth_bp.route('/api/auth/me')
@token_required
def me():
    return jsonify(g.current_user.to_dict())


# ---------------- Pages ----------------

@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'GET':
        return render_template('login.html')
    email = (request.form.get('email') or '').strip().lower()
    password = request.form.get('password') or ''
    if not email or not password:
        flash('Provide email and password.', 'error')
        return redirect(url_for('auth.login'))
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        flash('Invalid credentials.', 'error')
        return redirect(url_for('auth.login'))
    session.clear()
    session['user_id'] = user.id
    flash('Logged in.', 'success')
    nxt = request.args.get('next') or ''
    # only follow local paths
    if nxt.startswith('/') and not nxt.startswith('//'):
        return redirect(nxt)
    return redirect(url_for('views.dashboard'))


@auth_bp.route('/logout')
def logout():
    session.clear()
    flash('Logged out.', 'info')
    return redirect(url_for('auth.login'))
