"""Authentication utilities."""
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import current_app, jsonify, request, g
from backend.models import db, User
import jwt

def generate_token(user):
    """Generate JWT token for user."""
    ttl = current_app.config.get('TOKEN_TTL_SECONDS', 7 * 24 * 3600)
    payload = {
        'user_id': user.id,
        'username': user.username,
        'exp': datetime.now(timezone.utc) + timedelta(seconds=ttl)
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')

def verify_token(token):
    """Verify JWT token and return user."""
    try:
        payload = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=['HS256'])
    except jwt.InvalidTokenError:
        return None
    user_id = payload.get('user_id')
    if user_id:
        return db.session.get(User, user_id)
    return None

def get_current_user():
    """Get current user from request token."""
    auth_header = request.headers.get('Authorization', '')
    scheme, _, token = auth_header.partition(' ')
    if scheme.lower() != 'bearer' or not token:
        return None
    return verify_token(token)

def login_required(f):
    """Decorator to require authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if not user:
            return jsonify({'error': 'Authentication required'}), 401
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function
