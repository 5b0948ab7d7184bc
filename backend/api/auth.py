"""Authentication API endpoints."""
from flask import Blueprint, request, jsonify, g
from backend.models import db, User
from backend.auth import generate_token, login_required

auth_bp = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 6

@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a new user. The city itself is created on the first state request."""
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({'error': 'Missing username or password'}), 400

    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters'}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists'}), 400

    user = User(username=username)
    user.set_password(password)

    db.session.add(user)
    db.session.commit()

    return jsonify({
        'token': generate_token(user),
        'user': user.to_dict()
    }), 201

@auth_bp.route('/login', methods=['POST'])
def login():
    """Login user and return token."""
    data = request.get_json(silent=True) or {}

    if not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Missing username or password'}), 400

    user = User.query.filter_by(username=data['username']).first()

    if not user or not user.check_password(data['password']):
        return jsonify({'error': 'Invalid credentials'}), 401

    return jsonify({
        'token': generate_token(user),
        'user': user.to_dict()
    })

@auth_bp.route('/me', methods=['GET'])
@login_required
def get_current_user_info():
    """Get current user information."""
    return jsonify({'user': g.current_user.to_dict()})
