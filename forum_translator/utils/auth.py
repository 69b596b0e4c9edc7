"""Shared authentication utilities.

JWT decorators used by the translation routes and the socket handlers.
Tokens are HS256 with a `user_id` claim, signed with JWT_SECRET_KEY.
"""

from functools import wraps
from flask import request, jsonify, current_app, g
import jwt


def _get_secret_key():
    """Get JWT secret from Flask app config (single source of truth)."""
    return current_app.config['JWT_SECRET_KEY']


def decode_user_id(token):
    """Return the user id in a token, or None if the token is invalid."""
    if not token:
        return None
    if token.startswith('Bearer '):
        token = token.split(' ')[1]
    try:
        payload = jwt.decode(token, _get_secret_key(), algorithms=['HS256'])
        return payload.get('user_id')
    except jwt.InvalidTokenError:
        return None


def token_required_g(f):
    """
    Decorator to require valid JWT token, setting g.current_user.
    
    Usage:
        @bp.route('/protected')
        @token_required_g
        def protected_route():
            user = g.current_user
            return jsonify({'user_id': user.id})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        # Import here to avoid circular imports
        from forum_translator.models import User
        from forum_translator import db
        
        auth_header = request.headers.get('Authorization')
        
        if not auth_header or not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Token is missing'}), 401
        
        try:
            token = auth_header.split(' ')[1]
            payload = jwt.decode(token, _get_secret_key(), algorithms=['HS256'])
            current_user = db.session.get(User, payload['user_id'])
            if not current_user or not current_user.is_active:
                return jsonify({'error': 'User not found'}), 401
            g.current_user = current_user
        except jwt.ExpiredSignatureError:
            return jsonify({'error': 'Token has expired'}), 401
        except (jwt.InvalidTokenError, KeyError):
            return jsonify({'error': 'Invalid token'}), 401
        
        return f(*args, **kwargs)
    return decorated


def admin_required_g(f):
    """Like token_required_g, but only for admins."""
    @wraps(f)
    @token_required_g
    def decorated(*args, **kwargs):
        if not g.current_user.is_admin:
            return jsonify({'error': 'Access denied'}), 403
        return f(*args, **kwargs)
    return decorated
