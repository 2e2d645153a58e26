"""Authentication utilities for Quest Board.

Token handling happens upstream: the identity layer in front of the app
authenticates the caller and forwards their external id in the
``X-Auth-User`` header. Here that id is resolved to a User and checked
against the role each endpoint requires.
"""

from functools import wraps
from flask import g, jsonify


AUTH_HEADER = 'X-Auth-User'


def get_current_user():
    """
    Get the current authenticated user from the database.

    Returns:
        User: Current user object or None if not found
    """
    from models import User

    if not hasattr(g, 'auth_user_id') or g.auth_user_id is None:
        return None

    # Cache the user lookup in g to avoid repeated DB queries within the same request
    if getattr(g, 'cached_auth_user_id', None) != g.auth_user_id:
        g.current_user = User.query.filter_by(auth_id=g.auth_user_id).first()
        g.cached_auth_user_id = g.auth_user_id

    return g.current_user


def auth_required(f):
    """Decorator to ensure the caller maps to a known user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, 'auth_user_id', None) is None:
            return jsonify({
                'error': 'Unauthorized',
                'message': 'Authentication required'
            }), 401

        if get_current_user() is None:
            return jsonify({
                'error': 'Unauthorized',
                'message': 'User not found in database'
            }), 401

        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    """Decorator to ensure the caller has one of ``roles``."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()
            if user is None:
                return jsonify({
                    'error': 'Unauthorized',
                    'message': 'Authentication required'
                }), 401

            if user.role not in roles:
                return jsonify({
                    'error': 'Forbidden',
                    'message': 'Insufficient permissions'
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """Decorator to ensure user is an admin."""
    return role_required('ADMIN')(f)
