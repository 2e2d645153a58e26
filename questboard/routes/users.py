"""User management API endpoints."""

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError
from models import db, User, USER_ROLES
from auth import auth_required, admin_required, get_current_user
from utils.leveling import get_level_info

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def serialize_user(user: User) -> dict:
    data = user.to_dict()
    data['level_info'] = get_level_info(user.experience)
    return data


@users_bp.route('/me', methods=['GET'])
@auth_required
def me():
    """Current user with balance, experience and level progress."""
    return jsonify({'user': serialize_user(get_current_user())}), 200


@users_bp.route('', methods=['GET'])
@admin_required
def list_users():
    """
    List all users with optional filtering by role.

    Query Parameters:
        role: Filter by role (ADMIN, EDITOR or PLAYER)
        limit: Maximum number of results (default: 50)
        offset: Offset for pagination (default: 0)

    Returns:
        JSON response with list of users
    """
    role_filter = request.args.get('role')
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)

    if role_filter and role_filter not in USER_ROLES:
        return jsonify({
            'error': 'Bad Request',
            'message': f'Invalid role filter. Must be one of {", ".join(USER_ROLES)}'
        }), 400

    query = User.query
    if role_filter:
        query = query.filter_by(role=role_filter)

    total = query.count()
    users = query.order_by(User.id).limit(limit).offset(offset).all()

    return jsonify({
        'data': [serialize_user(user) for user in users],
        'total': total,
        'limit': limit,
        'offset': offset
    }), 200


@users_bp.route('', methods=['POST'])
@admin_required
def create_user():
    """
    Create a user linked to an external identity.

    Request Body:
        auth_id: External identity id (required)
        name: Display name (required)
        email: Email address (optional)
        role: ADMIN, EDITOR or PLAYER (default PLAYER)

    Returns:
        JSON response with created user data
    """
    data = request.get_json(silent=True) or {}

    auth_id = data.get('auth_id')
    name = data.get('name')
    role = data.get('role', 'PLAYER')

    if not auth_id or not name:
        return jsonify({
            'error': 'Bad Request',
            'message': 'auth_id and name are required'
        }), 400

    if role not in USER_ROLES:
        return jsonify({
            'error': 'Bad Request',
            'message': f'role must be one of {", ".join(USER_ROLES)}'
        }), 400

    user = User(auth_id=auth_id, name=name, email=data.get('email'), role=role)

    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({
            'error': 'Conflict',
            'message': f'User with auth_id "{auth_id}" already exists'
        }), 409

    return jsonify({'data': serialize_user(user), 'message': 'User created successfully'}), 201


@users_bp.route('/<int:user_id>', methods=['GET'])
@admin_required
def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({
            'error': 'Not Found',
            'message': f'User with ID {user_id} not found'
        }), 404

    return jsonify({'data': serialize_user(user)}), 200


@users_bp.route('/<int:user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    """
    Update a user's name, email or role.

    Balances and experience only change through quests and the store.
    """
    user = db.session.get(User, user_id)
    if not user:
        return jsonify({
            'error': 'Not Found',
            'message': f'User with ID {user_id} not found'
        }), 404

    data = request.get_json(silent=True) or {}

    for locked in ('auth_id', 'bounty_balance', 'experience'):
        if locked in data:
            return jsonify({
                'error': 'Bad Request',
                'message': f'{locked} cannot be changed'
            }), 400

    if 'name' in data:
        if not data['name']:
            return jsonify({
                'error': 'Bad Request',
                'message': 'name cannot be empty'
            }), 400
        user.name = data['name']

    if 'email' in data:
        user.email = data['email']

    if 'role' in data:
        if data['role'] not in USER_ROLES:
            return jsonify({
                'error': 'Bad Request',
                'message': f'role must be one of {", ".join(USER_ROLES)}'
            }), 400
        user.role = data['role']

    db.session.commit()

    return jsonify({'data': serialize_user(user), 'message': 'User updated successfully'}), 200
