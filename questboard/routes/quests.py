"""Quest API routes.

This module exposes the quest workflow:
- Listing and viewing quests
- Creating, editing and deleting quests (admins and editors)
- Claiming and completing quests (any user)
- Approving and rejecting completed quests (admins and editors)
- Resetting repeatable quests out of cooldown (admins)

State machine: AVAILABLE → CLAIMED → COMPLETED → APPROVED/REJECTED
Repeatable quests: COMPLETED → COOLDOWN → AVAILABLE
"""

import logging
from flask import Blueprint, jsonify, request
from models import db
from auth import auth_required, role_required, get_current_user
from routes import service_error_response, pagination_args
from services.errors import QuestBoardError
from services.quest_service import QuestService

quests_bp = Blueprint('quests', __name__, url_prefix='/api/quests')
logger = logging.getLogger(__name__)


def _internal_error(action: str, quest_id, e: Exception):
    logger.error(f"Failed to {action} quest {quest_id}: {e}", exc_info=True)
    db.session.rollback()
    return jsonify({
        'error': 'Internal Server Error',
        'message': f'Failed to {action} quest'
    }), 500


@quests_bp.route('', methods=['GET'])
@auth_required
def list_quests():
    """List quests.

    Query parameters:
        - status: Status or comma separated statuses
        - search: Text to match in title or description
        - page, limit: Pagination (default 1, 10)

    Returns:
        JSON: {quests: [...], pagination: {...}}
    """
    page, limit = pagination_args()
    result = QuestService.list_quests(
        status=request.args.get('status'),
        search=request.args.get('search'),
        page=page,
        limit=limit
    )
    return jsonify(result), 200


@quests_bp.route('/pending-approval', methods=['GET'])
@role_required('ADMIN', 'EDITOR')
def list_pending_approval():
    page, limit = pagination_args()
    return jsonify(QuestService.list_pending_approval(page, limit)), 200


@quests_bp.route('/repeatable', methods=['GET'])
@auth_required
def list_repeatable():
    page, limit = pagination_args()
    return jsonify(QuestService.list_repeatable(page, limit)), 200


@quests_bp.route('/mine/claimed', methods=['GET'])
@auth_required
def list_my_claimed():
    """Quests claimed by the current user."""
    page, limit = pagination_args()
    result = QuestService.list_quests(
        status=request.args.get('status'),
        claimed_by=get_current_user().id,
        page=page,
        limit=limit
    )
    return jsonify(result), 200


@quests_bp.route('/mine/created', methods=['GET'])
@auth_required
def list_my_created():
    """Quests created by the current user."""
    page, limit = pagination_args()
    result = QuestService.list_quests(
        status=request.args.get('status'),
        created_by=get_current_user().id,
        page=page,
        limit=limit
    )
    return jsonify(result), 200


@quests_bp.route('/mine/history', methods=['GET'])
@auth_required
def my_history():
    """Review decisions on the current user's completed quests."""
    page, limit = pagination_args()
    return jsonify(QuestService.completion_history(get_current_user().id, page, limit)), 200


@quests_bp.route('/<int:quest_id>', methods=['GET'])
@auth_required
def get_quest(quest_id):
    quest = QuestService.get_quest(quest_id)
    return jsonify({'quest': quest.to_dict()}), 200


@quests_bp.route('', methods=['POST'])
@role_required('ADMIN', 'EDITOR')
def create_quest():
    """Create a new quest.

    Request body:
        {
            "title": "Clean the garage",
            "description": "optional",
            "bounty": 25,
            "is_repeatable": false,
            "cooldown_days": null,
            "skill_requirements": [{"skill_id": 1, "min_level": 2}]
        }

    Returns:
        JSON: {quest: {...}} with status 201
    """
    data = request.get_json(silent=True) or {}
    user = get_current_user()

    try:
        quest = QuestService.create_quest(
            creator_id=user.id,
            title=data.get('title'),
            bounty=data.get('bounty'),
            description=data.get('description'),
            is_repeatable=data.get('is_repeatable', False),
            cooldown_days=data.get('cooldown_days'),
            skill_requirements=data.get('skill_requirements')
        )
        return jsonify({'message': 'Quest created successfully', 'quest': quest.to_dict()}), 201
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)
    except Exception as e:
        return _internal_error('create', None, e)


@quests_bp.route('/<int:quest_id>', methods=['PUT'])
@role_required('ADMIN', 'EDITOR')
def update_quest(quest_id):
    data = request.get_json(silent=True) or {}

    try:
        quest = QuestService.update_quest(quest_id, data)
        return jsonify({'message': 'Quest updated successfully', 'quest': quest.to_dict()}), 200
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)
    except Exception as e:
        return _internal_error('update', quest_id, e)


@quests_bp.route('/<int:quest_id>', methods=['DELETE'])
@role_required('ADMIN')
def delete_quest(quest_id):
    try:
        QuestService.delete_quest(quest_id)
        return jsonify({'message': 'Quest deleted successfully'}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        return _internal_error('delete', quest_id, e)


@quests_bp.route('/<int:quest_id>/claim', methods=['POST'])
@auth_required
def claim_quest(quest_id):
    """Claim an available quest for the current user."""
    user = get_current_user()

    try:
        quest = QuestService.claim(quest_id, user.id)
        return jsonify({'message': 'Quest claimed successfully', 'quest': quest.to_dict()}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        return _internal_error('claim', quest_id, e)


@quests_bp.route('/<int:quest_id>/complete', methods=['POST'])
@auth_required
def complete_quest(quest_id):
    """Mark the current user's claimed quest as completed."""
    user = get_current_user()

    try:
        quest = QuestService.complete(quest_id, user.id)
        return jsonify({'message': 'Quest completed, waiting for approval', 'quest': quest.to_dict()}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        return _internal_error('complete', quest_id, e)


@quests_bp.route('/<int:quest_id>/approve', methods=['POST'])
@role_required('ADMIN', 'EDITOR')
def approve_quest(quest_id):
    """Approve a completed quest and pay out bounty and experience.

    Returns:
        JSON: {quest, experience_gained, leveled_up, new_level}
    """
    user = get_current_user()

    try:
        result = QuestService.approve(quest_id, user.id)
        return jsonify({
            'message': 'Quest approved successfully',
            'quest': result['quest'].to_dict(),
            'experience_gained': result['experience_gained'],
            'leveled_up': result['leveled_up'],
            'new_level': result['new_level']
        }), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        return _internal_error('approve', quest_id, e)


@quests_bp.route('/<int:quest_id>/reject', methods=['POST'])
@role_required('ADMIN', 'EDITOR')
def reject_quest(quest_id):
    """Reject a completed quest.

    Request body:
        {"notes": "optional reason"}
    """
    data = request.get_json(silent=True) or {}
    user = get_current_user()

    try:
        quest = QuestService.reject(quest_id, user.id, data.get('notes'))
        return jsonify({'message': 'Quest rejected', 'quest': quest.to_dict()}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        return _internal_error('reject', quest_id, e)


@quests_bp.route('/<int:quest_id>/reset', methods=['POST'])
@auth_required
def reset_quest(quest_id):
    """Reset a repeatable quest out of cooldown. Admin only."""
    user = get_current_user()

    try:
        quest = QuestService.reset(quest_id, user.role)
        return jsonify({'message': 'Quest reset to available', 'quest': quest.to_dict()}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        return _internal_error('reset', quest_id, e)
