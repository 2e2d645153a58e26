"""Skill API routes.

Admins manage skills and set user skill levels. Quests list their
required skills; any user can see the active skills and their own levels.
"""

import logging
from flask import Blueprint, jsonify, request
from models import db
from auth import auth_required, admin_required, get_current_user
from routes import service_error_response
from services.errors import QuestBoardError
from services.skill_service import SkillService

skills_bp = Blueprint('skills', __name__, url_prefix='/api/skills')
logger = logging.getLogger(__name__)


@skills_bp.route('', methods=['GET'])
@auth_required
def list_skills():
    """Active skills."""
    return jsonify({'skills': [s.to_dict() for s in SkillService.list_skills()]}), 200


@skills_bp.route('/all', methods=['GET'])
@admin_required
def list_all_skills():
    skills = SkillService.list_skills(include_inactive=True)
    return jsonify({'skills': [s.to_dict() for s in skills]}), 200


@skills_bp.route('', methods=['POST'])
@admin_required
def create_skill():
    """Create a skill.

    Request body:
        {"name": "Carpentry", "description": "optional"}
    """
    data = request.get_json(silent=True) or {}
    user = get_current_user()

    try:
        skill = SkillService.create_skill(user.id, data.get('name'), data.get('description'))
        return jsonify({'message': 'Skill created successfully', 'skill': skill.to_dict()}), 201
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)


@skills_bp.route('/<int:skill_id>', methods=['PUT'])
@admin_required
def update_skill(skill_id):
    data = request.get_json(silent=True) or {}

    try:
        skill = SkillService.update_skill(skill_id, data)
        return jsonify({'message': 'Skill updated successfully', 'skill': skill.to_dict()}), 200
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)


@skills_bp.route('/mine', methods=['GET'])
@auth_required
def my_skills():
    user_skills = SkillService.get_user_skills(get_current_user().id)
    return jsonify({'skills': [us.to_dict() for us in user_skills]}), 200


@skills_bp.route('/users/<int:user_id>', methods=['GET'])
@admin_required
def user_skills(user_id):
    user_skills = SkillService.get_user_skills(user_id)
    return jsonify({'skills': [us.to_dict() for us in user_skills]}), 200


@skills_bp.route('/users/<int:user_id>/<int:skill_id>', methods=['PUT'])
@admin_required
def set_user_skill(user_id, skill_id):
    """Grant a skill or change its level.

    Request body:
        {"level": 3}
    """
    data = request.get_json(silent=True) or {}

    try:
        user_skill = SkillService.set_user_skill(user_id, skill_id, data.get('level'))
        return jsonify({'message': 'User skill updated', 'skill': user_skill.to_dict()}), 200
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)


@skills_bp.route('/users/<int:user_id>/<int:skill_id>', methods=['DELETE'])
@admin_required
def remove_user_skill(user_id, skill_id):
    try:
        SkillService.remove_user_skill(user_id, skill_id)
        return jsonify({'message': 'User skill removed'}), 200
    except QuestBoardError as e:
        return service_error_response(e)
