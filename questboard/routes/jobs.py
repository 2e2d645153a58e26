"""Scheduled job administration API (admins only)."""

import logging
from flask import Blueprint, jsonify
from models import db
from auth import admin_required
from routes import service_error_response
from scheduler import get_scheduler
from services.errors import QuestBoardError, NotFoundError

jobs_bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')
logger = logging.getLogger(__name__)


@jobs_bp.route('', methods=['GET'])
@admin_required
def list_jobs():
    """Status of every registered job."""
    return jsonify({'jobs': get_scheduler().get_all_job_statuses()}), 200


@jobs_bp.route('/health', methods=['GET'])
@admin_required
def jobs_health():
    """Job counts split by whether the last scheduled run failed."""
    statuses = get_scheduler().get_all_job_statuses()
    failed = [s for s in statuses if s['last_error']]
    return jsonify({
        'total_jobs': len(statuses),
        'active_jobs': len(statuses) - len(failed),
        'failed_jobs': len(failed),
        'jobs': statuses
    }), 200


@jobs_bp.route('/<name>', methods=['GET'])
@admin_required
def get_job(name):
    status = get_scheduler().get_job_status(name)
    if status is None:
        return service_error_response(NotFoundError('Job not found'))
    return jsonify({'job': status}), 200


@jobs_bp.route('/<name>/trigger', methods=['POST'])
@admin_required
def trigger_job(name):
    """Run a job now and report whether it succeeded."""
    try:
        get_scheduler().trigger_job(name)
        return jsonify({'message': f'Job {name} triggered successfully'}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Manual run of job {name} failed: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'error': 'Internal Server Error',
            'message': f'Job {name} failed',
            'details': str(e)
        }), 500


@jobs_bp.route('/<name>/stop', methods=['POST'])
@admin_required
def stop_job(name):
    try:
        get_scheduler().stop_job(name)
        return jsonify({'message': f'Job {name} stopped'}), 200
    except QuestBoardError as e:
        return service_error_response(e)
