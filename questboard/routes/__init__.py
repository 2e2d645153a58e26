"""Routes package for Quest Board API endpoints."""

from flask import jsonify, request

from services.errors import QuestBoardError


def service_error_response(e: QuestBoardError):
    """Build the JSON error response for a service error."""
    body = {
        'error': e.__class__.__name__.replace('Error', ' Error').strip(),
        'message': e.message
    }
    if e.details:
        body['details'] = e.details
    return jsonify(body), e.status_code


def pagination_args(default_limit: int = 10) -> tuple[int, int]:
    """Read page/limit query parameters."""
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', default_limit, type=int)
    return page, limit


# Import blueprints
from .quests import quests_bp  # noqa: E402
from .jobs import jobs_bp  # noqa: E402
from .store import store_bp  # noqa: E402
from .notifications import notifications_bp  # noqa: E402
from .users import users_bp  # noqa: E402
from .skills import skills_bp  # noqa: E402

# Export all blueprints
__all__ = ['quests_bp', 'jobs_bp', 'store_bp', 'notifications_bp', 'users_bp', 'skills_bp',
           'service_error_response', 'pagination_args']
