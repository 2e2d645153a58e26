"""Store API routes.

Items are managed by admins and editors. Any user can buy an active item;
the purchase stays PENDING until an admin or editor approves or rejects it.
"""

import logging
from flask import Blueprint, jsonify, request
from models import db
from auth import auth_required, role_required, get_current_user
from routes import service_error_response, pagination_args
from services.errors import QuestBoardError
from services.store_service import StoreService

store_bp = Blueprint('store', __name__, url_prefix='/api/store')
logger = logging.getLogger(__name__)


@store_bp.route('/items', methods=['GET'])
@auth_required
def list_items():
    """List store items.

    Query parameters:
        - include_inactive: 'true' to include disabled items (admins/editors)
    """
    user = get_current_user()
    include_inactive = (
        request.args.get('include_inactive', 'false').lower() == 'true'
        and user.role in ('ADMIN', 'EDITOR')
    )
    items = StoreService.list_items(include_inactive=include_inactive)
    return jsonify({'items': [item.to_dict() for item in items]}), 200


@store_bp.route('/items', methods=['POST'])
@role_required('ADMIN', 'EDITOR')
def create_item():
    data = request.get_json(silent=True) or {}
    user = get_current_user()

    try:
        item = StoreService.create_item(
            creator_id=user.id,
            name=data.get('name'),
            cost=data.get('cost'),
            description=data.get('description')
        )
        return jsonify({'message': 'Store item created successfully', 'item': item.to_dict()}), 201
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)


@store_bp.route('/items/<int:item_id>', methods=['PUT'])
@role_required('ADMIN', 'EDITOR')
def update_item(item_id):
    data = request.get_json(silent=True) or {}

    try:
        item = StoreService.update_item(item_id, data)
        return jsonify({'message': 'Store item updated successfully', 'item': item.to_dict()}), 200
    except QuestBoardError as e:
        db.session.rollback()
        return service_error_response(e)


@store_bp.route('/items/<int:item_id>/purchase', methods=['POST'])
@auth_required
def purchase_item(item_id):
    """Buy an item with bounty.

    Returns:
        JSON: {transaction, new_balance} with status 201
    """
    user = get_current_user()

    try:
        transaction = StoreService.purchase(item_id, user.id)
        return jsonify({
            'message': 'Purchase submitted for approval',
            'transaction': transaction.to_dict(),
            'new_balance': get_current_user().bounty_balance
        }), 201
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Failed to purchase item {item_id}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'Failed to purchase item'
        }), 500


@store_bp.route('/purchases', methods=['GET'])
@auth_required
def my_purchases():
    page, limit = pagination_args()
    return jsonify(StoreService.list_user_purchases(get_current_user().id, page, limit)), 200


@store_bp.route('/transactions/pending', methods=['GET'])
@role_required('ADMIN', 'EDITOR')
def pending_transactions():
    page, limit = pagination_args()
    return jsonify(StoreService.list_pending_transactions(page, limit)), 200


@store_bp.route('/transactions/<int:transaction_id>/process', methods=['POST'])
@role_required('ADMIN', 'EDITOR')
def process_transaction(transaction_id):
    """Approve or reject a pending purchase.

    Request body:
        {"status": "APPROVED" | "REJECTED", "notes": "optional"}
    """
    data = request.get_json(silent=True) or {}
    user = get_current_user()

    try:
        transaction = StoreService.process_transaction(
            transaction_id, user.id, data.get('status'), data.get('notes')
        )
        return jsonify({'message': 'Transaction processed', 'transaction': transaction.to_dict()}), 200
    except QuestBoardError as e:
        return service_error_response(e)
    except Exception as e:
        logger.error(f"Failed to process transaction {transaction_id}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'Failed to process transaction'
        }), 500
