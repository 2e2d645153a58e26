"""Store service.

This module contains the business logic for the bounty store:
- Managing store items
- Purchasing items (debiting bounty)
- Processing pending purchases (seller payout or buyer refund)

Routes should delegate to this service and handle HTTP responses.
"""

import logging
import math
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from models import db, StoreItem, StoreTransaction, User
from services.errors import (
    NotFoundError,
    InvalidStateError,
    InsufficientFundsError,
    ValidationError,
    StoreUnavailableError,
)
from services.ledger_service import LedgerService
from services.notification_service import NotificationService
from utils.timezone import utc_now

logger = logging.getLogger(__name__)


def _positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class StoreService:
    """Service for store items and purchases."""

    @staticmethod
    def get_item(item_id: int) -> StoreItem:
        """Get a store item by ID or raise NotFoundError."""
        item = db.session.get(StoreItem, item_id)
        if not item:
            raise NotFoundError(f'Store item {item_id} not found')
        return item

    @staticmethod
    def get_transaction(transaction_id: int) -> StoreTransaction:
        """Get a transaction by ID or raise NotFoundError."""
        transaction = db.session.get(StoreTransaction, transaction_id)
        if not transaction:
            raise NotFoundError(f'Transaction {transaction_id} not found')
        return transaction

    @staticmethod
    def create_item(creator_id: int, name: str, cost, description: Optional[str] = None) -> StoreItem:
        if not name or not isinstance(name, str) or not name.strip():
            raise ValidationError('Name is required')
        if not _positive_int(cost):
            raise ValidationError('Cost must be a positive number')

        item = StoreItem(
            name=name.strip(),
            description=description,
            cost=cost,
            created_by=creator_id
        )
        db.session.add(item)
        db.session.commit()

        logger.info(f"Store item {item.id} created by user {creator_id}")
        return item

    @staticmethod
    def update_item(item_id: int, data: dict) -> StoreItem:
        item = StoreService.get_item(item_id)

        if 'name' in data:
            name = data['name']
            if not name or not isinstance(name, str) or not name.strip():
                raise ValidationError('Name is required')
            item.name = name.strip()
        if 'description' in data:
            item.description = data['description']
        if 'cost' in data:
            if not _positive_int(data['cost']):
                raise ValidationError('Cost must be a positive number')
            item.cost = data['cost']
        if 'is_active' in data:
            item.is_active = bool(data['is_active'])

        db.session.commit()
        return item

    @staticmethod
    def list_items(include_inactive: bool = False) -> list[StoreItem]:
        query = StoreItem.query
        if not include_inactive:
            query = query.filter(StoreItem.is_active.is_(True))
        return query.order_by(StoreItem.cost.asc(), StoreItem.id.asc()).all()

    @staticmethod
    def purchase(item_id: int, buyer_id: int) -> StoreTransaction:
        """Buy a store item.

        The bounty debit and the PENDING transaction are committed together.

        Args:
            item_id: ID of the item to buy
            buyer_id: ID of the buying user

        Returns:
            The created StoreTransaction

        Raises:
            NotFoundError: Item or buyer not found
            InvalidStateError: Item is not active
            InsufficientFundsError: Buyer cannot afford the item
            StoreUnavailableError: Database failure, nothing was applied
        """
        item = StoreService.get_item(item_id)
        if not item.is_active:
            raise InvalidStateError('Store item is not available')

        if not db.session.get(User, buyer_id):
            raise NotFoundError(f'User {buyer_id} not found')

        try:
            LedgerService.debit(buyer_id, item.cost)

            transaction = StoreTransaction(
                item_id=item.id,
                buyer_id=buyer_id,
                seller_id=item.created_by,
                amount=item.cost,
                status='PENDING'
            )
            db.session.add(transaction)
            db.session.commit()
        except InsufficientFundsError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to purchase item {item_id} for user {buyer_id}: {e}", exc_info=True)
            raise StoreUnavailableError('Failed to complete purchase, no changes were applied') from e

        logger.info(f"User {buyer_id} purchased item {item_id} for {item.cost} bounty")

        NotificationService.store_purchase(buyer_id, item.id, item.name, item.cost, transaction.id)

        return transaction

    @staticmethod
    def process_transaction(transaction_id: int, processor_id: int, status: str,
                            notes: Optional[str] = None) -> StoreTransaction:
        """Approve or reject a pending purchase.

        Approval pays the amount to the seller, rejection refunds the buyer.

        Raises:
            NotFoundError: Transaction not found
            InvalidStateError: Status is not APPROVED/REJECTED, or the
                transaction was already processed
        """
        if status not in ('APPROVED', 'REJECTED'):
            raise InvalidStateError('Status must be APPROVED or REJECTED')

        transaction = StoreService.get_transaction(transaction_id)
        if transaction.status != 'PENDING':
            raise InvalidStateError('Transaction is not pending')

        try:
            result = db.session.execute(
                update(StoreTransaction)
                .where(StoreTransaction.id == transaction_id, StoreTransaction.status == 'PENDING')
                .values(status=status, notes=notes, processed_by=processor_id, processed_at=utc_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidStateError('Transaction is not pending')

            if status == 'APPROVED':
                LedgerService.credit(transaction.seller_id, transaction.amount)
            else:
                LedgerService.credit(transaction.buyer_id, transaction.amount)

            db.session.commit()
        except (InvalidStateError, NotFoundError):
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to process transaction {transaction_id}: {e}", exc_info=True)
            raise StoreUnavailableError('Failed to process transaction, no changes were applied') from e

        db.session.refresh(transaction)
        item = transaction.item

        logger.info(f"Transaction {transaction_id} {status.lower()} by user {processor_id}")

        if status == 'APPROVED':
            NotificationService.store_approved(transaction.buyer_id, item.id, item.name, transaction.id)
        else:
            NotificationService.store_rejected(transaction.buyer_id, item.id, item.name, transaction.id, notes)

        return transaction

    @staticmethod
    def list_pending_transactions(page: int = 1, limit: int = 10) -> dict:
        query = StoreTransaction.query.filter(StoreTransaction.status == 'PENDING')
        return StoreService._page(query.order_by(StoreTransaction.created_at.asc()), page, limit)

    @staticmethod
    def list_user_purchases(user_id: int, page: int = 1, limit: int = 10) -> dict:
        query = StoreTransaction.query.filter(StoreTransaction.buyer_id == user_id)
        return StoreService._page(
            query.order_by(StoreTransaction.created_at.desc(), StoreTransaction.id.desc()), page, limit
        )

    @staticmethod
    def _page(query, page: int, limit: int) -> dict:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        total = query.count()
        transactions = query.offset((page - 1) * limit).limit(limit).all()
        return {
            'transactions': [t.to_dict() for t in transactions],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': math.ceil(total / limit)
            }
        }
