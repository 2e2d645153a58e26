"""Tests for the bounty store."""

import pytest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from models import User, StoreTransaction, Notification
from services.errors import InsufficientFundsError, InvalidStateError, NotFoundError, StoreUnavailableError
from services.store_service import StoreService


class TestPurchase:

    def test_purchase_debits_and_creates_pending_transaction(self, db_session, store_item, player_user):
        transaction = StoreService.purchase(store_item.id, player_user.id)

        assert transaction.status == 'PENDING'
        assert transaction.amount == 30
        assert transaction.seller_id == store_item.created_by
        assert db_session.get(User, player_user.id).bounty_balance == 20

        notification = Notification.query.filter_by(user_id=player_user.id, type='STORE_PURCHASE').one()
        assert notification.data['transaction_id'] == transaction.id

    def test_insufficient_funds(self, db_session, store_item, player_user_2):
        with pytest.raises(InsufficientFundsError) as exc_info:
            StoreService.purchase(store_item.id, player_user_2.id)

        assert exc_info.value.details == {'required': 30, 'current': 0}
        assert StoreTransaction.query.count() == 0

    def test_inactive_item(self, db_session, store_item, player_user):
        store_item.is_active = False
        db_session.commit()

        with pytest.raises(InvalidStateError):
            StoreService.purchase(store_item.id, player_user.id)

    def test_missing_item(self, db_session, player_user):
        with pytest.raises(NotFoundError):
            StoreService.purchase(9999, player_user.id)

    def test_store_failure_keeps_balance(self, db_session, store_item, player_user):
        with patch('services.store_service.StoreTransaction',
                   side_effect=OperationalError('INSERT', {}, Exception('disk full'))):
            with pytest.raises(StoreUnavailableError):
                StoreService.purchase(store_item.id, player_user.id)

        assert db_session.get(User, player_user.id).bounty_balance == 50


class TestProcessTransaction:

    @pytest.fixture
    def pending(self, db_session, store_item, player_user):
        return StoreService.purchase(store_item.id, player_user.id)

    def test_approve_pays_seller(self, db_session, pending, editor_user, admin_user, player_user):
        transaction = StoreService.process_transaction(pending.id, admin_user.id, 'APPROVED')

        assert transaction.status == 'APPROVED'
        assert transaction.processed_by == admin_user.id
        assert db_session.get(User, editor_user.id).bounty_balance == 30
        assert db_session.get(User, player_user.id).bounty_balance == 20
        assert Notification.query.filter_by(user_id=player_user.id, type='STORE_APPROVED').count() == 1

    def test_reject_refunds_buyer(self, db_session, pending, editor_user, admin_user, player_user):
        transaction = StoreService.process_transaction(pending.id, admin_user.id, 'REJECTED', 'Out of stock')

        assert transaction.status == 'REJECTED'
        assert transaction.notes == 'Out of stock'
        assert db_session.get(User, player_user.id).bounty_balance == 50
        assert db_session.get(User, editor_user.id).bounty_balance == 0

        notification = Notification.query.filter_by(user_id=player_user.id, type='STORE_REJECTED').one()
        assert 'Out of stock' in notification.message

    def test_already_processed(self, db_session, pending, admin_user):
        StoreService.process_transaction(pending.id, admin_user.id, 'APPROVED')

        with pytest.raises(InvalidStateError, match='not pending'):
            StoreService.process_transaction(pending.id, admin_user.id, 'REJECTED')

    def test_invalid_status(self, db_session, pending, admin_user):
        with pytest.raises(InvalidStateError):
            StoreService.process_transaction(pending.id, admin_user.id, 'MAYBE')


class TestStoreRoutes:

    def test_list_items(self, client, store_item, player_headers):
        response = client.get('/api/store/items', headers=player_headers)

        assert response.status_code == 200
        assert [i['name'] for i in response.get_json()['items']] == ['Movie night']

    def test_create_item(self, client, editor_headers, player_headers):
        response = client.post('/api/store/items', headers=editor_headers, json={'name': 'Late bedtime', 'cost': 15})
        assert response.status_code == 201

        response = client.post('/api/store/items', headers=player_headers, json={'name': 'Free', 'cost': 1})
        assert response.status_code == 403

    def test_purchase_and_process(self, client, store_item, player_headers, editor_headers):
        response = client.post(f'/api/store/items/{store_item.id}/purchase', headers=player_headers)
        assert response.status_code == 201
        data = response.get_json()
        assert data['new_balance'] == 20
        transaction_id = data['transaction']['id']

        response = client.get('/api/store/transactions/pending', headers=editor_headers)
        assert [t['id'] for t in response.get_json()['transactions']] == [transaction_id]

        response = client.post(f'/api/store/transactions/{transaction_id}/process', headers=editor_headers,
                               json={'status': 'APPROVED'})
        assert response.status_code == 200
        assert response.get_json()['transaction']['status'] == 'APPROVED'

        response = client.get('/api/store/purchases', headers=player_headers)
        assert response.get_json()['transactions'][0]['item_name'] == 'Movie night'

    def test_purchase_insufficient_funds(self, client, store_item, db_session, player_user, player_headers):
        player_user.bounty_balance = 10
        db_session.commit()

        response = client.post(f'/api/store/items/{store_item.id}/purchase', headers=player_headers)

        assert response.status_code == 400
        assert response.get_json()['details'] == {'required': 30, 'current': 10}
