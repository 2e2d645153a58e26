"""Pytest configuration and fixtures for Quest Board tests."""

import pytest
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path so we can import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app import create_app
from models import db, User, Quest, StoreItem
from utils.timezone import utc_now


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing."""
    app = create_app('testing')

    # Create database tables
    with app.app_context():
        db.create_all()

    yield app

    # Clean up
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for making requests."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for tests."""
    with app.app_context():
        yield db.session


@pytest.fixture
def job_scheduler(app, db_session):
    """The app's job scheduler (never started in tests)."""
    from scheduler import get_scheduler
    return get_scheduler(app)


@pytest.fixture
def admin_user(db_session):
    """Create an admin user for testing."""
    user = User(auth_id='admin-001', name='Test Admin', role='ADMIN')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def editor_user(db_session):
    """Create an editor user for testing."""
    user = User(auth_id='editor-001', name='Test Editor', role='EDITOR')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def player_user(db_session):
    """Create a player with some bounty for testing."""
    user = User(auth_id='player-001', name='Test Player', role='PLAYER', bounty_balance=50)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def player_user_2(db_session):
    """Create a second player for testing."""
    user = User(auth_id='player-002', name='Test Player 2', role='PLAYER')
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin_headers(admin_user):
    return {'X-Auth-User': admin_user.auth_id}


@pytest.fixture
def editor_headers(editor_user):
    return {'X-Auth-User': editor_user.auth_id}


@pytest.fixture
def player_headers(player_user):
    return {'X-Auth-User': player_user.auth_id}


@pytest.fixture
def available_quest(db_session, admin_user):
    """Create an available quest."""
    quest = Quest(
        title='Clean the garage',
        description='Sweep and sort the shelves',
        bounty=20,
        status='AVAILABLE',
        created_by=admin_user.id
    )
    db_session.add(quest)
    db_session.commit()
    return quest


@pytest.fixture
def claimed_quest(db_session, admin_user, player_user):
    """Create a quest claimed by player_user an hour ago."""
    quest = Quest(
        title='Wash the car',
        bounty=15,
        status='CLAIMED',
        created_by=admin_user.id,
        claimed_by=player_user.id,
        claimed_at=utc_now() - timedelta(hours=1)
    )
    db_session.add(quest)
    db_session.commit()
    return quest


@pytest.fixture
def completed_quest(db_session, admin_user, player_user):
    """Create a non-repeatable quest completed by player_user."""
    now = utc_now()
    quest = Quest(
        title='Paint the fence',
        bounty=500,
        status='COMPLETED',
        created_by=admin_user.id,
        claimed_by=player_user.id,
        claimed_at=now - timedelta(hours=3),
        completed_at=now - timedelta(hours=1)
    )
    db_session.add(quest)
    db_session.commit()
    return quest


@pytest.fixture
def repeatable_completed_quest(db_session, admin_user, player_user):
    """Create a repeatable quest (7 day cooldown) completed by player_user."""
    now = utc_now()
    quest = Quest(
        title='Water the plants',
        bounty=10,
        status='COMPLETED',
        created_by=admin_user.id,
        claimed_by=player_user.id,
        claimed_at=now - timedelta(hours=2),
        completed_at=now - timedelta(hours=1),
        is_repeatable=True,
        cooldown_days=7
    )
    db_session.add(quest)
    db_session.commit()
    return quest


@pytest.fixture
def cooldown_quest(db_session, admin_user):
    """Create a repeatable quest cooling down since two days ago."""
    quest = Quest(
        title='Take out recycling',
        bounty=5,
        status='COOLDOWN',
        created_by=admin_user.id,
        is_repeatable=True,
        cooldown_days=7,
        last_completed_at=utc_now() - timedelta(days=2)
    )
    db_session.add(quest)
    db_session.commit()
    return quest


@pytest.fixture
def store_item(db_session, editor_user):
    """Create an active store item sold by editor_user."""
    item = StoreItem(
        name='Movie night',
        description='Pick the movie',
        cost=30,
        created_by=editor_user.id
    )
    db_session.add(item)
    db_session.commit()
    return item
