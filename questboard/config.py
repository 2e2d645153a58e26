"""Flask configuration for Quest Board."""

import os
from pathlib import Path


def _database_uri(data_dir: Path) -> str:
    return os.environ.get('DATABASE_URL') or f"sqlite:///{data_dir / 'questboard.db'}"


class Config:
    """Base configuration."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database settings
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = _database_uri(DATA_DIR)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # APScheduler settings
    SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'true').lower() == 'true'

    # Quest settings
    CLAIM_EXPIRY_HOURS = int(os.environ.get('CLAIM_EXPIRY_HOURS', '48'))

    # Notification sink (optional)
    NOTIFICATION_SINK_URL = os.environ.get('NOTIFICATION_SINK_URL')
    # Example: https://notify.example.com/questboard
    NOTIFICATION_SINK_TIMEOUT = int(os.environ.get('NOTIFICATION_SINK_TIMEOUT', '5'))

    # Application settings
    DEBUG = os.environ.get('DEBUG', 'false').lower() == 'true'
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    DATA_DIR = Path(__file__).parent / 'data'
    SQLALCHEMY_DATABASE_URI = _database_uri(DATA_DIR)
    # Keep scheduler running in development
    SCHEDULER_ENABLED = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    # Re-evaluate DATA_DIR and database URI to ensure environment variable is picked up
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = _database_uri(DATA_DIR)


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    # Disable scheduler during tests
    SCHEDULER_ENABLED = False
    NOTIFICATION_SINK_URL = None
    CLAIM_EXPIRY_HOURS = 48


# Config dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
