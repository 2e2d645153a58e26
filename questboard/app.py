"""Quest Board Flask application - Main entry point."""

import os
import sys
import logging
from pathlib import Path
from flask import Flask, jsonify, request, g
from flask_migrate import Migrate
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

# Import db from models (models.py creates the SQLAlchemy instance)
from models import db
from auth import AUTH_HEADER
from services.errors import QuestBoardError

logger = logging.getLogger(__name__)

# Initialize Flask-Migrate
migrate = Migrate()


def create_app(config_name=None):
    """Application factory pattern for Flask app creation."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    from config import config
    app.config.from_object(config[config_name])

    # Ensure data directory exists (skip for in-memory or external databases)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and \
            app.config['SQLALCHEMY_DATABASE_URI'] != "sqlite:///:memory:":
        data_dir = Path(app.config['DATA_DIR'])
        data_dir.mkdir(parents=True, exist_ok=True)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # ProxyFix handles reverse proxy headers (X-Forwarded-For, etc.)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # Register middleware
    register_middleware(app)

    # Register routes
    register_routes(app)

    # Register error handlers
    register_error_handlers(app)

    # Initialize background scheduler
    from scheduler import init_scheduler
    init_scheduler(app)

    return app


def register_middleware(app):
    """Register middleware for authentication and request processing."""

    @app.before_request
    def extract_auth_user():
        """Extract the authenticated user id forwarded by the identity layer."""
        auth_user = request.headers.get(AUTH_HEADER)
        g.auth_user_id = auth_user.strip() if auth_user and auth_user.strip() else None


def register_error_handlers(app):
    """Turn service errors raised outside a route's own handling into JSON."""

    @app.errorhandler(QuestBoardError)
    def handle_service_error(e):
        from routes import service_error_response
        return service_error_response(e)


def register_routes(app):
    """Register all application routes."""

    # Register blueprints
    from routes import quests_bp, jobs_bp, store_bp, notifications_bp, users_bp, skills_bp

    app.register_blueprint(quests_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(store_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(skills_bp)

    @app.route('/health')
    def health():
        """Health check endpoint for monitoring."""
        try:
            # Check database connectivity
            db.session.execute(text('SELECT 1'))
            db_status = 'healthy'
        except SQLAlchemyError as e:
            db.session.rollback()
            db_status = f'unhealthy: {str(e)}'

        from scheduler import get_scheduler
        job_scheduler = get_scheduler(app)

        return jsonify({
            'status': 'healthy' if db_status == 'healthy' else 'degraded',
            'database': db_status,
            'scheduler': 'running' if job_scheduler.running else 'stopped'
        })


if __name__ == '__main__':
    # Run development server
    create_app().run(host='0.0.0.0', port=8099, debug=True)
