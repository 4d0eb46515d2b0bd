from flask import Flask, jsonify
from flask_cors import CORS
from momopay.extensions import db, migrate, jwt, redis_client, celery_app
from momopay.extentions.celery_extention import init_celery
from momopay.config import config


def create_app(config_name='development'):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    redis_client.init_app(app)
    init_celery(celery_app, app)
    CORS(app)

    # Logging
    from momopay.utils.logger import configure_app_logging, RequestLogger
    configure_app_logging(app)
    RequestLogger(app)

    # Register models with the metadata
    from momopay import models  # noqa: F401

    # Register blueprints
    from momopay.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Register error handlers"""
    from momopay.errors import AppError

    @app.errorhandler(AppError)
    def handle_app_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'success': False, 'error': 'Bad request', 'message': str(error)}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({'success': False, 'error': 'Unauthorized', 'message': str(error)}), 401

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Not found', 'message': str(error)}), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error', 'message': str(error)}), 500
