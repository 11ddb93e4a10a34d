from flask import Flask, jsonify
from flask_cors import CORS
from jenga_gateway.extensions import db, migrate, jwt, redis_client
from jenga_gateway.config import config


def create_app(config_name='development', payment_adapter=None, hash_verifier=None):
    """
    Application factory pattern

    Args:
        config_name: Key into jenga_gateway.config.config
        payment_adapter: Host application's PaymentEntityAdapter, if it has Payment records
        hash_verifier: Optional callable(payload, hash) -> bool for callback hashes
    """
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    redis_client.init_app(app)
    CORS(app)

    from jenga_gateway.settings import JengaSettings
    from jenga_gateway.services.settings_service import SettingsStore
    app.extensions['jenga'] = {
        'settings': SettingsStore(JengaSettings.from_config(app.config)),
        'payment_adapter': payment_adapter,
        'hash_verifier': hash_verifier,
    }

    from jenga_gateway.utils.logger import configure_app_logging, RequestLogger
    configure_app_logging(app)
    RequestLogger(app)

    # Register blueprints
    from jenga_gateway.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Register error handlers"""
    from jenga_gateway.errors import AppError

    @app.errorhandler(AppError)
    def app_error(error):
        if error.status_code >= 500:
            app.logger.error(f'{error.error}: {error.message}')
        return jsonify({'success': False, 'error': error.error, 'message': error.message}), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'message': str(error)}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({'error': 'Unauthorized', 'message': str(error)}), 401

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'message': str(error)}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'message': str(error)}), 500
