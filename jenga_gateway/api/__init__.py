"""
API Blueprints Package
Registers all API blueprints
"""

from jenga_gateway.api.payments import payments_bp
from jenga_gateway.api.callbacks import callbacks_bp
from jenga_gateway.api.settings import settings_bp
from jenga_gateway.api.health import health_bp

__all__ = [
    'payments_bp',
    'callbacks_bp',
    'settings_bp',
    'health_bp',
    'register_blueprints'
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app

    Args:
        app: Flask application instance
    """

    url_base : str = '/api/v1'

    app.register_blueprint(payments_bp, url_prefix=f'{url_base}/payments')
    app.register_blueprint(callbacks_bp, url_prefix=f'{url_base}/jenga')
    app.register_blueprint(settings_bp, url_prefix=f'{url_base}/jenga')
    app.register_blueprint(health_bp, url_prefix=url_base)
