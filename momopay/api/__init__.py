"""
API Blueprints Package
Registers all API blueprints
"""

from momopay.api.payments import payments_bp
from momopay.api.admin import admin_bp
from momopay.api.health import health_bp

# Export blueprints
__all__ = [
    'payments_bp',
    'admin_bp',
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
    app.register_blueprint(admin_bp, url_prefix=f'{url_base}/admin')
    app.register_blueprint(health_bp, url_prefix=url_base)
