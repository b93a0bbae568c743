"""
Advisory Billing - Application Package

This package contains the modular backend structure:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared request helpers

The app factory and core Flask setup remain in app_init.py at the project root.
Business logic lives in the services/ package and fee_calculations.py.
"""

import logging

logger = logging.getLogger(__name__)

# Import blueprints
from app.api.fees import fees_bp
from app.api.meetings import meetings_bp


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from the app factory after infrastructure setup.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(fees_bp)
    app.register_blueprint(meetings_bp)

    logger.info("API blueprints registered: fees, meetings")


__all__ = ['register_blueprints', 'fees_bp', 'meetings_bp']
