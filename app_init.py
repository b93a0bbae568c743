"""
Application Initialization Module
Properly initializes Flask app with all infrastructure components
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from database.connection import configure_database, init_db
from services.fee_schedule_repository import CONFLICT_POLICIES
import logging

logger = logging.getLogger(__name__)


def create_app(config_name=None, config_overrides=None):
    """
    Application factory that creates and configures Flask app with all infrastructure

    Args:
        config_name: Configuration name (development, production, testing);
            defaults to FLASK_ENV
        config_overrides: Optional dict applied on top of the configuration

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    if app.config['FEE_SCHEDULE_CONFLICT_POLICY'] not in CONFLICT_POLICIES:
        raise RuntimeError(
            f"FEE_SCHEDULE_CONFLICT_POLICY must be one of {CONFLICT_POLICIES}, "
            f"got {app.config['FEE_SCHEDULE_CONFLICT_POLICY']!r}"
        )

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing Advisory Billing Service")
    logger.info("=" * 60)
    logger.info(f"Environment: {config_name or os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    initialize_database(app)

    # Register health check endpoints
    register_health_checks(app)

    from app import register_blueprints
    register_blueprints(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_database(app):
    """
    Point the database layer at the configured URL and create tables if allowed

    Args:
        app: Flask application instance
    """
    engine = configure_database(app.config['DATABASE_URL'])
    logger.info(f"Database backend: {engine.url.get_backend_name()}")

    if app.config.get('AUTO_CREATE_TABLES'):
        init_db()
    else:
        logger.info("Skipping table creation; run 'alembic upgrade head' to manage the schema")
