"""
WSGI Entry Point for Gunicorn

This module provides the WSGI application entry point for production deployment:
  gunicorn wsgi:app

Configuration is selected by the FLASK_ENV environment variable.
"""

from app_init import create_app

app = create_app()
