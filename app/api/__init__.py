"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Billing:
- fees.py     : Fee schedules, fee calculation, fee history (/api/allocations/*)

Meetings:
- meetings.py : Meeting notes, summaries, action-item tasks (/api/meetings/*)

Health and monitoring routes live in health_checks.py at the project root.
"""

# All blueprints are imported and registered in app/__init__.py
# This file serves as documentation only

__all__ = []
