"""
Helper utility functions for request handling and common tasks.
"""

from flask import current_app, request

from errors import ValidationError
from validators import validate_number_range


def get_request_scope():
    """
    Organization and acting user for the current request.

    Returns:
        Tuple of (organization_id, user_id). The organization falls back to
        DEFAULT_ORGANIZATION_ID; the user may be None.
    """
    organization_id = (request.headers.get('X-Organization-Id') or '').strip()
    user_id = (request.headers.get('X-User-Id') or '').strip()
    return (
        organization_id or current_app.config['DEFAULT_ORGANIZATION_ID'],
        user_id or None
    )


def get_json_body():
    """Request JSON body, or an empty dict when none was sent."""
    data = request.get_json(silent=True)
    return {} if data is None else data


def parse_int_arg(name, default=None, minimum=0, maximum=None):
    """
    Read an integer query parameter.

    Raises:
        ValidationError: If the value is not an integer within range
    """
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)
    is_valid, error = validate_number_range(value, minimum, maximum)
    if not is_valid:
        raise ValidationError(f"Invalid {name}: {error}", field=name)
    return value


def parse_bool_arg(name, default=False):
    """Read a true/false query parameter."""
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    return raw.lower() in ('true', '1', 'yes')
