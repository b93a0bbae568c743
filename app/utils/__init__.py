"""
Utilities Package

Shared helper functions used across the application.
"""

from app.utils.helpers import (
    get_request_scope,
    get_json_body,
    parse_int_arg,
    parse_bool_arg,
)

__all__ = [
    'get_request_scope',
    'get_json_body',
    'parse_int_arg',
    'parse_bool_arg',
]
