"""
Billing Error Types
Exceptions raised by the fee calculation and fee schedule services.

Each error carries the HTTP status the API layer should answer with and
serializes to the same JSON shape as the rest of the API responses.
"""
from typing import Any, Dict, Optional


class BillingError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'success': False,
            'error': self.message,
        }
        if self.field:
            body['field'] = self.field
        return body


class ValidationError(BillingError):
    """Malformed input: negative amount, empty tier list, non-contiguous tiers"""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message, field)
        self.index = index

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.index is not None:
            body['tier_index'] = self.index
        return body


class NotFoundError(BillingError):
    """Requested record does not exist in the caller's organization"""
    status_code = 404


class ConflictError(BillingError):
    """An active fee schedule already exists for the entity"""
    status_code = 409
