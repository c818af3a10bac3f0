"""
Error types raised by the escrow core.

Every error carries the HTTP status the API answers with and a human-readable
message; the handlers in ``main`` turn them into ``{"error": message}`` bodies.
"""

from typing import Optional


class EscrowError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputValidationError(EscrowError):
    """Missing or malformed input; nothing was written."""
    status_code = 400


class StateConflictError(EscrowError):
    """The action is not legal in the transaction's current status."""
    status_code = 400


class AuthorizationError(EscrowError):
    status_code = 403


class NotFoundError(EscrowError):
    status_code = 404


class SignatureError(EscrowError):
    status_code = 401


class GatewayError(EscrowError):
    """The payment provider refused or could not be reached."""
    status_code = 400


class StoreError(EscrowError):
    status_code = 500
