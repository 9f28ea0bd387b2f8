"""
Domain errors raised by the store, the ledger and the services.

Each error carries the HTTP status the API surfaces it with, so the web
layer needs a single handler and library callers can catch by type.
"""


class StorefrontError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(StorefrontError):
    status_code = 422


class NotFound(StorefrontError):
    status_code = 404


class InsufficientPoints(StorefrontError):
    status_code = 409

    def __init__(self, balance: int, required: int):
        super().__init__(f"insufficient points: balance {balance}, required {required}")
        self.balance = balance
        self.required = required


class AlreadyUsed(StorefrontError):
    status_code = 409


class IdempotencyConflict(StorefrontError):
    status_code = 409


class StoreUnavailable(StorefrontError):
    status_code = 503
