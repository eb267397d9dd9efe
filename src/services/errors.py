"""Custom exception classes for bill computation and generation.

Each error carries an HTTP-style status class so the transport layer can
classify it as bad input (400), not found (404) or internal failure (500).
"""


class BillingError(Exception):
    """Base exception for billing errors."""

    http_status = 500
    code = "billing_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BillingError):
    """Invalid input: malformed billing month, negative consumption, etc."""

    http_status = 400
    code = "validation_error"


class ConflictError(BillingError):
    """Bills already exist for the requested period."""

    http_status = 400
    code = "conflict"

    def __init__(self, message: str, existing_count: int = 0):
        self.existing_count = existing_count
        super().__init__(message)


class NotFoundError(BillingError):
    """Tenant, tenant settings or active units not found."""

    http_status = 404
    code = "not_found"


class ComputationError(BillingError):
    """Unexpected failure during calculation or persistence (rolled back)."""

    http_status = 500
    code = "computation_error"


__all__ = [
    "BillingError",
    "ComputationError",
    "ConflictError",
    "NotFoundError",
    "ValidationError",
]
