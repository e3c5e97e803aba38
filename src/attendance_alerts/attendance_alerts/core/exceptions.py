class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a staff member, facility, record or alert is missing or inactive."""


class ConflictError(DomainError):
    """Raised on duplicate check-in/out or another idempotency violation."""


class InvalidTransitionError(ConflictError):
    """Raised when an alert status change is not allowed by the state machine."""


class AuthenticationError(DomainError):
    """Raised when biometric verification fails."""


class RateLimitError(DomainError):
    """Raised when verification attempts are exhausted for the current window."""


class ExternalServiceError(DomainError):
    """Raised by gateways/directory/publish adapters.

    Always recovered locally by the caller; never surfaced as the failure of a
    core operation.
    """
