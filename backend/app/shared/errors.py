class DomainError(Exception):
    """Base domain error with a user-facing message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(DomainError):
    """Raised when submitted fields are missing or invalid."""


class NotFoundError(DomainError):
    """Raised when a required entity is missing."""


class NoCurrentUserError(DomainError):
    """Raised when a mutating operation is attempted without an identity."""


class PermissionDenied(DomainError):
    """Raised when the user has insufficient permissions."""


class InvalidTransition(DomainError):
    """Raised when the purchase request is not in a state that allows the action."""


class ConflictError(DomainError):
    """Raised when a concurrent write claimed the same unique value first."""
