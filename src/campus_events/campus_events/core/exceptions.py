class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class PrerequisiteError(ValidationError):
    """Raised when a required earlier step (registration, attendance, time window) is missing."""


class DuplicateRecordError(ValidationError):
    """Raised when a (user, event) pair or another unique key already exists."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""
