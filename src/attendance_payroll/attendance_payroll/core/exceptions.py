class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class ConflictError(DomainError):
    """Raised when an operation is not allowed in the record's current state."""


class ConcurrencyError(ConflictError):
    """Raised when a record changed between read and write (version mismatch)."""
