"""Custom exception classes for the land records core."""


class LandRecordsError(Exception):
    """Base exception for the land records core."""

    status_code = 400

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class UnauthorizedError(LandRecordsError):
    """Raised when there is no valid actor session."""
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(LandRecordsError):
    """Raised when the actor lacks permission or an invariant forbids the operation."""
    status_code = 403

    def __init__(self, message: str = "Not permitted"):
        super().__init__(message)


class ImmutableRecordError(ForbiddenError):
    """Raised when code tries to update or delete an append-only row."""
    pass


class NotFoundError(LandRecordsError):
    """Raised when a referenced role, workflow, actor or entity does not exist."""
    status_code = 404


class ConflictError(LandRecordsError):
    """Raised on a uniqueness or state invariant violation."""
    status_code = 409


class InvalidArgumentError(LandRecordsError):
    """Raised when input is malformed."""
    status_code = 422


class TransactionFailureError(LandRecordsError):
    """Raised when a store transaction aborts. The operation did not happen."""
    status_code = 500

    def __init__(self, message: str = "The operation could not be completed"):
        super().__init__(message)
