"""Error types raised by the ledger, scheduler, directory and store layers."""


class ClinicDeskError(Exception):
    """Base class for errors the front desk shows to the user."""
    pass


class ValidationError(ClinicDeskError):
    """Raised when a required field is missing or malformed.

    Always raised before any store call is attempted.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class PersistenceError(ClinicDeskError):
    """Raised when a store read or write fails (including network failures)."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class VerificationError(ClinicDeskError):
    """Raised when the store reported a delete but the record is still there."""
    pass
