# ABOUTME: Custom exception hierarchy for OwnerLedger
# ABOUTME: Provides structured error handling for backend access and report building


class OwnerLedgerError(Exception):
    """Base exception for all OwnerLedger errors."""


class ConfigurationError(OwnerLedgerError):
    """Required backend settings are missing from the environment."""


class AuthenticationError(OwnerLedgerError):
    """Failed to authenticate with the backend."""


class SessionExpiredError(AuthenticationError):
    """Access token expired or rejected, re-auth needed."""


class CredentialsNotFoundError(AuthenticationError):
    """Credentials not found in environment or 1Password."""


class BusinessNotFoundError(OwnerLedgerError):
    """The signed-in user owns no business matching the request."""


class ValidationError(OwnerLedgerError):
    """Invalid input provided to a tool."""


class InvalidRecordError(OwnerLedgerError):
    """A fetched payment or expense row violates the record contract."""

    def __init__(self, record_id: str | None, reason: str) -> None:
        super().__init__(f"Invalid record {record_id!r}: {reason}")
        self.record_id = record_id
        self.reason = reason


class APIError(OwnerLedgerError):
    """Unexpected error from the backend API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(APIError):
    """Too many requests to the backend API."""
