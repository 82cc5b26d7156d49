"""
Error taxonomy for credential operations.

Messages carried by these exceptions are safe to show to callers. Internal
detail (driver errors, SQL) is logged where the failure is caught and never
attached to the exception text.
"""


class CredentialError(Exception):
    """Base class for all credential lifecycle errors."""

    default_message = "Credential operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(CredentialError):
    """
    Presented credential is wrong, expired or already consumed.

    Deliberately carries one message for every cause so callers cannot be
    used as an oracle.
    """

    default_message = "unauthorized"


class NotFound(CredentialError):
    """Referenced user or credential record does not exist."""

    default_message = "Not found"


class PersistenceError(CredentialError):
    """The backing store failed to read or write."""

    default_message = "Database error"


class EntropySourceError(CredentialError):
    """The secure random source is unavailable. Never retried with a weaker one."""

    default_message = "Secure random source unavailable"


class HashingError(CredentialError):
    """Password hashing failed or a stored hash record is malformed."""

    default_message = "Password hashing failed"
