"""Custom exceptions for the ledger backend."""


class LoginGuardError(Exception):
    """Base class for login throttling outcomes."""

    def __init__(self, identity: str, message: str):
        self.identity = identity
        super().__init__(message)


class TooManyAttemptsError(LoginGuardError):
    """Raised when an identity is locked out and the cooldown is still running."""

    def __init__(self, identity: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(identity, f"Too many failed login attempts. Retry in {retry_after} seconds")


class InvalidCredentialsError(LoginGuardError):
    """Raised when the credential check rejects the password."""

    def __init__(self, identity: str, failure_count: int):
        self.failure_count = failure_count
        super().__init__(identity, "Wrong email or password")
