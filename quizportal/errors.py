from enum import Enum


class ErrorCode(str, Enum):
    INVALID_CREDENTIALS = "auth.invalid_credentials"
    ACCOUNT_LOCKED = "auth.account_locked"
    PERSISTENCE_FAILURE = "common.persistence_failure"


ERROR_CODE_TO_HTTP_STATUS = {
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.ACCOUNT_LOCKED: 423,
    ErrorCode.PERSISTENCE_FAILURE: 500,
}


class LoginError(Exception):
    """Base class for failures surfaced by the participant login flow."""

    code = ErrorCode.INVALID_CREDENTIALS
    message = "Login failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    @property
    def http_status(self) -> int:
        return ERROR_CODE_TO_HTTP_STATUS.get(self.code, 500)

    def to_dict(self):
        return {"error": self.message, "code": self.code.value}


class InvalidCredentials(LoginError):
    code = ErrorCode.INVALID_CREDENTIALS
    message = "Invalid username or password"


class AccountLocked(LoginError):
    code = ErrorCode.ACCOUNT_LOCKED
    message = "Account is temporarily locked due to too many failed attempts. Please try again later."


class PersistenceFailure(LoginError):
    code = ErrorCode.PERSISTENCE_FAILURE
    message = "Something went wrong while saving your login. Please try again."
