# research_chat/errors.py
import enum

from fastapi import HTTPException, status


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    WRONG_AUTH_METHOD = "wrong_auth_method"
    RESEARCH_FAILED = "research_failed"


class ChatAppError(Exception):
    """Base for failures a caller can tell apart by ``code``."""

    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ChatAppError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class AccessDeniedError(ChatAppError):
    # answered like a missing row so ownership does not leak existence
    code = ErrorCode.ACCESS_DENIED
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Conversation not found or access denied"):
        super().__init__(message)


class ConflictError(ChatAppError):
    code = ErrorCode.CONFLICT
    status_code = status.HTTP_409_CONFLICT


class InvalidCredentialsError(ChatAppError):
    code = ErrorCode.INVALID_CREDENTIALS
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class AccountDeactivatedError(ChatAppError):
    code = ErrorCode.ACCOUNT_DEACTIVATED
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "User account is deactivated"):
        super().__init__(message)


class WrongAuthMethodError(ChatAppError):
    code = ErrorCode.WRONG_AUTH_METHOD
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "This account uses Google sign-in. Please use Google to login."):
        super().__init__(message)


class ResearchFailedError(ChatAppError):
    code = ErrorCode.RESEARCH_FAILED
    status_code = status.HTTP_502_BAD_GATEWAY


def http_error(exc: ChatAppError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"code": exc.code.value, "message": exc.message},
    )
