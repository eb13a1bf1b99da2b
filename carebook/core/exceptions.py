from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base for errors rendered to clients as ``{"error": <detail>}``."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class AuthenticationError(AppError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"

    def __init__(self, detail: str = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(AppError):
    status_code_default = status.HTTP_403_FORBIDDEN
    default_detail = "Not enough permissions"


class NotFoundError(AppError):
    status_code_default = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class StateError(AppError):
    """Illegal appointment lifecycle transition."""

    status_code_default = status.HTTP_409_CONFLICT
    default_detail = "Invalid status transition"


class RateLimitError(AppError):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many requests. Please try again later."


class InternalError(AppError):
    """Store or identity-provider failure. Detail must be safe to show."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"


def describe_validation_error(exc) -> str:
    """Message for the first violation in a pydantic or request validation error."""
    errors = exc.errors()
    if not errors:
        return ValidationError.default_detail
    error = errors[0]
    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", ValidationError.default_detail)
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}" if field else message
