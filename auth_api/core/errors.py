# auth_api/core/errors.py
from fastapi import status


class AuthError(Exception):
    """Base for errors raised on purpose by the services.

    Each subclass carries a stable machine-readable ``code`` and the HTTP
    status it maps to at the API boundary.
    """

    code = "AUTH_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid input."


class ConflictError(AuthError):
    code = "EMAIL_TAKEN"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A user with this email already exists."


class UnauthenticatedError(AuthError):
    code = "UNAUTHENTICATED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials."


class UnverifiedEmailError(AuthError):
    code = "EMAIL_NOT_VERIFIED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Email address has not been verified."


class InvalidTokenError(AuthError):
    code = "INVALID_TOKEN"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired token."


class ExpiredError(AuthError):
    code = "TOKEN_EXPIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token has expired."


class NotFoundError(AuthError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class BadRequestError(AuthError):
    code = "BAD_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST


class AlreadyVerifiedError(AuthError):
    code = "ALREADY_VERIFIED"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Email address is already verified."


class ForbiddenError(AuthError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient role."
