"""
API exceptions.

Every error the API reports on purpose is an ``APIException``; the handlers in
``skillhire.main`` render them as ``{"error": message}``.
"""
from typing import Any, Optional


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Any] = None,
    ):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        super().__init__(self.message)


class BadRequestException(APIException):
    """400 Bad Request"""

    def __init__(self, message: str = "Bad request", code: str = "BAD_REQUEST"):
        super().__init__(400, code, message)


class UnauthorizedException(APIException):
    """401 Unauthorized"""

    def __init__(self, message: str = "Unauthorized", code: str = "UNAUTHORIZED"):
        super().__init__(401, code, message)


class ForbiddenException(APIException):
    """403 Forbidden"""

    def __init__(self, message: str = "Forbidden", code: str = "FORBIDDEN"):
        super().__init__(403, code, message)


class NotFoundException(APIException):
    """404 Not Found"""

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(404, code, message)


class ConflictException(APIException):
    """409 Conflict"""

    def __init__(self, message: str = "Resource conflict", code: str = "CONFLICT"):
        super().__init__(409, code, message)


class SignatureInvalidException(APIException):
    """Webhook signature missing (400) or wrong (401)."""

    def __init__(self, message: str = "Invalid signature", status_code: int = 401):
        super().__init__(status_code, "INVALID_SIGNATURE", message)


class ExternalServiceException(APIException):
    """A provider call failed; the client only ever sees the generic message."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(500, "EXTERNAL_SERVICE_ERROR", "Internal server error")


# Resource specific exceptions
class JobNotFoundException(NotFoundException):
    def __init__(self):
        super().__init__(message="Job not found", code="JOB_NOT_FOUND")


class ApplicationNotFoundException(NotFoundException):
    def __init__(self):
        super().__init__(message="Application not found", code="APPLICATION_NOT_FOUND")


class UserNotFoundException(NotFoundException):
    def __init__(self):
        super().__init__(message="User not found", code="USER_NOT_FOUND")


class RoleChangeException(ConflictException):
    """A Person's role is fixed once assigned."""

    def __init__(self, existing_role: str):
        self.existing_role = existing_role
        super().__init__(
            message=(
                f"This account is registered as a {existing_role}. "
                f"Please use a different email or sign in as {existing_role}."
            ),
            code="ROLE_IMMUTABLE",
        )
