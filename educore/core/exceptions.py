from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed input that pydantic could not catch (400)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ForbiddenError(ServiceError):
    """Cross-tenant access."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class ConflictError(ServiceError):
    """Duplicate record or a state that forbids the operation (e.g. invoice already paid)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
