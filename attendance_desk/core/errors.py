from __future__ import annotations


class ServiceError(Exception):
    """Base for failures a handler turns into a JSON ``{"error": ...}`` body."""

    status_code = 500

    def __init__(self, message: str = '') -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError, ValueError):
    status_code = 400


class AuthError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409
