"""
Service-level exceptions
Raised by services and translated to HTTP responses by the routes
"""

from fastapi import HTTPException


class AIMarkerError(Exception):
    """Base exception for service errors"""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(AIMarkerError):
    status_code = 400


class DuplicateUserError(AIMarkerError):
    """Email or username already registered"""
    status_code = 409


class InvalidCredentialsError(AIMarkerError):
    status_code = 401


class TokenExpiredError(AIMarkerError):
    status_code = 401


class InvalidTokenError(AIMarkerError):
    status_code = 401


class PermissionDeniedError(AIMarkerError):
    status_code = 403


class NotFoundError(AIMarkerError):
    status_code = 404


class UpstreamError(AIMarkerError):
    """Non-2xx answer from an AI provider"""

    def __init__(self, provider: str, status_code: int, body: str):
        super().__init__(f"{provider} API Error ({status_code}): {body}")
        self.provider = provider
        self.status_code = status_code
        self.body = body


def to_http_exception(error: AIMarkerError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
