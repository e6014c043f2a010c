"""
Custom exception classes.

Every error carries a stable machine-readable ``kind`` and the HTTP status
code the boundary layer renders it with.
"""

import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ImageServerError(Exception):
    """Base exception class for the image server."""

    kind = "image_server_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None, kind: str = None):
        if status_code is not None:
            self.status_code = status_code
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.status_code, "message": self.message, "kind": self.kind}


class ConfigurationError(ImageServerError):
    """Raised at startup when components are configured incorrectly."""

    kind = "configuration_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ===========================================
# Authentication
# ===========================================


class AuthError(ImageServerError):
    """Base class for access token failures."""

    kind = "auth_error"
    status_code = status.HTTP_400_BAD_REQUEST


class MissingAccessTokenError(AuthError):
    kind = "missing_access_token"

    def __init__(self):
        super().__init__("Missing access token")


class IncorrectAccessTokenError(AuthError):
    kind = "incorrect_access_token"

    def __init__(self):
        super().__init__("Incorrect access token")


class UnknownPublicKeyError(AuthError):
    kind = "unknown_public_key"

    def __init__(self, public_key: str):
        self.public_key = public_key
        super().__init__(f"Unknown public key: {public_key}")


# ===========================================
# Collaborators
# ===========================================


class CollaboratorError(ImageServerError):
    """Failure reported by a storage or database adapter."""

    kind = "collaborator_error"


class StorageError(CollaboratorError):
    kind = "storage_error"


class DatabaseError(CollaboratorError):
    kind = "database_error"


# ===========================================
# Resources
# ===========================================


class ResourceError(ImageServerError):
    """Raised by a resource's core handler."""

    kind = "resource_error"


class ImageNotFoundError(ResourceError):
    kind = "image_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, public_key: str, image_identifier: str):
        self.public_key = public_key
        self.image_identifier = image_identifier
        super().__init__(f"Image not found: {public_key}/{image_identifier}")


class MethodNotAllowedError(ResourceError):
    kind = "method_not_allowed"
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED

    def __init__(self, resource: str, method: str):
        super().__init__(f"Method {method} not allowed on resource {resource}")


class InvalidRequestError(ImageServerError):
    kind = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidImageError(ImageServerError):
    kind = "invalid_image"
    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedImageError(InvalidImageError):
    kind = "unsupported_image"
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


class TransformationError(ImageServerError):
    kind = "transformation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class ShortUrlNotFoundError(ImageServerError):
    kind = "short_url_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, short_url_id: str):
        self.short_url_id = short_url_id
        super().__init__(f"Short URL not found: {short_url_id}")


# ===========================================
# Exception Handlers
# ===========================================


async def image_server_exception_handler(request: Request, exc: ImageServerError):
    """
    Handler for errors raised outside the resource pipeline.
    """
    if exc.status_code >= 500:
        logger.error(
            f"Image server error: {exc}",
            extra={"path": request.url.path, "method": request.method, "kind": exc.kind},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "message": "Internal Server Error",
                "kind": "internal_error",
            }
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.status_code, "message": exc.detail, "kind": "http_error"}},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for validation errors.
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": 422,
                "message": "Validation Error",
                "kind": "validation_error",
                "detail": str(exc.errors()),
            }
        },
    )
