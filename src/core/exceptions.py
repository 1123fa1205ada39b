"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    AUTH_CODE_INVALID = "AUTH_CODE_INVALID"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Not found errors (404)
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_MEDIA_TYPE = "INVALID_MEDIA_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_IMAGE_KIND = "INVALID_IMAGE_KIND"
    MISSING_FILE = "MISSING_FILE"
    INVALID_REFERENCE = "INVALID_REFERENCE"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    DELETE_FAILED = "DELETE_FAILED"

    # Upstream identity provider (502)
    IDENTITY_PROVIDER_ERROR = "IDENTITY_PROVIDER_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class ProfileNotFoundError(AppException):
    """Profile not found."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.PROFILE_NOT_FOUND,
            message="Profile not found",
            status_code=404,
            details={"owner_id": owner_id},
        )


class InvalidInputError(AppException):
    """Request input rejected before any side effect took place."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_INPUT,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=400,
            details=details,
        )


class InvalidMediaTypeError(InvalidInputError):
    """Uploaded file is not an accepted image type."""

    def __init__(self, media_type: str) -> None:
        super().__init__(
            message="Please upload a valid image file (JPEG, PNG, or WebP)",
            error_code=ErrorCode.INVALID_MEDIA_TYPE,
            details={"media_type": media_type},
        )


class FileTooLargeError(InvalidInputError):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        limit_mb = max_bytes / (1024 * 1024)
        super().__init__(
            message=f"Image size must be less than {limit_mb:g}MB",
            error_code=ErrorCode.FILE_TOO_LARGE,
            details={"size_bytes": size_bytes, "max_bytes": max_bytes},
        )


class InvalidImageKindError(InvalidInputError):
    """Image type parameter is not one of the supported kinds."""

    def __init__(self, kind: str | None) -> None:
        super().__init__(
            message="Invalid image type",
            error_code=ErrorCode.INVALID_IMAGE_KIND,
            details={"type": kind},
        )


class MissingFileError(InvalidInputError):
    """Multipart request carried no file."""

    def __init__(self) -> None:
        super().__init__(
            message="No file provided",
            error_code=ErrorCode.MISSING_FILE,
        )


class InvalidReferenceError(AppException):
    """Image URL does not map to a storage path."""

    def __init__(self, url: str) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_REFERENCE,
            message="Invalid image URL",
            status_code=400,
            details={"url": url},
        )


class UploadFailedError(AppException):
    """Object store rejected or failed the upload."""

    def __init__(self, message: str = "Upload failed") -> None:
        super().__init__(
            error_code=ErrorCode.UPLOAD_FAILED,
            message=message,
            status_code=500,
        )


class DeleteFailedError(AppException):
    """Object store rejected or failed the delete."""

    def __init__(self, path: str) -> None:
        super().__init__(
            error_code=ErrorCode.DELETE_FAILED,
            message="Failed to delete image",
            status_code=500,
            details={"path": path},
        )


class DatabaseError(AppException):
    """Relational store call failed."""

    def __init__(self, message: str = "Failed to save profile") -> None:
        super().__init__(
            error_code=ErrorCode.DATABASE_ERROR,
            message=message,
            status_code=500,
        )


class IdentityProviderError(AppException):
    """Identity provider call failed."""

    def __init__(self, message: str = "Identity provider request failed") -> None:
        super().__init__(
            error_code=ErrorCode.IDENTITY_PROVIDER_ERROR,
            message=message,
            status_code=502,
        )


class StorageError(Exception):
    """Object store call failed (transport error or non-success response)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
