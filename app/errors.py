"""
Application error taxonomy.
Each error carries the HTTP status and machine-readable code used by the
exception handler in app.main.
"""
from typing import Optional


class AppError(Exception):
    """Base class for errors raised by the gallery services."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class ValidationError(AppError):
    """Bad input; raised before anything has been written."""

    status_code = 400
    code = "VALIDATION_ERROR"


class FileUploadError(AppError):
    """
    Problem with the uploaded binary or with storing it.
    400 when the file itself is at fault, 500 when storage or persistence failed.
    """

    status_code = 400
    code = "FILE_UPLOAD_ERROR"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND_ERROR"


class DatabaseError(AppError):
    status_code = 500
    code = "DATABASE_ERROR"


class ExternalServiceError(AppError):
    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"
