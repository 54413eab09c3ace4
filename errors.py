class AppError(Exception):
    """Base for failures that map onto a single HTTP error response."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class UploadError(ValidationError):
    pass


class AuthorizationError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class StorageError(AppError):
    status_code = 500
