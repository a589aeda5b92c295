from fastapi import status


class AppError(Exception):
    """Domain failure carrying a user-facing message and an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __repr__(self):
        return f"<{type(self).__name__}(status_code={self.status_code}, message='{self.message}')>"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class BlockedError(ForbiddenError):
    """Sender is on the receiver's block list; reported as a bad request."""

    status_code = status.HTTP_400_BAD_REQUEST


class MediaProcessingError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
