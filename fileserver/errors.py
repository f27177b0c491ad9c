from __future__ import annotations


class FileServerError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPathError(FileServerError):
    status_code = 400
    default_message = 'Invalid path'


class MalformedRequestError(FileServerError):
    status_code = 400
    default_message = 'Invalid request'


class NotFoundError(FileServerError):
    status_code = 404
    default_message = 'File not found'


class PayloadTooLargeError(FileServerError):
    status_code = 413
    default_message = 'File exceeds maximum upload size'


class StorageFailureError(FileServerError):
    """Filesystem failure; the message is generic and safe to return to clients."""

    status_code = 500
    default_message = 'Storage operation failed'
