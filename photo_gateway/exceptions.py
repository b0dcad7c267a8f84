# exceptions.py


class GatewayError(Exception):
    """Base class for errors that are reported to the HTTP caller."""

    status_code = 500


class ValidationError(GatewayError):
    """The request itself is unusable (e.g., no file was sent)."""

    status_code = 400


class BackendError(GatewayError):
    """The storage provider rejected or failed a call."""
    pass


class StoragePermissionError(BackendError):
    """The storage provider denied access to the target folder."""
    pass


class UploadError(BackendError):
    """Storing an uploaded photo failed."""
    pass


class DeleteError(BackendError):
    """Deleting a stored photo failed."""
    pass
