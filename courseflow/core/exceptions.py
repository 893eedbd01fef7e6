class StorageError(Exception):
    """Base class for failures raised by the storage backends."""


class StorageUnavailable(StorageError):
    """Backend credentials are missing or the transport failed."""


class UploadCancelled(StorageError):
    """The client went away before the upload finished."""
