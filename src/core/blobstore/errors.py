"""
Error taxonomy for blobstore uploads.

Every failure the upload pipeline reports derives from UploadError, so the
build step calling us only needs one except clause. The subclasses tell
callers (and logs) which stage failed.
"""


class UploadError(Exception):
    """Raised when an upload cannot be completed."""
    pass


class InvalidInputError(UploadError):
    """Raised when the upload request itself is unusable (e.g. source is a directory)."""
    pass


class ProfileNotFoundError(InvalidInputError):
    """Raised when a profile name is not present in the catalog."""
    pass


class CredentialLookupError(UploadError):
    """Raised when the credential store is unreachable or faulted."""
    pass


class StorageConnectionError(UploadError, ConnectionError):
    """Raised when a provider is unknown or rejects authentication."""
    pass


class RemoteOperationError(UploadError):
    """Raised when a remote storage call (existence check, create, write) fails."""
    pass
