"""
Blobstore publishing logic.

Contains the domain models, the error taxonomy, credential resolution and
the upload orchestrator.
"""

from .credentials import CredentialResolver, CredentialStore, first_matching, with_id
from .errors import (
    CredentialLookupError,
    InvalidInputError,
    ProfileNotFoundError,
    RemoteOperationError,
    StorageConnectionError,
    UploadError,
)
from .models import (
    SYSTEM_CONTEXT,
    Blob,
    CertificateCredential,
    Credential,
    CredentialScope,
    ExecutionContext,
    PrivateKeyCredential,
    Profile,
    ResolvedCredential,
    UploadRequest,
    UploadResult,
    UsernamePasswordCredential,
    build_destination_key,
)
from .profiles import ProfileCatalog
from .uploader import StorageContext, StorageContextOpener, UploadOrchestrator

__all__ = [
    "CredentialResolver",
    "CredentialStore",
    "first_matching",
    "with_id",
    "CredentialLookupError",
    "InvalidInputError",
    "ProfileNotFoundError",
    "RemoteOperationError",
    "StorageConnectionError",
    "UploadError",
    "SYSTEM_CONTEXT",
    "Blob",
    "CertificateCredential",
    "Credential",
    "CredentialScope",
    "ExecutionContext",
    "PrivateKeyCredential",
    "Profile",
    "ResolvedCredential",
    "UploadRequest",
    "UploadResult",
    "UsernamePasswordCredential",
    "build_destination_key",
    "ProfileCatalog",
    "StorageContext",
    "StorageContextOpener",
    "UploadOrchestrator",
]
