"""
Object storage integration for blobstore uploads.

Supports Amazon S3 and S3-compatible services via boto3, plus local
filesystem and in-memory (transient) providers that need no credentials.
"""

from .client import (
    FileSystemBlobStoreContext,
    S3BlobStoreContext,
    TransientBackend,
    TransientBlobStoreContext,
)
from .context import MODULES, EnterpriseConfigurationModule, StorageContextFactory
from .registry import (
    ProviderRegistry,
    StorageProvider,
    get_provider_registry,
    register_builtin_providers,
)

__all__ = [
    "FileSystemBlobStoreContext",
    "S3BlobStoreContext",
    "TransientBackend",
    "TransientBlobStoreContext",
    "MODULES",
    "EnterpriseConfigurationModule",
    "StorageContextFactory",
    "ProviderRegistry",
    "StorageProvider",
    "get_provider_registry",
    "register_builtin_providers",
]
