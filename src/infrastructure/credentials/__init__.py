"""
Credential store implementations.

Implements the CredentialStore protocol from core.blobstore.credentials.
"""

from .store import FileCredentialStore, InMemoryCredentialStore, create_credential_store

__all__ = ["FileCredentialStore", "InMemoryCredentialStore", "create_credential_store"]
