"""
Credential stores.

Two implementations of the CredentialStore protocol:
- FileCredentialStore: a JSON file, re-read on every lookup
- InMemoryCredentialStore: a fixed list, for local development and tests

The JSON file looks like:

    {
      "credentials": [
        {"type": "username_password", "id": "aws-release-key",
         "username": "AKIA...", "password": "...", "scope": "system"},
        {"type": "ssh_private_key", "id": "gcs-key",
         "username": "uploader@project.iam", "private_key": "-----BEGIN ..."}
      ]
    }

Records are parsed with Pydantic (discriminated on "type") and then
translated into domain credentials, so nothing outside this module sees
the file format.
"""

import logging
from pathlib import Path
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, SecretStr, ValidationError

from src.core.blobstore.errors import CredentialLookupError
from src.core.blobstore.models import (
    CertificateCredential,
    Credential,
    CredentialScope,
    ExecutionContext,
    PrivateKeyCredential,
    UsernamePasswordCredential,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# File records
# ---------------------------------------------------------------------------

class _CredentialRecord(BaseModel):
    id: str
    username: str
    scope: CredentialScope = CredentialScope.GLOBAL
    description: str = ""


class UsernamePasswordRecord(_CredentialRecord):
    type: Literal["username_password"]
    password: SecretStr

    def to_domain(self) -> Credential:
        return UsernamePasswordCredential(
            id=self.id,
            username=self.username,
            scope=self.scope,
            description=self.description,
            password=self.password.get_secret_value(),
        )


class PrivateKeyRecord(_CredentialRecord):
    type: Literal["ssh_private_key"]
    private_key: SecretStr

    def to_domain(self) -> Credential:
        return PrivateKeyCredential(
            id=self.id,
            username=self.username,
            scope=self.scope,
            description=self.description,
            private_key=self.private_key.get_secret_value(),
        )


class CertificateRecord(_CredentialRecord):
    type: Literal["certificate"]
    keystore: SecretStr = SecretStr("")

    def to_domain(self) -> Credential:
        return CertificateCredential(
            id=self.id,
            username=self.username,
            scope=self.scope,
            description=self.description,
            keystore=self.keystore.get_secret_value(),
        )


CredentialRecord = Annotated[
    Union[UsernamePasswordRecord, PrivateKeyRecord, CertificateRecord],
    Field(discriminator="type"),
]


class CredentialFile(BaseModel):
    credentials: list[CredentialRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class FileCredentialStore:
    """
    Credential store backed by a JSON file.

    The file is read on every lookup, never cached, so rotating a secret
    only requires rewriting the file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    def lookup_all(self, context: ExecutionContext) -> list[Credential]:
        """
        Return the credentials visible to the execution context.

        Raises:
            CredentialLookupError: file missing, unreadable, or malformed
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
            parsed = CredentialFile.model_validate_json(raw)
        except (OSError, ValidationError) as e:
            logger.error(
                "Failed to load credential store",
                extra={"path": str(self._path), "error": str(e)}
            )
            raise CredentialLookupError(f"Could not read credentials from {self._path}: {e}") from e

        credentials = [record.to_domain() for record in parsed.credentials]
        return [c for c in credentials if context.can_see(c.scope)]


class InMemoryCredentialStore:
    """Credential store holding a fixed list of credentials."""

    def __init__(self, credentials: Iterable[Credential] = ()) -> None:
        self._credentials = tuple(credentials)

    def lookup_all(self, context: ExecutionContext) -> list[Credential]:
        return [c for c in self._credentials if context.can_see(c.scope)]


def create_credential_store(
    credentials_file: Optional[str] = None,
) -> Union[FileCredentialStore, InMemoryCredentialStore]:
    """
    Create the credential store for the configuration.

    Without a credentials file the store is empty, which is enough for
    providers that need no credentials (filesystem, transient).
    """
    if credentials_file:
        logger.info("Using file credential store", extra={"path": credentials_file})
        return FileCredentialStore(credentials_file)

    logger.info("No credentials file configured, using empty credential store")
    return InMemoryCredentialStore()
