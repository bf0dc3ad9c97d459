"""
Domain models for blobstore publishing.

These models describe profiles, credentials and upload requests without
knowing anything about boto3, the filesystem, or where credentials are
kept. Infrastructure code translates into and out of them.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional


class CredentialScope(Enum):
    """
    Visibility of a stored credential.

    SYSTEM credentials are only usable by automated execution (builds),
    GLOBAL ones by anyone, USER ones by the owning user.
    """
    SYSTEM = "system"
    GLOBAL = "global"
    USER = "user"


@dataclass(frozen=True)
class ExecutionContext:
    """
    Trust token handed to credential stores.

    Uploads run as part of build execution, so the resolver looks credentials
    up with the elevated system context rather than with whatever permissions
    the triggering user has.
    """
    name: str
    elevated: bool = False

    def can_see(self, scope: CredentialScope) -> bool:
        if self.elevated:
            return True
        return scope is CredentialScope.GLOBAL


SYSTEM_CONTEXT = ExecutionContext(name="system", elevated=True)


# ---------------------------------------------------------------------------
# Credential variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Credential:
    """
    A stored credential with a username.

    The base class is also the "other" variant: credential kinds we don't
    know how to turn into a provider secret extract an empty string.
    """
    id: str
    username: str
    scope: CredentialScope = CredentialScope.GLOBAL
    description: str = ""

    def extract_secret(self) -> str:
        """Return the secret a storage provider should receive."""
        return ""


@dataclass(frozen=True)
class PrivateKeyCredential(Credential):
    """Username plus private key material (e.g. a service account key)."""
    private_key: str = field(default="", repr=False)

    def extract_secret(self) -> str:
        return self.private_key


@dataclass(frozen=True)
class UsernamePasswordCredential(Credential):
    """Username plus plaintext password (e.g. an access key id / secret key pair)."""
    password: str = field(default="", repr=False)

    def extract_secret(self) -> str:
        return self.password


@dataclass(frozen=True)
class CertificateCredential(Credential):
    """Client certificate keystore. Not usable as a storage secret."""
    keystore: str = field(default="", repr=False)


@dataclass(frozen=True)
class ResolvedCredential:
    """
    Identity/secret pair derived from a credential id at call time.

    Never persisted and never cached: it is recomputed on each upload so a
    rotated secret is picked up immediately.
    """
    identity: str = ""
    secret: str = field(default="", repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.identity and not self.secret


# ---------------------------------------------------------------------------
# Profiles and uploads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Profile:
    """
    A named binding of a storage provider and a credential reference.

    provider_name is a key into the provider registry ("aws-s3",
    "filesystem", ...). credential_id may be empty for providers that
    need no credentials.
    """
    profile_name: str
    provider_name: str
    credential_id: str = ""

    def __post_init__(self) -> None:
        if not self.profile_name.strip():
            raise ValueError("Profile name cannot be empty")
        if not self.provider_name.strip():
            raise ValueError("Provider name cannot be empty")


@dataclass(frozen=True)
class UploadRequest:
    """Where a single local file should go."""
    container_name: str
    destination_directory: str
    source_file: Path

    @property
    def normalized_directory(self) -> str:
        """Destination directory without leading/trailing slashes ("" means container root)."""
        return self.destination_directory.strip("/")

    @property
    def destination_key(self) -> str:
        return build_destination_key(self.destination_directory, self.source_file.name)


@dataclass
class Blob:
    """A named payload ready to be written into a container."""
    name: str
    payload: BinaryIO
    content_type: Optional[str] = None


@dataclass(frozen=True)
class UploadResult:
    """What was published, returned to the caller on success."""
    profile_name: str
    container: str
    key: str
    etag: Optional[str] = None


def build_destination_key(destination_directory: str, file_name: str) -> str:
    """
    Compute the object key for a file.

    An empty directory puts the file at the container root; otherwise the
    key is "<directory>/<file name>".

    Slashes around the directory are dropped first, so "d/", "/d" and "d"
    all give "d/<file name>" instead of a key with an empty path segment,
    and "/" means the container root. Plain concatenation would keep them.
    """
    directory = destination_directory.strip("/")
    if not directory:
        return file_name
    return f"{directory}/{file_name}"
