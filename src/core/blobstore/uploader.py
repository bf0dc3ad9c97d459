"""
Upload orchestration.

This is where a profile, a container/path and a local file become a
published blob. The orchestrator doesn't know which provider it talks to;
it only needs something that can open a StorageContext by provider name.

Flow for one call:
    1. reject directories (and missing files) before touching the network
    2. resolve the profile's credential into identity/secret
    3. open a storage context
    4. create the container and directory if missing
    5. stream the file into a blob and write it (create or overwrite)
    6. close the context, whatever happened in 4-5
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Generator, Mapping, Optional, Protocol, Union

from .credentials import CredentialResolver
from .errors import InvalidInputError, RemoteOperationError, UploadError
from .models import Blob, Profile, ResolvedCredential, UploadRequest, UploadResult
from .profiles import ProfileCatalog

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class StorageContext(Protocol):
    """
    A live, authenticated connection to one storage provider.

    Owned by exactly one upload call and closed exactly once.
    """

    def container_exists(self, container: str) -> bool: ...

    def create_container_in_location(self, location: Optional[str], container: str) -> bool: ...

    def directory_exists(self, container: str, directory: str) -> bool: ...

    def create_directory(self, container: str, directory: str) -> None: ...

    def build_blob(self, name: str, payload: BinaryIO) -> Blob: ...

    def put_blob(self, container: str, blob: Blob) -> Optional[str]: ...

    def close(self) -> None: ...


class StorageContextOpener(Protocol):
    """Anything that can open a StorageContext for a provider name."""

    def open(
        self,
        provider_name: str,
        identity: str,
        secret: str,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> StorageContext:
        ...


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class UploadOrchestrator:
    """
    Publishes single files to blobstore profiles.

    Holds no per-call state: every upload opens and closes its own context,
    so concurrent calls from independent build jobs don't interfere.
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        context_factory: StorageContextOpener,
        catalog: Optional[ProfileCatalog] = None,
    ) -> None:
        self._resolver = resolver
        self._context_factory = context_factory
        self._catalog = catalog or ProfileCatalog()

    def upload(
        self,
        profile: Union[Profile, str],
        container_name: str,
        destination_directory: str,
        source_file: Union[str, os.PathLike],
    ) -> UploadResult:
        """
        Upload one local file into a container/path.

        Args:
            profile: Profile, or the name of a profile in the catalog
            container_name: Target container (created if missing)
            destination_directory: Path inside the container, "" for the root
            source_file: Local file to upload

        Returns:
            UploadResult with the computed object key

        Raises:
            InvalidInputError: source is a directory, missing or unreadable, or unknown profile name
            CredentialLookupError: credential store failed
            StorageConnectionError: provider unknown or authentication rejected
            RemoteOperationError: container/directory/blob operation failed
        """
        if isinstance(profile, str):
            profile = self._catalog.get(profile)

        request = UploadRequest(
            container_name=container_name,
            destination_directory=destination_directory or "",
            source_file=Path(source_file),
        )
        self._check_source(request.source_file)

        credential = self._resolver.resolve(profile.credential_id)

        with self._acquire_context(profile, credential) as context:
            try:
                etag = self._transfer(context, request)
            except UploadError:
                raise
            except Exception as e:
                logger.error(
                    "Upload failed",
                    extra={
                        "profile": profile.profile_name,
                        "container": request.container_name,
                        "key": request.destination_key,
                        "error": str(e),
                    }
                )
                raise RemoteOperationError(f"Upload failed: {e}") from e

        logger.info(
            "Published blob",
            extra={
                "profile": profile.profile_name,
                "source": str(request.source_file),
                "container": request.container_name,
                "key": request.destination_key,
            }
        )

        return UploadResult(
            profile_name=profile.profile_name,
            container=request.container_name,
            key=request.destination_key,
            etag=etag,
        )

    def _check_source(self, source_file: Path) -> None:
        if source_file.is_dir():
            raise InvalidInputError(f"{source_file} is a directory")
        if not source_file.is_file():
            raise InvalidInputError(f"{source_file} does not exist")

    @contextmanager
    def _acquire_context(
        self,
        profile: Profile,
        credential: ResolvedCredential,
    ) -> Generator[StorageContext, None, None]:
        """
        Open a context for the profile and close it on every exit path.

        Per-call endpoint overrides aren't supported yet, so overrides are
        always empty; provider-wide settings come from the registry.
        """
        context = self._context_factory.open(
            profile.provider_name,
            credential.identity,
            credential.secret,
            {},
        )
        try:
            yield context
        finally:
            try:
                context.close()
            except Exception as e:
                logger.warning(
                    "Error closing storage context",
                    extra={"provider": profile.provider_name, "error": str(e)}
                )

    def _transfer(self, context: StorageContext, request: UploadRequest) -> Optional[str]:
        container = request.container_name
        directory = request.normalized_directory

        if not context.container_exists(container):
            context.create_container_in_location(None, container)

        if directory and not context.directory_exists(container, directory):
            context.create_directory(container, directory)

        key = request.destination_key
        logger.info(
            "Publishing now",
            extra={"container": container, "key": key}
        )

        try:
            payload = request.source_file.open("rb")
        except OSError as e:
            raise InvalidInputError(f"Cannot read {request.source_file}: {e}") from e

        with payload:
            blob = context.build_blob(key, payload)
            return context.put_blob(container, blob)
