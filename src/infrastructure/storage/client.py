"""
Blobstore contexts for the supported storage providers.

Each context implements the StorageContext protocol from
core.blobstore.uploader:
- S3BlobStoreContext: Amazon S3 and S3-compatible services via boto3
- FileSystemBlobStoreContext: containers are directories on local disk
- TransientBlobStoreContext: in-memory store shared within the process

Transient mode lets the whole upload flow run without provisioning real
object storage, the same way local development works against mocks.

Library exceptions never leave this module: they are logged and turned
into RemoteOperationError, or StorageConnectionError when the provider
says the credentials are wrong.
"""

import hashlib
import logging
import mimetypes
import threading
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.core.blobstore.errors import RemoteOperationError, StorageConnectionError
from src.core.blobstore.models import Blob

logger = logging.getLogger(__name__)


# Property keys understood by the providers
PROPERTY_ENDPOINT = "endpoint"
PROPERTY_REGION = "region"
PROPERTY_BASEDIR = "basedir"
PROPERTY_CONNECT_TIMEOUT = "connect_timeout"
PROPERTY_READ_TIMEOUT = "read_timeout"
PROPERTY_MAX_POOL_CONNECTIONS = "max_pool_connections"
PROPERTY_USER_AGENT_EXTRA = "user_agent_extra"
PROPERTY_SIGNATURE_VERSION = "signature_version"
PROPERTY_ADDRESSING_STYLE = "addressing_style"

AUTH_ERROR_CODES = frozenset({
    "InvalidAccessKeyId",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "InvalidToken",
    "ExpiredToken",
})
NOT_FOUND_ERROR_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})

_CHUNK_SIZE = 1024 * 1024


def _directory_marker(directory: str) -> str:
    return directory.strip("/") + "/"


class BaseBlobStoreContext:
    """
    Shared lifecycle for all contexts.

    A context refuses to work after close(). close() itself may be called
    more than once; only the first call releases anything.
    """

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def build_blob(self, name: str, payload: BinaryIO) -> Blob:
        """Wrap a payload stream in a Blob, guessing its content type from the name."""
        self._ensure_open()
        content_type, _ = mimetypes.guess_type(name)
        return Blob(
            name=name,
            payload=payload,
            content_type=content_type or "application/octet-stream",
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()
        logger.debug("Closed storage context", extra={"provider": self.provider_name})

    def _release(self) -> None:
        """Free provider resources. Called once from close()."""
        pass

    def _ensure_open(self) -> None:
        if self._closed:
            raise RemoteOperationError(f"{self.provider_name} context is closed")

    def __enter__(self) -> "BaseBlobStoreContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ---------------------------------------------------------------------------
# S3 / S3-compatible
# ---------------------------------------------------------------------------

class S3BlobStoreContext(BaseBlobStoreContext):
    """
    Blobstore context backed by a boto3 S3 client.

    S3 has no real directories; a directory is an empty object whose key
    ends in "/", and it "exists" if anything lives under that prefix.
    """

    def __init__(self, client, provider_name: str = "aws-s3") -> None:
        super().__init__(provider_name)
        self._client = client

    def container_exists(self, container: str) -> bool:
        self._ensure_open()
        try:
            self._client.head_bucket(Bucket=container)
            return True
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_ERROR_CODES:
                return False
            raise self._translate("check container", e, container=container) from e
        except BotoCoreError as e:
            raise self._translate("check container", e, container=container) from e

    def create_container_in_location(self, location: Optional[str], container: str) -> bool:
        """
        Create a bucket. Returns False if we already own it.

        With no location the bucket goes to the client's region. us-east-1
        is the one region S3 refuses an explicit LocationConstraint for.
        """
        self._ensure_open()
        params: dict = {"Bucket": container}
        region = location or self._client.meta.region_name
        if region and region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            self._client.create_bucket(**params)
        except ClientError as e:
            if _error_code(e) == "BucketAlreadyOwnedByYou":
                return False
            raise self._translate("create container", e, container=container) from e
        except BotoCoreError as e:
            raise self._translate("create container", e, container=container) from e

        logger.info(
            "Created container",
            extra={"provider": self.provider_name, "container": container, "region": region}
        )
        return True

    def directory_exists(self, container: str, directory: str) -> bool:
        self._ensure_open()
        try:
            response = self._client.list_objects_v2(
                Bucket=container,
                Prefix=_directory_marker(directory),
                MaxKeys=1,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate("check directory", e, container=container, directory=directory) from e

        return response.get("KeyCount", 0) > 0

    def create_directory(self, container: str, directory: str) -> None:
        self._ensure_open()
        try:
            self._client.put_object(
                Bucket=container,
                Key=_directory_marker(directory),
                Body=b"",
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate("create directory", e, container=container, directory=directory) from e

        logger.debug(
            "Created directory",
            extra={"container": container, "directory": directory}
        )

    def put_blob(self, container: str, blob: Blob) -> Optional[str]:
        """Single PUT of the blob payload. Overwrites any existing object."""
        self._ensure_open()
        params = {
            "Bucket": container,
            "Key": blob.name,
            "Body": blob.payload,
        }
        if blob.content_type:
            params["ContentType"] = blob.content_type

        try:
            response = self._client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._translate("put blob", e, container=container, key=blob.name) from e

        etag = response.get("ETag")
        return etag.strip('"') if etag else None

    def _release(self) -> None:
        self._client.close()

    def _translate(self, operation: str, error: Exception, **fields):
        code = _error_code(error) if isinstance(error, ClientError) else None
        logger.error(
            "S3 operation failed",
            extra={
                "provider": self.provider_name,
                "operation": operation,
                "error_code": code,
                "error": str(error),
                **fields,
            }
        )
        if code in AUTH_ERROR_CODES:
            return StorageConnectionError(f"Authentication rejected by {self.provider_name}: {error}")
        return RemoteOperationError(f"Failed to {operation}: {error}")


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def connect_s3(
    identity: str,
    secret: str,
    properties: Mapping[str, str],
    provider_name: str = "aws-s3",
) -> S3BlobStoreContext:
    """
    Build an S3 context.

    Both identity (access key id) and secret (secret access key) are
    required; we don't fall back to the ambient AWS credential chain
    because a profile should upload with its own credentials only.
    """
    if not identity or not secret:
        raise StorageConnectionError(f"{provider_name} requires an identity and a secret")

    config_params: dict = {
        "signature_version": properties.get(PROPERTY_SIGNATURE_VERSION, "s3v4"),
        "s3": {"addressing_style": properties.get(PROPERTY_ADDRESSING_STYLE, "auto")},
    }
    if properties.get(PROPERTY_MAX_POOL_CONNECTIONS):
        config_params["max_pool_connections"] = int(properties[PROPERTY_MAX_POOL_CONNECTIONS])
    if properties.get(PROPERTY_CONNECT_TIMEOUT):
        config_params["connect_timeout"] = float(properties[PROPERTY_CONNECT_TIMEOUT])
    if properties.get(PROPERTY_READ_TIMEOUT):
        config_params["read_timeout"] = float(properties[PROPERTY_READ_TIMEOUT])
    if properties.get(PROPERTY_USER_AGENT_EXTRA):
        config_params["user_agent_extra"] = properties[PROPERTY_USER_AGENT_EXTRA]

    try:
        client = boto3.client(
            "s3",
            endpoint_url=properties.get(PROPERTY_ENDPOINT) or None,
            aws_access_key_id=identity,
            aws_secret_access_key=secret,
            region_name=properties.get(PROPERTY_REGION) or None,
            config=Config(**config_params),
        )
    except (BotoCoreError, ValueError) as e:
        logger.error(
            "Failed to create S3 client",
            extra={"provider": provider_name, "error": str(e)}
        )
        raise StorageConnectionError(f"Could not connect to {provider_name}: {e}") from e

    logger.debug(
        "Initialized S3 client",
        extra={
            "provider": provider_name,
            "endpoint": properties.get(PROPERTY_ENDPOINT),
            "region": client.meta.region_name,
        }
    )
    return S3BlobStoreContext(client, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------

class FileSystemBlobStoreContext(BaseBlobStoreContext):
    """
    Containers are directories under a base directory; blobs are files.

    Names are confined to their container: anything that would resolve
    outside it (absolute paths, "..") is rejected.
    """

    def __init__(self, basedir: Path, provider_name: str = "filesystem") -> None:
        super().__init__(provider_name)
        self._basedir = Path(basedir)

    def container_exists(self, container: str) -> bool:
        self._ensure_open()
        return self._container_path(container).is_dir()

    def create_container_in_location(self, location: Optional[str], container: str) -> bool:
        self._ensure_open()
        path = self._container_path(container)
        if path.is_dir():
            return False
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise self._translate("create container", e, container=container) from e

        logger.info(
            "Created container",
            extra={"provider": self.provider_name, "container": container}
        )
        return True

    def directory_exists(self, container: str, directory: str) -> bool:
        self._ensure_open()
        return self._blob_path(container, directory).is_dir()

    def create_directory(self, container: str, directory: str) -> None:
        self._ensure_open()
        try:
            self._blob_path(container, directory).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise self._translate("create directory", e, container=container, directory=directory) from e

    def put_blob(self, container: str, blob: Blob) -> Optional[str]:
        """Stream the payload to disk, returning its MD5 as the etag."""
        self._ensure_open()
        if not self.container_exists(container):
            raise RemoteOperationError(f"Container not found: {container}")

        target = self._blob_path(container, blob.name)
        digest = hashlib.md5()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as out:
                while True:
                    chunk = blob.payload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    digest.update(chunk)
                    out.write(chunk)
        except OSError as e:
            raise self._translate("put blob", e, container=container, key=blob.name) from e

        return digest.hexdigest()

    def _container_path(self, container: str) -> Path:
        if not container or "/" in container or "\\" in container or container in (".", ".."):
            raise RemoteOperationError(f"Invalid container name: {container!r}")
        return self._basedir / container

    def _blob_path(self, container: str, name: str) -> Path:
        root = self._container_path(container)
        relative = PurePosixPath(name)
        if relative.is_absolute() or ".." in relative.parts:
            raise RemoteOperationError(f"Invalid blob name: {name!r}")
        return root.joinpath(*relative.parts)

    def _translate(self, operation: str, error: OSError, **fields) -> RemoteOperationError:
        logger.error(
            "Filesystem operation failed",
            extra={"operation": operation, "error": str(error), **fields}
        )
        return RemoteOperationError(f"Failed to {operation}: {error}")


def connect_filesystem(
    identity: str,
    secret: str,
    properties: Mapping[str, str],
) -> FileSystemBlobStoreContext:
    """Credentials are ignored; the base directory comes from the basedir property."""
    return FileSystemBlobStoreContext(Path(properties[PROPERTY_BASEDIR]))


# ---------------------------------------------------------------------------
# Transient (in-memory) store
# ---------------------------------------------------------------------------

class TransientBackend:
    """
    In-memory object store shared by every transient context in a process.

    Contexts come and go per upload but the data stays, so a second upload
    sees the container the first one created. Guarded by a lock because
    concurrent uploads write into the same dictionaries.
    """

    def __init__(self) -> None:
        # {container: {key: bytes}}
        self._containers: dict[str, dict[str, bytes]] = {}
        self._lock = threading.Lock()

    def has_container(self, container: str) -> bool:
        with self._lock:
            return container in self._containers

    def create_container(self, container: str) -> bool:
        with self._lock:
            if container in self._containers:
                return False
            self._containers[container] = {}
            return True

    def has_directory(self, container: str, directory: str) -> bool:
        prefix = _directory_marker(directory)
        with self._lock:
            blobs = self._containers.get(container, {})
            return any(key.startswith(prefix) for key in blobs)

    def put(self, container: str, key: str, data: bytes) -> str:
        with self._lock:
            if container not in self._containers:
                raise RemoteOperationError(f"Container not found: {container}")
            self._containers[container][key] = data
        return hashlib.md5(data).hexdigest()

    def get(self, container: str, key: str) -> bytes:
        with self._lock:
            try:
                return self._containers[container][key]
            except KeyError:
                raise RemoteOperationError(f"Blob not found: {container}/{key}") from None

    def keys(self, container: str) -> list[str]:
        with self._lock:
            return sorted(self._containers.get(container, {}))

    def clear(self) -> None:
        with self._lock:
            self._containers.clear()


class TransientBlobStoreContext(BaseBlobStoreContext):
    """Context view over a TransientBackend."""

    def __init__(self, backend: TransientBackend, provider_name: str = "transient") -> None:
        super().__init__(provider_name)
        self._backend = backend

    def container_exists(self, container: str) -> bool:
        self._ensure_open()
        return self._backend.has_container(container)

    def create_container_in_location(self, location: Optional[str], container: str) -> bool:
        self._ensure_open()
        return self._backend.create_container(container)

    def directory_exists(self, container: str, directory: str) -> bool:
        self._ensure_open()
        return self._backend.has_directory(container, directory)

    def create_directory(self, container: str, directory: str) -> None:
        self._ensure_open()
        self._backend.put(container, _directory_marker(directory), b"")

    def put_blob(self, container: str, blob: Blob) -> Optional[str]:
        self._ensure_open()
        return self._backend.put(container, blob.name, blob.payload.read())
