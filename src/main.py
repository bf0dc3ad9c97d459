"""
Build-step entry point.

Wires settings, the credential store, the provider registry and the
upload orchestrator together, and exposes a small command for build
jobs to publish one artifact:

    python -m src.main releases my-bucket dist/app.tar.gz --path builds/42

Exit code is 0 on success and 1 when the upload fails.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config.settings import Settings, get_settings
from .core.blobstore.credentials import CredentialResolver
from .core.blobstore.errors import InvalidInputError, UploadError
from .core.blobstore.profiles import ProfileCatalog
from .core.blobstore.uploader import UploadOrchestrator
from .infrastructure.credentials.store import create_credential_store
from .infrastructure.storage.context import StorageContextFactory
from .infrastructure.storage.registry import ProviderRegistry, get_provider_registry

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


def create_uploader(
    settings: Optional[Settings] = None,
    registry: Optional[ProviderRegistry] = None,
) -> UploadOrchestrator:
    """
    Application factory for the upload orchestrator.

    Args:
        settings: Configuration (defaults to get_settings())
        registry: Provider registry (defaults to the process-wide one)

    Raises:
        InvalidInputError: the configured profiles are unusable
    """
    settings = settings or get_settings()

    problems = settings.validate_required_fields()
    if problems:
        logger.warning(
            "Configuration problems detected",
            extra={"problems": problems}
        )

    try:
        catalog = ProfileCatalog(settings.profiles)
    except ValueError as e:
        raise InvalidInputError(f"Invalid profile configuration: {e}") from e

    store = create_credential_store(settings.credentials_file)
    uploader = UploadOrchestrator(
        resolver=CredentialResolver(store),
        context_factory=StorageContextFactory(registry or get_provider_registry()),
        catalog=catalog,
    )

    logger.debug(
        "Created upload orchestrator",
        extra={"profiles": [p.profile_name for p in catalog]}
    )
    return uploader


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload a single file to a configured blobstore profile."
    )
    parser.add_argument("profile", help="Name of the blobstore profile")
    parser.add_argument("container", help="Target container (bucket); created if missing")
    parser.add_argument("file", help="Local file to upload")
    parser.add_argument(
        "--path",
        default="",
        help="Directory inside the container (default: container root)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        uploader = create_uploader(settings)
        result = uploader.upload(
            args.profile,
            args.container,
            args.path,
            args.file,
        )
    except UploadError as e:
        logger.error(
            "Upload failed",
            extra={"profile": args.profile, "error_type": type(e).__name__, "error": str(e)}
        )
        print(f"Upload failed: {e}", file=sys.stderr)
        return 1

    print(f"Published {result.key} to container {result.container} with profile {result.profile_name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
