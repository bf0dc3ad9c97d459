"""
Storage context factory.

Turns (provider name, identity, secret, overrides) into an open
StorageContext. Properties are layered, later layers winning:

    configuration modules < provider defaults < call overrides

The module set is fixed: every context gets the same production
transport configuration.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Mapping, Optional

from src import __version__
from src.core.blobstore.errors import StorageConnectionError, UploadError
from src.core.blobstore.uploader import StorageContext

from .client import (
    PROPERTY_ADDRESSING_STYLE,
    PROPERTY_MAX_POOL_CONNECTIONS,
    PROPERTY_SIGNATURE_VERSION,
    PROPERTY_USER_AGENT_EXTRA,
)
from .registry import ProviderRegistry, StorageProvider, get_provider_registry

logger = logging.getLogger(__name__)


class EnterpriseConfigurationModule:
    """Production transport defaults shared by every provider."""

    DEFAULTS = {
        PROPERTY_MAX_POOL_CONNECTIONS: "10",
        PROPERTY_SIGNATURE_VERSION: "s3v4",
        PROPERTY_ADDRESSING_STYLE: "auto",
        PROPERTY_USER_AGENT_EXTRA: f"blobstore-publisher/{__version__}",
    }

    def configure(self, properties: dict[str, str]) -> None:
        for key, value in self.DEFAULTS.items():
            properties.setdefault(key, value)


MODULES = (EnterpriseConfigurationModule(),)


class StorageContextFactory:
    """
    Opens storage contexts by provider name.

    The caller owns the returned context and must close it; connect() does
    that automatically.
    """

    def __init__(self, registry: Optional[ProviderRegistry] = None) -> None:
        self._registry = registry or get_provider_registry()

    def open(
        self,
        provider_name: str,
        identity: str,
        secret: str,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> StorageContext:
        """
        Open a context.

        Raises:
            StorageConnectionError: unknown provider, missing required
                properties, or credentials rejected while connecting
        """
        provider = self._registry.get(provider_name)
        properties = self._build_properties(provider, overrides or {})

        missing = [key for key in provider.required_properties if not properties.get(key)]
        if missing:
            raise StorageConnectionError(
                f"Provider {provider_name!r} is missing required properties: {', '.join(missing)}"
            )

        try:
            context = provider.connect(identity, secret, properties)
        except UploadError:
            raise
        except Exception as e:
            logger.error(
                "Failed to open storage context",
                extra={"provider": provider_name, "error": str(e)}
            )
            raise StorageConnectionError(f"Could not connect to {provider_name}: {e}") from e

        logger.debug("Opened storage context", extra={"provider": provider_name})
        return context

    @contextmanager
    def connect(
        self,
        provider_name: str,
        identity: str,
        secret: str,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> Generator[StorageContext, None, None]:
        """
        Provide a context with automatic cleanup.

        Usage:
            with factory.connect("filesystem", "", "") as context:
                context.container_exists("artifacts")
        """
        context = self.open(provider_name, identity, secret, overrides)
        try:
            yield context
        finally:
            context.close()

    def _build_properties(
        self,
        provider: StorageProvider,
        overrides: Mapping[str, str],
    ) -> dict[str, str]:
        properties: dict[str, str] = {}
        for module in MODULES:
            module.configure(properties)
        properties.update(provider.defaults)
        properties.update(overrides)
        return properties
