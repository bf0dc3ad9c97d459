"""
Process-wide catalog of storage providers.

Providers are registered explicitly by name. The registry runs its
initializer (normally: register the built-in providers from settings)
once, right before the first lookup in the process, and can be reset for
teardown in tests.
"""

import logging
import threading
from dataclasses import dataclass, field
from functools import lru_cache, partial
from pathlib import Path
from typing import Callable, Mapping, Optional

from src.config.settings import Settings, get_settings
from src.core.blobstore.errors import StorageConnectionError
from src.core.blobstore.uploader import StorageContext

from .client import (
    PROPERTY_BASEDIR,
    PROPERTY_CONNECT_TIMEOUT,
    PROPERTY_ENDPOINT,
    PROPERTY_READ_TIMEOUT,
    PROPERTY_REGION,
    TransientBackend,
    TransientBlobStoreContext,
    connect_filesystem,
    connect_s3,
)

logger = logging.getLogger(__name__)

# (identity, secret, properties) -> context
ProviderConnector = Callable[[str, str, Mapping[str, str]], StorageContext]


@dataclass(frozen=True)
class StorageProvider:
    """
    A named storage backend.

    defaults are provider-wide properties (endpoint, region, base
    directory) that apply to every context the provider opens.
    required_properties must be non-empty once all properties are merged.
    """
    name: str
    connect: ProviderConnector
    defaults: Mapping[str, str] = field(default_factory=dict)
    required_properties: tuple[str, ...] = ()


class ProviderRegistry:
    """Thread-safe provider lookup by name with one-time initialization."""

    def __init__(
        self,
        initializer: Optional[Callable[["ProviderRegistry"], None]] = None,
    ) -> None:
        self._providers: dict[str, StorageProvider] = {}
        self._initializer = initializer
        self._initialized = initializer is None
        # Reentrant: the initializer calls register() while we hold the lock
        self._lock = threading.RLock()

    def register(self, provider: StorageProvider) -> None:
        with self._lock:
            if provider.name in self._providers:
                logger.warning(
                    "Replacing registered storage provider",
                    extra={"provider": provider.name}
                )
            self._providers[provider.name] = provider

    def ensure_initialized(self) -> None:
        with self._lock:
            if self._initialized:
                return
            try:
                self._initializer(self)
            except Exception:
                # Leave nothing half-registered; the next lookup starts clean
                self._providers.clear()
                raise
            self._initialized = True
            logger.info(
                "Initialized storage providers",
                extra={"providers": sorted(self._providers)}
            )

    def get(self, name: str) -> StorageProvider:
        """Look up a provider, failing fast on unknown names."""
        self.ensure_initialized()
        with self._lock:
            provider = self._providers.get(name)
        if provider is None:
            raise StorageConnectionError(f"Unknown storage provider: {name!r}")
        return provider

    def names(self) -> list[str]:
        self.ensure_initialized()
        with self._lock:
            return sorted(self._providers)

    def reset(self) -> None:
        """Drop all providers; the initializer runs again on next lookup."""
        with self._lock:
            self._providers.clear()
            self._initialized = self._initializer is None


def _compact(properties: Mapping[str, Optional[object]]) -> dict[str, str]:
    return {key: str(value) for key, value in properties.items() if value is not None}


def register_builtin_providers(registry: ProviderRegistry, settings: Settings) -> None:
    """
    Register aws-s3, s3, filesystem and transient.

    Provider-wide properties come from settings. The transient provider
    gets one backend per registration, so its data lives as long as the
    registry does.
    """
    timeouts = {
        PROPERTY_CONNECT_TIMEOUT: settings.s3_connect_timeout,
        PROPERTY_READ_TIMEOUT: settings.s3_read_timeout,
    }

    registry.register(StorageProvider(
        name="aws-s3",
        connect=partial(connect_s3, provider_name="aws-s3"),
        defaults=_compact({PROPERTY_REGION: settings.s3_region, **timeouts}),
    ))

    registry.register(StorageProvider(
        name="s3",
        connect=partial(connect_s3, provider_name="s3"),
        defaults=_compact({
            PROPERTY_ENDPOINT: settings.s3_endpoint_url,
            PROPERTY_REGION: settings.s3_region,
            **timeouts,
        }),
        required_properties=(PROPERTY_ENDPOINT,),
    ))

    registry.register(StorageProvider(
        name="filesystem",
        connect=connect_filesystem,
        defaults={PROPERTY_BASEDIR: str(Path(settings.filesystem_basedir))},
        required_properties=(PROPERTY_BASEDIR,),
    ))

    backend = TransientBackend()
    registry.register(StorageProvider(
        name="transient",
        connect=lambda identity, secret, properties: TransientBlobStoreContext(backend),
    ))


@lru_cache()
def get_provider_registry() -> ProviderRegistry:
    """
    Get the process-wide provider registry.

    Built-in providers are registered lazily from get_settings() on the
    first lookup. For tests, call get_provider_registry.cache_clear().
    """
    return ProviderRegistry(
        initializer=lambda registry: register_builtin_providers(registry, get_settings()),
    )
