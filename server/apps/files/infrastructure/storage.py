"""S3-compatible storage backend and driver configuration resolution."""

import dataclasses
import functools
import logging
from collections.abc import Mapping
from typing import Any, final

from django.conf import settings
from storages.backends.s3 import S3Storage

from server.apps.files.models import Storage

logger = logging.getLogger(__name__)


@final
@dataclasses.dataclass(frozen=True, slots=True)
class StorageConfig:
    """Resolved driver configuration of one storage.

    Immutable, resolved once per call. ``bucket`` may be empty here,
    callers that need it validate it themselves.
    """

    bucket: str
    base_path: str = ''
    endpoint: str | None = None
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    cache_control: Mapping[str, Any] | None = None


def storage_config_for(storage: Storage) -> StorageConfig:
    """Resolve driver configuration for a storage.

    Values from ``Storage.configuration`` win over the project-wide
    ``CACHE_CONTROL_S3_DEFAULTS``.

    Args:
        storage: Storage row.

    Returns:
        Resolved StorageConfig.
    """
    configuration: dict[str, Any] = {
        **settings.CACHE_CONTROL_S3_DEFAULTS,
        **(storage.configuration or {}),
    }
    return StorageConfig(
        bucket=str(configuration.get('bucket') or ''),
        base_path=str(configuration.get('basePath') or ''),
        endpoint=configuration.get('endpoint') or None,
        region=configuration.get('region') or None,
        access_key=configuration.get('key') or None,
        secret_key=configuration.get('secret') or None,
        cache_control=configuration.get('cacheControl'),
    )


@final
class FileStorage(S3Storage):
    """S3 storage backend bound to one storage configuration.

    Extends django-storages S3Storage with:
    - Construction from a resolved StorageConfig
    - Access to the low-level boto3 client for metadata operations
    """

    @classmethod
    def from_config(cls, config: StorageConfig) -> 'FileStorage':
        """Build a storage backend for a storage configuration.

        Args:
            config: Resolved storage configuration.

        Returns:
            FileStorage instance.
        """
        return cls(
            bucket_name=config.bucket,
            access_key=config.access_key,
            secret_key=config.secret_key,
            endpoint_url=config.endpoint,
            region_name=config.region,
            default_acl=None,  # Inherit bucket ACL
        )

    @property
    def object_client(self) -> Any:
        """Low-level boto3 S3 client of this backend."""
        return self.connection.meta.client


@functools.cache
def _storage_for(config: StorageConfig) -> FileStorage:
    logger.debug(
        'Creating S3 client for bucket %s (endpoint: %s)',
        config.bucket,
        config.endpoint,
    )
    return FileStorage.from_config(config)


def resolve_client_for_config(config: StorageConfig) -> Any:
    """Get the boto3 S3 client for a storage configuration.

    Clients are created once per distinct configuration.

    Args:
        config: Resolved storage configuration.

    Returns:
        boto3 S3 client.
    """
    return _storage_for(_without_policy(config)).object_client


def reset_clients() -> None:
    """Drop all cached storage backends and their clients."""
    _storage_for.cache_clear()


def _without_policy(config: StorageConfig) -> StorageConfig:
    # The rule table is a mapping and does not affect the connection
    return dataclasses.replace(config, cache_control=None)
