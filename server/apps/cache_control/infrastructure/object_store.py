"""Object store access for metadata reconciliation."""

import dataclasses
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Final, Protocol, final

from botocore.exceptions import BotoCoreError, ClientError

from server.apps.cache_control.exceptions import (
    ConfigurationError,
    RemoteObjectNotFoundError,
    StoreError,
)
from server.apps.files.infrastructure.storage import (
    StorageConfig,
    resolve_client_for_config,
)

# Error codes S3-compatible stores use for a missing object
_NOT_FOUND_CODES: Final = frozenset(('404', 'NoSuchKey', 'NotFound'))

# System headers a REPLACE copy drops unless they are sent again
_PRESERVED_HEADERS: Final = (
    'ContentDisposition',
    'ContentEncoding',
    'ContentLanguage',
)

logger = logging.getLogger(__name__)


@final
@dataclasses.dataclass(frozen=True, slots=True)
class RemoteObjectSnapshot:
    """Current metadata of a remote object. Never cached across calls."""

    cache_control: str | None = None
    content_type: str | None = None
    metadata: Mapping[str, str] = dataclasses.field(default_factory=dict)
    headers: Mapping[str, str] = dataclasses.field(default_factory=dict)
    last_modified: datetime | None = None


class ObjectStoreClient(Protocol):
    """What the reconciler needs from an object store."""

    def head(self, bucket: str, key: str) -> RemoteObjectSnapshot:
        """Fetch current object metadata."""

    def copy_metadata(  # noqa: WPS211
        self,
        bucket: str,
        key: str,
        cache_control: str,
        content_type: str | None,
        metadata: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Replace object metadata in place."""


@final
class S3ObjectStore:
    """ObjectStoreClient backed by a boto3 S3 client."""

    def __init__(self, client: Any) -> None:
        """Initialize store.

        Args:
            client: boto3 S3 client.
        """
        self._client = client

    @classmethod
    def for_config(cls, config: StorageConfig) -> 'S3ObjectStore':
        """Create a store for a storage configuration.

        Args:
            config: Resolved storage configuration.

        Returns:
            S3ObjectStore using the storage's shared client.

        Raises:
            ConfigurationError: If no client can be built from the
                configuration (e.g. an invalid endpoint).
        """
        try:
            client = resolve_client_for_config(config)
        except ValueError as error:
            raise ConfigurationError(
                f'Cannot create S3 client for bucket {config.bucket!r}: '
                f'{error}',
            ) from error
        return cls(client)

    def head(self, bucket: str, key: str) -> RemoteObjectSnapshot:
        """Fetch current object metadata with a HEAD request.

        Args:
            bucket: Bucket name.
            key: Object key.

        Returns:
            Snapshot of the object's metadata.

        Raises:
            RemoteObjectNotFoundError: If the object does not exist.
            StoreError: If the request fails for any other reason.
        """
        try:
            response = self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as error:
            if _error_code(error) in _NOT_FOUND_CODES:
                raise RemoteObjectNotFoundError(bucket, key) from error
            raise StoreError(bucket, key, 'head') from error
        except BotoCoreError as error:
            raise StoreError(bucket, key, 'head') from error

        return RemoteObjectSnapshot(
            cache_control=response.get('CacheControl'),
            content_type=response.get('ContentType'),
            metadata=dict(response.get('Metadata') or {}),
            headers={
                header: response[header]
                for header in _PRESERVED_HEADERS
                if response.get(header)
            },
            last_modified=response.get('LastModified'),
        )

    def copy_metadata(  # noqa: WPS211
        self,
        bucket: str,
        key: str,
        cache_control: str,
        content_type: str | None,
        metadata: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Replace object metadata by copying the object onto itself.

        The REPLACE directive drops everything not sent again, so the
        content type, the whole custom metadata map and the preserved
        system headers are passed through verbatim.

        Args:
            bucket: Bucket name.
            key: Object key.
            cache_control: New Cache-Control value.
            content_type: Current content type to keep.
            metadata: Current custom metadata to keep.
            headers: Current system headers to keep.

        Raises:
            StoreError: If the copy fails.
        """
        params: dict[str, Any] = {
            'Bucket': bucket,
            'Key': key,
            'CopySource': {'Bucket': bucket, 'Key': key},
            'CacheControl': cache_control,
            'Metadata': dict(metadata),
            'MetadataDirective': 'REPLACE',
        }
        if content_type:
            params['ContentType'] = content_type
        for header, header_value in (headers or {}).items():
            if header in _PRESERVED_HEADERS:
                params[header] = header_value

        try:
            self._client.copy_object(**params)
        except (BotoCoreError, ClientError) as error:
            raise StoreError(bucket, key, 'copy') from error

        logger.info(
            'Replaced Cache-Control of %s/%s with %r',
            bucket,
            key,
            cache_control,
        )


def _error_code(error: ClientError) -> str:
    return str(error.response.get('Error', {}).get('Code', ''))
