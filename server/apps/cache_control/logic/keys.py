"""Remote object key resolution."""

from server.apps.cache_control.exceptions import ConfigurationError
from server.apps.files.infrastructure.storage import StorageConfig


def resolve_object_key(config: StorageConfig, identifier: str) -> str:
    """Compute the object key of a file inside its bucket.

    The base path and the identifier are joined with exactly one slash,
    surrounding slashes are stripped from both. The same configuration
    and identifier always give the same key.

    Example: basePath 'cdn-assets', identifier '/images/logo.png'
    -> 'cdn-assets/images/logo.png'

    Args:
        config: Resolved storage configuration.
        identifier: File identifier, with or without leading slash.

    Returns:
        Object key without leading slash.

    Raises:
        ConfigurationError: If the storage has no bucket or the
            identifier does not name an object.
    """
    if not config.bucket:
        raise ConfigurationError('Storage configuration has no bucket')

    object_name = identifier.strip('/')
    if not object_name:
        raise ConfigurationError(
            f'Identifier {identifier!r} does not resolve to an object key',
        )

    base_path = config.base_path.strip('/')
    if base_path:
        return f'{base_path}/{object_name}'
    return object_name
