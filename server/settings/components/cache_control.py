"""Cache-Control synchronization settings."""

from typing import Any, Final

from server.settings.components import config

# Turn the metadata / post-processing receivers on or off
CACHE_CONTROL_ENABLED = config('CACHE_CONTROL_ENABLED', cast=bool, default=True)

# Seconds a remote object counts as "recently modified" after processing
CACHE_CONTROL_FRESHNESS_WINDOW = config(
    'CACHE_CONTROL_FRESHNESS_WINDOW',
    cast=int,
    default=30,
)

# Parallel reconciliations during derivative fan-out (1 = sequential)
CACHE_CONTROL_MAX_WORKERS = config(
    'CACHE_CONTROL_MAX_WORKERS',
    cast=int,
    default=1,
)

# Project-wide rule table, storages may override it with `cacheControl`
CACHE_CONTROL_POLICY: Final[dict[str, Any]] = {
    'default': config('CACHE_CONTROL_DEFAULT', default=None),
    'rules': [
        {
            'derived': True,
            'directive': 'public, max-age=31536000, immutable',
        },
        {
            'mime_types': ['image/*', 'video/*', 'font/*'],
            'directive': 'public, max-age=2592000',
        },
        {
            'extensions': ['css', 'js'],
            'directive': 'public, max-age=604800',
        },
        {
            'extensions': ['pdf', 'zip'],
            'directive': 'public, max-age=86400',
        },
    ],
}
