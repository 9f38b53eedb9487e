"""Django storage configuration and S3-compatible driver defaults.

Files themselves live in per-storage buckets configured on
``server.apps.files.models.Storage`` rows. The values below are the
connection defaults every ``AmazonS3`` storage inherits unless its own
configuration overrides them. Works with:
- MinIO for local development
- Cloudflare R2 or AWS S3 for production
"""

from typing import Any, Final

from server.settings.components import config

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

# Keys mirror the storage configuration JSON of ``AmazonS3`` storages
CACHE_CONTROL_S3_DEFAULTS: Final[dict[str, Any]] = {
    'key': config('AWS_ACCESS_KEY_ID', default=None),
    'secret': config('AWS_SECRET_ACCESS_KEY', default=None),
    'endpoint': config('AWS_S3_ENDPOINT_URL', default=None),
    'region': config('AWS_S3_REGION_NAME', default='us-east-1'),
}
