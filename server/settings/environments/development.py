"""Settings for local development and tests."""

DEBUG = True

SECRET_KEY = SECRET_KEY or 'development-only-secret-key'  # type: ignore[name-defined]  # noqa: F821

ALLOWED_HOSTS = [
    'localhost',
    '127.0.0.1',
    '[::1]',
]
