"""Django app configuration for cache_control app."""

from typing import override

from django.apps import AppConfig


class CacheControlConfig(AppConfig):
    """Configuration for cache_control app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.cache_control'
    verbose_name = 'Cache-Control synchronization'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.cache_control import signals  # noqa: F401
