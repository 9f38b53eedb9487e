"""Object store integrations for cache_control app."""
