"""Exceptions for cache_control app."""


class ConfigurationError(Exception):
    """Raised when storage or policy configuration is unusable."""


class RemoteObjectNotFoundError(Exception):
    """Raised when the remote object does not exist (yet)."""

    def __init__(self, bucket: str, key: str) -> None:
        """Initialize RemoteObjectNotFoundError.

        Args:
            bucket: Bucket that was queried.
            key: Object key that was queried.
        """
        self.bucket = bucket
        self.key = key
        super().__init__(f'Remote object not found: {bucket}/{key}')


class StoreError(Exception):
    """Raised when the object store fails (transport, auth, throttling)."""

    def __init__(self, bucket: str, key: str, operation: str) -> None:
        """Initialize StoreError.

        Args:
            bucket: Bucket of the failed request.
            key: Object key of the failed request.
            operation: Name of the failed operation ('head', 'copy').
        """
        self.bucket = bucket
        self.key = key
        self.operation = operation
        super().__init__(
            f'Object store {operation} failed for {bucket}/{key}',
        )
