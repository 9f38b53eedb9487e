"""Shared fixtures for all tests."""

import threading
from collections.abc import Iterator, Mapping
from datetime import datetime

import boto3
import pytest
from moto import mock_aws

from server.apps.cache_control.exceptions import (
    RemoteObjectNotFoundError,
    StoreError,
)
from server.apps.cache_control.infrastructure.object_store import (
    RemoteObjectSnapshot,
)
from server.apps.files.infrastructure.storage import reset_clients
from server.apps.files.models import File, ProcessedFile, Storage

TEST_BUCKET = 'my-bucket'
TEST_BASE_PATH = 'cdn-assets'


class FakeObjectStore:
    """In-memory ObjectStoreClient recording every call."""

    def __init__(self) -> None:
        """Initialize empty store."""
        self.objects: dict[tuple[str, str], RemoteObjectSnapshot] = {}
        self.failing_keys: set[str] = set()
        self.calls: list[tuple[str, str, str]] = []
        self.copies: list[dict[str, object]] = []
        self._lock = threading.Lock()

    def put(  # noqa: WPS211
        self,
        key: str,
        cache_control: str | None = None,
        content_type: str | None = 'image/png',
        metadata: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        bucket: str = TEST_BUCKET,
        last_modified: datetime | None = None,
    ) -> None:
        """Store an object snapshot."""
        self.objects[bucket, key] = RemoteObjectSnapshot(
            cache_control=cache_control,
            content_type=content_type,
            metadata=dict(metadata or {}),
            headers=dict(headers or {}),
            last_modified=last_modified,
        )

    def head(self, bucket: str, key: str) -> RemoteObjectSnapshot:
        """Return a stored snapshot."""
        with self._lock:
            self.calls.append(('head', bucket, key))
        if key in self.failing_keys:
            raise StoreError(bucket, key, 'head')
        try:
            return self.objects[bucket, key]
        except KeyError:
            raise RemoteObjectNotFoundError(bucket, key) from None

    def copy_metadata(  # noqa: WPS211
        self,
        bucket: str,
        key: str,
        cache_control: str,
        content_type: str | None,
        metadata: Mapping[str, str],
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Replace a stored snapshot's metadata."""
        with self._lock:
            self.calls.append(('copy', bucket, key))
            self.copies.append({
                'bucket': bucket,
                'key': key,
                'cache_control': cache_control,
                'content_type': content_type,
                'metadata': dict(metadata),
                'headers': dict(headers or {}),
            })
        self.objects[bucket, key] = RemoteObjectSnapshot(
            cache_control=cache_control,
            content_type=content_type,
            metadata=dict(metadata),
            headers=dict(headers or {}),
        )


@pytest.fixture(autouse=True)
def _reset_s3_clients() -> Iterator[None]:
    """Never share boto3 clients between tests (and moto mocks)."""
    reset_clients()
    yield
    reset_clients()


@pytest.fixture
def mock_s3():
    """Mock S3 service with the test bucket.

    Yields:
        boto3 S3 client with the test bucket created.
    """
    with mock_aws():
        client = boto3.client('s3', region_name='us-east-1')
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


@pytest.fixture
def fake_store() -> FakeObjectStore:
    """Create in-memory object store.

    Returns:
        Empty FakeObjectStore.
    """
    return FakeObjectStore()


def _s3_configuration(**overrides: object) -> dict[str, object]:
    return {
        'bucket': TEST_BUCKET,
        'basePath': TEST_BASE_PATH,
        'region': 'us-east-1',
        'key': 'testing',
        'secret': 'testing',
        **overrides,
    }


@pytest.fixture
def s3_storage(db) -> Storage:
    """Create AmazonS3 storage.

    Returns:
        Saved Storage pointing at the test bucket.
    """
    return Storage.objects.create(
        name='cdn',
        driver=Storage.Driver.AMAZON_S3,
        configuration=_s3_configuration(),
    )


@pytest.fixture
def local_storage(db) -> Storage:
    """Create local filesystem storage.

    Returns:
        Saved Storage using the Local driver.
    """
    return Storage.objects.create(name='local', driver=Storage.Driver.LOCAL)


@pytest.fixture
def logo(s3_storage: Storage) -> File:
    """Create original image file in the S3 storage.

    Returns:
        Saved File for /images/logo.png.
    """
    return File.objects.create(
        storage=s3_storage,
        identifier='/images/logo.png',
        mime_type='image/png',
        size_bytes=1024,
    )


@pytest.fixture
def logo_thumbnails(logo: File) -> list[ProcessedFile]:
    """Create three processed variants of the logo.

    Returns:
        Saved ProcessedFile instances.
    """
    return [
        ProcessedFile.objects.create(
            original_file=logo,
            storage=logo.storage,
            identifier=f'/_processed_/logo_{width}.png',
            configuration={'width': width},
        )
        for width in (64, 128, 256)
    ]


@pytest.fixture
def memory_storage() -> Storage:
    """Build unsaved AmazonS3 storage (no database needed).

    Returns:
        Unsaved Storage.
    """
    return Storage(
        name='memory',
        driver=Storage.Driver.AMAZON_S3,
        configuration=_s3_configuration(),
    )


@pytest.fixture
def make_s3_configuration():
    """Factory for AmazonS3 storage configurations.

    Returns:
        Callable taking keys to add or replace.
    """
    return _s3_configuration
