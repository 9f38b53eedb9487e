"""Tests for remote object reconciliation."""

from datetime import UTC, datetime, timedelta

import pytest

from server.apps.cache_control.logic.policy import PolicyResolver
from server.apps.cache_control.logic.reconciler import (
    ObjectReconciler,
    ReconcileResult,
    ReconcileStatus,
    SkipReason,
)
from server.apps.files.models import File, ProcessedFile, Storage

_ORIGINAL_DIRECTIVE = 'public, max-age=2592000'
_DERIVED_DIRECTIVE = 'public, max-age=31536000, immutable'
_POLICY = {
    'default': None,
    'rules': [
        {'derived': True, 'directive': _DERIVED_DIRECTIVE},
        {'mime_types': ['image/*'], 'directive': _ORIGINAL_DIRECTIVE},
    ],
}
_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def reconciler(fake_store) -> ObjectReconciler:
    """Create reconciler using the in-memory store.

    Returns:
        ObjectReconciler with fixed policy and clock.
    """
    return ObjectReconciler(
        policy_resolver=PolicyResolver(_POLICY),
        store_factory=lambda config: fake_store,
        clock=lambda: _NOW,
        freshness_window=timedelta(seconds=30),
        max_workers=1,
    )


@pytest.fixture
def original(memory_storage) -> File:
    """Build unsaved original image.

    Returns:
        File at /images/logo.png.
    """
    return File(
        storage=memory_storage,
        identifier='/images/logo.png',
        mime_type='image/png',
    )


def _derivative(original: File, name: str) -> ProcessedFile:
    return ProcessedFile(
        original_file=original,
        storage=original.storage,
        identifier=f'/_processed_/{name}',
    )


def test_reconcile_replaces_outdated_cache_control(
    reconciler,
    fake_store,
    original,
):
    """Test outdated value is replaced, everything else round-trips."""
    fake_store.put(
        'cdn-assets/images/logo.png',
        cache_control='public, max-age=60',
        content_type='image/png',
        metadata={'owner': 'alice', 'checksum': 'abc'},
        headers={'ContentDisposition': 'inline'},
    )

    result = reconciler.reconcile(original)

    assert result == ReconcileResult.reconciled(
        'cdn-assets/images/logo.png',
        'public, max-age=60',
        _ORIGINAL_DIRECTIVE,
    )
    assert fake_store.copies == [{
        'bucket': 'my-bucket',
        'key': 'cdn-assets/images/logo.png',
        'cache_control': _ORIGINAL_DIRECTIVE,
        'content_type': 'image/png',
        'metadata': {'owner': 'alice', 'checksum': 'abc'},
        'headers': {'ContentDisposition': 'inline'},
    }]


def test_reconcile_is_idempotent(reconciler, fake_store, original):
    """Test second run finds the object already current."""
    fake_store.put('cdn-assets/images/logo.png', cache_control='no-cache')

    first = reconciler.reconcile(original)
    second = reconciler.reconcile(original)

    assert first.is_reconciled
    assert second == ReconcileResult.skipped(
        SkipReason.ALREADY_CURRENT,
        'cdn-assets/images/logo.png',
    )
    assert len(fake_store.copies) == 1


def test_reconcile_sets_missing_cache_control(reconciler, fake_store, original):
    """Test objects without any Cache-Control get one."""
    fake_store.put('cdn-assets/images/logo.png', cache_control=None)

    result = reconciler.reconcile(original)

    assert result.is_reconciled
    assert result.previous is None


def test_reconcile_missing_object_is_skipped(reconciler, fake_store, original):
    """Test absent objects are a normal skip, not an error."""
    result = reconciler.reconcile(original)

    assert result.status == ReconcileStatus.SKIPPED
    assert result.reason == SkipReason.NOT_FOUND
    assert fake_store.copies == []


def test_reconcile_without_policy_is_skipped(
    reconciler,
    fake_store,
    memory_storage,
):
    """Test files without applicable rule are left alone."""
    document = File(storage=memory_storage, identifier='/doc.txt')
    fake_store.put('cdn-assets/doc.txt', cache_control='no-cache')

    result = reconciler.reconcile(document)

    assert result.reason == SkipReason.NO_POLICY
    assert fake_store.copies == []


def test_reconcile_store_error_is_skipped(reconciler, fake_store, original):
    """Test store failures never propagate."""
    fake_store.failing_keys.add('cdn-assets/images/logo.png')

    result = reconciler.reconcile(original)

    assert result.reason == SkipReason.STORE_ERROR
    assert result.key == 'cdn-assets/images/logo.png'


def test_reconcile_unexpected_error_is_skipped(original):
    """Test even unexpected failures stay inside the reconciler."""

    def broken_factory(config):
        raise RuntimeError('boom')

    reconciler = ObjectReconciler(
        policy_resolver=PolicyResolver(_POLICY),
        store_factory=broken_factory,
    )

    result = reconciler.reconcile(original)

    assert result.reason == SkipReason.STORE_ERROR


def test_reconcile_missing_bucket_is_configuration_error(
    reconciler,
    fake_store,
):
    """Test storage without bucket is skipped without remote calls."""
    storage = Storage(
        name='broken',
        driver=Storage.Driver.AMAZON_S3,
        configuration={'basePath': 'cdn-assets'},
    )
    file_ref = File(storage=storage, identifier='/images/logo.png')

    result = reconciler.reconcile(file_ref)

    assert result.reason == SkipReason.CONFIGURATION_ERROR
    assert fake_store.calls == []


def test_reconcile_derivative_uses_own_key_and_original_policy(
    reconciler,
    fake_store,
    original,
):
    """Test derivatives live at their own key with the parent's policy."""
    thumbnail = _derivative(original, 'logo_64.png')
    fake_store.put('cdn-assets/_processed_/logo_64.png', cache_control='')

    result = reconciler.reconcile(thumbnail)

    assert result.key == 'cdn-assets/_processed_/logo_64.png'
    assert result.new == _DERIVED_DIRECTIVE


def test_guard_skips_stale_event_without_remote_calls(
    reconciler,
    fake_store,
    original,
):
    """Test objects modified 31s ago are outside the 30s window."""
    thumbnail = _derivative(original, 'logo_64.png')
    fake_store.put('cdn-assets/_processed_/logo_64.png')

    result = reconciler.reconcile_if_recently_modified(
        thumbnail,
        remote_mtime=_NOW - timedelta(seconds=31),
        now=_NOW,
        window=timedelta(seconds=30),
    )

    assert result == ReconcileResult.skipped(SkipReason.STALE_EVENT)
    assert fake_store.calls == []


def test_guard_reconciles_recent_event(reconciler, fake_store, original):
    """Test objects modified inside the window are reconciled."""
    thumbnail = _derivative(original, 'logo_64.png')
    fake_store.put('cdn-assets/_processed_/logo_64.png')

    result = reconciler.reconcile_if_recently_modified(
        thumbnail,
        remote_mtime=_NOW - timedelta(seconds=30),
    )

    assert result.is_reconciled


def test_guard_accepts_unix_timestamps(reconciler, fake_store, original):
    """Test driver-style integer mtimes are understood."""
    thumbnail = _derivative(original, 'logo_64.png')
    fake_store.put('cdn-assets/_processed_/logo_64.png')

    result = reconciler.reconcile_if_recently_modified(
        thumbnail,
        remote_mtime=int(_NOW.timestamp()) - 5,
    )

    assert result.is_reconciled


def test_guard_treats_future_mtime_as_recent(reconciler, fake_store, original):
    """Test store clocks running ahead do not block reconciliation."""
    thumbnail = _derivative(original, 'logo_64.png')
    fake_store.put('cdn-assets/_processed_/logo_64.png')

    result = reconciler.reconcile_if_recently_modified(
        thumbnail,
        remote_mtime=_NOW + timedelta(minutes=5),
    )

    assert result.is_reconciled


def test_guard_without_mtime_is_stale(reconciler, fake_store, original):
    """Test unknown modification time never triggers remote calls."""
    result = reconciler.reconcile_if_recently_modified(original, None)

    assert result.reason == SkipReason.STALE_EVENT
    assert fake_store.calls == []


def test_guard_window_from_settings(settings, fake_store, original):
    """Test default window comes from CACHE_CONTROL_FRESHNESS_WINDOW."""
    settings.CACHE_CONTROL_FRESHNESS_WINDOW = 120
    reconciler = ObjectReconciler(
        policy_resolver=PolicyResolver(_POLICY),
        store_factory=lambda config: fake_store,
        clock=lambda: _NOW,
    )
    fake_store.put('cdn-assets/images/logo.png')

    result = reconciler.reconcile_if_recently_modified(
        original,
        _NOW - timedelta(seconds=90),
    )

    assert result.is_reconciled


@pytest.mark.parametrize('max_workers', [1, 3])
def test_reconcile_many_isolates_failures(
    reconciler,
    fake_store,
    original,
    max_workers,
):
    """Test one failing derivative does not stop the others."""
    derivatives = [
        _derivative(original, name)
        for name in ('broken.png', 'stale.png', 'current.png')
    ]
    fake_store.failing_keys.add('cdn-assets/_processed_/broken.png')
    fake_store.put('cdn-assets/_processed_/stale.png', 'public, max-age=60')
    fake_store.put('cdn-assets/_processed_/current.png', _DERIVED_DIRECTIVE)

    results = reconciler.reconcile_many(derivatives, max_workers=max_workers)

    assert [result.reason for result in results] == [
        SkipReason.STORE_ERROR,
        None,
        SkipReason.ALREADY_CURRENT,
    ]
    assert results[1].is_reconciled
    heads = sorted(call[2] for call in fake_store.calls if call[0] == 'head')
    assert heads == [
        'cdn-assets/_processed_/broken.png',
        'cdn-assets/_processed_/current.png',
        'cdn-assets/_processed_/stale.png',
    ]


def test_desired_state_makes_no_remote_calls(reconciler, fake_store, original):
    """Test planning only resolves key and policy."""
    key, directive = reconciler.desired_state(original)

    assert key == 'cdn-assets/images/logo.png'
    assert directive == _ORIGINAL_DIRECTIVE
    assert fake_store.calls == []


def test_remote_modified_at(reconciler, fake_store, original):
    """Test remote mtime lookup returns None for absent objects."""
    assert reconciler.remote_modified_at(original) is None
    assert fake_store.calls == [
        ('head', 'my-bucket', 'cdn-assets/images/logo.png'),
    ]


def test_remote_guard_uses_one_head_and_one_copy(
    reconciler,
    fake_store,
    original,
):
    """Test LastModified from the comparison HEAD drives the guard."""
    thumbnail = _derivative(original, 'logo_64.png')
    key = 'cdn-assets/_processed_/logo_64.png'
    fake_store.put(key, last_modified=_NOW - timedelta(seconds=5))

    result = reconciler.reconcile_if_remote_recently_modified(thumbnail)

    assert result.is_reconciled
    assert fake_store.calls == [
        ('head', 'my-bucket', key),
        ('copy', 'my-bucket', key),
    ]


def test_remote_guard_skips_old_objects(reconciler, fake_store, original):
    """Test objects last written outside the window are left alone."""
    thumbnail = _derivative(original, 'logo_64.png')
    key = 'cdn-assets/_processed_/logo_64.png'
    fake_store.put(key, last_modified=_NOW - timedelta(minutes=5))

    result = reconciler.reconcile_if_remote_recently_modified(thumbnail)

    assert result == ReconcileResult.skipped(SkipReason.STALE_EVENT, key)
    assert fake_store.calls == [('head', 'my-bucket', key)]


def test_remote_guard_without_last_modified_is_stale(
    reconciler,
    fake_store,
    original,
):
    """Test objects reporting no LastModified are never copied."""
    fake_store.put('cdn-assets/images/logo.png')

    result = reconciler.reconcile_if_remote_recently_modified(original)

    assert result.reason == SkipReason.STALE_EVENT
    assert fake_store.copies == []


def test_reconcile_invalid_endpoint_is_configuration_error(
    mock_s3,
    make_s3_configuration,
):
    """Test client construction failures are configuration errors."""
    storage = Storage(
        name='broken',
        driver=Storage.Driver.AMAZON_S3,
        configuration=make_s3_configuration(endpoint='not a url'),
    )
    file_ref = File(storage=storage, identifier='/images/logo.png')
    reconciler = ObjectReconciler(policy_resolver=PolicyResolver(_POLICY))

    result = reconciler.reconcile(file_ref)

    assert result.reason == SkipReason.CONFIGURATION_ERROR
    assert reconciler.remote_modified_at(file_ref) is None


def test_reconcile_non_mapping_configuration(reconciler, fake_store):
    """Test a storage configuration that is not an object is rejected."""
    storage = Storage(
        name='broken',
        driver=Storage.Driver.AMAZON_S3,
        configuration=['my-bucket'],
    )
    file_ref = File(storage=storage, identifier='/images/logo.png')

    result = reconciler.reconcile(file_ref)

    assert result.reason == SkipReason.CONFIGURATION_ERROR
    assert fake_store.calls == []


def test_remote_modified_at_never_raises(original):
    """Test unexpected failures while reading mtimes are contained."""

    def broken_factory(config):
        raise RuntimeError('boom')

    reconciler = ObjectReconciler(
        policy_resolver=PolicyResolver(_POLICY),
        store_factory=broken_factory,
    )

    assert reconciler.remote_modified_at(original) is None
