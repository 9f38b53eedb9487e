"""Reconcile the Cache-Control header of remote objects.

Every call compares the Cache-Control value a file should carry with
the one its remote object carries and replaces the object's metadata
only when they differ. Calls are best-effort: failures are logged and
reported as skipped results, they never propagate to the caller.
"""

import dataclasses
import enum
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from typing import final

from django.conf import settings
from django.utils import timezone

from server.apps.cache_control.exceptions import (
    ConfigurationError,
    RemoteObjectNotFoundError,
    StoreError,
)
from server.apps.cache_control.infrastructure.object_store import (
    ObjectStoreClient,
    S3ObjectStore,
)
from server.apps.cache_control.logic.keys import resolve_object_key
from server.apps.cache_control.logic.policy import (
    PolicyResolver,
    policy_subject_for,
)
from server.apps.files.infrastructure.storage import (
    StorageConfig,
    storage_config_for,
)
from server.apps.files.models import FileRef, Storage

logger = logging.getLogger(__name__)

StoreFactory = Callable[[StorageConfig], ObjectStoreClient]
ConfigResolver = Callable[[Storage], StorageConfig]
Clock = Callable[[], datetime]


class ReconcileStatus(enum.StrEnum):
    """Outcome of a reconciliation."""

    RECONCILED = 'reconciled'
    SKIPPED = 'skipped'


class SkipReason(enum.StrEnum):
    """Why a reconciliation left the remote object untouched."""

    NOT_FOUND = 'not_found'
    NO_POLICY = 'no_policy'
    ALREADY_CURRENT = 'already_current'
    STALE_EVENT = 'stale_event'
    STORE_ERROR = 'store_error'
    CONFIGURATION_ERROR = 'configuration_error'


@final
@dataclasses.dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Result of one reconciliation."""

    status: ReconcileStatus
    reason: SkipReason | None = None
    key: str | None = None
    previous: str | None = None
    new: str | None = None

    @classmethod
    def reconciled(
        cls,
        key: str,
        previous: str | None,
        new: str,
    ) -> 'ReconcileResult':
        """Build a result for a replaced Cache-Control value."""
        return cls(
            status=ReconcileStatus.RECONCILED,
            key=key,
            previous=previous,
            new=new,
        )

    @classmethod
    def skipped(
        cls,
        reason: SkipReason,
        key: str | None = None,
    ) -> 'ReconcileResult':
        """Build a result for an untouched object."""
        return cls(status=ReconcileStatus.SKIPPED, reason=reason, key=key)

    @property
    def is_reconciled(self) -> bool:
        """Whether the remote object was modified."""
        return self.status == ReconcileStatus.RECONCILED


@final
class ObjectReconciler:
    """Keep remote Cache-Control headers in line with local policy."""

    def __init__(  # noqa: WPS211
        self,
        policy_resolver: PolicyResolver | None = None,
        store_factory: StoreFactory | None = None,
        config_resolver: ConfigResolver = storage_config_for,
        clock: Clock = timezone.now,
        freshness_window: timedelta | None = None,
        max_workers: int | None = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            policy_resolver: Resolves desired directives.
            store_factory: Creates an object store client for a storage
                configuration, S3ObjectStore by default.
            config_resolver: Resolves storage configuration.
            clock: Current time source for the freshness guard.
            freshness_window: Default guard window, defaults to the
                ``CACHE_CONTROL_FRESHNESS_WINDOW`` setting.
            max_workers: Default fan-out concurrency, defaults to the
                ``CACHE_CONTROL_MAX_WORKERS`` setting.
        """
        self._policy_resolver = policy_resolver or PolicyResolver()
        self._store_factory = store_factory or S3ObjectStore.for_config
        self._config_resolver = config_resolver
        self._clock = clock
        self._freshness_window = freshness_window
        self._max_workers = max_workers

    def reconcile(self, file_ref: FileRef) -> ReconcileResult:
        """Synchronize the Cache-Control header of one remote object.

        Derivatives are looked up at their own key but get the policy
        of their original file.

        Args:
            file_ref: Original or processed file.

        Returns:
            Reconciled with previous and new values, or Skipped with
            the reason the object was left untouched.
        """
        return self._reconcile(file_ref)

    def reconcile_if_remote_recently_modified(
        self,
        file_ref: FileRef,
        now: datetime | None = None,
        window: timedelta | None = None,
    ) -> ReconcileResult:
        """Reconcile if the remote object's LastModified is within the window.

        For events that do not report a modification time. The HEAD
        request that reads LastModified also serves the comparison, so
        the call still makes at most one HEAD and one copy.

        Args:
            file_ref: Original or processed file.
            now: Current time, defaults to the reconciler's clock.
            window: Freshness window, defaults to the configured one.

        Returns:
            Skipped(stale_event) when the object is older than the
            window or reports no LastModified, else the reconcile result.
        """
        return self._reconcile(
            file_ref,
            fresh_since=self._fresh_since(now, window),
        )

    def _reconcile(
        self,
        file_ref: FileRef,
        fresh_since: datetime | None = None,
    ) -> ReconcileResult:
        key = None
        try:
            config = self._resolve_config(file_ref)
            key = resolve_object_key(config, file_ref.identifier)
            store = self._store_factory(config)
            snapshot = store.head(config.bucket, key)

            if fresh_since is not None and _is_stale(
                _as_datetime(snapshot.last_modified),
                fresh_since,
            ):
                logger.debug('Remote object %s not modified recently', key)
                return ReconcileResult.skipped(SkipReason.STALE_EVENT, key)

            desired = self._policy_resolver.resolve(
                policy_subject_for(file_ref),
                config,
            )
            if desired is None:
                logger.debug('No Cache-Control policy for %s', key)
                return ReconcileResult.skipped(SkipReason.NO_POLICY, key)

            if snapshot.cache_control == desired:
                return ReconcileResult.skipped(
                    SkipReason.ALREADY_CURRENT,
                    key,
                )

            store.copy_metadata(
                config.bucket,
                key,
                cache_control=desired,
                content_type=snapshot.content_type,
                metadata=snapshot.metadata,
                headers=snapshot.headers,
            )
        except RemoteObjectNotFoundError:
            logger.info('Remote object not found (not uploaded yet?): %s', key)
            return ReconcileResult.skipped(SkipReason.NOT_FOUND, key)
        except ConfigurationError as error:
            logger.warning(
                'Cannot synchronize Cache-Control of %s: %s',
                file_ref,
                error,
            )
            return ReconcileResult.skipped(
                SkipReason.CONFIGURATION_ERROR,
                key,
            )
        except StoreError:
            logger.warning(
                'Object store failed while synchronizing Cache-Control of %s',
                key,
                exc_info=True,
            )
            return ReconcileResult.skipped(SkipReason.STORE_ERROR, key)
        except Exception:
            # Runs inside other apps' signal handlers, must not raise
            logger.exception(
                'Unexpected error while synchronizing Cache-Control of %s',
                file_ref,
            )
            return ReconcileResult.skipped(SkipReason.STORE_ERROR, key)

        logger.info(
            'Synchronized Cache-Control of %s: %r -> %r',
            key,
            snapshot.cache_control,
            desired,
        )
        return ReconcileResult.reconciled(key, snapshot.cache_control, desired)

    def reconcile_if_recently_modified(
        self,
        file_ref: FileRef,
        remote_mtime: datetime | float | None,
        now: datetime | None = None,
        window: timedelta | None = None,
    ) -> ReconcileResult:
        """Reconcile only if the remote object changed within the window.

        Processing notifications also fire when nothing was written;
        old objects are left to explicit re-indexing. A modification
        time ahead of ``now`` counts as recent.

        Args:
            file_ref: Original or processed file.
            remote_mtime: Modification time of the remote object, as a
                datetime or a unix timestamp. None counts as stale.
            now: Current time, defaults to the reconciler's clock.
            window: Freshness window, defaults to the configured one.

        Returns:
            Skipped(stale_event) without any remote call when the
            object is older than the window, else the reconcile result.
        """
        modified_at = _as_datetime(remote_mtime)
        if modified_at is None:
            logger.debug('No remote mtime for %s, skipping', file_ref)
            return ReconcileResult.skipped(SkipReason.STALE_EVENT)

        if _is_stale(modified_at, self._fresh_since(now, window)):
            logger.debug(
                'Remote object of %s not modified recently (%s), skipping',
                file_ref,
                modified_at.isoformat(),
            )
            return ReconcileResult.skipped(SkipReason.STALE_EVENT)

        return self.reconcile(file_ref)

    def reconcile_many(
        self,
        file_refs: Sequence[FileRef],
        max_workers: int | None = None,
    ) -> list[ReconcileResult]:
        """Reconcile files independently of each other.

        Failures of one file never stop the others. Runs concurrently
        when more than one worker is allowed.

        Args:
            file_refs: Files to reconcile, related storages preloaded.
            max_workers: Concurrency limit, defaults to the configured one.

        Returns:
            Results in the order of ``file_refs``.
        """
        workers = max_workers or self.max_workers
        if workers <= 1 or len(file_refs) <= 1:
            return [self.reconcile(file_ref) for file_ref in file_refs]

        with ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix='cache-control',
        ) as executor:
            return list(executor.map(self.reconcile, file_refs))

    def remote_modified_at(self, file_ref: FileRef) -> datetime | None:
        """Read the modification time of a file's remote object.

        Args:
            file_ref: Original or processed file.

        Returns:
            Remote LastModified, or None if it cannot be determined.
        """
        try:
            config = self._resolve_config(file_ref)
            key = resolve_object_key(config, file_ref.identifier)
            snapshot = self._store_factory(config).head(config.bucket, key)
        except RemoteObjectNotFoundError:
            return None
        except (ConfigurationError, StoreError):
            logger.warning(
                'Cannot read remote modification time of %s',
                file_ref,
                exc_info=True,
            )
            return None
        except Exception:
            logger.exception(
                'Unexpected error while reading remote modification time '
                'of %s',
                file_ref,
            )
            return None
        return snapshot.last_modified

    def desired_state(self, file_ref: FileRef) -> tuple[str, str | None]:
        """Compute key and desired directive without remote calls.

        Args:
            file_ref: Original or processed file.

        Returns:
            Tuple of object key and desired directive (None: no policy).

        Raises:
            ConfigurationError: If storage or policy configuration is
                unusable.
        """
        config = self._resolve_config(file_ref)
        key = resolve_object_key(config, file_ref.identifier)
        desired = self._policy_resolver.resolve(
            policy_subject_for(file_ref),
            config,
        )
        return key, desired

    @property
    def freshness_window(self) -> timedelta:
        """Guard window used when callers do not pass one."""
        if self._freshness_window is not None:
            return self._freshness_window
        return timedelta(seconds=settings.CACHE_CONTROL_FRESHNESS_WINDOW)

    @property
    def max_workers(self) -> int:
        """Fan-out concurrency used when callers do not pass one."""
        if self._max_workers is not None:
            return self._max_workers
        return settings.CACHE_CONTROL_MAX_WORKERS

    def _resolve_config(self, file_ref: FileRef) -> StorageConfig:
        try:
            return self._config_resolver(file_ref.storage)
        except (TypeError, ValueError) as error:
            raise ConfigurationError(
                f'Invalid configuration of storage {file_ref.storage}: '
                f'{error}',
            ) from error

    def _fresh_since(
        self,
        now: datetime | None,
        window: timedelta | None,
    ) -> datetime:
        current = _as_datetime(now) or self._clock()
        if window is None:
            window = self.freshness_window
        return current - window


def _is_stale(modified_at: datetime | None, fresh_since: datetime) -> bool:
    # Missing mtimes are stale, mtimes ahead of the clock are recent
    return modified_at is None or modified_at < fresh_since


def _as_datetime(remote_mtime: datetime | float | None) -> datetime | None:
    if remote_mtime is None:
        return None
    if isinstance(remote_mtime, datetime):
        if timezone.is_naive(remote_mtime):
            return timezone.make_aware(remote_mtime, UTC)
        return remote_mtime
    return datetime.fromtimestamp(remote_mtime, tz=UTC)
