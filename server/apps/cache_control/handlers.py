"""Event entry points for Cache-Control synchronization.

Both handlers run inside other operations (metadata saves, file
processing) and never raise: a failing object store must not abort
the operation that triggered the event.
"""

import logging
from datetime import datetime

from server.apps.cache_control.logic.reconciler import (
    ObjectReconciler,
    ReconcileResult,
)
from server.apps.files.logic.file_operations import list_derivatives
from server.apps.files.models import FileRef, ProcessedFile

logger = logging.getLogger(__name__)


def on_file_upserted(
    file_ref: FileRef,
    reconciler: ObjectReconciler | None = None,
) -> list[ReconcileResult]:
    """Synchronize a created or updated file and all its derivatives.

    Files outside ``AmazonS3`` storages are ignored.

    Args:
        file_ref: File whose metadata was created or updated.
        reconciler: Reconciler to use, a default one if omitted.

    Returns:
        Results for the file followed by one per derivative.
    """
    reconciler = reconciler or ObjectReconciler()
    results: list[ReconcileResult] = []

    try:
        if not file_ref.storage.is_remote_object_storage:
            return results

        results.append(reconciler.reconcile(file_ref))

        if not file_ref.is_derived:
            derivatives = [
                derivative
                for derivative in list_derivatives(file_ref)
                if derivative.storage.is_remote_object_storage
            ]
            results.extend(reconciler.reconcile_many(derivatives))
    except Exception:
        logger.exception(
            'Cache-Control synchronization failed for %s',
            file_ref,
        )

    return results


def on_derivative_processed(
    processed_file: ProcessedFile,
    remote_mtime: datetime | float | None,
    reconciler: ObjectReconciler | None = None,
) -> ReconcileResult | None:
    """Synchronize a freshly processed derivative.

    Only objects modified within the freshness window are touched.

    Args:
        processed_file: Derivative written by file processing.
        remote_mtime: Modification time of the remote object.
        reconciler: Reconciler to use, a default one if omitted.

    Returns:
        Reconcile result, or None for non-S3 storages and failures.
    """
    reconciler = reconciler or ObjectReconciler()

    try:
        if not processed_file.storage.is_remote_object_storage:
            return None
        return reconciler.reconcile_if_recently_modified(
            processed_file,
            remote_mtime,
        )
    except Exception:
        logger.exception(
            'Cache-Control synchronization failed for %s',
            processed_file,
        )
        return None


def on_derivative_written(
    processed_file: ProcessedFile,
    reconciler: ObjectReconciler | None = None,
) -> ReconcileResult | None:
    """Synchronize a processed derivative whose mtime was not reported.

    The remote object's own LastModified decides whether it was
    written within the freshness window.

    Args:
        processed_file: Derivative written by file processing.
        reconciler: Reconciler to use, a default one if omitted.

    Returns:
        Reconcile result, or None for non-S3 storages and failures.
    """
    reconciler = reconciler or ObjectReconciler()

    try:
        if not processed_file.storage.is_remote_object_storage:
            return None
        return reconciler.reconcile_if_remote_recently_modified(
            processed_file,
        )
    except Exception:
        logger.exception(
            'Cache-Control synchronization failed for %s',
            processed_file,
        )
        return None
