"""Signal handlers for cache_control app."""

import logging
from datetime import datetime

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from server.apps.cache_control.handlers import (
    on_derivative_processed,
    on_derivative_written,
    on_file_upserted,
)
from server.apps.files.exceptions import FileResolutionError
from server.apps.files.logic.file_operations import resolve_file
from server.apps.files.models import FileMetadata, ProcessedFile
from server.apps.files.signals import post_file_process

logger = logging.getLogger(__name__)


@receiver(
    post_save,
    sender=FileMetadata,
    dispatch_uid='cache_control_sync_on_metadata_save',
)
def sync_cache_control_on_metadata_save(
    sender: type[FileMetadata],
    instance: FileMetadata,
    **kwargs: object,
) -> None:
    """Synchronize Cache-Control when file metadata is created or updated.

    Args:
        sender: The FileMetadata model class.
        instance: The saved FileMetadata instance.
        **kwargs: Additional signal arguments.
    """
    if not settings.CACHE_CONTROL_ENABLED:
        return

    try:
        file_instance = resolve_file(instance.file_id)
    except FileResolutionError:
        # Metadata of a file that is gone: nothing to synchronize
        logger.warning(
            'Skipping Cache-Control sync, file not resolvable: %s',
            instance.file_id,
        )
        return

    on_file_upserted(file_instance)


@receiver(
    post_file_process,
    dispatch_uid='cache_control_sync_on_file_process',
)
def sync_cache_control_on_file_process(
    sender: object,
    processed_file: ProcessedFile,
    remote_mtime: datetime | float | None = None,
    **kwargs: object,
) -> None:
    """Synchronize Cache-Control of a freshly processed file.

    When the processing pipeline does not report the remote
    modification time, the object's LastModified is used instead.

    Args:
        sender: Sender of the signal (processing service).
        processed_file: The written ProcessedFile.
        remote_mtime: Modification time reported by the storage driver.
        **kwargs: Additional signal arguments.
    """
    if not settings.CACHE_CONTROL_ENABLED:
        return

    if remote_mtime is None:
        on_derivative_written(processed_file)
    else:
        on_derivative_processed(processed_file, remote_mtime)
