"""Business logic for file registry operations."""

import logging

from django.db.models import QuerySet

from server.apps.files.exceptions import FileResolutionError
from server.apps.files.models import File, ProcessedFile, Storage

logger = logging.getLogger(__name__)


def resolve_file(file_id: int | str) -> File:
    """Resolve an original file by its id.

    Args:
        file_id: Primary key of the file (as sent by notifications).

    Returns:
        File instance with its storage loaded.

    Raises:
        FileResolutionError: If the id is malformed or unknown.
    """
    try:
        return File.objects.select_related('storage').get(pk=file_id)
    except (File.DoesNotExist, ValueError, TypeError) as error:
        logger.info('File could not be resolved: %r', file_id)
        raise FileResolutionError(file_id) from error


def list_derivatives(file_instance: File) -> list[ProcessedFile]:
    """List every processed file derived from an original.

    Storages and the original are joined so callers can use the
    results without further queries.

    Args:
        file_instance: Original file.

    Returns:
        Processed files of the original.
    """
    return list(
        ProcessedFile.objects.filter(
            original_file=file_instance,
        ).select_related(
            'storage',
            'original_file',
            'original_file__storage',
        ),
    )


def files_in_storage(storage: Storage) -> QuerySet[File]:
    """Get all original files of a storage.

    Args:
        storage: Storage to list.

    Returns:
        QuerySet of files ordered by identifier.
    """
    return File.objects.filter(
        storage=storage,
    ).select_related('storage').order_by('identifier')


def remote_object_storages() -> QuerySet[Storage]:
    """Get storages backed by an S3-compatible bucket.

    Returns:
        QuerySet of ``AmazonS3`` storages.
    """
    return Storage.objects.filter(driver=Storage.Driver.AMAZON_S3)
