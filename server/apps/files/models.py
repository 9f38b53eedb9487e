"""Database models for files app."""

from pathlib import Path
from typing import Final, final, override

from django.db import models

from server.apps.files.infrastructure.metadata import get_file_extension

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_IDENTIFIER_MAX_LENGTH: Final = 1024
_MIME_TYPE_MAX_LENGTH: Final = 255
_DRIVER_MAX_LENGTH: Final = 32
_TASK_TYPE_MAX_LENGTH: Final = 64
_TITLE_MAX_LENGTH: Final = 255


@final
class Storage(models.Model):
    """Storage backend holding files.

    ``configuration`` is the driver configuration. For ``AmazonS3``
    storages it carries the bucket and an optional base path inside
    the bucket, connection settings (``endpoint``, ``region``, ``key``,
    ``secret``) and an optional ``cacheControl`` rule table.
    """

    class Driver(models.TextChoices):
        """Storage drivers known to the file registry."""

        LOCAL = 'Local', 'Local filesystem'
        AMAZON_S3 = 'AmazonS3', 'Amazon S3 compatible'

    name = models.CharField(max_length=_NAME_MAX_LENGTH, unique=True)

    driver = models.CharField(
        max_length=_DRIVER_MAX_LENGTH,
        choices=Driver.choices,
        default=Driver.LOCAL,
    )

    configuration = models.JSONField(
        default=dict,
        blank=True,
        help_text='Driver configuration: bucket, basePath, endpoint, ...',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'Storage'  # type: ignore[mutable-override]
        verbose_name_plural = 'Storages'  # type: ignore[mutable-override]
        ordering = ['name']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.name} ({self.driver})'

    @property
    def is_remote_object_storage(self) -> bool:
        """Whether files of this storage live in an S3-compatible bucket."""
        return self.driver == self.Driver.AMAZON_S3


@final
class File(models.Model):
    """Original file registered in a storage.

    The identifier is the path of the file inside its storage, e.g.
    ``/images/logo.png``. It is unique per storage.
    """

    storage = models.ForeignKey(
        Storage,
        on_delete=models.CASCADE,
        related_name='files',
    )

    identifier = models.CharField(
        max_length=_IDENTIFIER_MAX_LENGTH,
        help_text='Path inside the storage: /folder/file.ext',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        blank=True,
        default='',
    )

    size_bytes = models.BigIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['storage', 'identifier']

        constraints = [
            models.UniqueConstraint(
                fields=['storage', 'identifier'],
                name='files_storage_identifier_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.storage_id}:{self.identifier}'

    @property
    def is_derived(self) -> bool:
        """Originals are never derived."""
        return False

    @property
    def original_file(self) -> None:
        """Originals have no parent file."""
        return None

    def get_filename(self) -> str:
        """Extract filename from identifier.

        Example: '/images/logo.png' -> 'logo.png'

        Returns:
            Filename without path.
        """
        return Path(self.identifier).name

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'logo.PNG' -> 'png'

        Returns:
            Extension without dot (lowercase).
        """
        return get_file_extension(self.identifier)


@final
class FileMetadata(models.Model):
    """Editorial metadata record of an original file.

    Creating or updating this record is the notification that makes
    the remote object's Cache-Control header get re-synchronized.
    """

    file = models.OneToOneField(
        File,
        on_delete=models.CASCADE,
        related_name='metadata',
    )

    title = models.CharField(
        max_length=_TITLE_MAX_LENGTH,
        blank=True,
        default='',
    )
    alternative = models.TextField(blank=True, default='')
    width = models.PositiveIntegerField(default=0)
    height = models.PositiveIntegerField(default=0)

    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File metadata'  # type: ignore[mutable-override]
        verbose_name_plural = 'File metadata'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'Metadata of {self.file_id}'


@final
class ProcessedFile(models.Model):
    """Derivative of an original file (thumbnail, cropped variant...).

    Lives at its own identifier, usually in the same storage as the
    original.
    """

    original_file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='processed_files',
    )

    storage = models.ForeignKey(
        Storage,
        on_delete=models.CASCADE,
        related_name='processed_files',
    )

    identifier = models.CharField(max_length=_IDENTIFIER_MAX_LENGTH)

    task_type = models.CharField(
        max_length=_TASK_TYPE_MAX_LENGTH,
        default='Image.Preview',
    )

    configuration = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Processed file'  # type: ignore[mutable-override]
        verbose_name_plural = 'Processed files'  # type: ignore[mutable-override]
        ordering = ['original_file', 'identifier']

        constraints = [
            models.UniqueConstraint(
                fields=['storage', 'identifier'],
                name='processed_files_storage_identifier_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.storage_id}:{self.identifier} ({self.task_type})'

    @property
    def is_derived(self) -> bool:
        """Processed files are always derived from an original."""
        return True


# Anything the cache control subsystem can synchronize
FileRef = File | ProcessedFile
