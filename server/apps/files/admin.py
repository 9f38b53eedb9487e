"""Django admin configuration for files app."""

from typing import override

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.cache_control.admin import synchronize_cache_control
from server.apps.files.models import File, FileMetadata, ProcessedFile, Storage


@admin.register(Storage)
class StorageAdmin(admin.ModelAdmin[Storage]):
    """Admin interface for Storage model."""

    list_display = [
        'name',
        'driver',
        'bucket_display',
    ]

    list_filter = [
        'driver',
    ]

    search_fields = [
        'name',
    ]

    def bucket_display(self, obj: Storage) -> str:
        """Display bucket of S3 storages.

        Args:
            obj: Storage instance.

        Returns:
            Bucket name or dash for other drivers.
        """
        if obj.is_remote_object_storage:
            return str((obj.configuration or {}).get('bucket') or '-')
        return '-'
    bucket_display.short_description = 'Bucket'  # type: ignore[attr-defined]


class FileMetadataInline(admin.StackedInline):  # type: ignore[type-arg]
    """Edit metadata on the file page (saving it triggers a sync)."""

    model = FileMetadata
    can_delete = False


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'identifier',
        'storage',
        'mime_type',
        'modified_at',
    ]

    list_filter = [
        'storage',
        'mime_type',
    ]

    search_fields = [
        'identifier',
    ]

    readonly_fields = [
        'created_at',
        'modified_at',
    ]

    inlines = [FileMetadataInline]
    actions = [synchronize_cache_control]

    @override
    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('storage')


@admin.register(ProcessedFile)
class ProcessedFileAdmin(admin.ModelAdmin[ProcessedFile]):
    """Admin interface for ProcessedFile model."""

    list_display = [
        'identifier',
        'original_file',
        'task_type',
        'storage',
        'modified_at',
    ]

    list_filter = [
        'task_type',
        'storage',
    ]

    search_fields = [
        'identifier',
        'original_file__identifier',
    ]

    readonly_fields = [
        'created_at',
        'modified_at',
    ]

    actions = [synchronize_cache_control]

    @override
    def get_queryset(self, request: HttpRequest) -> QuerySet[ProcessedFile]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'storage',
            'original_file',
            'original_file__storage',
        )
