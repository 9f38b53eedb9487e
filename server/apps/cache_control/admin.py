"""Django admin actions for cache_control app."""

from collections import Counter

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.cache_control.handlers import on_file_upserted
from server.apps.cache_control.logic.reconciler import ObjectReconciler
from server.apps.files.models import FileRef


@admin.action(description='Synchronize Cache-Control of remote objects')
def synchronize_cache_control(
    modeladmin: admin.ModelAdmin,  # type: ignore[type-arg]
    request: HttpRequest,
    queryset: QuerySet[FileRef],  # type: ignore[type-var]
) -> None:
    """Force Cache-Control synchronization of selected files.

    Originals are synchronized together with their derivatives.

    Args:
        modeladmin: Admin the action was triggered from.
        request: HTTP request.
        queryset: Selected files or processed files.
    """
    reconciler = ObjectReconciler()
    outcomes: Counter[str] = Counter()

    for file_ref in queryset:
        for result in on_file_upserted(file_ref, reconciler):
            outcomes[str(result.reason or result.status)] += 1

    if not outcomes:
        modeladmin.message_user(
            request,
            'No selected file lives in an S3 storage.',
            messages.WARNING,
        )
        return

    summary = ', '.join(
        f'{outcome}: {count}'
        for outcome, count in sorted(outcomes.items())
    )
    modeladmin.message_user(request, f'Cache-Control synchronized ({summary})')
