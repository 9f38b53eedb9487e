"""Management command to force Cache-Control synchronization."""

import logging
from collections import Counter
from collections.abc import Iterator
from typing import Any, Final

from django.core.management.base import BaseCommand, CommandError

from server.apps.cache_control.exceptions import ConfigurationError
from server.apps.cache_control.handlers import on_file_upserted
from server.apps.cache_control.logic.reconciler import ObjectReconciler
from server.apps.files.logic.file_operations import (
    files_in_storage,
    list_derivatives,
    remote_object_storages,
)
from server.apps.files.models import File, Storage

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Synchronize Cache-Control of every file in S3 storages.

    Unlike post-processing events this ignores modification times,
    every original and each of its derivatives is reconciled.
    """

    help = 'Synchronize Cache-Control headers of remote objects'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--storage',
            help='Name of a single storage to synchronize',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show desired Cache-Control values without remote calls',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=(
                'Original files loaded per query '
                f'(default: {_DEFAULT_BATCH_SIZE})'
            ),
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the synchronization command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the requested storage is unknown or the
                batch size is not positive.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        if batch_size < 1:
            raise CommandError('--batch-size must be at least 1')

        storages = remote_object_storages()
        if options['storage']:
            storages = storages.filter(name=options['storage'])
            if not storages.exists():
                raise CommandError(
                    f'No S3 storage named {options["storage"]!r}',
                )

        reconciler = ObjectReconciler()
        outcomes: Counter[str] = Counter()

        for storage in storages:
            self.stdout.write(f'Synchronizing storage: {storage.name}')
            for file_instance in self._files(storage, batch_size):
                if dry_run:
                    self._report_desired_state(reconciler, file_instance)
                    outcomes['planned'] += 1
                    continue

                for result in on_file_upserted(file_instance, reconciler):
                    outcomes[str(result.reason or result.status)] += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Would synchronize {outcomes["planned"]} files',
                ),
            )
            return

        summary = ', '.join(
            f'{outcome}: {count}'
            for outcome, count in sorted(outcomes.items())
        )
        self.stdout.write(
            self.style.SUCCESS(
                f'Synchronized {sum(outcomes.values())} objects ({summary})',
            ),
        )

    def _files(self, storage: Storage, batch_size: int) -> Iterator[File]:
        # Keyset pages on identifier, unique within a storage
        last_identifier = None
        while True:
            files = files_in_storage(storage)
            if last_identifier is not None:
                files = files.filter(identifier__gt=last_identifier)
            batch = list(files[:batch_size])
            yield from batch
            if len(batch) < batch_size:
                return
            last_identifier = batch[-1].identifier

    def _report_desired_state(
        self,
        reconciler: ObjectReconciler,
        file_instance: File,
    ) -> None:
        for file_ref in (file_instance, *list_derivatives(file_instance)):
            try:
                key, directive = reconciler.desired_state(file_ref)
            except ConfigurationError as exc:
                self.stderr.write(f'Cannot synchronize {file_ref}: {exc}')
                logger.warning('Invalid configuration for %s', file_ref)
                continue
            self.stdout.write(
                f'Would set {key}: {directive or "(no policy)"}',
            )
