"""Signals sent by the files app.

``post_file_process`` is sent by the file processing pipeline after a
processed file (thumbnail, preview...) has been written to its storage.

Keyword arguments:
    processed_file: The ProcessedFile that was written.
    remote_mtime: Optional modification time of the written object as
        reported by the storage driver.
"""

from django.dispatch import Signal

post_file_process = Signal()
