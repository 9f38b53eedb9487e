"""Exceptions for files app."""


class FileResolutionError(Exception):
    """Raised when a file identifier cannot be resolved to a File."""

    def __init__(self, file_id: object) -> None:
        """Initialize FileResolutionError.

        Args:
            file_id: The identifier that could not be resolved.
        """
        self.file_id = file_id
        super().__init__(f'File could not be resolved: {file_id!r}')
