"""Exceptions."""


class FatalError(Exception):
    """Structural problem that aborts the build without writing an archive."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
