"""Exception types raised by the converter"""


class ConverterError(Exception):
    """Base class for all converter errors."""


class MissingArgumentError(ConverterError):
    """No input directory was supplied."""

    def __init__(self, message: str = 'Directory path not provided.'):
        super().__init__(message)


class DirectoryError(ConverterError):
    """The input directory does not exist or cannot be listed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f'{path}: {reason}')


class FileParseError(ConverterError):
    """A single CSV file could not be parsed.

    Non-fatal: the worker that raised it skips the file and moves on.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f'{path}: {reason}')
