"""Exceptions raised by the where-used analyzer.

Terminal failures (bad input, missing repository) abort the whole scan.
MarkupError is local to a single flow file and is absorbed by the matcher.
"""
from typing import Optional


class WhereUsedError(Exception):
    """Base class for all analyzer failures."""


class InvalidInput(WhereUsedError, ValueError):
    """No usable target class names were supplied."""


class RepositoryNotFound(WhereUsedError, FileNotFoundError):
    """The repository root does not exist or cannot be accessed."""


class MarkupError(WhereUsedError, ValueError):
    """Flow markup could not be tokenized (unterminated tag or comment)."""


class WorkerError(WhereUsedError):
    """The isolated worker reported a failure or died without answering.

    Attributes:
        stack: Traceback text reported by the worker process, if any
    """

    def __init__(self, message: str, stack: Optional[str] = None):
        super().__init__(message)
        self.stack = stack


class WorkerTimeout(WorkerError, TimeoutError):
    """The isolated worker did not answer before the deadline."""
