"""
Error Types
Failures raised while walking, scanning, or fetching a repository.
"""

from pathlib import Path
from typing import Union


class UnsafeCounterError(Exception):
    """Base class for every error this project raises."""


class TraversalError(UnsafeCounterError):
    """The directory tree could not be fully enumerated."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class ScanError(UnsafeCounterError):
    """One candidate file could not be analysed (unreadable or unparseable)."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class CloneError(UnsafeCounterError):
    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"Failed to clone {url}\n> {message}")
