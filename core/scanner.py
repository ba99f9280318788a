"""
File Scanner
Recursively discovers Rust source files, skipping hidden entries.
"""

import os
from pathlib import Path
from typing import Iterable, Iterator, Union

from core.errors import TraversalError

RUST_EXTENSIONS = ('.rs',)


def is_hidden(name: str) -> bool:
    return name.startswith('.')


class FileScanner:
    def __init__(self, root_path: Union[str, Path], extensions: Iterable[str] = RUST_EXTENSIONS):
        self.root_path = Path(root_path)
        self.extensions = tuple(extensions)

    def scan(self) -> Iterator[Path]:
        """
        Lazily yield candidate files under the root.
        Hidden directories are pruned before descent; any unreadable directory
        aborts the walk with a TraversalError.
        """
        if not self.root_path.exists():
            raise TraversalError(self.root_path, "root does not exist")
        if not self.root_path.is_dir():
            raise TraversalError(self.root_path, "root is not a directory")

        for root, dirs, files in os.walk(self.root_path, onerror=self._on_error):
            dirs[:] = [d for d in dirs if not is_hidden(d)]

            for file in files:
                if is_hidden(file) or not file.endswith(self.extensions):
                    continue
                yield Path(root) / file

    @staticmethod
    def _on_error(error: OSError):
        raise TraversalError(error.filename or "<unknown>", error.strerror or str(error))
