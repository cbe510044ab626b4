"""File access for request sources."""

import os
from typing import BinaryIO, Protocol


class FileStore(Protocol):
    """Where source images are read from."""

    def stat(self, path: str) -> os.stat_result:
        ...

    def open(self, path: str) -> BinaryIO:
        ...


class LocalFileStore:
    """Sources on the local filesystem."""

    def stat(self, path: str) -> os.stat_result:
        return os.stat(path)

    def open(self, path: str) -> BinaryIO:
        return open(path, "rb")
