"""Port for the storage holding the local config snapshot."""

import abc

from ..models.common import FilePath


class FileSystem(abc.ABC):
    """Reads and writes snapshot files as text."""

    @abc.abstractmethod
    async def read_file(self, file_path: FilePath) -> str:
        """Returns the whole content of ``file_path``.

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: If the file cannot be read.
        """
        pass

    @abc.abstractmethod
    async def write_file(self, file_path: FilePath, content: str) -> None:
        """Replaces ``file_path`` with ``content``.

        Readers never observe a partially written file.

        Raises:
            OSError: If the file cannot be written.
        """
        pass

    @abc.abstractmethod
    async def file_exists(self, file_path: FilePath) -> bool:
        pass
