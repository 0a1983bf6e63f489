"""Local-disk storage for config snapshots, backed by aiofiles.

Snapshots are written to a sibling ``.tmp`` file and moved into place, so
an interrupted download never leaves a truncated config file behind.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from rbxconfigs.domain.interfaces.filesystem import FileSystem
from rbxconfigs.domain.models.common import FilePath

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
# Hand-edited snapshots from some Windows editors start with a BOM
READ_ENCODING = "utf-8-sig"


def _temp_path(path: Path) -> Path:
    return path.with_name(path.name + TEMP_SUFFIX)


class LocalFileSystem(FileSystem):
    """FileSystem implementation for snapshot files on the local disk."""

    async def read_file(self, file_path: FilePath) -> str:
        path = Path(file_path)
        if not await aiofiles.os.path.isfile(path):
            raise FileNotFoundError(f"File not found: {file_path}")

        async with aiofiles.open(path, mode="r", encoding=READ_ENCODING) as f:
            content = await f.read()
        logger.debug(f"Read {len(content)} characters from {path}")
        return content

    async def write_file(self, file_path: FilePath, content: str) -> None:
        path = Path(file_path)
        temp = _temp_path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiofiles.open(temp, mode="w", encoding="utf-8", newline="\n") as f:
                await f.write(content)
            await aiofiles.os.replace(temp, path)
        except OSError:
            logger.error(f"Failed to write snapshot {path}", exc_info=True)
            if await aiofiles.os.path.exists(temp):
                await aiofiles.os.remove(temp)
            raise
        logger.debug(f"Wrote {len(content)} characters to {path}")

    async def file_exists(self, file_path: FilePath) -> bool:
        return await aiofiles.os.path.isfile(Path(file_path))
