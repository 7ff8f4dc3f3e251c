"""File system access for stylesheet sources."""

import os
from dataclasses import dataclass
from typing import Dict, List

import aiofiles
import aiofiles.os
from typing_extensions import Protocol

from ..utils.logging import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class PathStat:
    """Minimal stat result."""
    exists: bool
    is_dir: bool = False
    size: int = 0

class FileSystem(Protocol):
    """Asynchronous file system used to read, write and delete stylesheets."""

    async def read_file(self, path: str) -> bytes: ...

    async def write_file(self, path: str, data: bytes) -> None: ...

    async def delete_file(self, path: str) -> None: ...

    async def list_directory(self, path: str) -> List[str]: ...

    async def stat_path(self, path: str) -> PathStat: ...

class LocalFileSystem:
    """Local disk access through aiofiles."""

    async def read_file(self, path: str) -> bytes:
        async with aiofiles.open(path, 'rb') as f:
            return await f.read()

    async def write_file(self, path: str, data: bytes) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        async with aiofiles.open(path, 'wb') as f:
            await f.write(data)
        logger.debug(f"Wrote {len(data)} bytes to {path}")

    async def delete_file(self, path: str) -> None:
        await aiofiles.os.remove(path)
        logger.debug(f"Deleted {path}")

    async def list_directory(self, path: str) -> List[str]:
        return sorted(await aiofiles.os.listdir(path))

    async def stat_path(self, path: str) -> PathStat:
        try:
            result = await aiofiles.os.stat(path)
        except FileNotFoundError:
            return PathStat(exists=False)
        return PathStat(
            exists=True,
            is_dir=await aiofiles.os.path.isdir(path),
            size=result.st_size,
        )

class MemoryFileSystem:
    """Dict backed file system.

    Keys are normalized absolute paths. Directories are implied by the
    files they contain.
    """

    def __init__(self, files: Dict[str, bytes] = None):
        self.files: Dict[str, bytes] = {}
        for path, data in (files or {}).items():
            self.files[self._key(path)] = data if isinstance(data, bytes) else data.encode('utf-8')

    @staticmethod
    def _key(path: str) -> str:
        return os.path.normpath(os.path.abspath(path))

    async def read_file(self, path: str) -> bytes:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(path)
        return self.files[key]

    async def write_file(self, path: str, data: bytes) -> None:
        self.files[self._key(path)] = data

    async def delete_file(self, path: str) -> None:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(path)
        del self.files[key]

    async def list_directory(self, path: str) -> List[str]:
        prefix = self._key(path).rstrip(os.sep) + os.sep
        entries = set()
        for key in self.files:
            if key.startswith(prefix):
                entries.add(key[len(prefix):].split(os.sep, 1)[0])
        if not entries and not await self._is_dir(prefix):
            raise FileNotFoundError(path)
        return sorted(entries)

    async def _is_dir(self, prefix: str) -> bool:
        return any(key.startswith(prefix) for key in self.files)

    async def stat_path(self, path: str) -> PathStat:
        key = self._key(path)
        if key in self.files:
            return PathStat(exists=True, size=len(self.files[key]))
        if await self._is_dir(key.rstrip(os.sep) + os.sep):
            return PathStat(exists=True, is_dir=True)
        return PathStat(exists=False)

# Exported classes
__all__ = ['PathStat', 'FileSystem', 'LocalFileSystem', 'MemoryFileSystem']
