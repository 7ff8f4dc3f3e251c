"""Stylesheet discovery, loading and writing."""

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

import chardet
from bs4 import Tag

from ..core.options import Options
from ..core.session import Session
from ..utils.config import DEFAULT_ENCODING
from ..utils.error import StylesheetWriteError
from ..utils.logging import Logger, ProcessId, get_logger
from ..utils.path import is_excluded, match_patterns, resolve_stylesheet_path
from .filesystem import FileSystem

module_logger = get_logger(__name__)

@dataclass
class StylesheetSource:
    """Decoded stylesheet content and its size in bytes."""
    content: str
    size: int

@dataclass
class Stylesheet:
    """An external stylesheet referenced by a document.

    ``link`` is the ``<link>`` tag it comes from, None for additional
    stylesheets.
    """
    path: str
    filename: str
    link: Optional[Tag] = None

def decode_content(data: bytes) -> str:
    """Decode stylesheet bytes, UTF-8 first then the detected encoding."""
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        encoding = chardet.detect(data).get('encoding') or 'latin-1'
        module_logger.debug(f"Decoding stylesheet as {encoding}")
        return data.decode(encoding, errors='replace')

class StylesheetResolver:
    """Resolve stylesheet hrefs and read, write or delete their sources."""

    def __init__(self, options: Options, session: Session, file_system: FileSystem,
                 logger: Logger):
        self.options = options
        self.session = session
        self.file_system = file_system
        self.logger = logger

    def resolve_path(self, href: str) -> str:
        return resolve_stylesheet_path(href, self.options.path, self.options.public_path)

    def is_excluded(self, href: str) -> bool:
        return is_excluded(href, self.options.exclude)

    async def read(self, path: str) -> bytes:
        """Read the raw bytes of a stylesheet."""
        return await self.file_system.read_file(path)

    async def load(self, path: str, process_id: ProcessId = None) -> Optional[StylesheetSource]:
        """Load a stylesheet, once per path until the session is cleared.

        Args:
            path: Absolute stylesheet path
            process_id: Id used to log a missing stylesheet

        Returns:
            The stylesheet source, None if it cannot be read
        """
        return await self.session.memoize(path, lambda: self._load(path, process_id))

    async def _load(self, path: str, process_id: ProcessId) -> Optional[StylesheetSource]:
        try:
            data = await self.read(path)
        except (OSError, KeyError) as e:
            module_logger.debug(f"Failed to read {path}: {e}")
            self.logger.warn(f'External stylesheet "{path}" not found.', process_id)
            return None

        return StylesheetSource(content=decode_content(data), size=len(data))

    async def _walk(self, directory: str, prefix: str = '') -> List[str]:
        try:
            entries = await self.file_system.list_directory(directory)
        except OSError as e:
            module_logger.debug(f"Cannot list {directory}: {e}")
            return []

        files = []
        for name in entries:
            if name.startswith('.'):
                continue
            path = os.path.join(directory, name)
            relative = f"{prefix}{name}"
            stat = await self.file_system.stat_path(path)
            if stat.is_dir:
                files.extend(await self._walk(path, f"{relative}/"))
            elif stat.exists:
                files.append(relative)
        return files

    async def list_candidates(self) -> List[str]:
        """Files under the base path, relative and ``/`` separated."""
        return await self._walk(os.path.abspath(self.options.path))

    async def discover_additional(self, patterns: Optional[Iterable[str]] = None,
                                  process_id: ProcessId = None) -> List[Stylesheet]:
        """Find the additional stylesheets matching glob patterns.

        Args:
            patterns: Glob patterns, the ``additional_stylesheets`` option by default
            process_id: Id used in log messages

        Returns:
            Matching stylesheets, in listing order and without duplicates
        """
        patterns = list(self.options.additional_stylesheets if patterns is None else patterns)
        if not patterns:
            return []

        stylesheets = []
        seen = set()
        for relative in await self.list_candidates():
            if relative in seen or not match_patterns(relative, patterns):
                continue
            seen.add(relative)

            if self.is_excluded(relative):
                self.logger.debug(f'Excluded additional stylesheet "{relative}".', process_id)
                continue

            stylesheets.append(Stylesheet(
                path=os.path.normpath(os.path.join(os.path.abspath(self.options.path), relative)),
                filename=os.path.basename(relative),
            ))

        return stylesheets

    async def write(self, path: str, content: str) -> None:
        """Write a stylesheet back.

        Raises:
            StylesheetWriteError: If the write fails
        """
        try:
            await self.file_system.write_file(path, content.encode(DEFAULT_ENCODING))
        except (OSError, KeyError) as e:
            raise StylesheetWriteError(path, str(e)) from e

    async def delete(self, path: str) -> bool:
        """Delete a stylesheet, ignoring failures.

        Returns:
            True if the stylesheet was deleted
        """
        try:
            await self.file_system.delete_file(path)
        except (OSError, KeyError) as e:
            module_logger.debug(f"Failed to delete {path}: {e}")
            return False
        return True

# Exported names
__all__ = ['Stylesheet', 'StylesheetSource', 'StylesheetResolver', 'decode_content']
