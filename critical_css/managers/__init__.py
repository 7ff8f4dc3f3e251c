"""Stylesheet sources: file systems and resolution."""

from .filesystem import FileSystem, PathStat, LocalFileSystem, MemoryFileSystem
from .stylesheet import Stylesheet, StylesheetSource, StylesheetResolver

# Exported classes
__all__ = [
    'FileSystem',
    'PathStat',
    'LocalFileSystem',
    'MemoryFileSystem',
    'Stylesheet',
    'StylesheetSource',
    'StylesheetResolver',
]
