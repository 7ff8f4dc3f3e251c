"""Extract the critical CSS of HTML documents and inline it."""

from .utils.config import VERSION
from .utils.error import (
    CriticalCssError, ConfigurationError, CssParseError, FileOperationError,
    StylesheetNotFoundError, StylesheetWriteError,
)
from .core.engine import CriticalCss
from .core.options import Options, load_options
from .managers.filesystem import FileSystem, LocalFileSystem, MemoryFileSystem
from .managers.assets import AssetCriticalCss, AssetStore, DictAssetStore, process_assets

__version__ = VERSION

__all__ = [
    'CriticalCss',
    'Options',
    'load_options',
    'FileSystem',
    'LocalFileSystem',
    'MemoryFileSystem',
    'AssetStore',
    'AssetCriticalCss',
    'DictAssetStore',
    'process_assets',
    'CriticalCssError',
    'ConfigurationError',
    'CssParseError',
    'FileOperationError',
    'StylesheetNotFoundError',
    'StylesheetWriteError',
]
