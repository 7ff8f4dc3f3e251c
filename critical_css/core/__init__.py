"""Core functionality for critical CSS extraction."""

from .engine import CriticalCss, DocumentContext, DocumentState
from .matcher import DropResult, drop_unused_css
from .options import Options, Whitelist, load_options
from .pruner import Pruner
from .session import Session

__all__ = [
    'CriticalCss',
    'DocumentContext',
    'DocumentState',
    'DropResult',
    'drop_unused_css',
    'Options',
    'Whitelist',
    'load_options',
    'Pruner',
    'Session',
]
