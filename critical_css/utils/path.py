"""Path handling functionality."""

import fnmatch
import os
import re
from typing import Callable, Iterable, Optional, Pattern, Union

from .config import CSS_EXTENSIONS

Exclude = Optional[Union[Pattern, Callable[[str], bool]]]

_REMOTE_URL = re.compile(r'^(https?:)?//', re.IGNORECASE)
_QUERY = re.compile(r'\?[^/]*$')

def strip_query(href: str) -> str:
    """Remove a trailing ``?query`` from an href."""
    return _QUERY.sub('', href)

def is_remote_url(href: str) -> bool:
    """Check if href points to another origin (``http://``, ``https://``, ``//``).

    Args:
        href: Href to check

    Returns:
        True if remote
    """
    return bool(_REMOTE_URL.match(href))

def has_css_extension(path: str) -> bool:
    """Check if path (query string ignored) is a CSS file."""
    return os.path.splitext(strip_query(path))[1].lower() in CSS_EXTENSIONS

def is_excluded(href: str, exclude: Exclude = None) -> bool:
    """Check if a stylesheet must be left untouched.

    Remote stylesheets are always excluded. Otherwise the configured regex
    (``search`` semantics) or predicate decides, and at last anything that
    is not a ``.css`` file is excluded.

    Args:
        href: Stylesheet href or path
        exclude: None, a compiled pattern or a predicate

    Returns:
        True if excluded
    """
    if is_remote_url(href):
        return True
    if isinstance(exclude, re.Pattern):
        if exclude.search(href):
            return True
    elif callable(exclude):
        if exclude(href):
            return True
    return not has_css_extension(href)

def normalize_public_path(public_path: str) -> str:
    """Normalize a public path to the ``prefix/`` form ('' when empty)."""
    prefix = (public_path or '').strip('/')
    return f"{prefix}/" if prefix else ''

def resolve_stylesheet_path(href: str, base_path: str, public_path: str = '') -> str:
    """Resolve a stylesheet href to an absolute file path.

    Args:
        href: Href attribute of the link
        base_path: Directory the hrefs are relative to
        public_path: Public prefix prepended to hrefs by the build

    Returns:
        Absolute path of the stylesheet
    """
    path = strip_query(href).lstrip('/')
    prefix = normalize_public_path(public_path)
    if prefix and path.startswith(prefix):
        path = path[len(prefix):].lstrip('/')
    return os.path.normpath(os.path.join(os.path.abspath(base_path), path))

def match_patterns(relative_path: str, patterns: Iterable[str]) -> bool:
    """Check if a file matches one of the glob patterns.

    Patterns without a ``/`` are matched against the basename, others
    against the path relative to the base directory.

    Args:
        relative_path: Path relative to the base directory, ``/`` separated
        patterns: Glob patterns

    Returns:
        True if one pattern matches
    """
    basename = relative_path.rsplit('/', 1)[-1]
    for pattern in patterns:
        if '/' in pattern:
            target = relative_path
            if pattern.startswith('./'):
                pattern = pattern[2:]
        else:
            target = basename
        if fnmatch.fnmatchcase(target, pattern):
            return True
    return False

# Exported functions
__all__ = [
    'Exclude',
    'strip_query',
    'is_remote_url',
    'has_css_extension',
    'is_excluded',
    'normalize_public_path',
    'resolve_stylesheet_path',
    'match_patterns',
]
