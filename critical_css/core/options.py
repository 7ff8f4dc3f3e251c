"""Engine options."""

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Tuple, Union

import orjson

from ..utils.config import (
    DEFAULT_PATH, DEFAULT_PUBLIC_PATH, DEFAULT_EXTERNAL_THRESHOLD,
    DEFAULT_LOG_LEVEL, LOG_LEVELS, DEFAULT_EVENT_HANDLERS, EVENT_HANDLERS,
)
from ..utils.error import ConfigurationError
from ..utils.escape import restore_selectors
from ..utils.logging import Logger
from ..utils.path import Exclude
from .matcher import normalize_selector

WhitelistEntry = Union[str, Pattern]

# Option names used by JSON configuration files written for the
# JavaScript tooling.
ALIASES = {
    'publicPath': 'public_path',
    'additionalStylesheets': 'additional_stylesheets',
    'externalThreshold': 'external_threshold',
    'logLevel': 'log_level',
    'pruneSource': 'prune_source',
    'asyncLoadExternalStylesheets': 'async_load',
    'preloadExternalStylesheets': 'preload',
    'noscriptFallback': 'noscript_fallback',
    'fontFace': 'font_face',
    'autoRemoveStyleTags': 'auto_remove_style_tags',
    'eventHandlers': 'event_handlers',
}

@dataclass(frozen=True)
class Options:
    """Immutable engine configuration.

    Attributes:
        path: Base directory stylesheet hrefs are resolved against
        public_path: Prefix stripped from hrefs before resolution
        additional_stylesheets: Glob patterns of stylesheets to process too
        external_threshold: Stylesheets smaller than this (bytes) are inlined whole
        log_level: One of debug, info, warn, error, silent
        logger: Custom logger, the colored default logger when None
        internal: Process ``<style>`` tags
        external: Process ``<link rel="stylesheet">`` and additional stylesheets
        merge: Merge ``<style>`` tags into the first one
        prune_source: Allow removing inlined rules from the stylesheets
        async_load: Load external stylesheets asynchronously
        preload: Insert ``<link rel="preload">`` for external stylesheets
        noscript_fallback: Insert a ``<noscript>`` copy of async links
        whitelist: Selectors (strings or patterns) always considered critical
        exclude: Pattern or predicate of stylesheet hrefs to leave untouched
        font_face: Inline used ``@font-face`` rules
        keyframes: Inline used ``@keyframes`` rules
        auto_remove_style_tags: Remove critical style tags once stylesheets load
        event_handlers: ``attr`` for inline onload handlers, ``script`` for one script
    """
    path: str = DEFAULT_PATH
    public_path: str = DEFAULT_PUBLIC_PATH
    additional_stylesheets: Tuple[str, ...] = ()
    external_threshold: int = DEFAULT_EXTERNAL_THRESHOLD
    log_level: str = DEFAULT_LOG_LEVEL
    logger: Optional[Logger] = field(default=None, compare=False, repr=False)
    internal: bool = True
    external: bool = True
    merge: bool = True
    prune_source: bool = False
    async_load: bool = True
    preload: bool = False
    noscript_fallback: bool = False
    whitelist: Tuple[WhitelistEntry, ...] = ()
    exclude: Exclude = field(default=None, compare=False)
    font_face: bool = False
    keyframes: bool = True
    auto_remove_style_tags: bool = False
    event_handlers: str = DEFAULT_EVENT_HANDLERS

    def __post_init__(self):
        # Normalize sequences so that the snapshot stays immutable
        object.__setattr__(self, 'additional_stylesheets', tuple(self.additional_stylesheets or ()))
        object.__setattr__(self, 'whitelist', tuple(self.whitelist or ()))

        if self.auto_remove_style_tags:
            object.__setattr__(self, 'merge', False)

        self.validate()

    def validate(self) -> None:
        """Validate option values.

        Raises:
            ConfigurationError: If an option has an invalid value
        """
        if not isinstance(self.path, str) or not self.path:
            raise ConfigurationError("path must be a non empty string")
        if not isinstance(self.public_path, str):
            raise ConfigurationError("public_path must be a string")
        if not all(isinstance(pattern, str) for pattern in self.additional_stylesheets):
            raise ConfigurationError("additional_stylesheets must be glob strings")
        if (isinstance(self.external_threshold, bool)
                or not isinstance(self.external_threshold, (int, float))
                or self.external_threshold < 0):
            raise ConfigurationError(
                f"external_threshold must be a positive number, got {self.external_threshold!r}"
            )
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level {self.log_level!r}, expected one of {', '.join(LOG_LEVELS)}"
            )
        if self.event_handlers not in EVENT_HANDLERS:
            raise ConfigurationError(
                f"Invalid event handlers {self.event_handlers!r}, expected one of {', '.join(EVENT_HANDLERS)}"
            )
        for entry in self.whitelist:
            if not isinstance(entry, (str, re.Pattern)):
                raise ConfigurationError(f"Invalid whitelist entry {entry!r}")
        if self.exclude is not None and not isinstance(self.exclude, re.Pattern) \
                and not callable(self.exclude):
            raise ConfigurationError("exclude must be a compiled pattern or a callable")
        if self.logger is not None:
            for level in ('debug', 'info', 'warn', 'error'):
                if not callable(getattr(self.logger, level, None)):
                    raise ConfigurationError(f"logger is missing the {level}() method")

    def replace(self, **changes) -> 'Options':
        """Return a copy with some options changed."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ConfigurationError(f"Unknown options: {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Options':
        """Build options from plain (JSON) values.

        Keys may use the camelCase names of the JavaScript tooling.
        ``exclude`` may be a regex source, whitelist entries written as
        ``/source/`` are compiled to patterns.

        Args:
            data: Option values

        Returns:
            Validated options

        Raises:
            ConfigurationError: If a key is unknown or a value is invalid
        """
        names = {f.name for f in dataclasses.fields(cls)}
        values = {}
        for key, value in data.items():
            name = ALIASES.get(key, key)
            if name not in names:
                raise ConfigurationError(f"Unknown option {key!r}")
            values[name] = value

        try:
            if isinstance(values.get('exclude'), str):
                values['exclude'] = re.compile(values['exclude'])
            if 'whitelist' in values:
                values['whitelist'] = [_parse_whitelist_entry(entry) for entry in values['whitelist']]
        except re.error as e:
            raise ConfigurationError(f"Invalid regular expression: {e}") from e

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """JSON friendly view of the options."""
        return {
            'path': self.path,
            'public_path': self.public_path,
            'additional_stylesheets': list(self.additional_stylesheets),
            'external_threshold': self.external_threshold,
            'log_level': self.log_level,
            'internal': self.internal,
            'external': self.external,
            'merge': self.merge,
            'prune_source': self.prune_source,
            'async_load': self.async_load,
            'preload': self.preload,
            'noscript_fallback': self.noscript_fallback,
            'whitelist': [
                entry if isinstance(entry, str) else f"/{entry.pattern}/"
                for entry in self.whitelist
            ],
            'exclude': self.exclude.pattern if isinstance(self.exclude, re.Pattern) else None,
            'font_face': self.font_face,
            'keyframes': self.keyframes,
            'auto_remove_style_tags': self.auto_remove_style_tags,
            'event_handlers': self.event_handlers,
        }

def _parse_whitelist_entry(entry: Any) -> WhitelistEntry:
    if isinstance(entry, str) and len(entry) > 2 and entry.startswith('/') and entry.endswith('/'):
        return re.compile(entry[1:-1])
    return entry

def load_options(path: str, **overrides) -> Options:
    """Load options from a JSON file.

    Args:
        path: Path to the JSON file
        **overrides: Values taking precedence over the file

    Returns:
        Validated options

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    try:
        with open(path, 'rb') as f:
            data = orjson.loads(f.read())
    except (OSError, orjson.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to load options from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Options file {path} must contain a JSON object")

    data.update(overrides)
    return Options.from_dict(data)

class Whitelist:
    """Selectors always considered critical.

    The matcher works on escaped selectors, entries are compared to the
    restored selector text: string entries match exactly once whitespace
    and combinators are normalized (``h1>p`` is ``h1 > p``), pattern
    entries with ``search``.
    """

    def __init__(self, entries: Tuple[WhitelistEntry, ...] = ()):
        self.literals = {normalize_selector(entry) for entry in entries if isinstance(entry, str)}
        self.patterns: List[Pattern] = [entry for entry in entries if not isinstance(entry, str)]

    def __contains__(self, selector: str) -> bool:
        if not self:
            return False
        selector = restore_selectors(selector)
        if normalize_selector(selector) in self.literals:
            return True
        return any(pattern.search(selector) for pattern in self.patterns)

    def __bool__(self) -> bool:
        return bool(self.literals or self.patterns)

# Exported names
__all__ = ['Options', 'Whitelist', 'WhitelistEntry', 'Exclude', 'ALIASES', 'load_options']
