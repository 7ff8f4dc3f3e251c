"""Configuration constants for Critical CSS."""

import os

# Project version
VERSION = "1.0.0"

# Name of the package logger
LOGGER_NAME = 'critical_css'

# Log levels ordered by verbosity
LOG_LEVELS = ('debug', 'info', 'warn', 'error', 'silent')
DEFAULT_LOG_LEVEL = 'info'

# Default engine options
DEFAULT_PATH = os.getcwd()
DEFAULT_PUBLIC_PATH = ''
DEFAULT_EXTERNAL_THRESHOLD = 0  # bytes
EVENT_HANDLERS = ('attr', 'script')
DEFAULT_EVENT_HANDLERS = 'attr'

# Supported file extensions
CSS_EXTENSIONS = ['.css']
HTML_EXTENSIONS = ['.html', '.htm', '.xhtml']

# Encoding used when writing stylesheets back
DEFAULT_ENCODING = 'utf-8'

# Characters protected from the selector matcher, in placeholder order.
# Each entry is (css escaped form, html class literal forms).
SPECIAL_CHARS = [
    ('\\:', (':',)),
    ('\\/', ('/',)),
    ('\\?', ('?',)),
    ('\\(', ('(',)),
    ('\\)', (')',)),
    ('\\!', ('!',)),
    ('\\<', ('<', '&lt;')),
    ('\\>', ('>', '&gt;')),
    ('\\{', ('{',)),
    ('\\}', ('}',)),
    ('\\[', ('[',)),
    ('\\]', (']',)),
    ('\\.', ('.',)),
]

# Pseudo-classes and pseudo-elements that depend on user interaction or
# rendering and are ignored when matching selectors against the document.
IGNORED_PSEUDOS = {
    'active', 'after', 'backdrop', 'before', 'cue', 'file-selector-button',
    'first-letter', 'first-line', 'focus', 'focus-visible', 'focus-within',
    'grammar-error', 'hover', 'link', 'marker', 'placeholder',
    'placeholder-shown', 'selection', 'spelling-error', 'target',
    'target-text', 'visited', 'autofill', 'fullscreen', 'invalid', 'valid',
    'user-invalid', 'user-valid',
}

# Exported config
__all__ = [
    'VERSION', 'LOGGER_NAME', 'LOG_LEVELS', 'DEFAULT_LOG_LEVEL',
    'DEFAULT_PATH', 'DEFAULT_PUBLIC_PATH', 'DEFAULT_EXTERNAL_THRESHOLD',
    'EVENT_HANDLERS', 'DEFAULT_EVENT_HANDLERS',
    'CSS_EXTENSIONS', 'HTML_EXTENSIONS', 'DEFAULT_ENCODING',
    'SPECIAL_CHARS', 'IGNORED_PSEUDOS',
]
