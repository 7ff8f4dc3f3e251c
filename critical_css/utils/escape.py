"""Placeholder escaping of special characters in selectors and class names.

The selector matcher tokenizes selectors on characters such as ``:``, ``.``
or ``[``. Utility-first frameworks put those characters in class names
(``md:flex``, ``w-1/2``), escaped in CSS (``.md\\:flex``) and literal in
HTML (``class="md:flex"``). Both sides are rewritten to the same
placeholder token (``__0__``) before matching, and the CSS is restored
afterwards.
"""

import re
from typing import Dict, List, Pattern, Tuple

from .config import SPECIAL_CHARS

def _placeholder(index: int) -> str:
    return f"__{index}__"

# (css escaped form, html literal forms, placeholder), in table order
_TABLE: List[Tuple[str, Tuple[str, ...], str]] = [
    (css, html, _placeholder(index))
    for index, (css, html) in enumerate(SPECIAL_CHARS)
]

_CLASS_ATTRIBUTE = re.compile(r'class=(["\'])(.*?)\1', re.DOTALL)

# Longest tokens first so that ``__1__`` is never tried before ``__12__``.
_RESTORE: Dict[str, str] = {placeholder: css for css, _, placeholder in _TABLE}
_RESTORE_PATTERN: Pattern = re.compile(
    '|'.join(re.escape(placeholder) for _, _, placeholder in reversed(_TABLE))
)

def escape_selectors(css: str) -> str:
    """Replace escaped special characters in CSS by placeholders.

    Args:
        css: CSS text

    Returns:
        CSS text ready for the selector matcher
    """
    for escaped, _, placeholder in _TABLE:
        css = css.replace(escaped, placeholder)
    return css

def restore_selectors(css: str) -> str:
    """Restore escaped special characters replaced by :func:`escape_selectors`.

    Placeholders are restored in a single left-to-right pass so that text
    produced by one replacement is never matched again by another.
    """
    return _RESTORE_PATTERN.sub(lambda match: _RESTORE[match.group(0)], css)

def _escape_class_value(value: str) -> str:
    for _, literals, placeholder in _TABLE:
        for literal in literals:
            value = value.replace(literal, placeholder)
    return value

def escape_classes(html: str) -> str:
    """Replace special characters inside ``class`` attribute values.

    Only the values of ``class="..."`` and ``class='...'`` are rewritten,
    the rest of the markup is left untouched.
    """
    return _CLASS_ATTRIBUTE.sub(
        lambda match: 'class={0}{1}{0}'.format(
            match.group(1), _escape_class_value(match.group(2))
        ),
        html,
    )

# Exported functions
__all__ = ['escape_selectors', 'restore_selectors', 'escape_classes']
