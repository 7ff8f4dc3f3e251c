"""Selector matching: drop the CSS rules that match nothing in a document."""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple, Union

import cssutils
import soupsieve
from bs4 import BeautifulSoup
from cssutils.css import CSSRule
from cssutils.serialize import CSSSerializer, Preferences

from ..utils.config import IGNORED_PSEUDOS
from ..utils.error import CssParseError

# Disable cssutils logging
cssutils.log.setLevel(logging.CRITICAL)

logger = logging.getLogger(__name__)

_PSEUDO = re.compile(r'::?(-?[A-Za-z_][\w-]*)(\()?')
_EMPTY_COMPOUND = re.compile(r'([>+~])\s*(?=$|[>+~])')
_KEYFRAMES = re.compile(r'^@(?:-[A-Za-z]+-)?keyframes\s+([^\s{]+)')

def _make_serializer() -> CSSSerializer:
    """Compact serializer: ``h1{color: blue;}``, values kept as written."""
    prefs = Preferences()
    prefs.indent = ''
    prefs.lineSeparator = ''
    prefs.omitLastSemicolon = False
    prefs.minimizeColorHash = False
    prefs.keepComments = False
    prefs.keepEmptyRules = False
    prefs.keepAllProperties = True
    prefs.validOnly = False
    return CSSSerializer(prefs)

cssutils.setSerializer(_make_serializer())

@dataclass
class DropResult:
    """Outcome of :func:`drop_unused_css`."""
    css: str
    removed: int = 0
    retained: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.css.encode('utf-8'))

    @property
    def changed(self) -> bool:
        return self.removed > 0

def check_balanced(css: str) -> None:
    """Raise :class:`CssParseError` if blocks in ``css`` are not balanced."""
    depth = 0
    index = 0
    length = len(css)
    while index < length:
        char = css[index]
        if char == '\\':
            index += 2
            continue
        if css.startswith('/*', index):
            end = css.find('*/', index + 2)
            if end == -1:
                raise CssParseError("Unterminated comment")
            index = end + 2
            continue
        if char in '"\'':
            end = index + 1
            while end < length and css[end] != char:
                if css[end] == '\\':
                    end += 1
                elif css[end] == '\n':
                    break
                end += 1
            index = end + 1
            continue
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth < 0:
                raise CssParseError(f"Unexpected '}}' at offset {index}")
        index += 1

    if depth != 0:
        raise CssParseError("Unclosed block")

def _skip_parentheses(selector: str, start: int) -> int:
    depth = 1
    index = start
    while index < len(selector) and depth:
        if selector[index] == '\\':
            index += 2
            continue
        if selector[index] == '(':
            depth += 1
        elif selector[index] == ')':
            depth -= 1
        index += 1
    return index

def strip_pseudos(selector: str, strip_all: bool = False) -> str:
    """Remove pseudo-classes and pseudo-elements that depend on rendering.

    ``a:hover::before`` becomes ``a``; a compound left empty becomes ``*``.
    Arguments of functional pseudo-classes (``:not(:focus)``) are left as is.
    With ``strip_all`` every top level pseudo selector is removed.

    Args:
        selector: A single (non grouped) selector
        strip_all: Remove every pseudo selector, not only ignored ones

    Returns:
        Selector to test against the document
    """
    out = []
    index = 0
    brackets = 0
    parentheses = 0
    quote = None
    length = len(selector)
    while index < length:
        char = selector[index]
        if char == '\\':
            out.append(selector[index:index + 2])
            index += 2
            continue
        if quote:
            if char == quote:
                quote = None
        elif char in '"\'':
            quote = char
        elif char == '[':
            brackets += 1
        elif char == ']':
            brackets -= 1
        elif char == '(':
            parentheses += 1
        elif char == ')':
            parentheses -= 1
        elif char == ':' and not brackets and not parentheses:
            match = _PSEUDO.match(selector, index)
            if match and (strip_all or match.group(1).lower() in IGNORED_PSEUDOS):
                index = match.end()
                if match.group(2):
                    index = _skip_parentheses(selector, index)
                continue
        out.append(char)
        index += 1

    stripped = _EMPTY_COMPOUND.sub(r'\1 *', ''.join(out).strip())
    if not stripped:
        return '*'
    if stripped[0] in '>+~':
        stripped = '* ' + stripped
    return stripped

def _skip_string(text: str, index: int) -> int:
    """Index just past the quoted string starting at ``index``."""
    quote = text[index]
    index += 1
    while index < len(text) and text[index] != quote:
        if text[index] == '\\':
            index += 1
        index += 1
    return index + 1

def split_selector_list(prelude: str) -> List[str]:
    """Split a selector list on its top level commas.

    Commas inside parentheses (``:is(.a,.b)``), attribute selectors and
    strings do not separate selectors.
    """
    parts = []
    depth = 0
    start = 0
    index = 0
    while index < len(prelude):
        char = prelude[index]
        if char == '\\':
            index += 2
            continue
        if char in '"\'':
            index = _skip_string(prelude, index)
            continue
        if char in '([':
            depth += 1
        elif char in ')]':
            depth -= 1
        elif char == ',' and depth <= 0:
            parts.append(prelude[start:index])
            start = index + 1
        index += 1
    parts.append(prelude[start:])
    return [part.strip() for part in parts if part.strip()]

def normalize_selector(selector: str) -> str:
    """Collapse whitespace and space top level combinators: ``h1>p`` becomes ``h1 > p``."""
    out = []
    depth = 0
    index = 0
    length = len(selector)
    while index < length:
        char = selector[index]
        if char == '\\':
            out.append(selector[index:index + 2])
            index += 2
            continue
        if char in '"\'':
            end = _skip_string(selector, index)
            out.append(selector[index:end])
            index = end
            continue
        if char.isspace():
            if out and not out[-1].endswith(' '):
                out.append(' ')
            index += 1
            continue
        if char in '([':
            depth += 1
        elif char in ')]':
            depth -= 1
        elif char in '>+~' and depth <= 0:
            if out and out[-1] == ' ':
                out.pop()
            out.append(f" {char} ")
            index += 1
            while index < length and selector[index].isspace():
                index += 1
            continue
        out.append(char)
        index += 1
    return ''.join(out).strip()

_COMMENT = re.compile(r'/\*.*?\*/', re.DOTALL)
_SELECTOR_PLACEHOLDER = re.compile(r'__sel(\d+)__')

class _SelectorTable:
    """Selectors swapped for placeholder type selectors while cssutils parses.

    cssutils only knows the CSS 3 selector grammar and rejects selector
    lists inside ``:is()``, ``:where()``, ``:not()`` or ``:has()``. Every
    selector of a style rule prelude is replaced by ``__selN__`` so that the
    stylesheet structure is parsed by cssutils while selectors are kept as
    written (normalized) and evaluated by soupsieve only.
    """

    def __init__(self):
        self.selectors: List[str] = []

    def _protect_prelude(self, prelude: str) -> str:
        placeholders = []
        for selector in split_selector_list(prelude):
            placeholders.append(f"__sel{len(self.selectors)}__")
            self.selectors.append(normalize_selector(selector))
        return ','.join(placeholders) or prelude

    def protect(self, css: str) -> str:
        """Replace the selectors of top level and ``@media`` style rules."""
        out = []
        # True for blocks holding rules (@media), False for declaration blocks
        stack: List[bool] = []
        start = 0
        last = 0
        index = 0
        length = len(css)
        while index < length:
            char = css[index]
            if char == '\\':
                index += 2
                continue
            if css.startswith('/*', index):
                end = css.find('*/', index + 2)
                index = length if end == -1 else end + 2
                continue
            if char in '"\'':
                index = _skip_string(css, index)
                continue

            in_rules = not stack or stack[-1]
            if char == '{':
                if in_rules:
                    prelude = _COMMENT.sub('', css[start:index]).strip()
                    if prelude.startswith('@'):
                        stack.append(prelude[1:6].lower() == 'media')
                    else:
                        out.append(css[last:start])
                        out.append(self._protect_prelude(prelude))
                        last = index
                        stack.append(False)
                else:
                    stack.append(False)
                start = index + 1
            elif char == '}':
                if stack:
                    stack.pop()
                start = index + 1
            elif char == ';' and in_rules:
                start = index + 1
            index += 1

        out.append(css[last:])
        return ''.join(out)

    def restore(self, text: str) -> str:
        def replace(match):
            index = int(match.group(1))
            return self.selectors[index] if index < len(self.selectors) else match.group(0)
        return _SELECTOR_PLACEHOLDER.sub(replace, text)

class SelectorMatcher:
    """Test selectors against a parsed document."""

    def __init__(self, html: Union[str, BeautifulSoup]):
        if isinstance(html, BeautifulSoup):
            self.soup = html
        else:
            try:
                self.soup = BeautifulSoup(html or '', 'html.parser')
            except Exception as e:
                raise CssParseError(f"Unable to parse html: {e}") from e
        self._cache = {}

    def matches(self, selector: str) -> bool:
        """Whether ``selector`` matches at least one element.

        Selectors that cannot be evaluated are considered matching.
        """
        if selector in self._cache:
            return self._cache[selector]

        result = True
        for strip_all in (False, True):
            try:
                result = self.soup.select_one(strip_pseudos(selector, strip_all)) is not None
                break
            except (soupsieve.SelectorSyntaxError, NotImplementedError) as e:
                logger.debug(f"Cannot evaluate selector {selector!r}: {e}")

        self._cache[selector] = result
        return result

# Intermediate representation: ('text', css) | ('font-face', family, css)
# | ('keyframes', name, css) | ('group', prelude, children)
Item = Tuple

class _RuleFilter:
    def __init__(self, matcher: SelectorMatcher, table: _SelectorTable,
                 should_drop: Callable[[str], bool],
                 did_retain: Optional[Callable[[str], None]]):
        self.matcher = matcher
        self.table = table
        self.should_drop = should_drop
        self.did_retain = did_retain
        self.removed = 0
        self.retained: List[str] = []
        self.font_values: List[str] = []
        self.animation_values: List[str] = []

    def filter_rules(self, rules: Iterable[CSSRule]) -> List[Item]:
        items: List[Item] = []
        for rule in rules:
            if rule.type in (CSSRule.COMMENT, CSSRule.CHARSET_RULE):
                continue
            if rule.type == CSSRule.STYLE_RULE:
                text = self._filter_style_rule(rule)
                if text is not None:
                    items.append(('text', text))
            elif rule.type == CSSRule.MEDIA_RULE:
                children = self.filter_rules(rule.cssRules)
                if children:
                    items.append(('group', f"@media {rule.media.mediaText}", children))
                else:
                    self.removed += 1
            elif rule.type == CSSRule.FONT_FACE_RULE:
                family = rule.style.getPropertyValue('font-family').strip('\'" ')
                items.append(('font-face', family, rule.cssText))
            else:
                text = rule.cssText
                match = _KEYFRAMES.match(text)
                if match:
                    items.append(('keyframes', match.group(1), text))
                elif text:
                    items.append(('text', text))
        return items

    def _filter_style_rule(self, rule) -> Optional[str]:
        if not len(rule.selectorList):
            # Unparsed prelude, kept as written
            prelude = self.table.restore(rule.selectorText or '').strip()
            return f"{prelude}{{{rule.style.cssText}}}" if prelude else None

        kept = []
        for selector in rule.selectorList:
            text = self.table.restore(selector.selectorText)
            if self.matcher.matches(text) or not self.should_drop(text):
                kept.append(text)
            else:
                self.removed += 1

        if not kept:
            return None

        for text in kept:
            self.retained.append(text)
            if self.did_retain is not None:
                self.did_retain(text)

        for prop in rule.style.getProperties(all=True):
            name = prop.name.lower()
            if name in ('font', 'font-family'):
                self.font_values.append(prop.value.lower())
            elif name.endswith('animation') or name.endswith('animation-name'):
                self.animation_values.append(prop.value)

        return f"{','.join(kept)}{{{rule.style.cssText}}}"

    def _uses_font(self, family: str) -> bool:
        family = family.lower()
        return bool(family) and any(family in value for value in self.font_values)

    def _uses_animation(self, name: str) -> bool:
        pattern = re.compile(r'(^|[\s,])' + re.escape(name) + r'($|[\s,])')
        return any(pattern.search(value) for value in self.animation_values)

    def render(self, items: List[Item], drop_used_font_face: bool,
               drop_used_keyframes: bool) -> str:
        out = []
        for item in items:
            kind = item[0]
            if kind == 'text':
                out.append(item[1])
            elif kind == 'font-face':
                if self._uses_font(item[1]) and not drop_used_font_face:
                    out.append(item[2])
                else:
                    self.removed += 1
            elif kind == 'keyframes':
                if self._uses_animation(item[1]) and not drop_used_keyframes:
                    out.append(item[2])
                else:
                    self.removed += 1
            else:
                inner = self.render(item[2], drop_used_font_face, drop_used_keyframes)
                if inner:
                    out.append(f"{item[1]}{{{inner}}}")
                else:
                    self.removed += 1
        return ''.join(out)

def drop_unused_css(html: Union[str, BeautifulSoup, SelectorMatcher], css: str,
                    should_drop: Callable[[str], bool] = lambda selector: True,
                    did_retain: Optional[Callable[[str], None]] = None,
                    drop_used_font_face: bool = True,
                    drop_used_keyframes: bool = False) -> DropResult:
    """Drop every rule of ``css`` whose selectors match nothing in ``html``.

    An unmatched selector is still kept when ``should_drop(selector)`` is
    false. A rule keeps only its retained selectors and is dropped when none
    is left. ``@font-face`` and ``@keyframes`` rules not referenced by a
    retained rule are dropped; referenced ones are dropped as well when the
    matching ``drop_used_*`` flag is set.

    Args:
        html: Document to match against (text, parsed tree or matcher)
        css: Stylesheet text
        should_drop: Called for unmatched selectors
        did_retain: Called for every retained selector
        drop_used_font_face: Drop referenced ``@font-face`` rules
        drop_used_keyframes: Drop referenced ``@keyframes`` rules

    Returns:
        The retained CSS, the number of removed selectors and rules, and
        the retained selectors

    Raises:
        CssParseError: If the HTML or CSS cannot be parsed
    """
    matcher = html if isinstance(html, SelectorMatcher) else SelectorMatcher(html)

    check_balanced(css)
    table = _SelectorTable()
    try:
        sheet = cssutils.CSSParser(validate=False).parseString(table.protect(css))
    except Exception as e:
        raise CssParseError(f"Unable to parse css: {e}") from e

    rule_filter = _RuleFilter(matcher, table, should_drop, did_retain)
    items = rule_filter.filter_rules(sheet.cssRules)
    result = table.restore(rule_filter.render(items, drop_used_font_face, drop_used_keyframes))

    return DropResult(css=result, removed=rule_filter.removed,
                      retained=rule_filter.retained)

# Exported names
__all__ = [
    'DropResult',
    'SelectorMatcher',
    'check_balanced',
    'normalize_selector',
    'split_selector_list',
    'strip_pseudos',
    'drop_unused_css',
]
