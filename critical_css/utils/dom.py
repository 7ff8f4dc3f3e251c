"""Mutable HTML document model built on BeautifulSoup."""

import copy
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Comment, Doctype, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

class _SourceOrderFormatter(HTMLFormatter):
    """Formatter writing attributes in document order instead of sorted."""

    def attributes(self, tag: Tag):
        if tag.attrs is None:
            return []
        return [
            (key, None if self.empty_attributes_are_booleans and value == '' else value)
            for key, value in tag.attrs.items()
        ]

class _Doctype(Doctype):
    SUFFIX = '>'

# HTML5 output: void elements without a closing slash, boolean attributes
# without a value, only &, < and > substituted.
HTML5_FORMATTER = _SourceOrderFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
    empty_attributes_are_booleans=True,
)

def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML into a mutable, serializable tree.

    Attribute values are kept as plain strings (``class`` included) and
    comments are preserved, server side rendering markers depend on them.

    Args:
        html: HTML content

    Returns:
        Root of the parsed tree
    """
    root = BeautifulSoup(html, 'html.parser', multi_valued_attributes=None)
    for node in list(root.contents):
        if isinstance(node, Doctype):
            node.replace_with(_Doctype(str(node)))
    return root

def serialize(root: BeautifulSoup) -> str:
    """Serialize a tree back to HTML text."""
    return root.decode(formatter=HTML5_FORMATTER)

def query_selector(root: Tag, selector: str) -> Optional[Tag]:
    return root.select_one(selector)

def query_selector_all(root: Tag, selector: str) -> List[Tag]:
    return list(root.select(selector))

def create_element(root: BeautifulSoup, name: str,
                   attrs: Optional[Dict[str, str]] = None,
                   text: Optional[str] = None) -> Tag:
    """Create a detached element owned by ``root``.

    Args:
        root: Document the element will be inserted into
        name: Tag name
        attrs: Attributes, in serialization order
        text: Optional text content

    Returns:
        The new element
    """
    element = root.new_tag(name, attrs=dict(attrs or {}))
    if text is not None:
        element.string = text
    return element

def insert_before(reference: Tag, node: Tag) -> Tag:
    reference.insert_before(node)
    return node

def insert_after(reference: Tag, node: Tag) -> Tag:
    reference.insert_after(node)
    return node

def append_child(parent: Tag, node: Tag) -> Tag:
    parent.append(node)
    return node

def remove(node: Tag) -> Tag:
    """Detach ``node`` from its parent and return it."""
    return node.extract()

def clone(node: Tag) -> Tag:
    """Deep copy ``node``; the copy shares no state with the original."""
    return copy.copy(node)

def get_attribute(node: Tag, name: str) -> Optional[str]:
    return node.get(name)

def set_attribute(node: Tag, name: str, value: str) -> None:
    node[name] = value

def get_text(node: Tag) -> str:
    """Raw text content of an element, e.g. the CSS of a ``<style>`` tag."""
    return ''.join(
        str(child) for child in node.children
        if isinstance(child, str) and not isinstance(child, Comment)
    )

def set_text(node: Tag, text: str) -> None:
    node.string = text

def merge_attributes(target: Tag, source: Tag) -> None:
    """Merge the attributes of ``source`` into ``target``.

    Values of attributes present on both are joined with a space; other
    attributes are copied over.
    """
    for name, value in source.attrs.items():
        value = value or ''
        current = target.get(name)
        target[name] = f"{current} {value}" if current else value

# Exported functions
__all__ = [
    'HTML5_FORMATTER',
    'parse_html',
    'serialize',
    'query_selector',
    'query_selector_all',
    'create_element',
    'insert_before',
    'insert_after',
    'append_child',
    'remove',
    'clone',
    'get_attribute',
    'set_attribute',
    'get_text',
    'set_text',
    'merge_attributes',
]
