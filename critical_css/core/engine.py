"""Critical CSS engine: inline the CSS a document uses, defer the rest."""

import asyncio
import base64
import enum
import hashlib
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from ..managers.filesystem import FileSystem, LocalFileSystem
from ..managers.stylesheet import Stylesheet, StylesheetResolver
from ..utils.dom import (
    append_child, clone, create_element, get_attribute, get_text, insert_after,
    insert_before, merge_attributes, parse_html, query_selector, query_selector_all,
    remove, serialize, set_attribute, set_text,
)
from ..utils.error import CriticalCssError, CssParseError
from ..utils.escape import escape_classes, escape_selectors, restore_selectors
from ..utils.formatter import format_to_kb, format_to_ms, format_to_percent
from ..utils.logging import DefaultLogger, Logger, ProcessId, set_verbosity
from ..utils.path import strip_query
from .matcher import DropResult, SelectorMatcher, drop_unused_css
from .options import Options, Whitelist
from .pruner import Pruner
from .session import Session

# Inline handlers of asynchronously loaded stylesheets
ASYNC_LOAD_HANDLER = 'this.media=this.dataset.media,delete this.dataset.media,'
AUTO_REMOVE_HANDLER = "document.querySelector('style[data-id=\"'+this.dataset.id+'\"]').remove(),"
HANDLER_END = 'this.onload=null;'

class DocumentState(enum.Enum):
    PARSED = 'parsed'
    INTERNAL_PROCESSED = 'internal-processed'
    EXTERNAL_DISCOVERED = 'external-discovered'
    EXTERNAL_PROCESSED = 'external-processed'
    MERGED = 'merged'
    SERIALIZED = 'serialized'

@dataclass
class DocumentContext:
    """State of one ``process()`` call."""
    root: BeautifulSoup
    matcher: SelectorMatcher
    process_id: ProcessId = None
    inserted_styles: List[Tag] = field(default_factory=list)
    state: DocumentState = DocumentState.PARSED

    def advance(self, state: DocumentState) -> None:
        """Move to ``state``; stages only move forward."""
        order = list(DocumentState)
        if order.index(state) < order.index(self.state):
            raise CriticalCssError(
                f"Cannot move document from {self.state.value} back to {state.value}"
            )
        self.state = state

    def is_inserted(self, style: Tag) -> bool:
        return any(style is inserted for inserted in self.inserted_styles)

def script_hash(code: str) -> str:
    """Base64 sha256 digest of inline code, as used in a Content-Security-Policy."""
    return base64.b64encode(hashlib.sha256(code.encode('utf-8')).digest()).decode('ascii')

class CriticalCss:
    """Extract the critical CSS of HTML documents and inline it.

    Documents processed by one instance share a :class:`Session`: loaded
    stylesheets are cached and, with ``prune_source``, the inlined selectors
    are accumulated so that :meth:`prune_sources` can remove them from the
    stylesheets once every document is processed.

    Args:
        options: Engine options, defaults when None
        file_system: File system stylesheets are read from, the local disk by default
        **overrides: Options overriding ``options``
    """

    def __init__(self, options: Optional[Options] = None,
                 file_system: Optional[FileSystem] = None, **overrides):
        options = options or Options()
        if overrides:
            options = options.replace(**overrides)

        self.options = options
        self.session = Session()
        self.file_system = file_system or LocalFileSystem()
        self.whitelist = Whitelist(options.whitelist)
        self.logger: Logger = options.logger or DefaultLogger()
        self.resolver = self.create_resolver()
        self.pruner = Pruner(self)

        self.set_verbosity()

    def create_resolver(self) -> StylesheetResolver:
        return StylesheetResolver(self.options, self.session, self.file_system, self.logger)

    async def process(self, html: str, process_id: ProcessId = None) -> str:
        """Inline the critical CSS of a document.

        Args:
            html: HTML document
            process_id: Id prefixed to every log message of this call

        Returns:
            The rewritten document, or ``html`` itself if no stylesheet changed

        Raises:
            CssParseError: If a stylesheet or the document cannot be parsed
        """
        start = time.perf_counter_ns()

        context = self._create_context(html, process_id)
        changes = []

        if self.options.internal:
            changes.extend(await asyncio.gather(*[
                self._process_internal_stylesheet(context, style)
                for style in query_selector_all(context.root, 'style')
            ]))
        context.advance(DocumentState.INTERNAL_PROCESSED)

        if self.options.external:
            stylesheets = await self._get_external_stylesheets(context)
            context.advance(DocumentState.EXTERNAL_DISCOVERED)

            changes.extend(await asyncio.gather(*[
                self._process_external_stylesheet(context, stylesheet)
                for stylesheet in stylesheets
            ]))
        context.advance(DocumentState.EXTERNAL_PROCESSED)

        if not any(changes):
            self.logger.info('No non-critical css rules was removed.', process_id)
            return html

        if self.options.event_handlers == 'script':
            self._insert_event_handlers(context)

        if self.options.merge:
            self._merge_stylesheets(context)
        context.advance(DocumentState.MERGED)

        output = serialize(context.root)
        context.advance(DocumentState.SERIALIZED)

        self.logger.info(
            f"Processed in {format_to_ms(time.perf_counter_ns() - start)}.", process_id
        )

        return output

    async def prune_sources(self, process_id: ProcessId = None) -> None:
        """Remove the inlined rules from every stylesheet processed so far."""
        await self.pruner.prune_sources(process_id)

    def clear(self) -> None:
        """Free cached stylesheets and accumulated selectors."""
        self.session.clear()

    def set_verbosity(self, log_level: Optional[str] = None) -> None:
        """Silence log levels below ``log_level`` (the ``log_level`` option by default)."""
        if self.options.logger is None:
            self.logger = DefaultLogger()
        self.logger = set_verbosity(self.logger, log_level or self.options.log_level)
        self.resolver.logger = self.logger

    def get_script_csp_hash(self) -> Optional[str]:
        """sha256 hash of the event handler code inserted in documents.

        Returns:
            Base64 digest for a Content-Security-Policy, None if no handler
            is emitted with the current options
        """
        code = self.event_handlers_code()
        return script_hash(code) if code else None

    def event_handlers_code(self) -> Optional[str]:
        """Inline code emitted for asynchronously loaded stylesheets, if any."""
        if self.options.event_handlers == 'script':
            return self._event_handlers_script()
        if self.options.async_load:
            return self._onload_handler()
        if self.options.auto_remove_style_tags:
            return AUTO_REMOVE_HANDLER + HANDLER_END
        return None

    def _create_context(self, html: str, process_id: ProcessId) -> DocumentContext:
        try:
            root = parse_html(html)
            matcher = SelectorMatcher(escape_classes(html))
        except CssParseError:
            self.logger.error('Unable to parse css or html.', process_id)
            raise
        return DocumentContext(root=root, matcher=matcher, process_id=process_id)

    def _is_whitelisted(self, selector: str) -> bool:
        return selector in self.whitelist

    def _partition(self, context: DocumentContext, css: str) -> DropResult:
        """Keep the rules of ``css`` used by the document or whitelisted."""
        try:
            result = drop_unused_css(
                context.matcher,
                escape_selectors(css),
                should_drop=lambda selector: not self._is_whitelisted(selector),
                drop_used_font_face=not self.options.font_face,
                drop_used_keyframes=not self.options.keyframes,
            )
        except CssParseError:
            self.logger.error('Unable to parse css or html.', context.process_id)
            raise

        result.css = restore_selectors(result.css).strip()
        return result

    async def _process_internal_stylesheet(self, context: DocumentContext, style: Tag) -> bool:
        css = get_text(style).strip()
        size = len(css.encode('utf-8'))

        # Skip empty stylesheet
        if not size:
            return False

        critical = self._partition(context, css)

        # Skip, no change
        if not critical.changed:
            return False

        if not critical.css:
            remove(style)
            self.logger.info(
                f"Removed internal stylesheet ({format_to_kb(size)}), "
                f"no critical css rules was found.",
                context.process_id,
            )
            return True

        set_text(style, critical.css)
        self.logger.info(
            f"Reduced internal style to {format_to_kb(critical.size)} "
            f"({format_to_percent(critical.size, size)} of original {format_to_kb(size)}).",
            context.process_id,
        )
        return True

    async def _get_external_stylesheets(self, context: DocumentContext) -> List[Stylesheet]:
        stylesheets = []
        paths = set()

        for link in query_selector_all(context.root, 'link[rel="stylesheet"]'):
            href = get_attribute(link, 'href')
            media = get_attribute(link, 'media')

            if not href:
                self.logger.warn('External stylesheet href attribute is missing.', context.process_id)
                continue

            if media == 'print':
                self.logger.debug(
                    f'Skipped external stylesheet "{href}" as it targeted print media.',
                    context.process_id,
                )
                continue

            if self.resolver.is_excluded(href):
                self.logger.debug(f'Excluded external stylesheet "{href}".', context.process_id)
                continue

            path = self.resolver.resolve_path(href)
            if path not in paths:
                paths.add(path)
                stylesheets.append(Stylesheet(
                    path=path,
                    filename=os.path.basename(strip_query(href)),
                    link=link,
                ))

        if self.options.additional_stylesheets:
            for stylesheet in await self.resolver.discover_additional(process_id=context.process_id):
                if stylesheet.path not in paths:
                    paths.add(stylesheet.path)
                    stylesheets.append(stylesheet)

        return stylesheets

    async def _process_external_stylesheet(self, context: DocumentContext,
                                           stylesheet: Stylesheet) -> bool:
        source = await self.resolver.load(stylesheet.path, context.process_id)

        # Skip not found or empty stylesheet
        if source is None or not source.size:
            return False

        if source.size < self.options.external_threshold:
            self._insert_style(context, source.content, stylesheet.link)

            if stylesheet.link is not None:
                remove(stylesheet.link)

            if self.options.prune_source:
                self.session.track(stylesheet.path)

            self.logger.info(
                f"Inserted all of {stylesheet.filename} ({format_to_kb(source.size)} "
                f"was below the threshold of {format_to_kb(self.options.external_threshold)}).",
                context.process_id,
            )
            return True

        critical = self._partition(context, source.content)

        # Skip, no change
        if not critical.changed:
            return False

        self._insert_noscript_fallback(context, stylesheet.link)

        style = self._insert_style(context, critical.css, stylesheet.link) if critical.css else None

        if self.options.prune_source:
            self.session.track(stylesheet.path)
            if style is not None:
                self.session.add_critical_selectors(critical.retained)

        link = stylesheet.link
        if link is not None:
            if self.options.preload:
                self._insert_preload_link(context, link)
            if self.options.async_load:
                self._make_loading_async(link)

        self.logger.info(
            f"Inserted {format_to_kb(critical.size)} "
            f"({format_to_percent(critical.size, source.size)} of original "
            f"{format_to_kb(source.size)}) of {stylesheet.filename}.",
            context.process_id,
        )
        return True

    def _insert_style(self, context: DocumentContext, css: str,
                      link: Optional[Tag] = None) -> Optional[Tag]:
        """Insert a ``<style>`` before ``link``, or at the end of ``<head>``."""
        style = create_element(context.root, 'style', text=css)

        if link is not None:
            options = self.options
            if options.auto_remove_style_tags or (
                    options.event_handlers == 'script' and options.async_load):
                style_id = uuid.uuid4().hex[:8]
                set_attribute(style, 'data-id', style_id)
                set_attribute(link, 'data-id', style_id)

            if (options.auto_remove_style_tags and not options.async_load
                    and options.event_handlers == 'attr'):
                set_attribute(link, 'onload', AUTO_REMOVE_HANDLER + HANDLER_END)

            insert_before(link, style)
            context.inserted_styles.append(style)
            return style

        head = query_selector(context.root, 'head')
        if head is None:
            self.logger.warn('Unable to insert style tag because head tag is missing.', context.process_id)
            return None

        append_child(head, style)
        context.inserted_styles.append(style)
        return style

    def _insert_preload_link(self, context: DocumentContext, link: Tag) -> None:
        href = get_attribute(link, 'href')

        for preload in query_selector_all(context.root, 'link[rel="preload"]'):
            if get_attribute(preload, 'href') == href:
                self.logger.debug('Skip adding the preload link as it is already there.', context.process_id)
                return

        preload = clone(link)
        set_attribute(preload, 'rel', 'preload')
        set_attribute(preload, 'as', 'style')
        insert_before(link, preload)

    def _insert_noscript_fallback(self, context: DocumentContext, link: Optional[Tag]) -> None:
        if not self.options.noscript_fallback or link is None:
            return

        noscript = create_element(context.root, 'noscript')
        append_child(noscript, clone(link))
        insert_after(link, noscript)

    def _onload_handler(self) -> str:
        auto_remove = AUTO_REMOVE_HANDLER if self.options.auto_remove_style_tags else ''
        return f"{ASYNC_LOAD_HANDLER}{auto_remove}{HANDLER_END}"

    def _make_loading_async(self, link: Tag) -> None:
        """Load a stylesheet without blocking rendering.

        The stylesheet is requested for print media and switched back to
        its original media once loaded.
        """
        media = get_attribute(link, 'media') or 'all'

        set_attribute(link, 'media', 'print')
        set_attribute(link, 'data-media', media)

        if self.options.event_handlers == 'attr':
            set_attribute(link, 'onload', self._onload_handler())

    def _event_handlers_script(self) -> Optional[str]:
        options = self.options
        if not options.async_load and not options.auto_remove_style_tags:
            return None

        async_loading = ''
        auto_remove = ''
        if options.async_load:
            async_loading = 'e.media=e.dataset.media,delete e.dataset.media'
            if options.auto_remove_style_tags:
                async_loading += ','
        if options.auto_remove_style_tags:
            auto_remove = "document.querySelector('style[data-id=\"'+e.dataset.id+'\"]').remove()"

        return (
            "[].forEach.call(document.querySelectorAll('link[rel=\"stylesheet\"][data-id]'),"
            f"function(e){{e.onload=function(){{{async_loading}{auto_remove};}}}});"
        )

    def _insert_event_handlers(self, context: DocumentContext) -> None:
        """Insert one script setting the onload handlers, after the last link."""
        code = self._event_handlers_script()
        if code is None or query_selector(context.root, 'link[rel="stylesheet"][data-id]') is None:
            return

        links = [
            link for link in query_selector_all(context.root, 'link')
            if link.find_parent('noscript') is None
        ]
        insert_after(links[-1], create_element(context.root, 'script', text=code))

    def _merge_stylesheets(self, context: DocumentContext) -> None:
        styles = query_selector_all(context.root, 'style')

        # Hand written style tags are left alone when not processed
        if not self.options.internal:
            styles = [style for style in styles if context.is_inserted(style)]

        if not styles:
            return

        first = styles[0]
        for style in styles[1:]:
            set_text(first, get_text(first) + get_text(style))
            merge_attributes(first, style)
            remove(style)

# Exported names
__all__ = [
    'CriticalCss',
    'DocumentContext',
    'DocumentState',
    'script_hash',
    'ASYNC_LOAD_HANDLER',
    'AUTO_REMOVE_HANDLER',
    'HANDLER_END',
]
