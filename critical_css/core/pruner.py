"""Remove inlined rules from external stylesheets."""

import asyncio
import os
from typing import TYPE_CHECKING, List

from ..utils.error import CssParseError
from ..utils.escape import escape_selectors, restore_selectors
from ..utils.formatter import format_to_kb, format_to_percent
from ..utils.logging import ProcessId
from .matcher import DropResult, drop_unused_css

if TYPE_CHECKING:
    from .engine import CriticalCss

class Pruner:
    """Rewrite the stylesheets tracked by an engine's session.

    A selector inlined in at least one document, or whitelisted, is removed
    from its stylesheet. A stylesheet left empty, or smaller than the
    ``external_threshold`` option, is deleted.
    """

    def __init__(self, engine: 'CriticalCss'):
        self.engine = engine

    def _should_drop(self, selector: str) -> bool:
        return self.engine.session.is_critical(selector) or selector in self.engine.whitelist

    def non_critical_css(self, css: str, process_id: ProcessId = None) -> DropResult:
        """Keep the rules of ``css`` that no document inlined.

        ``@font-face`` and ``@keyframes`` rules are kept when a remaining rule
        references them.

        Raises:
            CssParseError: If the stylesheet cannot be parsed
        """
        try:
            result = drop_unused_css(
                '',
                escape_selectors(css),
                should_drop=self._should_drop,
                drop_used_font_face=False,
                drop_used_keyframes=False,
            )
        except CssParseError:
            self.engine.logger.error('Unable to parse css or html.', process_id)
            raise

        result.css = restore_selectors(result.css).strip()
        return result

    async def prune_source(self, path: str, process_id: ProcessId = None) -> bool:
        """Prune one stylesheet.

        Args:
            path: Absolute stylesheet path
            process_id: Id used in log messages

        Returns:
            True if the stylesheet was rewritten or deleted

        Raises:
            StylesheetWriteError: If the pruned stylesheet cannot be written
        """
        engine = self.engine
        source = await engine.resolver.load(path, process_id)

        # Skip not found stylesheet
        if source is None:
            return False

        remainder = self.non_critical_css(source.content, process_id)

        if not remainder.css or remainder.size < engine.options.external_threshold:
            await engine.resolver.delete(path)
            engine.logger.info(
                f"Removed external stylesheet {path} ({format_to_kb(source.size)}).",
                process_id,
            )
            return True

        # Skip, no change
        if not remainder.changed:
            return False

        await engine.resolver.write(path, remainder.css)

        pruned = source.size - remainder.size
        engine.logger.info(
            f"Pruned {format_to_kb(pruned)} ({format_to_percent(pruned, source.size)} "
            f"of original {format_to_kb(source.size)}) of external stylesheet "
            f"{os.path.basename(path)}",
            process_id,
        )
        return True

    async def prune_sources(self, process_id: ProcessId = None) -> List[str]:
        """Prune every stylesheet tracked since the last ``clear()``.

        Returns:
            Paths of the rewritten or deleted stylesheets
        """
        paths = self.engine.session.tracked_paths
        results = await asyncio.gather(*[self.prune_source(path, process_id) for path in paths])

        pruned = [path for path, changed in zip(paths, results) if changed]
        if not pruned:
            self.engine.logger.info('No stylesheets was pruned.', process_id)

        return pruned

# Exported classes
__all__ = ['Pruner']
