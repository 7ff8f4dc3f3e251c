"""State shared by every document processed by one engine."""

import asyncio
from typing import Awaitable, Callable, Dict, List, Set, TypeVar

T = TypeVar('T')

class Session:
    """Stylesheet content cache, critical selector accumulator and pruning
    targets.

    Loads are memoized by path: the first request starts a task, later
    requests (concurrent or not) await the same task. Nothing is evicted
    before :meth:`clear`.
    """

    def __init__(self):
        self.sources: Dict[str, asyncio.Future] = {}
        self.critical_selectors: Set[str] = set()
        self._tracked: Dict[str, None] = {}

    def memoize(self, key: str, factory: Callable[[], Awaitable[T]]) -> Awaitable[T]:
        """Return the pending or completed load for ``key``, starting it if needed."""
        if key not in self.sources:
            self.sources[key] = asyncio.ensure_future(factory())
        return self.sources[key]

    def add_critical_selectors(self, selectors) -> None:
        self.critical_selectors.update(selectors)

    def is_critical(self, selector: str) -> bool:
        return selector in self.critical_selectors

    def track(self, path: str) -> None:
        """Remember a stylesheet for the next pruning pass (first call wins the order)."""
        self._tracked.setdefault(path, None)

    @property
    def tracked_paths(self) -> List[str]:
        return list(self._tracked)

    def clear(self) -> None:
        """Forget cached sources, accumulated selectors and pruning targets."""
        self.sources.clear()
        self.critical_selectors.clear()
        self._tracked.clear()

# Exported classes
__all__ = ['Session']
