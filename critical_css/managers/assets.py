"""Build tool integration: process documents and stylesheets held in memory."""

import asyncio
import os
from typing import Dict, List, Optional, Union

from typing_extensions import Protocol

from ..core.engine import CriticalCss
from ..core.options import Options
from ..utils.config import HTML_EXTENSIONS
from ..utils.logging import ProcessId
from .filesystem import FileSystem
from .stylesheet import StylesheetResolver

class AssetStore(Protocol):
    """Assets produced by a build, keyed by their output relative name."""

    def get_asset(self, name: str) -> Optional[bytes]: ...

    def update_asset(self, name: str, data: bytes) -> None: ...

    def delete_asset(self, name: str) -> None: ...

    def html_assets(self) -> Dict[str, str]: ...

    def asset_names(self) -> List[str]: ...

class DictAssetStore:
    """In-memory asset store."""

    def __init__(self, assets: Optional[Dict[str, Union[str, bytes]]] = None):
        self.assets: Dict[str, bytes] = {}
        for name, data in (assets or {}).items():
            self.update_asset(name, data)

    def get_asset(self, name: str) -> Optional[bytes]:
        return self.assets.get(name)

    def update_asset(self, name: str, data: Union[str, bytes]) -> None:
        self.assets[name] = data.encode('utf-8') if isinstance(data, str) else data

    def delete_asset(self, name: str) -> None:
        self.assets.pop(name, None)

    def html_assets(self) -> Dict[str, str]:
        return {
            name: data.decode('utf-8')
            for name, data in self.assets.items()
            if os.path.splitext(name)[1].lower() in HTML_EXTENSIONS
        }

    def asset_names(self) -> List[str]:
        return list(self.assets)

class AssetStylesheetResolver(StylesheetResolver):
    """Read and write stylesheets through an asset store.

    A stylesheet is looked up by its path relative to the base path, then
    by its basename; the file system is used when the store has neither.
    """

    def __init__(self, options, session, file_system, logger, store: AssetStore):
        super().__init__(options, session, file_system, logger)
        self.store = store

    def asset_name(self, path: str) -> Optional[str]:
        names = set(self.store.asset_names())
        relative = os.path.relpath(path, os.path.abspath(self.options.path)).replace(os.sep, '/')
        for name in (relative, os.path.basename(path)):
            if name in names:
                return name
        return None

    async def read(self, path: str) -> bytes:
        name = self.asset_name(path)
        if name is not None:
            data = self.store.get_asset(name)
            if data is not None:
                return data
        return await super().read(path)

    async def list_candidates(self) -> List[str]:
        candidates = list(self.store.asset_names())
        seen = set(candidates)
        for relative in await super().list_candidates():
            if relative not in seen:
                seen.add(relative)
                candidates.append(relative)
        return candidates

    async def write(self, path: str, content: str) -> None:
        name = self.asset_name(path)
        if name is None:
            await super().write(path, content)
            return
        self.store.update_asset(name, content.encode('utf-8'))

    async def delete(self, path: str) -> bool:
        name = self.asset_name(path)
        if name is None:
            return await super().delete(path)
        self.store.delete_asset(name)
        return True

class AssetCriticalCss(CriticalCss):
    """Engine reading stylesheets from an asset store first."""

    def __init__(self, store: AssetStore, options: Optional[Options] = None,
                 file_system: Optional[FileSystem] = None, **overrides):
        self.store = store
        super().__init__(options, file_system, **overrides)

    def create_resolver(self) -> StylesheetResolver:
        return AssetStylesheetResolver(
            self.options, self.session, self.file_system, self.logger, self.store
        )

async def process_assets(engine: CriticalCss, store: AssetStore,
                         process_id: ProcessId = None) -> List[str]:
    """Process every HTML asset of a store and update it in place.

    Each document is processed with its asset name as process id. When the
    ``prune_source`` option is set, the stylesheets are pruned afterwards.

    Args:
        engine: Engine to process documents with
        store: Asset store holding the documents
        process_id: Id used for messages not related to one document

    Returns:
        Names of the processed HTML assets
    """
    html_assets = store.html_assets()

    if not html_assets:
        engine.logger.warn('Unable to find any HTML asset.', process_id)

    async def process_asset(name: str, html: str) -> None:
        if not html:
            engine.logger.warn(f'Empty HTML asset "{name}".', process_id)
        output = await engine.process(html, name)
        store.update_asset(name, output.encode('utf-8'))

    await asyncio.gather(*[process_asset(name, html) for name, html in html_assets.items()])

    if engine.options.prune_source:
        await engine.prune_sources(process_id)

    return list(html_assets)

# Exported names
__all__ = [
    'AssetStore',
    'DictAssetStore',
    'AssetStylesheetResolver',
    'AssetCriticalCss',
    'process_assets',
]
