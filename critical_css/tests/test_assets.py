"""Tests for processing build assets held in memory."""

import pytest

from ..managers.assets import AssetCriticalCss, DictAssetStore, process_assets
from ..managers.filesystem import MemoryFileSystem
from .conftest import SITE

CSS = 'h1{color:blue} h2.unused{color:red}'

@pytest.fixture
def make_asset_engine(logger):
    def factory(store, file_system=None, **options):
        options.setdefault('path', SITE)
        options.setdefault('logger', logger)
        options.setdefault('async_load', False)
        return AssetCriticalCss(store, file_system=file_system or MemoryFileSystem(), **options)
    return factory

class TestDictAssetStore:
    """Tests for the in-memory asset store."""

    def test_assets(self):
        store = DictAssetStore({'index.html': '<p>x</p>', 'about.htm': b'<p>y</p>', 'a.css': 'p{}'})
        assert store.get_asset('a.css') == b'p{}'
        assert store.html_assets() == {'index.html': '<p>x</p>', 'about.htm': '<p>y</p>'}

        store.delete_asset('a.css')
        store.delete_asset('missing.css')
        assert store.asset_names() == ['index.html', 'about.htm']
        assert store.get_asset('a.css') is None

class TestProcessAssets:
    """Tests for processing every document of a build."""

    @pytest.mark.asyncio
    async def test_documents_updated(self, make_asset_engine, sample_html):
        store = DictAssetStore({'index.html': sample_html, 'style.css': CSS})
        names = await process_assets(make_asset_engine(store), store)

        assert names == ['index.html']
        assert store.get_asset('index.html') == (
            b'<style>h1{color: blue;}</style>'
            b'<link rel="stylesheet" href="/style.css"><h1>Hi</h1>'
        )
        assert store.get_asset('style.css') == CSS.encode('utf-8')

    @pytest.mark.asyncio
    async def test_asset_name_as_process_id(self, make_asset_engine, sample_html, logger):
        store = DictAssetStore({'index.html': sample_html, 'style.css': CSS})
        await process_assets(make_asset_engine(store), store)
        assert {process_id for _, _, process_id in logger.messages} == {'index.html'}

    @pytest.mark.asyncio
    async def test_prune_assets(self, make_asset_engine):
        store = DictAssetStore({
            'index.html': '<link rel="stylesheet" href="/css/main.css"><h1>Hi</h1>',
            'css/main.css': CSS,
        })
        await process_assets(make_asset_engine(store, prune_source=True), store)
        assert store.get_asset('css/main.css') == b'h2.unused{color: red;}'

    @pytest.mark.asyncio
    async def test_basename_lookup(self, make_asset_engine):
        """Test stylesheets are found by basename when the public path differs."""
        store = DictAssetStore({
            'index.html': '<link rel="stylesheet" href="/assets/main.css"><h1>Hi</h1>',
            'main.css': 'h1{color:blue} h2{color:red}',
        })
        await process_assets(make_asset_engine(store, prune_source=True), store)
        assert store.get_asset('main.css') == b'h2{color: red;}'

    @pytest.mark.asyncio
    async def test_inlined_asset_deleted(self, make_asset_engine, sample_html):
        store = DictAssetStore({'index.html': sample_html, 'style.css': CSS})
        await process_assets(make_asset_engine(store, prune_source=True, external_threshold=1000), store)
        assert 'style.css' not in store.asset_names()

    @pytest.mark.asyncio
    async def test_file_system_fallback(self, make_asset_engine, sample_html):
        store = DictAssetStore({'index.html': sample_html})
        file_system = MemoryFileSystem({f"{SITE}/style.css": CSS})
        await process_assets(make_asset_engine(store, file_system), store)
        assert store.get_asset('index.html').startswith(b'<style>h1{color: blue;}</style>')

    @pytest.mark.asyncio
    async def test_additional_stylesheets(self, make_asset_engine):
        store = DictAssetStore({'index.html': '<head></head><h1>Hi</h1>', 'style.css': CSS})
        await process_assets(make_asset_engine(store, additional_stylesheets=['*.css']), store)
        assert store.get_asset('index.html') == b'<head><style>h1{color: blue;}</style></head><h1>Hi</h1>'

    @pytest.mark.asyncio
    async def test_no_html_asset(self, make_asset_engine, logger):
        store = DictAssetStore({'style.css': CSS})
        assert await process_assets(make_asset_engine(store), store, 'build') == []
        assert ('warn', 'Unable to find any HTML asset.', 'build') in logger.messages

    @pytest.mark.asyncio
    async def test_empty_html_asset(self, make_asset_engine, logger):
        store = DictAssetStore({'index.html': ''})
        await process_assets(make_asset_engine(store), store)
        assert 'Empty HTML asset "index.html".' in logger.at('warn')
