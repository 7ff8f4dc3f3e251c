"""Pytest configuration for Critical CSS tests."""

import logging

import pytest

from ..core.engine import CriticalCss
from ..managers.filesystem import MemoryFileSystem

# Configure logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

SITE = '/site'

class RecordingLogger:
    """Logger keeping every message for assertions."""

    def __init__(self):
        self.messages = []

    def _record(self, level, msg, process_id):
        self.messages.append((level, msg, process_id))

    def debug(self, msg, process_id=None):
        self._record('debug', msg, process_id)

    def info(self, msg, process_id=None):
        self._record('info', msg, process_id)

    def warn(self, msg, process_id=None):
        self._record('warn', msg, process_id)

    def error(self, msg, process_id=None):
        self._record('error', msg, process_id)

    def at(self, level):
        return [msg for recorded, msg, _ in self.messages if recorded == level]

@pytest.fixture
def logger():
    """Return a recording logger."""
    return RecordingLogger()

@pytest.fixture
def file_system():
    """Return an in-memory file system holding the site stylesheet."""
    return MemoryFileSystem({
        f"{SITE}/style.css": 'h1{color:blue} h2.unused{color:red}',
    })

@pytest.fixture
def make_engine(file_system, logger):
    """Return a factory of engines reading from the in-memory site."""
    def factory(**options):
        options.setdefault('path', SITE)
        options.setdefault('logger', logger)
        options.setdefault('log_level', 'debug')
        return CriticalCss(file_system=file_system, **options)
    return factory

@pytest.fixture(scope='session')
def sample_html():
    """Return a document using the site stylesheet."""
    return '<link rel="stylesheet" href="/style.css"><h1>Hi</h1>'

@pytest.fixture(scope='session')
def page_html():
    """Return a complete document with a head."""
    return (
        '<!DOCTYPE html>\n'
        '<html>\n'
        '<head>\n'
        '<meta charset="utf-8">\n'
        '<link rel="stylesheet" href="/style.css">\n'
        '</head>\n'
        '<body>\n'
        '<!-- ssr:root -->\n'
        '<h1>Hi</h1>\n'
        '</body>\n'
        '</html>\n'
    )
