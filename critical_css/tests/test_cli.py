"""Tests for the command-line interface."""

import re

import orjson
import pytest

from ..cli import build_options, find_documents, main, parse_args
from ..utils.error import ConfigurationError

HTML = '<html><head><link rel="stylesheet" href="/style.css"></head><body><h1>Hi</h1></body></html>'

@pytest.fixture
def site(tmp_path):
    """Create a site with one document and one stylesheet."""
    root = tmp_path / 'site'
    root.mkdir()
    (root / 'index.html').write_text(HTML, encoding='utf-8')
    (root / 'style.css').write_text('h1{color:blue} h2{color:red}', encoding='utf-8')
    return root

class TestArguments:
    """Tests for argument parsing and option building."""

    def test_defaults(self):
        args = parse_args(['index.html'])
        assert args.inputs == ['index.html']
        assert args.internal is None
        assert args.format == 'text'

        options = build_options(args)
        assert options.async_load
        assert options.log_level == 'info'

    def test_flags(self, tmp_path):
        args = parse_args([
            'index.html', '--path', str(tmp_path), '--no-async', '--preload',
            '--whitelist', '.modal', '--whitelist', '/^\\.btn-/', '--prune',
            '--additional-stylesheet', '*.css', '--external-threshold', '100',
        ])
        options = build_options(args)
        assert options.path == str(tmp_path)
        assert options.async_load is False
        assert options.preload is True
        assert options.prune_source is True
        assert options.additional_stylesheets == ('*.css',)
        assert options.external_threshold == 100
        assert options.whitelist[0] == '.modal'
        assert isinstance(options.whitelist[1], re.Pattern)

    @pytest.mark.parametrize('flags, level', [
        (['-v'], 'debug'),
        (['-q'], 'silent'),
        (['--format', 'json'], 'silent'),
    ])
    def test_log_level(self, flags, level):
        assert build_options(parse_args(['index.html'] + flags)).log_level == level

    def test_config_file(self, tmp_path):
        config = tmp_path / 'critical.json'
        config.write_bytes(orjson.dumps({'preloadExternalStylesheets': True, 'merge': False}))
        options = build_options(parse_args(['index.html', '--config', str(config), '--no-async']))
        assert options.preload is True
        assert options.merge is False
        assert options.async_load is False

    def test_invalid_regex(self):
        with pytest.raises(ConfigurationError):
            build_options(parse_args(['index.html', '--exclude', '(']))

class TestFindDocuments:
    """Tests for input discovery."""

    def test_directory(self, tmp_path):
        (tmp_path / 'sub').mkdir()
        (tmp_path / 'a.html').write_text('')
        (tmp_path / 'sub' / 'b.htm').write_text('')
        (tmp_path / 'c.txt').write_text('')

        documents = find_documents([str(tmp_path)])
        assert [name for _, name in documents] == ['a.html', 'sub/b.htm']

    def test_file(self, tmp_path):
        path = tmp_path / 'index.html'
        path.write_text('')
        assert find_documents([str(path)]) == [(str(path), 'index.html')]

    def test_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            find_documents([str(tmp_path / 'missing.html')])

class TestMain:
    """Tests for complete runs."""

    def test_process_and_prune(self, site, capsys):
        code = main([str(site / 'index.html'), '--path', str(site), '--no-async',
                     '--prune', '--format', 'json'])
        assert code == 0

        summary = orjson.loads(capsys.readouterr().out)
        assert summary['processed'] == [str(site / 'index.html')]
        assert summary['pruned'] == [str(site / 'style.css')]
        assert summary['errors'] == {}

        assert (site / 'index.html').read_text(encoding='utf-8') == HTML.replace(
            '<link', '<style>h1{color: blue;}</style><link'
        )
        assert (site / 'style.css').read_text(encoding='utf-8') == 'h2{color: red;}'

    def test_output_dir(self, site, tmp_path):
        output_dir = tmp_path / 'out'
        code = main([str(site), '--path', str(site), '-q', '-o', str(output_dir)])
        assert code == 0
        assert (site / 'index.html').read_text(encoding='utf-8') == HTML
        assert '<style>h1{color: blue;}</style>' in (output_dir / 'index.html').read_text(encoding='utf-8')

    def test_unchanged_document(self, site, capsys):
        (site / 'style.css').write_text('h1{color:blue}', encoding='utf-8')
        code = main([str(site / 'index.html'), '--path', str(site), '--format', 'json'])
        assert code == 0
        assert orjson.loads(capsys.readouterr().out)['unchanged'] == [str(site / 'index.html')]
        assert (site / 'index.html').read_text(encoding='utf-8') == HTML

    def test_parse_error(self, site, capsys):
        (site / 'style.css').write_text('h1{color:blue', encoding='utf-8')
        code = main([str(site / 'index.html'), '--path', str(site), '--format', 'json'])
        assert code == 1
        assert str(site / 'index.html') in orjson.loads(capsys.readouterr().out)['errors']

    def test_missing_input(self, tmp_path, capsys):
        assert main([str(tmp_path / 'missing.html'), '-q']) == 1
        assert 'File not found' in capsys.readouterr().err
