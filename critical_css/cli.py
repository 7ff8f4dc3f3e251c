#!/usr/bin/env python3
"""
Command-line interface for Critical CSS.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import aiofiles
import orjson
from tqdm import tqdm

from .core.engine import CriticalCss
from .core.options import Options, load_options
from .utils.config import DEFAULT_ENCODING, EVENT_HANDLERS, HTML_EXTENSIONS, VERSION
from .utils.error import CriticalCssError, ConfigurationError
from .utils.logging import setup_logging

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='critical-css',
        description='Inline the critical CSS of HTML documents and defer the rest'
    )

    parser.add_argument(
        'inputs',
        help='HTML files or directories containing HTML files',
        nargs='+'
    )

    # Output options
    parser.add_argument(
        '-o', '--output-dir',
        help='Write processed documents to this directory instead of in place'
    )
    parser.add_argument(
        '--format',
        help='Summary format',
        choices=['text', 'json'],
        default='text'
    )
    parser.add_argument(
        '--config',
        help='JSON file with engine options'
    )

    # Stylesheet resolution
    parser.add_argument(
        '--path',
        help='Directory stylesheet hrefs are relative to (default: current directory)'
    )
    parser.add_argument(
        '--public-path',
        help='Public path prefix to strip from stylesheet hrefs'
    )
    parser.add_argument(
        '--additional-stylesheet',
        help='Glob pattern of other stylesheets to process (repeatable)',
        dest='additional_stylesheets',
        action='append'
    )
    parser.add_argument(
        '--exclude',
        help='Regular expression of stylesheet hrefs to leave untouched'
    )
    parser.add_argument(
        '--external-threshold',
        help='Inline whole stylesheets smaller than this many bytes',
        type=int
    )

    # Processing options
    parser.add_argument('--no-internal', help='Skip <style> tags',
                        dest='internal', action='store_const', const=False)
    parser.add_argument('--no-external', help='Skip external stylesheets',
                        dest='external', action='store_const', const=False)
    parser.add_argument('--no-merge', help='Do not merge <style> tags',
                        dest='merge', action='store_const', const=False)
    parser.add_argument('--no-async', help='Do not load stylesheets asynchronously',
                        dest='async_load', action='store_const', const=False)
    parser.add_argument('--preload', help='Insert preload links',
                        action='store_const', const=True)
    parser.add_argument('--noscript', help='Insert <noscript> fallbacks',
                        dest='noscript_fallback', action='store_const', const=True)
    parser.add_argument('--font-face', help='Inline used @font-face rules',
                        dest='font_face', action='store_const', const=True)
    parser.add_argument('--no-keyframes', help='Do not inline @keyframes rules',
                        dest='keyframes', action='store_const', const=False)
    parser.add_argument('--auto-remove', help='Remove inlined styles once stylesheets load',
                        dest='auto_remove_style_tags', action='store_const', const=True)
    parser.add_argument('--event-handlers', help='Where to put onload handlers',
                        choices=EVENT_HANDLERS)
    parser.add_argument('--whitelist', help='Selector always kept (repeatable, /regex/ allowed)',
                        action='append')
    parser.add_argument('--prune', help='Remove inlined rules from the stylesheets',
                        dest='prune_source', action='store_const', const=True)

    # Other options
    parser.add_argument(
        '-v', '--verbose',
        help='Enable verbose output',
        action='store_true'
    )
    parser.add_argument(
        '-q', '--quiet',
        help='Suppress all output',
        action='store_true'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {VERSION}"
    )

    return parser.parse_args(argv)

OPTION_ARGS = (
    'path', 'public_path', 'additional_stylesheets', 'exclude', 'external_threshold',
    'internal', 'external', 'merge', 'async_load', 'preload', 'noscript_fallback',
    'font_face', 'keyframes', 'auto_remove_style_tags', 'event_handlers', 'whitelist',
    'prune_source',
)

def build_options(args: argparse.Namespace) -> Options:
    """Engine options from a config file and the flags given on the command line.

    Raises:
        ConfigurationError: If an option is invalid
    """
    overrides: Dict[str, Any] = {
        name: getattr(args, name) for name in OPTION_ARGS
        if getattr(args, name, None) is not None
    }

    if args.verbose:
        overrides['log_level'] = 'debug'
    elif args.quiet or args.format == 'json':
        overrides['log_level'] = 'silent'

    if args.config:
        return load_options(args.config, **overrides)
    return Options.from_dict(overrides)

def find_documents(inputs: List[str]) -> List[Tuple[str, str]]:
    """List the HTML documents to process.

    Returns:
        (path, name relative to its input) pairs
    """
    documents = []
    for source in inputs:
        if os.path.isdir(source):
            for directory, dirnames, filenames in os.walk(source):
                dirnames.sort()
                for filename in sorted(filenames):
                    if os.path.splitext(filename)[1].lower() in HTML_EXTENSIONS:
                        path = os.path.join(directory, filename)
                        documents.append((path, os.path.relpath(path, source)))
        elif os.path.isfile(source):
            documents.append((source, os.path.basename(source)))
        else:
            raise ConfigurationError(f"File not found: {source}")
    return documents

async def process_document(engine: CriticalCss, path: str, name: str,
                           output_dir: Optional[str]) -> bool:
    """Process one document and write it back.

    Returns:
        True if the document was rewritten
    """
    async with aiofiles.open(path, 'r', encoding=DEFAULT_ENCODING) as f:
        html = await f.read()

    output = await engine.process(html, name)

    target = os.path.join(output_dir, name) if output_dir else path
    if output_dir:
        os.makedirs(os.path.dirname(target) or '.', exist_ok=True)
    elif output is html:
        return False

    async with aiofiles.open(target, 'w', encoding=DEFAULT_ENCODING) as f:
        await f.write(output)

    return output is not html

async def run(args: argparse.Namespace, options: Options) -> Dict[str, Any]:
    """Process every document, then prune the stylesheets if requested."""
    engine = CriticalCss(options)
    summary: Dict[str, Any] = {'processed': [], 'unchanged': [], 'pruned': [], 'errors': {}}
    documents = find_documents(args.inputs)

    with tqdm(total=len(documents), desc='Processing', unit='file',
              disable=args.quiet or args.format == 'json') as progress:

        async def process(path: str, name: str) -> None:
            try:
                changed = await process_document(engine, path, name, args.output_dir)
                summary['processed' if changed else 'unchanged'].append(path)
            except (CriticalCssError, OSError) as e:
                summary['errors'][path] = str(e)
            finally:
                progress.update(1)

        await asyncio.gather(*[process(path, name) for path, name in documents])

    if options.prune_source:
        try:
            summary['pruned'] = await engine.pruner.prune_sources()
        except CriticalCssError as e:
            summary['errors']['prune'] = str(e)

    engine.clear()
    return summary

def print_summary(summary: Dict[str, Any], output_format: str) -> None:
    if output_format == 'json':
        print(orjson.dumps(summary, option=orjson.OPT_INDENT_2).decode('utf-8'))
        return

    print(f"Processed: {len(summary['processed'])}, unchanged: {len(summary['unchanged'])}, "
          f"pruned stylesheets: {len(summary['pruned'])}")
    for path, error in summary['errors'].items():
        print(f"Error: {path}: {error}", file=sys.stderr)

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        options = build_options(args)
        summary = asyncio.run(run(args, options))
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except CriticalCssError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print_summary(summary, args.format)

    return 1 if summary['errors'] else 0

if __name__ == '__main__':
    sys.exit(main())
