import logging
import sys
from argparse import ArgumentParser
from pathlib import Path

from .bashmini import DEFAULT_IGNORE, MinifyConfig, minify
from .errors import MinifyError

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog='bashmini', description='Minify a bash script.')
    parser.add_argument('-i', dest='input', required=True, help='Path to the input script')
    parser.add_argument('-o', dest='output', required=True,
                        help='Path to the output file, overwritten if it exists')
    parser.add_argument('-B', '--bundle', action='store_true',
                        help='Inline import, source and . directives')
    parser.add_argument('-S', '--search-path', action='append', default=[], metavar='DIR',
                        help='Extra directory to resolve imports in. Repeatable, needs -B')
    parser.add_argument('-O', '--obfuscate', action='store_true',
                        help='Rename local variables to short names')
    parser.add_argument('-V', dest='variables', action='append', default=[], metavar='NAME',
                        help='Variable to leave untouched. Repeatable, needs -O')
    parser.add_argument('-I', dest='ignore', default=None, metavar='PATTERNS',
                        help=f'Comma-separated regexes of variables to leave untouched, '
                             f'"*" for all (default: {DEFAULT_IGNORE}). Needs -O')
    parser.add_argument('-P', '--prefix', default=None,
                        help='Prefix of the generated variable names (default: a). Needs -O')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug output to stderr')
    return parser


def _config(parser: ArgumentParser, args) -> MinifyConfig:
    if args.search_path and not args.bundle:
        parser.error('-S/--search-path requires -B/--bundle')
    if not args.obfuscate:
        for given, flag in ((args.variables, '-V'), (args.ignore is not None, '-I'),
                            (args.prefix is not None, '-P/--prefix')):
            if given:
                parser.error(f'{flag} requires -O/--obfuscate')

    ignore = DEFAULT_IGNORE if args.ignore is None else args.ignore
    if args.variables:
        ignore = ','.join(filter(None, [ignore, *args.variables]))
    return MinifyConfig(
        bundle=args.bundle,
        input_path=Path(args.input),
        search_paths=tuple(Path(p) for p in args.search_path),
        obfuscate=args.obfuscate,
        prefix='a' if args.prefix is None else args.prefix,
        ignore=ignore,
    )


def _read(path: Path) -> str:
    try:
        with open(path, encoding='utf-8', errors='surrogateescape') as f:
            return f.read()
    except OSError as exc:
        raise MinifyError(f'Failed to read {path}: {exc.strerror}') from exc


def _write(path: Path, text: str):
    try:
        with open(path, 'w', encoding='utf-8', errors='surrogateescape') as f:
            f.write(text)
    except OSError as exc:
        raise MinifyError(f'Failed to write {path}: {exc.strerror}') from exc


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _config(parser, args)
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        source = _read(config.input_path)
        _write(Path(args.output), minify(source, config))
    except MinifyError as exc:
        logger.error('%s', exc)
        return 1
    logger.debug('wrote %s', args.output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
