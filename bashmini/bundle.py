"""Inline ``import``, ``source`` and ``.`` directives into one script.

A target already inlined at top level is skipped the second time, unless the
directive is preceded by ``# minifier force source``. Inside a function or
other brace block it is always inlined, since the block may run in a context
where the earlier copy is not in scope.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Set

from .errors import BundleDepthError, BundleError
from .pipeline import Transformer
from .quote import QuoteState, QuoteTracker, Region, scan_lines
from .utils import split_lines

logger = logging.getLogger(__name__)

MAX_DEPTH = 64
FORCE_ANNOTATION = '# minifier force source'
EXTENSIONS = ('', '.sh', '.bash')

_IMPORT_RE = re.compile(r'^[ \t]*import[ \t]+([^\s;#]+)[ \t]*$')
_SOURCE_RE = re.compile(r'^[ \t]*(?:source|\.)[ \t]+(["\']?)([^"\'\s;#]+)\1[ \t]*;?[ \t]*$')


@dataclass(frozen=True)
class BundleConfig:
    search_paths: Sequence[Path] = ()


def import_target(line: str) -> Optional[str]:
    """Target of an import directive, or None when there is none to resolve.

    >>> import_target('  import @fmt')
    '@fmt'
    >>> import_target('source "./lib.sh";')
    './lib.sh'
    >>> import_target('. "${dir}/lib.sh"') is None
    True
    """
    match = _IMPORT_RE.match(line)
    if match:
        target = match.group(1)
    else:
        match = _SOURCE_RE.match(line)
        if not match:
            return None
        target = match.group(2)
    if '$' in target:
        logger.debug('not resolving dynamic import %r', target)
        return None
    return target


def resolve_import(target: str, current_dir: Path,
                   search_paths: Sequence[Path] = ()) -> Optional[Path]:
    """Find the file for an import target.

    The current file's directory is tried first, then each search path, each
    with the bare name and then the ``.sh`` and ``.bash`` extensions.
    """
    name = target[1:] if target[:1] in ('@', '~') else target
    path = Path(name)
    if path.is_absolute() or '..' in path.parts:
        logger.debug('refusing to resolve %r outside the search paths', target)
        return None
    for directory in (current_dir, *search_paths):
        for extension in EXTENSIONS:
            candidate = Path(directory) / f'{name}{extension}'
            if candidate.is_file():
                return candidate
    logger.debug('could not resolve import %r', target)
    return None


def brace_depth_delta(line: str, state: QuoteState = QuoteState()) -> int:
    """Net change in block-brace depth, ignoring ``${...}`` and quoted braces.

    >>> brace_depth_delta('f() {')
    1
    >>> brace_depth_delta('echo "${x:-}" "{" ${y} }  # {')
    -1
    """
    end = QuoteTracker.comment_start(line, state)
    if end is not None:
        line = line[:end]
    delta = param = 0
    for index, ch, before, _ in QuoteTracker.walk(line, state):
        if before.in_single:
            continue
        if ch == '{':
            if index and line[index - 1] == '$':
                param += 1
            elif not param and not before.in_double:
                delta += 1
        elif ch == '}':
            if param:
                param -= 1
            elif not before.in_double:
                delta -= 1
    return delta


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding='utf-8', errors='surrogateescape')
    except OSError as exc:
        raise BundleError(f'cannot read import {path}: {exc.strerror}', path) from exc


def _inline(source: str, path: Path, config: BundleConfig, seen: Set[Path],
            depth: int) -> List[str]:
    if depth > MAX_DEPTH:
        raise BundleDepthError(
            f'import nesting exceeds {MAX_DEPTH} levels at {path}, is there a cycle?', path)

    output = []
    braces = 0
    force = False
    for scanned in scan_lines(split_lines(source)):
        line = scanned.text
        if scanned.region is Region.HEREDOC:
            output.append(line)
            continue
        if scanned.region is Region.CODE:
            if line.strip() == FORCE_ANNOTATION:
                force = True
                continue
            target = import_target(line)
            resolved = target and resolve_import(target, path.parent, config.search_paths)
            if resolved:
                canonical = resolved.resolve()
                if braces == 0 and not force and canonical in seen:
                    logger.debug('skipping %s, already inlined', canonical)
                else:
                    seen.add(canonical)
                    logger.debug('inlining %s at depth %d', canonical, depth + 1)
                    output.extend(_inline(_read(resolved), resolved, config, seen, depth + 1))
                force = False
                continue
        force = False
        output.append(line)
        braces = max(0, braces + brace_depth_delta(line, scanned.state))
    return output


def bundle(source: str, input_path=None, config: BundleConfig = BundleConfig()) -> str:
    """Inline every resolvable import of ``source``.

    ``input_path`` locates the script, for relative imports and so that an
    import cycle back to the script itself is not inlined.
    """
    seen: Set[Path] = set()
    if input_path is None:
        path = Path('.') / '-'
    else:
        path = Path(input_path)
        seen.add(path.resolve())
    return '\n'.join(_inline(source, path, config, seen, 0))


class Bundler(Transformer):

    def __init__(self, input_path=None, search_paths: Sequence[Path] = ()):
        self.input_path = input_path
        self.config = BundleConfig(tuple(Path(p) for p in search_paths))

    def transform(self, source: str) -> str:
        return bundle(source, self.input_path, self.config)
