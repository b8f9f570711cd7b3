"""Remove whole lines that do nothing at runtime.

>>> strip('#!/usr/bin/env bash\\n# comment\\n\\nimport fmt\\necho hi\\n')
['echo hi']
"""
import re
from typing import List

from .pipeline import Transformer
from .quote import QuoteState, QuoteTracker, Region, scan_lines
from .utils import split_lines

_COMMENT_RE = re.compile(r'^[ \t]*#')
_BLANK_RE = re.compile(r'^[ \t]*$')
_IMPORT_CALL_RE = re.compile(r'^[ \t]*import[ \t]+[@~]?[\w./-]+[ \t]*$')
_IMPORT_DEF_RE = re.compile(r'^[ \t]*import[ \t]*\(\)[ \t]*\{.+\}[ \t]*$')
_SAFETY_FLAGS_RE = re.compile(r'^[ \t]*set -euo pipefail[ \t]*;?[ \t]*$')
_SHEBANG_RE = re.compile(r'#!/(?:usr/)?bin/\S')

_NOISE = (_COMMENT_RE, _BLANK_RE, _IMPORT_CALL_RE, _IMPORT_DEF_RE, _SAFETY_FLAGS_RE)


def should_strip(line: str) -> bool:
    """
    >>> should_strip('  import is')
    True
    >>> should_strip('    import import::clear)')
    False
    >>> should_strip('set -euo pipefail; echo x')
    False
    """
    return any(pattern.match(line) for pattern in _NOISE)


def split_shebang(line: str, state: QuoteState = QuoteState()) -> List[str]:
    """Split a shebang glued to the end of a line by file concatenation.

    >>> split_shebang('}#!/usr/bin/env bash')
    ['}', '#!/usr/bin/env bash']
    >>> split_shebang('echo "#!/bin/sh"')
    ['echo "#!/bin/sh"']
    """
    for index, ch, before, _ in QuoteTracker.walk(line, state):
        if index and ch == '#' and not before.quoted and _SHEBANG_RE.match(line, index):
            return [line[:index], line[index:]]
    return [line]


def strip(source: str) -> List[str]:
    kept = []
    for scanned in scan_lines(split_lines(source)):
        if scanned.region is not Region.CODE:
            kept.append(scanned.text)
            continue
        for line in split_shebang(scanned.text, scanned.state):
            if not should_strip(line):
                kept.append(line)
    return kept


class Stripper(Transformer):

    def transform(self, source: str) -> str:
        return '\n'.join(strip(source))
