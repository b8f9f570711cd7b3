import re
from typing import Iterable, List

from .pipeline import Transformer
from .quote import QuoteState, QuoteTracker, Region, scan_lines
from .utils import split_lines

_TRAILING_SEMI_RE = re.compile(r'(?<![;\\]);[ \t]*$')


def flatten_line(line: str, state: QuoteState = QuoteState()) -> str:
    """Drop indentation, an end-of-line comment and a lone trailing ``;``.

    >>> flatten_line('  echo hello;')
    'echo hello'
    >>> flatten_line('echo "a # b" # note')
    'echo "a # b"'
    >>> flatten_line('pattern);;')
    'pattern);;'
    >>> flatten_line('find . -exec rm {} \\\\;')
    'find . -exec rm {} \\\\;'
    """
    if not state.quoted:
        line = line.lstrip(' \t')
    index = QuoteTracker.comment_start(line, state)
    if index and line[index - 1] in ' \t' and line[index + 1:index + 2] in (' ', '\t'):
        line = line[:index].rstrip(' \t')
    if not QuoteTracker.scan(line, state).quoted:
        line = _TRAILING_SEMI_RE.sub('', line)
    return line


def flatten(lines: Iterable[str]) -> List[str]:
    flat = []
    for scanned in scan_lines(lines):
        if scanned.region is Region.CODE:
            flat.append(flatten_line(scanned.text, scanned.state))
        else:
            flat.append(scanned.text)
    return flat


class Flattener(Transformer):

    def transform(self, source: str) -> str:
        return '\n'.join(flatten(split_lines(source)))
