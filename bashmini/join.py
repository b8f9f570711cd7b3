"""Collapse a flattened script into as few physical lines as possible.

Newlines survive only where bash needs them: after a heredoc header and
inside its body, after ``case ... in`` and after each case item.

>>> join('if true; then\\n  echo yes\\nfi\\n')
'if true; then echo yes;fi;'
>>> join("echo 'hello\\nworld'")
"echo 'hello'$'\\\\n''world';"
"""
import re
from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from .pipeline import Transformer
from .quote import QuoteTracker, find_heredoc
from .utils import split_lines

NEWLINE_GLUE = "$'\\n'"

_CASE_RE = re.compile(r'^case\b')
_ESAC_RE = re.compile(r'^esac\b')
_ESAC_WORD_RE = re.compile(r'(?<![A-Za-z0-9_\-])esac\b')
_CASE_PATTERN_RE = re.compile(r'^(\(?[^()]+\))[ \t]*(.*)$')
_CASE_TERMINATOR_RE = re.compile(r'(;;&|;;|;&)[ \t]*$')
_ARRAY_OPEN_RE = re.compile(r'=\(')
_CONTINUATION_RE = re.compile(r'(?<!\\)(?:\\\\)*\\$')
_OPERATOR_RE = re.compile(r'(?:[|&{(]{1,2}|(?<!\\);)[ \t]*$')
_CLOSE_PAREN_RE = re.compile(r'^[ \t]*\)')
_KEYWORD_RE = re.compile(r'(?:^|[;&|])[ \t]*(?:then|do|else)[ \t]*$')
_FUNCTION_HEADER_RE = re.compile(r'^(?:function[ \t]+[^\s()]+(?:[ \t]*\(\))?|[^\s()]+[ \t]*\(\))[ \t]*$')
_KEYWORD_SEMI_RE = re.compile(r'((?:^|[;&|\n])[ \t]*)(then|do|else);')


class LineKind(Enum):
    HEREDOC = 'heredoc'
    CASE = 'case'
    ARRAY = 'array'
    BLANK = 'blank'
    OPEN_QUOTE = 'open_quote'
    CONTINUATION = 'continuation'
    OPERATOR = 'operator'
    CLOSE_PAREN = 'close_paren'
    KEYWORD = 'keyword'
    STATEMENT = 'statement'


def strip_comment(line: str) -> str:
    index = QuoteTracker.comment_start(line)
    return line if index is None else line[:index].rstrip()


def open_parens(line: str) -> int:
    """Net count of unquoted, unescaped ``(`` over ``)``.

    >>> open_parens('arr=( $(echo one) "(" \\\\(')
    1
    """
    depth = 0
    for index, ch, before, _ in QuoteTracker.walk(line):
        if before.quoted or (index and line[index - 1] == '\\'):
            continue
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
    return depth


def classify(line: str) -> LineKind:
    """Kind of a logical line, first match wins.

    >>> classify('arr=(')
    <LineKind.ARRAY: 'array'>
    >>> classify('cmd1 &&')
    <LineKind.OPERATOR: 'operator'>
    >>> classify('find . -exec rm {} \\\\;')
    <LineKind.STATEMENT: 'statement'>
    """
    if find_heredoc(line):
        return LineKind.HEREDOC
    if _CASE_RE.match(line) and not _ESAC_WORD_RE.search(line):
        return LineKind.CASE
    if (_ARRAY_OPEN_RE.search(line) and not QuoteTracker.code_state(line).quoted
            and open_parens(line) > 0):
        return LineKind.ARRAY
    if not line.strip():
        return LineKind.BLANK
    if QuoteTracker.code_state(line).quoted:
        return LineKind.OPEN_QUOTE
    if _CONTINUATION_RE.search(line):
        return LineKind.CONTINUATION
    if _OPERATOR_RE.search(line):
        return LineKind.OPERATOR
    if _CLOSE_PAREN_RE.match(line):
        return LineKind.CLOSE_PAREN
    if _KEYWORD_RE.search(line) or _FUNCTION_HEADER_RE.match(line):
        return LineKind.KEYWORD
    return LineKind.STATEMENT


def fix_keyword_semicolons(text: str) -> str:
    """
    >>> fix_keyword_semicolons('if x; then;echo "do;";fi')
    'if x; then echo "do;";fi'
    """
    quoted = [before.quoted for _, _, before, _ in QuoteTracker.walk(text)]

    def replace(match):
        if quoted[match.start(2)]:
            return match.group(0)
        return match.group(1) + match.group(2) + ' '
    return _KEYWORD_SEMI_RE.sub(replace, text)


class _Output:
    """Collects output, keeping verbatim runs out of the keyword fix."""

    def __init__(self):
        self.pieces = []

    def write(self, text: str, verbatim: bool = False):
        self.pieces.append((text, verbatim))

    def getvalue(self) -> str:
        chunks, run = [], []
        for text, verbatim in self.pieces:
            if verbatim:
                chunks.append(fix_keyword_semicolons(''.join(run)))
                chunks.append(text)
                run = []
            else:
                run.append(text)
        chunks.append(fix_keyword_semicolons(''.join(run)))
        return ''.join(chunks)


def _merge_open_quote(line: str, queue: Deque[str]) -> Optional[str]:
    """Pull following lines into ``line`` until its open string closes."""
    state = QuoteTracker.code_state(line)
    while state.quoted:
        if not queue:
            return None
        following = queue.popleft()
        if state.in_double and _CONTINUATION_RE.search(line):
            line = line[:-1] + following
        else:
            quote = "'" if state.in_single else '"'
            line = f'{line}{quote}{NEWLINE_GLUE}{quote}{following}'
        state = QuoteTracker.code_state(following, state)
    return line


def _write_heredoc(header: str, queue: Deque[str], out: _Output):
    heredoc = find_heredoc(header)
    out.write(header.rstrip() + '\n')
    while queue:
        line = queue.popleft()
        out.write(line + '\n', verbatim=True)
        if heredoc.closes(line):
            break


def _write_array(line: str, queue: Deque[str], out: _Output):
    out.write(line.rstrip())
    depth = open_parens(line)
    while queue and depth > 0:
        element = strip_comment(queue.popleft()).strip()
        if not element:
            continue
        out.write(' ' + element)
        depth += open_parens(element)
    out.write(';')


def _case_body(rest: str, queue: Deque[str]):
    """Collect one case item's body, returning ``(lines, terminator)``."""
    heredoc = find_heredoc(rest)
    match = heredoc is None and _CASE_TERMINATOR_RE.search(rest)
    if match:
        return [rest[:match.start()]], match.group(1)
    body = [rest]
    nested = 0
    while queue:
        line = queue.popleft()
        if heredoc is not None:
            body.append(line)
            if heredoc.closes(line):
                heredoc = None
            continue
        stripped = strip_comment(line).strip()
        if _CASE_RE.match(stripped) and not _ESAC_WORD_RE.search(stripped):
            nested += 1
        elif _ESAC_RE.match(stripped):
            if not nested:
                queue.appendleft(line)
                return body, None
            nested -= 1
        if not nested:
            match = _CASE_TERMINATOR_RE.search(stripped)
            if match:
                body.append(stripped[:match.start()])
                return body, match.group(1)
        body.append(line)
        heredoc = find_heredoc(line)
    return body, None


def _write_case(header: str, queue: Deque[str], out: _Output):
    out.write(header.rstrip() + '\n')
    while queue:
        line = strip_comment(queue.popleft()).strip()
        if not line:
            continue
        match = _ESAC_RE.match(line)
        if match:
            out.write('esac')
            rest = line[match.end():].lstrip()
            if rest:
                queue.appendleft(rest)
            else:
                out.write(';')
            return
        match = _CASE_PATTERN_RE.match(line)
        if not match:
            out.write(line + '\n')
            continue
        pattern, rest = match.groups()
        body, terminator = _case_body(rest, queue)
        joined = join('\n'.join(body)).rstrip(';')
        out.write(pattern)
        out.write(joined, verbatim=True)
        out.write((terminator or ';;') + '\n')


def _join_into(queue: Deque[str], out: _Output):
    while queue:
        line = strip_comment(queue.popleft().lstrip(' \t'))
        kind = classify(line)
        if kind is LineKind.HEREDOC:
            _write_heredoc(line, queue, out)
        elif kind is LineKind.CASE:
            _write_case(line, queue, out)
        elif kind is LineKind.ARRAY:
            _write_array(line, queue, out)
        elif kind is LineKind.BLANK:
            continue
        elif kind is LineKind.OPEN_QUOTE:
            merged = _merge_open_quote(line, queue)
            if merged is None:
                out.write(line)
            else:
                queue.appendleft(merged)
        elif kind is LineKind.CONTINUATION:
            if queue:
                queue.appendleft(line[:-1] + queue.popleft().lstrip(' \t'))
            else:
                out.write(line[:-1].rstrip() + ';')
        elif kind in (LineKind.OPERATOR, LineKind.KEYWORD):
            out.write(line.rstrip() + ' ')
        else:
            out.write(line.rstrip() + ';')


def join(source: str) -> str:
    queue = deque(split_lines(source))
    out = _Output()
    _join_into(queue, out)
    return out.getvalue()


class Joiner(Transformer):

    def transform(self, source: str) -> str:
        return join(source)
