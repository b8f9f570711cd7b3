"""Variable discovery.

Finds every lowercase variable a script binds, in any of the forms below, so
that the obfuscator knows which names are safe to rename::

    name=value              Binding.ASSIGNMENT
    local a b=1 / declare   Binding.DECLARATION
    read -r a b             Binding.READ
    for name in ...         Binding.FOR
    name[i]=value           Binding.ARRAY_WRITE
    (( ++name ))            Binding.PRE_INCREMENT
    (( name++ ))            Binding.POST_INCREMENT

Uppercase names are environment variables and are never collected. A line
following ``# obfus ignore variable`` contributes nothing.

>>> discover('local foo=1 bar\\nfor item in a b; do echo $item; done')
['item', 'bar', 'foo']
"""
import logging
import re
from enum import Enum
from typing import Iterable, List, Optional, Pattern, Set, Tuple

from .errors import ConfigError
from .pipeline import Transformer
from .quote import QuoteTracker, Region, scan_lines
from .utils import split_lines

logger = logging.getLogger(__name__)

RESERVED = frozenset({'IFS'})
IGNORE_ANNOTATION = '# obfus ignore variable'

_NAME = r'[a-z][a-z0-9_]*'
_NAME_RE = re.compile(rf'^{_NAME}$')

_ANNOTATION_RE = re.compile(r'^[ \t]*' + re.escape(IGNORE_ANNOTATION))
_COMMENT_RE = re.compile(r'^[ \t]*#')
_BLANK_RE = re.compile(r'^[ \t]*$')
_LEADING_KEYWORD_RE = re.compile(r'^(?:(?:then|do|else|elif|if|while|until|!|\{)[ \t]+)+')

_ASSIGNMENT_RE = re.compile(rf'^({_NAME})\+?=')
_DECLARATION_RE = re.compile(r'(?:^|[ \t])(local|declare)(?=[ \t]|$)')
_DECLARATION_PREFIX_RE = re.compile(
    r'^.*?(?:^|[ \t])(?:local|declare)((?:[ \t]+[-+][A-Za-z]+)*)(?=[ \t]|$)')
_READ_RE = re.compile(r'(?:^|[ \t|(!])read[ \t]+([^|&;<>()]*)')
_FOR_RE = re.compile(rf'^(?:for|select)[ \t]+({_NAME})(?=[ \t]|$)')
_ARRAY_WRITE_RE = re.compile(rf'^({_NAME})\[.+\]\+?=')
_PRE_INCREMENT_RE = re.compile(rf'^\(\([ \t]*(?:\+\+|--)({_NAME})[ \t]*\)\)')
_POST_INCREMENT_RE = re.compile(rf'^\(\([ \t]*({_NAME})(?:\+\+|--)[ \t]*\)\)')
_EXPORT_RE = re.compile(r'(?:^|[ \t])export((?:[ \t]+-[A-Za-z]+)*)[ \t]+(.*)')

_GROUP_RE = re.compile(r'[({].*?[)}]')
_QUOTED_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\'[^\']*\'')
_VALUE_RE = re.compile(r'=\S*')

# options of `read` that take an argument
_READ_ARG_OPTIONS = 'adinNptu'
_DECLARE_SKIP_FLAGS = set('gfFp')


class Binding(Enum):
    ASSIGNMENT = 'assignment'
    DECLARATION = 'declaration'
    READ = 'read'
    FOR = 'for'
    ARRAY_WRITE = 'array_write'
    PRE_INCREMENT = 'pre_increment'
    POST_INCREMENT = 'post_increment'


def split_segments(line: str) -> List[str]:
    """Split on ``;``, ``&&`` and ``||`` outside quotes.

    >>> split_segments('a=1; msg="x; y" && b=2')
    ['a=1', 'msg="x; y"', 'b=2']
    """
    segments, start, skip = [], 0, -1
    for index, ch, before, _ in QuoteTracker.walk(line):
        if index <= skip or before.quoted:
            continue
        if ch == ';':
            segments.append(line[start:index])
            start = index + 1
        elif ch in '&|' and line.startswith(ch * 2, index):
            segments.append(line[start:index])
            start = index + 2
            skip = index + 1
    segments.append(line[start:])
    return [segment.strip() for segment in segments if segment.strip()]


def _words(text: str) -> List[str]:
    text = _GROUP_RE.sub('', text)
    text = _QUOTED_RE.sub('', text)
    text = _VALUE_RE.sub('', text)
    return text.split()


def declared_names(segment: str) -> Tuple[str, List[str]]:
    """Flags and names of a ``local``/``declare`` segment.

    >>> declared_names('local -a arr=(one two) x="a b" y')
    ('a', ['arr', 'x', 'y'])
    """
    match = _DECLARATION_PREFIX_RE.match(segment)
    flags = ''.join(re.findall(r'[A-Za-z]', match.group(1))) if match else ''
    rest = segment[match.end():] if match else segment
    return flags, [word for word in _words(rest) if _NAME_RE.match(word)]


def read_names(arguments: str) -> List[str]:
    """Names bound by ``read``, honouring options that take an argument.

    >>> read_names('-ra flags')
    ['flags']
    >>> read_names('-p "Name: " -t 5 first last')
    ['first', 'last']
    """
    tokens = _QUOTED_RE.sub('Q', arguments).split()
    names, index = [], 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token.startswith('-') or token == '-':
            if _NAME_RE.match(token):
                names.append(token)
            continue
        for position, option in enumerate(token[1:], start=1):
            if option not in _READ_ARG_OPTIONS:
                continue
            value = token[position + 1:]
            if not value and index < len(tokens):
                value = tokens[index]
                index += 1
            if option == 'a' and _NAME_RE.match(value):
                names.append(value)
            break
    return names


def classify(segment: str) -> Optional[Tuple[Binding, List[str]]]:
    """Classify one statement segment, first matching binding form wins.

    >>> classify('(( count++ ))')
    (<Binding.POST_INCREMENT: 'post_increment'>, ['count'])
    >>> classify('echo hi') is None
    True
    """
    segment = _LEADING_KEYWORD_RE.sub('', segment)
    masked = _QUOTED_RE.sub('""', segment)

    match = _ASSIGNMENT_RE.match(segment)
    if match:
        return Binding.ASSIGNMENT, [match.group(1)]

    keywords = {match.group(1) for match in _DECLARATION_RE.finditer(masked)}
    if keywords:
        if len(keywords) > 1:
            return None
        flags, names = declared_names(masked)
        if 'declare' in keywords and _DECLARE_SKIP_FLAGS & set(flags):
            return None
        return Binding.DECLARATION, names

    match = _READ_RE.search(masked)
    if match:
        return Binding.READ, read_names(match.group(1))

    for binding, pattern in ((Binding.FOR, _FOR_RE),
                             (Binding.ARRAY_WRITE, _ARRAY_WRITE_RE),
                             (Binding.PRE_INCREMENT, _PRE_INCREMENT_RE),
                             (Binding.POST_INCREMENT, _POST_INCREMENT_RE)):
        match = pattern.match(segment)
        if match:
            return binding, [match.group(1)]
    return None


def exported_names(segment: str) -> List[str]:
    """
    >>> exported_names('export -n path home=1')
    ['path', 'home']
    >>> exported_names('declare -x token')
    ['token']
    """
    segment = _QUOTED_RE.sub('""', segment)
    match = _EXPORT_RE.search(segment)
    if match:
        return [word for word in _words(match.group(2)) if _NAME_RE.match(word)]
    if _DECLARATION_RE.search(segment):
        flags, names = declared_names(segment)
        if 'x' in flags:
            return names
    return []


def parse_ignore_patterns(text: str) -> List[Pattern]:
    """Compile comma-separated ignore patterns, anchored to whole names.

    >>> [p.pattern for p in parse_ignore_patterns('usage,args,,^tmp')]
    ['^(?:usage)$', '^(?:args)$', '^tmp']
    >>> parse_ignore_patterns('*')[0].pattern
    '.*'
    """
    if text == '*':
        return [re.compile('.*')]
    patterns = []
    for pattern in text.split(','):
        if not pattern:
            continue
        if not (pattern.startswith('^') or pattern.endswith('$')):
            pattern = f'^(?:{pattern})$'
        try:
            patterns.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigError(f'invalid ignore pattern {pattern!r}: {exc}') from exc
    return patterns


def _code_lines(lines: Iterable[str]) -> Iterable[str]:
    """Code lines with comments removed, honouring the ignore annotation."""
    skip_next = 0
    for scanned in scan_lines(lines):
        if scanned.region is not Region.CODE:
            continue
        line = scanned.text
        if _ANNOTATION_RE.match(line):
            skip_next += 1
            continue
        if skip_next:
            skip_next -= 1
            continue
        if _COMMENT_RE.match(line) or _BLANK_RE.match(line):
            continue
        index = QuoteTracker.comment_start(line)
        yield line if index is None else line[:index]


def discover(source: str, ignore_patterns: Iterable[Pattern] = ()) -> List[str]:
    """Collect bound variable names sorted by length descending, then name."""
    found: Set[str] = set()
    exported: Set[str] = set()
    for line in _code_lines(split_lines(source)):
        for segment in split_segments(line):
            exported.update(exported_names(segment))
            classified = classify(segment)
            if classified:
                found.update(classified[1])

    ignore_patterns = list(ignore_patterns)
    names = [
        name for name in found - exported - RESERVED
        if not any(pattern.search(name) for pattern in ignore_patterns)
    ]
    logger.debug('discovered %d variables (%d exported)', len(names), len(exported))
    return sorted(names, key=lambda name: (-len(name), name))


class VariableCollector(Transformer):
    """Records the variables of the source it sees and passes it on unchanged.

    Runs before comments are stripped, so ignore annotations still apply.
    """
    def __init__(self, ignore_patterns: Iterable[Pattern] = ()):
        self.ignore_patterns = list(ignore_patterns)
        self.names: List[str] = []

    def transform(self, source: str) -> str:
        self.names = discover(source, self.ignore_patterns)
        return source
