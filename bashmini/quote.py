"""Quote, comment and heredoc tracking shared by every phase.

Bash has two quoting rules that matter to a line-oriented rewriter. Inside
single quotes nothing is special, not even a backslash. Outside them, a quote
character preceded by an odd run of backslashes is a literal character.

>>> QuoteTracker.has_open_quote("echo 'it is")
(True, False)
>>> QuoteTracker.has_open_quote('echo "a \\\\" b"')
(False, False)
"""
import re
from collections import namedtuple
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple


class QuoteState(namedtuple('QuoteState', ['in_single', 'in_double'],
                            defaults=(False, False))):
    __slots__ = ()

    @property
    def quoted(self) -> bool:
        return self.in_single or self.in_double


class Heredoc(namedtuple('Heredoc', ['delimiter', 'quoted', 'strip_tabs'])):
    """An active ``<<DELIM`` body.

    >>> Heredoc('EOF', False, True).closes('\\t\\tEOF')
    True
    >>> Heredoc('EOF', False, False).closes('  EOF')
    False
    """
    __slots__ = ()

    def closes(self, line: str) -> bool:
        if self.strip_tabs:
            line = line.lstrip('\t')
        return line == self.delimiter


class Region(Enum):
    CODE = 'code'
    STRING = 'string'    # line starts inside a quoted string opened earlier
    HEREDOC = 'heredoc'  # heredoc body, including its closing delimiter


ScannedLine = namedtuple('ScannedLine', ['text', 'region', 'state', 'heredoc'])

_HEREDOC_RE = re.compile(r'<<(-?)[ \t]*(\\?)([\'"]?)([A-Za-z_][A-Za-z0-9_]*)\3')
_WORD_BREAKS = ' \t;&|()'


def _escaped(line: str, index: int) -> bool:
    """True when ``line[index]`` follows an odd run of backslashes."""
    count = 0
    index -= 1
    while index >= 0 and line[index] == '\\':
        count += 1
        index -= 1
    return count % 2 == 1


def _starts_word(line: str, index: int) -> bool:
    if index == 0:
        return True
    return line[index - 1] in _WORD_BREAKS and not _escaped(line, index - 1)


class QuoteTracker:
    """Character-level quote state machine.

    All methods are pure. Callers that need state across lines pass the state
    returned for one line in as the starting state of the next.
    """

    @staticmethod
    def walk(line: str, state: QuoteState = QuoteState()
             ) -> Iterator[Tuple[int, str, QuoteState, QuoteState]]:
        """Yield ``(index, char, state_before, state_after)`` for each char.

        >>> [(ch, after.in_single) for _, ch, _, after in QuoteTracker.walk("a'b'")]
        [('a', False), ("'", True), ('b', True), ("'", False)]
        """
        in_single, in_double = state
        for index, ch in enumerate(line):
            before = QuoteState(in_single, in_double)
            if ch == "'" and not in_double:
                if in_single or not _escaped(line, index):
                    in_single = not in_single
            elif ch == '"' and not in_single and not _escaped(line, index):
                in_double = not in_double
            yield index, ch, before, QuoteState(in_single, in_double)

    @classmethod
    def scan(cls, line: str, state: QuoteState = QuoteState()) -> QuoteState:
        for _, _, _, state in cls.walk(line, state):
            pass
        return state

    @classmethod
    def has_open_quote(cls, line: str) -> Tuple[bool, bool]:
        return tuple(cls.scan(line))

    @classmethod
    def comment_start(cls, line: str, state: QuoteState = QuoteState()
                      ) -> Optional[int]:
        """Index of the ``#`` that starts an unquoted comment, if any.

        >>> QuoteTracker.comment_start('echo "#x" # note')
        10
        >>> QuoteTracker.comment_start('echo ${#x} $#') is None
        True
        """
        for index, ch, before, _ in cls.walk(line, state):
            if ch == '#' and not before.quoted and _starts_word(line, index):
                return index
        return None

    @classmethod
    def code_state(cls, line: str, state: QuoteState = QuoteState()
                   ) -> QuoteState:
        """Quote state at end of line, ignoring anything inside a comment.

        >>> QuoteTracker.code_state("echo hi # don't")
        QuoteState(in_single=False, in_double=False)
        """
        for index, ch, before, after in cls.walk(line, state):
            if ch == '#' and not before.quoted and _starts_word(line, index):
                return before
            state = after
        return state


def find_heredoc(line: str, state: QuoteState = QuoteState()) -> Optional[Heredoc]:
    """Find a heredoc opener outside quotes, comments and arithmetic.

    >>> find_heredoc("cat <<-'END' >out")
    Heredoc(delimiter='END', quoted=True, strip_tabs=True)
    >>> find_heredoc('echo "<<EOF"') is None
    True
    >>> find_heredoc('read -r x <<< "$y"') is None
    True
    >>> find_heredoc('echo $((1<<EOF))') is None
    True
    """
    arith = 0
    skip = -1
    for index, ch, before, _ in QuoteTracker.walk(line, state):
        if index <= skip or before.quoted:
            continue
        if ch == '#' and _starts_word(line, index):
            return None
        if line.startswith('((', index):
            arith += 1
            skip = index + 1
        elif arith and line.startswith('))', index):
            arith -= 1
            skip = index + 1
        elif ch == '<' and not arith and line.startswith('<<', index):
            if line.startswith('<<<', index):
                skip = index + 2
                continue
            match = _HEREDOC_RE.match(line, index)
            if match:
                return Heredoc(match.group(4),
                               bool(match.group(2) or match.group(3)),
                               bool(match.group(1)))
            skip = index + 1
    return None


def scan_lines(lines: Iterable[str]) -> Iterator[ScannedLine]:
    """Label each line with its region and the quote state it starts in.

    For code lines ``heredoc`` is the heredoc the line opens, for heredoc lines
    it is the heredoc they belong to.

    >>> [s.region.value for s in scan_lines(['cat <<EOF', '# x', 'EOF', 'echo "a', 'b"'])]
    ['code', 'heredoc', 'heredoc', 'code', 'string']
    """
    state = QuoteState()
    heredoc = None
    for line in lines:
        if heredoc is not None:
            yield ScannedLine(line, Region.HEREDOC, state, heredoc)
            if heredoc.closes(line):
                heredoc = None
            continue
        opens = find_heredoc(line, state)
        region = Region.STRING if state.quoted else Region.CODE
        yield ScannedLine(line, region, state, opens)
        state = QuoteTracker.code_state(line, state)
        heredoc = opens
