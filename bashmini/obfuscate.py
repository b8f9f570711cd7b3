"""Rename discovered variables to short generated names.

Every variable gets its own ordered set of substitution rules, one per
syntactic context a bash variable name can appear in. Names are guarded on
both sides by the identifier class ``[A-Za-z0-9_]``, so renaming ``path``
never touches ``_path`` and renaming ``a`` never touches ``-ra`` or ``a0``.

>>> names = ['count', 'i']
>>> obfuscator = Obfuscator(names, build_rename_map(names, 'a'))
>>> obfuscator.obfuscate_line('for (( i=0; i < count; i++ )); do echo "${arr[i]}" \\'$i\\'; done')
'for (( a1=0; a1 < a0; a1++ )); do echo "${arr[a1]}" \\'$i\\'; done'
"""
import logging
import re
from collections import namedtuple
from typing import Dict, Iterable, List, Sequence, Tuple

from .pipeline import Transformer
from .quote import QuoteState, QuoteTracker, Region, scan_lines
from .utils import split_lines, variable_name_generator

logger = logging.getLogger(__name__)

MAX_PASSES = 100

Rule = namedtuple('Rule', ['name', 'pattern', 'replacement', 'looped', 'expansion'])

_E = r'(?![A-Za-z0-9_])'
_BW = r'(?<![A-Za-z0-9_$./\-])'
_NOT_WORD = r'(?<![A-Za-z0-9_$#{.])'
_DQ = r'"(?:[^"\\]|\\.)*"'
_CODE = r'(?:[^"\\]|\\.|' + _DQ + r')'
_WORD = r'(?:[^"\\;&|<>() \t]|\\.|' + _DQ + r'|\([^()]*\))+'
# leading `name=value ` words before a command
_PRIOR = (r'(?:[A-Za-z_][A-Za-z0-9_]*(?:\[[^\]]*\])?\+?=(?:[^ \t"\\;&|()]|\\.|'
          + _DQ + r')*[ \t]+)*')
_SEP = (r'(?:[;&({!]|\|\|?|' + _BW
        + r'(?:then|do|else|if|elif|while|until|time)' + _E + r')')
# anything up to the start of a simple command
_CMD = r'(?:' + _CODE + r'*?' + _SEP + r')?[ \t]*' + _PRIOR
_NAME = r'[A-Za-z_][A-Za-z0-9_]*'
_PARAM = r'\$\{[!#]?'
_ARITH = r'(?:(?!\)\))[^\'"])*?'

# (name, template, looped, expansion); `{V}` is the escaped variable name
RULE_TEMPLATES = (
    ('assignment', r'^(?P<head>[ \t]*){V}(?=\+?=(?!=))', False, False),
    ('declaration',
     r'^(?P<head>' + _CMD + r'(?:local|declare|typeset|readonly)(?:[ \t]+' + _WORD
     + r')*?[ \t]+){V}(?=[ \t;)]|\+?=|$)', True, False),
    ('command_assignment', r'^(?P<head>' + _CMD + r'){V}(?=[+\-]?=(?!=))', True, False),
    ('read', r'^(?P<head>' + _CMD + r'read(?:[ \t]+' + _WORD + r')*?[ \t]+){V}'
     r'(?=[ \t;&|<>)}]|$)', True, False),
    ('printf_mapfile',
     r'^(?P<head>' + _CMD + r'(?:printf[ \t]+-v|mapfile|readarray)'
     r'(?:[ \t]+-[A-Za-z]+(?:[ \t]+[^\- \t;&|<>][^ \t;&|<>]*)?)*?[ \t]+){V}' + _E,
     True, False),
    ('for', r'^(?P<head>' + _CMD + r'(?:for|select)[ \t]+){V}' + _E, True, False),
    ('array_write', r'^(?P<head>' + _CMD + r'){V}(?=\[[^\]]*\]\+?=)', True, False),
    ('array_read', r'(?P<head>' + _PARAM + r'){V}(?=\[)', True, True),
    ('unset', r'^(?P<head>' + _CMD + r'unset(?![ \t]+-f)(?:[ \t]+' + _WORD
     + r')*?[ \t]+["\']?){V}(?=["\'\[ \t;&|)]|$)', True, False),
    ('test_v', r'(?P<head>(?:\[\[?|' + _BW + r'test)[ \t]+(?:![ \t]+)?-v[ \t]+["\']?)'
     r'{V}(?=[\[ \t"\'\]]|$)', True, False),
    ('pre_increment', r'(?P<head>\(\([ \t]*(?:\+\+|--)){V}' + _E, True, False),
    ('post_increment', r'(?P<head>\(\([ \t]*){V}(?=\+\+|--)', True, False),
    ('modifier', r'(?P<head>' + _PARAM + r'){V}(?=[:\-+=?#%/^,@*])', True, True),
    ('subscript_read', r'(?P<head>' + _PARAM + _NAME + r'\[[^\]]*?' + _NOT_WORD + r')'
     r'{V}' + _E + r'(?=[^\]]*\])', True, True),
    ('subscript_write', r'(?P<head>(?<![A-Za-z0-9_$])' + _NAME + r'\[[^\]]*?' + _NOT_WORD
     + r'){V}' + _E + r'(?=[^\]]*\](?:\+?=|["\']))', True, False),
    ('substring_offset', r'(?P<head>' + _PARAM + r'[^}:\'"\[]*(?:\[[^\]]*\])?:[ \t]*)'
     r'{V}' + _E + r'(?=[^}]*\})', True, True),
    ('substring_length', r'(?P<head>' + _PARAM + r'[^}:\'"\[]*(?:\[[^\]]*\])?:'
     r'(?=[ \t]+-|[A-Za-z0-9_(])[^}]*?' + _NOT_WORD + r'){V}' + _E + r'(?=[^}]*\})',
     True, True),
    ('dollar', r'(?P<head>(?:^|[^\\$])(?:\\\\)*\$){V}' + _E, True, True),
    ('braced', r'(?P<head>' + _PARAM + r'){V}(?=\})', True, True),
    ('arithmetic', r'(?P<head>\$\(\(' + _ARITH + _NOT_WORD + r'){V}' + _E, True, True),
    # bare `((` only counts as arithmetic where a command can start
    ('arithmetic_command', r'^(?P<head>' + _CMD + r'(?:for[ \t]*)?\(\(' + _ARITH + _NOT_WORD
     + r'){V}' + _E, True, False),
)

_PLACEHOLDER_RE = re.compile('\ue000(\\d+)\ue001')
_UNSET_BEFORE_RE = re.compile(_BW + r'unset(?:[ \t]+\S+)*[ \t]+\'$')
_UNSET_TARGET_RE = re.compile(r'^' + _NAME + r'(?:\[[^\]]*\])?$')


def build_rename_map(sorted_vars: Sequence[str], prefix: str) -> Dict[str, str]:
    """
    >>> build_rename_map(['alias', 'a'], 'v')
    {'alias': 'v0', 'a': 'v1'}
    """
    return dict(zip(sorted_vars, variable_name_generator(prefix)))


def compile_rules(var: str, replacement: str) -> Tuple[Rule, ...]:
    """Build the ordered rule set renaming ``var`` to ``replacement``."""
    escaped = re.escape(var)
    rules = []
    for name, template, looped, expansion in RULE_TEMPLATES:
        try:
            pattern = re.compile(template.replace('{V}', escaped))
        except re.error as exc:
            logger.debug('dropping rule %s for %r: %s', name, var, exc)
            continue
        rules.append(Rule(name, pattern, r'\g<head>' + replacement, looped, expansion))
    return tuple(rules)


def apply_rule(rule: Rule, line: str) -> str:
    """
    >>> rule = compile_rules('x', 'a0')[-4]
    >>> rule.name, apply_rule(rule, 'echo $x$x $xy')
    ('dollar', 'echo $a0$a0 $xy')
    """
    if not rule.looped:
        return rule.pattern.sub(rule.replacement, line)
    for _ in range(MAX_PASSES):
        updated = rule.pattern.sub(rule.replacement, line)
        if updated == line:
            break
        line = updated
    return line


def mask_single_quotes(line: str, state: QuoteState = QuoteState()) -> Tuple[str, List[str]]:
    """Replace single-quoted text with placeholders, keeping the quotes.

    Quoted ``unset`` targets stay visible.

    >>> mask_single_quotes("echo '$x' \\"'\\" 'y'")
    ('echo \\'\\ue0000\\ue001\\' "\\'" \\'\\ue0001\\ue001\\'', ['$x', 'y'])
    >>> mask_single_quotes("unset 'arr[i]'")[0]
    "unset 'arr[i]'"
    """
    out, spans, buffer = [], [], []

    def flush():
        text = ''.join(buffer)
        if _UNSET_TARGET_RE.match(text) and _UNSET_BEFORE_RE.search(''.join(out)):
            out.append(text)
        else:
            out.append(f'\ue000{len(spans)}\ue001')
            spans.append(text)
        buffer.clear()

    for _, ch, before, after in QuoteTracker.walk(line, state):
        if before.in_single and after.in_single:
            buffer.append(ch)
            continue
        if buffer:
            flush()
        out.append(ch)
    if buffer:
        flush()
    return ''.join(out), spans


def unmask(line: str, spans: List[str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda match: spans[int(match.group(1))], line)


class Obfuscator:
    """Applies every variable's rule set, longest variable first."""

    def __init__(self, sorted_vars: Sequence[str], rename_map: Dict[str, str]):
        self.rule_sets = [(var, compile_rules(var, rename_map[var])) for var in sorted_vars]

    def _apply(self, line: str, expansion_only: bool = False) -> str:
        for var, rules in self.rule_sets:
            if var not in line:
                continue
            for rule in rules:
                if rule.expansion or not expansion_only:
                    line = apply_rule(rule, line)
        return line

    def obfuscate_line(self, line: str, state: QuoteState = QuoteState()) -> str:
        masked, spans = mask_single_quotes(line, state)
        if state.in_double:
            masked = self._apply('"' + masked)[1:]
        else:
            masked = self._apply(masked)
        return unmask(masked, spans)

    def obfuscate_heredoc_line(self, line: str) -> str:
        """Rename expansions only; single quotes are literal in a heredoc body."""
        return self._apply(line, expansion_only=True)

    def obfuscate_lines(self, lines: Iterable[str]) -> List[str]:
        result = []
        for scanned in scan_lines(lines):
            if scanned.region is not Region.HEREDOC:
                result.append(self.obfuscate_line(scanned.text, scanned.state))
            elif scanned.heredoc.quoted or scanned.heredoc.closes(scanned.text):
                result.append(scanned.text)
            else:
                result.append(self.obfuscate_heredoc_line(scanned.text))
        return result


class VariableShortener(Transformer):
    """Renames the variables found by a VariableCollector earlier in the pipeline."""

    def __init__(self, collector, prefix: str = 'a'):
        self.collector = collector
        self.prefix = prefix

    def transform(self, source: str) -> str:
        names = self.collector.names
        obfuscator = Obfuscator(names, build_rename_map(names, self.prefix))
        return '\n'.join(obfuscator.obfuscate_lines(split_lines(source)))
