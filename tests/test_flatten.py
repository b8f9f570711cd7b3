from bashmini.flatten import Flattener, flatten, flatten_line
from bashmini.quote import QuoteState
import pytest


@pytest.mark.parametrize('line,expected', [
    ('    echo hello', 'echo hello'),
    ('\techo hello;', 'echo hello'),
    ('echo hi # note', 'echo hi'),
    ('echo a#b', 'echo a#b'),
    ("echo '# x' # y", "echo '# x'"),
    ('echo ${#arr[@]}', 'echo ${#arr[@]}'),
    ('  stop);;', 'stop);;'),
    ('echo "a;', 'echo "a;'),
])
def test_flatten_line(line, expected):
    assert flatten_line(line) == expected


def test_flatten_line_inside_string_keeps_indentation():
    assert flatten_line('    b;"', QuoteState(False, True)) == '    b;"'


def test_flatten_keeps_heredoc_and_string_bodies():
    lines = [
        '  cat <<EOF',
        '    indented  # not a comment',
        'EOF',
        '  msg="one',
        '    two # kept"',
        '  echo "$msg"',
    ]
    assert flatten(lines) == [
        'cat <<EOF',
        '    indented  # not a comment',
        'EOF',
        'msg="one',
        '    two # kept"',
        'echo "$msg"',
    ]


def test_flattener_returns_text():
    assert Flattener().transform('  a;\n  b\n') == 'a\nb'
