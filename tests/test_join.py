from bashmini.join import Joiner, LineKind, classify, fix_keyword_semicolons, join
import pytest


@pytest.mark.parametrize('source,expected', [
    ('if true; then\n  echo yes\nfi\n', 'if true; then echo yes;fi;'),
    ('if x\nthen\necho a\nelse\necho b\nfi\n', 'if x;then echo a;else echo b;fi;'),
    ('for i in 1 2\ndo\necho $i\ndone\n', 'for i in 1 2;do echo $i;done;'),
    ('a &&\nb ||\nc |\nd\n', 'a && b || c | d;'),
    ('echo a \\\n  b\n', 'echo a b;'),
    ('arr=(\n  one # first\n  two\n)\necho\n', 'arr=( one two );echo;'),
    ('greet() {\necho hi\n}\n', 'greet() { echo hi;};'),
    ('f()\n{\necho\n}\n', 'f() { echo;};'),
    ('x=$(\necho hi\n)\n', 'x=$( echo hi;);'),
    ('echo a # note\n\n\necho b\n', 'echo a;echo b;'),
    ('echo "then;"\n', 'echo "then;";'),
])
def test_join(source, expected):
    assert join(source) == expected


def test_multiline_string_becomes_one_statement():
    result = join("echo 'hello\nworld'\n")
    assert result == "echo 'hello'$'\\n''world';"
    assert '\n' not in result


def test_multiline_double_quoted_string():
    assert join('msg="a\nb"\n') == 'msg="a"$\'\\n\'"b";'


def test_heredoc_keeps_newlines():
    result = join('cat <<EOF\nhello world\n  indented\nEOF\necho done\n')
    assert result == 'cat <<EOF\nhello world\n  indented\nEOF\necho done;'


def test_case_statement():
    source = '''case "$1" in
  start)
    echo starting
    ;;
  stop|halt) echo stopping ;;
  *)
    echo "unknown"
    ;;
esac
'''
    assert join(source) == (
        'case "$1" in\n'
        'start)echo starting;;\n'
        'stop|halt)echo stopping;;\n'
        '*)echo "unknown";;\n'
        'esac;'
    )


def test_nested_case_and_fallthrough():
    source = '''case $a in
  x)
    case $b in
      y) echo y ;;
    esac
    ;&
  z) echo z
esac
'''
    assert join(source) == (
        'case $a in\n'
        'x)case $b in\ny)echo y;;\nesac;&\n'
        'z)echo z;;\n'
        'esac;'
    )


@pytest.mark.parametrize('line,kind', [
    ('cat <<EOF', LineKind.HEREDOC),
    ('case $x in', LineKind.CASE),
    ('arr=(', LineKind.ARRAY),
    ('', LineKind.BLANK),
    ('echo "open', LineKind.OPEN_QUOTE),
    ('echo \\', LineKind.CONTINUATION),
    ('a |', LineKind.OPERATOR),
    (') | sort', LineKind.CLOSE_PAREN),
    ('while true; do', LineKind.KEYWORD),
    ('echo done', LineKind.STATEMENT),
])
def test_classify(line, kind):
    assert classify(line) == kind


def test_never_emits_semicolon_after_keyword():
    source = 'if a\nthen\nb\nfi\nwhile c\ndo\nd\ndone\nif e; then f; else\ng\nfi\n'
    result = join(source)
    for bad in ('then;', 'do;', 'else;'):
        assert bad not in result


def test_fix_keyword_semicolons():
    assert fix_keyword_semicolons('while x;do;y;done') == 'while x;do y;done'
    assert fix_keyword_semicolons("echo 'else;'") == "echo 'else;'"


def test_joiner_transformer():
    assert Joiner().transform('a\nb') == 'a;b;'


def test_heredoc_opened_on_case_pattern_line():
    source = 'case $x in\n  a) cat <<EOF\nline;;\nesac\nEOF\n  echo after;;\nesac\n'
    assert join(source) == (
        'case $x in\n'
        'a)cat <<EOF\nline;;\nesac\nEOF\necho after;;\n'
        'esac;'
    )


@pytest.mark.parametrize('source,expected', [
    ('arr=(\n  $(echo one)\n  two\n)\necho "${arr[@]}"\n', 'arr=( $(echo one) two );echo "${arr[@]}";'),
    ('nums=(\n  $((1 + 2))\n  4\n)\n', 'nums=( $((1 + 2)) 4 );'),
    ('arr=( one\n  ")"\n  two )\necho\n', 'arr=( one ")" two );echo;'),
])
def test_array_closes_at_matching_paren(source, expected):
    assert join(source) == expected


@pytest.mark.parametrize('line,kind', [
    ('arr=( $(ls)', LineKind.ARRAY),
    ('arr=(one two)', LineKind.STATEMENT),
    ('echo do', LineKind.STATEMENT),
    ('echo then', LineKind.STATEMENT),
    ('do', LineKind.KEYWORD),
    ('x || else', LineKind.KEYWORD),
])
def test_classify_paren_and_keyword_edges(line, kind):
    assert classify(line) == kind


def test_keyword_as_argument_is_a_statement():
    assert join('echo do\necho next\n') == 'echo do;echo next;'
    assert join('if echo then\nthen\necho yes\nfi\n') == 'if echo then;then echo yes;fi;'
