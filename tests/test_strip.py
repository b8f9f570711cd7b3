from bashmini.strip import Stripper, should_strip, split_shebang, strip
import pytest

SCRIPT = '''#!/usr/bin/env bash
# Deploy helper
set -euo pipefail

import fmt
import @string/utils
import() { source "$1"; }

echo "start # not a comment"
cat <<EOF
# kept, heredoc body

EOF
msg="first
# kept, inside a string
"
'''


def test_strip_script():
    assert strip(SCRIPT) == [
        'echo "start # not a comment"',
        'cat <<EOF',
        '# kept, heredoc body',
        '',
        'EOF',
        'msg="first',
        '# kept, inside a string',
        '"',
    ]


def test_strip_is_idempotent():
    once = strip(SCRIPT)
    assert strip('\n'.join(once)) == once


@pytest.mark.parametrize('line', [
    '# comment',
    '   \t# indented comment',
    '',
    '   ',
    'import fmt',
    '  import ~lib/array.sh',
    'set -euo pipefail',
    'set -euo pipefail;',
    'import() { . "$1"; }',
])
def test_should_strip(line):
    assert should_strip(line)


@pytest.mark.parametrize('line', [
    'echo hi # trailing comment stays for flatten',
    'import::clear',
    'set -e',
    'imports=1',
])
def test_should_keep(line):
    assert not should_strip(line)


def test_split_shebang_after_concatenation():
    assert strip('echo a\n}#!/usr/bin/env bash\necho b\n') == ['echo a', '}', 'echo b']


def test_split_shebang_ignores_line_start():
    assert split_shebang('#!/bin/bash') == ['#!/bin/bash']


def test_crlf_input():
    assert strip('echo a\r\n# c\r\n\r\necho b\r\n') == ['echo a', 'echo b']


def test_stripper_returns_text():
    assert Stripper().transform('# c\necho a\necho b\n') == 'echo a\necho b'
