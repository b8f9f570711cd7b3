from bashmini import MinifyConfig, minify
from bashmini.errors import ConfigError
from bashmini.pipeline import Pipeline, Transformer
import pytest

FULL_SCRIPT = '''#!/usr/bin/env bash
# Full pipeline test
set -euo pipefail

import fmt

local name="world"
local -a items=(one two three)

greet() {
  local msg="Hello $name"
  echo "$msg"
}

for item in "${items[@]}"; do
  echo "$item"
done

if [[ -n "$name" ]]; then
  greet
else
  echo "no name"
fi

case "$1" in
  start)
    echo starting
    ;;
  *)
    echo "unknown"
    ;;
esac
'''


class Append(Transformer):

    def __init__(self, suffix):
        self.suffix = suffix

    def transform(self, source):
        return source + self.suffix


def test_pipeline_runs_stages_in_order():
    assert Pipeline(Append('a'), Append('b')).transform('') == 'ab'


def test_transformer_is_abstract():
    with pytest.raises(NotImplementedError):
        Transformer().transform('')


def test_minify_only():
    source = '#!/usr/bin/env bash\n# comment\nset -euo pipefail\necho hello\necho world\n'
    assert minify(source) == 'echo hello;echo world;'


def test_obfuscate_local_variable():
    result = minify('local foo=1\necho $foo\n', MinifyConfig(obfuscate=True))
    assert result == 'local a0=1;echo $a0;'
    assert 'foo' not in result


def test_custom_prefix():
    config = MinifyConfig(obfuscate=True, prefix='x')
    assert minify('local foo=1\necho $foo\n', config) == 'local x0=1;echo $x0;'


def test_ignored_variables_are_kept():
    config = MinifyConfig(obfuscate=True, ignore='usage,args,foo')
    assert minify('local foo=1\nbar=2\necho $foo $bar\n', config) == 'local foo=1;a0=2;echo $foo $a0;'


def test_ignore_annotation_survives_strip():
    source = '# obfus ignore variable\nlocal keep=1\nlocal drop=2\necho $keep $drop\n'
    result = minify(source, MinifyConfig(obfuscate=True))
    assert result == 'local keep=1;local a0=2;echo $keep $a0;'


@pytest.mark.parametrize('prefix', ['', '1a', 'a-b', 'é'])
def test_invalid_prefix(prefix):
    with pytest.raises(ConfigError):
        minify('x=1\n', MinifyConfig(obfuscate=True, prefix=prefix))


def test_prefix_ignored_without_obfuscation():
    assert minify('x=1\n', MinifyConfig(prefix='1a')) == 'x=1;'


@pytest.mark.parametrize('obfuscate', [False, True])
def test_full_script(obfuscate):
    result = minify(FULL_SCRIPT, MinifyConfig(obfuscate=obfuscate))
    for bad in ('then;', 'do;', 'else;', '#!/', 'set -euo', 'import fmt'):
        assert bad not in result
    assert 'start)' in result
    assert result.endswith('esac;')
    if obfuscate:
        assert 'msg' not in result
        assert '${a0[@]}' in result


def test_single_quoted_literals_survive():
    source = "local x=1\necho '$x # not a comment' \"$x\"\n"
    result = minify(source, MinifyConfig(obfuscate=True))
    assert result == "local a0=1;echo '$x # not a comment' \"$a0\";"


def test_bundle_and_obfuscate(tmp_path):
    (tmp_path / 'lib.sh').write_text('local libvar=42\necho $libvar\n')
    main = tmp_path / 'main.sh'
    main.write_text('import lib\nlocal foo=1\necho $foo\n')
    config = MinifyConfig(bundle=True, input_path=main, obfuscate=True)
    assert minify(main.read_text(), config) == 'local a0=42;echo $a0;local a1=1;echo $a1;'


def test_literal_double_parens_in_string_are_kept():
    result = minify('x=1\necho "((x)) done"\n', MinifyConfig(obfuscate=True))
    assert result == 'a0=1;echo "((x)) done";'
