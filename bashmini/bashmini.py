import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .bundle import Bundler
from .discover import VariableCollector, parse_ignore_patterns
from .errors import ConfigError
from .flatten import Flattener
from .join import Joiner
from .obfuscate import VariableShortener
from .pipeline import Pipeline
from .strip import Stripper

DEFAULT_IGNORE = 'usage,args'

_PREFIX_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')


@dataclass(frozen=True)
class MinifyConfig:
    bundle: bool = False
    input_path: Optional[Path] = None
    search_paths: Sequence[Path] = ()
    obfuscate: bool = False
    prefix: str = 'a'
    ignore: str = DEFAULT_IGNORE


def minify(source: str, config: MinifyConfig = MinifyConfig()) -> str:
    """Minify a bash script. Bundle, strip, flatten, obfuscate and join.

    >>> minify('''#!/usr/bin/env bash
    ... # say hello
    ... greet() {
    ...     local name="$1"
    ...     echo "hello $name"
    ... }
    ... ''', MinifyConfig(obfuscate=True))
    'greet() { local a0="$1";echo "hello $a0";};'
    """
    if config.obfuscate and not _PREFIX_RE.fullmatch(config.prefix):
        raise ConfigError(f'variable prefix {config.prefix!r} is not a valid identifier')

    stages = []
    if config.bundle:
        stages.append(Bundler(config.input_path, config.search_paths))
    if config.obfuscate:
        stages.append(collector := VariableCollector(parse_ignore_patterns(config.ignore)))
    stages += [Stripper(), Flattener()]
    if config.obfuscate:
        stages.append(VariableShortener(collector, prefix=config.prefix))
    stages.append(Joiner())
    return Pipeline(*stages).transform(source)
