from typing import Iterator, List


def split_lines(text: str) -> List[str]:
    """Split text into lines on ``\\n`` only, dropping a trailing CR.

    >>> split_lines('echo a\\r\\necho b\\n')
    ['echo a', 'echo b']
    >>> split_lines('')
    []
    >>> split_lines('a\\x0cb')
    ['a\\x0cb']
    """
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


def variable_name_generator(prefix: str = 'a') -> Iterator[str]:
    """Generate short variable names in rename-map order.

    >>> generator = variable_name_generator()
    >>> next(generator), next(generator)
    ('a0', 'a1')
    >>> next(variable_name_generator('_v'))
    '_v0'
    """
    index = 0
    while True:
        yield f'{prefix}{index}'
        index += 1
