"""
Which part a block plays in a test file, decided from its identifier alone.

Output identifiers are matched by prefix on purpose: 'out', 'out1', 'output'
and also 'outline' all mark expected output.
"""
import enum
import typing as tg

import prvr.doctree as dt


class Role(enum.Enum):
    INPUT = "input"
    OUTPUT = "output"
    COMMAND = "command"


def is_input(el: dt.Element) -> bool:
    return dt.identifier(el) in ('input', 'in')


def is_output(el: dt.Element) -> bool:
    ident = dt.identifier(el)
    return ident.startswith('out') or ident == 'expected'


def is_command(el: dt.Element) -> bool:
    return dt.identifier(el) == 'command'


def role_of(el: dt.Element) -> tg.Optional[Role]:
    """Role of a CodeBlock or Div; Divs never hold commands."""
    if el.get('t') not in ('CodeBlock', 'Div'):
        return None
    if is_input(el):
        return Role.INPUT
    if is_output(el):
        return Role.OUTPUT
    if el['t'] == 'CodeBlock' and is_command(el):
        return Role.COMMAND
    return None
