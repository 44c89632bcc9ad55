from typing import TypeAlias
import dataclasses

from .errors import ParseError
from .context import trace, parse_int, parse_double

OPERATORS = frozenset('+-*/')


@dataclasses.dataclass(frozen=True, slots=True)
class IntegerLiteral:
    value: int


@dataclasses.dataclass(frozen=True, slots=True)
class DoubleLiteral:
    value: float


# `value` is already unescaped.
@dataclasses.dataclass(frozen=True, slots=True)
class StringLiteral:
    value: str


@dataclasses.dataclass(frozen=True, slots=True)
class Variable:
    name: str


# `@name`, stored without the `@`.
@dataclasses.dataclass(frozen=True, slots=True)
class FunctionRef:
    name: str


@dataclasses.dataclass(frozen=True, slots=True)
class Operator:
    symbol: str


Token: TypeAlias = IntegerLiteral | DoubleLiteral | StringLiteral | Variable | FunctionRef | Operator
NumericLiteral: TypeAlias = IntegerLiteral | DoubleLiteral


def is_identifier(name: str) -> bool:
    if not name or not name[0].isalpha():
        return False
    return all(c.isalpha() or c.isdecimal() or c == '_' for c in name[1:])


def unescape(s: str) -> str:
    # Each pass sees the result of the previous one, so `\\n` ends as a line break.
    return (
        s.replace('\\\\', '\\')
        .replace('\\"', '"')
        .replace('\\n', '\n')
        .replace('\\t', '\t')
        .replace('\\r', '\r')
    )


def to_token(s: str) -> Token:
    '''
    Determines the token of a single whitespace-delimited sub-string.

    The checks are ordered: `-1` is an integer and `-` an operator, `1e3` is a
    double and never a variable.
    '''
    if (n := parse_int(s)) is not None:
        tok = IntegerLiteral(n)
    elif (x := parse_double(s)) is not None:
        tok = DoubleLiteral(x)
    elif s.startswith('@'):
        if not is_identifier(name := s[1:]):
            raise ParseError(f'invalid function name: {s!r}')
        tok = FunctionRef(name)
    elif s in OPERATORS:
        tok = Operator(s)
    elif len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        tok = StringLiteral(unescape(s[1:-1]))
    elif is_identifier(s):
        tok = Variable(s)
    else:
        raise ParseError(f'invalid token: {s!r}')

    trace('to_token: %r -> %r', s, tok)
    return tok
