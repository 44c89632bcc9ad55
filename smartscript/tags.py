from typing import TypeAlias
import os
import re
import dataclasses
import functools

from lark import Lark, Token as LarkToken
from lark.exceptions import UnexpectedInput

from .errors import ParseError
from .context import trace
from .tokens import Token, Variable, to_token

field_parser = Lark.open(
    os.path.join(os.path.dirname(__file__), 'tag.lark'),
    parser='lalr',
)

_for_re = re.compile(r'FOR(?:\s|$)', re.IGNORECASE)


@dataclasses.dataclass(frozen=True, slots=True)
class EchoTag:
    tokens: tuple[Token, ...]


@dataclasses.dataclass(frozen=True, slots=True)
class ForTag:
    variable: Variable
    start: Token
    end: Token
    step: Token | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class EndTag:
    pass


Tag: TypeAlias = EchoTag | ForTag | EndTag


def split_fields(body: str) -> list[str]:
    try:
        tree = field_parser.parse(body)
    except UnexpectedInput as e:
        # A field can only fail to lex on a quote that never closes.
        raise ParseError(f'unterminated string in tag: {body!r}') from e
    return [str(tok) for tok in tree.children if isinstance(tok, LarkToken)]


def _echo_tag(body: str) -> EchoTag:
    fields = split_fields(body)
    if not fields:
        raise ParseError('empty echo tag')
    return EchoTag(tuple(to_token(f) for f in fields))


def _for_tag(body: str) -> ForTag:
    fields = body.split()
    if not 3 <= len(fields) <= 4:
        raise ParseError(f'FOR tag takes 3 or 4 arguments, got {len(fields)}')

    var = to_token(fields[0])
    if not isinstance(var, Variable):
        raise ParseError(f'FOR loop variable must be a variable name: {fields[0]!r}')

    start = to_token(fields[1])
    end = to_token(fields[2])
    step = to_token(fields[3]) if len(fields) == 4 else None
    return ForTag(var, start, end, step)


# Tags are immutable, so identical bodies share one result.
@functools.lru_cache(maxsize=1024)
def parse_tag(body: str) -> Tag:
    body = body.strip()
    trace('parse_tag: %r', body)

    if not body:
        raise ParseError('empty tag body')

    if body.startswith('='):
        return _echo_tag(body[1:])
    if body.lower() == 'end':
        return EndTag()
    if _for_re.match(body):
        return _for_tag(body[3:])
    raise ParseError(f'unrecognized tag: {body!r}')
