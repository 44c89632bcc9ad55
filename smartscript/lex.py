from enum import Enum, auto
from typing import Iterator

from .errors import ParseError
from .context import trace


class State(Enum):
    INITIAL = auto()
    TEXT = auto()
    OPEN_BRACKET = auto()
    OPEN_DOLLAR = auto()
    TAG = auto()
    CLOSE_DOLLAR = auto()
    CLOSE_BRACKET = auto()
    ESCAPE = auto()


_IN_TAG = frozenset(
    (State.OPEN_BRACKET, State.OPEN_DOLLAR, State.TAG, State.CLOSE_DOLLAR)
)


def unescape_text(s: str) -> str:
    # The only escape in text: `\[` is a literal `[`. Any other `\` stays as is.
    return s.replace('\\[', '[')


def lex(text: str) -> Iterator[tuple[bool, str, int]]:
    r'''
    Chunks the input `text` into text runs and tag bodies, one char at a time.

    Yields `(is_tag, fragment, pos)`. For a text run, `fragment` is the run with
    `\[` collapsed to `[` and `pos` its first offset. For a tag, `fragment` is
    the raw body between `[$` and `$]` and `pos` the offset of the `[`.

    Spaces are allowed between `[` and `$` and between `$` and `]`. A `$` can
    never appear inside a tag body, not even in a string literal.
    '''
    state = State.INITIAL
    buf: list[str] = []
    start = 0
    tag_start = 0

    for p, c in enumerate(text):
        match state:
            case State.INITIAL | State.TEXT | State.CLOSE_BRACKET:
                if c == '[':
                    if buf:
                        yield False, unescape_text(''.join(buf)), start
                        buf.clear()
                    tag_start = p
                    state = State.OPEN_BRACKET
                    continue

                if not buf:
                    start = p
                buf.append(c)
                # The escaping `\` is kept, `unescape_text` removes it later.
                state = State.ESCAPE if c == '\\' else State.TEXT

            case State.OPEN_BRACKET:
                if c == ' ':
                    continue
                if c != '$':
                    raise ParseError('tag must open with "[$"', text, p)
                state = State.OPEN_DOLLAR

            case State.OPEN_DOLLAR:
                if c == '$':
                    raise ParseError('empty tag body', text, tag_start)
                buf.append(c)
                state = State.TAG

            case State.TAG:
                if c != '$':
                    buf.append(c)
                    continue
                body = ''.join(buf)
                buf.clear()
                trace('lex: tag at %s: %r', tag_start, body)
                yield True, body, tag_start
                state = State.CLOSE_DOLLAR

            case State.CLOSE_DOLLAR:
                if c == ' ':
                    continue
                if c != ']':
                    raise ParseError('malformed tag close, expected "$]"', text, p)
                state = State.CLOSE_BRACKET

            case State.ESCAPE:
                buf.append(c)
                state = State.TEXT

    if state is State.ESCAPE:
        raise ParseError('unterminated escape', text, len(text) - 1)
    if state in _IN_TAG:
        raise ParseError('unterminated tag', text, tag_start)

    # Flush the final text run.
    if buf:
        yield False, unescape_text(''.join(buf)), start
