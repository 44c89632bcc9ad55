from typing import TypeAlias
import dataclasses

from .tokens import Token, Variable

# A tree never changes once built: nodes are frozen and hold tuples.


@dataclasses.dataclass(frozen=True)
class TextNode:
    text: str


@dataclasses.dataclass(frozen=True)
class EchoNode:
    tokens: tuple[Token, ...]


@dataclasses.dataclass(frozen=True)
class ForLoopNode:
    variable: Variable
    start: Token
    end: Token
    step: Token | None = None
    children: tuple['Node', ...] = ()
    # Offset of the opening tag in the source, for error messages.
    pos: int | None = dataclasses.field(default=None, compare=False)


Node: TypeAlias = TextNode | EchoNode | ForLoopNode


# Root of every parsed document.
@dataclasses.dataclass(frozen=True)
class DocumentNode:
    children: tuple[Node, ...] = ()
