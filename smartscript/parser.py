import functools

from .errors import ParseError
from .context import trace
from .lex import lex
from .tags import EchoTag, ForTag, EndTag, Tag, parse_tag
from .nodes import Node, DocumentNode, TextNode, EchoNode, ForLoopNode


class TreeBuilder:
    '''
    Assembles the syntax tree from the lexer output with an explicit stack of
    open containers. The document sits at the bottom and is never popped by a
    tag; each FOR is pushed on open, and popped and frozen into a node by its
    END.
    '''

    def __init__(self, text: str):
        self._text = text
        # `(tag, pos, children)` per open container, the document has no tag.
        self._stack: list[tuple[ForTag | None, int, list[Node]]] = [(None, 0, [])]

    @property
    def top(self) -> list[Node]:
        return self._stack[-1][2]

    def text(self, fragment: str):
        self.top.append(TextNode(fragment))

    def tag(self, tag: Tag, pos: int):
        match tag:
            case EchoTag(tokens):
                self.top.append(EchoNode(tokens))
            case ForTag():
                self._stack.append((tag, pos, []))
            case EndTag():
                if len(self._stack) == 1:
                    raise ParseError('unmatched END', self._text, pos)
                for_tag, start, children = self._stack.pop()
                assert for_tag is not None
                self.top.append(
                    ForLoopNode(
                        for_tag.variable,
                        for_tag.start,
                        for_tag.end,
                        for_tag.step,
                        tuple(children),
                        pos=start,
                    )
                )

    def finish(self) -> DocumentNode:
        if len(self._stack) > 1:
            for_tag, start, _ = self._stack[-1]
            assert for_tag is not None
            raise ParseError(
                f'unclosed FOR {for_tag.variable.name}', self._text, start
            )
        return DocumentNode(tuple(self.top))


def parse(text: str) -> DocumentNode:
    builder = TreeBuilder(text)
    for is_tag, fragment, pos in lex(text):
        if not is_tag:
            trace('parse: text at %s: %r', pos, fragment)
            builder.text(fragment)
            continue

        try:
            tag = parse_tag(fragment)
        except ParseError as e:
            # Tag bodies are parsed (and cached) without their position.
            raise ParseError(str(e), text, pos) from e
        builder.tag(tag, pos)

    return builder.finish()


# The tree is never mutated after parsing, so it can be shared.
@functools.lru_cache(maxsize=128)
def parse_cached(text: str) -> DocumentNode:
    return parse(text)
