from .util import shorten
from .context import format_double
from .tokens import (
    Token,
    IntegerLiteral,
    DoubleLiteral,
    StringLiteral,
    Variable,
    FunctionRef,
    Operator,
)
from .nodes import Node, DocumentNode, TextNode, EchoNode, ForLoopNode


def escape_string(s: str) -> str:
    return (
        s.replace('\\', '\\\\')
        .replace('"', '\\"')
        .replace('\n', '\\n')
        .replace('\t', '\\t')
        .replace('\r', '\\r')
    )


def token_source(token: Token) -> str:
    match token:
        case IntegerLiteral(value):
            return str(value)
        case DoubleLiteral(value):
            return format_double(value)
        case StringLiteral(value):
            return '"' + escape_string(value) + '"'
        case Variable(name):
            return name
        case FunctionRef(name):
            return '@' + name
        case Operator(symbol):
            return symbol
    raise TypeError(f'bad token: {token!r}')


def _source(node: DocumentNode | Node, out: list[str]):
    match node:
        case DocumentNode(children):
            for ch in children:
                _source(ch, out)
        case TextNode(text):
            out.append(text.replace('[', '\\['))
        case EchoNode(tokens):
            out.append('[$= ' + ' '.join(token_source(t) for t in tokens) + ' $]')
        case ForLoopNode(variable, start, end, step, children):
            args = [variable, start, end] if step is None else [variable, start, end, step]
            out.append('[$FOR ' + ' '.join(token_source(t) for t in args) + ' $]')
            for ch in children:
                _source(ch, out)
            out.append('[$END$]')
        case _:
            raise TypeError(f'bad node: {node!r}')


def to_source(node: DocumentNode | Node) -> str:
    '''
    Writes the tree back as a document. Parsing the result gives an equal tree,
    as long as no string literal contains a backslash (string unescaping is not
    reversible for those).
    '''
    out = []
    _source(node, out)
    return ''.join(out)


def debug_node(node: DocumentNode | Node) -> str:
    match node:
        case DocumentNode(children):
            return f'Document[{len(children)}]'
        case TextNode(text):
            return f'Text({shorten(text)!r})'
        case EchoNode(tokens):
            return 'Echo(' + ' '.join(token_source(t) for t in tokens) + ')'
        case ForLoopNode(variable, start, end, step, children):
            toks = (variable, start, end) if step is None else (variable, start, end, step)
            args = ', '.join(token_source(t) for t in toks)
            return f'For({args})[{len(children)}]'
    return repr(node)


def dump(node: DocumentNode | Node, *, indent: str = '  ') -> str:
    lines = []

    def walk(node: DocumentNode | Node, depth: int):
        lines.append(indent * depth + debug_node(node))
        if isinstance(node, (DocumentNode, ForLoopNode)):
            for ch in node.children:
                walk(ch, depth + 1)

    walk(node, 0)
    return '\n'.join(lines)
