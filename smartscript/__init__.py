from .errors import (
    ScriptError,
    ParseError,
    RuntimeTypeError,
    ScriptArithmeticError,
    EmptyStackError,
    StepLimitError,
)
from .context import Value, MultiStack
from .nodes import Node, DocumentNode, TextNode, EchoNode, ForLoopNode
from .parser import parse, parse_cached
from .engine import Engine, execute, render
from .request import Context, ContextConfig, RequestContext, RCCookie
from .printer import to_source, dump

__all__ = [
    'ScriptError',
    'ParseError',
    'RuntimeTypeError',
    'ScriptArithmeticError',
    'EmptyStackError',
    'StepLimitError',
    'Value',
    'MultiStack',
    'Node',
    'DocumentNode',
    'TextNode',
    'EchoNode',
    'ForLoopNode',
    'parse',
    'parse_cached',
    'Engine',
    'execute',
    'render',
    'Context',
    'ContextConfig',
    'RequestContext',
    'RCCookie',
    'to_source',
    'dump',
]
