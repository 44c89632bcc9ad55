import io

from .util import log
from .errors import RuntimeTypeError, EmptyStackError, StepLimitError
from .context import is_tracing, trace, Value, MultiStack, arith, compare, to_str
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
from .funcs import lookup
from .parser import parse_cached
from .printer import debug_node
from .request import Context, ContextConfig, RequestContext

# Default step budget for an execution, `None` for unlimited.
MAX_STEPS: int | None = None

# Expression register of echo tags. Not an identifier, so never a loop variable.
SCRATCH = '#echo'


class Engine:
    '''
    Executes a parsed document against a runtime context.

    All mutable state lives in the engine and is created per `execute()` call,
    so one document may be executed by many engines at once.
    '''

    def __init__(
        self,
        document: DocumentNode,
        ctx: Context,
        *,
        max_steps: int | None = None,
    ):
        self._document = document
        self._ctx = ctx
        self._max_steps = MAX_STEPS if max_steps is None else max_steps
        self._store = MultiStack()
        self.steps = 0

    def _consume_gas(self):
        if self._max_steps is not None and self.steps >= self._max_steps:
            log.warning('Execution aborted after %s steps', self.steps)
            raise StepLimitError(f'step limit exceeded: {self._max_steps}')
        self.steps += 1

    def execute(self):
        self._store = MultiStack()
        self.steps = 0
        self.visit(self._document)
        trace('Executed in %s steps', self.steps)

    def visit(self, node: DocumentNode | Node):
        self._consume_gas()
        if is_tracing:
            trace('[%s] %s', self.steps, debug_node(node))

        match node:
            case DocumentNode(children):
                for ch in children:
                    self.visit(ch)
            case TextNode(text):
                self._ctx.write(text)
            case EchoNode(tokens):
                self._echo(tokens)
            case ForLoopNode():
                self._for_loop(node)
            case _:
                raise TypeError(f'bad node: {node!r}')

    @staticmethod
    def _loop_bound(token: Token, what: str) -> int | float:
        match token:
            case IntegerLiteral(value) | DoubleLiteral(value):
                return value
        raise RuntimeTypeError(f'FOR {what} must be a numeric literal: {token!r}')

    def _for_loop(self, node: ForLoopNode):
        name = node.variable.name
        start = self._loop_bound(node.start, 'start')
        end = self._loop_bound(node.end, 'end')
        step = 1 if node.step is None else self._loop_bound(node.step, 'step')

        # Shadows any outer binding of the same name until the loop ends.
        self._store.push(name, start)
        try:
            while compare(self._store.peek(name), end) <= 0:
                for ch in node.children:
                    self.visit(ch)
                self._store.push(name, arith('+', self._store.pop(name), step))
                self._consume_gas()
        finally:
            self._store.pop(name)

    def _pop_operands(self, n: int, what: str) -> tuple[Value, ...]:
        if (depth := self._store.depth(SCRATCH)) < n:
            raise EmptyStackError(f'{what} takes {n} operand(s), {depth} on stack')
        return tuple(self._store.pop(SCRATCH) for _ in range(n))

    def _push(self, val: Value):
        self._store.push(SCRATCH, val)

    def _token(self, token: Token):
        match token:
            case IntegerLiteral(value) | DoubleLiteral(value) | StringLiteral(value):
                self._push(value)

            case Variable(name):
                if self._store.is_empty(name):
                    raise RuntimeTypeError(f'unbound variable: {name}')
                self._push(self._store.peek(name))

            case Operator(symbol):
                # The most recent push is the right operand.
                right, left = self._pop_operands(2, symbol)
                self._push(arith(symbol, left, right))

            case FunctionRef(name):
                func = lookup(name)
                args = self._pop_operands(func.arity, '@' + name)
                for val in func.impl(self._ctx, args):
                    self._push(val)

            case _:
                raise RuntimeTypeError(f'bad token: {token!r}')

    def _echo(self, tokens: tuple[Token, ...]):
        for token in tokens:
            self._consume_gas()
            self._token(token)

        # Whatever is left is written bottom first, i.e. in order of production.
        out = ''.join(to_str(v) for v in self._store.drain(SCRATCH))
        trace('echo: %r', out)
        self._ctx.write(out)


def execute(document: DocumentNode, ctx: Context, *, max_steps: int | None = None):
    Engine(document, ctx, max_steps=max_steps).execute()


def render(
    text: str,
    parameters: dict[str, str] | None = None,
    persistent_parameters: dict[str, str] | None = None,
    *,
    max_steps: int | None = None,
) -> str:
    '''Parses and executes `text` in memory, without any header.'''
    out = io.BytesIO()
    ctx = RequestContext(
        out, parameters, persistent_parameters, config=ContextConfig(headers=False)
    )
    execute(parse_cached(text), ctx, max_steps=max_steps)
    return out.getvalue().decode(ctx.config.encoding)
