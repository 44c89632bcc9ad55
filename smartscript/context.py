from typing import TypeAlias
import os
import re
import math
import logging
from decimal import Decimal

from .util import log
from .errors import RuntimeTypeError, ScriptArithmeticError, EmptyStackError

is_tracing = os.environ.get('TRACE') == '1' and log.isEnabledFor(logging.DEBUG)
trace = log.debug if is_tracing else lambda *_: None

# Runtime values: `None` is the absent value. Values never live in the AST.
Value: TypeAlias = int | float | str | None

INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1

_int_re = re.compile(r'[+-]?[0-9]+')
_double_re = re.compile(
    r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?(?:NaN|Infinity)'
)


def parse_int(s: str) -> int | None:
    if not _int_re.fullmatch(s):
        return None
    n = int(s)
    if INT_MIN <= n <= INT_MAX:
        return n


def parse_double(s: str) -> float | None:
    if _double_re.fullmatch(s):
        return float(s)


def _wrap(n: int) -> int:
    # Two's complement overflow, as in a signed 64-bit register.
    return ((n - INT_MIN) & 0xFFFF_FFFF_FFFF_FFFF) + INT_MIN


def to_number(v: Value) -> int | float:
    if v is None:
        return 0
    # `bool` is an `int` subclass, but never a script value.
    if isinstance(v, bool):
        raise RuntimeTypeError(
            f'operand must be absent, integer, double, or numeric text: {v!r}'
        )
    if isinstance(v, (int, float)):
        return v
    if isinstance(v, str):
        if '.' in v or 'e' in v or 'E' in v:
            r = parse_double(v)
        else:
            r = parse_int(v)
        if r is None:
            raise RuntimeTypeError(f'not a number: {v!r}')
        return r
    raise RuntimeTypeError(
        f'operand must be absent, integer, double, or numeric text: {type(v).__name__}'
    )


def _fdiv(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _idiv(a: int, b: int) -> int:
    if b == 0:
        raise ScriptArithmeticError('integer division by zero')
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def arith(op: str, left: Value, right: Value) -> int | float:
    a = to_number(left)
    b = to_number(right)
    if isinstance(a, float) or isinstance(b, float):
        a = float(a)
        b = float(b)
        match op:
            case '+':
                return a + b
            case '-':
                return a - b
            case '*':
                return a * b
            case '/':
                return _fdiv(a, b)
    else:
        match op:
            case '+':
                return _wrap(a + b)
            case '-':
                return _wrap(a - b)
            case '*':
                return _wrap(a * b)
            case '/':
                return _wrap(_idiv(a, b))
    raise RuntimeTypeError(f'unknown operator: {op}')


def _fcmp(a: float, b: float) -> int:
    # NaN is equal to itself and greater than everything else.
    if math.isnan(a):
        return 0 if math.isnan(b) else 1
    if math.isnan(b):
        return -1
    if a == b == 0.0:
        # -0.0 sorts before 0.0.
        return (math.copysign(1.0, a) > 0) - (math.copysign(1.0, b) > 0)
    return (a > b) - (a < b)


def compare(left: Value, right: Value) -> int:
    a = to_number(left)
    b = to_number(right)
    if isinstance(a, float) or isinstance(b, float):
        return _fcmp(float(a), float(b))
    return (a > b) - (a < b)


def format_double(x: float) -> str:
    if math.isnan(x):
        return 'NaN'
    if math.isinf(x):
        return 'Infinity' if x > 0 else '-Infinity'
    if x == 0.0:
        return '-0.0' if math.copysign(1.0, x) < 0 else '0.0'

    a = abs(x)
    if 1e-3 <= a < 1e7:
        # Plain notation with at least one fraction digit, e.g. '5.0'.
        return repr(x)

    # Shortest round-trip digits, in computerized scientific notation.
    sign, digits, exp = Decimal(repr(x)).normalize().as_tuple()
    assert isinstance(exp, int)
    ds = ''.join(map(str, digits))
    e = len(ds) + exp - 1
    mantissa = ds[0] + '.' + (ds[1:] or '0')
    return f'{"-" if sign else ""}{mantissa}E{e}'


def to_str(v: Value) -> str:
    if v is None:
        return ''
    if isinstance(v, str):
        return v
    if isinstance(v, float):
        return format_double(v)
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    raise RuntimeTypeError(f'bad value type: {type(v).__name__}: {v!r}')


class MultiStack:
    '''
    A mapping from names to independent LIFO stacks of values.

    Loop variables are pushed under their own names, so an inner loop reusing a
    name shadows the outer binding until it is popped again. The expression
    register of an echo tag lives here as well, under a name no identifier can
    take.
    '''

    def __init__(self):
        self._stacks: dict[str, list[Value]] = {}

    def push(self, name: str, value: Value):
        trace('push: %s <- %r', name, value)
        self._stacks.setdefault(name, []).append(value)

    def _stack(self, name: str) -> list[Value]:
        if not (stack := self._stacks.get(name)):
            raise EmptyStackError(f'empty stack: {name}')
        return stack

    def pop(self, name: str) -> Value:
        stack = self._stack(name)
        val = stack.pop()
        if not stack:
            del self._stacks[name]
        trace('pop: %s -> %r', name, val)
        return val

    def peek(self, name: str) -> Value:
        return self._stack(name)[-1]

    def is_empty(self, name: str) -> bool:
        return not self._stacks.get(name)

    def depth(self, name: str) -> int:
        if (stack := self._stacks.get(name)) is None:
            return 0
        return len(stack)

    def drain(self, name: str) -> list[Value]:
        '''Pops everything under `name`, returning the values in push order.'''
        out = []
        while not self.is_empty(name):
            out.append(self.pop(name))
        out.reverse()
        return out

    def names(self) -> list[str]:
        return list(self._stacks)
