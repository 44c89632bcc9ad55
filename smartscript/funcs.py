'''
Built-in functions, callable from echo tags as `@name`.

Each function declares how many operands it takes from the expression stack.
The engine pops them (top of stack first) and pushes whatever the function
returns, in order.
'''

import re
import math
import dataclasses
from decimal import Decimal, ROUND_HALF_EVEN, localcontext
from typing import Callable, TypeAlias

from .errors import RuntimeTypeError
from .context import Value, to_number, to_str
from .tokens import is_identifier
from .request import Context

Impl: TypeAlias = Callable[[Context, tuple[Value, ...]], tuple[Value, ...]]


@dataclasses.dataclass(frozen=True, slots=True)
class Function:
    name: str
    arity: int
    impl: Impl


FUNCTIONS: dict[str, Function] = {}


def builtin(name: str, arity: int):
    def decorator(impl: Impl) -> Impl:
        if not is_identifier(name):
            raise ValueError(f'bad function name: {name!r}')
        if name in FUNCTIONS:
            raise ValueError(f'function redefined: {name}')
        if arity < 0:
            raise ValueError(f'bad arity for {name}: {arity}')
        FUNCTIONS[name] = Function(name, arity, impl)
        return impl

    return decorator


def lookup(name: str) -> Function:
    if (func := FUNCTIONS.get(name)) is None:
        raise RuntimeTypeError(f'unknown function: @{name}')
    return func


_pattern_re = re.compile(
    r'(?P<prefix>[^#0,.]*)(?P<int>[#0,]*)(?:\.(?P<frac>[#0]*))?(?P<suffix>[^#0,.]*)',
    re.S,
)


def decimal_format(x: int | float, pattern: str) -> str:
    '''
    Formats `x` like a `#,##0.00`-style decimal pattern.

    Supported: literal prefix and suffix, `0` (required digit), `#` (optional
    digit), `,` (grouping, sized by the digits after the last comma), `.` and a
    `%` in the prefix or suffix. Rounding is half-even.
    '''
    if not (m := _pattern_re.fullmatch(pattern)) or not (m['int'] or m['frac']):
        raise RuntimeTypeError(f'bad decimal format pattern: {pattern!r}')

    prefix, suffix = m['prefix'], m['suffix']
    int_part = m['int']
    frac_part = m['frac'] or ''

    if isinstance(x, float):
        if math.isnan(x):
            return prefix + 'NaN' + suffix
        if math.isinf(x):
            return ('-' if x < 0 else '') + prefix + '∞' + suffix
        d = Decimal(repr(x))
    else:
        d = Decimal(x)
    percent = '%' in prefix or '%' in suffix

    min_int = int_part.count('0')
    grouping = len(int_part) - int_part.rfind(',') - 1 if ',' in int_part else 0
    min_frac = frac_part.count('0')
    max_frac = len(frac_part)

    with localcontext() as dc:
        # Room for every digit of the largest double.
        dc.prec = 400 + max_frac
        if percent:
            d *= 100
        d = d.quantize(Decimal(1).scaleb(-max_frac), rounding=ROUND_HALF_EVEN)
    # A value rounded to zero keeps its sign, as in `-0.00`.
    neg = d.is_signed()
    whole, _, frac = f'{d.copy_abs():f}'.partition('.')

    whole = whole.lstrip('0').rjust(min_int, '0')
    frac = frac.rstrip('0').ljust(min_frac, '0')
    if not whole and not frac:
        whole = '0'

    if grouping and len(whole) > grouping:
        head = len(whole) % grouping or grouping
        groups = [whole[:head]]
        groups += [whole[i : i + grouping] for i in range(head, len(whole), grouping)]
        whole = ','.join(groups)

    digits = whole + ('.' + frac if frac else '')
    return ('-' if neg else '') + prefix + digits + suffix


@builtin('sin', 1)
def _sin(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    (x,) = args
    return (math.sin(float(to_number(x))),)


@builtin('decfmt', 2)
def _decfmt(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    fmt, x = args
    return (decimal_format(to_number(x), to_str(fmt)),)


@builtin('dup', 1)
def _dup(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    (x,) = args
    return x, x


@builtin('swap', 2)
def _swap(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    # `x` was on top, so pushing it first leaves `y` on top.
    x, y = args
    return x, y


@builtin('setMimeType', 1)
def _set_mime_type(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    (x,) = args
    ctx.set_mime_type(to_str(x))
    return ()


def _get_or(val: str | None, default: Value) -> tuple[Value, ...]:
    return (default if val is None else val,)


@builtin('paramGet', 2)
def _param_get(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    default, name = args
    return _get_or(ctx.get_parameter(to_str(name)), default)


@builtin('pparamGet', 2)
def _pparam_get(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    default, name = args
    return _get_or(ctx.get_persistent_parameter(to_str(name)), default)


@builtin('tparamGet', 2)
def _tparam_get(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    default, name = args
    return _get_or(ctx.get_temporary_parameter(to_str(name)), default)


@builtin('pparamSet', 2)
def _pparam_set(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    value, name = args
    ctx.set_persistent_parameter(to_str(name), to_str(value))
    return ()


@builtin('tparamSet', 2)
def _tparam_set(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    value, name = args
    ctx.set_temporary_parameter(to_str(name), to_str(value))
    return ()


@builtin('pparamDel', 1)
def _pparam_del(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    (name,) = args
    ctx.remove_persistent_parameter(to_str(name))
    return ()


@builtin('tparamDel', 1)
def _tparam_del(ctx: Context, args: tuple[Value, ...]) -> tuple[Value, ...]:
    (name,) = args
    ctx.remove_temporary_parameter(to_str(name))
    return ()
