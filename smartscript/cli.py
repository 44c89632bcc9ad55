import os
import sys
import time
import argparse

# Tracing is decided when the package is imported, so `TRACE=1` takes effect
# only together with `DEBUG=1`.
if 'TRACE' in os.environ:
    import logging

    _logger = logging.getLogger('smartscript')
    _logger.setLevel(logging.DEBUG)
    _logger.addHandler(logging.FileHandler('smartscript_cli.log', 'w', 'utf-8'))

from prettytable import PrettyTable

from .util import log
from .errors import ScriptError
from .parser import parse
from .engine import Engine
from .printer import to_source
from .request import ContextConfig, RequestContext


def key_value(s: str) -> tuple[str, str]:
    key, sep, value = s.partition('=')
    if not sep or not key:
        raise argparse.ArgumentTypeError(f'expected key=value: {s!r}')
    return key, value


def dump_params(ctx: RequestContext) -> str:
    table = PrettyTable(['store', 'name', 'value'])
    table.align = 'l'
    for name, value in sorted(ctx.persistent_parameters.items()):
        table.add_row(['persistent', name, value])
    for name, value in sorted(ctx.temporary_parameters.items()):
        table.add_row(['temporary', name, value])
    return table.get_string()


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog='smartscript',
        epilog='Set TRACE=1 and DEBUG=1 to trace execution into smartscript_cli.log.',
    )
    parser.add_argument('file', help='script file, or - for stdin')
    parser.add_argument(
        '-P',
        '--param',
        type=key_value,
        action='append',
        default=[],
        help='request parameter',
    )
    parser.add_argument(
        '--pparam',
        type=key_value,
        action='append',
        default=[],
        help='initial persistent parameter',
    )
    parser.add_argument('--http', action='store_true', help='Emit the HTTP header')
    parser.add_argument(
        '-t', '--tree', action='store_true', help='Print the parsed document back'
    )
    parser.add_argument('-g', '--gas', type=int, help='Step budget')
    parser.add_argument('-p', '--profile', action='store_true', help='Enable cProfile')
    parser.add_argument(
        '-c', '--dump-ctx', action='store_true', help='Dump parameters after running'
    )
    args = parser.parse_args(argv)

    file = args.file
    if file == '-':
        text = sys.stdin.read()
    else:
        with open(file, encoding='utf-8') as fp:
            text = fp.read()

    try:
        document = parse(text)
    except ScriptError as e:
        print('Error:', e, file=sys.stderr)
        sys.exit(1)

    if args.tree:
        print(to_source(document))
        return

    ctx = RequestContext(
        sys.stdout.buffer,
        dict(args.param),
        dict(args.pparam),
        config=ContextConfig(headers=args.http),
    )
    engine = Engine(document, ctx, max_steps=args.gas)

    failed = False
    t0 = time.perf_counter()
    try:
        if args.profile:
            import cProfile
            import pstats

            with cProfile.Profile() as pr:
                engine.execute()

            ps = pstats.Stats(pr, stream=sys.stderr).sort_stats('ncalls')
            ps.print_stats()
        else:
            engine.execute()
    except ScriptError as e:
        failed = True
        log.warning('Run failed: %s', file)
        print('Error:', e, file=sys.stderr)
    dt = time.perf_counter() - t0
    sys.stdout.buffer.flush()

    if args.dump_ctx:
        print(dump_params(ctx), file=sys.stderr)

    print('Steps:', engine.steps, file=sys.stderr)
    print(f'Time cost: {dt:.3f} secs', file=sys.stderr)

    sys.exit(failed)


if __name__ == '__main__':
    main()
