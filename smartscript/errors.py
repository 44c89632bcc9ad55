class ScriptError(Exception):
    pass


class ParseError(ScriptError, ValueError):
    def __init__(self, msg: str, text: str | None = None, pos: int | None = None):
        self.pos = pos
        self.line: int | None = None
        self.column: int | None = None
        if text is not None and pos is not None:
            self.line, self.column = line_col(text, pos)
            msg = f'{msg} at line {self.line}, column {self.column}'
        super().__init__(msg)


class RuntimeTypeError(ScriptError, TypeError):
    pass


# Integer division by zero. Floating point division never raises.
class ScriptArithmeticError(ScriptError, ArithmeticError):
    pass


class EmptyStackError(ScriptError, IndexError):
    pass


# The step budget of an execution is exhausted.
class StepLimitError(ScriptError):
    pass


def line_col(text: str, pos: int) -> tuple[int, int]:
    line = text.count('\n', 0, pos) + 1
    return line, pos - (text.rfind('\n', 0, pos) + 1) + 1
