"""
Error taxonomy for the Wander language core
Every failure raised by the lexer, parser, evaluator, registry and test
harness is a WanderError carrying an optional source span
"""

from typing import Optional


class WanderError(Exception):
    """Base class for every failure reported by the Wander core"""

    def __init__(self, message: str, span=None):
        self.message = message
        self.span = span
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.span:
            return f"{self.label} at {self.span}: {self.message}"
        return f"{self.label}: {self.message}"

    @property
    def label(self) -> str:
        return "Error"


# ============================================================================
# SYNTAX ERRORS
# ============================================================================

class LexError(WanderError):
    """No token shape matches the source at a position"""

    def __init__(self, message: str, char: str, span=None):
        self.char = char
        super().__init__(message, span)

    @property
    def label(self) -> str:
        return "Lex error"


class ParseError(WanderError):
    """Unexpected token, unterminated construct or malformed test document"""

    def __init__(self, message: str, span=None, expected: Optional[str] = None,
                 got: Optional[str] = None):
        self.expected = expected
        self.got = got
        super().__init__(message, span)

    @property
    def label(self) -> str:
        return "Parse error"


# ============================================================================
# RUNTIME ERRORS
# ============================================================================

class WanderRuntimeError(WanderError):
    """Failure while evaluating an expression"""

    @property
    def label(self) -> str:
        return "Runtime error"


class UnboundIdentifier(WanderRuntimeError):

    def __init__(self, name: str, span=None):
        self.name = name
        super().__init__(f"Unbound identifier: {name}", span)


class UnboundModuleMember(WanderRuntimeError):

    def __init__(self, namespace: str, member: str, span=None):
        self.namespace = namespace
        self.member = member
        super().__init__(f"Unbound module member: {namespace}.{member}", span)


class WanderTypeError(WanderRuntimeError):
    """A value of the wrong shape was used

    `kind` is one of NOT_APPLICABLE, ARGUMENT_TYPE, NOT_A_BOOLEAN or
    NOT_COMPARABLE.
    """

    NOT_APPLICABLE = "NotApplicable"
    ARGUMENT_TYPE = "ArgumentType"
    NOT_A_BOOLEAN = "NotABoolean"
    NOT_COMPARABLE = "NotComparable"

    def __init__(self, kind: str, message: str, span=None):
        self.kind = kind
        super().__init__(f"{kind}: {message}", span)

    @property
    def label(self) -> str:
        return "Type error"


class DuplicateBinding(WanderRuntimeError):

    def __init__(self, name: str, span=None):
        self.name = name
        super().__init__(f"Duplicate binding '{name}' in let", span)


class RecursionLimit(WanderRuntimeError):

    def __init__(self, max_depth: Optional[int] = None, span=None):
        self.max_depth = max_depth
        if max_depth is None:
            message = "Evaluation exceeded the host call stack"
        else:
            message = f"Evaluation exceeded maximum depth of {max_depth}"
        super().__init__(message, span)


class NativeFunctionError(WanderRuntimeError):
    """A host-supplied native function failed or misbehaved"""


class AssertionFailed(WanderRuntimeError):
    pass


class TestHarnessError(WanderRuntimeError):
    __test__ = False


class FunctionComparisonError(TestHarnessError):
    """Functions have no defined equality"""

    def __init__(self, message: str = "Functions cannot be compared for equality", span=None):
        super().__init__(message, span)


# ============================================================================
# HOST SETUP ERRORS
# ============================================================================

class RegistryError(WanderError):
    """Misuse of the module registry by the host"""

    @property
    def label(self) -> str:
        return "Registry error"


# ============================================================================
# DIAGNOSTICS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^")

    return '\n'.join(context_parts)


def describe_error(error: WanderError, source_text: Optional[str] = None) -> str:
    """Format an error for display, with source context when available"""
    result = str(error)
    span = error.span
    if isinstance(error, ParseError) and error.expected:
        result += f"\n  Expected: {error.expected}"
        if error.got:
            result += f"\n  Got: {error.got}"
    if source_text and span is not None and span.start_line > 0:
        result += "\n" + get_context_lines(source_text, span.start_line, span.start_col)
    return result
