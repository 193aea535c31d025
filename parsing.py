"""
Wander Language Parser
Tokenizer built from pyparsing token shapes, the abstract syntax tree, and a
recursive descent parser for expressions and test documents
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from pyparsing import (
    Literal as PyParsingLiteral, MatchFirst, Regex, col, lineno
)

from error_handling import LexError, ParseError
from values import NOTHING, NumberValue, StringValue, make_boolean, render_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSpan:
    """Source location of a token or node"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


# Token kinds
IDENTIFIER = "IDENTIFIER"
QUALIFIED_IDENTIFIER = "QUALIFIED_IDENTIFIER"
BOOLEAN = "BOOLEAN"
NUMBER = "NUMBER"
STRING = "STRING"
KEYWORD = "KEYWORD"
PUNCTUATION = "PUNCTUATION"
OPERATOR = "OPERATOR"
COMMENT = "COMMENT"
EOF = "EOF"

KEYWORDS = frozenset({'let', 'in', 'end', 'if', 'then', 'else', 'nothing'})
BOOLEANS = {'true': True, 'false': False}
STRING_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"'}
TEST_BLOCK_KEYS = ('name', 'test', 'expect')


@dataclass(frozen=True)
class Token:
    """Wander token with source information"""
    type: str
    value: Any
    span: SourceSpan

    @property
    def text(self) -> str:
        return self.span.text

    def __str__(self) -> str:
        return f"{self.type}({self.text})"


def describe_token(token: Token) -> str:
    if token.type == EOF:
        return "end of input"
    return f"{token.type.lower().replace('_', ' ')} '{token.text}'"


# ============================================================================
# TOKENIZER
# ============================================================================

class WanderTokenizer:
    """Wander tokenizer; token shapes are tried in priority order"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token shapes for Wander"""

        # Comments run to end of line and are dropped from the token stream
        comment = Regex(r'//[^\n]*').set_name("comment")

        # Single line string literals with the supported escape set only
        string_literal = Regex(r'"(?:[^"\\\n]|\\[\\"ntr])*"').set_name("string")

        # Integers and decimals, optionally negative
        number_literal = Regex(r'-?\d+(?:\.\d+)?(?![A-Za-z_])').set_name("number")

        arrow = PyParsingLiteral("->").set_name("'->'")
        pipe = PyParsingLiteral("|").set_name("'|'")

        # Namespace.member, no whitespace around the dots
        qualified = Regex(
            r'[A-Z][A-Za-z0-9_]*(?:\.[A-Z][A-Za-z0-9_]*)*\.[a-z_][A-Za-z0-9_]*\??'
        ).set_name("qualified identifier")

        # Identifiers, keywords and boolean literals share one shape
        identifier = Regex(r'[a-z_][A-Za-z0-9_]*\??').set_name("identifier")

        # Tuple and set literals open with a marked parenthesis
        marked_open = Regex(r"['#]\(").set_name("'(' or '#('")

        punctuation = Regex(r'[{}()\[\]=,\\]').set_name("punctuation")

        shapes = [
            (COMMENT, comment),
            (STRING, string_literal),
            (NUMBER, number_literal),
            (PUNCTUATION, arrow),
            (OPERATOR, pipe),
            (QUALIFIED_IDENTIFIER, qualified),
            (IDENTIFIER, identifier),
            (PUNCTUATION, marked_open),
            (PUNCTUATION, punctuation),
        ]
        for kind, shape in shapes:
            shape.set_parse_action(self._token_action(kind))

        self.token_shape = MatchFirst([shape for _, shape in shapes]).parse_with_tabs()

    def _token_action(self, kind: str):
        def action(source: str, loc: int, toks):
            return self._make_token(kind, toks[0], source, loc)
        return action

    def _make_token(self, kind: str, text: str, source: str, loc: int) -> Token:
        span = self._span_at(source, loc, text)
        value: Any = text

        if kind == STRING:
            value = self._process_string_escapes(text[1:-1])
        elif kind == NUMBER:
            value = float(text) if '.' in text else int(text)
        elif kind == QUALIFIED_IDENTIFIER:
            namespace, _, member = text.rpartition('.')
            value = (namespace, member)
        elif kind == IDENTIFIER:
            if text in KEYWORDS:
                kind = KEYWORD
            elif text in BOOLEANS:
                kind = BOOLEAN
                value = BOOLEANS[text]

        return Token(kind, value, span)

    def _span_at(self, source: str, loc: int, text: str) -> SourceSpan:
        line = lineno(loc, source)
        column = col(loc, source)
        return SourceSpan(self.filename, line, column, line, column + len(text), text)

    def _process_string_escapes(self, s: str) -> str:
        """Process escape sequences in strings"""
        result = []
        i = 0
        while i < len(s):
            if s[i] == '\\':
                result.append(STRING_ESCAPES[s[i + 1]])
                i += 2
            else:
                result.append(s[i])
                i += 1
        return ''.join(result)

    def _check_gap(self, text: str, start: int, end: int) -> None:
        """Anything but whitespace between two tokens is unrecognized"""
        for offset in range(start, end):
            char = text[offset]
            if char.isspace():
                continue
            span = self._span_at(text, offset, char)
            if char == '"':
                raise LexError("Unterminated or malformed string literal", char, span)
            raise LexError(f"Unrecognized character '{char}'", char, span)

    def tokenize(self, text: str) -> Iterator[Token]:
        """Lazily tokenize Wander source, ending with an EOF token"""
        position = 0
        for toks, start, end in self.token_shape.scan_string(text):
            self._check_gap(text, position, start)
            position = end
            token = toks[0]
            if token.type == NUMBER and not math.isfinite(token.value):
                raise LexError("Number literal out of range", token.text, token.span)
            if token.type != COMMENT:
                yield token
        self._check_gap(text, position, len(text))
        yield Token(EOF, None, self._span_at(text, len(text), ""))


def tokenize(text: str, filename: str = "<input>") -> Iterator[Token]:
    """Tokenize Wander source code"""
    return WanderTokenizer(filename).tokenize(text)


# ============================================================================
# ABSTRACT SYNTAX TREE
# ============================================================================

def _span_field():
    return field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Literal:
    value: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Identifier:
    name: str
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class QualifiedIdentifier:
    namespace: str
    member: str
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Lambda:
    parameter: str
    body: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Application:
    function: Any
    argument: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Binding:
    name: str
    expression: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Let:
    bindings: Tuple[Binding, ...]
    body: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Pipe:
    left: Any
    right: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class Conditional:
    condition: Any
    then_branch: Any
    else_branch: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class ListExpression:
    elements: Tuple[Any, ...]
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class TupleExpression:
    elements: Tuple[Any, ...]
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class SetExpression:
    elements: Tuple[Any, ...]
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class RecordExpression:
    fields: Tuple[Tuple[str, Any], ...]
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class TestBlock:
    __test__ = False

    name: str
    test: Any
    expect: Any
    span: Optional[SourceSpan] = _span_field()


@dataclass(frozen=True)
class TestDocument:
    __test__ = False

    doc: Optional[str]
    blocks: Tuple[TestBlock, ...]


# ============================================================================
# PARSER
# ============================================================================

class TokenStream:
    """Lookahead buffer over a lazy token sequence"""

    def __init__(self, tokens: Iterable[Token]):
        self._tokens = iter(tokens)
        self._buffer: List[Token] = []

    def peek(self, offset: int = 0) -> Token:
        while len(self._buffer) <= offset:
            token = next(self._tokens, None)
            if token is None:
                token = self._buffer[-1] if self._buffer else Token(
                    EOF, None, SourceSpan("<input>", 1, 1, 1, 1))
                if token.type != EOF:
                    token = Token(EOF, None, token.span)
            self._buffer.append(token)
        return self._buffer[offset]

    def advance(self) -> Token:
        token = self.peek()
        if token.type != EOF:
            self._buffer.pop(0)
        return token


class TokenParser:
    """Recursive descent parser over Wander tokens

    Precedence from highest to lowest: application by juxtaposition (left
    associative), pipe `|` (left associative). `let`, `if`, lambdas, lists,
    tuples, sets, records and parentheses are atoms.
    """

    ATOM_KEYWORDS = ('let', 'if', 'nothing')
    ATOM_PUNCTUATION = ('(', '\\', '[', '{', "'(", '#(')

    def __init__(self, tokens: Iterable[Token]):
        self.stream = TokenStream(tokens)

    # -- helpers -------------------------------------------------------------

    def _check(self, kind: str, value: Any = None, offset: int = 0) -> bool:
        token = self.stream.peek(offset)
        return token.type == kind and (value is None or token.value == value)

    def _error(self, expected: str, token: Token, message: Optional[str] = None) -> ParseError:
        got = describe_token(token)
        return ParseError(message or f"Expected {expected}, found {got}",
                          token.span, expected=expected, got=got)

    def _expect(self, kind: str, value: Any, expected: str) -> Token:
        if not self._check(kind, value):
            raise self._error(expected, self.stream.peek())
        return self.stream.advance()

    def _skip_comma(self) -> None:
        if self._check(PUNCTUATION, ','):
            self.stream.advance()

    def _starts_binding(self) -> bool:
        return self._check(IDENTIFIER) and self._check(PUNCTUATION, '=', offset=1)

    def _starts_atom(self) -> bool:
        token = self.stream.peek()
        if token.type in (BOOLEAN, NUMBER, STRING, IDENTIFIER, QUALIFIED_IDENTIFIER):
            return True
        if token.type == KEYWORD:
            return token.value in self.ATOM_KEYWORDS
        if token.type == PUNCTUATION:
            return token.value in self.ATOM_PUNCTUATION
        return False

    # -- entry points --------------------------------------------------------

    def parse_program(self) -> Any:
        """Parse exactly one expression followed by end of input"""
        expression = self.parse_expression()
        token = self.stream.peek()
        if token.type != EOF:
            raise self._error("end of input", token)
        return expression

    def parse_test_document(self) -> TestDocument:
        """Parse an optional doc declaration followed by test blocks"""
        doc = None
        if self._check(IDENTIFIER, 'doc'):
            self.stream.advance()
            doc = self._expect(STRING, None, "doc string").value

        blocks: List[TestBlock] = []
        names = set()
        while not self._check(EOF):
            if self._check(IDENTIFIER, 'doc'):
                raise self._error(
                    "'{'", self.stream.peek(),
                    "A test document declares doc at most once, before any test block")
            block = self.parse_test_block()
            if block.name in names:
                raise ParseError(f"Duplicate test name '{block.name}'", block.span)
            names.add(block.name)
            blocks.append(block)

        return TestDocument(doc, tuple(blocks))

    # -- expressions ---------------------------------------------------------

    def parse_expression(self) -> Any:
        left = self.parse_application()
        while self._check(OPERATOR, '|'):
            bar = self.stream.advance()
            right = self.parse_application()
            left = Pipe(left, right, span=bar.span)
        return left

    def parse_application(self) -> Any:
        function = self.parse_atom()
        # `name =` starts the next binding or field, never an argument
        while self._starts_atom() and not self._starts_binding():
            argument = self.parse_atom()
            function = Application(function, argument, span=function.span)
        return function

    def parse_atom(self) -> Any:
        token = self.stream.peek()

        if token.type == BOOLEAN:
            self.stream.advance()
            return Literal(make_boolean(token.value), span=token.span)
        elif token.type == NUMBER:
            self.stream.advance()
            return Literal(NumberValue(token.value), span=token.span)
        elif token.type == STRING:
            self.stream.advance()
            return Literal(StringValue(token.value), span=token.span)
        elif token.type == IDENTIFIER:
            self.stream.advance()
            return Identifier(token.value, span=token.span)
        elif token.type == QUALIFIED_IDENTIFIER:
            self.stream.advance()
            namespace, member = token.value
            return QualifiedIdentifier(namespace, member, span=token.span)
        elif token.type == KEYWORD:
            if token.value == 'nothing':
                self.stream.advance()
                return Literal(NOTHING, span=token.span)
            if token.value == 'let':
                return self.parse_let()
            if token.value == 'if':
                return self.parse_conditional()
        elif token.type == PUNCTUATION:
            if token.value == '(':
                return self.parse_grouping()
            if token.value == '\\':
                return self.parse_lambda()
            if token.value == '[':
                return self.parse_list()
            if token.value == '{':
                return self.parse_record()
            if token.value == "'(":
                return self.parse_tuple()
            if token.value == '#(':
                return self.parse_set()

        raise self._error("expression", token)

    def parse_grouping(self) -> Any:
        self._expect(PUNCTUATION, '(', "'('")
        expression = self.parse_expression()
        self._expect(PUNCTUATION, ')', "')'")
        return expression

    def parse_let(self) -> Let:
        let_token = self._expect(KEYWORD, 'let', "'let'")
        bindings: List[Binding] = []
        while self._check(IDENTIFIER):
            name_token = self.stream.advance()
            self._expect(PUNCTUATION, '=', "'=' after binding name")
            expression = self.parse_expression()
            bindings.append(Binding(name_token.value, expression, span=name_token.span))
            self._skip_comma()
        self._expect(KEYWORD, 'in', "'in' or another binding")
        body = self.parse_expression()
        self._expect(KEYWORD, 'end', "'end' to close let")
        return Let(tuple(bindings), body, span=let_token.span)

    def parse_lambda(self) -> Lambda:
        backslash = self._expect(PUNCTUATION, '\\', "'\\'")
        parameters = [self._expect(IDENTIFIER, None, "parameter name").value]
        while self._check(IDENTIFIER):
            parameters.append(self.stream.advance().value)
        self._expect(PUNCTUATION, '->', "'->' after lambda parameters")
        body = self.parse_expression()

        # \x y -> body is \x -> \y -> body
        for parameter in reversed(parameters):
            body = Lambda(parameter, body, span=backslash.span)
        return body

    def parse_conditional(self) -> Conditional:
        if_token = self._expect(KEYWORD, 'if', "'if'")
        condition = self.parse_expression()
        self._expect(KEYWORD, 'then', "'then'")
        then_branch = self.parse_expression()
        self._expect(KEYWORD, 'else', "'else'")
        else_branch = self.parse_expression()
        self._expect(KEYWORD, 'end', "'end' to close if")
        return Conditional(condition, then_branch, else_branch, span=if_token.span)

    def _parse_elements(self, close: str) -> Tuple[Any, ...]:
        """Comma separated expressions up to close; a trailing comma is allowed"""
        elements = []
        while not self._check(PUNCTUATION, close):
            elements.append(self.parse_expression())
            if not self._check(PUNCTUATION, close):
                self._expect(PUNCTUATION, ',', f"',' or '{close}'")
        self.stream.advance()
        return tuple(elements)

    def parse_list(self) -> ListExpression:
        open_token = self._expect(PUNCTUATION, '[', "'['")
        return ListExpression(self._parse_elements(']'), span=open_token.span)

    def parse_tuple(self) -> TupleExpression:
        open_token = self._expect(PUNCTUATION, "'(", "\"'(\"")
        return TupleExpression(self._parse_elements(')'), span=open_token.span)

    def parse_set(self) -> SetExpression:
        open_token = self._expect(PUNCTUATION, '#(', "'#('")
        return SetExpression(self._parse_elements(')'), span=open_token.span)

    def parse_record(self) -> RecordExpression:
        open_token = self._expect(PUNCTUATION, '{', "'{'")
        fields = []
        seen = set()
        while not self._check(PUNCTUATION, '}'):
            name_token = self._expect(IDENTIFIER, None, "field name or '}'")
            if name_token.value in seen:
                raise ParseError(f"Duplicate field '{name_token.value}' in record",
                                 name_token.span)
            seen.add(name_token.value)
            self._expect(PUNCTUATION, '=', "'=' after field name")
            fields.append((name_token.value, self.parse_expression()))
            self._skip_comma()
        self.stream.advance()
        return RecordExpression(tuple(fields), span=open_token.span)

    # -- test documents ------------------------------------------------------

    def parse_test_block(self) -> TestBlock:
        open_token = self._expect(PUNCTUATION, '{', "'{' to open a test block")
        entries = {}
        while not self._check(PUNCTUATION, '}'):
            key_token = self.stream.peek()
            if key_token.type != IDENTIFIER or key_token.value not in TEST_BLOCK_KEYS:
                raise self._error("one of name, test, expect", key_token)
            self.stream.advance()
            key = key_token.value
            if key in entries:
                raise ParseError(f"Duplicate key '{key}' in test block", key_token.span)
            self._expect(PUNCTUATION, '=', f"'=' after {key}")
            if key == 'name':
                entries[key] = self._expect(STRING, None, "test name string").value
            else:
                entries[key] = self.parse_expression()
            self._skip_comma()
        self.stream.advance()

        for key in TEST_BLOCK_KEYS:
            if key not in entries:
                raise ParseError(f"Test block is missing the '{key}' key", open_token.span)

        return TestBlock(entries['name'], entries['test'], entries['expect'],
                         span=open_token.span)


# ============================================================================
# PUBLIC INTERFACE
# ============================================================================

class WanderParser:
    """Main Wander parser combining tokenizer and token parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def parse_string(self, text: str, filename: str = "<input>") -> Any:
        """Parse one Wander expression from a string"""
        if self.debug:
            logger.debug("Parsing %s (%d chars)", filename, len(text))
        parser = TokenParser(tokenize(text, filename))
        try:
            return parser.parse_program()
        except RecursionError:
            raise ParseError("Expression is nested too deeply") from None

    def parse_test_document(self, text: str, filename: str = "<input>") -> TestDocument:
        """Parse a Wander test document"""
        if self.debug:
            logger.debug("Parsing test document %s", filename)
        parser = TokenParser(tokenize(text, filename))
        try:
            return parser.parse_test_document()
        except RecursionError:
            raise ParseError("Test document is nested too deeply") from None

    def parse_file(self, filepath: str) -> Any:
        """Parse a Wander source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize Wander source code"""
        return list(tokenize(text, filename))


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> WanderParser:
    """Create a Wander parser"""
    return WanderParser(debug=debug)


def create_debug_parser() -> WanderParser:
    """Create a Wander parser with debug enabled"""
    return WanderParser(debug=True)


def parse(text: str, filename: str = "<input>") -> Any:
    """Parse source text into a single AST root"""
    return create_parser().parse_string(text, filename)


def parse_test_document(text: str, filename: str = "<input>") -> TestDocument:
    return create_parser().parse_test_document(text, filename)


# Utility functions for working with the AST
def node_children(node: Any) -> List[Tuple[str, Any]]:
    """Labelled child nodes, in source order"""
    if isinstance(node, Lambda):
        return [("body", node.body)]
    elif isinstance(node, Application):
        return [("function", node.function), ("argument", node.argument)]
    elif isinstance(node, Let):
        return [(binding.name, binding.expression) for binding in node.bindings] + [("in", node.body)]
    elif isinstance(node, Pipe):
        return [("left", node.left), ("right", node.right)]
    elif isinstance(node, Conditional):
        return [("if", node.condition), ("then", node.then_branch), ("else", node.else_branch)]
    elif isinstance(node, (ListExpression, TupleExpression, SetExpression)):
        return [(str(i), element) for i, element in enumerate(node.elements)]
    elif isinstance(node, RecordExpression):
        return list(node.fields)
    elif isinstance(node, TestBlock):
        return [("test", node.test), ("expect", node.expect)]
    return []


def pretty_print_ast(node: Any, indent: int = 0, label: Optional[str] = None) -> str:
    """Pretty print an AST node for debugging"""
    result = "  " * indent
    if label is not None:
        result += f"{label}: "
    result += type(node).__name__

    if isinstance(node, Literal):
        result += f"({render_value(node.value)})"
    elif isinstance(node, Identifier):
        result += f"({node.name})"
    elif isinstance(node, QualifiedIdentifier):
        result += f"({node.namespace}.{node.member})"
    elif isinstance(node, Lambda):
        result += f"({node.parameter})"
    elif isinstance(node, TestBlock):
        result += f"({node.name!r})"
    result += "\n"

    for child_label, child in node_children(node):
        result += pretty_print_ast(child, indent + 1, child_label)

    return result
