"""
Parser tests for Wander
Expression forms, precedence, test documents and parse errors
"""

import pytest
from error_handling import LexError, ParseError
from parsing import (
  Application, Binding, Conditional, Identifier, Lambda, Let, ListExpression, Literal,
  Pipe, QualifiedIdentifier, RecordExpression, SetExpression, TestBlock, TupleExpression,
  parse, parse_test_document,
  pretty_print_ast
)
from values import FALSE, NOTHING, TRUE, NumberValue, StringValue


class TestAtoms:
  """Test parsing of single atoms"""

  def test_literals(self, parser):
    assert parser.parse_string("true") == Literal(TRUE)
    assert parser.parse_string("42") == Literal(NumberValue(42))
    assert parser.parse_string('"hi"') == Literal(StringValue("hi"))
    assert parser.parse_string("nothing") == Literal(NOTHING)

  def test_identifiers(self, parser):
    assert parser.parse_string("isTrue?") == Identifier("isTrue?")
    assert parser.parse_string("Bool.not") == QualifiedIdentifier("Bool", "not")

  def test_grouping(self, parser):
    assert parser.parse_string("((x))") == Identifier("x")

  def test_spans_are_recorded(self, parser):
    node = parser.parse_string("\n  flag")
    assert node.span.start_line == 2
    assert node.span.start_col == 3


class TestApplicationAndPipe:
  """Test precedence and associativity"""

  def test_application_is_left_associative(self, parser):
    assert parser.parse_string("f x y") == Application(
        Application(Identifier("f"), Identifier("x")), Identifier("y"))

  def test_qualified_application(self, parser):
    assert parser.parse_string("Bool.and false true") == Application(
        Application(QualifiedIdentifier("Bool", "and"), Literal(FALSE)), Literal(TRUE))

  def test_pipe_is_left_associative(self, parser):
    assert parser.parse_string("a | f | g") == Pipe(
        Pipe(Identifier("a"), Identifier("f")), Identifier("g"))

  def test_application_binds_tighter_than_pipe(self, parser):
    assert parser.parse_string("f x | g y") == Pipe(
        Application(Identifier("f"), Identifier("x")),
        Application(Identifier("g"), Identifier("y")))

  def test_parenthesised_argument(self, parser):
    assert parser.parse_string("f (g x)") == Application(
        Identifier("f"), Application(Identifier("g"), Identifier("x")))


class TestLambdas:

  def test_single_parameter(self, parser):
    assert parser.parse_string(r"\x -> x") == Lambda("x", Identifier("x"))

  def test_multiple_parameters_nest(self, parser):
    assert parser.parse_string(r"\x y -> x") == Lambda("x", Lambda("y", Identifier("x")))

  def test_body_extends_as_far_as_possible(self, parser):
    assert parser.parse_string(r"\x -> x | f") == Lambda(
        "x", Pipe(Identifier("x"), Identifier("f")))

  def test_missing_arrow(self, parser):
    with pytest.raises(ParseError):
      parser.parse_string(r"\x x")


class TestLet:
  """Test let expressions"""

  def test_bindings_with_commas(self, parser):
    assert parser.parse_string("let x = true, y = x in y end") == Let(
        (Binding("x", Literal(TRUE)), Binding("y", Identifier("x"))), Identifier("y"))

  def test_bindings_without_commas(self, parser):
    """An application stops before the next `name =`"""
    node = parser.parse_string("let x = f true y = x in y end")
    assert node.bindings == (
        Binding("x", Application(Identifier("f"), Literal(TRUE))),
        Binding("y", Identifier("x")),
    )

  def test_no_bindings(self, parser):
    assert parser.parse_string("let in true end") == Let((), Literal(TRUE))

  def test_duplicate_names_parse(self, parser):
    """Duplicates are reported when the let is evaluated"""
    node = parser.parse_string("let x = true x = false in x end")
    assert [binding.name for binding in node.bindings] == ["x", "x"]

  def test_missing_end(self, parser):
    with pytest.raises(ParseError) as exc_info:
      parser.parse_string("let x = true in x")
    assert "'end'" in exc_info.value.expected
    assert exc_info.value.got == "end of input"

  def test_missing_in(self, parser):
    with pytest.raises(ParseError):
      parser.parse_string("let x = true x end")


class TestCompoundForms:
  """Test conditionals, lists and records"""

  def test_conditional(self, parser):
    assert parser.parse_string("if c then a else b end") == Conditional(
        Identifier("c"), Identifier("a"), Identifier("b"))

  def test_list(self, parser):
    assert parser.parse_string("[true, f x, []]") == ListExpression((
        Literal(TRUE),
        Application(Identifier("f"), Identifier("x")),
        ListExpression(()),
    ))

  def test_list_trailing_comma(self, parser):
    assert parser.parse_string("[1, 2,]") == ListExpression(
        (Literal(NumberValue(1)), Literal(NumberValue(2))))

  def test_juxtaposed_list_element_is_an_application(self, parser):
    assert parser.parse_string("[f x]") == ListExpression(
        (Application(Identifier("f"), Identifier("x")),))

  def test_record(self, parser):
    assert parser.parse_string("{x = 1, y = true}") == RecordExpression(
        (("x", Literal(NumberValue(1))), ("y", Literal(TRUE))))

  def test_record_duplicate_field(self, parser):
    with pytest.raises(ParseError):
      parser.parse_string("{x = 1, x = 2}")

  def test_tuple(self, parser):
    assert parser.parse_string("'(1, f x,)") == TupleExpression(
        (Literal(NumberValue(1)), Application(Identifier("f"), Identifier("x"))))

  def test_set(self, parser):
    assert parser.parse_string("#(true, '())") == SetExpression(
        (Literal(TRUE), TupleExpression(())))

  def test_tuple_is_an_argument(self, parser):
    assert parser.parse_string("f '(x)") == Application(
        Identifier("f"), TupleExpression((Identifier("x"),)))

  def test_unclosed_set(self, parser):
    with pytest.raises(ParseError) as exc_info:
      parser.parse_string("#(true false")
    assert exc_info.value.expected == "',' or ')'"

  def test_unclosed_list(self, parser):
    with pytest.raises(ParseError):
      parser.parse_string("[true, false")


class TestParseErrors:
  """Test errors reported for malformed input"""

  def test_empty_input(self, parser):
    with pytest.raises(ParseError) as exc_info:
      parser.parse_string("")
    assert exc_info.value.expected == "expression"

  def test_unmatched_parenthesis(self, parser):
    with pytest.raises(ParseError):
      parser.parse_string("(true")

  def test_trailing_tokens(self, parser):
    with pytest.raises(ParseError) as exc_info:
      parser.parse_string("true)")
    assert exc_info.value.span.start_col == 5

  def test_dangling_pipe(self, parser):
    with pytest.raises(ParseError):
      parser.parse_string("true |")

  def test_lex_errors_propagate(self, parser):
    with pytest.raises(LexError):
      parser.parse_string("true # false")

  def test_deep_nesting_is_a_parse_error(self, parser):
    source = "(" * 5000 + "true" + ")" * 5000
    with pytest.raises(ParseError):
      parser.parse_string(source)


class TestParsingIsPure:

  def test_same_source_same_ast(self):
    source = r"let id = \x -> x, t = Bool.not false in t | id end"
    assert parse(source) == parse(source)

  def test_pretty_print(self):
    output = pretty_print_ast(parse("Bool.not true"))
    assert output.splitlines() == [
        "Application",
        "  function: QualifiedIdentifier(Bool.not)",
        "  argument: Literal(true)",
    ]


class TestTestDocuments:
  """Test the name/test/expect document format"""

  def test_doc_and_blocks(self):
    document = parse_test_document('''
      doc "Boolean checks"

      { name = "and", test = Bool.and false true, expect = false }
      {
        expect = true
        name = "not"
        test = Bool.not false
      }
    ''')
    assert document.doc == "Boolean checks"
    assert [block.name for block in document.blocks] == ["and", "not"]
    assert document.blocks[1] == TestBlock(
        "not",
        Application(QualifiedIdentifier("Bool", "not"), Literal(FALSE)),
        Literal(TRUE))

  def test_empty_document(self):
    document = parse_test_document("")
    assert document.doc is None
    assert document.blocks == ()

  def test_missing_expect(self):
    with pytest.raises(ParseError) as exc_info:
      parse_test_document('{ name = "a", test = true }')
    assert "expect" in str(exc_info.value)

  def test_duplicate_key(self):
    with pytest.raises(ParseError):
      parse_test_document('{ name = "a", test = true, test = false, expect = true }')

  def test_unknown_key(self):
    with pytest.raises(ParseError):
      parse_test_document('{ name = "a", test = true, expect = true, extra = 1 }')

  def test_duplicate_name(self):
    with pytest.raises(ParseError) as exc_info:
      parse_test_document('''
        { name = "same", test = true, expect = true }
        { name = "same", test = false, expect = false }
      ''')
    assert "same" in str(exc_info.value)

  def test_name_must_be_a_string(self):
    with pytest.raises(ParseError):
      parse_test_document('{ name = same, test = true, expect = true }')

  def test_second_doc_rejected(self):
    with pytest.raises(ParseError):
      parse_test_document('doc "one" doc "two"')

  def test_doc_after_block_rejected(self):
    with pytest.raises(ParseError):
      parse_test_document('{ name = "a", test = true, expect = true } doc "late"')
