"""
Wander Test Harness
Runs the name/test/expect blocks of a test document and reports one
PASS/FAIL record per block
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from error_handling import WanderError
from interpreter import evaluate, make_execution_context
from parsing import TestBlock, TestDocument, parse_test_document
from registry import ModuleRegistry
from values import (
  RecordValue,
  StringValue,
  default_environment,
  make_boolean,
  render_value,
  values_equal,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TestResult:
  """Outcome of one test block; each side holds its value or the error it raised"""
  __test__ = False

  name: str
  passed: bool
  actual: Any
  expected: Any
  error: Optional[WanderError] = None

  def to_record(self) -> RecordValue:
    """This result as a Wander record, errors rendered as strings"""
    return RecordValue((
        ('name', StringValue(self.name)),
        ('passed', make_boolean(self.passed)),
        ('actual', _outcome_value(self.actual)),
        ('expected', _outcome_value(self.expected)),
    ))


def _outcome_value(outcome: Any) -> Any:
  if isinstance(outcome, WanderError):
    return StringValue(str(outcome))
  return outcome


def describe_outcome(outcome: Any) -> str:
  if isinstance(outcome, WanderError):
    return str(outcome)
  return render_value(outcome)


# ============================================================================
# RUNNING TESTS
# ============================================================================

def run_test_block(block: TestBlock, registry: ModuleRegistry,
                   max_depth: Optional[int] = None) -> TestResult:
  """
  Evaluate test and expect independently, each in a fresh root environment,
  and compare the results structurally.
  Both sides are always evaluated; `actual` holds the test's error if it raised
  """
  def run(expression):
    context = make_execution_context(max_depth)
    return evaluate(expression, default_environment(), registry, context)

  error = None
  try:
    actual = run(block.test)
  except WanderError as e:
    actual = error = e

  try:
    expected = run(block.expect)
  except WanderError as e:
    expected = e
    error = error or e

  if error is None:
    try:
      passed = values_equal(actual, expected)
    except WanderError as e:
      actual = error = e

  if error is not None:
    logger.info("FAIL: %s (%s)", block.name, error)
    return TestResult(block.name, False, actual, expected, error)

  if passed:
    logger.info("PASS: %s", block.name)
  else:
    logger.info("FAIL: %s (%s != %s)", block.name, render_value(actual), render_value(expected))
  return TestResult(block.name, passed, actual, expected)


def run_test_blocks(document: TestDocument, registry: Optional[ModuleRegistry] = None,
                    max_depth: Optional[int] = None) -> List[TestResult]:
  """Run every block of a parsed document, in document order"""
  if registry is None:
    registry = ModuleRegistry()
  return [run_test_block(block, registry, max_depth) for block in document.blocks]


def run_test_document(source: str, registry: Optional[ModuleRegistry] = None,
                      filename: str = "<input>",
                      max_depth: Optional[int] = None) -> List[TestResult]:
  """
  Parse a test document and run its blocks.
  A malformed document raises ParseError before any block runs.
  """
  document = parse_test_document(source, filename)
  return run_test_blocks(document, registry, max_depth)


# ============================================================================
# REPORTING
# ============================================================================

def format_test_report(results: List[TestResult], doc: Optional[str] = None) -> str:
  lines = []
  if doc:
    lines.append(doc)
  for result in results:
    if result.passed:
      lines.append(f"✅ PASS: {result.name}")
    else:
      lines.append(f"❌ FAIL: {result.name}")
      lines.append(f"    expected: {describe_outcome(result.expected)}")
      lines.append(f"    actual:   {describe_outcome(result.actual)}")

  passed = sum(1 for result in results if result.passed)
  lines.append("")
  lines.append(f"Summary: {passed} Passed, {len(results) - passed} Failed.")
  return "\n".join(lines)
