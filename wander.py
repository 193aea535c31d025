"""
Wander - a small embeddable expression language
Host-facing API: parse source, evaluate against a module registry of native
functions, and run test documents
"""

__version__ = "0.1.0"

from typing import Any, Optional

from error_handling import (
  DuplicateBinding,
  FunctionComparisonError,
  LexError,
  NativeFunctionError,
  ParseError,
  RecursionLimit,
  RegistryError,
  TestHarnessError,
  UnboundIdentifier,
  UnboundModuleMember,
  WanderError,
  WanderRuntimeError,
  WanderTypeError,
)
from harness import TestResult, format_test_report, run_test_document
from interpreter import create_interpreter, evaluate, make_execution_context
from parsing import parse, parse_test_document, tokenize
from registry import ModuleRegistry, register_native
from stdlib import common
from values import HostValue, default_environment, render_value, values_equal


def run(source: str, registry: Optional[ModuleRegistry] = None,
        filename: str = "<input>") -> Any:
  """Parse and evaluate one expression in the empty root environment"""
  if registry is None:
    registry = common()
  return evaluate(parse(source, filename), default_environment(), registry)


__all__ = [
    'DuplicateBinding', 'FunctionComparisonError', 'LexError', 'NativeFunctionError',
    'ParseError', 'RecursionLimit', 'RegistryError', 'TestHarnessError',
    'UnboundIdentifier', 'UnboundModuleMember', 'WanderError', 'WanderRuntimeError',
    'WanderTypeError', 'HostValue', 'ModuleRegistry', 'TestResult', 'common', 'create_interpreter',
    'default_environment', 'evaluate', 'format_test_report', 'make_execution_context',
    'parse', 'parse_test_document', 'register_native', 'render_value', 'run',
    'run_test_document', 'tokenize', 'values_equal',
]
