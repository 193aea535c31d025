"""
Utilities module for the Wander interpreter
Helpers shared by the evaluator and native function implementations
"""

import math
from typing import Any, Iterable, Sequence

from error_handling import NativeFunctionError, WanderTypeError
from values import NativeFunction, NumberValue, is_value, type_name


# ==================== ERROR MESSAGE BUILDERS ====================

def describe_accepted(accepted: Iterable[type]) -> str:
  """
  Human readable names for a set of accepted value classes

  Examples:
    describe_accepted((BooleanValue,)) -> "Boolean"
    describe_accepted((NumberValue, StringValue)) -> "Number or String"
  """
  return " or ".join(cls.__name__.replace("Value", "") for cls in accepted)


def type_mismatch_error(func_name: str, position: int, expected: str, actual: Any,
                        span=None) -> WanderTypeError:
  """
  Generate type mismatch error

  Args:
    func_name: Qualified native function name
    position: 1-based argument position
    expected: Expected variant names
    actual: Actual value
    span: Location of the saturating application

  Returns:
    WanderTypeError with formatted message
  """
  return WanderTypeError(
      WanderTypeError.ARGUMENT_TYPE,
      f"{func_name} requires {expected} for argument {position}, got {type_name(actual)}",
      span,
  )


def arity_error(func_name: str, expected: int, got: int) -> NativeFunctionError:
  return NativeFunctionError(f"{func_name} requires {expected} arguments, got {got}")


def not_applicable_error(value: Any, span=None) -> WanderTypeError:
  return WanderTypeError(
      WanderTypeError.NOT_APPLICABLE,
      f"{type_name(value)} is not a function and cannot be applied",
      span
  )


# ==================== VALIDATION UTILITIES ====================

def validate_function_args(native: NativeFunction, args: Sequence[Any], span=None) -> None:
  """
  Validate a saturated native call against the native's declaration

  Raises:
    NativeFunctionError on an arity mismatch
    WanderTypeError when an argument is outside its accepted variants
  """
  if len(args) != native.arity:
    raise arity_error(native.name, native.arity, len(args))

  if native.parameters is None:
    return

  for i, (arg, accepted) in enumerate(zip(args, native.parameters)):
    if accepted is not None and not isinstance(arg, accepted):
      raise type_mismatch_error(native.name, i + 1, describe_accepted(accepted), arg, span)


def validate_native_result(native: NativeFunction, result: Any) -> Any:
  """Host behaviours must return Wander values; host data travels as HostValue"""
  if not is_value(result):
    raise NativeFunctionError(
        f"{native.name} returned {type(result).__name__}, which is not a Wander value")
  if isinstance(result, NumberValue) and not math.isfinite(result.value):
    raise NativeFunctionError(f"{native.name} returned a non-finite Number: {result.value}")
  return result
