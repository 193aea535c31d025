"""
Wander Standard Library
Native functions hosts can install into a module registry.
Every behaviour takes and returns Wander values
"""

from typing import Any

from error_handling import AssertionFailed, WanderRuntimeError
from registry import ModuleRegistry
from utilities import type_mismatch_error
from values import (
  NOTHING,
  BooleanValue,
  ListValue,
  NumberValue,
  make_boolean,
  render_value,
  values_equal,
)


# ============================================================================
# BOOLEAN FUNCTIONS
# ============================================================================

def wander_not(value: BooleanValue) -> BooleanValue:
  """Return the opposite of the boolean value passed"""
  return make_boolean(not value.value)


def wander_and(left: BooleanValue, right: BooleanValue) -> BooleanValue:
  return make_boolean(left.value and right.value)


def wander_or(left: BooleanValue, right: BooleanValue) -> BooleanValue:
  return make_boolean(left.value or right.value)


# ============================================================================
# EQUALITY AND ASSERTIONS
# ============================================================================

def wander_eq(left: Any, right: Any) -> BooleanValue:
  """Structural equality; comparing functions is an error"""
  return make_boolean(values_equal(left, right))


def wander_assert_eq(value: Any, expected: Any) -> Any:
  if not values_equal(value, expected):
    raise AssertionFailed(
        f"Assertion failed: {render_value(value)} is not {render_value(expected)}")
  return NOTHING


# ============================================================================
# LIST FUNCTIONS
# ============================================================================

def wander_at(offset: NumberValue, lst: ListValue) -> Any:
  """Get the value at a given position, counting from zero"""
  index = offset.value
  if not isinstance(index, int):
    raise type_mismatch_error("List.at", 1, "whole Number", offset)
  if index < 0 or index >= len(lst.items):
    raise WanderRuntimeError(
        f"List.at: index {index} is out of range for a list of length {len(lst.items)}")
  return lst.items[index]


def wander_length(lst: ListValue) -> NumberValue:
  return NumberValue(len(lst.items))


# ============================================================================
# BUILTIN REGISTRY
# ============================================================================

BUILTIN_FUNCTIONS = [
    # (namespace, member, behaviour, parameter types, doc)
    ("Bool", "not", wander_not, [(BooleanValue,)],
     "Return the opposite of the boolean value passed."),
    ("Bool", "and", wander_and, [(BooleanValue,), (BooleanValue,)],
     "Check if two boolean values are both true."),
    ("Bool", "or", wander_or, [(BooleanValue,), (BooleanValue,)],
     "Check if either of two boolean values is true."),
    ("Core", "eq", wander_eq, [None, None],
     "Check if two values are equal."),
    ("Assert", "assertEq", wander_assert_eq, [None, None],
     "Assert that two values are equal."),
    ("List", "at", wander_at, [(NumberValue,), (ListValue,)],
     "Get the value at a given location."),
    ("List", "length", wander_length, [(ListValue,)],
     "Count the values in a list."),
]


def install(registry: ModuleRegistry) -> ModuleRegistry:
  """Register every builtin native into an existing registry"""
  for namespace, member, behavior, parameters, doc in BUILTIN_FUNCTIONS:
    registry.register(namespace, member, len(parameters), behavior,
                      parameters=parameters, doc=doc)
  return registry


def common(seal: bool = True) -> ModuleRegistry:
  """A registry holding the common prelude"""
  registry = install(ModuleRegistry())
  if seal:
    registry.seal()
  return registry
