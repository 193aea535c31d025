"""
Wander runtime values and lexical environments
Values and environment frames are immutable once constructed; closures share
the frames they capture instead of copying them
"""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

from error_handling import FunctionComparisonError, WanderTypeError


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class BooleanValue:
  value: bool


@dataclass(frozen=True)
class NumberValue:
  value: Union[int, float]


@dataclass(frozen=True)
class StringValue:
  value: str


@dataclass(frozen=True)
class NothingValue:
  pass


@dataclass(frozen=True)
class ListValue:
  items: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class RecordValue:
  """A record; `fields` keeps declaration order, equality ignores it"""
  fields: Tuple[Tuple[str, Any], ...] = ()

  def as_dict(self) -> Dict[str, Any]:
    return dict(self.fields)


@dataclass(frozen=True)
class TupleValue:
  items: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class SetValue:
  """A set; `items` holds distinct elements in first-occurrence order, built by make_set"""
  items: Tuple[Any, ...] = ()


@dataclass(frozen=True, eq=False)
class HostValue:
  """Opaque host data; only native functions look inside"""
  value: Any


@dataclass(frozen=True, eq=False)
class Closure:
  """A lambda paired with the environment active where it was created"""
  parameter: str
  body: Any
  environment: 'Environment'


@dataclass(frozen=True, eq=False)
class NativeFunction:
  """A host behaviour exposed as Namespace.member"""
  namespace: str
  member: str
  arity: int
  behavior: Callable[..., Any]
  parameters: Optional[Tuple[Optional[Tuple[type, ...]], ...]] = None
  doc: str = ""

  @property
  def name(self) -> str:
    return f"{self.namespace}.{self.member}"


@dataclass(frozen=True, eq=False)
class PartialApplication:
  """A native function holding the arguments supplied so far"""
  callee: NativeFunction
  arguments: Tuple[Any, ...] = ()


NOTHING = NothingValue()
TRUE = BooleanValue(True)
FALSE = BooleanValue(False)

FUNCTION_TYPES = (Closure, NativeFunction, PartialApplication)
VALUE_TYPES = (BooleanValue, NumberValue, StringValue, NothingValue, ListValue,
               RecordValue, TupleValue, SetValue, HostValue) + FUNCTION_TYPES


def make_boolean(value: bool) -> BooleanValue:
  return TRUE if value else FALSE


def make_record(**fields: Any) -> RecordValue:
  return RecordValue(tuple(fields.items()))


def is_value(value: Any) -> bool:
  return isinstance(value, VALUE_TYPES)


def is_function(value: Any) -> bool:
  return isinstance(value, FUNCTION_TYPES)


def is_comparable(value: Any) -> bool:
  """True when structural equality is defined for value and everything inside it"""
  if is_function(value) or isinstance(value, HostValue):
    return False
  if isinstance(value, (ListValue, TupleValue, SetValue)):
    return all(is_comparable(item) for item in value.items)
  if isinstance(value, RecordValue):
    return all(is_comparable(item) for _, item in value.fields)
  return True


def make_set(items, span=None) -> SetValue:
  """Build a set, dropping elements equal to an earlier one"""
  distinct = []
  for item in items:
    if not is_comparable(item):
      raise WanderTypeError(
          WanderTypeError.NOT_COMPARABLE,
          f"Set elements must support equality, got {type_name(item)}", span)
    if not any(values_equal(item, seen) for seen in distinct):
      distinct.append(item)
  return SetValue(tuple(distinct))


def type_name(value: Any) -> str:
  """Name of a value's variant, for diagnostics"""
  names = {
      BooleanValue: "Boolean",
      NumberValue: "Number",
      StringValue: "String",
      NothingValue: "Nothing",
      ListValue: "List",
      RecordValue: "Record",
      TupleValue: "Tuple",
      SetValue: "Set",
      HostValue: "HostValue",
      Closure: "Lambda",
      NativeFunction: "NativeFunction",
      PartialApplication: "PartialApplication",
  }
  return names.get(type(value), type(value).__name__)


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

@dataclass(frozen=True)
class Environment:
  """One frame of the lexical scope chain, innermost first"""
  bindings: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
  parent: Optional['Environment'] = None

  def frames(self) -> Iterator['Environment']:
    env: Optional[Environment] = self
    while env is not None:
      yield env
      env = env.parent


def make_runtime_env(parent: Optional[Environment] = None,
                     bindings: Optional[Mapping[str, Any]] = None) -> Environment:
  """Create a sealed environment frame"""
  return Environment(MappingProxyType(dict(bindings or {})), parent)


def default_environment() -> Environment:
  """The empty root frame"""
  return make_runtime_env()


def env_bind_value(env: Environment, name: str, value: Any) -> Environment:
  """Return a copy of this frame with name bound; the original is untouched"""
  return make_runtime_env(env.parent, {**env.bindings, name: value})


def env_extend(env: Environment, name: str, value: Any) -> Environment:
  """Return a new child frame of env holding a single binding"""
  return make_runtime_env(env, {name: value})


def env_lookup_value(env: Environment, name: str) -> Optional[Any]:
  """Look up a value in the environment chain"""
  for frame in env.frames():
    if name in frame.bindings:
      return frame.bindings[name]
  return None


# ============================================================================
# EQUALITY
# ============================================================================

def values_equal(left: Any, right: Any) -> bool:
  """
  Structural equality; comparing functions raises FunctionComparisonError.
  Host values are never equal, not even to themselves.
  """
  if is_function(left) or is_function(right):
    raise FunctionComparisonError(
        f"Cannot compare {type_name(left)} with {type_name(right)}: functions have no equality")

  if type(left) is not type(right) or isinstance(left, HostValue):
    return False

  if isinstance(left, (ListValue, TupleValue)):
    if len(left.items) != len(right.items):
      return False
    # Every pair is compared so a nested function always raises
    results = [values_equal(a, b) for a, b in zip(left.items, right.items)]
    return all(results)

  if isinstance(left, RecordValue):
    left_fields = left.as_dict()
    right_fields = right.as_dict()
    if set(left_fields) != set(right_fields):
      return False
    results = [values_equal(left_fields[k], right_fields[k]) for k in left_fields]
    return all(results)

  if isinstance(left, SetValue):
    if len(left.items) != len(right.items):
      return False
    return all(any(values_equal(a, b) for b in right.items) for a in left.items)

  return left == right


# ============================================================================
# RENDERING
# ============================================================================

def write_string(value: str) -> str:
  """Quote a string, re-applying the escapes the lexer understands"""
  escaped = (value
             .replace('\\', '\\\\')
             .replace('"', '\\"')
             .replace('\n', '\\n')
             .replace('\r', '\\r')
             .replace('\t', '\\t'))
  return f'"{escaped}"'


def write_number(number) -> str:
  """Positional notation; floats always carry a decimal point"""
  if isinstance(number, int):
    return str(number)
  text = format(Decimal(repr(number)), 'f')
  if '.' not in text:
    text += '.0'
  return text


def render_value(value: Any) -> str:
  """Render a value as Wander source text; functions and host values are opaque"""
  if isinstance(value, BooleanValue):
    return "true" if value.value else "false"
  elif isinstance(value, NumberValue):
    return write_number(value.value)
  elif isinstance(value, StringValue):
    return write_string(value.value)
  elif isinstance(value, NothingValue):
    return "nothing"
  elif isinstance(value, ListValue):
    return "[" + ", ".join(render_value(item) for item in value.items) + "]"
  elif isinstance(value, RecordValue):
    parts = [f"{name} = {render_value(item)}" for name, item in value.fields]
    return "{" + ", ".join(parts) + "}"
  elif isinstance(value, TupleValue):
    return "'(" + ", ".join(render_value(item) for item in value.items) + ")"
  elif isinstance(value, SetValue):
    return "#(" + ", ".join(render_value(item) for item in value.items) + ")"
  elif isinstance(value, HostValue):
    return "[host value]"
  elif isinstance(value, Closure):
    return "[lambda]"
  elif isinstance(value, NativeFunction):
    return "[function]"
  elif isinstance(value, PartialApplication):
    return "[application]"
  return f"<{type(value).__name__}>"
