"""
Wander Interpreter
Evaluates the AST against a lexical environment and a module registry.
Environments and values are immutable; closures share the frames they capture
and native functions curry until their arity is satisfied
"""

import logging
from typing import Any, Dict, Optional

from error_handling import (
  DuplicateBinding,
  NativeFunctionError,
  RecursionLimit,
  UnboundIdentifier,
  UnboundModuleMember,
  WanderError,
  WanderRuntimeError,
  WanderTypeError,
)
from parsing import (
  Application,
  Conditional,
  Identifier,
  Lambda,
  Let,
  ListExpression,
  Literal,
  Pipe,
  QualifiedIdentifier,
  RecordExpression,
  SetExpression,
  TestBlock,
  TupleExpression,
  create_parser,
)
from registry import ModuleRegistry
from stdlib import common
from utilities import not_applicable_error, validate_function_args, validate_native_result
from values import (
  BooleanValue,
  Closure,
  Environment,
  ListValue,
  NativeFunction,
  PartialApplication,
  RecordValue,
  TupleValue,
  default_environment,
  env_bind_value,
  env_extend,
  env_lookup_value,
  is_function,
  make_runtime_env,
  make_set,
  type_name,
)

logger = logging.getLogger(__name__)

# No limit of its own; the host call stack bounds nesting
DEFAULT_MAX_DEPTH = None


def make_execution_context(max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
                           debug: bool = False) -> Dict:
  """Per-evaluation settings and the current nesting depth; a max_depth of None is unlimited"""
  return {
      'depth': 0,
      'max_depth': max_depth,
      'debug': debug,
  }


# ============================================================================
# ENTRY POINT
# ============================================================================

def evaluate(node: Any, environment: Optional[Environment] = None,
             registry: Optional[ModuleRegistry] = None,
             context: Optional[Dict] = None) -> Any:
  """
  Evaluate one AST root to a value.
  A missing environment is the empty root frame, a missing registry has no members.
  """
  if environment is None:
    environment = default_environment()
  if registry is None:
    registry = ModuleRegistry()
  if context is None:
    context = make_execution_context()

  try:
    return eval_ast(node, environment, registry, context)
  except RecursionError:
    raise RecursionLimit(span=getattr(node, 'span', None)) from None


# ============================================================================
# EVALUATION FUNCTIONS
# ============================================================================

def eval_ast(node: Any, env: Environment, registry: ModuleRegistry, context: Dict) -> Any:
  """Evaluate an AST node in env; dispatches on the node type"""
  context['depth'] += 1
  try:
    if context['max_depth'] is not None and context['depth'] > context['max_depth']:
      raise RecursionLimit(context['max_depth'], getattr(node, 'span', None))

    if context['debug']:
      logger.debug("Evaluating %s at depth %d", type(node).__name__, context['depth'])

    if isinstance(node, Literal):
      return eval_literal(node, env, registry, context)
    elif isinstance(node, Identifier):
      return eval_identifier(node, env, registry, context)
    elif isinstance(node, QualifiedIdentifier):
      return eval_qualified_identifier(node, env, registry, context)
    elif isinstance(node, Lambda):
      return eval_lambda(node, env, registry, context)
    elif isinstance(node, Application):
      return eval_application(node, env, registry, context)
    elif isinstance(node, Pipe):
      return eval_pipe(node, env, registry, context)
    elif isinstance(node, Let):
      return eval_let(node, env, registry, context)
    elif isinstance(node, Conditional):
      return eval_conditional(node, env, registry, context)
    elif isinstance(node, ListExpression):
      return eval_list(node, env, registry, context)
    elif isinstance(node, RecordExpression):
      return eval_record(node, env, registry, context)
    elif isinstance(node, TupleExpression):
      return eval_tuple(node, env, registry, context)
    elif isinstance(node, SetExpression):
      return eval_set(node, env, registry, context)
    elif isinstance(node, TestBlock):
      raise WanderRuntimeError(
          f"Test block '{node.name}' can only be run by the test harness", node.span)

    raise WanderRuntimeError(f"Cannot evaluate {type(node).__name__}",
                             getattr(node, 'span', None))
  finally:
    context['depth'] -= 1


def eval_literal(node: Literal, env: Environment, registry: ModuleRegistry, context: Dict) -> Any:
  return node.value


def eval_identifier(node: Identifier, env: Environment, registry: ModuleRegistry,
                    context: Dict) -> Any:
  """Resolve an identifier through the scope chain"""
  value = env_lookup_value(env, node.name)
  if value is None:
    raise UnboundIdentifier(node.name, node.span)
  return value


def eval_qualified_identifier(node: QualifiedIdentifier, env: Environment,
                              registry: ModuleRegistry, context: Dict) -> Any:
  """Resolve Namespace.member in the registry; local bindings never shadow it"""
  native = registry.resolve(node.namespace, node.member)
  if native is None:
    raise UnboundModuleMember(node.namespace, node.member, node.span)
  return native


def eval_lambda(node: Lambda, env: Environment, registry: ModuleRegistry, context: Dict) -> Closure:
  return Closure(node.parameter, node.body, env)


def eval_application(node: Application, env: Environment, registry: ModuleRegistry,
                     context: Dict) -> Any:
  """Evaluate the function, then the argument, then apply"""
  function = eval_ast(node.function, env, registry, context)
  if not is_function(function):
    raise not_applicable_error(function, node.span)

  argument = eval_ast(node.argument, env, registry, context)
  return apply_function(function, argument, registry, context, node.span)


def eval_pipe(node: Pipe, env: Environment, registry: ModuleRegistry, context: Dict) -> Any:
  """Evaluate `left | right` as `right left`, left operand first"""
  argument = eval_ast(node.left, env, registry, context)
  function = eval_ast(node.right, env, registry, context)
  if not is_function(function):
    raise not_applicable_error(function, node.span)

  return apply_function(function, argument, registry, context, node.span)


def eval_let(node: Let, env: Environment, registry: ModuleRegistry, context: Dict) -> Any:
  """
  Evaluate bindings in order in a fresh child frame.
  Each binding sees the ones before it; the body sees all of them.
  """
  seen = set()
  for binding in node.bindings:
    if binding.name in seen:
      raise DuplicateBinding(binding.name, binding.span)
    seen.add(binding.name)

  frame = make_runtime_env(env)
  for binding in node.bindings:
    value = eval_ast(binding.expression, frame, registry, context)
    frame = env_bind_value(frame, binding.name, value)

  return eval_ast(node.body, frame, registry, context)


def eval_conditional(node: Conditional, env: Environment, registry: ModuleRegistry,
                     context: Dict) -> Any:
  condition = eval_ast(node.condition, env, registry, context)
  if not isinstance(condition, BooleanValue):
    raise WanderTypeError(
        WanderTypeError.NOT_A_BOOLEAN,
        f"if condition must be a Boolean, got {type_name(condition)}",
        node.condition.span)

  branch = node.then_branch if condition.value else node.else_branch
  return eval_ast(branch, env, registry, context)


def eval_list(node: ListExpression, env: Environment, registry: ModuleRegistry,
              context: Dict) -> ListValue:
  return ListValue(tuple(eval_ast(element, env, registry, context) for element in node.elements))


def eval_record(node: RecordExpression, env: Environment, registry: ModuleRegistry,
                context: Dict) -> RecordValue:
  fields = []
  for name, expression in node.fields:
    fields.append((name, eval_ast(expression, env, registry, context)))
  return RecordValue(tuple(fields))


def eval_tuple(node: TupleExpression, env: Environment, registry: ModuleRegistry,
               context: Dict) -> TupleValue:
  return TupleValue(tuple(eval_ast(element, env, registry, context) for element in node.elements))


def eval_set(node: SetExpression, env: Environment, registry: ModuleRegistry, context: Dict) -> Any:
  """Evaluate elements in order, keeping the first of any equal elements"""
  items = [eval_ast(element, env, registry, context) for element in node.elements]
  return make_set(items, node.span)


# ============================================================================
# FUNCTION APPLICATION
# ============================================================================

def apply_function(function: Any, argument: Any, registry: ModuleRegistry, context: Dict,
                   span=None) -> Any:
  """Apply a function-like value to one argument"""
  if isinstance(function, Closure):
    # The parameter shadows outer bindings for this call only
    call_env = env_extend(function.environment, function.parameter, argument)
    return eval_ast(function.body, call_env, registry, context)
  elif isinstance(function, NativeFunction):
    return call_native(function, (argument,), context, span)
  elif isinstance(function, PartialApplication):
    return call_native(function.callee, function.arguments + (argument,), context, span)

  raise not_applicable_error(function, span)


def call_native(native: NativeFunction, arguments: tuple, context: Dict, span=None) -> Any:
  """Accumulate arguments until the native's arity is met, then run it"""
  if len(arguments) < native.arity:
    return PartialApplication(native, arguments)

  validate_function_args(native, arguments, span)

  if context['debug']:
    logger.debug("Calling native %s with %d arguments", native.name, len(arguments))

  try:
    result = native.behavior(*arguments)
  except (WanderError, RecursionError):
    raise
  except Exception as e:
    raise NativeFunctionError(f"{native.name} failed: {e}", span) from e

  return validate_native_result(native, result)


# ============================================================================
# INTERPRETER
# ============================================================================

class WanderInterpreter:
  """A parser, a registry and evaluation settings bundled for hosts"""

  def __init__(self, registry: ModuleRegistry, max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
               debug: bool = False):
    self.registry = registry
    self.max_depth = max_depth
    self.debug = debug
    self.parser = create_parser(debug)

  def make_context(self) -> Dict:
    return make_execution_context(self.max_depth, self.debug)

  def evaluate(self, node: Any, environment: Optional[Environment] = None) -> Any:
    return evaluate(node, environment, self.registry, self.make_context())

  def run(self, source: str, filename: str = "<input>",
          environment: Optional[Environment] = None) -> Any:
    """Parse and evaluate a single expression"""
    return self.evaluate(self.parser.parse_string(source, filename), environment)

  def run_file(self, filepath: str) -> Any:
    return self.evaluate(self.parser.parse_file(filepath))


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(registry: Optional[ModuleRegistry] = None,
                       max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
                       debug: bool = False) -> WanderInterpreter:
  """Factory function returning an interpreter; defaults to the common prelude"""
  if registry is None:
    registry = common()
  return WanderInterpreter(registry, max_depth=max_depth, debug=debug)


def create_debug_interpreter(registry: Optional[ModuleRegistry] = None) -> WanderInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(registry, debug=True)
