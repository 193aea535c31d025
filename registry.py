"""
Module registry for host-provided native functions
A flat mapping from (namespace, member) to NativeFunction, populated by the
host before evaluation and read-only once sealed
"""

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from error_handling import RegistryError
from values import NativeFunction

logger = logging.getLogger(__name__)

NAMESPACE_PATTERN = re.compile(r'[A-Z][A-Za-z0-9_]*(?:\.[A-Z][A-Za-z0-9_]*)*')
MEMBER_PATTERN = re.compile(r'[a-z_][A-Za-z0-9_]*\??')


class ModuleRegistry:
  """Native functions addressed as Namespace.member"""

  def __init__(self):
    self._members: Dict[Tuple[str, str], NativeFunction] = {}
    self._sealed = False

  @property
  def sealed(self) -> bool:
    return self._sealed

  def seal(self) -> 'ModuleRegistry':
    """Forbid further registration; returns self for chaining"""
    self._sealed = True
    logger.debug("Module registry sealed with %d members", len(self._members))
    return self

  def register(self, namespace: str, member: str, arity: int, behavior: Callable[..., Any],
               parameters: Optional[Sequence[Optional[Iterable[type]]]] = None,
               doc: str = "") -> NativeFunction:
    """Register a host behaviour taking `arity` Wander values

    `parameters` optionally lists, per argument, the value classes the
    behaviour accepts; None in a position accepts any value.
    """
    if self._sealed:
      raise RegistryError(f"Cannot register {namespace}.{member}: registry is sealed")
    if not NAMESPACE_PATTERN.fullmatch(namespace or ""):
      raise RegistryError(f"Invalid namespace '{namespace}': expected a capitalised name")
    if not MEMBER_PATTERN.fullmatch(member or ""):
      raise RegistryError(f"Invalid member name '{member}': expected a lowercase name")
    if not isinstance(arity, int) or arity < 1:
      raise RegistryError(f"{namespace}.{member} must take at least one argument")
    if not callable(behavior):
      raise RegistryError(f"Behaviour for {namespace}.{member} is not callable")
    if (namespace, member) in self._members:
      raise RegistryError(f"{namespace}.{member} is already registered")

    accepted = None
    if parameters is not None:
      if len(parameters) != arity:
        raise RegistryError(
            f"{namespace}.{member} declares {len(parameters)} parameter types for arity {arity}")
      accepted = tuple(None if p is None else tuple(p) for p in parameters)

    native = NativeFunction(namespace, member, arity, behavior, accepted, doc)
    self._members[(namespace, member)] = native
    logger.debug("Registered native %s/%d", native.name, arity)
    return native

  def resolve(self, namespace: str, member: str) -> Optional[NativeFunction]:
    return self._members.get((namespace, member))

  def names(self) -> List[str]:
    return sorted(f"{namespace}.{member}" for namespace, member in self._members)

  def describe(self, name: str) -> Optional[Dict[str, Any]]:
    """Binding description for host tooling, or None"""
    namespace, _, member = name.rpartition('.')
    native = self.resolve(namespace, member)
    if native is None:
      return None
    parameters = None
    if native.parameters is not None:
      parameters = [None if p is None else [cls.__name__ for cls in p] for p in native.parameters]
    return {
        'name': native.name,
        'arity': native.arity,
        'parameters': parameters,
        'doc': native.doc,
    }

  def __contains__(self, name: str) -> bool:
    namespace, _, member = name.rpartition('.')
    return (namespace, member) in self._members

  def __len__(self) -> int:
    return len(self._members)


def register_native(registry: ModuleRegistry, namespace: str, member: str, arity: int,
                    host_function: Callable[..., Any], **options) -> NativeFunction:
  """Functional form of ModuleRegistry.register"""
  return registry.register(namespace, member, arity, host_function, **options)

