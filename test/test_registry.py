"""
Module registry and prelude tests for Wander
"""

import pytest
from error_handling import (
  AssertionFailed, FunctionComparisonError, RegistryError, WanderRuntimeError, WanderTypeError
)
from registry import ModuleRegistry, register_native
from values import FALSE, NOTHING, TRUE, BooleanValue, ListValue, NumberValue, StringValue


class TestRegistration:
  """Test registering and resolving natives"""

  def test_register_and_resolve(self, empty_registry):
    native = register_native(empty_registry, "Text", "upper", 1,
                             lambda s: StringValue(s.value.upper()))
    assert empty_registry.resolve("Text", "upper") is native
    assert native.name == "Text.upper"
    assert native.arity == 1
    assert "Text.upper" in empty_registry
    assert len(empty_registry) == 1

  def test_resolve_missing(self, empty_registry):
    assert empty_registry.resolve("Text", "upper") is None

  def test_nested_namespace(self, empty_registry):
    empty_registry.register("Host.Io", "read", 1, lambda path: NOTHING)
    assert empty_registry.resolve("Host.Io", "read") is not None
    assert "Host.Io.read" in empty_registry

  def test_duplicate_registration(self, empty_registry):
    empty_registry.register("Bool", "not", 1, lambda b: b)
    with pytest.raises(RegistryError):
      empty_registry.register("Bool", "not", 1, lambda b: b)

  def test_registration_after_seal(self, empty_registry):
    empty_registry.seal()
    assert empty_registry.sealed
    with pytest.raises(RegistryError):
      empty_registry.register("Bool", "not", 1, lambda b: b)

  @pytest.mark.parametrize("namespace, member", [
      ("bool", "not"),
      ("Bool", "Not"),
      ("", "not"),
      ("Bool", ""),
      ("Bool.", "not"),
  ])
  def test_malformed_names(self, empty_registry, namespace, member):
    with pytest.raises(RegistryError):
      empty_registry.register(namespace, member, 1, lambda b: b)

  def test_arity_must_be_positive(self, empty_registry):
    with pytest.raises(RegistryError):
      empty_registry.register("Core", "answer", 0, lambda: TRUE)

  def test_behavior_must_be_callable(self, empty_registry):
    with pytest.raises(RegistryError):
      empty_registry.register("Core", "answer", 1, TRUE)

  def test_parameter_count_must_match_arity(self, empty_registry):
    with pytest.raises(RegistryError):
      empty_registry.register("Bool", "and", 2, lambda a, b: a, parameters=[(BooleanValue,)])

  def test_names_and_describe(self, registry):
    assert "Bool.not" in registry.names()
    assert registry.names() == sorted(registry.names())
    description = registry.describe("Bool.and")
    assert description['arity'] == 2
    assert description['parameters'] == [['BooleanValue'], ['BooleanValue']]
    assert description['doc']
    assert registry.describe("Bool.xor") is None


class TestPrelude:
  """Test the common prelude natives called directly"""

  def call(self, registry, name, *args):
    namespace, _, member = name.rpartition('.')
    return registry.resolve(namespace, member).behavior(*args)

  def test_prelude_is_sealed(self, registry):
    assert registry.sealed
    assert registry.names() == [
        "Assert.assertEq", "Bool.and", "Bool.not", "Bool.or", "Core.eq",
        "List.at", "List.length",
    ]

  def test_boolean_functions(self, registry):
    assert self.call(registry, "Bool.not", TRUE) == FALSE
    assert self.call(registry, "Bool.and", TRUE, FALSE) == FALSE
    assert self.call(registry, "Bool.or", FALSE, TRUE) == TRUE

  def test_core_eq(self, registry):
    assert self.call(registry, "Core.eq", NumberValue(1), NumberValue(1)) == TRUE
    assert self.call(registry, "Core.eq", NumberValue(1), StringValue("1")) == FALSE
    native = registry.resolve("Bool", "not")
    with pytest.raises(FunctionComparisonError):
      self.call(registry, "Core.eq", native, native)

  def test_assert_eq(self, registry):
    assert self.call(registry, "Assert.assertEq", TRUE, TRUE) == NOTHING
    with pytest.raises(AssertionFailed):
      self.call(registry, "Assert.assertEq", TRUE, FALSE)

  def test_list_functions(self, registry):
    items = ListValue((StringValue("a"), StringValue("b")))
    assert self.call(registry, "List.at", NumberValue(1), items) == StringValue("b")
    assert self.call(registry, "List.length", items) == NumberValue(2)

  def test_list_at_out_of_range(self, registry):
    with pytest.raises(WanderRuntimeError):
      self.call(registry, "List.at", NumberValue(2), ListValue((TRUE,)))
    with pytest.raises(WanderRuntimeError):
      self.call(registry, "List.at", NumberValue(-1), ListValue((TRUE,)))

  def test_list_at_requires_whole_number(self, registry):
    with pytest.raises(WanderTypeError) as exc_info:
      self.call(registry, "List.at", NumberValue(0.5), ListValue((TRUE,)))
    assert exc_info.value.kind == WanderTypeError.ARGUMENT_TYPE
