import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed import (
    NIL,
    NONE,
    Boolean,
    Function,
    Kind,
    LightUserdata,
    Number,
    String,
    Table,
    Thread,
    TypeGuardError,
    VirtualMachine,
    to_value,
)
from haifa_embed.runtime import LuaType


@pytest.mark.parametrize(
    "value, lua_type",
    [
        (String("text"), LuaType.STRING),
        (Number(3), LuaType.NUMBER),
        (Number(2.5), LuaType.NUMBER),
        (Boolean(True), LuaType.BOOLEAN),
        (NIL, LuaType.NIL),
    ],
)
def test_scalars_survive_a_stack_round_trip(vm, value, lua_type):
    vm.bridge.push(value)
    assert vm.state.type(-1) == lua_type
    assert vm.bridge.materialize(-1) == value
    assert vm.state.get_top() == 0


def test_integer_and_float_stay_distinct(vm):
    vm.bridge.push(Number(2.0))
    vm.bridge.push(Number(2))
    assert vm.state.is_integer(-1)
    assert not vm.state.is_integer(-2)
    vm.state.pop(2)


def test_host_scalars_are_coerced():
    assert to_value("a") == String("a")
    assert to_value(1) == Number(1)
    assert to_value(True) == Boolean(True)
    assert to_value(None) is NIL
    with pytest.raises(TypeError):
        to_value(object())


def test_materialize_above_top_is_no_value(vm):
    vm.state.push_integer(1)
    assert vm.bridge.materialize(5) is NONE
    assert vm.state.get_top() == 1
    vm.state.pop()


def test_materialize_pulls_slot_from_the_middle(vm):
    for value in ("a", "b", "c"):
        vm.state.push_string(value)
    assert vm.bridge.materialize(2) == String("b")
    assert vm.state.stack == ["a", "c"]
    vm.state.set_top(0)


def test_no_value_pushes_nil(vm):
    vm.bridge.push(NONE)
    assert vm.state.type(-1) == LuaType.NIL
    vm.state.pop()


class Marker:
    pass


def _marker_userdata(vm):
    vm.create_custom_type(Marker, lambda lib: None)
    return vm.create_userdata(Marker())


@pytest.mark.parametrize(
    "make",
    [
        lambda vm: vm.create_table(),
        lambda vm: vm.create_function(lambda args: None),
        lambda vm: vm.eval("return function() end")[0],
        _marker_userdata,
        lambda vm: vm.create_light_userdata(vm),
        lambda vm: vm.main_thread,
    ],
    ids=["table", "host-function", "lua-function", "userdata", "light-userdata", "thread"],
)
def test_reference_values_survive_a_stack_round_trip(vm, make):
    original = make(vm)
    vm.bridge.push(original)
    restored = vm.bridge.materialize(-1)
    assert type(restored) is type(original)
    assert restored == original
    assert restored.handle != original.handle
    assert hash(restored) == hash(original)
    assert vm.state.get_top() == 0


def test_distinct_tables_are_not_equal(vm):
    first, second = vm.create_table(), vm.create_table()
    assert first != second
    assert first == first
    assert vm.state.get_top() == 0


def test_reference_kinds_materialize_to_handles(vm):
    results = vm.eval(
        "return {}, function() end, print, coroutine_thread, ...",
        [vm.main_thread, vm.create_light_userdata(vm)],
    )
    table, function, builtin, missing, thread, light = results
    assert isinstance(table, Table)
    assert isinstance(function, Function)
    assert isinstance(builtin, Function)
    assert missing is NIL
    assert isinstance(thread, Thread)
    assert isinstance(light, LightUserdata)
    assert light.pointer is vm
    assert vm.state.get_top() == 0


def test_materialize_as_checks_kind(vm):
    vm.state.push_string("not a table")
    with pytest.raises(TypeGuardError) as excinfo:
        vm.bridge.materialize_as(-1, Table)
    assert excinfo.value.kind is Kind.TABLE
    assert str(excinfo.value) == "expected Table"
    assert vm.state.get_top() == 0


def test_unwrap_scalars(vm):
    assert String.unwrap(vm, String("x")).value == "x"
    with pytest.raises(TypeGuardError, match="expected Number"):
        Number.unwrap(vm, String("x"))


def test_number_conversions():
    assert Number(4.0).is_integer
    assert Number(4.0).to_integer() == 4
    assert Number(3).to_float() == 3.0
    with pytest.raises(ValueError):
        Number(4.5).to_integer()


def test_values_from_another_vm_are_rejected(vm):
    with VirtualMachine() as other:
        table = other.create_table()
        with pytest.raises(ValueError):
            vm.bridge.push(table)
    assert vm.state.get_top() == 0


def test_pop_values_keeps_order(vm):
    for value in (1, 2, 3):
        vm.state.push_integer(value)
    assert vm.bridge.pop_values(3) == [Number(1), Number(2), Number(3)]
    assert vm.state.get_top() == 0
