import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed import NIL, LuaRuntimeError, Number, String, Table, TypeGuardError


def test_get_and_set_round_trip(vm):
    table = vm.create_table()
    table["name"] = "haifa"
    table[1] = 10
    table["name"] = "embed"
    assert table["name"] == String("embed")
    assert table[1] == Number(10)
    assert table["missing"] is NIL
    assert vm.state.get_top() == 0


def test_assigning_nil_removes_key(vm):
    table = vm.create_table_from({"a": 1, "b": 2})
    table["a"] = None
    assert table["a"] is NIL
    assert table.keys() == [String("b")]


def test_changes_made_by_lua_are_visible(vm):
    table = vm.create_table()
    vm.globals["shared"] = table
    vm.eval("shared.count = 41 shared.count = shared.count + 1")
    assert table["count"] == Number(42)


def test_keys_returns_each_key_once(vm):
    table = vm.create_table_from({"x": 1, "y": 2, 3: "three", 1: "one"})
    keys = table.keys()
    assert len(keys) == 4
    assert set(keys) == {String("x"), String("y"), Number(1), Number(3)}
    assert vm.state.get_top() == 0


def test_keys_order_array_part_first(vm):
    (table,) = vm.eval("return {10, 20, x = 1, y = 2}")
    assert list(table) == [Number(1), Number(2), String("x"), String("y")]


def test_as_sequence(vm):
    assert vm.create_table_from({1: "a", 2: "b", 3: "c"}).as_sequence() == [String("a"), String("b"), String("c")]
    assert vm.create_table_from({1: "a", 3: "c"}).as_sequence() == []
    assert vm.create_table_from({}).as_sequence() == []
    assert vm.create_table_from({0: "z", 1: "a"}).as_sequence() == []


def test_as_sequence_filters_by_value_type(vm):
    table = vm.create_table_from(["a", "b"])
    assert table.as_sequence(String) == [String("a"), String("b")]
    assert table.as_sequence(Number) == []


def test_typed_projections(vm):
    table = vm.create_table_from({"a": 1, "b": "two", 5: 3})
    assert table.as_dictionary(String, Number) == {String("a"): Number(1)}
    assert sorted(table.as_tuple_list(value_type=Number), key=repr) == sorted(
        [(String("a"), Number(1)), (Number(5), Number(3))], key=repr
    )


def test_nested_containers(vm):
    table = vm.create_table_from({"list": [1, 2, 3], "inner": {"k": "v"}})
    assert len(table["list"]) == 3
    assert table["inner"]["k"] == String("v")


def test_become_metatable_for(vm):
    meta = vm.create_table()
    meta["__index"] = vm.create_table_from({"greeting": "hello"})
    target = vm.create_table()
    meta.become_metatable_for(target)
    assert target["greeting"] == String("hello")
    vm.globals["target"] = target
    assert vm.eval("return target.greeting") == [String("hello")]


def test_metamethod_errors_surface_as_runtime_errors(vm, errors):
    (table,) = vm.eval("return setmetatable({}, {__index = function() error('no such key', 0) end})")
    with pytest.raises(LuaRuntimeError, match="no such key"):
        table["anything"]
    assert errors == ["no such key"]
    assert vm.state.get_top() == 0


def test_nil_key_is_rejected(vm):
    table = vm.create_table()
    with pytest.raises(LuaRuntimeError, match="table index is nil"):
        table[None] = 1
    assert vm.state.get_top() == 0


def test_table_handles_compare_by_identity(vm):
    (first, second) = vm.eval("local t = {} return t, t")
    assert first == second
    assert hash(first) == hash(second)
    assert first != vm.create_table()


def test_empty_table_is_truthy_and_reprs(vm):
    table = vm.create_table()
    assert table
    assert len(table) == 0
    assert repr(table) == "<empty Table>"
    table["a"] = 1
    assert repr(table) == "String(value='a'): Number(value=1)"


def test_unwrap_wrong_kind(vm):
    with pytest.raises(TypeGuardError):
        Table.unwrap(vm, Number(1))
