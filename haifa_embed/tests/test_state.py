import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed.runtime import LuaError, LuaState, LuaTable, LuaType, REGISTRY_INDEX, Status
from haifa_embed.runtime.state import REFNIL, short_source


def test_push_and_inspect_slots():
    state = LuaState()
    state.push_integer(7)
    state.push_number(2.5)
    state.push_string("hi")
    state.push_boolean(False)
    state.push_nil()
    assert state.get_top() == 5
    assert [state.type(i) for i in range(1, 6)] == [
        LuaType.NUMBER,
        LuaType.NUMBER,
        LuaType.STRING,
        LuaType.BOOLEAN,
        LuaType.NIL,
    ]
    assert state.type(6) == LuaType.NONE
    assert state.is_integer(1) and not state.is_integer(2)
    assert state.to_string(1) == "7"
    assert state.to_number(3) is None
    assert state.to_boolean(-1) is False


def test_rotate_insert_remove():
    state = LuaState()
    for value in (1, 2, 3, 4):
        state.push_integer(value)
    state.insert(1)
    assert state.stack == [4, 1, 2, 3]
    state.remove(2)
    assert state.stack == [4, 2, 3]
    state.rotate(1, -1)
    assert state.stack == [2, 3, 4]
    state.push_integer(9)
    state.replace(1)
    assert state.stack == [9, 3, 4]
    state.set_top(1)
    assert state.stack == [9]


def test_table_access_and_next():
    state = LuaState()
    state.new_table()
    state.push_string("value")
    state.set_field(-2, "key")
    state.push_integer(10)
    state.raw_set_i(-2, 1)
    state.get_field(-1, "key")
    assert state.to_string(-1) == "value"
    state.pop()

    seen = []
    state.push_nil()
    while state.next(-2):
        seen.append((state.to_raw(-2), state.to_raw(-1)))
        state.pop()
    assert seen == [(1, 10), ("key", "value")]
    assert state.get_top() == 1


def test_ref_reuses_released_slots():
    state = LuaState()
    state.new_table()
    first = state.ref(REGISTRY_INDEX)
    state.push_string("x")
    second = state.ref(REGISTRY_INDEX)
    assert second == first + 1
    state.unref(REGISTRY_INDEX, first)
    state.push_string("y")
    assert state.ref(REGISTRY_INDEX) == first
    state.push_nil()
    assert state.ref(REGISTRY_INDEX) == REFNIL
    assert state.get_top() == 0


def test_pcall_restores_stack_on_error():
    state = LuaState()
    state.open_libs()
    state.push_integer(1)
    assert state.load_string("error('nope', 0)") == Status.OK
    assert state.pcall(0, 0) == Status.ERRRUN
    assert state.to_string(-1) == "nope"
    state.pop()
    assert state.get_top() == 1


def test_pcall_adjusts_result_count():
    state = LuaState()
    assert state.load_string("return 1, 2, 3") == Status.OK
    assert state.pcall(0, 2) == Status.OK
    assert state.stack == [1, 2]


def test_builtin_uses_its_own_frame():
    state = LuaState()

    def add(s):
        total = s.to_number(1) + s.to_number(2)
        s.push_integer(total)
        return 1

    state.push_integer(100)
    state.push_builtin(add, "add")
    state.push_integer(2)
    state.push_integer(3)
    state.call(2, 1)
    assert state.stack == [100, 5]


def test_error_raises_top_value():
    state = LuaState()
    state.push_string("bad")
    with pytest.raises(LuaError) as excinfo:
        state.error()
    assert excinfo.value.value == "bad"


def test_load_string_reports_syntax_errors():
    state = LuaState()
    assert state.load_string("local = 1", "=chunk") == Status.ERRSYNTAX
    assert state.to_string(-1).startswith("chunk:1:")


def test_load_file(tmp_path):
    state = LuaState()
    script = tmp_path / "script.lua"
    script.write_text("return 40 + 2", encoding="utf-8")
    assert state.load_file(script) == Status.OK
    state.call(0, 1)
    assert state.stack == [42]
    assert state.load_file(tmp_path / "missing.lua") == Status.ERRFILE


def test_named_metatables_and_userdata():
    state = LuaState()
    assert state.new_metatable("Point") is True
    state.pop()
    assert state.new_metatable("Point") is False
    state.pop()
    box = state.new_userdata({"x": 1})
    state.set_metatable_by_name("Point")
    assert state.test_userdata(-1, "Point") is box
    assert state.test_userdata(-1, "Other") is None
    assert state.to_userdata(-1).payload == {"x": 1}


def test_short_source():
    assert short_source("=stdin") == "stdin"
    assert short_source("@file.lua") == "file.lua"
    assert short_source("return 1") == '[string "return 1"]'
    assert short_source("x = 1\ny = 2") == '[string "x = 1..."]'


def test_globals_table_is_shared():
    state = LuaState()
    state.push_integer(3)
    state.set_global("answer")
    assert isinstance(state.globals, LuaTable)
    assert state.globals.raw_get("answer") == 3
    assert state.get_global("answer") == LuaType.NUMBER
