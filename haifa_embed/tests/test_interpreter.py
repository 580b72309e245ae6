import math
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed import LuaRuntimeError


def test_arithmetic_follows_integer_and_float_rules(run):
    src = "return 7 // 2, 7 / 2, 2 ^ 10, 7 % -3, -7 // 2, 1 << 4, 3 | 5, 7.5 // 2"
    assert run(src) == [3, 3.5, 1024.0, -2, -4, 16, 7, 3.0]


def test_integer_division_by_zero_is_an_error(run):
    src = "return pcall(function() return 1 // 0 end)"
    assert run(src) == [False, "test:1: attempt to perform 'n//0'"]


def test_float_division_by_zero(run):
    result = run("return 1 / 0, -1 // 0.0")
    assert result[0] == math.inf
    assert result[1] == -math.inf


def test_string_coercion_and_concat(run):
    src = 'return "a" .. 1 .. 2.0, "10" + 5, #"hello"'
    assert run(src) == ["a12.0", 15, 5]


def test_closures_capture_upvalues(run):
    src = """
    local function counter()
      local n = 0
      return function()
        n = n + 1
        return n
      end
    end
    local c = counter()
    c()
    c()
    return c()
    """
    assert run(src) == [3]


def test_shadowing_local_does_not_leak_into_earlier_closure(run):
    src = """
    local x = 1
    local function get() return x end
    local x = 2
    return get(), x
    """
    assert run(src) == [1, 2]


def test_loops(run):
    src = """
    local sum = 0
    for i = 1, 10, 3 do sum = sum + i end
    local parts = {}
    for i, v in ipairs({"a", "b", "c"}) do parts[#parts + 1] = i .. v end
    local n = 0
    while true do
      n = n + 1
      if n >= 5 then break end
    end
    local m = 0
    repeat local done = m >= 2; m = m + 1 until done
    return sum, table.concat(parts, ","), n, m
    """
    assert run(src) == [22, "1a,2b,3c", 5, 3]


def test_float_for_loop(run):
    assert run("local t = {} for x = 0, 1, 0.5 do t[#t + 1] = x end return #t, t[3]") == [3, 1.0]


def test_varargs_and_select(run):
    src = """
    local function f(...)
      return select('#', ...), ...
    end
    return f(1, nil, 3)
    """
    assert run(src) == [3, 1, None, 3]


def test_chunk_receives_arguments(run):
    assert run("local a, b = ... return a * b", 6, 7) == [42]


def test_multiple_results_expand_in_last_position(run):
    src = """
    local function two() return 1, 2 end
    local t = {two(), two()}
    return #t, (two())
    """
    assert run(src) == [3, 1]


def test_metatable_operators(run):
    src = """
    local V = {}
    V.__index = V
    V.__add = function(a, b) return setmetatable({x = a.x + b.x}, V) end
    V.__eq = function(a, b) return a.x == b.x end
    V.__lt = function(a, b) return a.x < b.x end
    V.__tostring = function(v) return "V(" .. v.x .. ")" end
    V.__len = function(v) return v.x end
    V.__call = function(v, y) return v.x + y end
    function V.get(v) return v.x end
    local a = setmetatable({x = 1}, V)
    local b = setmetatable({x = 2}, V)
    local c = a + b
    return c:get(), tostring(c), a == setmetatable({x = 1}, V), a < b, #b, c(10)
    """
    assert run(src) == [3, "V(3)", True, True, 2, 13]


def test_index_and_newindex_functions(run):
    src = """
    local log = {}
    local proxy = setmetatable({}, {
      __index = function(t, k) return k .. "!" end,
      __newindex = function(t, k, v) log[#log + 1] = k .. "=" .. v end,
    })
    proxy.a = 1
    return proxy.hello, log[1], rawget(proxy, "a")
    """
    assert run(src) == ["hello!", "a=1", None]


def test_protected_metatable(run):
    src = """
    local t = setmetatable({}, {__metatable = "locked"})
    local ok, err = pcall(setmetatable, t, {})
    return getmetatable(t), ok, err
    """
    assert run(src) == ["locked", False, "cannot change a protected metatable"]


def test_error_messages_carry_position_and_variable_name(run):
    src = """
    local ok, err = pcall(function()
      local t = nil
      return t.x
    end)
    return err
    """
    assert run(src) == ["test:4: attempt to index a nil value (local 't')"]


def test_arithmetic_error_names_global(run):
    src = "return pcall(function() return 1 + missing end)"
    assert run(src) == [False, "test:1: attempt to perform arithmetic on a nil value (global 'missing')"]


def test_call_error_names_method(run):
    src = "local t = {} return pcall(function() return t:nope() end)"
    assert run(src) == [False, "test:1: attempt to call a nil value (method 'nope')"]


def test_compare_error(run):
    src = "return pcall(function() return {} < 1 end)"
    assert run(src) == [False, "test:1: attempt to compare table with number"]


def test_error_levels_and_non_string_values(run):
    src = """
    local ok1, e1 = pcall(function() error("boom") end)
    local ok2, e2 = pcall(function() error("plain", 0) end)
    local ok3, e3 = pcall(error, {code = 42})
    return e1, e2, e3.code
    """
    assert run(src) == ["test:2: boom", "plain", 42]


def test_xpcall_runs_handler(run):
    src = """
    return xpcall(function() error("bad", 0) end, function(m) return "handled: " .. m end)
    """
    assert run(src) == [False, "handled: bad"]


def test_bad_argument_message(run):
    src = "return pcall(function() return string.rep() end)"
    ok, message = run(src)
    assert ok is False
    assert message.startswith("test:1: bad argument #1 to 'rep'")


def test_stack_overflow_is_catchable(run):
    src = """
    local function loop(n) return 1 + loop(n + 1) end
    local ok, err = pcall(loop, 1)
    return ok, err
    """
    ok, err = run(src)
    assert ok is False
    assert err.endswith("stack overflow")


def test_stdlib_string_table_math(run):
    src = """
    local t = {5, 2, 8, 1}
    table.sort(t)
    table.insert(t, 1, 0)
    local removed = table.remove(t)
    return table.concat(t, " "), removed, ("abc"):upper(), string.format("%d-%s-%.2f", 7, "x", 1.5),
      math.max(3, 9, 4), math.floor(3.7), math.type(1), math.type(1.0), string.find("hello", "ll")
    """
    assert run(src) == ["0 1 2 5", 8, "ABC", "7-x-1.50", 9, 3, "integer", "float", 3, 4]


def test_print_collects_output(vm):
    vm.eval('print("a", 1, nil, true)')
    assert vm.output == ["a\t1\tnil\ttrue"]


def test_load_compiles_chunks(run):
    src = """
    local f = load("return 1 + ...")
    local g, err = load("return +", "=bad")
    return f(41), g, err
    """
    assert run(src) == [42, None, "bad:1: unexpected symbol near '+'"]


def test_uncaught_error_reaches_host(vm, errors):
    with pytest.raises(LuaRuntimeError) as excinfo:
        vm.eval("local x = 1\nerror('failed')", chunkname="=script")
    assert excinfo.value.message == "script:2: failed"
    assert errors == ["script:2: failed"]
    assert vm.state.get_top() == 0


def test_syntax_error_reaches_host(vm, errors):
    with pytest.raises(LuaRuntimeError, match="unexpected symbol"):
        vm.eval("x = = 1", chunkname="=broken")
    assert errors and errors[0].startswith("broken:1:")
    assert vm.state.get_top() == 0


def test_integer_results_wrap_to_64_bits(run):
    src = """
    local min = math.mininteger
    return min // -1 == min, math.abs(min) == min, math.type(min // -1), math.fmod(-7, 3), math.fmod(min, -1)
    """
    assert run(src) == [True, True, "integer", -1, 0]


def test_format_char_out_of_range_is_a_lua_error(vm, errors):
    ok, message = vm.eval('return pcall(string.format, "%c", 1e9)')
    assert ok.value is False
    assert message.value.endswith("bad argument #2 to 'format' (value out of range)")
    with pytest.raises(LuaRuntimeError, match="value out of range"):
        vm.eval('return string.format("%c", 1e9)')
    assert vm.state.get_top() == 0


@pytest.mark.parametrize(
    "call, message",
    [
        ('string.format("%c", 1e30)', "number has no integer representation"),
        ('string.format("%100d", 1)', "invalid conversion '%100d' to 'format'"),
        ('string.format("%5-d", 1)', "invalid conversion '%5-d' to 'format'"),
        ('string.rep("x", 1e12)', "resulting string too large"),
        ("table.unpack({}, 1, 1e8)", "too many results to unpack"),
    ],
)
def test_oversized_library_arguments_fail_inside_pcall(run, call, message):
    ok, error = run(f"return pcall(function() return {call} end)")
    assert ok is False
    assert error.endswith(message)


def test_format_hex_of_negative_integer_is_unsigned(run):
    assert run('return string.format("%x %5.1f %c", -1, 2.25, 65)') == ["ffffffffffffffff   2.2 A"]
