import math
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed import (
    NIL,
    Boolean,
    CustomTypeError,
    LuaRuntimeError,
    Number,
    String,
    TypeGuardError,
    Userdata,
    VirtualMachine,
    VMOptions,
)


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y

    def __eq__(self, other):
        return isinstance(other, Point) and (self.x, self.y) == (other.x, other.y)

    __hash__ = None


class Socket:
    @classmethod
    def lua_type_name(cls):
        return "net.Socket"


def register_point(vm, finalized=None, with_eq=False):
    def setup(lib):
        lib.method("norm", lambda point, args: math.hypot(point.x, point.y))
        lib.method("move", lambda point, args: _move(point, args))
        lib.function("new", lambda args: vm.create_userdata(Point(args[0].value, args[1].value)))
        lib["origin_name"] = "origin"
        if finalized is not None:
            lib.gc = finalized.append
        if with_eq:
            lib.eq = lambda a, b: a.x == b.x

    return vm.create_custom_type(Point, setup)


def _move(point, args):
    point.x += args[0].value
    point.y += args[1].value


def test_unwrap_returns_the_original_payload(vm):
    register_point(vm)
    point = Point(3, 4)
    userdata = vm.create_userdata(point)
    assert isinstance(userdata, Userdata)
    assert userdata.to_custom_type(Point) is point
    assert userdata.to_custom_type(Point) == Point(3, 4)


def test_methods_and_static_functions_from_lua(vm):
    register_point(vm)
    vm.globals["p"] = vm.create_userdata(Point(3, 4))
    src = """
    local n = p:norm()
    p:move(1, 1)
    local q = Point.new(6, 8)
    return n, q:norm(), p.origin_name, tostring(p):sub(1, 7)
    """
    vm.globals["Point"] = vm.registry["Point"]
    assert vm.eval(src) == [Number(5.0), Number(10.0), String("origin"), String("Point: ")]
    assert vm.globals["p"].to_custom_type(Point) == Point(4, 5)


def test_custom_type_name(vm):
    custom = vm.create_custom_type(Socket, lambda lib: None)
    assert custom.type_name == "net.Socket"
    assert vm.registry["net.Socket"] == custom


def test_finalizer_runs_once_for_unreferenced_instance(vm):
    finalized = []
    register_point(vm, finalized)
    userdata = vm.create_userdata(Point(1, 2))
    userdata.release()
    assert vm.collect_garbage() == 1
    assert finalized == [Point(1, 2)]
    assert vm.collect_garbage() == 0
    assert finalized == [Point(1, 2)]


def test_referenced_instances_are_not_finalized(vm):
    finalized = []
    register_point(vm, finalized)
    keep = vm.create_userdata(Point(1, 1))
    vm.globals["kept"] = vm.create_userdata(Point(2, 2))
    assert vm.collect_garbage() == 0
    assert finalized == []
    keep.release()
    vm.eval("kept = nil")
    assert vm.collect_garbage() == 2
    assert sorted(point.x for point in finalized) == [1, 2]


def test_dropped_handle_is_collected(vm):
    finalized = []
    register_point(vm, finalized)
    userdata = vm.create_userdata(Point(5, 5))
    del userdata
    assert vm.collect_garbage() == 1
    assert finalized == [Point(5, 5)]


def test_collectgarbage_from_lua_runs_finalizers(vm):
    finalized = []
    register_point(vm, finalized)
    vm.globals["Point"] = vm.registry["Point"]
    vm.eval("local p = Point.new(7, 7) p = nil collectgarbage()")
    assert finalized == [Point(7, 7)]


def test_close_finalizes_live_userdata():
    finalized = []
    vm = VirtualMachine()
    register_point(vm, finalized)
    vm.globals["a"] = vm.create_userdata(Point(1, 0))
    held = vm.create_userdata(Point(2, 0))
    vm.close()
    assert sorted(point.x for point in finalized) == [1, 2]
    held.release()


def test_finalized_userdata_cannot_be_unwrapped(vm):
    register_point(vm)
    userdata = vm.create_userdata(Point(1, 1))
    userdata.box("Point").deinitialize()
    with pytest.raises(TypeGuardError):
        userdata.to_custom_type(Point)


def test_equality_callback_drives_lua_equality(vm):
    register_point(vm, with_eq=True)
    same_x = [vm.create_userdata(Point(1, 2)), vm.create_userdata(Point(1, 9))]
    different_x = [vm.create_userdata(Point(1, 2)), vm.create_userdata(Point(3, 2))]
    assert vm.eval("local a, b = ... return a == b, a ~= b", same_x) == [Boolean(True), Boolean(False)]
    assert vm.eval("local a, b = ... return a == b", different_x) == [Boolean(False)]


def test_without_equality_callback_identity_decides(vm):
    register_point(vm)
    pair = [vm.create_userdata(Point(1, 2)), vm.create_userdata(Point(1, 2))]
    assert vm.eval("local a, b = ... return a == b, a == a", pair) == [Boolean(False), Boolean(True)]


def test_duplicate_registration_is_rejected(vm):
    register_point(vm)
    with pytest.raises(CustomTypeError):
        register_point(vm)


def test_setup_failure_leaves_type_unregistered(vm, errors):
    def setup(lib):
        lib["partial"] = 1
        raise ValueError("setup broke")

    top = vm.state.get_top()
    with pytest.raises(LuaRuntimeError, match="setup broke"):
        vm.create_custom_type(Point, setup)
    assert errors == ["setup broke"]
    assert vm.state.get_top() == top
    assert vm.registry["Point"] is NIL
    with pytest.raises(CustomTypeError):
        vm.create_userdata(Point(0, 0))
    register_point(vm)
    assert vm.create_userdata(Point(0, 0)).to_custom_type(Point) == Point(0, 0)


def test_wrong_receiver_is_a_type_guard_error(vm):
    register_point(vm)
    vm.create_custom_type(Socket, lambda lib: None)
    socket = vm.create_userdata(Socket())
    with pytest.raises(TypeGuardError):
        socket.to_custom_type(Point)
    with pytest.raises(TypeGuardError):
        Userdata.unwrap(vm, String("nope"))


def test_wrong_receiver_from_lua_is_a_lua_error(vm):
    register_point(vm)
    vm.globals["Point"] = vm.registry["Point"]
    ok, message = vm.eval("return pcall(Point.norm, {})")
    assert ok == Boolean(False)
    assert message == String("expected Userdata")


def test_unregistered_class_cannot_become_userdata(vm):
    with pytest.raises(CustomTypeError):
        vm.create_userdata(object())
    assert vm.create_userdata_maybe(None) is NIL


def test_subclass_instances_use_base_registration(vm):
    class Point3(Point):
        pass

    register_point(vm)
    userdata = vm.create_userdata(Point3(3, 4))
    vm.globals["p"] = userdata
    assert vm.eval("return p:norm()") == [Number(5.0)]


def test_finalizer_errors_are_logged_not_raised(caplog):
    vm = VirtualMachine(options=VMOptions(error_handler=lambda message: None))

    def explode(payload):
        raise RuntimeError("cleanup failed")

    def setup(lib):
        lib.gc = explode

    vm.create_custom_type(Point, setup)
    vm.create_userdata(Point(0, 0)).release()
    with caplog.at_level("WARNING", logger="haifa_embed"):
        assert vm.collect_garbage() == 1
    assert "cleanup failed" in caplog.text
    vm.close()


def test_values_held_mid_expression_survive_collection(vm):
    finalized = []
    register_point(vm, finalized)
    vm.globals["Point"] = vm.registry["Point"]
    src = """
    local function first(a) return a end
    local p, _ = Point.new(3, 4), collectgarbage()
    local t = {Point.new(6, 8), collectgarbage()}
    local q = first(Point.new(5, 12), collectgarbage())
    local k = next({[Point.new(8, 15)] = collectgarbage()})
    local same = Point.new(7, 24) == Point.new(9, 40):move(collectgarbage(), 0)
    return p:norm(), t[1]:norm(), q:norm(), k:norm(), same
    """
    assert vm.eval(src) == [Number(5.0), Number(10.0), Number(13.0), Number(17.0), Boolean(False)]
    assert finalized == []
    assert vm.collect_garbage() == 6
    assert sorted(point.x for point in finalized) == [3, 5, 6, 7, 8, 9]
