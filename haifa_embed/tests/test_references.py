import gc
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed import String, VirtualMachine, VMOptions


def test_release_restores_live_count(vm):
    before = vm.references.live_count
    tables = [vm.create_table() for _ in range(5)]
    assert vm.references.live_count == before + 5
    for table in tables:
        table.release()
    assert vm.references.live_count == before


def test_released_handles_are_reused(vm):
    first = vm.create_table()
    handle = first.handle
    first.release()
    second = vm.create_table()
    assert second.handle == handle


def test_double_release_raises(vm):
    table = vm.create_table()
    table.release()
    assert table.released
    with pytest.raises(ReferenceError):
        table.release()


def test_use_after_release_raises(vm):
    table = vm.create_table()
    table.release()
    with pytest.raises(ReferenceError):
        table["x"]
    assert vm.state.get_top() == 0


def test_unchecked_mode_tolerates_double_release():
    with VirtualMachine(options=VMOptions(check_references=False)) as vm:
        table = vm.create_table()
        table.release()
        table.release()


def test_with_block_releases(vm):
    before = vm.references.live_count
    with vm.create_table() as table:
        table["a"] = 1
        assert vm.references.live_count == before + 1
    assert table.released
    assert vm.references.live_count == before


def test_garbage_collected_handles_are_released(vm):
    before = vm.references.live_count
    table = vm.create_table()
    del table
    gc.collect()
    assert vm.references.live_count == before


def test_scoped_anchor(vm):
    before = vm.references.live_count
    with vm.references.scoped(String("anchored")) as handle:
        vm.references.push(handle)
        assert vm.state.to_string(-1) == "anchored"
        vm.state.pop()
        assert vm.references.live_count == before + 1
    assert vm.references.live_count == before


def test_anchored_value_outlives_its_stack_slot(vm):
    (table,) = vm.eval("local t = {value = 'kept'} return t")
    vm.eval("collectgarbage()")
    assert table["value"] == String("kept")


def test_release_after_close_is_ignored():
    vm = VirtualMachine()
    table = vm.create_table()
    vm.close()
    table.release()
    assert vm.closed


def test_public_operations_keep_the_stack_balanced(vm):
    table = vm.create_table_from({"a": 1})
    function = vm.create_function(lambda args: args)
    operations = [
        lambda: table["a"],
        lambda: table.set("b", 2),
        lambda: table.keys(),
        lambda: table.as_sequence(),
        lambda: function(1, 2),
        lambda: vm.eval("return 1, 2, 3"),
        lambda: vm.globals["print"],
        lambda: len(table),
        lambda: hash(table),
        lambda: table == function,
    ]
    for operation in operations:
        operation()
        assert vm.state.get_top() == 0


def test_comparing_with_a_released_handle_keeps_the_stack_balanced(vm):
    table = vm.create_table()
    other = vm.create_table()
    other.release()
    with pytest.raises(ReferenceError):
        assert table != other
    assert vm.state.get_top() == 0
    with pytest.raises(ReferenceError):
        hash(other)
    assert vm.state.get_top() == 0
