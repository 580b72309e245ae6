from __future__ import annotations

from typing import TYPE_CHECKING, List, Type, TypeVar

from .function import Function
from .references import StoredValue
from .runtime.objects import LuaType
from .table import Table
from .userdata import LightUserdata, Thread, Userdata
from .values import NIL, NONE, Boolean, Number, String, Value, to_value

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .vm import VirtualMachine

V = TypeVar("V", bound=Value)

_HANDLE_TYPES = {
    LuaType.FUNCTION: Function,
    LuaType.TABLE: Table,
    LuaType.USERDATA: Userdata,
    LuaType.LIGHTUSERDATA: LightUserdata,
    LuaType.THREAD: Thread,
}


class ValueBridge:
    """Converts between host :class:`Value` objects and stack slots.

    Every method leaves the stack one slot taller (``push``) or one slot
    shorter (``materialize``) and touches nothing else.
    """

    def __init__(self, vm: "VirtualMachine"):
        self.vm = vm

    def push(self, value: object) -> None:
        state = self.vm.state
        value = to_value(value)
        if isinstance(value, String):
            state.push_string(value.value)
        elif isinstance(value, Number):
            if isinstance(value.value, int):
                state.push_integer(value.value)
            else:
                state.push_number(value.value)
        elif isinstance(value, Boolean):
            state.push_boolean(value.value)
        elif isinstance(value, StoredValue):
            if value.vm is not self.vm:
                raise ValueError("value belongs to a different VirtualMachine")
            value.push()
        elif value is NIL or value is NONE:
            state.push_nil()
        else:
            raise TypeError(f"cannot push {value!r}")

    def materialize(self, position: int = -1) -> Value:
        """Pop the slot at ``position`` and return it as a :class:`Value`.

        A position above the top of the stack is "no value": the result is
        :data:`NONE` and the stack is left alone.
        """
        state = self.vm.state
        kind = state.type(position)
        if kind == LuaType.NONE:
            return NONE
        position = state.abs_index(position)
        if position != state.get_top():
            state.push_value(position)
            state.remove(position)
        if kind == LuaType.STRING:
            value: Value = String(state.to_string(-1))
        elif kind == LuaType.NUMBER:
            value = Number(state.to_integer(-1) if state.is_integer(-1) else state.to_number(-1))
        elif kind == LuaType.BOOLEAN:
            value = Boolean(state.to_boolean(-1))
        elif kind == LuaType.NIL:
            value = NIL
        else:
            # handle constructors anchor and pop the top slot themselves
            return _HANDLE_TYPES[kind](self.vm)
        state.pop()
        return value

    def materialize_as(self, position: int, cls: Type[V]) -> V:
        return cls.unwrap(self.vm, self.materialize(position))

    def pop_values(self, count: int) -> List[Value]:
        """Materialize the top ``count`` slots, bottom first."""
        state = self.vm.state
        first = state.get_top() - count + 1
        return [self.materialize(first) for _ in range(count)]


__all__ = ["ValueBridge"]
