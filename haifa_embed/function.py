from __future__ import annotations

from typing import Iterable, List

from .references import StoredValue
from .runtime.state import MULTRET, Status
from .values import Kind, Value


class Function(StoredValue):
    """Handle to a Lua-callable value (Lua closure or host function)."""

    kind = Kind.FUNCTION

    def call(self, args: Iterable[object] = ()) -> List[Value]:
        """Call in protected mode and return every result.

        Failures are reported to the VM's error handler and raised as
        :class:`~haifa_embed.errors.LuaRuntimeError`.
        """
        vm = self.vm
        state = vm.state
        top = state.get_top()
        try:
            self.push()
            nargs = 0
            for arg in args:
                vm.bridge.push(arg)
                nargs += 1
        except Exception:
            state.set_top(top)
            raise
        status = state.pcall(nargs, MULTRET)
        if status != Status.OK:
            raise vm.pop_error()
        return vm.bridge.pop_values(state.get_top() - top)

    def __call__(self, *args: object) -> List[Value]:
        return self.call(args)


__all__ = ["Function"]
