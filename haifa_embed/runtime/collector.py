from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Set

from .errors import LuaError
from .objects import LuaClosure, Scope, Userdata
from .table import LuaTable

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .state import LuaState

logger = logging.getLogger(__name__)


class Collector:
    """Mark-and-finalize pass over values with ``__gc`` metamethods.

    Python reclaims the memory itself; the collector only decides which
    finalizable userdata became unreachable from Lua and runs their ``__gc``
    exactly once.
    """

    def __init__(self, state: "LuaState") -> None:
        self.state = state
        # run before marking
        self.before_collect: List[Callable[[], None]] = []

    def _roots(self) -> Iterable[Any]:
        state = self.state
        yield from state.stack
        yield state.registry
        yield state.globals
        if state.string_metatable is not None:
            yield state.string_metatable
        yield from state.type_metatables.values()
        for frame in state.frames:
            if frame.scope is not None:
                yield frame.scope
            yield from frame.hidden

    def mark(self) -> Set[int]:
        reachable: Set[int] = set()
        pending: List[Any] = list(self._roots())
        while pending:
            value = pending.pop()
            if isinstance(value, (LuaTable, Userdata, LuaClosure, Scope)):
                marker = id(value)
                if marker in reachable:
                    continue
                reachable.add(marker)
            else:
                continue
            if isinstance(value, LuaTable):
                pending.extend(value.array)
                for key, item in value.map.items():
                    pending.append(key)
                    pending.append(item)
                if value.metatable is not None:
                    pending.append(value.metatable)
            elif isinstance(value, Userdata):
                if value.metatable is not None:
                    pending.append(value.metatable)
                pending.append(value.user_value)
            elif isinstance(value, LuaClosure):
                pending.append(value.scope)
            else:
                pending.extend(value.vars.values())
                if value.varargs:
                    pending.extend(value.varargs)
                if value.parent is not None:
                    pending.append(value.parent)
        return reachable

    def collect(self) -> int:
        """Finalize unreachable userdata; returns how many were finalized."""
        state = self.state
        for hook in self.before_collect:
            hook()
        if not state.finalizable:
            return 0
        reachable = self.mark()
        doomed = [box for box in state.finalizable if id(box) not in reachable]
        if not doomed:
            return 0
        state.finalizable = [box for box in state.finalizable if id(box) in reachable]
        # finalizers run in reverse order of registration
        for box in reversed(doomed):
            self._finalize(box)
        logger.debug("collected %d userdata", len(doomed))
        return len(doomed)

    def finalize_all(self) -> int:
        state = self.state
        doomed, state.finalizable = state.finalizable, []
        for box in reversed(doomed):
            self._finalize(box)
        return len(doomed)

    def _finalize(self, box: Userdata) -> None:
        if box.finalized or box.metatable is None:
            return
        handler = box.metatable.raw_get("__gc")
        if handler is None or not self.state.is_callable(handler):
            return
        try:
            self.state.call_value(handler, [box])
        except (LuaError, RecursionError) as exc:
            logger.warning("error in __gc metamethod: %s", exc)


__all__ = ["Collector"]
