from __future__ import annotations

import contextlib
import logging
import weakref
from typing import TYPE_CHECKING, Iterator, List, Set

from .runtime.state import REFNIL, REGISTRY_INDEX
from .values import Value

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .vm import VirtualMachine

logger = logging.getLogger(__name__)


class ReferenceRegistry:
    """Anchors VM values in the registry table under integer handles.

    Releases requested by the host garbage collector are queued and applied at
    the next registry operation, so they never interleave with a ``ref`` that
    is already in progress.
    """

    def __init__(self, vm: "VirtualMachine"):
        self._vm = vm
        self._live: Set[int] = set()
        self._pending: List[int] = []

    @property
    def live_count(self) -> int:
        self.drain()
        return len(self._live)

    def anchor(self, value: object) -> int:
        self._vm.bridge.push(value)
        return self.anchor_top()

    def anchor_top(self) -> int:
        """Pop the top of the stack into the registry and return its handle."""
        self.drain()
        handle = self._vm.state.ref(REGISTRY_INDEX)
        if handle != REFNIL:
            self._live.add(handle)
        return handle

    def push(self, handle: int) -> None:
        if handle != REFNIL and handle not in self._live and self._vm.options.check_references:
            raise ReferenceError(f"registry handle {handle} is not live")
        self._vm.state.raw_get_i(REGISTRY_INDEX, handle)

    def release(self, handle: int) -> None:
        if self._vm.closed or handle == REFNIL:
            return
        self.drain()
        if handle not in self._live:
            if self._vm.options.check_references:
                raise ReferenceError(f"registry handle {handle} released twice")
            logger.debug("ignoring release of dead handle %d", handle)
            return
        self._unref(handle)

    def release_later(self, handle: int) -> None:
        self._pending.append(handle)

    def drain(self) -> None:
        if self._vm.closed:
            self._pending.clear()
            return
        while self._pending:
            handle = self._pending.pop()
            if handle in self._live:
                self._unref(handle)

    def _unref(self, handle: int) -> None:
        self._live.discard(handle)
        self._vm.state.unref(REGISTRY_INDEX, handle)

    @contextlib.contextmanager
    def scoped(self, value: object) -> Iterator[int]:
        handle = self.anchor(value)
        try:
            yield handle
        finally:
            self.release(handle)


class StoredValue(Value):
    """Host handle owning one registry entry.

    The constructor anchors the value currently on top of the stack (and pops
    it). The entry is released exactly once: by :meth:`release`, on ``with``
    exit, or when the handle is garbage collected.
    """

    def __init__(self, vm: "VirtualMachine"):
        self.vm = vm
        references = vm.references
        self.handle = references.anchor_top()
        self._finalizer = weakref.finalize(self, references.release_later, self.handle)

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    def push(self) -> None:
        if self.released and self.vm.options.check_references:
            raise ReferenceError(f"{type(self).__name__} handle was released")
        self.vm.references.push(self.handle)

    def release(self) -> None:
        if self._finalizer.detach() is None:
            if self.vm.options.check_references:
                raise ReferenceError(f"{type(self).__name__} handle released twice")
            return
        self.vm.references.release(self.handle)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.released:
            self.release()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StoredValue) or other.vm is not self.vm:
            return False
        state = self.vm.state
        with self.vm.stack_guard():
            self.push()
            other.push()
            same = state.raw_equal(-1, -2)
            state.pop(2)
        return same

    def __hash__(self) -> int:
        state = self.vm.state
        with self.vm.stack_guard():
            self.push()
            pointer = state.to_pointer(-1)
            state.pop()
        return hash(pointer)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} handle={self.handle}>"


__all__ = ["ReferenceRegistry", "StoredValue"]
