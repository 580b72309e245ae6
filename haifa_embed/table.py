from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple, Type

from .references import StoredValue
from .values import Kind, Number, Value


def _matches(value: Value, cls: Optional[Type[Value]]) -> bool:
    return cls is None or isinstance(value, cls)


class Table(StoredValue):
    """Handle to a VM table.

    Nothing is cached: every read and write goes through the VM, honouring
    ``__index``/``__newindex`` metamethods, so changes made by Lua code in
    between are always visible.
    """

    kind = Kind.TABLE

    def get(self, key: object) -> Value:
        vm = self.vm
        state = vm.state
        with vm.stack_guard():
            self.push()
            vm.bridge.push(key)
            state.get_table(-2)
            value = vm.bridge.materialize(-1)
            state.pop()
        return value

    def set(self, key: object, value: object) -> None:
        vm = self.vm
        with vm.stack_guard():
            self.push()
            vm.bridge.push(key)
            vm.bridge.push(value)
            vm.state.set_table(-3)
            vm.state.pop()

    __getitem__ = get
    __setitem__ = set

    def keys(self) -> List[Value]:
        """Enumerate keys with the VM's ``next`` protocol.

        Order is the array part ascending, then the hash part in insertion
        order. Assigning nil to existing keys during enumeration is allowed;
        any other mutation makes the order undefined.
        """
        vm = self.vm
        state = vm.state
        keys: List[Value] = []
        with vm.stack_guard():
            self.push()
            state.push_nil()
            while state.next(-2):
                state.pop()
                state.push_value(-1)
                keys.append(vm.bridge.materialize(-1))
            state.pop()
        return keys

    def __iter__(self) -> Iterator[Value]:
        return iter(self.keys())

    def __bool__(self) -> bool:
        return True

    def __len__(self) -> int:
        state = self.vm.state
        self.push()
        length = state.raw_len(-1)
        state.pop()
        return length

    def as_tuple_list(
        self, key_type: Optional[Type[Value]] = None, value_type: Optional[Type[Value]] = None
    ) -> List[Tuple[Value, Value]]:
        entries = []
        for key in self.keys():
            value = self[key]
            if _matches(key, key_type) and _matches(value, value_type):
                entries.append((key, value))
        return entries

    def as_dictionary(
        self, key_type: Optional[Type[Value]] = None, value_type: Optional[Type[Value]] = None
    ) -> Dict[Value, Value]:
        return dict(self.as_tuple_list(key_type, value_type))

    def as_sequence(self, value_type: Optional[Type[Value]] = None) -> List[Value]:
        """Values of keys ``1..n`` in order, or ``[]`` if the integer keys are not exactly that range."""
        indexed: Dict[int, Value] = {}
        for key, value in self.as_tuple_list(Number, value_type):
            if not key.is_integer:
                return []
            indexed[key.to_integer()] = value
        if not indexed:
            return []
        if sorted(indexed) != list(range(1, max(indexed) + 1)):
            return []
        return [indexed[index] for index in range(1, len(indexed) + 1)]

    def become_metatable_for(self, value: object) -> None:
        vm = self.vm
        with vm.stack_guard():
            vm.bridge.push(value)
            self.push()
            vm.state.set_metatable(-2)
            vm.state.pop()

    def __repr__(self) -> str:
        lines = [f"{key!r}: {self[key]!r}" for key in self.keys()]
        return "\n".join(lines) if lines else "<empty Table>"


__all__ = ["Table"]
