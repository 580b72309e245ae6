from __future__ import annotations

import math
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import LuaError


class _BoolKey:
    """Hash-part key standing in for a Lua boolean (``True == 1`` in Python)."""

    __slots__ = ("value",)

    def __init__(self, value: bool) -> None:
        self.value = value

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"_BoolKey({self.value!r})"


_TRUE_KEY = _BoolKey(True)
_FALSE_KEY = _BoolKey(False)


def _encode_key(key: Any) -> Any:  # noqa: ANN401 - Lua style
    if key is True:
        return _TRUE_KEY
    if key is False:
        return _FALSE_KEY
    if isinstance(key, float) and key.is_integer():
        return int(key)
    return key


def _decode_key(key: Any) -> Any:  # noqa: ANN401 - Lua style
    if isinstance(key, _BoolKey):
        return key.value
    return key


class LuaTable:
    """Hybrid table supporting Lua-style array and dictionary access.

    Integer keys ``1..n`` live in ``array``; everything else lives in ``map``.
    Assigning nil to a hash key leaves a dead entry behind so that an
    in-progress ``next`` traversal can continue past it.
    """

    __slots__ = ("array", "map", "metatable", "_dead", "_order", "__weakref__")

    def __init__(self, narray: int = 0, nhash: int = 0) -> None:
        # size hints are accepted for API parity; Python containers grow on demand
        self.array: List[Any] = []
        self.map: Dict[Any, Any] = {}
        self.metatable: Optional[LuaTable] = None
        self._dead = 0
        self._order: Optional[Tuple[List[Any], Dict[Any, int]]] = None

    # --------------------------- raw table access -------------------------- #
    def raw_get(self, key: Any) -> Any:  # noqa: ANN401 - Lua style
        key = _encode_key(key)
        if type(key) is int and 1 <= key <= len(self.array):
            return self.array[key - 1]
        try:
            return self.map.get(key)
        except TypeError:
            return None

    def raw_set(self, key: Any, value: Any) -> None:  # noqa: ANN401 - Lua style
        if key is None:
            raise LuaError("table index is nil")
        if isinstance(key, float) and math.isnan(key):
            raise LuaError("table index is NaN")
        key = _encode_key(key)
        if type(key) is int and key >= 1:
            size = len(self.array)
            if key <= size:
                self.array[key - 1] = value
                if value is None and key == size:
                    self._trim_array()
                return
            if key == size + 1 and value is not None:
                if key in self.map:
                    self._drop_map_key(key)
                self.array.append(value)
                self._migrate_from_map()
                return
        if value is None:
            if self.map.get(key) is not None:
                self.map[key] = None
                self._dead += 1
            return
        if key not in self.map:
            if self._dead:
                self._compact()
            self._order = None
        self.map[key] = value

    def length(self) -> int:
        count = len(self.array)
        while count > 0 and self.array[count - 1] is None:
            count -= 1
        return count

    # ---------------------------- array helpers ---------------------------- #
    def append(self, value: Any) -> None:  # noqa: ANN401 - Lua style
        self.raw_set(self.length() + 1, value)

    def insert(self, index: int, value: Any) -> None:  # noqa: ANN401 - Lua style
        size = self.length()
        if index < 1 or index > size + 1:
            raise LuaError("bad argument #2 to 'insert' (position out of bounds)")
        del self.array[size:]
        self.array.insert(index - 1, value)
        self._migrate_from_map()

    def remove(self, index: Optional[int] = None) -> Any:  # noqa: ANN401 - Lua style
        size = self.length()
        if index is None:
            index = size
        if size == 0 and index in (0, size):
            return None
        if index < 1 or index > size + 1:
            raise LuaError("bad argument #2 to 'remove' (position out of bounds)")
        if index == size + 1:
            return None
        del self.array[size:]
        return self.array.pop(index - 1)

    # ------------------------------ traversal ------------------------------ #
    def next(self, key: Any) -> Optional[Tuple[Any, Any]]:  # noqa: ANN401 - Lua style
        """Return the entry following ``key`` (nil starts), or None when exhausted."""
        start = 0
        if key is not None:
            encoded = _encode_key(key)
            keys, positions = self._key_order()
            position = self._position_of(positions, encoded)
            if position is not None:
                return self._next_in_map(keys, position + 1)
            if type(encoded) is not int or encoded < 1:
                raise LuaError("invalid key to 'next'")
            start = encoded
        for index in range(start, len(self.array)):
            value = self.array[index]
            if value is not None:
                return index + 1, value
        return self._next_in_map(self._key_order()[0], 0)

    def iter_items(self) -> Iterator[Tuple[Any, Any]]:
        for idx, value in enumerate(self.array, start=1):
            if value is not None:
                yield idx, value
        for key, value in list(self.map.items()):
            if value is not None:
                yield _decode_key(key), value

    # ------------------------------- internals ----------------------------- #
    def _key_order(self) -> Tuple[List[Any], Dict[Any, int]]:
        if self._order is None:
            keys = list(self.map)
            self._order = (keys, {key: idx for idx, key in enumerate(keys)})
        return self._order

    @staticmethod
    def _position_of(positions: Dict[Any, int], key: Any) -> Optional[int]:  # noqa: ANN401
        try:
            return positions.get(key)
        except TypeError:
            return None

    def _next_in_map(self, keys: List[Any], position: int) -> Optional[Tuple[Any, Any]]:
        for candidate in keys[position:]:
            value = self.map.get(candidate)
            if value is not None:
                return _decode_key(candidate), value
        return None

    def _drop_map_key(self, key: Any) -> None:  # noqa: ANN401 - Lua style
        if self.map.pop(key) is None:
            self._dead -= 1
        self._order = None

    def _trim_array(self) -> None:
        while self.array and self.array[-1] is None:
            self.array.pop()

    def _migrate_from_map(self) -> None:
        while self.map:
            candidate = len(self.array) + 1
            if self.map.get(candidate) is None:
                break
            self.array.append(self.map.pop(candidate))
            self._order = None

    def _compact(self) -> None:
        self.map = {key: value for key, value in self.map.items() if value is not None}
        self._dead = 0
        self._order = None

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"LuaTable(array={self.array!r}, map={self.map!r})"


__all__ = ["LuaTable"]
