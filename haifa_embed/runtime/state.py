from __future__ import annotations

import logging
import math
import pathlib
from enum import IntEnum
from typing import Any, Callable, List, NoReturn, Optional, Sequence

from .collector import Collector
from .errors import LuaError, LuaSyntaxError, OperandError
from .interpreter import Interpreter
from .objects import (
    INT_MASK,
    BuiltinFunction,
    CallInfo,
    LightUserdata,
    LuaClosure,
    LuaThread,
    LuaType,
    TYPE_NAMES,
    Userdata,
    format_number,
    is_number,
    is_truthy,
    raw_equal,
    tointeger,
    tonumber,
    tostring_raw,
    type_name,
    type_of,
    wrap_integer,
)
from .table import LuaTable

logger = logging.getLogger(__name__)

REGISTRY_INDEX = -1_001_000
RIDX_MAINTHREAD = 1
RIDX_GLOBALS = 2
MULTRET = -1
REFNIL = -1
NOREF = -2
MAXTAGLOOP = 2000
DEFAULT_MAX_CALL_DEPTH = 200

_ARITH_EVENTS = {
    "+": "__add",
    "-": "__sub",
    "*": "__mul",
    "/": "__div",
    "%": "__mod",
    "^": "__pow",
    "//": "__idiv",
    "&": "__band",
    "|": "__bor",
    "~": "__bxor",
    "<<": "__shl",
    ">>": "__shr",
    "unm": "__unm",
    "bnot": "__bnot",
}
_BITWISE = {"&", "|", "~", "<<", ">>", "bnot"}

_ABSENT = object()


class Status(IntEnum):
    OK = 0
    YIELD = 1
    ERRRUN = 2
    ERRSYNTAX = 3
    ERRMEM = 4
    ERRERR = 5
    ERRFILE = 6


def short_source(chunkname: str) -> str:
    if chunkname.startswith("=") or chunkname.startswith("@"):
        return chunkname[1:]
    first_line = chunkname.split("\n", 1)[0]
    truncated = first_line != chunkname or len(first_line) > 45
    if truncated:
        return f'[string "{first_line[:45]}..."]'
    return f'[string "{first_line}"]'


class LuaState:
    """Stack machine with Lua C API semantics.

    Every function call gets a frame: positive indices count from the bottom of
    the current frame, negative indices from the top, and ``REGISTRY_INDEX``
    addresses the registry table.
    """

    def __init__(self, *, max_call_depth: int = DEFAULT_MAX_CALL_DEPTH) -> None:
        self.stack: List[Any] = []
        self.base = 0
        self.frames: List[CallInfo] = []
        self.output: List[str] = []
        self.max_call_depth = max_call_depth
        self.registry = LuaTable()
        self.main_thread = LuaThread()
        self.globals = LuaTable()
        self.registry.raw_set(RIDX_MAINTHREAD, self.main_thread)
        self.registry.raw_set(RIDX_GLOBALS, self.globals)
        self.globals.raw_set("_G", self.globals)
        self.string_metatable: Optional[LuaTable] = None
        self.type_metatables: dict = {}
        self.finalizable: List[Userdata] = []
        self.interpreter = Interpreter(self)
        self.collector = Collector(self)
        self.closed = False

    # ------------------------------------------------------------ indices
    def _position(self, index: int) -> Optional[int]:
        if index > 0:
            pos = self.base + index - 1
            return pos if pos < len(self.stack) else None
        if REGISTRY_INDEX < index < 0:
            pos = len(self.stack) + index
            return pos if pos >= self.base else None
        raise IndexError(f"invalid stack index {index}")

    def _fetch(self, index: int) -> Any:  # noqa: ANN401 - Lua value
        if index == REGISTRY_INDEX:
            return self.registry
        pos = self._position(index)
        if pos is None:
            return _ABSENT
        return self.stack[pos]

    def _value(self, index: int) -> Any:  # noqa: ANN401 - Lua value
        value = self._fetch(index)
        if value is _ABSENT:
            raise IndexError(f"stack index {index} is empty")
        return value

    def _table_at(self, index: int) -> LuaTable:
        value = self._value(index)
        if not isinstance(value, LuaTable):
            raise TypeError(f"table expected at index {index}, got {type_name(value)}")
        return value

    def abs_index(self, index: int) -> int:
        if index > 0 or index <= REGISTRY_INDEX:
            return index
        return self.get_top() + index + 1

    # ------------------------------------------------------ stack shuffling
    def get_top(self) -> int:
        return len(self.stack) - self.base

    def set_top(self, index: int) -> None:
        if index >= 0:
            target = self.base + index
        else:
            target = len(self.stack) + index + 1
        if target < self.base:
            raise IndexError("stack underflow")
        if target < len(self.stack):
            del self.stack[target:]
        else:
            self.stack.extend([None] * (target - len(self.stack)))

    def pop(self, count: int = 1) -> None:
        self.set_top(-count - 1)

    def push_value(self, index: int) -> None:
        self.stack.append(self._value(index))

    def rotate(self, index: int, count: int) -> None:
        pos = self._position(index)
        if pos is None:
            raise IndexError(f"invalid stack index {index}")
        segment = self.stack[pos:]
        if segment:
            count %= len(segment)
            self.stack[pos:] = segment[-count:] + segment[:-count] if count else segment

    def remove(self, index: int) -> None:
        self.rotate(index, -1)
        self.pop()

    def insert(self, index: int) -> None:
        self.rotate(index, 1)

    def replace(self, index: int) -> None:
        value = self.stack.pop()
        pos = self._position(index)
        if pos is None:
            raise IndexError(f"invalid stack index {index}")
        self.stack[pos] = value

    # ---------------------------------------------------------- inspection
    def type(self, index: int) -> LuaType:
        value = self._fetch(index)
        if value is _ABSENT:
            return LuaType.NONE
        return type_of(value)

    @staticmethod
    def type_name(kind: LuaType) -> str:
        return TYPE_NAMES[kind]

    def is_integer(self, index: int) -> bool:
        value = self._fetch(index)
        return isinstance(value, int) and not isinstance(value, bool)

    def to_boolean(self, index: int) -> bool:
        value = self._fetch(index)
        return value is not _ABSENT and is_truthy(value)

    def to_number(self, index: int) -> Any:  # noqa: ANN401 - int, float or None
        value = self._fetch(index)
        return None if value is _ABSENT else tonumber(value)

    def to_integer(self, index: int) -> Optional[int]:
        value = self._fetch(index)
        return None if value is _ABSENT else tointeger(value)

    def to_string(self, index: int) -> Optional[str]:
        value = self._fetch(index)
        if isinstance(value, str):
            return value
        if is_number(value):
            return format_number(value)
        return None

    def to_userdata(self, index: int) -> Any:  # noqa: ANN401 - Userdata or LightUserdata
        value = self._fetch(index)
        if isinstance(value, (Userdata, LightUserdata)):
            return value
        return None

    def to_thread(self, index: int) -> Optional[LuaThread]:
        value = self._fetch(index)
        return value if isinstance(value, LuaThread) else None

    def to_pointer(self, index: int) -> int:
        value = self._fetch(index)
        if isinstance(value, LightUserdata):
            return id(value.pointer)
        if isinstance(value, (LuaTable, LuaClosure, BuiltinFunction, Userdata, LuaThread)):
            return id(value)
        return 0

    def to_raw(self, index: int) -> Any:  # noqa: ANN401 - Lua value
        return self._value(index)

    def raw_len(self, index: int) -> int:
        value = self._value(index)
        if isinstance(value, str):
            return len(value)
        if isinstance(value, LuaTable):
            return value.length()
        return 0

    def raw_equal(self, index1: int, index2: int) -> bool:
        left, right = self._fetch(index1), self._fetch(index2)
        if left is _ABSENT or right is _ABSENT:
            return False
        return raw_equal(left, right)

    def compare(self, index1: int, index2: int, op: str) -> bool:
        left, right = self._fetch(index1), self._fetch(index2)
        if left is _ABSENT or right is _ABSENT:
            return False
        if op == "eq":
            return self.equals(left, right)
        if op == "lt":
            return self.less_than(left, right)
        if op == "le":
            return self.less_equal(left, right)
        raise ValueError(f"invalid comparison {op!r}")

    # ------------------------------------------------------------- pushing
    def push_raw(self, value: Any) -> None:  # noqa: ANN401 - Lua value
        self.stack.append(value)

    def push_nil(self) -> None:
        self.stack.append(None)

    def push_boolean(self, value: bool) -> None:
        self.stack.append(bool(value))

    def push_integer(self, value: int) -> None:
        self.stack.append(wrap_integer(int(value)))

    def push_number(self, value: float) -> None:
        self.stack.append(float(value))

    def push_string(self, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"string expected, got {type(value).__name__}")
        self.stack.append(value)

    def push_light_userdata(self, pointer: Any) -> None:  # noqa: ANN401 - host object
        self.stack.append(LightUserdata(pointer))

    def push_builtin(self, func: Callable[["LuaState"], int], name: str = "?") -> None:
        self.stack.append(BuiltinFunction(name, func))

    def push_thread(self) -> bool:
        self.stack.append(self.main_thread)
        return True

    def new_table(self, narray: int = 0, nhash: int = 0) -> None:
        self.stack.append(LuaTable(narray, nhash))

    def new_userdata(self, payload: Any = None) -> Userdata:  # noqa: ANN401 - host object
        box = Userdata(payload)
        self.stack.append(box)
        return box

    # -------------------------------------------------------- table access
    def get_table(self, index: int) -> LuaType:
        table = self._value(index)
        key = self.stack.pop()
        value = self.index(table, key)
        self.stack.append(value)
        return type_of(value)

    def get_field(self, index: int, name: str) -> LuaType:
        value = self.index(self._value(index), name)
        self.stack.append(value)
        return type_of(value)

    def get_i(self, index: int, n: int) -> LuaType:
        value = self.index(self._value(index), n)
        self.stack.append(value)
        return type_of(value)

    def get_global(self, name: str) -> LuaType:
        value = self.index(self.globals, name)
        self.stack.append(value)
        return type_of(value)

    def raw_get(self, index: int) -> LuaType:
        table = self._table_at(index)
        value = table.raw_get(self.stack.pop())
        self.stack.append(value)
        return type_of(value)

    def raw_get_i(self, index: int, n: int) -> LuaType:
        value = self._table_at(index).raw_get(n)
        self.stack.append(value)
        return type_of(value)

    def set_table(self, index: int) -> None:
        table = self._value(index)
        value = self.stack.pop()
        key = self.stack.pop()
        self.set_index(table, key, value)

    def set_field(self, index: int, name: str) -> None:
        table = self._value(index)
        self.set_index(table, name, self.stack.pop())

    def set_global(self, name: str) -> None:
        self.set_index(self.globals, name, self.stack.pop())

    def raw_set(self, index: int) -> None:
        table = self._table_at(index)
        value = self.stack.pop()
        key = self.stack.pop()
        self._checked_raw_set(table, key, value)

    def raw_set_i(self, index: int, n: int) -> None:
        table = self._table_at(index)
        table.raw_set(n, self.stack.pop())

    def next(self, index: int) -> bool:
        table = self._table_at(index)
        key = self.stack.pop()
        entry = table.next(key)
        if entry is None:
            return False
        self.stack.extend(entry)
        return True

    def len(self, index: int) -> None:
        self.stack.append(self.length(self._value(index)))

    def concat(self, count: int) -> None:
        if count == 0:
            self.stack.append("")
            return
        values = self.stack[len(self.stack) - count:]
        del self.stack[len(self.stack) - count:]
        result = values[-1]
        for value in reversed(values[:-1]):
            result = self.concat_values(value, result)
        self.stack.append(result)

    # ---------------------------------------------------------- metatables
    def get_metatable_raw(self, value: Any) -> Optional[LuaTable]:  # noqa: ANN401
        if isinstance(value, (LuaTable, Userdata)):
            return value.metatable
        if isinstance(value, str):
            return self.string_metatable
        return self.type_metatables.get(type_of(value))

    def metafield(self, value: Any, event: str) -> Any:  # noqa: ANN401
        metatable = self.get_metatable_raw(value)
        if metatable is None:
            return None
        return metatable.raw_get(event)

    def get_metatable(self, index: int) -> bool:
        metatable = self.get_metatable_raw(self._value(index))
        if metatable is None:
            return False
        self.stack.append(metatable)
        return True

    def set_metatable(self, index: int) -> None:
        target = self._value(index)
        metatable = self.stack.pop()
        if metatable is not None and not isinstance(metatable, LuaTable):
            raise TypeError("table expected as metatable")
        self.attach_metatable(target, metatable)

    def attach_metatable(self, target: Any, metatable: Optional[LuaTable]) -> None:  # noqa: ANN401
        if isinstance(target, (LuaTable, Userdata)):
            target.metatable = metatable
            if (
                isinstance(target, Userdata)
                and metatable is not None
                and metatable.raw_get("__gc") is not None
                and not target.finalized
                and target not in self.finalizable
            ):
                self.finalizable.append(target)
        elif isinstance(target, str):
            self.string_metatable = metatable
        elif metatable is None:
            self.type_metatables.pop(type_of(target), None)
        else:
            self.type_metatables[type_of(target)] = metatable

    # --------------------------------------------------- auxiliary library
    def ref(self, index: int) -> int:
        table = self._table_at(index)
        value = self.stack.pop()
        if value is None:
            return REFNIL
        free = table.raw_get(0)
        if isinstance(free, int) and free > 0:
            ref = free
            table.raw_set(0, table.raw_get(ref))
        else:
            ref = table.length() + 1
        table.raw_set(ref, value)
        return ref

    def unref(self, index: int, ref: int) -> None:
        if ref < 0:
            return
        table = self._table_at(index)
        table.raw_set(ref, table.raw_get(0) or 0)
        table.raw_set(0, ref)

    def new_metatable(self, name: str) -> bool:
        existing = self.registry.raw_get(name)
        if existing is not None:
            self.stack.append(existing)
            return False
        metatable = LuaTable()
        metatable.raw_set("__name", name)
        self.registry.raw_set(name, metatable)
        self.stack.append(metatable)
        return True

    def set_metatable_by_name(self, name: str) -> None:
        self.stack.append(self.registry.raw_get(name))
        self.set_metatable(-2)

    def test_userdata(self, index: int, name: str) -> Optional[Userdata]:
        value = self._fetch(index)
        if not isinstance(value, Userdata):
            return None
        expected = self.registry.raw_get(name)
        if expected is None or value.metatable is not expected:
            return None
        return value

    def where(self, level: int = 1) -> str:
        if level >= len(self.frames):
            return ""
        frame = self.frames[-1 - level]
        if frame.line < 0:
            return ""
        return f"{frame.source}:{frame.line}: "

    def runtime_error(self, message: str) -> LuaError:
        return LuaError(self.where(0) + message)

    # ------------------------------------------------------- value semantics
    def index(self, obj: Any, key: Any) -> Any:  # noqa: ANN401 - Lua values
        for _ in range(MAXTAGLOOP):
            if isinstance(obj, LuaTable):
                value = obj.raw_get(key)
                if value is not None:
                    return value
                handler = obj.metatable.raw_get("__index") if obj.metatable is not None else None
                if handler is None:
                    return None
            else:
                handler = self.metafield(obj, "__index")
                if handler is None:
                    raise self.runtime_error(f"attempt to index a {type_name(obj)} value")
            if isinstance(handler, (LuaClosure, BuiltinFunction)):
                results = self.call_value(handler, [obj, key])
                return results[0] if results else None
            obj = handler
        raise self.runtime_error("'__index' chain too long; possible loop")

    def set_index(self, obj: Any, key: Any, value: Any) -> None:  # noqa: ANN401
        for _ in range(MAXTAGLOOP):
            if isinstance(obj, LuaTable):
                metatable = obj.metatable
                handler = metatable.raw_get("__newindex") if metatable is not None else None
                if handler is None or obj.raw_get(key) is not None:
                    self._checked_raw_set(obj, key, value)
                    return
            else:
                handler = self.metafield(obj, "__newindex")
                if handler is None:
                    raise self.runtime_error(f"attempt to index a {type_name(obj)} value")
            if isinstance(handler, (LuaClosure, BuiltinFunction)):
                self.call_value(handler, [obj, key, value])
                return
            obj = handler
        raise self.runtime_error("'__newindex' chain too long; possible loop")

    def _checked_raw_set(self, table: LuaTable, key: Any, value: Any) -> None:  # noqa: ANN401
        if key is None:
            raise self.runtime_error("table index is nil")
        if isinstance(key, float) and math.isnan(key):
            raise self.runtime_error("table index is NaN")
        table.raw_set(key, value)

    def equals(self, left: Any, right: Any) -> bool:  # noqa: ANN401
        if raw_equal(left, right):
            return True
        same_kind = (isinstance(left, LuaTable) and isinstance(right, LuaTable)) or (
            isinstance(left, Userdata) and isinstance(right, Userdata)
        )
        if not same_kind:
            return False
        handler = self.metafield(left, "__eq")
        if handler is None:
            handler = self.metafield(right, "__eq")
        if handler is None:
            return False
        results = self.call_value(handler, [left, right])
        return bool(results) and is_truthy(results[0])

    def less_than(self, left: Any, right: Any) -> bool:  # noqa: ANN401
        return self._order(left, right, "__lt", lambda a, b: a < b)

    def less_equal(self, left: Any, right: Any) -> bool:  # noqa: ANN401
        return self._order(left, right, "__le", lambda a, b: a <= b)

    def _order(self, left: Any, right: Any, event: str, op: Callable[[Any, Any], bool]) -> bool:  # noqa: ANN401
        if is_number(left) and is_number(right):
            return op(left, right)
        if isinstance(left, str) and isinstance(right, str):
            return op(left, right)
        handler = self.metafield(left, event)
        if handler is None:
            handler = self.metafield(right, event)
        if handler is None:
            left_type, right_type = type_name(left), type_name(right)
            if left_type == right_type:
                raise self.runtime_error(f"attempt to compare two {left_type} values")
            raise self.runtime_error(f"attempt to compare {left_type} with {right_type}")
        results = self.call_value(handler, [left, right])
        return bool(results) and is_truthy(results[0])

    def arith(self, op: str, left: Any, right: Any) -> Any:  # noqa: ANN401
        bitwise = op in _BITWISE
        convert = tointeger if bitwise else tonumber
        x, y = convert(left), convert(right)
        if x is not None and y is not None:
            return self._bitwise(op, x, y) if bitwise else self._arith_numbers(op, x, y)
        event = _ARITH_EVENTS[op]
        handler = self.metafield(left, event)
        if handler is None:
            handler = self.metafield(right, event)
        if handler is not None:
            results = self.call_value(handler, [left, right])
            return results[0] if results else None
        culprit = 0 if x is None else 1
        bad = right if culprit else left
        if bitwise:
            if is_number(bad):
                raise OperandError("number has no integer representation", culprit)
            raise OperandError(f"attempt to perform bitwise operation on a {type_name(bad)} value", culprit)
        raise OperandError(f"attempt to perform arithmetic on a {type_name(bad)} value", culprit)

    def _arith_numbers(self, op: str, x: Any, y: Any) -> Any:  # noqa: ANN401 - int or float
        both_int = isinstance(x, int) and isinstance(y, int)
        if op == "+":
            return wrap_integer(x + y) if both_int else x + y
        if op == "-":
            return wrap_integer(x - y) if both_int else x - y
        if op == "*":
            return wrap_integer(x * y) if both_int else x * y
        if op == "unm":
            return wrap_integer(-x) if isinstance(x, int) else -x
        if op == "/":
            return self._float_divide(float(x), float(y))
        if op == "^":
            try:
                return math.pow(float(x), float(y))
            except OverflowError:
                return math.inf
            except ValueError:
                return math.nan
        if op == "//":
            if both_int:
                if y == 0:
                    raise self.runtime_error("attempt to perform 'n//0'")
                return wrap_integer(x // y)
            quotient = self._float_divide(float(x), float(y))
            return float(math.floor(quotient)) if math.isfinite(quotient) else quotient
        if op == "%":
            if both_int:
                if y == 0:
                    raise self.runtime_error("attempt to perform 'n%%0'")
                return x % y
            x, y = float(x), float(y)
            if y == 0 or math.isinf(x):
                return math.nan
            if math.isinf(y):
                return x if (x >= 0) == (y > 0) else y
            remainder = math.fmod(x, y)
            if remainder != 0 and (remainder < 0) != (y < 0):
                remainder += y
            return remainder
        raise ValueError(f"unknown arithmetic operator {op!r}")

    @staticmethod
    def _float_divide(x: float, y: float) -> float:
        if y == 0:
            if x == 0 or math.isnan(x):
                return math.nan
            return math.copysign(math.inf, x) * math.copysign(1.0, y)
        return x / y

    @staticmethod
    def _bitwise(op: str, x: int, y: int) -> int:
        if op == "&":
            return wrap_integer(x & y)
        if op == "|":
            return wrap_integer(x | y)
        if op == "~":
            return wrap_integer(x ^ y)
        if op == "bnot":
            return wrap_integer(~x)
        if op == ">>":
            op, y = "<<", -y
        if y <= -64 or y >= 64:
            return 0
        unsigned = x & INT_MASK
        if y >= 0:
            return wrap_integer(unsigned << y)
        return wrap_integer(unsigned >> -y)

    def concat_values(self, left: Any, right: Any) -> Any:  # noqa: ANN401
        if isinstance(left, (str, int, float)) and not isinstance(left, bool) and isinstance(
            right, (str, int, float)
        ) and not isinstance(right, bool):
            return tostring_raw(left) + tostring_raw(right)
        handler = self.metafield(left, "__concat")
        if handler is None:
            handler = self.metafield(right, "__concat")
        if handler is not None:
            results = self.call_value(handler, [left, right])
            return results[0] if results else None
        culprit = 1 if isinstance(left, str) or is_number(left) else 0
        bad = right if culprit else left
        raise OperandError(f"attempt to concatenate a {type_name(bad)} value", culprit)

    def length(self, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str):
            return len(value)
        handler = self.metafield(value, "__len")
        if handler is not None:
            results = self.call_value(handler, [value])
            return results[0] if results else None
        if isinstance(value, LuaTable):
            return value.length()
        raise OperandError(f"attempt to get length of a {type_name(value)} value", 0)

    def tostring(self, value: Any) -> str:  # noqa: ANN401
        handler = self.metafield(value, "__tostring")
        if handler is not None:
            results = self.call_value(handler, [value])
            text = results[0] if results else None
            if not isinstance(text, str):
                if is_number(text):
                    return format_number(text)
                raise self.runtime_error("'__tostring' must return a string")
            return text
        name = self.metafield(value, "__name")
        if isinstance(name, str) and isinstance(value, (LuaTable, Userdata)):
            return f"{name}: {tostring_raw(value).split(': ', 1)[1]}"
        return tostring_raw(value)

    def is_callable(self, value: Any) -> bool:  # noqa: ANN401
        if isinstance(value, (LuaClosure, BuiltinFunction)):
            return True
        return self.metafield(value, "__call") is not None

    # --------------------------------------------------------------- calls
    def call_value(self, func: Any, args: Sequence[Any]) -> List[Any]:  # noqa: ANN401
        if len(self.frames) >= self.max_call_depth:
            raise self.runtime_error("stack overflow")
        if isinstance(func, LuaClosure):
            return self.interpreter.call(func, args)
        if isinstance(func, BuiltinFunction):
            return self._call_builtin(func, args)
        handler = self.metafield(func, "__call")
        if handler is None:
            raise self.runtime_error(f"attempt to call a {type_name(func)} value")
        return self.call_value(handler, [func, *args])

    def _call_builtin(self, func: BuiltinFunction, args: Sequence[Any]) -> List[Any]:
        stack = self.stack
        saved_base = self.base
        base = len(stack)
        stack.extend(args)
        self.base = base
        self.frames.append(CallInfo(func.name, "[C]"))
        try:
            count = func.func(self)
            if count:
                results = stack[len(stack) - count:]
                if len(results) < count:
                    raise IndexError(f"builtin {func.name!r} returned more results than it pushed")
            else:
                results = []
        finally:
            del stack[base:]
            self.base = saved_base
            self.frames.pop()
        return results

    def _push_results(self, results: List[Any], nresults: int) -> None:
        if nresults == MULTRET:
            self.stack.extend(results)
            return
        adjusted = list(results[:nresults])
        adjusted.extend([None] * (nresults - len(adjusted)))
        self.stack.extend(adjusted)

    def _take_call(self, nargs: int) -> tuple:
        func_pos = len(self.stack) - nargs - 1
        if func_pos < self.base:
            raise IndexError("not enough values on the stack for call")
        func = self.stack[func_pos]
        args = self.stack[func_pos + 1:]
        del self.stack[func_pos:]
        return func_pos, func, args

    def call(self, nargs: int, nresults: int = MULTRET) -> None:
        _, func, args = self._take_call(nargs)
        self._push_results(self.call_value(func, args), nresults)

    def pcall(self, nargs: int, nresults: int = MULTRET, msgh: int = 0) -> Status:
        handler = self._value(msgh) if msgh else None
        func_pos, func, args = self._take_call(nargs)
        saved_base, saved_frames = self.base, len(self.frames)
        try:
            results = self.call_value(func, args)
        except LuaError as exc:
            error = exc.value
        except RecursionError:
            error = "stack overflow"
        else:
            self._push_results(results, nresults)
            return Status.OK
        self.base = saved_base
        del self.frames[saved_frames:]
        del self.stack[func_pos:]
        status = Status.ERRRUN
        if handler is not None:
            try:
                handled = self.call_value(handler, [error])
                error = handled[0] if handled else None
            except LuaError as exc:
                error, status = exc.value, Status.ERRERR
        self.stack.append(error)
        return status

    def error(self) -> NoReturn:
        value = self.stack.pop() if self.get_top() > 0 else None
        raise LuaError(value)

    # ------------------------------------------------------------- loading
    def load_string(self, source: str, chunkname: Optional[str] = None, env: Any = None) -> Status:  # noqa: ANN401
        name = short_source(chunkname if chunkname is not None else source)
        try:
            closure = self.interpreter.load(source, name, self.globals if env is None else env)
        except LuaSyntaxError as exc:
            logger.debug("failed to load chunk %s: %s", name, exc.value)
            self.stack.append(exc.value)
            return Status.ERRSYNTAX
        logger.debug("loaded chunk %s", name)
        self.stack.append(closure)
        return Status.OK

    def load_file(self, path: "str | pathlib.Path") -> Status:
        path = pathlib.Path(path)
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as exc:
            self.stack.append(f"cannot open {path}: {exc.strerror or exc}")
            return Status.ERRFILE
        return self.load_string(source, f"@{path}")

    # ------------------------------------------------------------ lifetime
    def collect_garbage(self) -> int:
        return self.collector.collect()

    def open_libs(self) -> None:
        from .stdlib import install_stdlib

        install_stdlib(self)

    def close(self) -> None:
        if self.closed:
            return
        self.collector.finalize_all()
        del self.stack[:]
        self.base = 0
        self.closed = True


__all__ = [
    "LuaState",
    "MULTRET",
    "NOREF",
    "OperandError",
    "REFNIL",
    "REGISTRY_INDEX",
    "RIDX_GLOBALS",
    "RIDX_MAINTHREAD",
    "Status",
    "short_source",
]
