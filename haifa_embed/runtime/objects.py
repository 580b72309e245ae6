from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from .table import LuaTable

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .ast import Block
    from .state import LuaState


class LuaType(IntEnum):
    NONE = -1
    NIL = 0
    BOOLEAN = 1
    LIGHTUSERDATA = 2
    NUMBER = 3
    STRING = 4
    TABLE = 5
    FUNCTION = 6
    USERDATA = 7
    THREAD = 8


TYPE_NAMES = {
    LuaType.NONE: "no value",
    LuaType.NIL: "nil",
    LuaType.BOOLEAN: "boolean",
    LuaType.LIGHTUSERDATA: "userdata",
    LuaType.NUMBER: "number",
    LuaType.STRING: "string",
    LuaType.TABLE: "table",
    LuaType.FUNCTION: "function",
    LuaType.USERDATA: "userdata",
    LuaType.THREAD: "thread",
}

# integers are 64-bit two's complement
INT_MASK = (1 << 64) - 1


class Scope:
    """One lexical block: local bindings plus a link to the enclosing block."""

    __slots__ = ("vars", "parent", "varargs")

    def __init__(self, parent: Optional["Scope"] = None, varargs: Optional[List[Any]] = None) -> None:
        self.vars: Dict[str, Any] = {}
        self.parent = parent
        self.varargs = varargs if varargs is not None else (parent.varargs if parent else None)

    def resolve(self, name: str) -> Optional["Scope"]:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.vars:
                return scope
            scope = scope.parent
        return None


class LuaClosure:
    __slots__ = ("params", "is_vararg", "body", "scope", "name", "source", "line")

    def __init__(
        self,
        params: Sequence[str],
        is_vararg: bool,
        body: "Block",
        scope: Scope,
        *,
        name: str,
        source: str,
        line: int,
    ) -> None:
        self.params = list(params)
        self.is_vararg = is_vararg
        self.body = body
        self.scope = scope
        self.name = name
        self.source = source
        self.line = line

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<LuaClosure {self.name} {self.source}:{self.line}>"


class BuiltinFunction:
    """Python function callable from Lua.

    ``func`` follows the stack protocol: it receives the state with its
    arguments occupying positions ``1..get_top()`` and returns how many values
    it left on top of the stack as results.
    """

    __slots__ = ("name", "func")

    def __init__(self, name: str, func: Callable[["LuaState"], int]) -> None:
        self.name = name
        self.func = func

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<BuiltinFunction {self.name}>"


class Userdata:
    """VM-owned block holding a host payload."""

    __slots__ = ("payload", "metatable", "user_value", "finalized", "__weakref__")

    def __init__(self, payload: Any = None) -> None:  # noqa: ANN401 - any host object
        self.payload = payload
        self.metatable: Optional[LuaTable] = None
        self.user_value: Any = None
        self.finalized = False

    def deinitialize(self) -> Any:  # noqa: ANN401 - any host object
        payload, self.payload = self.payload, None
        self.finalized = True
        return payload


class LightUserdata:
    """Bare host pointer: no metatable, compares by the identity of ``pointer``."""

    __slots__ = ("pointer",)

    def __init__(self, pointer: Any) -> None:  # noqa: ANN401 - any host object
        self.pointer = pointer

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LightUserdata) and other.pointer is self.pointer

    def __hash__(self) -> int:
        return hash(id(self.pointer))


class LuaThread:
    __slots__ = ("status",)

    def __init__(self) -> None:
        self.status = "running"


@dataclass
class CallInfo:
    function_name: str
    source: str
    line: int = -1
    scope: Optional[Scope] = None
    hidden: List[Any] = field(default_factory=list)


@dataclass
class LuaMultiReturn:
    values: Sequence[Any]


# --------------------------------------------------------------------------- #
# raw value helpers
# --------------------------------------------------------------------------- #
def type_of(value: Any) -> LuaType:  # noqa: ANN401 - Lua style
    if value is None:
        return LuaType.NIL
    if isinstance(value, bool):
        return LuaType.BOOLEAN
    if isinstance(value, (int, float)):
        return LuaType.NUMBER
    if isinstance(value, str):
        return LuaType.STRING
    if isinstance(value, LuaTable):
        return LuaType.TABLE
    if isinstance(value, (LuaClosure, BuiltinFunction)):
        return LuaType.FUNCTION
    if isinstance(value, Userdata):
        return LuaType.USERDATA
    if isinstance(value, LightUserdata):
        return LuaType.LIGHTUSERDATA
    if isinstance(value, LuaThread):
        return LuaType.THREAD
    raise TypeError(f"not a Lua value: {value!r}")


def type_name(value: Any) -> str:  # noqa: ANN401 - Lua style
    return TYPE_NAMES[type_of(value)]


def is_truthy(value: Any) -> bool:  # noqa: ANN401 - Lua style
    return not (value is None or value is False)


def is_number(value: Any) -> bool:  # noqa: ANN401 - Lua style
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def raw_equal(left: Any, right: Any) -> bool:  # noqa: ANN401 - Lua style
    if left is right:
        return True
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, bool) or isinstance(right, bool):
        return False
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, LightUserdata) and isinstance(right, LightUserdata):
        return left == right
    return False


def format_number(value: Any) -> str:  # noqa: ANN401 - Lua style
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "nan" if math.copysign(1.0, value) > 0 else "-nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = "%.14g" % value
    if re.fullmatch(r"-?\d+", text):
        text += ".0"
    return text


def address_of(value: Any) -> str:  # noqa: ANN401 - Lua style
    return f"0x{id(value):014x}"


def tostring_raw(value: Any) -> str:  # noqa: ANN401 - Lua style
    """Plain ``tostring`` without metamethods."""
    if value is None:
        return "nil"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (LuaClosure, BuiltinFunction)):
        return f"function: {address_of(value)}"
    if isinstance(value, LightUserdata):
        return f"userdata: {address_of(value.pointer)}"
    return f"{type_name(value)}: {address_of(value)}"


_DECIMAL_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_HEX_RE = re.compile(r"([+-])?0[xX]([0-9a-fA-F]*)(?:\.([0-9a-fA-F]*))?(?:[pP]([+-]?\d+))?")


def str_to_number(text: str) -> Any:  # noqa: ANN401 - int, float or None
    text = text.strip()
    if not text:
        return None
    match = _HEX_RE.fullmatch(text)
    if match is not None:
        sign, whole, fraction, exponent = match.groups()
        if not whole and not fraction:
            return None
        if fraction is None and exponent is None:
            value = int(whole, 16) & ((1 << 64) - 1)
            # hex integers wrap around like Lua's 64-bit integers
            if value >= 1 << 63:
                value -= 1 << 64
            return -value if sign == "-" else value
        mantissa = float(int(whole or "0", 16))
        if fraction:
            mantissa += int(fraction, 16) / (16 ** len(fraction))
        result = mantissa * (2.0 ** int(exponent or "0"))
        return -result if sign == "-" else result
    if _DECIMAL_RE.fullmatch(text):
        if re.fullmatch(r"[+-]?\d+", text):
            return int(text)
        return float(text)
    return None


def tonumber(value: Any) -> Any:  # noqa: ANN401 - int, float or None
    if is_number(value):
        return value
    if isinstance(value, str):
        return str_to_number(value)
    return None


def tointeger(value: Any) -> Optional[int]:  # noqa: ANN401 - Lua style
    number = tonumber(value)
    if isinstance(number, int):
        return number
    if isinstance(number, float) and number.is_integer() and -(2 ** 63) <= number < 2 ** 63:
        return int(number)
    return None


def wrap_integer(value: int) -> int:
    """Reduce ``value`` to a signed 64-bit integer, wrapping around like Lua."""
    value &= INT_MASK
    if value >= 1 << 63:
        value -= 1 << 64
    return value


__all__ = [
    "BuiltinFunction",
    "CallInfo",
    "INT_MASK",
    "LightUserdata",
    "LuaClosure",
    "LuaMultiReturn",
    "LuaThread",
    "LuaType",
    "Scope",
    "TYPE_NAMES",
    "Userdata",
    "address_of",
    "format_number",
    "is_number",
    "is_truthy",
    "raw_equal",
    "str_to_number",
    "tointeger",
    "tonumber",
    "tostring_raw",
    "type_name",
    "type_of",
    "wrap_integer",
]
