from __future__ import annotations

import functools
import math
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Sequence

from .errors import LuaError
from .objects import (
    INT_MASK,
    BuiltinFunction,
    LuaMultiReturn,
    format_number,
    is_number,
    is_truthy,
    raw_equal,
    tointeger,
    tonumber,
    type_name,
    wrap_integer,
)
from .table import LuaTable

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .state import LuaState

NO_VALUES = LuaMultiReturn(())
MAX_STRING_SIZE = 1 << 31
MAX_UNPACK = 1_000_000

_REQUIRED = object()

ListBuiltin = Callable[[Sequence[Any], "LuaState"], Any]


def builtin(name: str, func: ListBuiltin) -> BuiltinFunction:
    """Adapt a ``func(args, state)`` helper to the stack calling protocol.

    The helper returns a single value or a :class:`LuaMultiReturn`.
    """

    def call(state: "LuaState") -> int:
        args = [state.to_raw(index) for index in range(1, state.get_top() + 1)]
        result = func(args, state)
        values = result.values if isinstance(result, LuaMultiReturn) else (result,)
        for value in values:
            state.push_raw(value)
        return len(values)

    return BuiltinFunction(name, call)


# --------------------------------------------------------------------------- #
# argument checks
# --------------------------------------------------------------------------- #
def _arg_error(state: "LuaState", position: int, message: str) -> LuaError:
    name = state.frames[-1].function_name if state.frames else "?"
    return LuaError(f"{state.where(1)}bad argument #{position} to '{name}' ({message})")


def _type_error(state: "LuaState", args: Sequence[Any], position: int, expected: str) -> LuaError:
    got = type_name(args[position - 1]) if len(args) >= position else "no value"
    return _arg_error(state, position, f"{expected} expected, got {got}")


def _check_any(state: "LuaState", args: Sequence[Any], position: int) -> Any:  # noqa: ANN401
    if len(args) < position:
        raise _arg_error(state, position, "value expected")
    return args[position - 1]


def _check_table(state: "LuaState", args: Sequence[Any], position: int) -> LuaTable:
    value = args[position - 1] if len(args) >= position else None
    if not isinstance(value, LuaTable):
        raise _type_error(state, args, position, "table")
    return value


def _check_number(state: "LuaState", args: Sequence[Any], position: int, default: Any = _REQUIRED) -> Any:  # noqa: ANN401
    value = args[position - 1] if len(args) >= position else None
    if value is None and default is not _REQUIRED:
        return default
    number = tonumber(value) if not isinstance(value, bool) else None
    if number is None:
        raise _type_error(state, args, position, "number")
    return number


def _check_integer(state: "LuaState", args: Sequence[Any], position: int, default: Any = _REQUIRED) -> Any:  # noqa: ANN401
    value = args[position - 1] if len(args) >= position else None
    if value is None and default is not _REQUIRED:
        return default
    number = _check_number(state, args, position)
    integer = tointeger(number)
    if integer is None:
        raise _arg_error(state, position, "number has no integer representation")
    return integer


def _check_string(state: "LuaState", args: Sequence[Any], position: int, default: Any = _REQUIRED) -> Any:  # noqa: ANN401
    value = args[position - 1] if len(args) >= position else None
    if value is None and default is not _REQUIRED:
        return default
    if isinstance(value, str):
        return value
    if is_number(value):
        return format_number(value)
    raise _type_error(state, args, position, "string")


# --------------------------------------------------------------------------- #
# base library
# --------------------------------------------------------------------------- #
def _lua_print(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    state.output.append("\t".join(state.tostring(value) for value in args))
    return NO_VALUES


def _lua_type(args: Sequence[Any], state: "LuaState") -> str:
    return type_name(_check_any(state, args, 1))


def _lua_tostring(args: Sequence[Any], state: "LuaState") -> str:
    return state.tostring(_check_any(state, args, 1))


def _lua_tonumber(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    if len(args) < 2 or args[1] is None:
        value = _check_any(state, args, 1)
        return None if isinstance(value, bool) else tonumber(value)
    base = _check_integer(state, args, 2)
    if not 2 <= base <= 36:
        raise _arg_error(state, 2, "base out of range")
    text = args[0]
    if not isinstance(text, str):
        raise _type_error(state, args, 1, "string")
    text = text.strip().lower()
    negative = text.startswith("-")
    if negative:
        text = text[1:]
    if not text or not text.isalnum():
        return None
    try:
        value = int(text, base)
    except ValueError:
        return None
    return -value if negative else value


def _lua_next(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    table = _check_table(state, args, 1)
    key = args[1] if len(args) > 1 else None
    entry = table.next(key)
    return LuaMultiReturn(entry if entry is not None else (None,))


def _create_pairs_builtin(next_builtin: BuiltinFunction) -> BuiltinFunction:
    def _pairs(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
        value = _check_any(state, args, 1)
        handler = state.metafield(value, "__pairs")
        if handler is not None:
            results = state.call_value(handler, [value])
            results = (list(results) + [None, None, None])[:3]
            return LuaMultiReturn(results)
        if not isinstance(value, LuaTable):
            raise _type_error(state, args, 1, "table")
        return LuaMultiReturn([next_builtin, value, None])

    return builtin("pairs", _pairs)


def _ipairs_iter(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    index = _check_integer(state, args, 2) + 1
    value = state.index(args[0], index)
    if value is None:
        return LuaMultiReturn([None])
    return LuaMultiReturn([index, value])


def _create_ipairs_builtin(iterator: BuiltinFunction) -> BuiltinFunction:
    def _ipairs(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
        return LuaMultiReturn([iterator, _check_any(state, args, 1), 0])

    return builtin("ipairs", _ipairs)


def _lua_select(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    selector = args[0] if args else None
    rest = list(args[1:])
    if selector == "#":
        return len(rest)
    index = _check_integer(state, args, 1)
    if index < 0:
        index = len(rest) + index
        if index < 0:
            raise _arg_error(state, 1, "index out of range")
        return LuaMultiReturn(rest[index:])
    if index == 0:
        raise _arg_error(state, 1, "index out of range")
    return LuaMultiReturn(rest[index - 1:])


def _lua_rawget(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    table = _check_table(state, args, 1)
    return table.raw_get(_check_any(state, args, 2))


def _lua_rawset(args: Sequence[Any], state: "LuaState") -> LuaTable:
    table = _check_table(state, args, 1)
    _check_any(state, args, 3)
    state.push_raw(table)
    state.push_raw(args[1])
    state.push_raw(args[2])
    state.raw_set(-3)
    state.pop()
    return table


def _lua_rawequal(args: Sequence[Any], state: "LuaState") -> bool:
    return raw_equal(_check_any(state, args, 1), _check_any(state, args, 2))


def _lua_rawlen(args: Sequence[Any], state: "LuaState") -> int:
    value = args[0] if args else None
    if isinstance(value, LuaTable):
        return value.length()
    if isinstance(value, str):
        return len(value)
    raise _arg_error(state, 1, "table or string expected")


def _lua_setmetatable(args: Sequence[Any], state: "LuaState") -> LuaTable:
    table = _check_table(state, args, 1)
    metatable = args[1] if len(args) > 1 else None
    if len(args) < 2 or (metatable is not None and not isinstance(metatable, LuaTable)):
        raise _type_error(state, args, 2, "nil or table")
    if table.metatable is not None and table.metatable.raw_get("__metatable") is not None:
        raise state.runtime_error("cannot change a protected metatable")
    state.attach_metatable(table, metatable)
    return table


def _lua_getmetatable(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    metatable = state.get_metatable_raw(_check_any(state, args, 1))
    if metatable is None:
        return None
    protected = metatable.raw_get("__metatable")
    return protected if protected is not None else metatable


def _lua_error(args: Sequence[Any], state: "LuaState") -> None:
    value = args[0] if args else None
    level = _check_integer(state, args, 2, 1)
    if isinstance(value, str) and level > 0:
        value = state.where(level) + value
    raise LuaError(value)


def _lua_assert(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    condition = _check_any(state, args, 1)
    if not is_truthy(condition):
        if len(args) > 1:
            raise LuaError(args[1])
        raise LuaError("assertion failed!")
    return LuaMultiReturn(list(args))


def _lua_pcall(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    func = _check_any(state, args, 1)
    try:
        results = state.call_value(func, list(args[1:]))
    except LuaError as exc:
        return LuaMultiReturn([False, exc.value])
    except RecursionError:
        return LuaMultiReturn([False, "stack overflow"])
    return LuaMultiReturn([True, *results])


def _lua_xpcall(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    func = _check_any(state, args, 1)
    handler = _check_any(state, args, 2)
    try:
        results = state.call_value(func, list(args[2:]))
    except LuaError as exc:
        error = exc.value
    except RecursionError:
        error = "stack overflow"
    else:
        return LuaMultiReturn([True, *results])
    return LuaMultiReturn([False, *state.call_value(handler, [error])])


def _lua_collectgarbage(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    option = _check_string(state, args, 1, "collect")
    if option == "collect":
        state.collect_garbage()
        return 0
    if option == "step":
        state.collect_garbage()
        return True
    if option == "count":
        return 0.0
    if option == "isrunning":
        return True
    raise _arg_error(state, 1, f"invalid option '{option}'")


def _lua_load(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    chunk = _check_any(state, args, 1)
    if isinstance(chunk, str):
        source = chunk
    elif state.is_callable(chunk):
        pieces: List[str] = []
        while True:
            results = state.call_value(chunk, [])
            piece = results[0] if results else None
            if piece is None or piece == "":
                break
            if not isinstance(piece, str):
                return LuaMultiReturn([None, "reader function must return a string"])
            pieces.append(piece)
        source = "".join(pieces)
    else:
        raise _type_error(state, args, 1, "string")
    chunkname = _check_string(state, args, 2, None)
    if chunkname is None:
        chunkname = source if isinstance(chunk, str) else "=(load)"
    env = args[3] if len(args) > 3 else None
    status = state.load_string(source, chunkname, env)
    result = state.to_raw(-1)
    state.pop()
    if status != 0:
        return LuaMultiReturn([None, result])
    return LuaMultiReturn([result])


# --------------------------------------------------------------------------- #
# string library
# --------------------------------------------------------------------------- #
def _string_position(position: int, length: int) -> int:
    if position >= 0:
        return position
    if -position > length:
        return 0
    return length + position + 1


def _string_len(args: Sequence[Any], state: "LuaState") -> int:
    return len(_check_string(state, args, 1))


def _string_sub(args: Sequence[Any], state: "LuaState") -> str:
    text = _check_string(state, args, 1)
    length = len(text)
    start = _string_position(_check_integer(state, args, 2, 1), length)
    stop = _string_position(_check_integer(state, args, 3, -1), length)
    start = max(start, 1)
    stop = min(stop, length)
    if start > stop:
        return ""
    return text[start - 1:stop]


def _string_upper(args: Sequence[Any], state: "LuaState") -> str:
    return _check_string(state, args, 1).upper()


def _string_lower(args: Sequence[Any], state: "LuaState") -> str:
    return _check_string(state, args, 1).lower()


def _string_rep(args: Sequence[Any], state: "LuaState") -> str:
    text = _check_string(state, args, 1)
    count = _check_integer(state, args, 2)
    separator = _check_string(state, args, 3, "")
    if count <= 0:
        return ""
    if (len(text) + len(separator)) * count > MAX_STRING_SIZE:
        raise state.runtime_error("resulting string too large")
    return separator.join([text] * count)


def _string_reverse(args: Sequence[Any], state: "LuaState") -> str:
    return _check_string(state, args, 1)[::-1]


def _string_byte(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    text = _check_string(state, args, 1)
    length = len(text)
    start = _string_position(_check_integer(state, args, 2, 1), length)
    stop = _string_position(_check_integer(state, args, 3, start), length)
    start = max(start, 1)
    stop = min(stop, length)
    return LuaMultiReturn([ord(char) for char in text[start - 1:stop]] if start <= stop else [])


def _string_char(args: Sequence[Any], state: "LuaState") -> str:
    chars = []
    for position in range(1, len(args) + 1):
        code = _check_integer(state, args, position)
        if not 0 <= code <= 255:
            raise _arg_error(state, position, "value out of range")
        chars.append(chr(code))
    return "".join(chars)


def _string_find(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    text = _check_string(state, args, 1)
    needle = _check_string(state, args, 2)
    init = _string_position(_check_integer(state, args, 3, 1), len(text))
    plain = len(args) > 3 and is_truthy(args[3])
    if not plain and any(char in needle for char in "^$*+?.([%-"):
        raise state.runtime_error("string.find supports plain searches only")
    init = max(init, 1)
    if init > len(text) + 1:
        return LuaMultiReturn([None])
    found = text.find(needle, init - 1)
    if found < 0:
        return LuaMultiReturn([None])
    return LuaMultiReturn([found + 1, found + len(needle)])


def _string_format(args: Sequence[Any], state: "LuaState") -> str:
    template = _check_string(state, args, 1)
    output: List[str] = []
    position = 1
    length = len(template)
    index = 0
    while index < length:
        char = template[index]
        if char != "%":
            output.append(char)
            index += 1
            continue
        index += 1
        if index < length and template[index] == "%":
            output.append("%")
            index += 1
            continue
        spec_start = index
        while index < length and template[index] in "-+ #0123456789.":
            index += 1
        if index >= length:
            raise state.runtime_error("invalid conversion '%' to 'format'")
        flags = template[spec_start:index]
        specifier = template[index]
        width, _, precision = flags.lstrip("-+ #0").partition(".")
        if len(width) > 2 or len(precision) > 2 or (width + precision and not (width + precision).isdigit()):
            raise state.runtime_error(f"invalid conversion '%{flags}{specifier}' to 'format'")
        index += 1
        position += 1
        if specifier in "di":
            formatted = ("%" + flags + "d") % _check_integer(state, args, position)
        elif specifier in "xXo":
            formatted = ("%" + flags + specifier) % (_check_integer(state, args, position) & INT_MASK)
        elif specifier in "eEfFgG":
            formatted = ("%" + flags + specifier) % float(_check_number(state, args, position))
        elif specifier == "c":
            code = _check_integer(state, args, position)
            if not 0 <= code <= 255:
                raise _arg_error(state, position, "value out of range")
            formatted = chr(code)
        elif specifier == "s":
            formatted = ("%" + flags + "s") % state.tostring(_check_any(state, args, position))
        elif specifier == "q":
            escaped = (
                _check_string(state, args, position)
                .replace("\\", "\\\\")
                .replace('"', '\\"')
                .replace("\n", "\\n")
                .replace("\r", "\\r")
                .replace("\0", "\\0")
            )
            formatted = f'"{escaped}"'
        else:
            raise state.runtime_error(f"invalid conversion '%{flags}{specifier}' to 'format'")
        output.append(formatted)
    return "".join(output)


# --------------------------------------------------------------------------- #
# table library
# --------------------------------------------------------------------------- #
def _table_insert(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    table = _check_table(state, args, 1)
    if len(args) == 2:
        table.append(args[1])
    elif len(args) == 3:
        position = _check_integer(state, args, 2)
        if not 1 <= position <= table.length() + 1:
            raise _arg_error(state, 2, "position out of bounds")
        table.insert(position, args[2])
    else:
        raise state.runtime_error("wrong number of arguments to 'insert'")
    return NO_VALUES


def _table_remove(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    table = _check_table(state, args, 1)
    size = table.length()
    position = _check_integer(state, args, 2, size)
    if position != size and not 1 <= position <= size + 1:
        raise _arg_error(state, 2, "position out of bounds")
    return table.remove(position)


def _table_concat(args: Sequence[Any], state: "LuaState") -> str:
    table = _check_table(state, args, 1)
    separator = _check_string(state, args, 2, "")
    start = _check_integer(state, args, 3, 1)
    stop = _check_integer(state, args, 4, table.length())
    parts = []
    for index in range(start, stop + 1):
        value = table.raw_get(index)
        if not isinstance(value, str) and not is_number(value):
            raise state.runtime_error(
                f"invalid value (at index {index}) in table for 'concat'"
            )
        parts.append(value if isinstance(value, str) else format_number(value))
    return separator.join(parts)


def _table_pack(args: Sequence[Any], state: "LuaState") -> LuaTable:
    table = LuaTable(len(args), 1)
    for index, value in enumerate(args, start=1):
        table.raw_set(index, value)
    table.raw_set("n", len(args))
    return table


def _table_unpack(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    table = _check_any(state, args, 1)
    start = _check_integer(state, args, 2, 1)
    stop = _check_integer(state, args, 3, None)
    if stop is None:
        stop = state.length(table)
    if stop < start:
        return NO_VALUES
    if stop - start >= MAX_UNPACK:
        raise state.runtime_error("too many results to unpack")
    return LuaMultiReturn([state.index(table, index) for index in range(start, stop + 1)])


def _table_sort(args: Sequence[Any], state: "LuaState") -> LuaMultiReturn:
    table = _check_table(state, args, 1)
    comparator = args[1] if len(args) > 1 else None
    if comparator is not None and not state.is_callable(comparator):
        raise _type_error(state, args, 2, "function")
    values = [table.raw_get(index) for index in range(1, table.length() + 1)]

    def less(left: Any, right: Any) -> bool:  # noqa: ANN401
        if comparator is None:
            return state.less_than(left, right)
        results = state.call_value(comparator, [left, right])
        return bool(results) and is_truthy(results[0])

    def compare(left: Any, right: Any) -> int:  # noqa: ANN401
        if less(left, right):
            return -1
        if less(right, left):
            return 1
        return 0

    values.sort(key=functools.cmp_to_key(compare))
    for index, value in enumerate(values, start=1):
        table.raw_set(index, value)
    return NO_VALUES


# --------------------------------------------------------------------------- #
# math library
# --------------------------------------------------------------------------- #
def _float_to_int(value: float) -> Any:  # noqa: ANN401
    if math.isfinite(value) and -(2 ** 63) <= value < 2 ** 63:
        return int(value)
    return value


def _math_floor(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    value = _check_number(state, args, 1)
    if isinstance(value, int) or not math.isfinite(value):
        return value
    return _float_to_int(float(math.floor(value)))


def _math_ceil(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    value = _check_number(state, args, 1)
    if isinstance(value, int) or not math.isfinite(value):
        return value
    return _float_to_int(float(math.ceil(value)))


def _math_abs(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    value = _check_number(state, args, 1)
    return wrap_integer(abs(value)) if isinstance(value, int) else abs(value)


def _math_sqrt(args: Sequence[Any], state: "LuaState") -> float:
    value = float(_check_number(state, args, 1))
    return math.sqrt(value) if value >= 0 else math.nan


def _math_min(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    best = _check_number(state, args, 1)
    for position in range(2, len(args) + 1):
        value = _check_number(state, args, position)
        if value < best:
            best = value
    return best


def _math_max(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    best = _check_number(state, args, 1)
    for position in range(2, len(args) + 1):
        value = _check_number(state, args, position)
        if value > best:
            best = value
    return best


def _math_fmod(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    left = _check_number(state, args, 1)
    right = _check_number(state, args, 2)
    if isinstance(left, int) and isinstance(right, int):
        if right == 0:
            raise _arg_error(state, 2, "zero")
        remainder = abs(left) % abs(right)
        return -remainder if left < 0 else remainder
    return math.fmod(float(left), float(right)) if right != 0 else math.nan


def _math_tointeger(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    value = args[0] if args else None
    return tointeger(value) if is_number(value) else None


def _math_type(args: Sequence[Any], state: "LuaState") -> Any:  # noqa: ANN401
    value = _check_any(state, args, 1)
    if not is_number(value):
        return None
    return "integer" if isinstance(value, int) else "float"


def _math_log(args: Sequence[Any], state: "LuaState") -> float:
    value = float(_check_number(state, args, 1))
    base = _check_number(state, args, 2, None)
    try:
        if base is None:
            return math.log(value)
        return math.log(value, float(base))
    except ValueError:
        return -math.inf if value == 0 else math.nan


def _math_exp(args: Sequence[Any], state: "LuaState") -> float:
    try:
        return math.exp(float(_check_number(state, args, 1)))
    except OverflowError:
        return math.inf


# --------------------------------------------------------------------------- #
# installation
# --------------------------------------------------------------------------- #
def _library(members: Dict[str, ListBuiltin]) -> LuaTable:
    table = LuaTable(0, len(members))
    for key, func in members.items():
        table.raw_set(key, builtin(key, func))
    return table


def install_stdlib(state: "LuaState") -> None:
    env = state.globals
    next_builtin = builtin("next", _lua_next)
    base: Dict[str, ListBuiltin] = {
        "print": _lua_print,
        "type": _lua_type,
        "tostring": _lua_tostring,
        "tonumber": _lua_tonumber,
        "select": _lua_select,
        "rawget": _lua_rawget,
        "rawset": _lua_rawset,
        "rawequal": _lua_rawequal,
        "rawlen": _lua_rawlen,
        "setmetatable": _lua_setmetatable,
        "getmetatable": _lua_getmetatable,
        "error": _lua_error,
        "assert": _lua_assert,
        "pcall": _lua_pcall,
        "xpcall": _lua_xpcall,
        "collectgarbage": _lua_collectgarbage,
        "load": _lua_load,
    }
    for name, func in base.items():
        env.raw_set(name, builtin(name, func))
    env.raw_set("next", next_builtin)
    env.raw_set("pairs", _create_pairs_builtin(next_builtin))
    env.raw_set("ipairs", _create_ipairs_builtin(builtin("ipairs_iterator", _ipairs_iter)))
    env.raw_set("_VERSION", "Lua 5.4")

    string_lib = _library(
        {
            "len": _string_len,
            "sub": _string_sub,
            "upper": _string_upper,
            "lower": _string_lower,
            "rep": _string_rep,
            "reverse": _string_reverse,
            "byte": _string_byte,
            "char": _string_char,
            "find": _string_find,
            "format": _string_format,
        },
    )
    env.raw_set("string", string_lib)
    string_meta = LuaTable()
    string_meta.raw_set("__index", string_lib)
    state.string_metatable = string_meta

    env.raw_set(
        "table",
        _library(
            {
                "insert": _table_insert,
                "remove": _table_remove,
                "concat": _table_concat,
                "pack": _table_pack,
                "unpack": _table_unpack,
                "sort": _table_sort,
            },
        ),
    )

    math_lib = _library(
        {
            "floor": _math_floor,
            "ceil": _math_ceil,
            "abs": _math_abs,
            "sqrt": _math_sqrt,
            "min": _math_min,
            "max": _math_max,
            "fmod": _math_fmod,
            "tointeger": _math_tointeger,
            "type": _math_type,
            "log": _math_log,
            "exp": _math_exp,
        },
    )
    math_lib.raw_set("pi", math.pi)
    math_lib.raw_set("huge", math.inf)
    math_lib.raw_set("maxinteger", (1 << 63) - 1)
    math_lib.raw_set("mininteger", -(1 << 63))
    env.raw_set("math", math_lib)


__all__ = ["NO_VALUES", "builtin", "install_stdlib"]
