from __future__ import annotations

from typing import Any


class LuaError(RuntimeError):
    """Error travelling through the runtime up to the nearest protected call.

    ``value`` is the raw Lua error object (usually a string) exactly as it was
    passed to ``error`` or raised by the runtime.
    """

    def __init__(self, value: Any) -> None:  # noqa: ANN401 - any Lua value
        super().__init__(value if isinstance(value, str) else repr(value))
        self.value = value


class LuaSyntaxError(LuaError):
    pass


class OperandError(LuaError):
    """Operator applied to an unsuitable operand; ``index`` names the culprit (0 or 1)."""

    def __init__(self, message: str, index: int) -> None:
        super().__init__(message)
        self.index = index


__all__ = ["LuaError", "LuaSyntaxError", "OperandError"]
