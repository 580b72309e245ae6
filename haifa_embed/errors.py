from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .values import Kind

logger = logging.getLogger("haifa_embed")


class LuaBridgeError(Exception):
    """Base class for errors raised by the host side of the bridge."""


class TypeGuardError(LuaBridgeError, TypeError):
    """A value's kind did not match the kind the caller asked for."""

    def __init__(self, kind: "Kind"):
        super().__init__(f"expected {kind.value}")
        self.kind = kind


class LuaRuntimeError(LuaBridgeError):
    """Failure inside the VM surfaced to the host: load, runtime or host-closure error."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CustomTypeError(LuaBridgeError):
    pass


def default_error_handler(message: str) -> None:
    logger.error("Lua error: %s", message)


__all__ = [
    "CustomTypeError",
    "LuaBridgeError",
    "LuaRuntimeError",
    "TypeGuardError",
    "default_error_handler",
]
