from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .runtime.state import DEFAULT_MAX_CALL_DEPTH

ErrorHandler = Callable[[str], None]


@dataclass(frozen=True)
class VMOptions:
    """Construction options for :class:`~haifa_embed.vm.VirtualMachine`.

    ``check_references`` turns double releases and use-after-release of
    registry handles into :class:`ReferenceError`. ``error_handler`` receives
    every Lua error message before it is raised on the host side; ``None``
    selects :func:`haifa_embed.errors.default_error_handler`.
    """

    open_libs: bool = True
    check_references: bool = True
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    error_handler: Optional[ErrorHandler] = None


__all__ = ["ErrorHandler", "VMOptions"]
