from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Generic, List, Optional, Sequence, Type, TypeVar

from .errors import TypeGuardError
from .table import Table
from .userdata import Userdata
from .values import Boolean, Kind, Value

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .runtime.objects import Userdata as UserdataBox
    from .vm import VirtualMachine

logger = logging.getLogger(__name__)

T = TypeVar("T")

MethodCallback = Callable[[T, List[Value]], object]
FunctionCallback = Callable[[List[Value]], object]


def lua_type_name(cls: type) -> str:
    """Name a host class is registered under: ``cls.lua_type_name()`` or ``cls.__name__``."""
    custom = getattr(cls, "lua_type_name", None)
    if callable(custom):
        return custom()
    return cls.__name__


class CustomType(Table, Generic[T]):
    """Metatable for instances of host class ``T``.

    The table is its own metatable and its own ``__index``, so members are
    reachable from both the type object and every instance. ``gc`` receives
    the payload when an instance is finalized; ``eq`` decides ``==`` between
    two instances.
    """

    def __init__(self, vm: "VirtualMachine", cls: Type[T], type_name: str):
        vm.state.new_table()
        super().__init__(vm)
        self.cls = cls
        self.type_name = type_name
        self.gc: Optional[Callable[[T], None]] = None
        self.eq: Optional[Callable[[T, T], bool]] = None

    def method(self, name: str, fn: MethodCallback) -> None:
        """Register ``fn(instance, args)``; the receiver is unwrapped to ``T``."""
        self[name] = self.vm.create_function(self._dispatch(fn, bind_self=True))

    def function(self, name: str, fn: FunctionCallback) -> None:
        """Register a static ``fn(args)``."""
        self[name] = self.vm.create_function(self._dispatch(fn, bind_self=False))

    def _dispatch(self, fn: Callable, *, bind_self: bool) -> FunctionCallback:
        def trampoline(args: List[Value]) -> object:
            if not bind_self:
                return fn(args)
            if not args:
                raise TypeGuardError(Kind.USERDATA)
            return fn(self.unwrap_payload(args[0]), args[1:])

        return trampoline

    def _box(self, value: Value) -> "UserdataBox":
        return Userdata.unwrap(self.vm, value).box(self.type_name)

    def unwrap_payload(self, value: Value) -> T:
        return self._box(value).payload

    def install(self) -> None:
        """Wire the metatable slots once ``setup`` has populated the members."""
        vm = self.vm
        vm.registry[self.type_name] = self
        self.become_metatable_for(self)
        self["__index"] = self
        self["__name"] = self.type_name
        self["__gc"] = vm.create_function(self._finalize)
        if self.eq is not None:
            self["__eq"] = vm.create_function(self._equals)
        logger.debug("registered custom type %s", self.type_name)

    def _finalize(self, args: Sequence[Value]) -> None:
        payload = self._box(args[0]).deinitialize()
        if self.gc is not None:
            self.gc(payload)

    def _equals(self, args: Sequence[Value]) -> Boolean:
        left = self.unwrap_payload(args[0])
        right = self.unwrap_payload(args[1])
        return Boolean(bool(self.eq(left, right)))


__all__ = ["CustomType", "lua_type_name"]
