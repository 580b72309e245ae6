from __future__ import annotations

from typing import Any, Type, TypeVar

from .errors import TypeGuardError
from .references import StoredValue
from .runtime.objects import Userdata as UserdataBox
from .values import Kind

T = TypeVar("T")


class Userdata(StoredValue):
    """Handle to a VM-owned userdata box.

    The box holds the host payload directly; it stays there until the type's
    ``__gc`` finalizer takes it out.
    """

    kind = Kind.USERDATA

    def box(self, type_name: str) -> UserdataBox:
        state = self.vm.state
        self.push()
        box = state.test_userdata(-1, type_name)
        state.pop()
        if box is None or box.finalized:
            raise TypeGuardError(Kind.USERDATA)
        return box

    def to_custom_type(self, cls: Type[T]) -> T:
        """Return the payload, checking that this userdata belongs to ``cls``'s custom type."""
        custom_type = self.vm.custom_type_for(cls)
        if custom_type is None:
            raise TypeGuardError(Kind.USERDATA)
        return self.box(custom_type.type_name).payload


class LightUserdata(StoredValue):
    kind = Kind.LIGHT_USERDATA

    @property
    def pointer(self) -> Any:  # noqa: ANN401 - any host object
        state = self.vm.state
        self.push()
        light = state.to_userdata(-1)
        state.pop()
        return light.pointer


class Thread(StoredValue):
    kind = Kind.THREAD


__all__ = ["LightUserdata", "Thread", "Userdata"]
