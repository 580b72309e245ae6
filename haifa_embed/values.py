from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Type, TypeVar, Union

from .errors import TypeGuardError

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .vm import VirtualMachine

V = TypeVar("V", bound="Value")


class Kind(enum.Enum):
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    FUNCTION = "Function"
    TABLE = "Table"
    USERDATA = "Userdata"
    LIGHT_USERDATA = "LightUserdata"
    THREAD = "Thread"
    NIL = "Nil"
    NONE = "NoValue"


class Value:
    """A Lua value as seen from the host.

    Scalars are immutable dataclasses; tables, functions, userdata and threads
    are :class:`~haifa_embed.references.StoredValue` handles into the VM.
    """

    kind: ClassVar[Kind]

    @classmethod
    def unwrap(cls: Type[V], vm: "VirtualMachine", value: "Value") -> V:
        if not isinstance(value, cls):
            raise TypeGuardError(cls.kind)
        return value


@dataclass(frozen=True)
class String(Value):
    value: str
    kind: ClassVar[Kind] = Kind.STRING

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Number(Value):
    value: Union[int, float]
    kind: ClassVar[Kind] = Kind.NUMBER

    @property
    def is_integer(self) -> bool:
        return isinstance(self.value, int) or self.value.is_integer()

    def to_integer(self) -> int:
        if not self.is_integer:
            raise ValueError(f"{self.value!r} has no integer representation")
        return int(self.value)

    def to_float(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Boolean(Value):
    value: bool
    kind: ClassVar[Kind] = Kind.BOOLEAN

    def __bool__(self) -> bool:
        return self.value


class _Nil(Value):
    kind = Kind.NIL

    def __repr__(self) -> str:
        return "NIL"

    def __bool__(self) -> bool:
        return False


class _NoValue(Value):
    kind = Kind.NONE

    def __repr__(self) -> str:
        return "NONE"

    def __bool__(self) -> bool:
        return False


NIL = _Nil()
NONE = _NoValue()


def to_value(obj: Any) -> Value:  # noqa: ANN401 - any host scalar
    """Coerce a host scalar into its :class:`Value` variant."""
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return NIL
    if isinstance(obj, bool):
        return Boolean(obj)
    if isinstance(obj, (int, float)):
        return Number(obj)
    if isinstance(obj, str):
        return String(obj)
    raise TypeError(f"cannot convert {type(obj).__name__} to a Lua value")


__all__ = [
    "Boolean",
    "Kind",
    "NIL",
    "NONE",
    "Number",
    "String",
    "Value",
    "to_value",
]
