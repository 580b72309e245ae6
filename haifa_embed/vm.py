from __future__ import annotations

import contextlib
import logging
import pathlib
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar, Union

from .bridge import ValueBridge
from .config import VMOptions
from .custom_type import CustomType, lua_type_name
from .errors import CustomTypeError, LuaRuntimeError, default_error_handler
from .function import Function
from .references import ReferenceRegistry
from .runtime.errors import LuaError
from .runtime.objects import LuaType
from .runtime.state import REGISTRY_INDEX, RIDX_GLOBALS, RIDX_MAINTHREAD, LuaState, Status
from .table import Table
from .userdata import LightUserdata, Thread, Userdata
from .values import NIL, Value

logger = logging.getLogger(__name__)

T = TypeVar("T")

HostFunction = Callable[[List[Value]], object]
Source = Union[str, pathlib.Path]


def _as_results(result: object) -> Sequence[object]:
    if result is None:
        return ()
    if isinstance(result, (list, tuple)):
        return result
    return (result,)


class VirtualMachine:
    """A Lua state plus the host-side machinery to talk to it.

    >>> with VirtualMachine() as vm:
    ...     vm.eval("return 1 + 1")
    [Number(value=2)]
    """

    def __init__(self, open_libs: Optional[bool] = None, *, options: Optional[VMOptions] = None):
        self.options = options or VMOptions()
        self.state = LuaState(max_call_depth=self.options.max_call_depth)
        self.error_handler: Callable[[str], None] = self.options.error_handler or default_error_handler
        self.closed = False
        self.references = ReferenceRegistry(self)
        self.state.collector.before_collect.append(self.references.drain)
        self.bridge = ValueBridge(self)
        self._custom_types: Dict[type, CustomType] = {}
        if open_libs is None:
            open_libs = self.options.open_libs
        if open_libs:
            self.state.open_libs()
        self.state.raw_get_i(REGISTRY_INDEX, RIDX_GLOBALS)
        self.globals = Table(self)
        logger.debug("created VirtualMachine (open_libs=%s)", open_libs)

    # ------------------------------------------------------------- roots
    @property
    def registry(self) -> Table:
        self.state.push_value(REGISTRY_INDEX)
        return Table(self)

    @property
    def main_thread(self) -> Thread:
        self.state.raw_get_i(REGISTRY_INDEX, RIDX_MAINTHREAD)
        return Thread(self)

    @property
    def output(self) -> List[str]:
        """Lines written by Lua ``print``."""
        return self.state.output

    # ------------------------------------------------------------ errors
    def pop_error(self) -> LuaRuntimeError:
        """Pop the error object on top of the stack, report it, and return the host error."""
        state = self.state
        kind = state.type(-1)
        if kind in (LuaType.STRING, LuaType.NUMBER):
            message = state.to_string(-1)
        else:
            message = f"(error object is a {state.type_name(kind)} value)"
        state.pop()
        return self._report(message)

    def _report(self, message: str) -> LuaRuntimeError:
        self.error_handler(message)
        return LuaRuntimeError(message)

    @contextlib.contextmanager
    def stack_guard(self) -> Iterator[None]:
        """Restore the stack depth on any failure and surface Lua errors as :class:`LuaRuntimeError`."""
        state = self.state
        top = state.get_top()
        try:
            yield
        except LuaError as exc:
            state.set_top(top)
            state.push_raw(exc.value)
            raise self.pop_error() from None
        except BaseException:
            state.set_top(top)
            raise

    # --------------------------------------------------------- functions
    def create_function(
        self, body: Union[Source, HostFunction], name: str = "?", *, chunkname: Optional[str] = None
    ) -> Function:
        """Load a chunk (source text or file) or wrap a host callable.

        A host callable receives the arguments as a list of :class:`Value`
        and returns a list/tuple of results, a single result, or ``None``.
        Exceptions it raises become Lua errors at the call site.
        """
        state = self.state
        if isinstance(body, pathlib.Path):
            status = state.load_file(body)
        elif isinstance(body, str):
            status = state.load_string(body, chunkname)
        else:
            state.push_builtin(self._trampoline(body), name)
            return Function(self)
        if status != Status.OK:
            raise self.pop_error()
        return Function(self)

    def _trampoline(self, body: HostFunction) -> Callable[[LuaState], int]:
        bridge = self.bridge

        def call(state: LuaState) -> int:
            args = bridge.pop_values(state.get_top())
            try:
                results = _as_results(body(args))
                for result in results:
                    bridge.push(result)
            except Exception as exc:  # noqa: BLE001 - any host failure becomes a Lua error
                message = str(exc) or type(exc).__name__
            else:
                return len(results)
            state.set_top(0)
            state.push_string(message)
            state.error()

        return call

    def eval(self, source: Source, args: Iterable[object] = (), *, chunkname: Optional[str] = None) -> List[Value]:
        function = self.create_function(source, chunkname=chunkname)
        try:
            return function.call(args)
        finally:
            function.release()

    # ------------------------------------------------------------ tables
    def create_table(self, sequence_capacity: int = 0, key_capacity: int = 0) -> Table:
        self.state.new_table(sequence_capacity, key_capacity)
        return Table(self)

    def create_table_from(self, contents: Union[Mapping, Sequence]) -> Table:
        """Build a table from a mapping or a sequence (keys ``1..n``); nested containers recurse."""
        if isinstance(contents, Mapping):
            items: Iterable = contents.items()
            table = self.create_table(0, len(contents))
        else:
            items = enumerate(contents, start=1)
            table = self.create_table(len(contents), 0)
        for key, value in items:
            table[key] = self._coerce(value)
        return table

    def _coerce(self, value: Any) -> Any:  # noqa: ANN401 - host value
        if isinstance(value, (Mapping, list, tuple)):
            return self.create_table_from(value)
        return value

    # ------------------------------------------------------ custom types
    def create_custom_type(self, cls: Type[T], setup: Callable[[CustomType[T]], None]) -> CustomType[T]:
        """Register ``cls`` as a Lua type; ``setup`` fills in members, ``gc`` and ``eq``."""
        type_name = lua_type_name(cls)
        if cls in self._custom_types or self.registry[type_name] is not NIL:
            raise CustomTypeError(f"custom type {type_name!r} is already registered")
        custom_type: CustomType[T] = CustomType(self, cls, type_name)
        try:
            setup(custom_type)
        except Exception as exc:  # noqa: BLE001 - setup failures are reported like Lua errors
            custom_type.release()
            raise self._report(str(exc) or type(exc).__name__) from exc
        custom_type.install()
        self._custom_types[cls] = custom_type
        return custom_type

    def custom_type_for(self, cls: type) -> Optional[CustomType]:
        for klass in cls.__mro__:
            custom_type = self._custom_types.get(klass)
            if custom_type is not None:
                return custom_type
        return None

    def create_userdata(self, value: T) -> Userdata:
        custom_type = self.custom_type_for(type(value))
        if custom_type is None:
            raise CustomTypeError(f"{type(value).__name__} is not a registered custom type")
        self.state.new_userdata(value)
        self.state.set_metatable_by_name(custom_type.type_name)
        return Userdata(self)

    def create_userdata_maybe(self, value: Optional[T]) -> Union[Userdata, Value]:
        if value is None:
            return NIL
        return self.create_userdata(value)

    def create_light_userdata(self, obj: object) -> LightUserdata:
        self.state.push_light_userdata(obj)
        return LightUserdata(self)

    # ---------------------------------------------------------- lifetime
    def collect_garbage(self) -> int:
        """Run a full collection; returns how many userdata were finalized."""
        return self.state.collect_garbage()

    def close(self) -> None:
        if self.closed:
            return
        self.references.drain()
        self.state.close()
        self.closed = True
        logger.debug("closed VirtualMachine")

    def __enter__(self) -> "VirtualMachine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["VirtualMachine"]
