from .config import VMOptions
from .custom_type import CustomType
from .errors import CustomTypeError, LuaBridgeError, LuaRuntimeError, TypeGuardError
from .function import Function
from .references import ReferenceRegistry, StoredValue
from .table import Table
from .userdata import LightUserdata, Thread, Userdata
from .values import NIL, NONE, Boolean, Kind, Number, String, Value, to_value
from .vm import VirtualMachine

__all__ = [
    "Boolean",
    "CustomType",
    "CustomTypeError",
    "Function",
    "Kind",
    "LightUserdata",
    "LuaBridgeError",
    "LuaRuntimeError",
    "NIL",
    "NONE",
    "Number",
    "ReferenceRegistry",
    "StoredValue",
    "String",
    "Table",
    "Thread",
    "TypeGuardError",
    "Userdata",
    "Value",
    "VirtualMachine",
    "VMOptions",
    "to_value",
]
