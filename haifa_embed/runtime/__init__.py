from .errors import LuaError, LuaSyntaxError
from .objects import LuaType
from .state import MULTRET, REGISTRY_INDEX, RIDX_GLOBALS, RIDX_MAINTHREAD, LuaState, Status
from .table import LuaTable

__all__ = [
    "LuaError",
    "LuaState",
    "LuaSyntaxError",
    "LuaTable",
    "LuaType",
    "MULTRET",
    "REGISTRY_INDEX",
    "RIDX_GLOBALS",
    "RIDX_MAINTHREAD",
    "Status",
]
