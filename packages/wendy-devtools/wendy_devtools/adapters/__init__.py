"""Debugger backends that turn a launch request into a session descriptor.

Native (Swift) targets go through lldb-dap or CodeLLDB, chosen by the
``wendyos.debugger`` setting.  Script (Python) targets always attach
with debugpy.
"""

from wendy_devtools.adapters.base import DebugBackend, SessionTarget
from wendy_devtools.adapters.codelldb import CodeLLDBBackend
from wendy_devtools.adapters.debugpy import DebugpyBackend
from wendy_devtools.adapters.lldb_dap import LLDBDapBackend
from wendy_devtools.config import DEBUGGER_CODELLDB


def native_backend(name: str) -> DebugBackend:
    """Backend for the configured native debugger; lldb-dap by default."""
    if name == DEBUGGER_CODELLDB:
        return CodeLLDBBackend()
    return LLDBDapBackend()


__all__ = [
    "CodeLLDBBackend",
    "DebugBackend",
    "DebugpyBackend",
    "LLDBDapBackend",
    "SessionTarget",
    "native_backend",
]
