"""Native backend using lldb-dap.

lldb-dap ships with the Swift toolchain.  It attaches to the
``lldb-server`` the agent starts on the device: the SDK is configured
during ``initCommands`` and the remote connection is made during
``attachCommands``.
"""

from __future__ import annotations

from wendy_devtools.adapters.base import DebugBackend, SessionTarget
from wendy_devtools.config import DEBUGGER_LLDB_DAP
from wendy_devtools.protocol import LaunchDescriptor


class LLDBDapBackend(DebugBackend):
    @property
    def debugger_type(self) -> str:
        return DEBUGGER_LLDB_DAP

    def build(
        self, request: LaunchDescriptor, target: SessionTarget
    ) -> LaunchDescriptor:
        descriptor = dict(request)
        descriptor["type"] = self.debugger_type
        descriptor["request"] = "attach"
        descriptor["initCommands"] = self._sdk_commands(target.sdk_path)
        descriptor["attachCommands"] = [
            f"target create {self._binary_path(target.folder_path, request['target'])}",
            f"gdb-remote {target.remote_address}",
        ]
        return descriptor
