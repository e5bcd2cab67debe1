"""Native backend using the CodeLLDB extension.

CodeLLDB has no attach-by-command mode, so the session is a ``launch``
whose target and process creation are overridden with custom commands.
"""

from __future__ import annotations

from wendy_devtools.adapters.base import DebugBackend, SessionTarget
from wendy_devtools.protocol import LaunchDescriptor


class CodeLLDBBackend(DebugBackend):
    @property
    def debugger_type(self) -> str:
        return "lldb"

    def build(
        self, request: LaunchDescriptor, target: SessionTarget
    ) -> LaunchDescriptor:
        descriptor = dict(request)
        descriptor["type"] = self.debugger_type
        descriptor["request"] = "launch"
        descriptor["agent"] = target.device.address
        descriptor["targetCreateCommands"] = [
            f"target create {self._binary_path(target.folder_path, request['target'])}",
            *self._sdk_commands(target.sdk_path),
        ]
        descriptor["processCreateCommands"] = [
            f"gdb-remote {target.remote_address}",
        ]
        return descriptor
