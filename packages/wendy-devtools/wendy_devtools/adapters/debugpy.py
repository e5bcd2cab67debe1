"""Script backend using debugpy.

``wendy run --debug`` starts the app on the device under a debugpy
server listening on a fixed port; the session simply attaches to it and
maps the local folder onto the container's working directory.
"""

from __future__ import annotations

from wendy_devtools.adapters.base import DebugBackend, SessionTarget
from wendy_devtools.config import SCRIPT_REMOTE_ROOT
from wendy_devtools.protocol import LaunchDescriptor


class DebugpyBackend(DebugBackend):
    @property
    def debugger_type(self) -> str:
        return "debugpy"

    def build(
        self, request: LaunchDescriptor, target: SessionTarget
    ) -> LaunchDescriptor:
        host, _, port = target.remote_address.partition(":")
        descriptor = dict(request)
        descriptor["type"] = self.debugger_type
        descriptor["request"] = "attach"
        descriptor["connect"] = {"host": host, "port": int(port)}
        descriptor["pathMappings"] = [
            {"localRoot": target.folder_path, "remoteRoot": SCRIPT_REMOTE_ROOT},
        ]
        descriptor["justMyCode"] = True
        return descriptor
