"""Contracts for the collaborators the orchestrator talks to.

The orchestrator never touches an editor, a terminal or a debug adapter
directly.  Everything outside the core is reached through one of the
:class:`typing.Protocol` classes below, so the type checker flags API
drift between the core and a host integration at lint time, not at
runtime.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

LaunchDescriptor = dict[str, Any]
"""A single launch-configuration entry, as stored in ``launch.json``."""


# ---------------------------------------------------------------------------
# User interaction surface
# ---------------------------------------------------------------------------


@runtime_checkable
class UserInterface(Protocol):
    """Prompts and commands offered by the host editor.

    Every prompt returns ``None`` when the user dismisses it.  Callers
    must treat ``None`` as cancellation, never as a default answer.
    """

    async def show_info(self, message: str, *actions: str) -> str | None: ...
    async def show_warning(
        self, message: str, *actions: str, modal: bool = False
    ) -> str | None: ...
    async def show_error(self, message: str, *actions: str) -> str | None: ...

    async def pick(
        self, items: list[tuple[str, str]], placeholder: str = ""
    ) -> str | None:
        """Single choice from ``(label, description)`` pairs; returns the label."""
        ...

    async def input_text(
        self, prompt: str, placeholder: str = "", password: bool = False
    ) -> str | None: ...

    async def execute_command(self, command: str, *args: Any) -> None: ...


# ---------------------------------------------------------------------------
# Workspace and toolchain
# ---------------------------------------------------------------------------


@runtime_checkable
class WorkspaceHost(Protocol):
    """The editor's view of the open workspace."""

    def workspace_folders(self) -> list[str]:
        """Absolute paths of the folders currently open, queried fresh."""
        ...


@runtime_checkable
class ToolchainContext(Protocol):
    """Per-folder handle supplied by the native build-system integration."""

    async def executable_products(self) -> list[str]:
        """Names of the runnable targets the folder's package declares."""
        ...


@runtime_checkable
class ProjectClassifier(Protocol):
    async def is_managed_project(self, folder_path: str) -> bool:
        """Never raises; internal errors degrade to ``False``."""
        ...


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


@runtime_checkable
class ConfigurationStore(Protocol):
    """Read-modify-write access to the editor's persisted configuration.

    No optimistic concurrency control: the last writer wins.
    """

    def get(self, key: str, default: Any = None) -> Any: ...
    def update(self, key: str, value: Any) -> None: ...

    def get_launch_descriptors(self, folder_path: str) -> list[LaunchDescriptor]: ...
    def set_launch_descriptors(
        self, folder_path: str, descriptors: list[LaunchDescriptor]
    ) -> None: ...

    def get_manual_devices(self) -> list[dict[str, str]]: ...
    def set_manual_devices(self, devices: list[dict[str, str]]) -> None: ...

    def get_current_device_id(self) -> str | None: ...
    def set_current_device_id(self, device_id: str | None) -> None: ...
