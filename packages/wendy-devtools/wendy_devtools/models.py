"""Plain data records shared across the orchestrator."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wendy_devtools.protocol import ToolchainContext


class InterfaceKind(str, enum.Enum):
    ETHERNET = "Ethernet"
    USB = "USB"
    LAN = "LAN"
    MANUAL = "Custom"


@dataclass(frozen=True)
class Device:
    """A device the user can deploy to.

    ``address`` is ``hostname`` or ``hostname:port``.
    """

    id: str
    address: str
    name: str
    interface: InterfaceKind
    agent_version: str | None = None

    @property
    def host(self) -> str:
        return self.address.split(":")[0]


class ClassificationState(str, enum.Enum):
    UNCLASSIFIED = "unclassified"
    NOT_MANAGED = "not-managed"
    MANAGED = "managed"


class RuntimeLanguage(str, enum.Enum):
    NATIVE = "swift"
    SCRIPT = "python"


@dataclass
class ManagedFolder:
    """Orchestrator state for one workspace folder, keyed by its path.

    Folders without a toolchain context are script projects.
    """

    path: str
    toolchain: ToolchainContext | None = None
    classification: ClassificationState = ClassificationState.UNCLASSIFIED
    configs_synthesized: bool = False
    disposed: bool = field(default=False, compare=False)

    @property
    def name(self) -> str:
        return os.path.basename(os.path.normpath(self.path)) or self.path

    @property
    def language(self) -> RuntimeLanguage:
        if self.toolchain is None:
            return RuntimeLanguage.SCRIPT
        return RuntimeLanguage.NATIVE

    def dispose(self) -> None:
        self.disposed = True
