"""Abstract base for debugger backends."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from wendy_devtools.config import BUILD_SUBDIR, SDK_MODULE_SUBPATH
from wendy_devtools.models import Device
from wendy_devtools.protocol import LaunchDescriptor


@dataclass(frozen=True)
class SessionTarget:
    """Everything a backend needs beyond the incoming request."""

    folder_path: str
    device: Device
    remote_address: str
    sdk_path: str = ""


class DebugBackend(ABC):
    """Base class for debugger-specific descriptor builders.

    Each subclass knows how to turn a ``wendy`` launch request into the
    session descriptor its debug adapter understands.
    """

    @property
    @abstractmethod
    def debugger_type(self) -> str:
        """Value written to the descriptor's ``type`` field."""

    @abstractmethod
    def build(
        self, request: LaunchDescriptor, target: SessionTarget
    ) -> LaunchDescriptor:
        """Return a new descriptor; *request* is left untouched."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _binary_path(folder_path: str, target_name: str) -> str:
        return os.path.join(folder_path, BUILD_SUBDIR, target_name)

    @staticmethod
    def _sdk_commands(sdk_path: str) -> list[str]:
        return [
            f'settings set target.sdk-path "{sdk_path}"',
            'settings set target.swift-module-search-paths '
            f'"{os.path.join(sdk_path, SDK_MODULE_SUBPATH)}"',
        ]
