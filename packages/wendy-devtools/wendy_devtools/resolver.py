"""Turn a ``wendy`` launch request into a debugger-specific session.

Resolution checks its preconditions in order (SDK path configured, SDK
path present on disk, device selected).  Native sessions also need a
target, checked last.  Any unmet precondition shows a prompt, usually
with a remediation action, and cancels the session by returning ``None``;
it is never an exception.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Callable

from wendy_devtools.adapters import DebugpyBackend, SessionTarget, native_backend
from wendy_devtools.config import (
    CMD_ADD_DEVICE,
    CMD_CONFIGURE_SDK,
    CMD_SHOW_DEVICES,
    DEFAULT_DEBUG_PORT,
    SCRIPT_DEBUG_PORT,
    SCRIPT_SETTLE_DELAY,
    Settings,
)
from wendy_devtools.devices import DeviceRegistry
from wendy_devtools.models import Device, RuntimeLanguage
from wendy_devtools.protocol import ConfigurationStore, LaunchDescriptor, UserInterface
from wendy_devtools.tasks import run_task_label

logger = logging.getLogger(__name__)

_ACTION_CONFIGURE_SDK = "Configure Swift SDK Path"
_ACTION_ADD_DEVICE = "Add Device"
_ACTION_SELECT_DEVICE = "Select Device"
_ACTION_CANCEL = "Cancel"

FolderLanguage = Callable[[str], RuntimeLanguage | None]


def ensure_debug_port(address: str, port: int = DEFAULT_DEBUG_PORT) -> str:
    """Return ``host:port`` for *address*.

    An existing port is always replaced, even if it already equals *port*.
    """
    if ":" in address:
        host = address.split(":")[0]
        return f"{host}:{port}"
    return f"{address}:{port}"


class SessionResolver:
    """Resolves launch requests against the current device and settings.

    *folder_language* lets the resolver ask the workspace what kind of
    folder a request belongs to when the request itself does not say.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        registry: DeviceRegistry,
        ui: UserInterface,
        folder_language: FolderLanguage | None = None,
        settle_delay: float = SCRIPT_SETTLE_DELAY,
    ) -> None:
        self._store = store
        self._registry = registry
        self._ui = ui
        self._folder_language = folder_language
        self._settle_delay = settle_delay

    async def resolve(
        self, folder_path: str | None, request: LaunchDescriptor
    ) -> LaunchDescriptor | None:
        """Return the session descriptor, or ``None`` to cancel."""
        folder = os.path.abspath(folder_path or request.get("cwd") or os.getcwd())
        language = self._language_of(folder, request)
        settings = Settings.from_store(self._store)

        sdk_path = ""
        if language is RuntimeLanguage.NATIVE:
            resolved_sdk = await self._check_sdk_path(settings)
            if resolved_sdk is None:
                return None
            sdk_path = resolved_sdk

        device = await self._check_device()
        if device is None:
            return None

        if language is RuntimeLanguage.NATIVE and not request.get("target"):
            await self._ui.show_error(
                "The launch configuration does not name a target to debug."
            )
            return None

        request = dict(request)
        if not request.get("preLaunchTask") and request.get("target"):
            request["preLaunchTask"] = run_task_label(request["target"])

        if language is RuntimeLanguage.SCRIPT:
            # Give the freshly started debugpy server time to listen.
            await asyncio.sleep(self._settle_delay)
            target = SessionTarget(
                folder_path=folder,
                device=device,
                remote_address=ensure_debug_port(device.address, SCRIPT_DEBUG_PORT),
            )
            descriptor = DebugpyBackend().build(request, target)
        else:
            target = SessionTarget(
                folder_path=folder,
                device=device,
                remote_address=ensure_debug_port(device.address),
                sdk_path=sdk_path,
            )
            descriptor = native_backend(settings.debugger).build(request, target)

        logger.info("Resolved debug configuration:\n%s", json.dumps(descriptor, indent=2))
        return descriptor

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    async def _check_sdk_path(self, settings: Settings) -> str | None:
        sdk_path = settings.swift_sdk_path
        if not sdk_path:
            await self._prompt_configure_sdk(
                "Swift SDK path is not set. This is required for debugging "
                "WendyOS applications."
            )
            return None

        try:
            return os.path.realpath(os.path.expanduser(sdk_path), strict=True)
        except OSError as exc:
            await self._prompt_configure_sdk(
                f'The configured Swift SDK path "{sdk_path}" does not exist: '
                f"{exc.strerror or exc}"
            )
            return None

    async def _prompt_configure_sdk(self, message: str) -> None:
        choice = await self._ui.show_error(message, _ACTION_CONFIGURE_SDK, _ACTION_CANCEL)
        if choice == _ACTION_CONFIGURE_SDK:
            await self._ui.execute_command(CMD_CONFIGURE_SDK)

    async def _check_device(self) -> Device | None:
        device = await self._registry.get_current_device()
        if device is not None:
            return device

        choice = await self._ui.show_error(
            "No WendyOS device is selected. You must select a device before debugging.",
            _ACTION_ADD_DEVICE,
            _ACTION_SELECT_DEVICE,
            _ACTION_CANCEL,
        )
        if choice == _ACTION_ADD_DEVICE:
            await self._ui.execute_command(CMD_ADD_DEVICE)
        elif choice == _ACTION_SELECT_DEVICE:
            await self._ui.execute_command(CMD_SHOW_DEVICES)
        return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _language_of(self, folder: str, request: LaunchDescriptor) -> RuntimeLanguage:
        runtime = request.get("runtime")
        if runtime:
            try:
                return RuntimeLanguage(runtime)
            except ValueError:
                logger.warning("Unknown runtime %r, treating as native", runtime)
                return RuntimeLanguage.NATIVE

        if self._folder_language is not None:
            language = self._folder_language(folder)
            if language is not None:
                return language
        return RuntimeLanguage.NATIVE
