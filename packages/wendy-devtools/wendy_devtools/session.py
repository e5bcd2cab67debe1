"""High-level workspace session that wires the orchestrator together.

``WorkspaceSession`` is the single entry-point consumed by both:

* **MCP server** -- keeps one session in memory (long-running process).
* **Console script** -- builds a session per invocation; all durable
  state lives in the settings file and the folders' launch.json.

All public methods return **plain-text strings**.  Errors come back as
``"Error: ..."`` lines instead of exceptions.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from wendy_devtools.classifier import WendyProjectClassifier
from wendy_devtools.cli import CLIError, WendyCLI
from wendy_devtools.config import (
    CMD_CONFIGURE_SDK,
    SCRIPT_SETTLE_DELAY,
    TIMEOUT_FOLDERS_READY,
    Settings,
)
from wendy_devtools.devices import DeviceError, DeviceRegistry
from wendy_devtools.events import Channel, FolderEvent
from wendy_devtools.formatters import (
    format_descriptor,
    format_device,
    format_devices,
    format_folders,
    format_run_task,
)
from wendy_devtools.models import RuntimeLanguage
from wendy_devtools.protocol import (
    ConfigurationStore,
    LaunchDescriptor,
    ProjectClassifier,
    UserInterface,
)
from wendy_devtools.readiness import ReadinessCoordinator
from wendy_devtools.resolver import SessionResolver
from wendy_devtools.store import ConfigurationError, JsonConfigurationStore
from wendy_devtools.synthesizer import ConfigSynthesizer, is_own_descriptor, make_descriptor
from wendy_devtools.tasks import SCRIPT_TARGET, RunTask, provide_run_tasks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Host stand-ins for running outside an editor
# ---------------------------------------------------------------------------


class StaticWorkspaceHost:
    """A workspace whose folder list is fixed at construction."""

    def __init__(self, folders: list[str]) -> None:
        self._folders = [os.path.abspath(f) for f in folders]

    def workspace_folders(self) -> list[str]:
        return list(self._folders)


class HeadlessUserInterface:
    """Records every notification and dismisses every prompt.

    Suitable where nobody can answer a prompt interactively: each prompt
    returns ``None``, which callers treat as cancellation.
    """

    def __init__(self) -> None:
        self.notifications: list[str] = []
        self.commands: list[str] = []

    async def show_info(self, message: str, *actions: str) -> str | None:
        return self._record("info", message)

    async def show_warning(
        self, message: str, *actions: str, modal: bool = False
    ) -> str | None:
        return self._record("warning", message)

    async def show_error(self, message: str, *actions: str) -> str | None:
        return self._record("error", message)

    async def pick(
        self, items: list[tuple[str, str]], placeholder: str = ""
    ) -> str | None:
        return None

    async def input_text(
        self, prompt: str, placeholder: str = "", password: bool = False
    ) -> str | None:
        return None

    async def execute_command(self, command: str, *args: Any) -> None:
        self.commands.append(command)

    def drain(self) -> list[str]:
        pending, self.notifications = self.notifications, []
        return pending

    def _record(self, level: str, message: str) -> None:
        logger.info("[%s] %s", level, message)
        self.notifications.append(f"[{level}] {message}")


# ---------------------------------------------------------------------------
# WorkspaceSession
# ---------------------------------------------------------------------------


class WorkspaceSession:
    """One running orchestrator: devices, folders and debug resolution.

    Usage::

        session = await WorkspaceSession.create(folders=["~/src/app"])
        print(await session.start())
        print(await session.add_device("10.0.0.5"))
        print(await session.resolve("~/src/app", "App"))
        print(await session.stop())
    """

    def __init__(
        self,
        store: ConfigurationStore,
        ui: UserInterface,
        cli: WendyCLI | None = None,
        folders: list[str] | None = None,
        toolchain: Channel[FolderEvent] | None = None,
        classifier: ProjectClassifier | None = None,
        fallback_timeout: float = TIMEOUT_FOLDERS_READY,
        settle_delay: float = SCRIPT_SETTLE_DELAY,
    ) -> None:
        self.store = store
        self.ui = ui
        self.cli = cli
        self.host = StaticWorkspaceHost(folders or [])
        self._has_toolchain = toolchain is not None
        self._warned_missing_sdk = False

        self.registry = DeviceRegistry(store, ui, cli)
        self.synthesizer = ConfigSynthesizer(store)
        self.coordinator = ReadinessCoordinator(
            self.host,
            classifier or WendyProjectClassifier(cli),
            self.synthesizer,
            ui,
            toolchain=toolchain,
            fallback_timeout=fallback_timeout,
        )
        self.resolver = SessionResolver(
            store,
            self.registry,
            ui,
            folder_language=self._folder_language,
            settle_delay=settle_delay,
        )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        settings_file: str | None = None,
        folders: list[str] | None = None,
        ui: UserInterface | None = None,
    ) -> WorkspaceSession:
        """Build a session on the JSON store, locating the ``wendy`` CLI."""
        store = JsonConfigurationStore(settings_file)
        cli = await WendyCLI.create(Settings.from_store(store).cli_path)
        return cls(store, ui or HeadlessUserInterface(), cli, folders)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> str:
        """Arm the readiness barrier and warn once about a missing SDK."""
        self.coordinator.start()
        await self._warn_missing_sdk()
        folders = len(self.host.workspace_folders())
        return self._report(f"Workspace started with {folders} folder(s).")

    async def wait_ready(self) -> str:
        """Wait for the barrier and the generation pass it triggers."""
        await self.coordinator.wait_ready()
        if self.coordinator.generation_task is not None:
            await self.coordinator.generation_task
        return self._report(format_folders(self.coordinator.folders))

    async def stop(self) -> str:
        self.coordinator.dispose()
        await self.registry.wait_for_background_checks()
        return self._report("Session ended.")

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def list_devices(self) -> str:
        devices = await self.registry.list_devices()
        await self.registry.wait_for_background_checks()
        return self._report(format_devices(devices, self.registry.current_device_id()))

    async def add_device(self, address: str) -> str:
        try:
            device = await self.registry.add(address)
        except (DeviceError, ValueError) as exc:
            return self._report(f"Error: failed to add device: {exc}")
        await self.registry.wait_for_background_checks()
        return self._report(f"Device {device.address} added (id={device.id}).")

    async def remove_device(self, device_id: str) -> str:
        try:
            await self.registry.delete(device_id)
        except DeviceError as exc:
            return self._report(f"Error: failed to remove device: {exc}")
        await self.registry.wait_for_background_checks()
        current = self.registry.current_device_id() or "none"
        return self._report(f"Device {device_id} removed. Current device: {current}.")

    async def select_device(self, device_id: str) -> str:
        await self.registry.ensure_loaded()
        try:
            await self.registry.set_current(device_id)
        except DeviceError as exc:
            return self._report(f"Error: failed to set current device: {exc}")
        await self.registry.wait_for_background_checks()
        device = self.registry.current_device()
        label = format_device(device) if device else device_id
        return self._report(f"{label} set as current device.")

    async def update_agent(self, device_id: str) -> str:
        await self.registry.ensure_loaded()
        try:
            updated = await self.registry.update_agent(device_id)
        except (DeviceError, CLIError) as exc:
            return self._report(f"Error: failed to update agent: {exc}")
        return self._report("Agent updated." if updated else "Agent update failed.")

    async def connect_wifi(self, device_id: str) -> str:
        try:
            connected = await self.registry.connect_wifi(device_id)
        except (DeviceError, CLIError) as exc:
            return self._report(f"Error: failed to connect to WiFi: {exc}")
        return self._report("Connected." if connected else "WiFi connection cancelled.")

    # ------------------------------------------------------------------
    # Launch configurations and debugging
    # ------------------------------------------------------------------

    async def generate_configurations(self) -> str:
        added = await self.coordinator.generate_launch_configurations()
        if added:
            return self._report("Added Wendy debug configurations.")
        return self._report("No debug configurations were added.")

    async def resolve(self, folder: str, target: str | None = None) -> str:
        """Resolve the session for *target* (or the folder's first entry)."""
        folder = os.path.abspath(os.path.expanduser(folder))
        try:
            request = self._find_request(folder, target)
        except ConfigurationError as exc:
            return self._report(f"Error: {exc}")
        if request is None:
            return self._report(
                f"Error: no Wendy launch configuration in {folder}; pass a target."
            )

        descriptor = await self.resolver.resolve(folder, request)
        if descriptor is None:
            return self._report("Debug session cancelled.")
        return self._report(format_descriptor(descriptor))

    async def run_args(self, folder: str, target: str | None = None) -> str:
        """Show the ``wendy`` invocation the pre-launch task would run."""
        folder = os.path.abspath(os.path.expanduser(folder))
        name = f"Run {target or SCRIPT_TARGET}"
        tasks = await provide_run_tasks(self.coordinator.folders)
        task = next(
            (t for t in tasks if t.cwd == folder and t.name == name),
            None,
        )
        if task is None:
            args = ("run", "--detach", target) if target else ("run", "--detach")
            task = RunTask(name, folder, args)

        device = await self.registry.get_current_device()
        await self.registry.wait_for_background_checks()
        args = task.resolve_args(device, Settings.from_store(self.store))
        return self._report(format_run_task(task, args))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _find_request(self, folder: str, target: str | None) -> LaunchDescriptor | None:
        for descriptor in self.store.get_launch_descriptors(folder):
            if not is_own_descriptor(descriptor):
                continue
            if target is None or descriptor.get("target") == target:
                return descriptor

        if target is None:
            return None
        language = RuntimeLanguage.SCRIPT if target == SCRIPT_TARGET else RuntimeLanguage.NATIVE
        return make_descriptor(target, folder, language)

    def _folder_language(self, path: str) -> RuntimeLanguage | None:
        folder = self.coordinator.folder_for(path)
        if folder is None:
            return None
        if folder.toolchain is not None:
            return RuntimeLanguage.NATIVE
        # Without a toolchain integration we cannot tell script folders apart.
        return RuntimeLanguage.SCRIPT if self._has_toolchain else None

    async def _warn_missing_sdk(self) -> None:
        if self._warned_missing_sdk or Settings.from_store(self.store).swift_sdk_path:
            return
        self._warned_missing_sdk = True
        logger.warning("Swift SDK path is not set. Debugging may not work properly.")
        choice = await self.ui.show_warning(
            "WendyOS Swift SDK path is not set. This is required for debugging "
            "WendyOS applications.",
            "Configure Now",
            "Later",
        )
        if choice == "Configure Now":
            await self.ui.execute_command(CMD_CONFIGURE_SDK)

    def _report(self, text: str) -> str:
        drain = getattr(self.ui, "drain", None)
        notes = drain() if drain is not None else []
        if not notes:
            return text
        return f"{text}\n\n--- Notifications ---\n" + "\n".join(notes)
