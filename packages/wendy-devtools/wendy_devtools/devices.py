"""Known devices, the current-device selection, and agent update checks.

Devices come from two places and are never reconciled by address:

* **manual** entries the user typed in, persisted in the store;
* **discovered** entries from ``wendy discover``, recomputed per query.

The set of devices already checked for agent updates lives only as long
as the registry does (one per running session).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from wendy_devtools.cli import CLIError, WendyCLI
from wendy_devtools.events import Channel
from wendy_devtools.models import Device, InterfaceKind
from wendy_devtools.protocol import ConfigurationStore, UserInterface

logger = logging.getLogger(__name__)


class DeviceError(Exception):
    pass


class DuplicateDeviceError(DeviceError):
    pass


class DeviceNotFoundError(DeviceError):
    pass


class DeviceRegistry:
    """Merged device view plus current-device management.

    Usage::

        registry = DeviceRegistry(store, ui, cli)
        devices = await registry.list_devices()
        await registry.add("10.0.0.5")
        await registry.set_current(devices[0].id)
    """

    def __init__(
        self,
        store: ConfigurationStore,
        ui: UserInterface,
        cli: WendyCLI | None = None,
    ) -> None:
        self._store = store
        self._ui = ui
        self._cli = cli
        self._devices: list[Device] = []
        self._loaded = False
        self._checked_for_updates: set[str] = set()
        self._background: set[asyncio.Task[None]] = set()

        self.devices_changed: Channel[None] = Channel("devices-changed")
        self.current_device_changed: Channel[str | None] = Channel(
            "current-device-changed"
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def devices(self) -> list[Device]:
        """Result of the most recent merge."""
        return list(self._devices)

    async def list_devices(self) -> list[Device]:
        """Discovered devices followed by manual ones.

        Discovery failures are logged and the manual entries are returned
        on their own.
        """
        manual = self._manual_devices()
        discovered: list[Device] = []

        if self._cli is not None:
            try:
                discovered = _parse_discovery(await self._cli.discover())
            except (CLIError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Device discovery failed, using manual devices only: %s", exc)

        self._devices = discovered + manual
        self._loaded = True

        current = self.current_device()
        if current is not None:
            self._check_in_background(current)
        return list(self._devices)

    async def ensure_loaded(self) -> None:
        if not self._loaded:
            await self.list_devices()

    def current_device_id(self) -> str | None:
        return self._store.get_current_device_id()

    def current_device(self) -> Device | None:
        """The selected device, if it is part of the latest merge."""
        current_id = self.current_device_id()
        if not current_id:
            return None
        return self._find(current_id)

    async def get_current_device(self) -> Device | None:
        await self.ensure_loaded()
        return self.current_device()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, address: str) -> Device:
        """Persist a manual device; the very first one becomes current."""
        address = address.strip()
        if not address:
            raise ValueError("Device address must not be empty")

        manual = self._store.get_manual_devices()
        if any(entry["address"] == address for entry in manual):
            raise DuplicateDeviceError(f"Device with address {address} already exists")

        entry = {"id": str(uuid.uuid4()), "address": address}
        manual.append(entry)
        self._store.set_manual_devices(manual)

        device = _manual_device(entry)
        self._devices.append(device)
        logger.info("Added device %s (%s)", address, device.id)

        if len(manual) == 1:
            await self.set_current(device.id)
        else:
            self.devices_changed.publish(None)
        return device

    async def delete(self, device_id: str) -> None:
        """Remove a manual device, moving the selection if it was current."""
        manual = self._store.get_manual_devices()
        remaining = [entry for entry in manual if entry["id"] != device_id]
        if len(remaining) == len(manual):
            raise DeviceNotFoundError(f"Device with ID {device_id} not found")

        self._store.set_manual_devices(remaining)
        self._devices = [d for d in self._devices if d.id != device_id]
        logger.info("Deleted device %s", device_id)

        if self.current_device_id() != device_id:
            self.devices_changed.publish(None)
            return

        if remaining:
            successor = _manual_device(remaining[0])
            if self._find(successor.id) is None:
                self._devices.append(successor)
            await self.set_current(successor.id)
        else:
            await self.set_current(None)

    async def set_current(self, device_id: str | None) -> None:
        if device_id:
            device = self._find(device_id)
            if device is None:
                raise DeviceNotFoundError(f"Device with ID {device_id} not found")
            self._check_in_background(device)

        self._store.set_current_device_id(device_id or None)
        self.current_device_changed.publish(device_id or None)
        self.devices_changed.publish(None)

    # ------------------------------------------------------------------
    # Agent updates
    # ------------------------------------------------------------------

    async def check_for_updates(self, device: Device) -> None:
        """Ask the device for a newer agent, at most once per session.

        The id is recorded before the query so concurrent callers for the
        same device issue a single query.  CLI failures propagate.
        """
        if device.id in self._checked_for_updates:
            return
        self._checked_for_updates.add(device.id)

        if self._cli is None:
            raise CLIError("Wendy CLI is not available")

        updates = await self._cli.agent_version(device.address)
        latest = updates.get("latestVersion") if isinstance(updates, dict) else None
        if not latest:
            logger.debug("Agent on %s is up to date", device.address)
            return

        choice = await self._ui.show_info(
            f"Update available for {device.name}: {latest}", "Update"
        )
        if choice == "Update":
            await self.update_agent(device.id)

    async def update_agent(self, device_id: str) -> bool:
        """Run ``wendy agent update``; failures are shown, not raised."""
        device = self._find(device_id)
        if device is None:
            raise DeviceNotFoundError(f"Device with ID {device_id} not found")
        if self._cli is None:
            raise CLIError("Wendy CLI is not available")

        logger.info("Updating agent on %s", device.address)
        try:
            await self._cli.update_agent(device.address)
        except CLIError as exc:
            await self._ui.show_error(f"Failed to update agent: {exc}")
            return False

        self.devices_changed.publish(None)
        return True

    async def wait_for_background_checks(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _check_in_background(self, device: Device) -> None:
        if self._cli is None or device.id in self._checked_for_updates:
            return
        task = asyncio.create_task(self._check_quietly(device))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _check_quietly(self, device: Device) -> None:
        try:
            await self.check_for_updates(device)
        except Exception as exc:
            logger.warning("Update check for %s failed: %s", device.address, exc)
            await self._ui.show_error(
                f"Failed to check for updates on {device.name}: {exc}"
            )

    # ------------------------------------------------------------------
    # WiFi
    # ------------------------------------------------------------------

    async def connect_wifi(self, device_id: str) -> bool:
        """Let the user pick a network the device sees and join it.

        Returns ``False`` if the user dismissed a prompt.
        """
        await self.ensure_loaded()
        device = self._find(device_id)
        if device is None:
            raise DeviceNotFoundError(f"Device with ID {device_id} not found")
        if self._cli is None:
            raise CLIError("Wendy CLI is not available")

        networks = await self._cli.wifi_list(device.address)
        ssid = await self._ui.pick(
            [
                (str(n["ssid"]), f"Signal Strength: {n.get('signalStrength', '?')}")
                for n in networks
            ],
            placeholder="Select a WiFi network",
        )
        if not ssid:
            return False

        password = await self._ui.input_text(
            "Enter the password for the WiFi network", password=True
        )
        if not password:
            return False

        status = await self._cli.wifi_connect(device.address, ssid, password)
        if not isinstance(status, dict) or not status.get("success"):
            raise CLIError("Failed to connect to WiFi")

        await self._ui.show_info(f"Connected to {ssid}")
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _find(self, device_id: str) -> Device | None:
        return next((d for d in self._devices if d.id == device_id), None)

    def _manual_devices(self) -> list[Device]:
        return [_manual_device(entry) for entry in self._store.get_manual_devices()]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _manual_device(entry: dict[str, str]) -> Device:
    return Device(
        id=entry["id"],
        address=entry["address"],
        name=entry["address"],
        interface=InterfaceKind.MANUAL,
    )


def _parse_discovery(payload: Any) -> list[Device]:
    """Turn ``wendy discover --json`` output into devices.

    Only LAN entries carry a reachable hostname, so only they are used.
    """
    if not isinstance(payload, dict):
        raise ValueError("discovery output is not a JSON object")

    devices: list[Device] = []
    for lan in payload.get("lanDevices") or []:
        hostname = lan["hostname"]
        devices.append(
            Device(
                id=str(lan["id"]),
                address=hostname,
                name=lan.get("displayName") or hostname,
                interface=InterfaceKind.LAN,
                agent_version=lan.get("agentVersion"),
            )
        )
    return devices
