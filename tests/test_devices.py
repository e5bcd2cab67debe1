from __future__ import annotations

import asyncio

import pytest
from fakes import FakeCLI, FakeUI

from wendy_devtools.cli import CLIError
from wendy_devtools.devices import (
    DeviceNotFoundError,
    DeviceRegistry,
    DuplicateDeviceError,
)
from wendy_devtools.models import InterfaceKind

LAN_PAYLOAD = {
    "lanDevices": [
        {
            "id": "lan-1",
            "hostname": "pi.local",
            "displayName": "Living room Pi",
            "agentVersion": "0.9.2",
        },
    ],
    "usbDevices": [{"name": "ignored"}],
}


# ---------------------------------------------------------------------------
# Manual devices and selection
# ---------------------------------------------------------------------------


def test_first_added_device_becomes_current(store):
    registry = DeviceRegistry(store, FakeUI())
    selections = []
    registry.current_device_changed.subscribe(selections.append)

    async def scenario():
        first = await registry.add(" 10.0.0.5 ")
        second = await registry.add("10.0.0.6:2222")
        return first, second

    first, second = asyncio.run(scenario())
    assert first.address == "10.0.0.5"
    assert first.interface is InterfaceKind.MANUAL
    assert store.get_current_device_id() == first.id
    assert selections == [first.id]
    assert [d["address"] for d in store.get_manual_devices()] == ["10.0.0.5", "10.0.0.6:2222"]
    assert second.host == "10.0.0.6"


def test_duplicate_and_empty_addresses_are_rejected(store):
    registry = DeviceRegistry(store, FakeUI())

    async def scenario():
        await registry.add("10.0.0.5")
        with pytest.raises(DuplicateDeviceError):
            await registry.add("10.0.0.5")
        with pytest.raises(ValueError):
            await registry.add("   ")

    asyncio.run(scenario())
    assert len(store.get_manual_devices()) == 1


def test_deleting_current_device_moves_selection(store):
    registry = DeviceRegistry(store, FakeUI())

    async def scenario():
        first = await registry.add("10.0.0.5")
        second = await registry.add("10.0.0.6")
        await registry.delete(first.id)
        after_first = store.get_current_device_id()
        await registry.delete(second.id)
        return second, after_first

    second, after_first = asyncio.run(scenario())
    assert after_first == second.id
    assert store.get_current_device_id() is None
    assert store.get_manual_devices() == []


def test_deleting_other_device_keeps_selection(store):
    registry = DeviceRegistry(store, FakeUI())
    changes = []
    registry.devices_changed.subscribe(changes.append)

    async def scenario():
        first = await registry.add("10.0.0.5")
        second = await registry.add("10.0.0.6")
        changes.clear()
        await registry.delete(second.id)
        return first

    first = asyncio.run(scenario())
    assert store.get_current_device_id() == first.id
    assert changes == [None]


def test_unknown_ids_raise_not_found(store):
    registry = DeviceRegistry(store, FakeUI())

    async def scenario():
        with pytest.raises(DeviceNotFoundError):
            await registry.delete("missing")
        with pytest.raises(DeviceNotFoundError):
            await registry.set_current("missing")

    asyncio.run(scenario())


def test_selection_survives_a_new_registry(store):
    async def scenario():
        device = await DeviceRegistry(store, FakeUI()).add("10.0.0.5")
        return device, await DeviceRegistry(store, FakeUI()).get_current_device()

    added, current = asyncio.run(scenario())
    assert current == added


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def test_list_merges_discovered_and_manual_devices(store):
    store.set_manual_devices([{"id": "m-1", "address": "10.0.0.5"}])
    registry = DeviceRegistry(store, FakeUI(), FakeCLI(discovered=LAN_PAYLOAD))

    devices = asyncio.run(registry.list_devices())

    assert [(d.id, d.interface) for d in devices] == [
        ("lan-1", InterfaceKind.LAN),
        ("m-1", InterfaceKind.MANUAL),
    ]
    lan = devices[0]
    assert lan.name == "Living room Pi"
    assert lan.address == "pi.local"
    assert lan.agent_version == "0.9.2"


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"lanDevices": [{"id": "x"}]},
    ],
)
def test_bad_discovery_output_falls_back_to_manual(store, payload):
    store.set_manual_devices([{"id": "m-1", "address": "10.0.0.5"}])
    registry = DeviceRegistry(store, FakeUI(), FakeCLI(discovered=payload))

    devices = asyncio.run(registry.list_devices())

    assert [d.id for d in devices] == ["m-1"]


def test_failing_discovery_falls_back_to_manual(store):
    store.set_manual_devices([{"id": "m-1", "address": "10.0.0.5"}])
    cli = FakeCLI()
    cli.failing.add("discover")
    registry = DeviceRegistry(store, FakeUI(), cli)

    assert [d.id for d in asyncio.run(registry.list_devices())] == ["m-1"]


# ---------------------------------------------------------------------------
# Agent update checks
# ---------------------------------------------------------------------------


def test_concurrent_checks_issue_one_query(store):
    store.set_manual_devices([{"id": "m-1", "address": "10.0.0.5"}])
    cli = FakeCLI(delay=0.01)
    registry = DeviceRegistry(store, FakeUI(), cli)

    async def scenario():
        (device,) = await registry.list_devices()
        await asyncio.gather(
            registry.check_for_updates(device),
            registry.check_for_updates(device),
        )

    asyncio.run(scenario())
    assert cli.count("agent_version") == 1


def test_available_update_is_offered_and_applied(store):
    cli = FakeCLI(latest_version="1.2.0")
    ui = FakeUI({"Update available": "Update"})
    registry = DeviceRegistry(store, ui, cli)

    async def scenario():
        await registry.add("10.0.0.5")
        await registry.wait_for_background_checks()

    asyncio.run(scenario())
    assert ui.infos[0] == ("Update available for 10.0.0.5: 1.2.0", ("Update",))
    assert ("update_agent", "10.0.0.5") in cli.calls


def test_declined_update_is_not_applied(store):
    cli = FakeCLI(latest_version="1.2.0")
    registry = DeviceRegistry(store, FakeUI(), cli)

    async def scenario():
        await registry.add("10.0.0.5")
        await registry.wait_for_background_checks()

    asyncio.run(scenario())
    assert cli.count("update_agent") == 0


def test_check_without_cli_raises(store):
    registry = DeviceRegistry(store, FakeUI())

    async def scenario():
        device = await registry.add("10.0.0.5")
        with pytest.raises(CLIError):
            await registry.check_for_updates(device)

    asyncio.run(scenario())


def test_failed_background_check_is_reported(store):
    cli = FakeCLI()
    cli.failing.add("agent_version")
    ui = FakeUI()
    registry = DeviceRegistry(store, ui, cli)

    async def scenario():
        await registry.add("10.0.0.5")
        await registry.wait_for_background_checks()

    asyncio.run(scenario())
    assert ui.errors[0][0].startswith("Failed to check for updates on 10.0.0.5")


def test_failed_agent_update_is_shown_not_raised(store):
    cli = FakeCLI()
    ui = FakeUI()
    registry = DeviceRegistry(store, ui, cli)

    async def scenario():
        device = await registry.add("10.0.0.5")
        await registry.wait_for_background_checks()
        cli.failing.add("update_agent")
        return await registry.update_agent(device.id)

    assert asyncio.run(scenario()) is False
    assert ui.errors[-1][0].startswith("Failed to update agent")


# ---------------------------------------------------------------------------
# WiFi
# ---------------------------------------------------------------------------


def _wifi_registry(store, ui):
    cli = FakeCLI()
    cli.networks = [{"ssid": "HomeNet", "signalStrength": 80}, {"ssid": "Cafe"}]
    store.set_manual_devices([{"id": "m-1", "address": "10.0.0.5"}])
    return cli, DeviceRegistry(store, ui, cli)


def test_connect_wifi(store):
    ui = FakeUI()
    ui.pick_answer = "HomeNet"
    ui.input_answer = "secret"
    cli, registry = _wifi_registry(store, ui)

    assert asyncio.run(registry.connect_wifi("m-1")) is True
    assert ("wifi_connect", "10.0.0.5", "HomeNet", "secret") in cli.calls
    assert ui.picked_from[0] == [
        ("HomeNet", "Signal Strength: 80"),
        ("Cafe", "Signal Strength: ?"),
    ]
    assert ui.infos[-1][0] == "Connected to HomeNet"


def test_dismissed_wifi_prompt_cancels(store):
    ui = FakeUI()
    ui.pick_answer = "HomeNet"
    cli, registry = _wifi_registry(store, ui)

    assert asyncio.run(registry.connect_wifi("m-1")) is False
    assert cli.count("wifi_connect") == 0


def test_unsuccessful_wifi_connect_raises(store):
    ui = FakeUI()
    ui.pick_answer = "HomeNet"
    ui.input_answer = "wrong"
    cli, registry = _wifi_registry(store, ui)
    cli.wifi_status = {"success": False}

    with pytest.raises(CLIError):
        asyncio.run(registry.connect_wifi("m-1"))
