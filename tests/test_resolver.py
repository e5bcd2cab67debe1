from __future__ import annotations

import asyncio
import os
import sys

import pytest
from fakes import FakeUI

from wendy_devtools.config import (
    CMD_ADD_DEVICE,
    CMD_CONFIGURE_SDK,
    CMD_SHOW_DEVICES,
    KEY_DEBUGGER,
    KEY_SDK_PATH,
    SDK_MODULE_SUBPATH,
)
from wendy_devtools.devices import DeviceRegistry
from wendy_devtools.models import RuntimeLanguage
from wendy_devtools.resolver import SessionResolver, ensure_debug_port
from wendy_devtools.synthesizer import make_descriptor

FOLDER = os.path.abspath("/work/app")

symlinks = pytest.mark.skipif(sys.platform == "win32", reason="needs symlink privileges")


@pytest.mark.parametrize(
    ("address", "port", "expected"),
    [
        ("10.0.0.5", 4242, "10.0.0.5:4242"),
        ("10.0.0.5:2222", 4242, "10.0.0.5:4242"),
        ("pi.local:4242", 4242, "pi.local:4242"),
        ("pi.local", 5678, "pi.local:5678"),
    ],
)
def test_ensure_debug_port(address, port, expected):
    assert ensure_debug_port(address, port) == expected


def test_ensure_debug_port_is_idempotent():
    once = ensure_debug_port("10.0.0.5:22")
    assert ensure_debug_port(once) == once


def _resolve(store, ui, request, device=None, folder_language=None):
    async def scenario():
        registry = DeviceRegistry(store, ui)
        if device is not None:
            await registry.add(device)
        resolver = SessionResolver(
            store, registry, ui, folder_language=folder_language, settle_delay=0
        )
        return await resolver.resolve(FOLDER, request)

    return asyncio.run(scenario())


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def test_missing_sdk_path_cancels_and_offers_configuration(store):
    ui = FakeUI({"Swift SDK path is not set": "Configure Swift SDK Path"})

    result = _resolve(store, ui, make_descriptor("App", FOLDER), device="10.0.0.5")

    assert result is None
    assert ui.errors[0][1] == ("Configure Swift SDK Path", "Cancel")
    assert ui.commands == [CMD_CONFIGURE_SDK]


def test_nonexistent_sdk_path_cancels(store, tmp_path):
    store.update(KEY_SDK_PATH, str(tmp_path / "missing"))
    ui = FakeUI()

    result = _resolve(store, ui, make_descriptor("App", FOLDER), device="10.0.0.5")

    assert result is None
    assert "does not exist" in ui.errors[0][0]
    assert ui.commands == []


def _sdk_path_command(sdk: str) -> str:
    return f'settings set target.sdk-path "{sdk}"'


def test_sdk_path_is_tilde_expanded(store, sdk_dir, tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    store.update(KEY_SDK_PATH, "~/sdk")

    result = _resolve(store, FakeUI(), make_descriptor("App", FOLDER), device="10.0.0.5")

    assert result["initCommands"][0] == _sdk_path_command(os.path.realpath(sdk_dir))


@symlinks
def test_symlinked_sdk_path_resolves_to_its_target(store, sdk_dir, tmp_path):
    link = tmp_path / "sdk-link"
    os.symlink(sdk_dir, link)
    store.update(KEY_SDK_PATH, str(link))

    result = _resolve(store, FakeUI(), make_descriptor("App", FOLDER), device="10.0.0.5")

    sdk = os.path.realpath(sdk_dir)
    assert result["initCommands"][0] == _sdk_path_command(sdk)
    assert all(str(link) not in command for command in result["initCommands"])


@symlinks
def test_dangling_sdk_symlink_cancels(store, tmp_path):
    link = tmp_path / "sdk-link"
    os.symlink(tmp_path / "removed-sdk", link)
    store.update(KEY_SDK_PATH, str(link))
    ui = FakeUI()

    result = _resolve(store, ui, make_descriptor("App", FOLDER), device="10.0.0.5")

    assert result is None
    assert "does not exist" in ui.errors[0][0]
    assert ui.errors[0][1] == ("Configure Swift SDK Path", "Cancel")


@pytest.mark.parametrize(
    ("answer", "command"),
    [("Add Device", CMD_ADD_DEVICE), ("Select Device", CMD_SHOW_DEVICES)],
)
def test_missing_device_cancels_and_offers_remediation(store, sdk_dir, answer, command):
    store.update(KEY_SDK_PATH, sdk_dir)
    ui = FakeUI({"No WendyOS device": answer})

    result = _resolve(store, ui, make_descriptor("App", FOLDER))

    assert result is None
    assert ui.errors[0][1] == ("Add Device", "Select Device", "Cancel")
    assert ui.commands == [command]


def test_missing_target_cancels(store, sdk_dir):
    store.update(KEY_SDK_PATH, sdk_dir)
    ui = FakeUI()

    result = _resolve(store, ui, {"type": "wendy", "runtime": "swift"}, device="10.0.0.5")

    assert result is None
    assert len(ui.errors) == 1
    assert "does not name a target" in ui.errors[0][0]


def test_device_is_checked_before_target(store, sdk_dir):
    store.update(KEY_SDK_PATH, sdk_dir)
    ui = FakeUI()

    result = _resolve(store, ui, {"type": "wendy", "runtime": "swift"})

    assert result is None
    assert [message for message, _ in ui.errors] == [
        "No WendyOS device is selected. You must select a device before debugging."
    ]


# ---------------------------------------------------------------------------
# Native backends
# ---------------------------------------------------------------------------


def test_lldb_dap_descriptor(store, sdk_dir):
    store.update(KEY_SDK_PATH, sdk_dir)
    sdk = os.path.realpath(sdk_dir)
    request = make_descriptor("App", FOLDER)

    result = _resolve(store, FakeUI(), request, device="10.0.0.5:2222")

    binary = os.path.join(FOLDER, ".wendy-build", "debug", "App")
    assert result["type"] == "lldb-dap"
    assert result["request"] == "attach"
    assert result["initCommands"] == [
        f'settings set target.sdk-path "{sdk}"',
        'settings set target.swift-module-search-paths '
        f'"{os.path.join(sdk, SDK_MODULE_SUBPATH)}"',
    ]
    assert result["attachCommands"] == [
        f"target create {binary}",
        "gdb-remote 10.0.0.5:4242",
    ]
    assert result["preLaunchTask"] == "wendy: Run App"
    # The incoming request is not modified.
    assert request["type"] == "wendy"


def test_codelldb_descriptor(store, sdk_dir):
    store.update(KEY_SDK_PATH, sdk_dir)
    store.update(KEY_DEBUGGER, "codelldb")

    result = _resolve(store, FakeUI(), make_descriptor("App", FOLDER), device="pi.local")

    assert result["type"] == "lldb"
    assert result["request"] == "launch"
    assert result["agent"] == "pi.local"
    assert result["targetCreateCommands"][0].startswith("target create ")
    assert result["targetCreateCommands"][1].startswith("settings set target.sdk-path")
    assert result["processCreateCommands"] == ["gdb-remote pi.local:4242"]


def test_unknown_debugger_setting_uses_lldb_dap(store, sdk_dir):
    store.update(KEY_SDK_PATH, sdk_dir)
    store.update(KEY_DEBUGGER, "gdb")

    result = _resolve(store, FakeUI(), make_descriptor("App", FOLDER), device="pi.local")

    assert result["type"] == "lldb-dap"


def test_pre_launch_task_is_synthesized(store, sdk_dir):
    store.update(KEY_SDK_PATH, sdk_dir)
    request = {"type": "wendy", "name": "custom", "target": "Tool", "runtime": "swift"}

    result = _resolve(store, FakeUI(), request, device="pi.local")

    assert result["preLaunchTask"] == "wendy: Run Tool"
    assert result["name"] == "custom"


# ---------------------------------------------------------------------------
# Script backend
# ---------------------------------------------------------------------------


def test_debugpy_descriptor_needs_no_sdk(store):
    request = make_descriptor("Python App", FOLDER, RuntimeLanguage.SCRIPT)
    ui = FakeUI()

    result = _resolve(store, ui, request, device="10.0.0.5:4242")

    assert result["type"] == "debugpy"
    assert result["request"] == "attach"
    assert result["connect"] == {"host": "10.0.0.5", "port": 5678}
    assert result["pathMappings"] == [{"localRoot": FOLDER, "remoteRoot": "/app"}]
    assert result["justMyCode"] is True
    assert ui.errors == []


def test_folder_language_decides_when_request_is_silent(store):
    request = {"type": "wendy", "name": "script", "target": "Python App"}

    result = _resolve(
        store,
        FakeUI(),
        request,
        device="10.0.0.5",
        folder_language=lambda path: RuntimeLanguage.SCRIPT,
    )

    assert result["type"] == "debugpy"


def test_script_session_without_device_cancels(store):
    ui = FakeUI()
    request = make_descriptor("Python App", FOLDER, RuntimeLanguage.SCRIPT)

    assert _resolve(store, ui, request) is None
    assert ui.errors[0][0].startswith("No WendyOS device is selected")
