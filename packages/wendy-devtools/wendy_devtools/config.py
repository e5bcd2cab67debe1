"""Constants and user settings.

Durations are in seconds.  Settings live in the configuration store
under the ``wendyos.*`` keys; :class:`Settings` is a snapshot of them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wendy_devtools.protocol import ConfigurationStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

TIMEOUT_FOLDERS_READY: float = 5.0
"""Fallback after which the readiness barrier fires unconditionally."""

SCRIPT_SETTLE_DELAY: float = 1.0
"""Pause before attaching to a freshly started remote interpreter."""

TIMEOUT_CLI: float = 30.0
"""Per-invocation limit for short ``wendy`` CLI queries."""

TIMEOUT_CLI_UPDATE: float = 300.0
"""Agent updates download an image, so they get a longer limit."""

# ---------------------------------------------------------------------------
# Debugging
# ---------------------------------------------------------------------------

LAUNCH_CONFIG_TYPE = "wendy"
"""Kind tag that marks our entries among unrelated launch configurations."""

DEFAULT_DEBUG_PORT = 4242
SCRIPT_DEBUG_PORT = 5678
SCRIPT_REMOTE_ROOT = "/app"

BUILD_SUBDIR = os.path.join(".wendy-build", "debug")

SDK_MODULE_SUBPATH = (
    "6.1-RELEASE_wendyos_aarch64/aarch64-unknown-linux-gnu/"
    "debian-bookworm.sdk/usr/lib/swift_static/linux"
)

DEBUGGER_LLDB_DAP = "lldb-dap"
DEBUGGER_CODELLDB = "codelldb"
DEBUGGER_BACKENDS = (DEBUGGER_LLDB_DAP, DEBUGGER_CODELLDB)

# ---------------------------------------------------------------------------
# Store keys
# ---------------------------------------------------------------------------

KEY_DEVICES = "wendyos.devices"
KEY_CURRENT_DEVICE = "wendyos.currentDevice"
KEY_SDK_PATH = "wendyos.swiftSdkPath"
KEY_CLI_PATH = "wendyos.cliPath"
KEY_RUNTIME = "wendyos.runtime"
KEY_DEBUGGER = "wendyos.debugger"

# ---------------------------------------------------------------------------
# Host commands
# ---------------------------------------------------------------------------

CMD_CONFIGURE_SDK = "wendy.configureSwiftSdkPath"
CMD_ADD_DEVICE = "wendyDevices.addDevice"
CMD_SHOW_DEVICES = "workbench.view.extension.wendy-explorer"
CMD_RELOAD_WINDOW = "workbench.action.reloadWindow"

# ---------------------------------------------------------------------------
# Settings file location
# ---------------------------------------------------------------------------


def default_settings_path() -> str:
    """``$WENDY_DEVTOOLS_SETTINGS``, else the XDG config directory."""
    override = os.environ.get("WENDY_DEVTOOLS_SETTINGS")
    if override:
        return os.path.abspath(os.path.expanduser(override))
    base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return os.path.join(base, "wendy-devtools", "settings.json")


@dataclass(frozen=True)
class Settings:
    swift_sdk_path: str = ""
    cli_path: str = ""
    runtime: str = ""
    debugger: str = DEBUGGER_LLDB_DAP

    @classmethod
    def from_store(cls, store: ConfigurationStore) -> Settings:
        debugger = _string_setting(store, KEY_DEBUGGER) or DEBUGGER_LLDB_DAP
        if debugger not in DEBUGGER_BACKENDS:
            debugger = DEBUGGER_LLDB_DAP
        return cls(
            swift_sdk_path=_string_setting(store, KEY_SDK_PATH),
            cli_path=_string_setting(store, KEY_CLI_PATH),
            runtime=_string_setting(store, KEY_RUNTIME),
            debugger=debugger,
        )


def _string_setting(store: ConfigurationStore, key: str) -> str:
    value = store.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        logger.warning("Ignoring setting %s: expected a string, got %r", key, value)
        return ""
    return value.strip()
