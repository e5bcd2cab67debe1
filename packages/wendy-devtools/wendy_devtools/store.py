"""JSON-file backed configuration store.

User settings (manual devices, current device, SDK path, ...) live in a
single settings document.  Launch descriptors live next to each folder in
``.vscode/launch.json``, where an editor expects them.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from wendy_devtools.config import KEY_CURRENT_DEVICE, KEY_DEVICES, default_settings_path
from wendy_devtools.protocol import LaunchDescriptor

logger = logging.getLogger(__name__)

_LAUNCH_FILE = os.path.join(".vscode", "launch.json")
_LAUNCH_VERSION = "0.2.0"


class ConfigurationError(RuntimeError):
    """A persisted document exists but cannot be used."""


class JsonConfigurationStore:
    """Implements :class:`~wendy_devtools.protocol.ConfigurationStore`.

    Every read goes back to disk, so edits made by other processes are
    picked up; concurrent edits within one read-modify-write window are
    not detected.
    """

    def __init__(self, settings_file: str | None = None) -> None:
        self.settings_file = os.path.abspath(settings_file or default_settings_path())

    # ------------------------------------------------------------------
    # Settings document
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self._load_settings().get(key, default)

    def update(self, key: str, value: Any) -> None:
        data = self._load_settings()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
        _write_json(self.settings_file, data)

    def get_manual_devices(self) -> list[dict[str, str]]:
        devices = self.get(KEY_DEVICES) or []
        return [
            {"id": str(d["id"]), "address": str(d["address"])}
            for d in devices
            if isinstance(d, dict) and "id" in d and "address" in d
        ]

    def set_manual_devices(self, devices: list[dict[str, str]]) -> None:
        self.update(KEY_DEVICES, devices)

    def get_current_device_id(self) -> str | None:
        return self.get(KEY_CURRENT_DEVICE) or None

    def set_current_device_id(self, device_id: str | None) -> None:
        self.update(KEY_CURRENT_DEVICE, device_id)

    def _load_settings(self) -> dict[str, Any]:
        if not os.path.isfile(self.settings_file):
            return {}
        try:
            with open(self.settings_file, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.settings_file, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: root is not an object", self.settings_file)
            return {}
        return data

    # ------------------------------------------------------------------
    # Per-folder launch configurations
    # ------------------------------------------------------------------

    def get_launch_descriptors(self, folder_path: str) -> list[LaunchDescriptor]:
        document = self._load_launch(folder_path)
        configurations = document.get("configurations", [])
        if not isinstance(configurations, list):
            raise ConfigurationError(
                f"'configurations' in {_launch_path(folder_path)} is not a list"
            )
        return configurations

    def set_launch_descriptors(
        self, folder_path: str, descriptors: list[LaunchDescriptor]
    ) -> None:
        document = self._load_launch(folder_path)
        document.setdefault("version", _LAUNCH_VERSION)
        document["configurations"] = descriptors
        _write_json(_launch_path(folder_path), document)

    def _load_launch(self, folder_path: str) -> dict[str, Any]:
        path = _launch_path(folder_path)
        if not os.path.isfile(path):
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                document = json.loads(strip_jsonc(f.read()))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise ConfigurationError(f"Root of {path} must be an object")
        return document


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def strip_jsonc(text: str) -> str:
    """Reduce editor-style JSON to plain JSON.

    launch.json files are commonly written with ``//`` and ``/* */``
    comments and trailing commas.  Both are removed outside string
    literals.  Block comments keep their newlines so decode errors still
    point at the right line.
    """
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            newlines = text.count("\n", i, end)
            if newlines:
                out.append("\n" * newlines)
            i = end
            continue
        elif ch in "}]":
            j = len(out) - 1
            while j >= 0 and out[j].isspace():
                j -= 1
            if j >= 0 and out[j] == ",":
                del out[j]
        out.append(ch)
        i += 1
    return "".join(out)


def _launch_path(folder_path: str) -> str:
    return os.path.join(folder_path, _LAUNCH_FILE)


def _write_json(path: str, data: Any) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    os.replace(tmp, path)
