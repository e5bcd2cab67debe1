"""Plain-text rendering of orchestrator state.

All functions return text suitable for a terminal or for an LLM client:
no ANSI codes, no nesting beyond what is needed, long values truncated.
"""

from __future__ import annotations

import json
from typing import Iterable

from wendy_devtools.models import Device, ManagedFolder
from wendy_devtools.protocol import LaunchDescriptor
from wendy_devtools.tasks import RunTask

_MAX_DEVICES = 50


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


def format_devices(devices: list[Device], current_id: str | None = None) -> str:
    """One line per device, the current one marked with ``*``.

    Example output::

        * 10.0.0.5                  (Custom)  id=0f1c...  agent=?
          Living room Pi            (LAN)     id=lan-1    agent=0.9.2
    """
    if not devices:
        return "(no devices)"

    lines: list[str] = []
    shown = devices[:_MAX_DEVICES]
    for device in shown:
        marker = "*" if device.id == current_id else " "
        lines.append(
            f"{marker} {device.name:<25} ({device.interface.value})  "
            f"id={device.id}  agent={device.agent_version or '?'}"
        )

    remaining = len(devices) - len(shown)
    if remaining > 0:
        lines.append(f"  ... and {remaining} more devices")
    return "\n".join(lines)


def format_device(device: Device) -> str:
    return f"{device.name} [{device.address}] ({device.interface.value}, id={device.id})"


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


def format_folders(folders: Iterable[ManagedFolder]) -> str:
    lines = [
        f"  {folder.path}  {folder.classification.value}  {folder.language.value}"
        f"{'  configured' if folder.configs_synthesized else ''}"
        for folder in folders
    ]
    return "\n".join(lines) if lines else "(no folders)"


def format_run_task(task: RunTask, args: list[str]) -> str:
    return f"{task.label}: wendy {' '.join(args)}  (cwd: {task.cwd})"


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


def format_descriptor(descriptor: LaunchDescriptor) -> str:
    return json.dumps(descriptor, indent=2, sort_keys=True)
