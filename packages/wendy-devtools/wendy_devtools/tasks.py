"""Run tasks that build and deploy a target to the current device.

Debug descriptors refer to these by label through ``preLaunchTask``, so
the label format is shared with the synthesizer and the resolver.
Executing the task (terminal wiring) is up to the host.
"""

from __future__ import annotations

from dataclasses import dataclass

from wendy_devtools.config import Settings
from wendy_devtools.models import Device, ManagedFolder

TASK_TYPE = "wendy"
SCRIPT_TARGET = "Python App"


def run_task_label(target: str) -> str:
    return f"{TASK_TYPE}: Run {target}"


@dataclass(frozen=True)
class RunTask:
    name: str
    cwd: str
    args: tuple[str, ...]

    @property
    def label(self) -> str:
        return f"{TASK_TYPE}: {self.name}"

    def resolve_args(self, device: Device | None, settings: Settings) -> list[str]:
        """Arguments for ``wendy`` once the current device is known."""
        args = list(self.args)
        if device is not None:
            args += ["--agent", device.address]
        if settings.runtime:
            args += ["--runtime", settings.runtime]
        args.append("--debug")
        return args


async def provide_run_tasks(
    folders: list[ManagedFolder], include_scripts: bool = True
) -> list[RunTask]:
    """One task per executable product; one per script folder."""
    tasks: list[RunTask] = []
    for folder in folders:
        if folder.disposed:
            continue
        if folder.toolchain is not None:
            for product in await folder.toolchain.executable_products():
                tasks.append(
                    RunTask(f"Run {product}", folder.path, ("run", "--detach", product))
                )
        elif include_scripts:
            tasks.append(
                RunTask(f"Run {SCRIPT_TARGET}", folder.path, ("run", "--detach"))
            )
    return tasks
