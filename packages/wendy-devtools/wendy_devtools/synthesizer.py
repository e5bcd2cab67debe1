"""Generate ``wendy`` launch descriptors and merge them into launch.json."""

from __future__ import annotations

import enum
import logging
from pathlib import PurePath
from typing import Iterable

from wendy_devtools.config import LAUNCH_CONFIG_TYPE
from wendy_devtools.models import ManagedFolder, RuntimeLanguage
from wendy_devtools.protocol import ConfigurationStore, LaunchDescriptor
from wendy_devtools.tasks import SCRIPT_TARGET, run_task_label

logger = logging.getLogger(__name__)


class SynthesisResult(enum.Enum):
    ADDED = "added"
    ALREADY_CONFIGURED = "already-configured"
    NO_TARGETS = "no-targets"

    @property
    def added(self) -> bool:
        return self is SynthesisResult.ADDED


def is_own_descriptor(descriptor: object) -> bool:
    return isinstance(descriptor, dict) and descriptor.get("type") == LAUNCH_CONFIG_TYPE


def make_descriptor(
    target: str, cwd: str, language: RuntimeLanguage = RuntimeLanguage.NATIVE
) -> LaunchDescriptor:
    return {
        "type": LAUNCH_CONFIG_TYPE,
        "name": f"Debug {target} on WendyOS",
        "request": "attach",
        "target": target,
        "runtime": language.value,
        "cwd": cwd,
        "preLaunchTask": run_task_label(target),
    }


class ConfigSynthesizer:
    """Writes one descriptor per runnable target into a folder's launch.json.

    A folder that already holds any ``wendy`` descriptor counts as
    configured and is left alone; entries are only ever prepended, never
    rewritten or removed.
    """

    def __init__(self, store: ConfigurationStore) -> None:
        self._store = store

    async def synthesize(self, folder: ManagedFolder) -> SynthesisResult:
        existing = self._store.get_launch_descriptors(folder.path)
        logger.debug("Found %d existing configurations in %s", len(existing), folder.path)

        if any(is_own_descriptor(d) for d in existing):
            folder.configs_synthesized = True
            logger.debug("Wendy configurations already exist in %s", folder.path)
            return SynthesisResult.ALREADY_CONFIGURED

        descriptors = await self.descriptors_for(folder)
        if not descriptors:
            logger.debug("No executable products in %s", folder.path)
            return SynthesisResult.NO_TARGETS

        self._store.set_launch_descriptors(folder.path, descriptors + existing)
        folder.configs_synthesized = True
        logger.info("Added %d Wendy configurations to %s", len(descriptors), folder.path)
        return SynthesisResult.ADDED

    async def descriptors_for(self, folder: ManagedFolder) -> list[LaunchDescriptor]:
        if folder.toolchain is None:
            return [make_descriptor(SCRIPT_TARGET, folder.path, RuntimeLanguage.SCRIPT)]

        # Forward slashes on every platform keep launch.json portable.
        cwd = PurePath(folder.path).as_posix()
        products = await folder.toolchain.executable_products()
        return [make_descriptor(product, cwd) for product in products]

    async def provide_descriptors(
        self, folders: Iterable[ManagedFolder]
    ) -> list[LaunchDescriptor]:
        """Descriptors offered on demand, without touching launch.json."""
        descriptors: list[LaunchDescriptor] = []
        for folder in folders:
            if folder.disposed or folder.toolchain is None:
                continue
            descriptors.extend(await self.descriptors_for(folder))
        return descriptors

    def has_any_descriptor(self, folder_paths: Iterable[str]) -> bool:
        for path in folder_paths:
            if any(is_own_descriptor(d) for d in self._store.get_launch_descriptors(path)):
                return True
        return False
