"""Workspace readiness: when has the initial folder set been observed?

The toolchain integration reports folders asynchronously and in no
particular order, and folders it does not own (script projects) are never
reported at all.  Two independent triggers race to open a one-shot
barrier:

* every folder present at startup has been processed, or
* the fallback timer expires.

Whichever comes first wins; the other becomes a no-op.  Opening the
barrier starts a single launch-configuration generation pass.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, Coroutine, assert_never

from wendy_devtools.config import CMD_RELOAD_WINDOW, TIMEOUT_FOLDERS_READY
from wendy_devtools.events import Channel, FolderEvent, FolderOperation, ToolchainFolder
from wendy_devtools.models import ClassificationState, ManagedFolder
from wendy_devtools.protocol import (
    ProjectClassifier,
    ToolchainContext,
    UserInterface,
    WorkspaceHost,
)
from wendy_devtools.synthesizer import ConfigSynthesizer, SynthesisResult

logger = logging.getLogger(__name__)

_REFRESH_PROMPT = "Package updated. You may need to refresh debug configurations."


class _PathLock:
    """An :class:`asyncio.Lock` that counts tasks holding or awaiting it."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.users = 0

    async def __aenter__(self) -> None:
        self.users += 1
        try:
            await self._lock.acquire()
        except BaseException:
            self.users -= 1
            raise

    async def __aexit__(self, *exc_info: Any) -> None:
        self._lock.release()
        self.users -= 1


class OneShotLatch:
    """Runs *action* the first time :meth:`fire` is called, never again.

    The check and the set happen with no suspension point in between, so
    any number of triggers in any order produce exactly one run.
    """

    def __init__(self, action: Callable[[], None]) -> None:
        self._action = action
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self) -> bool:
        if self._fired:
            return False
        self._fired = True
        self._action()
        return True


class ReadinessCoordinator:
    """Owns per-folder state and the "folders ready" barrier.

    Usage::

        coordinator = ReadinessCoordinator(host, classifier, synthesizer, ui, toolchain)
        coordinator.start()
        await coordinator.wait_ready()
    """

    def __init__(
        self,
        host: WorkspaceHost,
        classifier: ProjectClassifier,
        synthesizer: ConfigSynthesizer,
        ui: UserInterface,
        toolchain: Channel[FolderEvent] | None = None,
        fallback_timeout: float = TIMEOUT_FOLDERS_READY,
    ) -> None:
        self._host = host
        self._classifier = classifier
        self._synthesizer = synthesizer
        self._ui = ui
        self._toolchain = toolchain
        self._fallback_timeout = fallback_timeout

        # Snapshot of the folders open at startup; never changes afterwards.
        self._initial_folder_paths = frozenset(
            _normalize(p) for p in host.workspace_folders()
        )
        self._processed_folder_paths: set[str] = set()
        self._folders: dict[str, ManagedFolder] = {}
        self._locks: dict[str, _PathLock] = {}

        self._ready_latch = OneShotLatch(self._on_ready)
        self._generation_latch = OneShotLatch(self._start_generation)
        self._ready_event = asyncio.Event()
        self._timer: asyncio.TimerHandle | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self.generation_task: asyncio.Task[bool] | None = None

        self.folders_ready: Channel[None] = Channel("folders-ready")
        self.package_changed: Channel[ManagedFolder] = Channel("package-changed")

        logger.debug("Initial workspace has %d folders", len(self._initial_folder_paths))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to the toolchain and arm the fallback timer.

        Must be called from a running event loop.
        """
        if self._toolchain is None:
            # No folder events will ever arrive.
            self.fire_ready()
            return

        self._unsubscribe = self._toolchain.subscribe(self._on_toolchain_event)
        if not self._initial_folder_paths:
            self.fire_ready()
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._fallback_timeout, self._on_timeout)

    def dispose(self) -> None:
        self._cancel_timer()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        for folder in self._folders.values():
            folder.dispose()
        self._folders.clear()
        self.folders_ready.clear()
        self.package_changed.clear()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self._ready_latch.fired

    @property
    def folders(self) -> list[ManagedFolder]:
        return list(self._folders.values())

    @property
    def initial_folder_paths(self) -> frozenset[str]:
        return self._initial_folder_paths

    @property
    def processed_folder_paths(self) -> frozenset[str]:
        return frozenset(self._processed_folder_paths)

    def folder_for(self, path: str) -> ManagedFolder | None:
        return self._folders.get(_normalize(path))

    async def wait_ready(self) -> None:
        await self._ready_event.wait()

    # ------------------------------------------------------------------
    # Barrier
    # ------------------------------------------------------------------

    def fire_ready(self) -> None:
        self._ready_latch.fire()

    def _on_timeout(self) -> None:
        self._timer = None
        if not self.ready:
            logger.info("Initial folder setup complete (timeout)")
        self.fire_ready()

    def _on_ready(self) -> None:
        logger.info(
            "Folders ready: %d/%d initial folders processed",
            len(self._processed_folder_paths & self._initial_folder_paths),
            len(self._initial_folder_paths),
        )
        self._cancel_timer()
        self._ready_event.set()
        self.folders_ready.publish(None)
        self._generation_latch.fire()

    def _start_generation(self) -> None:
        self.generation_task = asyncio.create_task(self._generate_safely())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _mark_processed(self, path: str) -> None:
        self._processed_folder_paths.add(path)
        if path not in self._initial_folder_paths:
            return
        if self._initial_folder_paths <= self._processed_folder_paths:
            self.fire_ready()
        else:
            logger.debug(
                "Still waiting for folders: %d/%d",
                len(self._processed_folder_paths & self._initial_folder_paths),
                len(self._initial_folder_paths),
            )

    # ------------------------------------------------------------------
    # Folder events
    # ------------------------------------------------------------------

    def _on_toolchain_event(self, event: FolderEvent) -> None:
        self._spawn(self.handle_folder_event(event), f"{event.operation.value} event")

    async def handle_folder_event(self, event: FolderEvent) -> None:
        if event.folder is None:
            logger.debug("Folder event %s without a folder, skipping", event.operation.value)
            return

        logger.debug("Folder event %s for %s", event.operation.value, event.folder.path)
        operation = event.operation
        match operation:
            case FolderOperation.ADD | FolderOperation.PACKAGE_UPDATED:
                await self._on_folder_added(event.folder)
            case FolderOperation.REMOVE:
                await self._on_folder_removed(event.folder)
            case (
                FolderOperation.FOCUS
                | FolderOperation.UNFOCUS
                | FolderOperation.RESOLVED_UPDATED
                | FolderOperation.WORKSPACE_STATE_UPDATED
                | FolderOperation.PACKAGE_VIEW_UPDATED
                | FolderOperation.PLUGINS_UPDATED
            ):
                return
            case _:
                assert_never(operation)

    async def _on_folder_added(self, reported: ToolchainFolder) -> None:
        path = _normalize(reported.path)
        async with self._lock_for(path):
            folder = self._get_or_create(path, reported.context)
            if folder.classification is ClassificationState.UNCLASSIFIED:
                folder.classification = await self._classify(path)
            self._mark_processed(path)
        self.package_changed.publish(folder)

    async def _on_folder_removed(self, reported: ToolchainFolder) -> None:
        path = _normalize(reported.path)
        async with self._lock_for(path):
            folder = self._folders.get(path)
            if folder is None:
                return
            if len(self._folders) <= 1:
                # Upstream emits remove/add bursts; never drop the last folder.
                logger.debug("Keeping last folder %s", path)
                return
            folder.dispose()
            del self._folders[path]
        self._release_lock(path)
        await self.prompt_refresh()

    def _get_or_create(
        self, path: str, toolchain: ToolchainContext | None
    ) -> ManagedFolder:
        folder = self._folders.get(path)
        if folder is None:
            folder = ManagedFolder(path=path, toolchain=toolchain)
            self._folders[path] = folder
        elif toolchain is not None:
            folder.toolchain = toolchain
        return folder

    async def _classify(self, path: str) -> ClassificationState:
        try:
            managed = await self._classifier.is_managed_project(path)
        except Exception:
            logger.exception("Classifying %s failed", path)
            return ClassificationState.NOT_MANAGED
        return ClassificationState.MANAGED if managed else ClassificationState.NOT_MANAGED

    # ------------------------------------------------------------------
    # Launch configuration generation
    # ------------------------------------------------------------------

    async def generate_launch_configurations(self) -> bool:
        """Add descriptors to the first managed folder that lacks them.

        Folders are queried fresh from the host.  Returns ``True`` if a
        folder received new descriptors, in which case the user is asked
        to reload and remaining folders are not visited.
        """
        paths = [_normalize(p) for p in self._host.workspace_folders()]
        logger.debug(
            "Generating launch configurations for %d folders (existing: %s)",
            len(paths),
            self._has_existing_descriptors(paths),
        )

        for path in paths:
            try:
                result = await self._generate_for(path)
            except Exception:
                logger.exception("Generating launch configurations for %s failed", path)
                continue

            if result is SynthesisResult.ADDED:
                logger.info("Added Wendy debug configurations to %s", path)
                await self.prompt_refresh()
                return True
            if result is not None:
                logger.info("Wendy configurations already exist or couldn't be added for %s", path)
        return False

    async def _generate_for(self, path: str) -> SynthesisResult | None:
        async with self._lock_for(path):
            state = await self._classify(path)
            if state is not ClassificationState.MANAGED:
                return None
            logger.info("Detected Wendy project in folder: %s", path)

            folder = self._get_or_create(path, None)
            folder.classification = state
            self._mark_processed(path)
            return await self._synthesizer.synthesize(folder)

    async def _generate_safely(self) -> bool:
        try:
            return await self.generate_launch_configurations()
        except Exception:
            logger.exception("Error generating launch configurations")
            return False

    def _has_existing_descriptors(self, paths: list[str]) -> bool:
        try:
            return self._synthesizer.has_any_descriptor(paths)
        except Exception as exc:
            logger.warning("Could not read launch configurations: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    async def prompt_refresh(self) -> None:
        choice = await self._ui.show_info(_REFRESH_PROMPT, "Refresh")
        if choice == "Refresh":
            await self._ui.execute_command(CMD_RELOAD_WINDOW)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_for(self, path: str) -> _PathLock:
        lock = self._locks.get(path)
        if lock is None:
            lock = self._locks[path] = _PathLock()
        return lock

    def _release_lock(self, path: str) -> None:
        lock = self._locks.get(path)
        if lock is not None and lock.users == 0:
            del self._locks[path]

    def _spawn(self, coro: Coroutine[Any, Any, None], what: str) -> None:
        task = asyncio.create_task(self._guarded(coro, what))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _guarded(self, coro: Coroutine[Any, Any, None], what: str) -> None:
        try:
            await coro
        except Exception:
            logger.exception("Failed to handle %s", what)

    async def wait_for_pending_events(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _normalize(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))
