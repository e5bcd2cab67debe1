"""Typed publish/subscribe channels and toolchain folder events."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from wendy_devtools.protocol import ToolchainContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Channel(Generic[T]):
    """One event category, delivered synchronously in subscription order.

    A subscriber added while an event is being delivered only sees later
    events.  A subscriber that raises is logged; the others still run.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Callable[[T], None]] = []

    def subscribe(self, handler: Callable[[T], None]) -> Unsubscribe:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: T) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Subscriber of %s failed", self.name)

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)


# ---------------------------------------------------------------------------
# Toolchain folder lifecycle
# ---------------------------------------------------------------------------


class FolderOperation(str, enum.Enum):
    """Every operation kind the toolchain integration can report.

    Keep in step with upstream: the dispatcher in ``readiness`` checks it
    exhaustively, so a new member fails type checking there.
    """

    ADD = "add"
    REMOVE = "remove"
    FOCUS = "focus"
    UNFOCUS = "unfocus"
    PACKAGE_UPDATED = "packageUpdated"
    RESOLVED_UPDATED = "resolvedUpdated"
    WORKSPACE_STATE_UPDATED = "workspaceStateUpdated"
    PACKAGE_VIEW_UPDATED = "packageViewUpdated"
    PLUGINS_UPDATED = "pluginsUpdated"


@dataclass(frozen=True)
class ToolchainFolder:
    path: str
    context: ToolchainContext | None = None


@dataclass(frozen=True)
class FolderEvent:
    operation: FolderOperation
    folder: ToolchainFolder | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> FolderEvent:
        """Build from the loosely-typed dict an integration may hand over.

        Raises :class:`ValueError` for an unknown operation.
        """
        operation = FolderOperation(payload["operation"])
        raw = payload.get("folder")
        folder = None
        if raw is not None:
            folder = ToolchainFolder(
                path=raw["path"], context=raw.get("context")
            )
        return cls(operation=operation, folder=folder)
