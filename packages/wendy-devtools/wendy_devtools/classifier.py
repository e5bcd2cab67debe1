"""Decide whether a workspace folder is a Wendy project."""

from __future__ import annotations

import logging
import os

from wendy_devtools.cli import CLIError, WendyCLI

logger = logging.getLogger(__name__)

# Dependency identifiers in Package.swift that imply a Wendy project.
_DEPENDENCY_PATTERNS = (
    "wendy-runtime",
    "wendy-agent",
    "wendy-proxy",
    "apache-wendy",
    "apache/wendy",
)

_PACKAGE_MANIFEST = "Package.swift"
_PROJECT_CONFIG = "wendy.json"


class WendyProjectClassifier:
    """Layered heuristics, cheapest first.

    1. ``Package.swift`` mentions a Wendy dependency.
    2. A ``wendy.json`` file is present.
    3. ``wendy info`` succeeds inside the folder.

    Answers are memoized per path for the lifetime of the instance.
    """

    def __init__(self, cli: WendyCLI | None = None) -> None:
        self._cli = cli
        self._cache: dict[str, bool] = {}

    async def is_managed_project(self, folder_path: str) -> bool:
        key = os.path.abspath(folder_path)
        if key not in self._cache:
            self._cache[key] = await self._classify(key)
        return self._cache[key]

    def forget(self, folder_path: str) -> None:
        self._cache.pop(os.path.abspath(folder_path), None)

    async def _classify(self, folder_path: str) -> bool:
        if _manifest_mentions_wendy(folder_path):
            return True

        if os.path.isfile(os.path.join(folder_path, _PROJECT_CONFIG)):
            return True

        # Most expensive, so last.
        if self._cli is None or not os.path.isdir(folder_path):
            return False
        try:
            output = await self._cli.info(cwd=folder_path)
        except CLIError:
            return False
        return bool(output) and "error" not in output.lower()


def _manifest_mentions_wendy(folder_path: str) -> bool:
    manifest = os.path.join(folder_path, _PACKAGE_MANIFEST)
    if not os.path.isfile(manifest):
        return False
    try:
        with open(manifest, encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError as exc:
        logger.warning("Error reading %s: %s", manifest, exc)
        return False
    return any(pattern in content for pattern in _DEPENDENCY_PATTERNS)
