"""
Async wrapper around the ``wendy`` command-line tool.

Every device-side operation (discovery, agent version checks, updates,
WiFi) is a ``wendy`` subcommand that prints JSON.  This module runs the
subprocess, enforces a timeout and parses the output; interpretation of
the JSON is left to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from typing import Any

from wendy_devtools.config import TIMEOUT_CLI, TIMEOUT_CLI_UPDATE

logger = logging.getLogger(__name__)

_EXECUTABLE = "wendy"


class CLIError(RuntimeError):
    """The CLI could not be run, exited non-zero, or printed bad JSON."""

    def __init__(
        self,
        message: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode

    def __str__(self) -> str:
        detail = self.stderr.strip()
        base = super().__str__()
        return f"{base}: {detail}" if detail else base


# ---------------------------------------------------------------------------
# Locate
# ---------------------------------------------------------------------------


def find_executable(configured_path: str | None = None) -> str:
    """Return the absolute path of the ``wendy`` executable.

    A configured path wins (``~`` is expanded) and must be executable.
    Otherwise ``PATH`` is searched and symlinks are resolved.

    Raises :class:`FileNotFoundError` if nothing usable is found.
    """
    if configured_path and configured_path.strip():
        expanded = os.path.expanduser(configured_path.strip())
        if os.path.isfile(expanded) and os.access(expanded, os.X_OK):
            return expanded
        raise FileNotFoundError(
            f'Configured Wendy CLI path "{configured_path}" is not accessible or executable.'
        )

    found = shutil.which(_EXECUTABLE)
    if not found:
        raise FileNotFoundError("Failed to find wendy executable")
    return os.path.realpath(found)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class WendyCLI:
    """Runs ``wendy`` subcommands.

    Usage::

        cli = await WendyCLI.create()
        devices = await cli.discover()
    """

    def __init__(self, path: str, version: str = "") -> None:
        self.path = path
        self.version = version

    @classmethod
    async def create(cls, configured_path: str | None = None) -> WendyCLI | None:
        """Locate the CLI and read its version; ``None`` if unavailable."""
        try:
            cli = cls(find_executable(configured_path))
            cli.version = await cli.run_text("--version")
        except (FileNotFoundError, CLIError) as exc:
            logger.warning("Wendy CLI unavailable: %s", exc)
            return None
        return cli

    # ------------------------------------------------------------------
    # Subcommands
    # ------------------------------------------------------------------

    async def discover(self) -> dict[str, Any]:
        return await self.run_json("discover", "--json")

    async def agent_version(self, address: str) -> dict[str, Any]:
        return await self.run_json(
            "agent", "version", "--agent", address,
            "--json", "--check-updates", "--prerelease",
        )

    async def update_agent(self, address: str) -> str:
        return await self.run_text(
            "agent", "update", "--agent", address, timeout=TIMEOUT_CLI_UPDATE,
        )

    async def wifi_list(self, address: str) -> list[dict[str, Any]]:
        return await self.run_json("wifi", "list", "--agent", address, "--json")

    async def wifi_connect(
        self, address: str, ssid: str, password: str
    ) -> dict[str, Any]:
        return await self.run_json(
            "wifi", "connect", ssid,
            "--agent", address, "--password", password, "--json",
        )

    async def info(self, cwd: str) -> str:
        return await self.run_text("info", cwd=cwd)

    # ------------------------------------------------------------------
    # Process plumbing
    # ------------------------------------------------------------------

    async def run_json(self, *args: str, cwd: str | None = None) -> Any:
        output = await self.run_text(*args, cwd=cwd)
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise CLIError(
                f"wendy {args[0]} printed malformed JSON ({exc})", stdout=output
            ) from exc

    async def run_text(
        self,
        *args: str,
        cwd: str | None = None,
        timeout: float = TIMEOUT_CLI,
    ) -> str:
        """Run ``wendy *args`` and return stripped stdout."""
        logger.debug("Running: %s %s", self.path, " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                self.path,
                *args,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CLIError(f"Could not start {self.path}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise CLIError(f"wendy {args[0]} timed out after {timeout:.0f} s") from exc

        out = stdout.decode("utf-8", errors="replace").rstrip()
        err = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise CLIError(
                f"wendy {args[0]} failed (exit {process.returncode})",
                stdout=out,
                stderr=err,
                returncode=process.returncode,
            )
        return out
