"""WendyOS workspace CLI.

Thin router that delegates all work to ``wendy_devtools.session.WorkspaceSession``.
Each invocation is a separate process; devices and settings are persisted
in the settings file, launch configurations in each folder's
``.vscode/launch.json``.

Usage::

    wendy-devtools devices
    wendy-devtools add-device 10.0.0.5
    wendy-devtools select-device <id>
    wendy-devtools generate ~/src/app
    wendy-devtools resolve ~/src/app App
    wendy-devtools run-args ~/src/app App
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from wendy_devtools.session import WorkspaceSession

LOG_LEVEL_ENV = "WENDY_DEVTOOLS_LOG_LEVEL"


def _usage() -> str:
    return (
        "Usage: wendy-devtools <action> [args]\n"
        "Actions: devices, add-device <address>, remove-device <id>,\n"
        "         select-device <id>, update-agent <id>, wifi <id>,\n"
        "         generate [folder...], resolve <folder> [target],\n"
        "         run-args <folder> [target]"
    )


def configure_logging() -> None:
    name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, stream=sys.stderr)


async def _run(argv: list[str]) -> str:
    if len(argv) < 2:
        return _usage()

    action = argv[1]
    args = argv[2:]

    if action == "generate":
        session = await WorkspaceSession.create(folders=args or [os.getcwd()])
        await session.start()
        text = await session.wait_ready()
        await session.stop()
        return text

    session = await WorkspaceSession.create()
    try:
        return await _dispatch(session, action, args)
    finally:
        await session.stop()


async def _dispatch(session: WorkspaceSession, action: str, args: list[str]) -> str:
    if action == "devices":
        return await session.list_devices()

    if action == "add-device":
        if not args:
            return "Error: add-device requires an address.  Usage: add-device <host[:port]>"
        return await session.add_device(args[0])

    if action == "remove-device":
        if not args:
            return "Error: remove-device requires a device id.  Usage: remove-device <id>"
        return await session.remove_device(args[0])

    if action == "select-device":
        if not args:
            return "Error: select-device requires a device id.  Usage: select-device <id>"
        return await session.select_device(args[0])

    if action == "update-agent":
        if not args:
            return "Error: update-agent requires a device id.  Usage: update-agent <id>"
        return await session.update_agent(args[0])

    if action == "wifi":
        if not args:
            return "Error: wifi requires a device id.  Usage: wifi <id>"
        return await session.connect_wifi(args[0])

    if action == "resolve":
        if not args:
            return "Error: resolve requires a folder.  Usage: resolve <folder> [target]"
        return await session.resolve(args[0], args[1] if len(args) > 1 else None)

    if action == "run-args":
        if not args:
            return "Error: run-args requires a folder.  Usage: run-args <folder> [target]"
        return await session.run_args(args[0], args[1] if len(args) > 1 else None)

    return f"Unknown action: {action}\n{_usage()}"


def main() -> None:
    configure_logging()
    result = asyncio.run(_run(sys.argv))
    print(result)


if __name__ == "__main__":
    main()
