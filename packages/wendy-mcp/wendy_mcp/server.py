"""
MCP server that exposes WendyOS device and debug-configuration tools.

Thin layer on top of ``wendy_devtools.session.WorkspaceSession``.
All heavy lifting (discovery, readiness, descriptor synthesis and
resolution) lives in the shared ``wendy-devtools`` package.

Nobody can answer an editor prompt over MCP, so the session runs with a
headless user interface: prompts are dismissed and notifications are
appended to the tool result.

Run::

    python -m wendy_mcp.server          # stdio transport
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import mcp.server.stdio
from mcp import types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from wendy_devtools.console import configure_logging
from wendy_devtools.session import HeadlessUserInterface, WorkspaceSession

# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

# Each strategy is an async callable: (session, args) -> str
ToolStrategy = Callable[[WorkspaceSession, dict[str, Any]], Awaitable[str]]

# ---------------------------------------------------------------------------
# Server + shared session (built on first use)
# ---------------------------------------------------------------------------

server = Server("wendy-mcp")
_session: WorkspaceSession | None = None


async def _get_session() -> WorkspaceSession:
    global _session  # noqa: PLW0603
    if _session is None:
        _session = await WorkspaceSession.create(ui=HeadlessUserInterface())
    return _session


# ---------------------------------------------------------------------------
# Tool strategies -- one per tool, maps name -> (schema, handler)
# ---------------------------------------------------------------------------


async def _devices_list(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.list_devices()


async def _device_add(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.add_device(args["address"])


async def _device_remove(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.remove_device(args["id"])


async def _device_select(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.select_device(args["id"])


async def _device_update_agent(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.update_agent(args["id"])


async def _generate_configs(session: WorkspaceSession, args: dict[str, Any]) -> str:
    # Folder sets differ per call, so generation runs in its own session.
    workspace = WorkspaceSession(
        session.store, session.ui, session.cli, folders=args["folders"]
    )
    await workspace.start()
    text = await workspace.wait_ready()
    await workspace.stop()
    return text


async def _debug_resolve(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.resolve(args["folder"], args.get("target"))


async def _run_args(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.run_args(args["folder"], args.get("target"))


async def _stop(session: WorkspaceSession, args: dict[str, Any]) -> str:
    return await session.stop()


# ---------------------------------------------------------------------------
# Registry: tool name -> (Tool schema, strategy, resets session after?)
# ---------------------------------------------------------------------------

_DEVICE_ID = {
    "type": "object",
    "properties": {
        "id": {
            "type": "string",
            "description": "Device id as shown by devices_list.",
        },
    },
    "required": ["id"],
}

_FOLDER_TARGET = {
    "type": "object",
    "properties": {
        "folder": {
            "type": "string",
            "description": "Path to the workspace folder.",
        },
        "target": {
            "type": "string",
            "description": (
                "Executable target name.  Defaults to the folder's first "
                "Wendy launch configuration."
            ),
        },
    },
    "required": ["folder"],
}

_TOOL_REGISTRY: dict[str, tuple[types.Tool, ToolStrategy, bool]] = {
    "devices_list": (
        types.Tool(
            name="devices_list",
            description=(
                "List WendyOS devices: discovered on the LAN and added "
                "manually.  The current device is marked with '*'."
            ),
            inputSchema={"type": "object", "properties": {}},
        ),
        _devices_list,
        False,
    ),
    "device_add": (
        types.Tool(
            name="device_add",
            description=(
                "Add a device by address.  The first device added becomes "
                "the current device."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "address": {
                        "type": "string",
                        "description": "Hostname or IP, optionally with :port.",
                    },
                },
                "required": ["address"],
            },
        ),
        _device_add,
        False,
    ),
    "device_remove": (
        types.Tool(
            name="device_remove",
            description="Remove a manually added device.",
            inputSchema=_DEVICE_ID,
        ),
        _device_remove,
        False,
    ),
    "device_select": (
        types.Tool(
            name="device_select",
            description="Make a device the target for running and debugging.",
            inputSchema=_DEVICE_ID,
        ),
        _device_select,
        False,
    ),
    "device_update_agent": (
        types.Tool(
            name="device_update_agent",
            description="Update the Wendy agent running on a device.",
            inputSchema=_DEVICE_ID,
        ),
        _device_update_agent,
        False,
    ),
    "workspace_generate_configs": (
        types.Tool(
            name="workspace_generate_configs",
            description=(
                "Classify the given folders and add Wendy debug "
                "configurations to the first Wendy project that has none."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "folders": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Workspace folder paths.",
                    },
                },
                "required": ["folders"],
            },
        ),
        _generate_configs,
        False,
    ),
    "debug_resolve": (
        types.Tool(
            name="debug_resolve",
            description=(
                "Resolve a Wendy launch configuration into the concrete "
                "debugger session (lldb-dap, CodeLLDB or debugpy) for the "
                "current device."
            ),
            inputSchema=_FOLDER_TARGET,
        ),
        _debug_resolve,
        False,
    ),
    "run_args": (
        types.Tool(
            name="run_args",
            description="Show the wendy command that deploys a target for debugging.",
            inputSchema=_FOLDER_TARGET,
        ),
        _run_args,
        False,
    ),
    "workspace_stop": (
        types.Tool(
            name="workspace_stop",
            description="End the current session and clean up.",
            inputSchema={"type": "object", "properties": {}},
        ),
        _stop,
        True,  # reset session after stop
    ),
}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return [schema for schema, _, _ in _TOOL_REGISTRY.values()]


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict[str, Any]
) -> list[types.TextContent]:
    global _session  # noqa: PLW0603

    entry = _TOOL_REGISTRY.get(name)
    if entry is None:
        return [types.TextContent(type="text", text=f"Unknown tool: {name}")]

    _schema, strategy, resets = entry
    text = await strategy(await _get_session(), arguments or {})

    if resets:
        _session = None

    return [types.TextContent(type="text", text=text)]


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


async def run() -> None:
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name="wendy-mcp",
                server_version="0.1.0",
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            ),
        )


def main() -> None:
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
