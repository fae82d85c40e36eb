#!/usr/bin/env python3
"""
niri MCP Server

Model Context Protocol server for the niri Wayland compositor.
Provides read-only tools relaying `niri msg --json` queries (outputs, workspaces,
windows, layers, keyboard layouts, focus and overview state) and tools for
enabling/disabling configuration: fragments in config.d and include
directives in config.kdl.
"""

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field

from niri_mcp import toggle
from niri_mcp.models import ConfigItem, ResponseFormat, ToggleAction
from niri_mcp.msg import run_niri_msg
from niri_mcp.query import QueryOptions, filter_columns, query
from niri_mcp.settings import Settings
from niri_mcp.stores import (
    ConfigFileNotFound,
    FragmentDirectoryStore,
    IncludeDocumentStore,
    InvalidPattern,
)

logger = logging.getLogger(__name__)

# Constants
CHARACTER_LIMIT = 25000
CONFIG_FILE_NOT_FOUND = "Config file not found"

# Initialize FastMCP server
mcp = FastMCP("niri_mcp")

settings = Settings.from_env()


# ============================================================================
# Helper Functions
# ============================================================================

def truncate_response(content: str, limit: int = CHARACTER_LIMIT) -> str:
    """
    Truncate a markdown response if it exceeds character limit.

    Only human-readable output goes through here. JSON responses are
    always returned whole, since a cut-off document no longer parses.

    Args:
        content: Content to potentially truncate
        limit: Maximum character limit

    Returns:
        Original or truncated content with truncation notice
    """
    if len(content) <= limit:
        return content

    truncated = content[:limit]
    notice = (
        f"\n\n---\n**Response truncated** (exceeded {limit} characters). "
        f"Narrow the listing or request response_format='json' for the full data."
    )
    return truncated + notice


def apply_query(data: Any, options: Optional[QueryOptions]) -> Any:
    """Apply query options to a niri payload; objects only get column selection."""
    if options is None or options.is_empty():
        return data
    if isinstance(data, list):
        return query(data, options)
    if isinstance(data, dict):
        return filter_columns(data, options.include, options.exclude)
    return data


def query_niri(subcommand: str, params: Optional[QueryOptions]) -> str:
    # NiriMsgError propagates; FastMCP reports it as a failed tool call.
    # JSON is never cut short, use include/exclude/filter to shrink it.
    data = run_niri_msg(subcommand, settings)
    return json.dumps(apply_query(data, params), indent=2)


def error_payload(message: str) -> str:
    return json.dumps({"error": message}, indent=2)


def fragment_listing(item: ConfigItem) -> Dict[str, Any]:
    entry = {
        "name": item.identifier,
        "path": str(item.locator),
        "state": item.state.value,
    }
    if item.size is not None:
        entry["size"] = item.size
    return entry


# ============================================================================
# niri IPC Query Tools
# ============================================================================

NIRI_QUERY_ANNOTATIONS = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False
}


@mcp.tool(
    name="niri_outputs",
    annotations={"title": "List niri Outputs", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_outputs(params: Optional[QueryOptions] = None) -> str:
    """
    List connected outputs (monitors) in the niri window manager.

    Returns the output of `niri msg --json outputs`: an object keyed by
    connector name with make, model, modes, current mode, VRR state and
    logical position/scale for each output.

    Args:
        params (Optional[QueryOptions]): Optional selection containing:
            - include (Optional[List[str]]): Keys to keep
            - exclude (Optional[List[str]]): Keys to drop

    Returns:
        str: JSON-formatted outputs
    """
    return query_niri("outputs", params)


@mcp.tool(
    name="niri_workspaces",
    annotations={"title": "List niri Workspaces", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_workspaces(params: Optional[QueryOptions] = None) -> str:
    """
    List workspaces in the niri window manager.

    Args:
        params (Optional[QueryOptions]): Optional selection containing:
            - include (Optional[List[str]]): Keys to keep in each workspace
            - exclude (Optional[List[str]]): Keys to drop from each workspace
            - filter (Optional[List[RowFilter]]): Row predicates

    Returns:
        str: JSON array of workspaces (id, idx, name, output, is_active,
            is_focused, active_window_id, ...)

    Examples:
        - Only the focused workspace: filter=[{"field": "is_focused", "operator": "eq", "value": true}]
        - Workspaces on DP-1: filter=[{"field": "output", "operator": "eq", "value": "DP-1"}]
    """
    return query_niri("workspaces", params)


@mcp.tool(
    name="niri_windows",
    annotations={"title": "List niri Windows", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_windows(params: Optional[QueryOptions] = None) -> str:
    """
    List open windows in the niri window manager.

    Args:
        params (Optional[QueryOptions]): Optional selection containing:
            - include (Optional[List[str]]): Keys to keep in each window
            - exclude (Optional[List[str]]): Keys to drop from each window
            - filter (Optional[List[RowFilter]]): Row predicates, dotted fields allowed

    Returns:
        str: JSON array of windows (id, title, app_id, pid, workspace_id,
            is_focused, is_floating, layout, ...)

    Examples:
        - Firefox windows: filter=[{"field": "app_id", "operator": "contains", "value": "firefox"}]
        - Titles only: include=["id", "title"]
    """
    return query_niri("windows", params)


@mcp.tool(
    name="niri_layers",
    annotations={"title": "List niri Layer Surfaces", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_layers(params: Optional[QueryOptions] = None) -> str:
    """
    List layer-shell surfaces (panels, menus, notifications) in niri.

    Args:
        params (Optional[QueryOptions]): Optional include/exclude/filter selection

    Returns:
        str: JSON array of layers (namespace, output, layer, keyboard_interactivity)
    """
    return query_niri("layers", params)


@mcp.tool(
    name="niri_keyboard_layouts",
    annotations={"title": "List niri Keyboard Layouts", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_keyboard_layouts(params: Optional[QueryOptions] = None) -> str:
    """
    List keyboard layouts configured in niri and the active one.

    Returns:
        str: JSON object with `names` and `current_idx`
    """
    return query_niri("keyboard-layouts", params)


@mcp.tool(
    name="niri_focused_output",
    annotations={"title": "Get Focused niri Output", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_focused_output(params: Optional[QueryOptions] = None) -> str:
    """
    Get the currently focused output (monitor) in niri.

    Returns:
        str: JSON object describing the output, or null if none is focused
    """
    return query_niri("focused-output", params)


@mcp.tool(
    name="niri_focused_window",
    annotations={"title": "Get Focused niri Window", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_focused_window(params: Optional[QueryOptions] = None) -> str:
    """
    Get the currently focused window in niri.

    Returns:
        str: JSON object describing the window, or null if no window has focus
    """
    return query_niri("focused-window", params)


@mcp.tool(
    name="niri_overview_state",
    annotations={"title": "Get niri Overview State", **NIRI_QUERY_ANNOTATIONS}
)
async def niri_overview_state(params: Optional[QueryOptions] = None) -> str:
    """
    Get whether the niri overview is open.

    Returns:
        str: JSON object `{"is_open": bool}`
    """
    return query_niri("overview-state", params)


# ============================================================================
# config.d Fragment Tools
# ============================================================================

class ListConfigsInput(BaseModel):
    """Input for listing config.d fragments."""
    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid'
    )

    filter: Optional[str] = Field(
        default=None,
        description="Regular expression matched against file names (e.g., 'output', '^10-')"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.JSON,
        description="Output format: 'json' for raw data or 'markdown' for human-readable"
    )


@mcp.tool(
    name="list_niri_configs",
    annotations={
        "title": "List niri config.d Files",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def list_niri_configs(params: Optional[ListConfigsInput] = None) -> str:
    """
    List niri config.d files with their state (included/excluded).

    A file is excluded when its name ends with `.disabled`. The directory
    is created if it does not exist yet.

    Args:
        params (Optional[ListConfigsInput]): Parameters containing:
            - filter (Optional[str]): Regex on file names. An invalid regex
              matches nothing.
            - response_format (ResponseFormat): Output format (json or markdown)

    Returns:
        str: Files sorted by name

    Example output (json):
        [
          {"name": "10-outputs.kdl", "path": "/home/user/.config/niri/config.d/10-outputs.kdl",
           "state": "included", "size": 312},
          {"name": "20-gaps.kdl.disabled", "path": "...", "state": "excluded", "size": 48}
        ]
    """
    params = params or ListConfigsInput()
    store = FragmentDirectoryStore(settings.config_dir, name_pattern=params.filter)
    items = store.scan()

    if params.response_format == ResponseFormat.JSON:
        return json.dumps([fragment_listing(item) for item in items], indent=2)

    output = f"### niri config.d ({store.directory})\n\n"
    if not items:
        output += "No config files found.\n"
    else:
        for item in items:
            size = f", {item.size} bytes" if item.size is not None else ""
            output += f"- **{item.identifier}**: {item.state.value}{size}\n"
        output += f"\nTotal: {len(items)} file(s)\n"

    return truncate_response(output)


class ToggleConfigInput(BaseModel):
    """Input for toggling config.d fragments."""
    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid'
    )

    id_regex: Optional[str] = Field(
        default=None,
        description="Regular expression selecting files by name (omit to act on every file)"
    )
    action: ToggleAction = Field(
        default=ToggleAction.TOGGLE,
        description="'on' to enable, 'off' to disable, 'toggle' to flip"
    )


@mcp.tool(
    name="toggle_niri_config",
    annotations={
        "title": "Toggle niri config.d Files",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False
    }
)
async def toggle_niri_config(params: Optional[ToggleConfigInput] = None) -> str:
    """
    Enable or disable niri config.d files by renaming them.

    Disabling appends `.disabled` to the file name; enabling removes it.
    `on` and `off` leave files already in the requested state untouched.

    Args:
        params (Optional[ToggleConfigInput]): Parameters containing:
            - id_regex (Optional[str]): Regex on file names
            - action (ToggleAction): on, off or toggle (default: toggle)

    Returns:
        str: JSON-formatted `{affected, skipped}` report

    Example output:
        {
          "affected": [
            {"name": "20-gaps.kdl", "previousState": "included",
             "newState": "excluded", "path": ".../config.d/20-gaps.kdl"}
          ],
          "skipped": []
        }
    """
    params = params or ToggleConfigInput()
    store = FragmentDirectoryStore(settings.config_dir)

    try:
        result = toggle.apply(store, params.action, name_pattern=params.id_regex)
    except InvalidPattern as e:
        return error_payload(str(e))

    return json.dumps(result.to_payload(), indent=2)


# ============================================================================
# config.kdl Include Tools
# ============================================================================

class ListIncludesInput(BaseModel):
    """Input for listing config.kdl include directives."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra='forbid'
    )

    response_format: ResponseFormat = Field(
        default=ResponseFormat.JSON,
        description="Output format: 'json' for raw data or 'markdown' for human-readable"
    )


@mcp.tool(
    name="list_niri_kdl_includes",
    annotations={
        "title": "List niri config.kdl Includes",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def list_niri_kdl_includes(params: Optional[ListIncludesInput] = None) -> str:
    """
    List include directives from niri config.kdl with their state.

    An include is excluded when its line carries a trailing `// disabled`
    comment. Directives are listed in document order.

    Returns:
        str: JSON `{path, includes: [{path, state}]}`, or
            `{"error": "Config file not found"}` when config.kdl is missing
    """
    params = params or ListIncludesInput()
    store = IncludeDocumentStore(settings.config_file)

    try:
        items = store.scan()
    except ConfigFileNotFound:
        return error_payload(CONFIG_FILE_NOT_FOUND)

    includes = [{"path": item.identifier, "state": item.state.value} for item in items]

    if params.response_format == ResponseFormat.JSON:
        return json.dumps({"path": str(store.document), "includes": includes}, indent=2)

    output = f"### Includes in {store.document}\n\n"
    if not includes:
        output += "No include directives found.\n"
    for entry in includes:
        output += f"- `{entry['path']}`: {entry['state']}\n"

    return truncate_response(output)


class ToggleIncludeInput(BaseModel):
    """Input for toggling config.kdl include directives."""
    model_config = ConfigDict(
        # regex text is used verbatim, surrounding whitespace included
        validate_assignment=True,
        extra='forbid'
    )

    pattern: Optional[str] = Field(
        default=None,
        description="Regular expression matched against the include line (e.g., 'binds', 'outputs\\.kdl')"
    )
    action: ToggleAction = Field(
        default=ToggleAction.TOGGLE,
        description="'on' to enable, 'off' to disable, 'toggle' to flip"
    )


@mcp.tool(
    name="toggle_niri_kdl_include",
    annotations={
        "title": "Toggle niri config.kdl Includes",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": False
    }
)
async def toggle_niri_kdl_include(params: Optional[ToggleIncludeInput] = None) -> str:
    """
    Toggle include directives in niri config.kdl via a `// disabled` comment.

    Lines not matching `pattern` are reported as skipped. config.kdl is only
    rewritten when at least one directive changed.

    Args:
        params (Optional[ToggleIncludeInput]): Parameters containing:
            - pattern (Optional[str]): Regex on the include line
            - action (ToggleAction): on, off or toggle (default: toggle)

    Returns:
        str: JSON-formatted `{affected, skipped}` report, or an `error`
            payload when config.kdl is missing or the pattern is invalid
    """
    params = params or ToggleIncludeInput()
    store = IncludeDocumentStore(settings.config_file)

    try:
        result = toggle.apply(store, params.action, selector=params.pattern)
    except ConfigFileNotFound:
        return error_payload(CONFIG_FILE_NOT_FOUND)
    except InvalidPattern as e:
        return error_payload(str(e))

    return json.dumps(result.to_payload(), indent=2)


# ============================================================================
# Main Entry Point
# ============================================================================

def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="niri-mcp", description="MCP server for the niri window manager")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="MCP transport (default: stdio)"
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for HTTP transports")
    parser.add_argument("--port", type=int, default=3000, help="Port for HTTP transports (default: 3000)")
    args = parser.parse_args(argv)

    # stdout carries the stdio transport
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    mcp.settings.host = args.host
    mcp.settings.port = args.port
    logger.info("Starting niri MCP server (%s)", args.transport)
    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
