"""MCP server exposing niri window manager state and configuration toggles."""

__version__ = "1.0.0"
