"""
Thin wrapper around `niri msg --json`.
"""

import json
import logging
import subprocess
from typing import Any, List, Optional

from niri_mcp.settings import Settings

logger = logging.getLogger(__name__)

# Subcommands exposed as tools
SUBCOMMANDS = (
    "outputs",
    "workspaces",
    "windows",
    "layers",
    "keyboard-layouts",
    "focused-output",
    "focused-window",
    "overview-state",
)


class NiriMsgError(RuntimeError):
    """A `niri msg` query could not be run or did not return JSON."""

    def __init__(self, message: str, command: List[str], stderr: Optional[str] = None):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


def run_niri_msg(subcommand: str, settings: Settings) -> Any:
    """
    Execute a `niri msg --json` query.

    Args:
        subcommand: Query to run (e.g., 'windows', 'focused-output')
        settings: Runtime settings providing the niri binary and timeout

    Returns:
        The parsed JSON output

    Raises:
        NiriMsgError: niri is missing, exits non-zero, times out or prints
            something that is not JSON
    """
    command = [settings.niri_bin, "msg", "--json", subcommand]
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=True,
            timeout=settings.timeout
        )
    except FileNotFoundError as e:
        logger.error("niri executable not found: %s", settings.niri_bin)
        raise NiriMsgError(f"niri executable not found: {settings.niri_bin}", command) from e
    except subprocess.CalledProcessError as e:
        logger.warning("%s failed with exit code %s", " ".join(command), e.returncode)
        stderr = (e.stderr or "").strip()
        raise NiriMsgError(stderr or str(e), command, stderr) from e
    except subprocess.TimeoutExpired as e:
        logger.warning("%s timed out", " ".join(command))
        raise NiriMsgError(f"Query timed out after {settings.timeout:g} seconds", command) from e

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        logger.warning("%s printed invalid JSON", " ".join(command))
        raise NiriMsgError(f"Failed to parse niri msg output: {e}", command, result.stderr) from e
