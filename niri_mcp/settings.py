"""
Runtime configuration, read from the environment once at startup.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_NIRI_BIN = "niri"
DEFAULT_TIMEOUT = 5.0
DEFAULT_LOG_LEVEL = "WARNING"


def default_config_home(environ: Mapping[str, str]) -> Path:
    """niri's config directory, honoring XDG_CONFIG_HOME."""
    explicit = environ.get("NIRI_CONFIG_HOME", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    xdg = environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg).expanduser() / "niri"
    return Path.home() / ".config" / "niri"


@dataclass(frozen=True)
class Settings:
    config_dir: Path
    config_file: Path
    niri_bin: str = DEFAULT_NIRI_BIN
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        if environ is None:
            environ = os.environ

        home = default_config_home(environ)
        config_dir = environ.get("NIRI_MCP_CONFIG_DIR", "").strip()
        config_file = environ.get("NIRI_MCP_CONFIG_FILE", "").strip()

        timeout_raw = environ.get("NIRI_MCP_TIMEOUT", "").strip()
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            raise ValueError(f"NIRI_MCP_TIMEOUT must be a number, got {timeout_raw!r}") from None

        return cls(
            config_dir=Path(config_dir).expanduser() if config_dir else home / "config.d",
            config_file=Path(config_file).expanduser() if config_file else home / "config.kdl",
            niri_bin=environ.get("NIRI_MCP_NIRI_BIN", "").strip() or DEFAULT_NIRI_BIN,
            timeout=timeout,
            log_level=(environ.get("NIRI_MCP_LOG_LEVEL", "").strip() or DEFAULT_LOG_LEVEL).upper(),
        )
