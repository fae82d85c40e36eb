"""
Enums and pydantic models shared by the niri MCP tools.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================

class ConfigState(str, Enum):
    """Whether a config fragment or include directive is active."""
    INCLUDED = "included"
    EXCLUDED = "excluded"


class ToggleAction(str, Enum):
    """Requested state change for config fragments and include directives."""
    ON = "on"
    OFF = "off"
    TOGGLE = "toggle"


class ResponseFormat(str, Enum):
    """Output format for responses."""
    JSON = "json"
    MARKDOWN = "markdown"


# ============================================================================
# Config items and toggle outcomes
# ============================================================================

class ConfigItem(BaseModel):
    """
    One enable-able unit of configuration, as seen by a single scan.

    The locator is the absolute file path for config.d fragments and the
    line index inside config.kdl for include directives.
    """
    model_config = ConfigDict(frozen=True)

    identifier: str
    state: ConfigState
    locator: Union[Path, int]
    size: Optional[int] = None


class Affected(BaseModel):
    """An item whose state was changed."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    previous_state: ConfigState = Field(alias="previousState")
    new_state: ConfigState = Field(alias="newState")
    path: str


class Skipped(BaseModel):
    """An item that was left alone, with the reason why."""
    name: str
    reason: str


class ToggleResult(BaseModel):
    """Report returned by the toggle tools."""
    affected: List[Affected] = Field(default_factory=list)
    skipped: List[Skipped] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# niri IPC payloads
#
# These mirror what `niri msg --json` prints. The tools relay the raw JSON,
# so the models only document the shape and are never enforced.
# ============================================================================

class _NiriModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class OutputMode(_NiriModel):
    width: int
    height: int
    refresh_rate: int
    is_preferred: bool


class OutputLogical(_NiriModel):
    x: int
    y: int
    width: int
    height: int
    scale: float
    transform: str


class Output(_NiriModel):
    name: str
    make: Optional[str] = None
    model: str
    serial: Optional[str] = None
    physical_size: Optional[Tuple[int, int]] = None
    modes: List[OutputMode] = Field(default_factory=list)
    current_mode: Optional[int] = None
    is_custom_mode: bool = False
    vrr_supported: bool = False
    vrr_enabled: bool = False
    logical: Optional[OutputLogical] = None


class Workspace(_NiriModel):
    id: int
    idx: int
    name: Optional[str] = None
    output: Optional[str] = None
    is_urgent: bool = False
    is_active: bool
    is_focused: bool
    active_window_id: Optional[int] = None


class WindowLayout(_NiriModel):
    pos_in_scrolling_layout: Optional[Tuple[int, int]] = None
    tile_size: Tuple[float, float]
    window_size: Tuple[int, int]
    tile_pos_in_workspace_view: Optional[Tuple[float, float]] = None
    window_offset_in_tile: Tuple[float, float]


class FocusTimestamp(_NiriModel):
    secs: int
    nanos: int


class Window(_NiriModel):
    id: int
    title: Optional[str] = None
    app_id: Optional[str] = None
    pid: Optional[int] = None
    workspace_id: Optional[int] = None
    is_focused: bool
    is_floating: bool
    is_urgent: bool = False
    layout: Optional[WindowLayout] = None
    focus_timestamp: Optional[FocusTimestamp] = None


class Layer(_NiriModel):
    namespace: str
    output: str
    layer: str
    keyboard_interactivity: str


class KeyboardLayouts(_NiriModel):
    names: List[str]
    current_idx: int


class OverviewState(_NiriModel):
    is_open: bool
