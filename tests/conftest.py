"""Shared fixtures for the niri MCP tests."""
import pytest

from niri_mcp import server
from niri_mcp.settings import Settings


@pytest.fixture
def config_dir(tmp_path):
    """A config.d directory with two enabled fragments and one disabled."""
    directory = tmp_path / "config.d"
    directory.mkdir()
    (directory / "a.conf").write_text("layout { gaps 8; }\n")
    (directory / "b.conf.disabled").write_text("prefer-no-csd\n")
    (directory / "c.conf").write_text("")
    return directory


@pytest.fixture
def config_file(tmp_path):
    """A config.kdl with one enabled and one disabled include."""
    document = tmp_path / "config.kdl"
    document.write_text(
        'input {\n'
        '    keyboard { xkb { layout "us"; } }\n'
        '}\n'
        'include "foo.kdl"\n'
        'include "bar.kdl" // disabled\n'
    )
    return document


@pytest.fixture
def niri_settings(tmp_path, monkeypatch):
    """Point the server at a temporary config home."""
    settings = Settings(
        config_dir=tmp_path / "config.d",
        config_file=tmp_path / "config.kdl",
        niri_bin="niri",
        timeout=1.0,
    )
    monkeypatch.setattr(server, "settings", settings)
    return settings
