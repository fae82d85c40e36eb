"""
Backing stores for niri configuration state.

Two physical layouts hold the enabled/disabled state of niri configuration:

- a directory of fragments (``config.d``), where a fragment is disabled by
  renaming it with a ``.disabled`` suffix;
- a single ``config.kdl`` document, where an ``include`` directive is
  disabled by a trailing ``// disabled`` comment on the same line.

Both are exposed through the same ``ConfigStore`` capability so a single
toggle engine can drive either one. Nothing is cached between calls: every
``scan()`` reads the filesystem again.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, Union

import kdl

from niri_mcp.models import ConfigItem, ConfigState

logger = logging.getLogger(__name__)

DISABLED_SUFFIX = ".disabled"
DISABLED_COMMENT = "// disabled"
INCLUDE_KEYWORD = "include"

_INCLUDE_RE = re.compile(r"^include(?=\s|$)")


class ConfigFileNotFound(FileNotFoundError):
    """The single-document store does not exist on disk."""

    def __init__(self, path: Union[str, Path]):
        super().__init__(f"Config file not found: {path}")
        self.path = Path(path)


class InvalidPattern(ValueError):
    """A caller-supplied regular expression failed to compile."""

    def __init__(self, pattern: str, message: str):
        super().__init__(f"Invalid regex pattern: {pattern}: {message}")
        self.pattern = pattern
        self.message = message


def compile_pattern(pattern: Optional[str]) -> Optional["re.Pattern[str]"]:
    """Compile an optional caller pattern, raising InvalidPattern on error."""
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPattern(pattern, str(e)) from e


# ============================================================================
# State Classifier
# ============================================================================

def classify_fragment(filename: str) -> ConfigState:
    """A fragment is excluded iff its full file name ends with `.disabled`."""
    if filename.endswith(DISABLED_SUFFIX):
        return ConfigState.EXCLUDED
    return ConfigState.INCLUDED


def is_include_directive(line: str) -> bool:
    """True when the trimmed line starts with the `include` token."""
    return _INCLUDE_RE.match(line.strip()) is not None


def classify_directive(line: str) -> ConfigState:
    """
    Classify an include directive line.

    The line is excluded iff `// disabled` appears after the directive
    keyword. Callers must check `is_include_directive` first.
    """
    trimmed = line.strip()
    if DISABLED_COMMENT in trimmed[len(INCLUDE_KEYWORD):]:
        return ConfigState.EXCLUDED
    return ConfigState.INCLUDED


def _include_value(node) -> Optional[str]:
    if node.name != INCLUDE_KEYWORD or not node.args:
        return None
    # tagged values stay wrapped, untagged ones are native
    value = getattr(node.args[0], "value", node.args[0])
    if isinstance(value, str) and value:
        return value
    return None


def parse_include_argument(line: str) -> Optional[str]:
    """
    Extract the path argument of a single-line include directive.

    Returns None when the line is not a complete include node with a
    string argument (e.g. it opens a children block or is malformed).
    """
    try:
        document = kdl.parse(line.strip())
    except kdl.ParseError:
        return None
    if len(document.nodes) != 1:
        return None
    return _include_value(document.nodes[0])


def document_includes(content: str) -> Optional[List[str]]:
    """
    Arguments of the top-level include nodes of a KDL document, in order.

    Returns None when the document does not parse as KDL.
    """
    try:
        document = kdl.parse(content)
    except kdl.ParseError as e:
        logger.warning("config.kdl does not parse as KDL (%s); scanning lines instead", e)
        return None
    targets = []
    for node in document.nodes:
        value = _include_value(node)
        if value is not None:
            targets.append(value)
    return targets


# ============================================================================
# Store capability
# ============================================================================

class ConfigStore(Protocol):
    """What the toggle engine needs from a backing store."""

    def scan(self) -> List[ConfigItem]:
        ...

    def apply_mutation(self, item: ConfigItem, new_state: ConfigState) -> None:
        ...

    def commit(self) -> None:
        ...

    def selector_text(self, item: ConfigItem) -> str:
        ...

    def item_path(self, item: ConfigItem) -> str:
        ...


# ============================================================================
# Directory Scanner / fragment directory store
# ============================================================================

class FragmentDirectoryStore:
    """
    Directory of config fragments, e.g. ``~/.config/niri/config.d``.

    Args:
        directory: Directory holding the fragments. Created on first scan
            when missing.
        name_pattern: Optional regular expression applied to file names.
            Files that do not match are left out of the scan entirely. An
            invalid pattern selects nothing.
    """

    def __init__(self, directory: Union[str, Path], name_pattern: Optional[str] = None):
        self.directory = Path(directory)
        self.name_pattern = name_pattern

    def _name_matcher(self) -> Tuple[bool, Optional["re.Pattern[str]"]]:
        try:
            return True, compile_pattern(self.name_pattern)
        except InvalidPattern as e:
            logger.warning("%s; selecting no config files", e)
            return False, None

    def scan(self) -> List[ConfigItem]:
        valid, matcher = self._name_matcher()

        try:
            entries = list(os.scandir(self.directory))
        except FileNotFoundError:
            logger.info("Creating missing config directory %s", self.directory)
            self.directory.mkdir(parents=True, exist_ok=True)
            return []

        if not valid:
            return []

        items = []
        for entry in entries:
            if not entry.is_file(follow_symlinks=False):
                continue
            if matcher and not matcher.search(entry.name):
                continue

            size = None
            try:
                size = entry.stat(follow_symlinks=False).st_size
            except OSError as e:
                logger.debug("Could not stat %s: %s", entry.path, e)

            items.append(ConfigItem(
                identifier=entry.name,
                state=classify_fragment(entry.name),
                locator=self.directory / entry.name,
                size=size,
            ))

        return sorted(items, key=lambda item: item.identifier)

    def apply_mutation(self, item: ConfigItem, new_state: ConfigState) -> None:
        source = Path(item.locator)
        if new_state == ConfigState.EXCLUDED:
            target = source.with_name(source.name + DISABLED_SUFFIX)
        else:
            stripped = source.name[:-len(DISABLED_SUFFIX)]
            if not stripped:
                raise OSError(f"Cannot enable {source.name}: empty file name")
            target = source.with_name(stripped)

        # rename() silently replaces an existing file on POSIX
        if os.path.lexists(target):
            raise FileExistsError(f"Cannot rename {source.name}: {target.name} already exists")

        os.rename(source, target)
        logger.info("Renamed %s -> %s", source, target.name)

    def commit(self) -> None:
        pass

    def selector_text(self, item: ConfigItem) -> str:
        return item.identifier

    def item_path(self, item: ConfigItem) -> str:
        return str(item.locator)


# ============================================================================
# Include-Directive Parser / single document store
# ============================================================================

def _split_eol(line: str) -> Tuple[str, str]:
    if line.endswith("\r"):
        return line[:-1], "\r"
    return line, ""


def disable_line(line: str) -> str:
    """Append the disabled marker to a directive line, trailing blanks kept."""
    body, eol = _split_eol(line)
    return f"{body} {DISABLED_COMMENT}{eol}"


def enable_line(line: str) -> str:
    """
    Strip the disabled marker, and the single space before it, from a
    directive line. Everything else on the line is left as it was, so
    ``enable_line(disable_line(line)) == line``.
    """
    body, eol = _split_eol(line)
    index = body.find(DISABLED_COMMENT)
    if index == -1:
        return line
    start = index - 1 if index > 0 and body[index - 1] == " " else index
    return body[:start] + body[index + len(DISABLED_COMMENT):] + eol


class IncludeDocumentStore:
    """
    ``include`` directives inside a single KDL document.

    The document is read by ``scan()``; mutations rewrite lines in memory
    and ``commit()`` writes the whole document back, once, and only if a
    line actually changed. The write goes to a temporary file in the same
    directory which then replaces the document.
    """

    def __init__(self, document: Union[str, Path]):
        self.document = Path(document)
        self._lines: List[str] = []
        self._dirty = False

    def scan(self) -> List[ConfigItem]:
        try:
            with open(self.document, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except FileNotFoundError as e:
            raise ConfigFileNotFound(self.document) from e

        self._lines = content.split("\n")
        self._dirty = False

        candidates = []
        for index, line in enumerate(self._lines):
            if not is_include_directive(line):
                continue
            target = parse_include_argument(line)
            if target is None:
                logger.debug("Ignoring include without argument at line %d", index + 1)
                continue
            candidates.append((index, target))

        # Lines inside block comments or slashdashed nodes look like
        # directives too; keep only those the KDL parser sees as nodes.
        targets = document_includes(content)
        if targets is not None:
            candidates = self._real_nodes(candidates, targets)

        return [
            ConfigItem(
                identifier=target,
                state=classify_directive(self._lines[index]),
                locator=index,
            )
            for index, target in candidates
        ]

    def _real_nodes(self, candidates, targets):
        expected = {target: targets.count(target) for target in targets}
        found = {}
        for _, target in candidates:
            found[target] = found.get(target, 0) + 1

        real = []
        for index, target in candidates:
            if target not in expected:
                continue
            if found[target] == expected[target] or self._is_node_line(index, target, expected[target]):
                real.append((index, target))
        return real

    def _is_node_line(self, index, target, total):
        # A line holds a real node iff blanking it drops one include of target
        lines = list(self._lines)
        lines[index] = ""
        remaining = document_includes("\n".join(lines))
        if remaining is None:
            return False
        return remaining.count(target) < total

    def apply_mutation(self, item: ConfigItem, new_state: ConfigState) -> None:
        index = int(item.locator)
        line = self._lines[index]
        if new_state == ConfigState.EXCLUDED:
            updated = disable_line(line)
        else:
            updated = enable_line(line)
        if updated != line:
            self._lines[index] = updated
            self._dirty = True

    def commit(self) -> None:
        if not self._dirty:
            return

        content = "\n".join(self._lines)
        mode = os.stat(self.document).st_mode
        fd, tmp_path = tempfile.mkstemp(
            dir=self.document.parent,
            prefix=f".{self.document.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.chmod(tmp_path, mode & 0o7777)
            os.replace(tmp_path, self.document)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        self._dirty = False
        logger.info("Wrote %s", self.document)

    def selector_text(self, item: ConfigItem) -> str:
        return self._lines[int(item.locator)].strip()

    def item_path(self, item: ConfigItem) -> str:
        return str(self.document)
