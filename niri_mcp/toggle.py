"""
Toggle engine for niri configuration stores.

Applies `on` / `off` / `toggle` to every item of a ConfigStore and reports
what changed. One item failing never stops the others.
"""

import logging
from typing import Iterable, List, Optional, Union

from niri_mcp.models import (
    Affected,
    ConfigState,
    Skipped,
    ToggleAction,
    ToggleResult,
)
from niri_mcp.stores import ConfigStore, compile_pattern

logger = logging.getLogger(__name__)

PATTERN_MISMATCH = "does not match pattern"

Outcome = Union[Affected, Skipped]


def next_state(action: ToggleAction, current: ConfigState) -> Optional[ConfigState]:
    """
    Return the state an item should move to, or None for a no-op.

    `on` only touches excluded items and `off` only included ones, which
    makes both idempotent. `toggle` always flips.
    """
    if action == ToggleAction.ON:
        return ConfigState.INCLUDED if current == ConfigState.EXCLUDED else None
    if action == ToggleAction.OFF:
        return ConfigState.EXCLUDED if current == ConfigState.INCLUDED else None
    if current == ConfigState.INCLUDED:
        return ConfigState.EXCLUDED
    return ConfigState.INCLUDED


def aggregate(outcomes: Iterable[Outcome]) -> ToggleResult:
    """Split outcomes into the affected/skipped report, keeping their order."""
    result = ToggleResult()
    for outcome in outcomes:
        if isinstance(outcome, Affected):
            result.affected.append(outcome)
        else:
            result.skipped.append(outcome)
    return result


def apply(
    store: ConfigStore,
    action: ToggleAction = ToggleAction.TOGGLE,
    selector: Optional[str] = None,
    name_pattern: Optional[str] = None,
) -> ToggleResult:
    """
    Apply an action to every item of a store.

    Args:
        store: Backing store to scan and mutate
        action: Requested action, `toggle` by default
        selector: Regex tested against each item's raw text. Items that do
            not match are reported as skipped.
        name_pattern: Regex tested against each item's identifier. Items that
            do not match are left out of the report.

    Returns:
        ToggleResult with affected and skipped items in processing order

    Raises:
        InvalidPattern: If either pattern does not compile. Nothing is
            mutated in that case.
        ConfigFileNotFound: If the store's document is missing.
    """
    action = ToggleAction(action)
    selector_re = compile_pattern(selector)
    name_re = compile_pattern(name_pattern)

    outcomes: List[Outcome] = []
    for item in store.scan():
        if name_re and not name_re.search(item.identifier):
            continue

        if selector_re and not selector_re.search(store.selector_text(item)):
            outcomes.append(Skipped(name=item.identifier, reason=PATTERN_MISMATCH))
            continue

        target = next_state(action, item.state)
        if target is None:
            continue

        try:
            store.apply_mutation(item, target)
        except OSError as e:
            logger.warning("Skipping %s: %s", item.identifier, e)
            outcomes.append(Skipped(name=item.identifier, reason=str(e)))
            continue

        outcomes.append(Affected(
            name=item.identifier,
            previous_state=item.state,
            new_state=target,
            path=store.item_path(item),
        ))

    try:
        store.commit()
    except OSError as e:
        # Nothing reached the disk; report every pending change as skipped
        logger.error("Failed to write changes: %s", e)
        outcomes = [
            Skipped(name=o.name, reason=str(e)) if isinstance(o, Affected) else o
            for o in outcomes
        ]

    return aggregate(outcomes)
