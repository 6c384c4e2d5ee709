"""
secretpatch/changes.py — Change detection and masked previews.

Values are compared by their string rendering, case-sensitively, so a stored
boolean true equals the typed value "true" but not "True".
"""
import json
from dataclasses import dataclass
from typing import Any

from secretpatch.tree import ConfigNode, Mapping, Scalar, Sequence, to_document

MASK = "****"


def render(value: Any) -> str | None:
    """String form used for comparison and masking. None stays None."""
    if value is None:
        return None
    if isinstance(value, (Scalar, Mapping, Sequence)):
        return render(to_document(value))
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def changed(old: Any, new: Any) -> bool:
    """True when new differs from old. A Scalar(None) counts as null."""
    old_text = render(old)
    new_text = render(new)
    if old_text is None and new_text is None:
        return False
    if old_text is None or new_text is None:
        return True
    return old_text != new_text


def mask(value: Any) -> str:
    """Render a value safe for logs: first two and last two characters at most."""
    text = render(value)
    if text is None:
        return "(null)"
    if text == "":
        return "(empty)"
    if len(text) <= 4:
        return MASK
    return f"{text[:2]}{MASK}{text[-2:]}"


@dataclass
class ChangeRecord:
    """Outcome of applying one token (or one removal) to the tree."""

    path: str
    old_value: ConfigNode | None
    new_value: str | None
    changed: bool

    @property
    def is_removal(self) -> bool:
        return self.new_value is None

    def describe(self) -> str:
        if self.is_removal:
            action = "remove" if self.changed else "remove (absent)"
            return f"{self.path}: {action} [{mask(self.old_value)}]"
        if not self.changed:
            return f"{self.path}: unchanged"
        verb = "add" if self.old_value is None else "update"
        return f"{self.path}: {verb} [{mask(self.old_value)} -> {mask(self.new_value)}]"


def count_effective(records: list[ChangeRecord]) -> int:
    return sum(1 for r in records if r.changed)
