"""
secretpatch/tree.py — Secret documents as a closed tree of Scalar / Mapping / Sequence nodes.

The update orchestrator rebuilds a tree from the stored JSON on every run,
mutates it through the path helpers below and serializes it back. Callers
own the tree they pass in; nothing here keeps a reference to it.

Path semantics:
    get_path     absent (None) when any segment is missing or not a Mapping
    set_path     creates intermediate Mappings; a non-Mapping intermediate is
                 replaced by an empty Mapping (scalar promoted to object)
    remove_path  False, tree untouched, when the path does not resolve
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Union

from secretpatch.errors import DeserializeError

log = logging.getLogger(__name__)

PATH_SEPARATOR = "."

ScalarValue = Union[str, bool, int, float, None]


@dataclass
class Scalar:
    value: ScalarValue = None


@dataclass
class Mapping:
    entries: dict[str, "ConfigNode"] = field(default_factory=dict)


@dataclass
class Sequence:
    items: list["ConfigNode"] = field(default_factory=list)


ConfigNode = Union[Scalar, Mapping, Sequence]


def _unknown_node(node: Any) -> TypeError:
    return TypeError(f"Not a config node: {type(node).__name__}")


# ============================================================
# Document conversion
# ============================================================

def from_document(obj: Any) -> ConfigNode:
    """Convert a decoded JSON value into a ConfigNode tree."""
    if isinstance(obj, dict):
        return Mapping({str(k): from_document(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return Sequence([from_document(v) for v in obj])
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return Scalar(obj)
    raise TypeError(f"Unsupported document value: {type(obj).__name__}")


def to_document(node: ConfigNode) -> Any:
    """Convert a ConfigNode tree back into plain JSON-compatible values."""
    if isinstance(node, Scalar):
        return node.value
    if isinstance(node, Mapping):
        return {k: to_document(v) for k, v in node.entries.items()}
    if isinstance(node, Sequence):
        return [to_document(v) for v in node.items]
    raise _unknown_node(node)


def load_tree(text: str) -> Mapping:
    """
    Decode a stored secret value into a Mapping root.

    Raises:
        DeserializeError: the text is not JSON, or its root is not an object
            (merging keys into a scalar or array root is unsafe).
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DeserializeError(f"Stored value is not valid JSON: {e}") from e

    root = from_document(document)
    if not isinstance(root, Mapping):
        raise DeserializeError(
            f"Stored value must be a JSON object, got {type(document).__name__}"
        )
    return root


def dump_tree(tree: ConfigNode) -> str:
    return json.dumps(to_document(tree), ensure_ascii=False)


# ============================================================
# Path operations
# ============================================================

def split_path(path: str) -> list[str]:
    return path.split(PATH_SEPARATOR)


def get_path(tree: Mapping, path: str) -> ConfigNode | None:
    """Return the node at a dot-path, or None when it does not resolve."""
    node: ConfigNode = tree
    for segment in split_path(path):
        if isinstance(node, Mapping):
            if segment not in node.entries:
                return None
            node = node.entries[segment]
        elif isinstance(node, (Scalar, Sequence)):
            return None
        else:
            raise _unknown_node(node)
    return node


def set_path(tree: Mapping, path: str, value: ScalarValue) -> None:
    """Set a scalar at a dot-path, creating or replacing intermediate Mappings."""
    segments = split_path(path)
    parent = tree
    walked: list[str] = []

    for segment in segments[:-1]:
        walked.append(segment)
        child = parent.entries.get(segment)
        if isinstance(child, Mapping):
            parent = child
            continue
        if isinstance(child, (Scalar, Sequence)):
            log.debug(
                f"Replacing {type(child).__name__} at '{PATH_SEPARATOR.join(walked)}' "
                f"with an object to reach '{path}'"
            )
        elif child is not None:
            raise _unknown_node(child)
        new_child = Mapping()
        parent.entries[segment] = new_child
        parent = new_child

    parent.entries[segments[-1]] = Scalar(value)


def set_key(tree: Mapping, key: str, value: ScalarValue) -> None:
    """Set a literal top-level key, even when it contains a separator."""
    tree.entries[key] = Scalar(value)


def remove_path(tree: Mapping, path: str) -> bool:
    """Delete the node at a dot-path. Returns False when nothing was removed."""
    segments = split_path(path)
    parent: ConfigNode = tree

    for segment in segments[:-1]:
        if isinstance(parent, Mapping):
            child = parent.entries.get(segment)
            if child is None:
                return False
            parent = child
        elif isinstance(parent, (Scalar, Sequence)):
            return False
        else:
            raise _unknown_node(parent)

    if not isinstance(parent, Mapping) or segments[-1] not in parent.entries:
        return False
    del parent.entries[segments[-1]]
    return True


def remove_key(tree: Mapping, key: str) -> bool:
    """Delete a literal top-level key."""
    if key not in tree.entries:
        return False
    del tree.entries[key]
    return True
