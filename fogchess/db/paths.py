"""Path and tree helpers shared by the document store implementations."""

from copy import deepcopy
from itertools import count
from typing import Any, Callable, Optional

from fogchess.db.repository import SnapshotCallback, Unsubscribe


def split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def join_path(*parts: str) -> str:
    return "/".join(part for part in parts if part)


def is_related(path: str, other: str) -> bool:
    """True when a change at one path is visible from the other (same path, ancestor or descendant)."""
    a, b = split_path(path), split_path(other)
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


def to_stored(value: Any) -> Any:
    """
    What the store keeps of a value.

    Null entries are dropped, empty mappings vanish, and a list with holes turns into a mapping
    keyed by the index (as a string). Readers have to cope with that, see Board.normalize.
    """
    if isinstance(value, dict):
        stored = {key: to_stored(item) for key, item in value.items()}
        stored = {key: item for key, item in stored.items() if item is not None}
        return stored or None
    if isinstance(value, (list, tuple)):
        items = [to_stored(item) for item in value]
        if any(item is None for item in items):
            sparse = {str(idx): item for idx, item in enumerate(items) if item is not None}
            return sparse or None
        return items
    return value


def get_in(tree: Any, parts: list[str]) -> Any:
    node = tree
    for part in parts:
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return deepcopy(node)


def set_in(tree: dict[str, Any], parts: list[str], value: Any) -> None:
    """Set (or with a None value: delete) the node at parts, creating parents as needed."""
    stored = to_stored(deepcopy(value))
    if stored is None:
        delete_in(tree, parts)
        return

    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if isinstance(child, list):
            child = {str(idx): item for idx, item in enumerate(child)}
        if not isinstance(child, dict):
            child = {}
        node[part] = child
        node = child
    node[parts[-1]] = stored


def delete_in(tree: dict[str, Any], parts: list[str]) -> None:
    """Delete the node at parts and prune parents left empty."""
    if not parts:
        tree.clear()
        return
    parent = tree
    trail: list[tuple[dict[str, Any], str]] = []
    for part in parts[:-1]:
        child = parent.get(part)
        if not isinstance(child, dict):
            return
        trail.append((parent, part))
        parent = child
    parent.pop(parts[-1], None)

    for ancestor, key in reversed(trail):
        if ancestor[key]:
            break
        del ancestor[key]


class SubscriptionHub:
    """Keeps track of subscribers and calls them back synchronously after a write."""

    def __init__(self) -> None:
        self._subscribers: dict[int, tuple[str, SnapshotCallback]] = {}
        self._ids = count()

    def add(self, path: str, callback: SnapshotCallback) -> Unsubscribe:
        subscription_id = next(self._ids)
        self._subscribers[subscription_id] = (path, callback)

        def _unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return _unsubscribe

    def notify(self, changed_path: str, read: Callable[[str], Any]) -> None:
        # a callback may (un)subscribe or write, so iterate over a snapshot of the subscriptions
        for subscription_id, (path, callback) in list(self._subscribers.items()):
            if subscription_id not in self._subscribers:
                continue
            if is_related(path, changed_path):
                callback(read(path))

    def __len__(self) -> int:
        return len(self._subscribers)


def nest(entries: dict[str, Any], prefix: Optional[str] = None) -> Optional[dict[str, Any]]:
    """Build a tree out of {path: value} entries, relative to prefix."""
    offset = len(split_path(prefix)) if prefix else 0
    tree: dict[str, Any] = {}
    for path, value in entries.items():
        parts = split_path(path)[offset:]
        if parts:
            set_in(tree, parts, value)
    return tree or None
