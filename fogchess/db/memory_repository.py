"""Implementation of DocumentStore keeping everything in a nested dict. Used for local play and in tests."""

from typing import Any
from uuid import uuid4

from loguru import logger

from fogchess.db.paths import SubscriptionHub, delete_in, get_in, set_in, split_path
from fogchess.db.repository import SnapshotCallback, Unsubscribe


class InMemoryDocumentStore:
    """Single process, callbacks are invoked synchronously from inside the write that triggered them."""

    def __init__(self) -> None:
        self._root: dict[str, Any] = {}
        self._hub = SubscriptionHub()

    def create(self, path: str, value: Any) -> None:
        set_in(self._root, split_path(path), value)
        logger.debug(f"create {path}")
        self._hub.notify(path, self.read)

    def read(self, path: str) -> Any:
        value = get_in(self._root, split_path(path))
        return None if value == {} else value

    def update(self, path: str, fields: dict[str, Any]) -> None:
        parts = split_path(path)
        for key, value in fields.items():
            set_in(self._root, parts + split_path(key), value)
        logger.debug(f"update {path}: {sorted(fields)}")
        self._hub.notify(path, self.read)

    def remove(self, path: str) -> None:
        delete_in(self._root, split_path(path))
        logger.debug(f"remove {path}")
        self._hub.notify(path, self.read)

    def subscribe(self, path: str, callback: SnapshotCallback) -> Unsubscribe:
        unsubscribe = self._hub.add(path, callback)
        callback(self.read(path))
        return unsubscribe

    def generate_id(self, parent_path: str) -> str:
        return uuid4().hex

    @property
    def subscriber_count(self) -> int:
        return len(self._hub)
