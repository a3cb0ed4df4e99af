"""Protocol for the shared real-time document store (in-memory for tests / local play, SQLAlchemy, or any hosted key-value database)"""

from typing import Any, Callable, Protocol

SnapshotCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    """
    Documents addressed by slash separated paths ("rooms/<id>", "queue/<mode>/<player_id>").

    * Writing None (on any field) deletes it. A mapping left without entries disappears as well.
    * No transactions: the last write to a field wins.
    * Failures are raised as RepositoryError.
    """

    def create(self, path: str, value: Any) -> None:
        """Write (or overwrite) the whole document at path."""
        ...

    def read(self, path: str) -> Any:
        """Current value at path, None when absent."""
        ...

    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Merge fields into the document. Keys may be nested paths ("players/black")."""
        ...

    def remove(self, path: str) -> None:
        """Delete the document and everything below it."""
        ...

    def subscribe(self, path: str, callback: SnapshotCallback) -> Unsubscribe:
        """Call back with the current value now, and again after every change at or below/above path."""
        ...

    def generate_id(self, parent_path: str) -> str:
        """New unique key under parent_path."""
        ...
