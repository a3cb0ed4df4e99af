"""Implementation of DocumentStore using SQLAlchemy"""

from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Iterator, Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fogchess.core.exceptions import RepositoryError
from fogchess.db.paths import (
    SubscriptionHub,
    delete_in,
    get_in,
    join_path,
    nest,
    set_in,
    split_path,
    to_stored,
)
from fogchess.db.repository import SnapshotCallback, Unsubscribe
from fogchess.db.schema import DBDocument


class SQLDocumentStore:
    """
    Data stored using SQL / methods implemented using SQLAlchemy

    Every `create` makes a row keyed by its path; the value is a JSON tree.
    Reads and updates below a row are resolved inside its JSON, reads above a row assemble the rows underneath.
    Subscribers are in-process only (they hear about writes made through this store instance).
    """

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self._hub = SubscriptionHub()

    def create(self, path: str, value: Any) -> None:
        path = join_path(*split_path(path))
        stored = to_stored(deepcopy(value))
        with self._transaction(f"create {path}"):
            for row in self._descendants(path):
                self.db.delete(row)
            row = self.db.get(DBDocument, path)
            if stored is None:
                if row is not None:
                    self.db.delete(row)
            elif row is None:
                self.db.add(DBDocument(path=path, value=stored))
            else:
                row.value = stored
        self._hub.notify(path, self.read)

    def read(self, path: str) -> Any:
        path = join_path(*split_path(path))
        with self._transaction(f"read {path}", commit=False):
            owner = self._owning_row(path)
            if owner is not None:
                relative = split_path(path)[len(split_path(owner.path)) :]
                return get_in(owner.value, relative)
            rows = self._descendants(path)
            return nest({row.path: row.value for row in rows}, prefix=path)

    def update(self, path: str, fields: dict[str, Any]) -> None:
        path = join_path(*split_path(path))
        with self._transaction(f"update {path}"):
            owner = self._owning_row(path)
            owner_path = owner.path if owner is not None else path
            relative = split_path(path)[len(split_path(owner_path)) :]

            # build a fresh tree so SQLAlchemy notices the JSON changed
            tree = (
                deepcopy(owner.value)
                if owner is not None and isinstance(owner.value, dict)
                else {}
            )
            for key, value in fields.items():
                set_in(tree, relative + split_path(key), value)

            if owner is None:
                if tree:
                    self.db.add(DBDocument(path=path, value=tree))
            elif tree:
                owner.value = tree
            else:
                self.db.delete(owner)
        self._hub.notify(path, self.read)

    def remove(self, path: str) -> None:
        path = join_path(*split_path(path))
        with self._transaction(f"remove {path}"):
            for row in self._descendants(path):
                self.db.delete(row)
            owner = self._owning_row(path)
            if owner is not None:
                if owner.path == path:
                    self.db.delete(owner)
                else:
                    tree = deepcopy(owner.value)
                    delete_in(tree, split_path(path)[len(split_path(owner.path)) :])
                    owner.value = tree
        self._hub.notify(path, self.read)

    def subscribe(self, path: str, callback: SnapshotCallback) -> Unsubscribe:
        value = self.read(path)
        unsubscribe = self._hub.add(path, callback)
        callback(value)
        return unsubscribe

    def generate_id(self, parent_path: str) -> str:
        return uuid4().hex

    # -- Internal helpers --
    def _owning_row(self, path: str) -> Optional[DBDocument]:
        """The row stored at path, or at its closest ancestor."""
        parts = split_path(path)
        candidates = [join_path(*parts[:idx]) for idx in range(len(parts), 0, -1)]
        rows = self.db.scalars(
            select(DBDocument).where(DBDocument.path.in_(candidates))
        ).all()
        if not rows:
            return None
        return max(rows, key=lambda row: len(row.path))

    def _descendants(self, path: str) -> list[DBDocument]:
        prefix = f"{path}/" if path else ""
        query = select(DBDocument).where(DBDocument.path.startswith(prefix))
        # startswith uses LIKE, double check against "_" wildcards in keys
        return [row for row in self.db.scalars(query).all() if row.path.startswith(prefix)]

    @contextmanager
    def _transaction(self, action: str, commit: bool = True) -> Iterator[None]:
        """Commit on success, roll back and raise RepositoryError when the database fails."""
        try:
            yield
            if commit:
                self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error(f"{action} failed: {err}")
            raise RepositoryError(f"{action} failed: {err}") from err

