"""
Auto-match: a queue of waiting players per game mode.
---

* queue empty (or only me): put my entry in the queue and wait
* somebody else is first in line: create a room with them as White and me as Black, then remove both entries
* while waiting: once my entry disappears, look for a room created in the last few seconds that names me

NOTE: reading the queue and claiming its first entry are separate round trips. Two players can both
see an empty queue and both wait, or two players can both create a room for the same waiting entry.
The store offers no transaction to prevent that.
"""

from typing import Any, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from fogchess.chess.pieces import Color
from fogchess.config import Settings
from fogchess.core.exceptions import GameError
from fogchess.core.models import QueueEntry, RoomDocument
from fogchess.core.shared_types import GameMode
from fogchess.db.paths import join_path
from fogchess.db.repository import DocumentStore, Unsubscribe

ROOMS_PATH = "rooms"
QUEUE_PATH = "queue"

OnMatch = Callable[[str, Color], None]
OnError = Callable[[str], None]


def room_path(room_id: str) -> str:
    return join_path(ROOMS_PATH, room_id)


def queue_path(mode: GameMode, player_id: Optional[str] = None) -> str:
    return join_path(QUEUE_PATH, mode.value, player_id or "")


def parse_queue(value: Any) -> list[QueueEntry]:
    """Waiting players, oldest first. Unreadable entries are skipped."""
    if not isinstance(value, dict):
        return []
    entries: list[QueueEntry] = []
    for raw in value.values():
        try:
            entries.append(QueueEntry.model_validate(raw))
        except ValidationError:
            logger.warning(f"Skipping malformed queue entry: {raw!r}")
    return sorted(entries, key=lambda entry: (entry.timestamp, entry.player_id))


class Matchmaker:
    def __init__(
        self,
        store: DocumentStore,
        player_id: str,
        settings: Settings,
        now: Callable[[], float],
        on_match: OnMatch,
        on_error: OnError,
    ) -> None:
        self.store = store
        self.player_id = player_id
        self._log = logger.bind(player=player_id)
        self.settings = settings
        self._now = now
        self._on_match = on_match
        self._on_error = on_error
        self.searching: Optional[GameMode] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    def find_match(self, mode: GameMode) -> Optional[tuple[str, Color]]:
        """
        Returns (room id, my color) when matched right away, None when now waiting in the queue.
        Raises GameError (RepositoryError) when the store fails.
        """
        waiting = parse_queue(self.store.read(queue_path(mode)))
        if waiting and waiting[0].player_id != self.player_id:
            opponent = waiting[0]
            room_id = self.store.generate_id(ROOMS_PATH)
            room = RoomDocument.new_room(
                white=opponent.player_id,
                black=self.player_id,
                game_mode=mode,
                created_at=self._timestamp(),
                initial_seconds=self.settings.initial_timer_seconds,
            )
            self.store.create(room_path(room_id), room.to_wire())
            # the room must exist before the entries vanish: that is what the waiting player looks for
            self.store.remove(queue_path(mode, opponent.player_id))
            self.store.remove(queue_path(mode, self.player_id))
            self._log.info(f"Matched with {opponent.player_id} in room {room_id}")
            return room_id, Color.BLACK

        self._wait_in_queue(mode)
        return None

    def cancel_search(self) -> None:
        if self.searching is None:
            return
        mode = self.searching
        self._stop_waiting()
        self.store.remove(queue_path(mode, self.player_id))
        self._log.info(f"Stopped searching for a {mode} game")

    # -- Internal helpers --
    def _wait_in_queue(self, mode: GameMode) -> None:
        self._stop_waiting()
        entry = QueueEntry(
            player_id=self.player_id, timestamp=self._timestamp(), game_mode=mode
        )
        self.store.create(queue_path(mode, self.player_id), entry.to_wire())
        self.searching = mode
        self._unsubscribe = self.store.subscribe(queue_path(mode), self._on_queue_snapshot)
        self._log.info(f"Waiting for a {mode} game")

    def _stop_waiting(self) -> None:
        self.searching = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_queue_snapshot(self, value: Any) -> None:
        if self.searching is None:
            return
        if any(entry.player_id == self.player_id for entry in parse_queue(value)):
            return

        # my entry is gone: somebody matched me (or the entry got lost)
        mode = self.searching
        try:
            match = self._find_recent_room()
            if match is None:
                self._log.warning("Queue entry vanished without a room, re-queueing")
                self._wait_in_queue(mode)
                return
        except GameError as err:
            self._stop_waiting()
            self._on_error(f"Failed to find match: {err}")
            return

        self._stop_waiting()
        room_id, color = match
        self._log.info(f"Adopted room {room_id} as {color}")
        self._on_match(room_id, color)

    def _find_recent_room(self) -> Optional[tuple[str, Color]]:
        """Newest room created within the lookback window that has me as one of its players."""
        rooms = self.store.read(ROOMS_PATH)
        if not isinstance(rooms, dict):
            return None

        cutoff = self._timestamp() - int(self.settings.match_lookback_seconds * 1000)
        candidates: list[tuple[int, str, Color]] = []
        for room_id, raw in rooms.items():
            try:
                room = RoomDocument.model_validate(raw)
            except ValidationError:
                continue
            color = room.players.color_of(self.player_id)
            if color is not None and room.created_at >= cutoff:
                candidates.append((room.created_at, room_id, color))

        if not candidates:
            return None
        _, room_id, color = max(candidates)
        return room_id, color

    def _timestamp(self) -> int:
        return int(self._now() * 1000)
