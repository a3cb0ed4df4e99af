"""
Orchestration of one client: lobby, local (same device) games, matchmaking and multiplayer rooms.
---

Lobby -> Local -> Lobby
Lobby -> (Matchmaking ->) In room -> Lobby

In a room the shared document is the only source of truth. Every snapshot overwrites the local
projection (`self.game`) unconditionally; a move is computed locally on a fresh projection and
pushed as a field update, after which it comes back through the subscription like any remote move.

Nothing raises out of the public methods: failures end up in `self.error` (and the log) and the
method returns a falsy value.
"""

import time
from typing import Any, Callable, Optional
from uuid import uuid4

from loguru import logger

from fogchess.chess.board import Board
from fogchess.chess.castling import initialize_castling_rights
from fogchess.chess.game import Game
from fogchess.chess.moves import Move
from fogchess.chess.pieces import Color, PieceType
from fogchess.chess.square import Square
from fogchess.chess.status import GameEnd
from fogchess.config import Settings
from fogchess.core.exceptions import (
    GameError,
    InvalidRequestError,
    RepositoryError,
    RoomFullError,
    RoomNotFoundError,
    SessionError,
)
from fogchess.core.models import RoomDocument
from fogchess.core.shared_types import GameMode, GameType, SessionEvent, SessionPhase
from fogchess.db.repository import DocumentStore, Unsubscribe
from fogchess.services.matchmaking import Matchmaker, room_path

EventListener = Callable[[SessionEvent], None]


def generate_player_id() -> str:
    return f"player_{uuid4().hex[:12]}"


class GameSession:
    """Orchestration of layers for one player."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[Settings] = None,
        player_id: Optional[str] = None,
        now: Callable[[], float] = time.time,
        on_event: Optional[EventListener] = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.player_id = player_id or generate_player_id()
        self._log = logger.bind(player=self.player_id)
        self._now = now
        self._on_event = on_event

        self.phase = SessionPhase.LOBBY
        self.game_type: Optional[GameType] = None
        self.game: Optional[Game] = None
        self.error: Optional[str] = None

        # multiplayer only
        self.room_id: Optional[str] = None
        self.player_color: Optional[Color] = None
        self.room: Optional[RoomDocument] = None
        self.opponent_connected = False
        self.opponent_left = False
        self._unsubscribe_room: Optional[Unsubscribe] = None
        self._teardown_at: Optional[float] = None
        self._remove_room_on_teardown = False

        self.matchmaker = Matchmaker(
            store=store,
            player_id=self.player_id,
            settings=self.settings,
            now=now,
            on_match=self._adopt_room,
            on_error=self._set_error,
        )

    # -- LOBBY --
    def play_local(self, mode: GameMode = GameMode.CASUAL) -> Game:
        """Both colors on this device. No store involved."""
        self.leave()
        self.error = None
        self.game = Game.new_game(mode, self.settings.initial_timer_seconds)
        self.game_type = GameType.LOCAL
        self.phase = SessionPhase.LOCAL
        return self.game

    def create_room(self, mode: GameMode = GameMode.CASUAL) -> Optional[str]:
        """New room with a fresh board; the creator plays White. Returns the room id (the code to share)."""
        self.leave()
        self.error = None
        try:
            room_id = self.store.generate_id("rooms")
            room = RoomDocument.new_room(
                white=self.player_id,
                game_mode=mode,
                created_at=self._timestamp(),
                initial_seconds=self.settings.initial_timer_seconds,
            )
            self.store.create(room_path(room_id), room.to_wire())
        except GameError as err:
            self._fail("create room", err)
            return None

        try:
            self._enter_room(room_id, Color.WHITE)
        except GameError as err:
            self._fail("create room", err)
            # nobody else knows the code yet
            self._roll_back("remove room", lambda: self.store.remove(room_path(room_id)))
            return None

        self._log.info(f"Created room {room_id} ({mode})")
        return room_id

    def join_room(self, room_id: str) -> bool:
        """
        Take the Black seat of an existing room.

        NOTE: read-then-write. Two players joining at the same moment can both pass the check; the last
        write wins the seat and the other one finds out from its next snapshot.
        """
        self.leave()
        self.error = None
        try:
            raw = self.store.read(room_path(room_id))
            if raw is None:
                raise RoomNotFoundError()
            room = RoomDocument.from_snapshot(raw)
            if room.players.black is not None:
                raise RoomFullError()

            self.store.update(room_path(room_id), {"players/black": self.player_id})
        except SessionError as err:
            self._set_error(str(err))
            return False
        except GameError as err:
            self._fail("join room", err)
            return False

        try:
            self._enter_room(room_id, Color.BLACK)
        except GameError as err:
            self._fail("join room", err)
            self._roll_back("free seat", lambda: self._release_seat(room_id, Color.BLACK))
            return False

        if self.phase != SessionPhase.IN_ROOM:
            # lost a simultaneous join, the first snapshot already sent us back
            return False
        self._log.info(f"Joined room {room_id}")
        return True

    def find_match(self, mode: GameMode = GameMode.CASUAL) -> bool:
        """Join the auto-match queue. True when matched right away or now waiting."""
        self.leave()
        self.error = None
        try:
            match = self.matchmaker.find_match(mode)
        except GameError as err:
            self._fail("find match", err)
            return False

        if match is None:
            self.phase = SessionPhase.MATCHMAKING
            return True

        room_id, color = match
        self._adopt_room(room_id, color)
        return self.phase == SessionPhase.IN_ROOM

    def cancel_search(self) -> bool:
        if self.phase != SessionPhase.MATCHMAKING:
            return False
        self.phase = SessionPhase.LOBBY
        try:
            self.matchmaker.cancel_search()
        except GameError as err:
            self._fail("cancel search", err)
            return False
        return True

    # -- PLAYING --
    @property
    def is_my_turn(self) -> bool:
        if self.game is None:
            return False
        if self.phase == SessionPhase.LOCAL:
            return True
        return self.phase == SessionPhase.IN_ROOM and (
            self.game.current_player == self.player_color
        )

    @property
    def viewer(self) -> Optional[Color]:
        """Whose eyes the board is seen through: my color in a room, the player to move on a shared device."""
        if self.game is None:
            return None
        if self.phase == SessionPhase.IN_ROOM:
            return self.player_color
        return self.game.current_player

    @property
    def game_end(self) -> Optional[GameEnd]:
        return self.game.game_end if self.game else None

    def legal_moves(self, square: Square) -> list[Move]:
        """Moves to highlight for the selected square. Empty when it is not my turn or the game is over."""
        if self.game is None or self.game.is_over or not self.is_my_turn:
            return []
        return self.game.legal_moves(square)

    def visible_squares(self) -> set[Square]:
        if self.game is None or self.viewer is None:
            return set()
        return self.game.visible_squares(self.viewer)

    def visible_board(self) -> Optional[Board]:
        if self.game is None or self.viewer is None:
            return None
        return self.game.masked_board(self.viewer)

    def make_move(
        self,
        from_square: Square,
        to_square: Square,
        promote_to: Optional[PieceType] = None,
    ) -> bool:
        """Play a move (local) or commit it to the room (multiplayer)."""
        self.error = None
        if self.phase == SessionPhase.LOCAL and self.game is not None:
            try:
                self.game.make_move(from_square, to_square, promote_to)
            except GameError as err:
                self._set_error(str(err))
                return False
            if self.game.is_over:
                self._emit(SessionEvent.GAME_OVER)
            return True

        if self.phase != SessionPhase.IN_ROOM or self.room is None:
            self._set_error("No game in progress")
            return False

        try:
            # compute on a fresh projection: the subscription delivers the result back as the new truth
            next_state = Game.from_document(self.room)
            next_state.make_move(
                from_square, to_square, promote_to, as_color=self.player_color
            )
            self.store.update(
                room_path(self.room_id), next_state.move_fields(self._timestamp())
            )
        except RepositoryError as err:
            self._fail("make move", err)
            return False
        except GameError as err:
            self._set_error(str(err))
            return False
        return True

    def tick(self) -> None:
        """
        Called once per second by the host.
        ---

        * local: the clock of the player to move runs down
        * room: only my own clock, only on my turn, only while the opponent is connected.
          Each client writes nothing but its own `timers/<color>` field.
        * room: after the opponent left, tear the room down once the grace period is over
        """
        if self.phase == SessionPhase.LOCAL and self.game is not None:
            was_over = self.game.is_over
            self.game.tick()
            if self.game.is_over and not was_over:
                self._emit(SessionEvent.GAME_OVER)
            return

        if self.phase != SessionPhase.IN_ROOM:
            return

        if self._teardown_at is not None:
            if self._now() >= self._teardown_at:
                self._close_room()
            return

        if (
            self.game is None
            or self.game.is_over
            or not self.is_my_turn
            or not self.opponent_connected
        ):
            return

        my_color = self.player_color
        remaining = self.game.clock.remaining[my_color]
        if remaining <= 0:
            return
        try:
            self.store.update(
                room_path(self.room_id), {f"timers/{my_color.value}": remaining - 1}
            )
        except GameError as err:
            self._fail("update timer", err)

    def reset_game(self) -> bool:
        """Rematch: fresh board, White to move, full clocks and castling rights. Same room, same seats."""
        self.error = None
        if self.phase == SessionPhase.LOCAL and self.game is not None:
            self.game.reset()
            return True

        if self.phase != SessionPhase.IN_ROOM:
            return False

        seconds = self.settings.initial_timer_seconds
        try:
            self.store.update(
                room_path(self.room_id),
                {
                    "board": Board.starting_position().serialize(),
                    "currentPlayer": Color.WHITE.value,
                    "lastMove": None,
                    "timers": {color.value: seconds for color in Color},
                    "castlingRights": initialize_castling_rights().to_dict(),
                },
            )
        except GameError as err:
            self._fail("reset game", err)
            return False
        return True

    def change_game_mode(self, mode: GameMode) -> bool:
        self.error = None
        if self.phase == SessionPhase.LOCAL and self.game is not None:
            self.game.mode = mode
            return True

        if self.phase != SessionPhase.IN_ROOM:
            return False

        try:
            self.store.update(room_path(self.room_id), {"gameMode": mode.value})
        except GameError as err:
            self._fail("change game mode", err)
            return False
        return True

    def leave(self) -> None:
        """
        Back to the lobby from wherever we are.

        Leaving a room frees my seat; the last one out removes the room.
        """
        if self.phase == SessionPhase.MATCHMAKING:
            self.cancel_search()

        if self.phase == SessionPhase.IN_ROOM:
            room_id, color, room = self.room_id, self.player_color, self.room
            self._stop_listening()
            try:
                if self.opponent_left:
                    # leaving during the grace period: nobody else will clean up
                    if self._remove_room_on_teardown:
                        self.store.remove(room_path(room_id))
                elif room is None or room.players.slot(color.opponent) is None:
                    self.store.remove(room_path(room_id))
                else:
                    self.store.update(room_path(room_id), {f"players/{color.value}": None})
            except GameError as err:
                self._fail("leave room", err)
            self._log.info(f"Left room {room_id}")

        self._teardown()

    # -- Internal helpers --
    def _enter_room(self, room_id: str, color: Color) -> None:
        self._stop_listening()
        self.room_id = room_id
        self.player_color = color
        self.room = None
        self.game = None
        self.game_type = GameType.MULTIPLAYER
        self.phase = SessionPhase.IN_ROOM
        self.opponent_connected = False
        self.opponent_left = False
        self._teardown_at = None
        self._remove_room_on_teardown = False
        self._emit(SessionEvent.ROOM_JOINED)
        try:
            # fires right away with the current document
            unsubscribe = self.store.subscribe(room_path(room_id), self._on_room_snapshot)
        except GameError:
            self._teardown()
            raise
        self._unsubscribe_room = unsubscribe
        if self.room_id != room_id:
            # the first snapshot already sent us back to the lobby
            self._stop_listening()

    def _adopt_room(self, room_id: str, color: Color) -> None:
        """Matchmaking put me in a room (right away, or later from the queue callback)."""
        try:
            self._enter_room(room_id, color)
        except GameError as err:
            self._fail("join matched room", err)
            return
        self._emit(SessionEvent.MATCH_FOUND)

    def _on_room_snapshot(self, value: Any) -> None:
        """New ground truth for the room. Re-derive everything from it."""
        if self.room_id is None or self._teardown_at is not None:
            return

        if value is None:
            # room document is gone
            self._handle_opponent_left(remove_room=False)
            return

        try:
            room = RoomDocument.from_snapshot(value)
        except InvalidRequestError as err:
            self._set_error(str(err))
            return

        if room.players.slot(self.player_color) != self.player_id:
            # somebody else holds my seat (lost a simultaneous join)
            self._stop_listening()
            self._teardown()
            self._set_error(str(RoomFullError()))
            return

        was_over = self.game is not None and self.game.is_over
        self.room = room
        self.game = Game.from_document(room)

        connected = room.players.slot(self.player_color.opponent) is not None
        was_connected, self.opponent_connected = self.opponent_connected, connected
        if connected and not was_connected:
            self._emit(SessionEvent.OPPONENT_JOINED)
        if was_connected and not connected:
            self._handle_opponent_left(remove_room=True)
            return

        if self.game.is_over and not was_over:
            self._emit(SessionEvent.GAME_OVER)

    def _handle_opponent_left(self, remove_room: bool) -> None:
        if self.opponent_left:
            return
        self._log.info(f"Opponent left room {self.room_id}")
        self.opponent_left = True
        self.opponent_connected = False
        self._remove_room_on_teardown = remove_room
        self._teardown_at = self._now() + self.settings.opponent_left_grace_seconds
        self._emit(SessionEvent.OPPONENT_LEFT)

    def _close_room(self) -> None:
        room_id = self.room_id
        self._stop_listening()
        if self._remove_room_on_teardown and room_id is not None:
            try:
                self.store.remove(room_path(room_id))
                self._log.info(f"Removed room {room_id}")
            except GameError as err:
                self._fail("remove room", err)
        self._teardown()
        self._emit(SessionEvent.RETURNED_TO_LOBBY)

    def _stop_listening(self) -> None:
        if self._unsubscribe_room is not None:
            self._unsubscribe_room()
            self._unsubscribe_room = None

    def _teardown(self) -> None:
        """Forget the current game. Subscriptions must be stopped before calling this."""
        self.phase = SessionPhase.LOBBY
        self.game_type = None
        self.game = None
        self.room_id = None
        self.player_color = None
        self.room = None
        self.opponent_connected = False
        self.opponent_left = False
        self._teardown_at = None
        self._remove_room_on_teardown = False

    def _emit(self, event: SessionEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def _set_error(self, message: str) -> None:
        self._log.warning(message)
        self.error = message

    def _fail(self, action: str, err: Exception) -> None:
        message = f"Failed to {action}: {err}"
        self._log.error(message)
        self.error = message

    def _release_seat(self, room_id: str, color: Color) -> None:
        """Clear my seat unless somebody else has taken it meanwhile."""
        seat = f"players/{color.value}"
        if self.store.read(f"{room_path(room_id)}/{seat}") == self.player_id:
            self.store.update(room_path(room_id), {seat: None})

    def _roll_back(self, action: str, write: Callable[[], None]) -> None:
        """Best effort undo after a failed step. The error that caused it stays in `self.error`."""
        try:
            write()
        except GameError as err:
            self._log.warning(f"Could not {action}: {err}")

    def _timestamp(self) -> int:
        return int(self._now() * 1000)
