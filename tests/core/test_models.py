"""Unit tests for fogchess/core/models.py"""

import pytest

from fogchess.chess.board import Board
from fogchess.chess.castling import CastlingDirection, CastlingRights
from fogchess.chess.pieces import Color
from fogchess.core.exceptions import InvalidRequestError
from fogchess.core.models import QueueEntry, RoomDocument
from fogchess.core.shared_types import GameMode
from fogchess.db.paths import to_stored


def test_new_room_wire_format() -> None:
    room = RoomDocument.new_room(
        white="player_a", game_mode=GameMode.FOG, created_at=1700000000000, initial_seconds=300
    )
    wire = room.to_wire()
    assert wire["currentPlayer"] == "white"
    assert wire["gameMode"] == "fog"
    assert wire["players"] == {"white": "player_a", "black": None}
    assert wire["createdAt"] == 1700000000000
    assert wire["lastMove"] is None
    assert wire["timers"] == {"white": 300, "black": 300}
    assert wire["castlingRights"] == CastlingRights().to_dict()
    assert wire["board"] == Board.starting_position().serialize()


def test_snapshot_after_the_store_dropped_nulls() -> None:
    """Null fields and empty maps disappear in the store, the board comes back sparse."""
    room = RoomDocument.new_room(white="player_a", game_mode=GameMode.CASUAL, created_at=5)
    stored = to_stored(room.to_wire())
    assert "lastMove" not in stored
    assert "black" not in stored["players"]

    parsed = RoomDocument.from_snapshot(stored)
    assert parsed == room
    assert parsed.board_position() == Board.starting_position()


def test_snapshot_defaults_for_missing_fields() -> None:
    parsed = RoomDocument.from_snapshot({"players": None, "timers": None})
    assert parsed.players.white is None
    assert parsed.timers.white == 600
    assert parsed.current_player == Color.WHITE


def test_castling_rights_missing_flank_is_revoked() -> None:
    parsed = RoomDocument.from_snapshot(
        {"castlingRights": {"white": {"kingSide": True, "queenSide": False}}}
    )
    rights = parsed.rights()
    assert rights.has(CastlingDirection.WHITE_KING_SIDE)
    assert not rights.has(CastlingDirection.BLACK_KING_SIDE)


def test_last_move_aliases() -> None:
    parsed = RoomDocument.from_snapshot(
        {"lastMove": {"from": [6, 4], "to": [4, 4], "timestamp": 99}}
    )
    assert parsed.last_move is not None
    assert parsed.last_move.from_square == (6, 4)
    assert parsed.to_wire()["lastMove"] == {"from": [6, 4], "to": [4, 4], "timestamp": 99}


@pytest.mark.parametrize(
    "raw",
    [
        {"currentPlayer": "green"},
        {"gameMode": "blitz"},
        {"timers": {"white": "lots"}},
        "not a room",
    ],
)
def test_malformed_snapshot(raw: object) -> None:
    with pytest.raises(InvalidRequestError):
        RoomDocument.from_snapshot(raw)


def test_players_lookup() -> None:
    room = RoomDocument.new_room(white="a", black="b", game_mode=GameMode.CASUAL, created_at=0)
    assert room.players.slot(Color.BLACK) == "b"
    assert room.players.color_of("a") == Color.WHITE
    assert room.players.color_of("c") is None


def test_queue_entry() -> None:
    entry = QueueEntry(player_id="p1", timestamp=10, game_mode=GameMode.MOVEMENT)
    assert entry.to_wire() == {"playerId": "p1", "timestamp": 10, "gameMode": "movement"}
    assert QueueEntry.model_validate(entry.to_wire()) == entry
