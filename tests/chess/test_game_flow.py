"""Unit tests for fogchess/chess/game.py"""

import pytest

from fogchess.chess.board import Board
from fogchess.chess.castling import CastlingRights, FlankRights
from fogchess.chess.clock import GameClock
from fogchess.chess.game import Game, MoveFeedback
from fogchess.chess.pieces import Color, Piece, PieceType
from fogchess.chess.square import Square
from fogchess.chess.status import GameEnd
from fogchess.core.exceptions import GameStateError, IllegalMoveError, NotYourTurnError
from fogchess.core.models import RoomDocument
from fogchess.core.shared_types import GameMode, GameResult


def sq(name: str) -> Square:
    return Square.from_algebraic(name)


def game_from_fen(fen: str, to_move: Color = Color.WHITE, seconds: int = 600) -> Game:
    return Game(
        board=Board.from_fen(fen),
        current_player=to_move,
        mode=GameMode.CASUAL,
        castling_rights=CastlingRights(),
        clock=GameClock.with_time(seconds),
        initial_seconds=seconds,
    )


# -- CREATION LOGIC --
def test_new_game() -> None:
    game = Game.new_game(GameMode.FOG, initial_seconds=300)
    assert game.board == Board.starting_position()
    assert game.current_player == Color.WHITE
    assert game.mode == GameMode.FOG
    assert game.clock.remaining == {Color.WHITE: 300, Color.BLACK: 300}
    assert game.castling_rights == CastlingRights()
    assert not game.is_over


# -- MOVES --
def test_pawn_opening() -> None:
    game = Game.new_game()
    assert Square(4, 4) in {move.to_square for move in game.legal_moves(Square(6, 4))}

    accepted = game.make_move(Square(6, 4), Square(4, 4))

    assert game.board.piece(Square(6, 4)) is None
    assert game.board.piece(Square(4, 4)) == Piece(PieceType.PAWN, Color.WHITE)
    assert game.current_player == Color.BLACK
    assert game.last_move is not None and str(game.last_move) == "e2e4"
    assert accepted.captured_piece is None
    assert game.last_feedback == MoveFeedback.MOVE


def test_king_side_castle() -> None:
    game = game_from_fen("4k3/8/8/8/8/8/8/4K2R")
    assert Square(7, 6) in {move.to_square for move in game.legal_moves(Square(7, 4))}

    accepted = game.make_move(Square(7, 4), Square(7, 6))

    assert game.board.piece(Square(7, 6)) == Piece(PieceType.KING, Color.WHITE)
    assert game.board.piece(Square(7, 5)) == Piece(PieceType.ROOK, Color.WHITE)
    assert game.board.piece(Square(7, 7)) is None
    assert game.castling_rights.white == FlankRights(False, False)
    assert accepted.castling_direction is not None
    assert game.last_feedback == MoveFeedback.CASTLE


def test_legal_moves_only_for_player_to_move() -> None:
    game = Game.new_game()
    assert game.legal_moves(sq("e7")) == []
    assert game.legal_moves(sq("e4")) == []
    assert len(game.legal_moves(sq("g1"))) == 2


def test_wrong_color_is_not_your_turn() -> None:
    game = Game.new_game()
    with pytest.raises(NotYourTurnError):
        game.make_move(sq("e7"), sq("e5"))
    with pytest.raises(NotYourTurnError):
        game.make_move(sq("e2"), sq("e4"), as_color=Color.BLACK)
    assert game.board == Board.starting_position()


@pytest.mark.parametrize("from_sq, to_sq", [("e2", "e5"), ("e3", "e4"), ("g1", "g3")])
def test_illegal_move(from_sq: str, to_sq: str) -> None:
    game = Game.new_game()
    with pytest.raises(IllegalMoveError):
        game.make_move(sq(from_sq), sq(to_sq))
    assert game.current_player == Color.WHITE


def test_capture_feedback_and_captured_pieces() -> None:
    game = game_from_fen("4k3/8/8/3p4/4P3/8/8/4K3")
    accepted = game.make_move(sq("e4"), sq("d5"))
    assert accepted.captured_piece == Piece(PieceType.PAWN, Color.BLACK)
    assert game.last_feedback == MoveFeedback.CAPTURE
    assert PieceType.PAWN in game.captured_pieces()[Color.BLACK]


def test_check_feedback() -> None:
    game = game_from_fen("4k3/8/8/8/8/8/8/R3K3")
    game.make_move(sq("a1"), sq("a8"))
    assert game.is_check()
    assert game.last_feedback == MoveFeedback.CHECK
    assert not game.is_over


@pytest.mark.parametrize(
    "promote_to, expected",
    [(None, PieceType.QUEEN), (PieceType.KNIGHT, PieceType.KNIGHT), (PieceType.BISHOP, PieceType.BISHOP)],
)
def test_promotion(promote_to: PieceType | None, expected: PieceType) -> None:
    game = game_from_fen("7k/1P6/8/8/8/8/8/4K3")
    assert game.needs_promotion(sq("b7"), sq("b8"))
    accepted = game.make_move(sq("b7"), sq("b8"), promote_to)
    assert game.board.piece(sq("b8")) == Piece(expected, Color.WHITE)
    assert accepted.promoted_to == expected


def test_cannot_promote_to_king() -> None:
    game = game_from_fen("7k/1P6/8/8/8/8/8/4K3")
    with pytest.raises(IllegalMoveError):
        game.make_move(sq("b7"), sq("b8"), PieceType.KING)


def test_checkmate_ends_the_game() -> None:
    game = game_from_fen("6k1/5ppp/8/8/8/8/8/R5K1")
    game.make_move(sq("a1"), sq("a8"))

    assert game.game_end == GameEnd(GameResult.CHECKMATE, Color.WHITE)
    assert game.last_feedback == MoveFeedback.CHECKMATE
    with pytest.raises(GameStateError):
        game.make_move(sq("g8"), sq("h8"))
    with pytest.raises(GameStateError):
        game.legal_moves(sq("g8"))


def test_rook_move_revokes_one_flank() -> None:
    game = game_from_fen("r3k2r/8/8/8/8/8/8/R3K2R")
    game.make_move(sq("a1"), sq("b1"))
    assert game.castling_rights.white == FlankRights(king_side=True, queen_side=False)
    assert game.castling_rights.black == FlankRights(True, True)


# -- CLOCK --
def test_tick_runs_down_the_player_to_move() -> None:
    game = Game.new_game(initial_seconds=5)
    game.tick()
    assert game.clock.remaining == {Color.WHITE: 4, Color.BLACK: 5}
    game.make_move(sq("e2"), sq("e4"))
    game.tick()
    assert game.clock.remaining == {Color.WHITE: 4, Color.BLACK: 4}


def test_timeout() -> None:
    game = Game.new_game(initial_seconds=2)
    assert game.tick() is None
    assert game.tick() == GameEnd(GameResult.TIMEOUT, Color.BLACK)
    # clock stops once the game is over
    game.tick()
    assert game.clock.remaining[Color.WHITE] == 0
    with pytest.raises(GameStateError):
        game.make_move(sq("e2"), sq("e4"))


def test_reset() -> None:
    game = Game.new_game(GameMode.MOVEMENT, initial_seconds=30)
    game.make_move(sq("e2"), sq("e4"))
    game.tick()
    game.reset()
    assert game == Game.new_game(GameMode.MOVEMENT, initial_seconds=30)


# -- SHARED DOCUMENT --
def test_projection_from_document() -> None:
    room = RoomDocument.new_room(white="alice", game_mode=GameMode.FOG, created_at=1, black="bob")
    game = Game.from_document(room)
    assert game.board == Board.starting_position()
    assert game.mode == GameMode.FOG
    assert game.current_player == Color.WHITE
    assert game.game_end is None


def test_projection_derives_timeout() -> None:
    room = RoomDocument.new_room(white="alice", game_mode=GameMode.CASUAL, created_at=1)
    room.timers.black = 0
    game = Game.from_document(room)
    assert game.game_end == GameEnd(GameResult.TIMEOUT, Color.WHITE)


def test_projection_prefers_checkmate_over_timeout() -> None:
    board = Board.from_fen("R5k1/5ppp/8/8/8/8/8/6K1")
    room = RoomDocument(board=board.serialize(), current_player=Color.BLACK)
    room.timers.black = 0
    game = Game.from_document(room)
    assert game.game_end == GameEnd(GameResult.CHECKMATE, Color.WHITE)


def test_move_fields() -> None:
    game = Game.new_game()
    game.make_move(sq("g1"), sq("f3"))
    fields = game.move_fields(timestamp=1234)
    assert fields["currentPlayer"] == "black"
    assert fields["lastMove"] == {"from": [7, 6], "to": [5, 5], "timestamp": 1234}
    assert fields["board"][5][5] == {"type": "N", "color": "white"}
    assert fields["castlingRights"]["white"] == {"kingSide": True, "queenSide": True}


def test_visible_squares_follow_the_mode() -> None:
    game = Game.new_game(GameMode.FOG)
    assert len(game.visible_squares(Color.WHITE)) == 24
    assert game.masked_board(Color.WHITE).locate_color(Color.BLACK) == []
    game.mode = GameMode.CASUAL
    assert len(game.visible_squares(Color.WHITE)) == 64
