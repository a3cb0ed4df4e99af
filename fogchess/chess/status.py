"""Checks for ending the game and material accounting"""

from dataclasses import dataclass
from typing import Optional

from fogchess.chess.board import Board
from fogchess.chess.castling import CastlingRights
from fogchess.chess.legality import is_in_check, legal_moves
from fogchess.chess.pieces import PIECE_POINTS, Color, PieceType
from fogchess.core.shared_types import GameResult

# Number of pieces per type each side starts with
STARTING_COUNTS: dict[PieceType, int] = {
    PieceType.PAWN: 8,
    PieceType.KNIGHT: 2,
    PieceType.BISHOP: 2,
    PieceType.ROOK: 2,
    PieceType.QUEEN: 1,
    PieceType.KING: 1,
}


@dataclass(frozen=True)
class GameEnd:
    """Terminal marker. Once set, no more moves are accepted until the game is reset."""

    result: GameResult
    winner: Optional[Color]


@dataclass(frozen=True)
class GameStatus:
    game_over: bool
    result: Optional[GameResult] = None
    winner: Optional[Color] = None

    def to_game_end(self) -> Optional[GameEnd]:
        if not self.game_over or self.result is None:
            return None
        return GameEnd(self.result, self.winner)


def has_any_legal_moves(
    board: Board, color: Color, castling_rights: Optional[CastlingRights] = None
) -> bool:
    """Stops at the first piece that has somewhere to go."""
    return any(
        legal_moves(board, square, castling_rights)
        for square in board.locate_color(color)
    )


def is_checkmate(
    board: Board, color: Color, castling_rights: Optional[CastlingRights] = None
) -> bool:
    return is_in_check(board, color) and not has_any_legal_moves(
        board, color, castling_rights
    )


def is_stalemate(
    board: Board, color: Color, castling_rights: Optional[CastlingRights] = None
) -> bool:
    return not is_in_check(board, color) and not has_any_legal_moves(
        board, color, castling_rights
    )


def get_game_status(
    board: Board,
    current_player: Color,
    castling_rights: Optional[CastlingRights] = None,
) -> GameStatus:
    """Status from the point of view of the player to move. On checkmate the other side wins."""
    if has_any_legal_moves(board, current_player, castling_rights):
        return GameStatus(game_over=False)

    if is_in_check(board, current_player):
        return GameStatus(
            game_over=True,
            result=GameResult.CHECKMATE,
            winner=current_player.opponent,
        )
    return GameStatus(game_over=True, result=GameResult.STALEMATE, winner=None)


def get_captured_pieces(board: Board) -> dict[Color, list[PieceType]]:
    """
    Pieces of each color that are no longer on the board, inferred by comparing against the starting counts.
    ---

    A promoted pawn shows up as a missing pawn plus a surplus piece of another type.
    Every surplus piece is therefore credited back to the pawns, so a promotion is not reported as a capture.

    NOTE: the board alone cannot tell a captured queen + promoted pawn apart from a captured pawn,
    the count of captured pieces is right in both cases but the types are not.
    """
    captured: dict[Color, list[PieceType]] = {}
    for color in Color:
        counts = board.piece_counts(color)
        promoted = sum(
            max(0, counts[piece_type] - STARTING_COUNTS[piece_type])
            for piece_type in STARTING_COUNTS
            if piece_type not in (PieceType.PAWN, PieceType.KING)
        )
        missing: list[PieceType] = []
        for piece_type, starting_count in STARTING_COUNTS.items():
            deficit = starting_count - counts[piece_type]
            if piece_type == PieceType.PAWN:
                deficit -= promoted
            missing.extend([piece_type] * max(0, deficit))
        captured[color] = missing
    return captured


def get_material_advantage(captured: dict[Color, list[PieceType]]) -> int:
    """
    Value White has taken from Black minus the value Black has taken from White.
    Positive favors White.
    """

    def _value(pieces: list[PieceType]) -> int:
        return sum(PIECE_POINTS[piece_type] for piece_type in pieces)

    return _value(captured.get(Color.BLACK, [])) - _value(
        captured.get(Color.WHITE, [])
    )
