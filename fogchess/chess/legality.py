"""
Legality filter
----

A raw move is legal if it does not put (or leave) your own king in check.
Castling additionally may not start from check or pass through an attacked square.
"""

from typing import Optional

from fogchess.chess.board import Board
from fogchess.chess.castling import CASTLING_RULES, CastlingRights
from fogchess.chess.moves import Move, castling_direction_for, raw_moves
from fogchess.chess.pieces import Color, PieceType
from fogchess.chess.square import Square


def is_square_attacked(board: Board, square: Square, by_color: Color) -> bool:
    """
    Could any piece of `by_color` move onto `square`?

    NOTE: uses raw moves without castling rights. Using legal moves here would recurse forever.
    """
    return any(
        move.to_square == square
        for attacker_square in board.locate_color(by_color)
        for move in raw_moves(board, attacker_square)
    )


def is_in_check(board: Board, color: Color) -> bool:
    """Without a king on the board there is nothing to be in check."""
    king_square = board.locate_king(color)
    if king_square is None:
        return False
    return is_square_attacked(board, king_square, color.opponent)


def is_move_legal(
    board: Board, move: Move, castling_rights: Optional[CastlingRights] = None
) -> bool:
    """
    plan:
    1. Never allow capturing a king
    2. Castling: cannot castle out of check, nor through an attacked square
    3. Copy the board, make the move and determine if your own king is in check on the new board
    """
    moving_piece = board.piece(move.from_square)
    if moving_piece is None:
        return False

    target = board.piece(move.to_square)
    if target is not None and target.type == PieceType.KING:
        return False

    direction = castling_direction_for(move, board)
    if direction is not None:
        if is_in_check(board, moving_piece.color):
            return False

        passing_square = CASTLING_RULES[direction].passing_square
        single_step = board.make_move(Move(move.from_square, passing_square))
        if is_in_check(single_step, moving_piece.color):
            return False

    after_move = board.make_move(move)
    return not is_in_check(after_move, moving_piece.color)


def legal_moves(
    board: Board, square: Square, castling_rights: Optional[CastlingRights] = None
) -> list[Move]:
    """Raw moves of the piece on `square`, minus those that would leave its own king in check."""
    return [
        move
        for move in raw_moves(board, square, castling_rights)
        if is_move_legal(board, move, castling_rights)
    ]


def legal_destinations(
    board: Board, square: Square, castling_rights: Optional[CastlingRights] = None
) -> list[Square]:
    """Convenience for highlighting: just the target squares."""
    return [move.to_square for move in legal_moves(board, square, castling_rights)]
