"""
What a player gets to see of the board in each game mode.

NOTE: this is a rendering policy. The full board is always sent to both players, so fog does not hide
anything from a client that decides to look.
"""

from typing import Optional

from fogchess.chess.board import Board
from fogchess.chess.castling import CastlingRights
from fogchess.chess.legality import legal_destinations
from fogchess.chess.pieces import Color
from fogchess.chess.square import Square, all_squares
from fogchess.core.shared_types import GameMode

FOG_RADIUS = 1


def _fog_neighbourhood(square: Square) -> set[Square]:
    """The square itself and everything within Chebyshev distance FOG_RADIUS, clipped to the board."""
    neighbours = {
        square.offset(d_row, d_col)
        for d_row in range(-FOG_RADIUS, FOG_RADIUS + 1)
        for d_col in range(-FOG_RADIUS, FOG_RADIUS + 1)
    }
    return {neighbour for neighbour in neighbours if neighbour.is_within_bounds()}


def visible_squares(
    board: Board,
    viewer: Color,
    mode: GameMode,
    castling_rights: Optional[CastlingRights] = None,
) -> set[Square]:
    """
    * casual: all 64 squares
    * fog: own pieces plus one square around each of them
    * movement: own pieces plus every square they can legally move to
    """
    if mode == GameMode.CASUAL:
        return set(all_squares())

    visible: set[Square] = set()
    for square in board.locate_color(viewer):
        # own pieces are always visible
        visible.add(square)
        if mode == GameMode.FOG:
            visible |= _fog_neighbourhood(square)
        elif mode == GameMode.MOVEMENT:
            visible.update(legal_destinations(board, square, castling_rights))
    return visible


def mask_board(
    board: Board,
    viewer: Color,
    mode: GameMode,
    castling_rights: Optional[CastlingRights] = None,
) -> Board:
    """Copy of the board with every square the viewer cannot see emptied."""
    visible = visible_squares(board, viewer, mode, castling_rights)
    masked = board.copy()
    for square in all_squares():
        if square not in visible:
            masked.remove_piece(square)
    return masked
