"""The Game board implements all rules that effect the `position` (in chess: the configuration of pieces on the board)"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional, Self

from fogchess.chess.castling import CASTLING_RULES
from fogchess.chess.moves import (
    Move,
    castling_direction_for,
    is_pawn_push_to_promotion_square,
)
from fogchess.chess.pieces import Color, Piece, PieceType
from fogchess.chess.square import BOARD_DIMENSIONS, Square, all_squares

STARTING_POSITION_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"

Cell = Optional[Piece]
SerializedBoard = list[list[Optional[dict[str, str]]]]


@dataclass
class Board:
    """
    8x8 grid of cells, each either None (empty) or a Piece.

    grid[0] is Black's back rank, grid[7] is White's back rank; grid[r][0] is the a-file.
    """

    grid: list[list[Cell]]

    def __repr__(self) -> str:
        return f"Board({self.to_fen()!r})"

    # -- CREATION LOGIC --
    @classmethod
    def empty(cls) -> Self:
        return cls([[None] * BOARD_DIMENSIONS[1] for _ in range(BOARD_DIMENSIONS[0])])

    @classmethod
    def starting_position(cls) -> Self:
        """Standard opening position. Deterministic: every call builds a fresh grid."""
        return cls.from_fen(STARTING_POSITION_FEN)

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using the piece placement part of a FEN string.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank (row 0), starting with rook on a8
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank (row 7) are the white pieces.
        """
        board = cls.empty()
        for row, fen_one_rank in enumerate(fen_str.split("/")):
            col = 0
            for character in fen_one_rank:
                if character.isalpha():
                    board.grid[row][col] = Piece.from_fen(character)
                    col += 1
                else:
                    # A number denotes the amount of empty squares after each other
                    col += int(character)
        return board

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(self._row_to_fen(row) for row in self.grid)

    @staticmethod
    def _row_to_fen(row: list[Cell]) -> str:
        fen_characters: list[str] = []
        empty_count = 0
        for piece in row:
            if piece is None:
                empty_count += 1
                continue
            if empty_count > 0:
                fen_characters.append(str(empty_count))
                empty_count = 0
            fen_characters.append(piece.to_fen())

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    # -- TRANSPORT --
    @classmethod
    def normalize(cls, raw: Any) -> Self:
        """
        Coerce whatever came back from the shared document into a full 8x8 grid.

        The transport drops null entries, so a row can arrive as a shorter list, as a dict keyed by
        (string) indices, or not at all. Anything that is not a well formed piece is read as empty.
        """
        if isinstance(raw, Board):
            return cls([list(row) for row in raw.grid])

        board = cls.empty()
        for row in range(BOARD_DIMENSIONS[0]):
            raw_row = _element(raw, row)
            for col in range(BOARD_DIMENSIONS[1]):
                board.grid[row][col] = Piece.from_dict(_element(raw_row, col))
        return board

    def serialize(self) -> SerializedBoard:
        """Canonical wire form: every cell is present, empty cells are an explicit None."""
        return [
            [piece.to_dict() if piece is not None else None for piece in row]
            for row in self.grid
        ]

    # -- ACCESS --
    def piece(self, square: Square) -> Cell:
        """Out of bounds reads as empty."""
        if not square.is_within_bounds():
            return None
        return self.grid[square.row][square.col]

    def place_piece(self, piece: Piece, square: Square) -> None:
        self.grid[square.row][square.col] = piece

    def remove_piece(self, square: Square) -> None:
        self.grid[square.row][square.col] = None

    def copy(self) -> Self:
        # pieces are immutable, copying the rows is enough
        return type(self)([list(row) for row in self.grid])

    def locate_color(self, color: Color) -> list[Square]:
        return [
            square
            for square in all_squares()
            if (piece := self.piece(square)) is not None and piece.color == color
        ]

    def locate_pieces(self, piece_type: PieceType, color: Color) -> list[Square]:
        return [
            square
            for square in all_squares()
            if self.piece(square) == Piece(piece_type, color)
        ]

    def locate_king(self, color: Color) -> Optional[Square]:
        kings = self.locate_pieces(PieceType.KING, color)
        return kings[0] if kings else None

    # -- MOVING PIECES --
    def move_piece(self, move: Move) -> None:
        """Update the position on the board (in place, no rules applied)"""
        piece_that_moved = self.piece(move.from_square)
        self.remove_piece(move.from_square)
        if piece_that_moved is not None:
            self.place_piece(piece_that_moved, move.to_square)

    def make_move(self, move: Move) -> Self:
        """
        Return the board after the move. The current board is left untouched.
        ---

        * castling: the king AND the rook get relocated
        * pawn reaching the far rank: replaced by the piece in `move.promote_to` (a queen when not given)
        """
        board = self.copy()
        moving_piece = self.piece(move.from_square)
        if moving_piece is None:
            return board

        direction = castling_direction_for(move, self)
        if direction is not None:
            rule = CASTLING_RULES[direction]
            board.move_piece(Move(rule.king_from, rule.king_to))
            board.move_piece(Move(rule.rook_from, rule.rook_to))
            return board

        board.move_piece(move)
        if is_pawn_push_to_promotion_square(move, self):
            promote_to = move.promote_to or PieceType.QUEEN
            board.place_piece(moving_piece.promoted_to(promote_to), move.to_square)
        return board

    # -- COUNTING --
    def piece_counts(self, color: Color) -> Counter[PieceType]:
        return Counter(
            piece.type
            for row in self.grid
            for piece in row
            if piece is not None and piece.color == color
        )


def _element(container: Any, index: int) -> Any:
    """Index into a list, or a dict that replaced a sparse list (keys may be int or str)."""
    if isinstance(container, (list, tuple)):
        return container[index] if index < len(container) else None
    if isinstance(container, dict):
        if index in container:
            return container[index]
        return container.get(str(index))
    return None
