"""Helpers for implementing Castling rules, and the castling rights record that gets updated after every move."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Self

from fogchess.chess.pieces import Color, Piece, PieceType
from fogchess.chess.square import Square


class CastlingDirection(Enum):
    """The four castling directions. Values represent their encodings in FEN string."""

    WHITE_KING_SIDE = "K"
    WHITE_QUEEN_SIDE = "Q"
    BLACK_KING_SIDE = "k"
    BLACK_QUEEN_SIDE = "q"

    @property
    def color(self) -> Color:
        return Color.WHITE if self.value.isupper() else Color.BLACK

    @property
    def is_king_side(self) -> bool:
        return self.value.lower() == "k"


@dataclass(frozen=True)
class CastlingSquares:
    """
    Store the squares where king/rook start from/end up in by castling.
    NOTE: Rights alone do not guarantee the king / rook are still there. The move generator checks the board as well.
    """

    king_from: Square
    king_to: Square
    rook_from: Square
    rook_to: Square

    @classmethod
    def from_algebraic(cls, k_from: str, k_to: str, r_from: str, r_to: str) -> Self:
        """Convenience method: to make mapping shown below (from CastlingDirection) more readable"""
        king_from = Square.from_algebraic(k_from)
        king_to = Square.from_algebraic(k_to)
        rook_from = Square.from_algebraic(r_from)
        rook_to = Square.from_algebraic(r_to)
        return cls(king_from, king_to, rook_from, rook_to)

    @property
    def path(self) -> list[Square]:
        """Squares strictly between king and rook. All of them must be empty to castle."""
        return squares_between_on_rank(self.king_from, self.rook_from)

    @property
    def passing_square(self) -> Square:
        """The square the king crosses on its way to its destination."""
        step = 1 if self.king_to.col > self.king_from.col else -1
        return self.king_from.offset(0, step)


# The moves (in classical chess) made when castling
CASTLING_RULES: dict[CastlingDirection, CastlingSquares] = {
    CastlingDirection.WHITE_KING_SIDE: CastlingSquares.from_algebraic(
        "e1", "g1", "h1", "f1"
    ),
    CastlingDirection.WHITE_QUEEN_SIDE: CastlingSquares.from_algebraic(
        "e1", "c1", "a1", "d1"
    ),
    CastlingDirection.BLACK_KING_SIDE: CastlingSquares.from_algebraic(
        "e8", "g8", "h8", "f8"
    ),
    CastlingDirection.BLACK_QUEEN_SIDE: CastlingSquares.from_algebraic(
        "e8", "c8", "a8", "d8"
    ),
}


def squares_between_on_rank(from_square: Square, to_square: Square) -> list[Square]:
    """Find the squares in between the two squares specified that are on the same row (exclusive on both ends)."""
    if from_square.row != to_square.row:
        raise ValueError(
            f"squares_between_on_rank requires both squares to lie on the same rank. \n from: {from_square}\n to:{to_square}"
        )
    step = 1 if to_square.col > from_square.col else -1
    return [
        Square(from_square.row, col)
        for col in range(from_square.col + step, to_square.col, step)
    ]


def castling_options(color: Color) -> list[CastlingDirection]:
    return [direction for direction in CastlingDirection if direction.color == color]


# --- CASTLING RIGHTS ---
@dataclass(frozen=True)
class FlankRights:
    king_side: bool = True
    queen_side: bool = True


@dataclass(frozen=True)
class CastlingRights:
    """
    Per color, per flank eligibility to castle.

    A right only ever goes from True to False during a game. The record is immutable;
    `update_castling_rights()` returns a new one.
    """

    white: FlankRights = FlankRights()
    black: FlankRights = FlankRights()

    def for_color(self, color: Color) -> FlankRights:
        return self.white if color == Color.WHITE else self.black

    def has(self, direction: CastlingDirection) -> bool:
        flank = self.for_color(direction.color)
        return flank.king_side if direction.is_king_side else flank.queen_side

    def revoke(self, direction: CastlingDirection) -> Self:
        flank = self.for_color(direction.color)
        flank = (
            replace(flank, king_side=False)
            if direction.is_king_side
            else replace(flank, queen_side=False)
        )
        return self._with_flank(direction.color, flank)

    def revoke_all(self, color: Color) -> Self:
        return self._with_flank(color, FlankRights(False, False))

    def _with_flank(self, color: Color, flank: FlankRights) -> Self:
        if color == Color.WHITE:
            return replace(self, white=flank)
        return replace(self, black=flank)

    def to_dict(self) -> dict[str, dict[str, bool]]:
        return {
            color.value: {
                "kingSide": self.for_color(color).king_side,
                "queenSide": self.for_color(color).queen_side,
            }
            for color in Color
        }

    @classmethod
    def from_dict(cls, data: Any) -> Self:
        """Missing entries are read as revoked: a right can be lost but never regained."""
        if not isinstance(data, dict):
            return cls(FlankRights(False, False), FlankRights(False, False))

        def _flank(raw: Any) -> FlankRights:
            if not isinstance(raw, dict):
                return FlankRights(False, False)
            return FlankRights(
                king_side=bool(raw.get("kingSide", False)),
                queen_side=bool(raw.get("queenSide", False)),
            )

        return cls(white=_flank(data.get("white")), black=_flank(data.get("black")))


def initialize_castling_rights() -> CastlingRights:
    return CastlingRights()


def update_castling_rights(
    rights: CastlingRights, moved_piece: Piece, from_square: Square
) -> CastlingRights:
    """
    Checks which rights should get revoked
    ----

    1. If you are moving your king (this includes castling) --> revoke both
    2. If you are moving a rook off its original corner --> revoke the right for that flank
    3. Anything else leaves the rights untouched
    """
    if moved_piece.type == PieceType.KING:
        return rights.revoke_all(moved_piece.color)

    if moved_piece.type == PieceType.ROOK:
        for direction in castling_options(moved_piece.color):
            if CASTLING_RULES[direction].rook_from == from_square:
                return rights.revoke(direction)

    return rights
