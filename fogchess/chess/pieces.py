"""Defines the types of chess pieces"""

from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Any, Optional, Self


class PieceType(Enum):
    """Values are the single-letter codes used on the wire."""

    PAWN = "P"
    KNIGHT = "N"
    BISHOP = "B"
    ROOK = "R"
    QUEEN = "Q"
    KING = "K"


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


FEN_TO_PIECE: dict[str, PieceType] = {
    "p": PieceType.PAWN,
    "n": PieceType.KNIGHT,
    "b": PieceType.BISHOP,
    "r": PieceType.ROOK,
    "q": PieceType.QUEEN,
    "k": PieceType.KING,
}

PIECE_TO_FEN: dict[PieceType, str] = {value: key for key, value in FEN_TO_PIECE.items()}


PIECE_POINTS: dict[PieceType, int] = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
    PieceType.KING: 0,
}


@dataclass(frozen=True)
class Piece:
    """Immutable: a move or a promotion replaces the piece on a square, it never edits it."""

    type: PieceType
    color: Color

    @classmethod
    def from_fen(cls, character: str) -> Self:
        # lower case: Black pieces, upper case: White pieces
        color = Color.WHITE if character.isupper() else Color.BLACK
        piece_type = FEN_TO_PIECE[character.lower()]
        return cls(piece_type, color)

    def to_fen(self) -> str:
        return (
            PIECE_TO_FEN[self.type].upper()
            if self.color == Color.WHITE
            else PIECE_TO_FEN[self.type].lower()
        )

    @classmethod
    def from_dict(cls, data: Any) -> Optional[Self]:
        """Wire format: {"type": "P", "color": "white"}. Anything malformed is read as an empty square."""
        if not isinstance(data, dict):
            return None
        try:
            return cls(PieceType(data.get("type")), Color(data.get("color")))
        except ValueError:
            return None

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "color": self.color.value}

    def promoted_to(self, new_type: PieceType) -> "Piece":
        return Piece(new_type, self.color)
