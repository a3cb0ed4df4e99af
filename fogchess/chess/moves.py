"""
Geometry/Base movement and capturing rules

Key idea: Use strategy pattern to define raw move sets for each piece type.


Legality (not leaving your own king in check) is checked later, see legality.py
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Self

from fogchess.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    CastlingRights,
    castling_options,
)
from fogchess.chess.pieces import Color, Piece, PieceType
from fogchess.chess.square import BOARD_DIMENSIONS, Square


class Board(Protocol):
    """Just the parts the movement strategies need"""

    def piece(self, square: Square) -> Optional[Piece]: ...


Vector = tuple[int, int]


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made"""

    from_square: Square
    to_square: Square
    promote_to: Optional[PieceType] = None
    castling_direction: Optional[CastlingDirection] = None

    @classmethod
    def from_algebraic(cls, from_sq: str, to_sq: str) -> Self:
        return cls(Square.from_algebraic(from_sq), Square.from_algebraic(to_sq))

    def __str__(self) -> str:
        return f"{self.from_square.to_algebraic()}{self.to_square.to_algebraic()}"


@dataclass(frozen=True)
class AcceptedMove:
    """Snapshot of what a move did, taken from the board before it was applied."""

    move: Move
    moving_piece: Piece
    captured_piece: Optional[Piece]
    castling_direction: Optional[CastlingDirection]
    promoted_to: Optional[PieceType]

    @classmethod
    def from_move_and_board(cls, move: Move, board: Board) -> Self:
        moving_piece = board.piece(move.from_square)
        # for the type checker: moves are only accepted for an occupied square
        assert moving_piece is not None
        promoted_to = (
            (move.promote_to or PieceType.QUEEN)
            if is_pawn_push_to_promotion_square(move, board)
            else None
        )
        return cls(
            move=move,
            moving_piece=moving_piece,
            captured_piece=board.piece(move.to_square),
            castling_direction=castling_direction_for(move, board),
            promoted_to=promoted_to,
        )


# --- MOVEMENT RULES ---
def raycasting_move(
    square: Square, board: Board, directions: list[Vector]
) -> list[Move]:
    """
    Raycasting algorithm
    -----

    ---
    The main trick we use to check the 'line of sight of a piece'.
    We define move directions and move along them until we hit another piece or
    the edge of the board.
    """
    piece = board.piece(square)
    if piece is None:
        return []

    moves: list[Move] = []
    for d_row, d_col in directions:
        target_square = square
        while True:
            target_square = target_square.offset(d_row, d_col)
            if not target_square.is_within_bounds():
                break

            occupant = board.piece(target_square)
            if occupant is not None:
                # only need to add the first occupied square found if it is the opponent's: then it can be captured.
                if occupant.color != piece.color:
                    moves.append(Move(square, target_square))
                break

            moves.append(Move(square, target_square))
    return moves


def single_step_move(square: Square, board: Board, deltas: list[Vector]) -> list[Move]:
    """Raycasting is for sliding pieces. This is the equivalent for kings and knights that just move a single step along a direction"""
    piece = board.piece(square)
    if piece is None:
        return []

    moves: list[Move] = []
    for d_row, d_col in deltas:
        target_square = square.offset(d_row, d_col)
        if not target_square.is_within_bounds():
            continue

        occupant = board.piece(target_square)
        if occupant is None or occupant.color != piece.color:
            moves.append(Move(square, target_square))

    return moves


def pawn_direction(color: Color) -> int:
    """White moves UP the board (towards row 0), Black moves DOWN."""
    return -1 if color == Color.WHITE else 1


def pawn_starting_row(color: Color) -> int:
    return BOARD_DIMENSIONS[0] - 2 if color == Color.WHITE else 1


def promotion_row(color: Color) -> int:
    return 0 if color == Color.WHITE else BOARD_DIMENSIONS[0] - 1


def candidate_pawn_moves(square: Square, board: Board) -> list[Move]:
    """
    A pawn:
    - moves by a single square forward, onto an empty square.
    - It can move by two in their first move (so when on their starting rank), if both squares are empty
    - takes diagonally (and only when there is something to take)

    NOTE: no en passant.
    """
    pawn = board.piece(square)
    if pawn is None:
        return []

    direction = pawn_direction(pawn.color)
    moves: list[Move] = []

    one_step = square.offset(direction, 0)
    if one_step.is_within_bounds() and board.piece(one_step) is None:
        moves.append(Move(square, one_step))
        two_steps = square.offset(2 * direction, 0)
        if (
            square.row == pawn_starting_row(pawn.color)
            and board.piece(two_steps) is None
        ):
            moves.append(Move(square, two_steps))

    for d_col in (-1, 1):
        target_square = square.offset(direction, d_col)
        if not target_square.is_within_bounds():
            continue
        occupant = board.piece(target_square)
        if occupant is not None and occupant.color != pawn.color:
            moves.append(Move(square, target_square))
    return moves


KNIGHT_DELTAS: list[Vector] = [
    (-2, -1),
    (-2, 1),
    (-1, -2),
    (-1, 2),
    (1, -2),
    (1, 2),
    (2, -1),
    (2, 1),
]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]
DIAGONALS: list[Vector] = [(1, 1), (1, -1), (-1, 1), (-1, -1)]


def candidate_knight_moves(square: Square, board: Board) -> list[Move]:
    """Knights always move such that |delta_row| + |delta_col| = 3"""
    return single_step_move(square, board, KNIGHT_DELTAS)


def candidate_bishop_moves(square: Square, board: Board) -> list[Move]:
    """Bishops move diagonally: |delta_row| = |delta_col|"""
    return raycasting_move(square, board, DIAGONALS)


def candidate_rook_moves(square: Square, board: Board) -> list[Move]:
    """Rooks move either horizontally or vertically"""
    return raycasting_move(square, board, STRAIGHTS)


def candidate_queen_moves(square: Square, board: Board) -> list[Move]:
    """
    The Queen combines the rook moves (horizontal + vertical movements) and bishop moves (diagonal movement)
    """
    return raycasting_move(square, board, STRAIGHTS + DIAGONALS)


def candidate_king_moves(square: Square, board: Board) -> list[Move]:
    """
    The king can move by a single square at the time.

    Castling is modelled as a special king move (handled separately).
    """
    return single_step_move(square, board, STRAIGHTS + DIAGONALS)


# -- STRATEGY PATTERN: MOVEMENT RULES ---
CandidateMovesFn = Callable[[Square, Board], list[Move]]
MOVEMENT_RULES: dict[PieceType, CandidateMovesFn] = {
    PieceType.PAWN: candidate_pawn_moves,
    PieceType.KNIGHT: candidate_knight_moves,
    PieceType.BISHOP: candidate_bishop_moves,
    PieceType.ROOK: candidate_rook_moves,
    PieceType.QUEEN: candidate_queen_moves,
    PieceType.KING: candidate_king_moves,
}


# -- CASTLING MOVES ---
def candidate_castling_moves(
    square: Square, board: Board, castling_rights: CastlingRights
) -> list[Move]:
    """
    Castling geometry only
    ----

    Offered when the right is still held, the king and the rook stand on their original squares,
    and every square between them is empty.

    NOTE: whether the king is in check / passes through an attacked square is for the legality filter to decide.
    """
    king = board.piece(square)
    if king is None or king.type != PieceType.KING:
        return []

    moves: list[Move] = []
    for direction in castling_options(king.color):
        if not castling_rights.has(direction):
            continue

        rule = CASTLING_RULES[direction]
        if square != rule.king_from:
            continue

        if board.piece(rule.rook_from) != Piece(PieceType.ROOK, king.color):
            continue

        if any(board.piece(between) is not None for between in rule.path):
            continue

        moves.append(Move(rule.king_from, rule.king_to, castling_direction=direction))
    return moves


def castling_direction_for(move: Move, board: Board) -> Optional[CastlingDirection]:
    """Recognize a castling move, also when it was built from bare squares (king displaced by two columns)."""
    if move.castling_direction is not None:
        return move.castling_direction

    piece = board.piece(move.from_square)
    if piece is None or piece.type != PieceType.KING:
        return None
    if abs(move.to_square.col - move.from_square.col) != 2:
        return None

    for direction in castling_options(piece.color):
        rule = CASTLING_RULES[direction]
        if rule.king_from == move.from_square and rule.king_to == move.to_square:
            return direction
    return None


def raw_moves(
    board: Board, square: Square, castling_rights: Optional[CastlingRights] = None
) -> list[Move]:
    """
    All moves the piece on `square` could make by geometry alone.

    Without castling rights no castling moves are generated, which is what check detection relies on.
    """
    piece = board.piece(square)
    if piece is None:
        return []

    movement_rule: CandidateMovesFn = MOVEMENT_RULES[piece.type]
    moves = movement_rule(square, board)
    if piece.type == PieceType.KING and castling_rights is not None:
        moves.extend(candidate_castling_moves(square, board, castling_rights))
    return moves


# -- PAWN PROMOTION MOVES --
PROMOTION_OPTIONS: list[PieceType] = [
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
]


def is_pawn_push_to_promotion_square(move: Move, board: Board) -> bool:
    """check if the move is a pawn move that reaches the far rank for its color"""
    moving_piece = board.piece(move.from_square)
    if moving_piece is None or moving_piece.type != PieceType.PAWN:
        return False
    return move.to_square.row == promotion_row(moving_piece.color)
