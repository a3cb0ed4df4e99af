"""
The Game class is the entrypoint into the domain layer for the service layer.
It is responsible for orchestrating all the business logic required to play a turn:
turn order, legality, castling rights, promotion, the clock and the end of the game.

A local game keeps its Game for the whole session. In a multiplayer room the Game is a disposable
projection, rebuilt from every snapshot of the shared room document.
"""

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Optional, Self

from fogchess.chess.board import Board
from fogchess.chess.castling import (
    CastlingRights,
    initialize_castling_rights,
    update_castling_rights,
)
from fogchess.chess.clock import INITIAL_TIMER_SECONDS, GameClock
from fogchess.chess.legality import is_in_check, legal_moves
from fogchess.chess.moves import (
    PROMOTION_OPTIONS,
    AcceptedMove,
    Move,
    is_pawn_push_to_promotion_square,
)
from fogchess.chess.pieces import Color, PieceType
from fogchess.chess.square import Square
from fogchess.chess.status import (
    GameEnd,
    GameStatus,
    get_captured_pieces,
    get_game_status,
    get_material_advantage,
)
from fogchess.chess.visibility import mask_board, visible_squares
from fogchess.core.exceptions import GameStateError, IllegalMoveError, NotYourTurnError
from fogchess.core.models import RoomDocument
from fogchess.core.shared_types import GameMode, GameResult


class MoveFeedback(StrEnum):
    """What kind of move was just played (the UI picks a sound for it)."""

    MOVE = "move"
    CAPTURE = "capture"
    CASTLE = "castle"
    PROMOTION = "promotion"
    CHECK = "check"
    CHECKMATE = "checkmate"


def classify_move(
    accepted: AcceptedMove, board_after: Board, game_end: Optional[GameEnd]
) -> MoveFeedback:
    """The most significant thing that happened wins."""
    if game_end is not None and game_end.result == GameResult.CHECKMATE:
        return MoveFeedback.CHECKMATE
    if is_in_check(board_after, accepted.moving_piece.color.opponent):
        return MoveFeedback.CHECK
    if accepted.castling_direction is not None:
        return MoveFeedback.CASTLE
    if accepted.promoted_to is not None:
        return MoveFeedback.PROMOTION
    if accepted.captured_piece is not None:
        return MoveFeedback.CAPTURE
    return MoveFeedback.MOVE


@dataclass
class Game:
    board: Board
    current_player: Color
    mode: GameMode
    castling_rights: CastlingRights
    clock: GameClock
    last_move: Optional[Move] = None
    game_end: Optional[GameEnd] = None
    initial_seconds: int = INITIAL_TIMER_SECONDS
    last_feedback: Optional[MoveFeedback] = field(default=None, compare=False)

    @classmethod
    def new_game(
        cls,
        mode: GameMode = GameMode.CASUAL,
        initial_seconds: int = INITIAL_TIMER_SECONDS,
    ) -> Self:
        """Fresh board, White to move, full castling rights, both clocks full."""
        return cls(
            board=Board.starting_position(),
            current_player=Color.WHITE,
            mode=mode,
            castling_rights=initialize_castling_rights(),
            clock=GameClock.with_time(initial_seconds),
            initial_seconds=initial_seconds,
        )

    @classmethod
    def from_document(cls, document: RoomDocument) -> Self:
        """
        Project the shared room document onto a Game.
        ---

        The end of the game is never stored in the document: it is derived here from the board
        (checkmate / stalemate of the side to move) or else from a clock that ran out.
        """
        last_move = (
            Move(
                Square(*document.last_move.from_square),
                Square(*document.last_move.to_square),
            )
            if document.last_move
            else None
        )
        game = cls(
            board=document.board_position(),
            current_player=document.current_player,
            mode=document.game_mode,
            castling_rights=document.rights(),
            clock=GameClock.from_dict(document.timers.model_dump()),
            last_move=last_move,
        )
        game._update_game_status()
        if game.game_end is None:
            expired = game.clock.expired_color()
            if expired is not None:
                game.game_end = GameEnd(GameResult.TIMEOUT, expired.opponent)
        return game

    def move_fields(self, timestamp: int) -> dict[str, Any]:
        """The room document fields a committed move overwrites."""
        last_move = (
            {
                "from": [self.last_move.from_square.row, self.last_move.from_square.col],
                "to": [self.last_move.to_square.row, self.last_move.to_square.col],
                "timestamp": timestamp,
            }
            if self.last_move
            else None
        )
        return {
            "board": self.board.serialize(),
            "currentPlayer": self.current_player.value,
            "castlingRights": self.castling_rights.to_dict(),
            "lastMove": last_move,
        }

    @property
    def is_over(self) -> bool:
        return self.game_end is not None

    # --- DOMAIN LAYER API CALLED BY SERVICE---
    def legal_moves(self, square: Square) -> list[Move]:
        """
        Legal moves of the piece on `square`.
        ----

        Only the player to move gets moves; selecting an empty square or an opponent's piece gives none.
        """
        if self.is_over:
            raise GameStateError(f"Game is over: {self.game_end}")

        piece = self.board.piece(square)
        if piece is None or piece.color != self.current_player:
            return []
        return legal_moves(self.board, square, self.castling_rights)

    def needs_promotion(self, from_square: Square, to_square: Square) -> bool:
        """Ask before calling make_move: should the user pick a piece to promote into?"""
        return is_pawn_push_to_promotion_square(Move(from_square, to_square), self.board)

    def make_move(
        self,
        from_square: Square,
        to_square: Square,
        promote_to: Optional[PieceType] = None,
        as_color: Optional[Color] = None,
    ) -> AcceptedMove:
        """
        Attempt to make a move
        -----

        1. the game must still be running
        2. it must be the turn of the piece's color (and of `as_color`, when given)
        3. the move must be among the legal moves
        4. update the board (castling moves the rook too, promotion swaps the pawn)
        5. update castling rights, last move and the player to move
        6. update game status
        """
        if self.is_over:
            raise GameStateError(f"Game is over: {self.game_end}")

        if as_color is not None and as_color != self.current_player:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {self.current_player} to make a move first."
            )

        piece = self.board.piece(from_square)
        if piece is None:
            raise IllegalMoveError(f"No piece on {from_square.to_algebraic()}")
        if piece.color != self.current_player:
            raise NotYourTurnError(f"It is {self.current_player}'s turn to move.")

        matching = [
            move for move in self.legal_moves(from_square) if move.to_square == to_square
        ]
        if not matching:
            raise IllegalMoveError(
                f"Move not allowed: {from_square.to_algebraic()}{to_square.to_algebraic()}"
            )

        move = matching[0]
        if promote_to is not None:
            if promote_to not in PROMOTION_OPTIONS:
                raise IllegalMoveError(f"Cannot promote to {promote_to.name.lower()}")
            move = replace(move, promote_to=promote_to)

        # Store move info before update
        accepted = AcceptedMove.from_move_and_board(move, self.board)

        self.board = self.board.make_move(move)
        self.castling_rights = update_castling_rights(
            self.castling_rights, accepted.moving_piece, from_square
        )
        self.last_move = move
        self.current_player = self.current_player.opponent
        self._update_game_status()
        self.last_feedback = classify_move(accepted, self.board, self.game_end)
        return accepted

    def tick(self) -> Optional[GameEnd]:
        """One second passed: run down the clock of the player to move. Running out loses the game."""
        if self.is_over:
            return self.game_end

        remaining = self.clock.tick(self.current_player)
        if remaining <= 0:
            self.game_end = GameEnd(GameResult.TIMEOUT, self.current_player.opponent)
        return self.game_end

    def reset(self) -> None:
        """Start over in the same mode, with the same time control."""
        fresh = self.new_game(self.mode, self.initial_seconds)
        self.board = fresh.board
        self.current_player = fresh.current_player
        self.castling_rights = fresh.castling_rights
        self.clock = fresh.clock
        self.last_move = None
        self.game_end = None
        self.last_feedback = None

    # --- DERIVED VIEWS ---
    def status(self) -> GameStatus:
        return get_game_status(self.board, self.current_player, self.castling_rights)

    def is_check(self) -> bool:
        return is_in_check(self.board, self.current_player)

    def visible_squares(self, viewer: Color) -> set[Square]:
        return visible_squares(self.board, viewer, self.mode, self.castling_rights)

    def masked_board(self, viewer: Color) -> Board:
        return mask_board(self.board, viewer, self.mode, self.castling_rights)

    def captured_pieces(self) -> dict[Color, list[PieceType]]:
        return get_captured_pieces(self.board)

    def material_advantage(self) -> int:
        return get_material_advantage(self.captured_pieces())

    # -- PRIVATE HELPERS ---
    def _update_game_status(self) -> None:
        """Checkmate / stalemate for the player who now has to move."""
        self.game_end = self.status().to_game_end()
