"""
Boundary layer data model(s).

These are the documents stored in / received from the shared document store.
Both clients read and write them, so every field is validated (and the board normalized) on the way in.
Field names are camelCase on the wire and snake_case in Python.
"""

from typing import Any, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from fogchess.chess.board import Board, SerializedBoard
from fogchess.chess.castling import CastlingRights, initialize_castling_rights
from fogchess.chess.clock import INITIAL_TIMER_SECONDS
from fogchess.chess.pieces import Color
from fogchess.core.exceptions import InvalidRequestError
from fogchess.core.shared_types import GameMode

PlayerId = str


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PlayersModel(WireModel):
    white: Optional[PlayerId] = None
    black: Optional[PlayerId] = None

    def slot(self, color: Color) -> Optional[PlayerId]:
        return self.white if color == Color.WHITE else self.black

    def color_of(self, player_id: PlayerId) -> Optional[Color]:
        if self.white == player_id:
            return Color.WHITE
        if self.black == player_id:
            return Color.BLACK
        return None


class TimersModel(WireModel):
    white: int = INITIAL_TIMER_SECONDS
    black: int = INITIAL_TIMER_SECONDS


class LastMoveModel(WireModel):
    from_square: tuple[int, int] = Field(alias="from")
    to_square: tuple[int, int] = Field(alias="to")
    timestamp: int


class RoomDocument(WireModel):
    """The shared game state of one room."""

    board: SerializedBoard = Field(
        default_factory=lambda: Board.starting_position().serialize()
    )
    current_player: Color = Color.WHITE
    game_mode: GameMode = GameMode.CASUAL
    players: PlayersModel = Field(default_factory=PlayersModel)
    created_at: int = 0
    last_move: Optional[LastMoveModel] = None
    timers: TimersModel = Field(default_factory=TimersModel)
    castling_rights: dict[str, dict[str, bool]] = Field(
        default_factory=lambda: initialize_castling_rights().to_dict()
    )

    @field_validator("board", mode="before")
    @classmethod
    def normalize_board(cls, value: Any) -> SerializedBoard:
        return Board.normalize(value).serialize()

    @field_validator("castling_rights", mode="before")
    @classmethod
    def normalize_castling_rights(cls, value: Any) -> dict[str, dict[str, bool]]:
        return CastlingRights.from_dict(value).to_dict()

    @field_validator("players", "timers", mode="before")
    @classmethod
    def missing_to_empty(cls, value: Any) -> Any:
        # the transport drops a mapping once all its entries are null
        return {} if value is None else value

    @classmethod
    def new_room(
        cls,
        white: Optional[PlayerId],
        game_mode: GameMode,
        created_at: int,
        initial_seconds: int = INITIAL_TIMER_SECONDS,
        black: Optional[PlayerId] = None,
    ) -> Self:
        return cls(
            game_mode=game_mode,
            players=PlayersModel(white=white, black=black),
            created_at=created_at,
            timers=TimersModel(white=initial_seconds, black=initial_seconds),
        )

    @classmethod
    def from_snapshot(cls, value: Any) -> Self:
        """Validate a raw snapshot. A snapshot that cannot be read at all is an InvalidRequestError."""
        try:
            return cls.model_validate(value)
        except ValidationError as err:
            raise InvalidRequestError(f"Malformed room document: {err}") from err

    def board_position(self) -> Board:
        return Board.normalize(self.board)

    def rights(self) -> CastlingRights:
        return CastlingRights.from_dict(self.castling_rights)


class QueueEntry(WireModel):
    """Matchmaking record: queue/<mode>/<player_id>"""

    player_id: PlayerId
    timestamp: int
    game_mode: GameMode
