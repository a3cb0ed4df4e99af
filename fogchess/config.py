"""Application configuration. Only the session and storage layers read it, the chess engine takes no configuration."""

import os
from pathlib import Path
from typing import Mapping, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fogchess.chess.clock import INITIAL_TIMER_SECONDS
from fogchess.core.exceptions import InvalidRequestError

ENV_PREFIX = "FOGCHESS_"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    initial_timer_seconds: int = Field(default=INITIAL_TIMER_SECONDS, gt=0)
    # how long the "opponent left" message stays up before the room is torn down
    opponent_left_grace_seconds: float = Field(default=3.0, ge=0)
    # a waiting player only adopts rooms created this recently
    match_lookback_seconds: float = Field(default=10.0, gt=0)
    database_url: str = "sqlite:///fogchess.db"
    database_echo: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        """Read FOGCHESS_<FIELD NAME> variables, e.g. FOGCHESS_INITIAL_TIMER_SECONDS=300"""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in environ
        }
        try:
            return cls.model_validate(values)
        except ValidationError as err:
            raise InvalidRequestError(f"Invalid configuration: {err}") from err
