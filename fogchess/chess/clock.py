"""Countdown clock: one integer number of seconds per side, ticked once per second by whoever owns the game."""

from dataclasses import dataclass, field
from typing import Any, Self

from fogchess.chess.pieces import Color

# 10 minutes per side
INITIAL_TIMER_SECONDS = 600


@dataclass
class GameClock:
    remaining: dict[Color, int] = field(
        default_factory=lambda: {color: INITIAL_TIMER_SECONDS for color in Color}
    )

    @classmethod
    def with_time(cls, seconds: int) -> Self:
        return cls({color: seconds for color in Color})

    def tick(self, color: Color) -> int:
        """Take one second off the clock of `color`. Never drops below zero."""
        self.remaining[color] = max(0, self.remaining[color] - 1)
        return self.remaining[color]

    def is_expired(self, color: Color) -> bool:
        return self.remaining[color] <= 0

    def expired_color(self) -> Color | None:
        return next((color for color in Color if self.is_expired(color)), None)

    def to_dict(self) -> dict[str, int]:
        return {color.value: seconds for color, seconds in self.remaining.items()}

    @classmethod
    def from_dict(cls, data: Any, default: int = INITIAL_TIMER_SECONDS) -> Self:
        data = data if isinstance(data, dict) else {}
        return cls({color: int(data.get(color.value, default)) for color in Color})
