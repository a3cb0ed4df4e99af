"""
Type definitions used across layers
"""

from enum import StrEnum


class GameMode(StrEnum):
    """Visibility regime of a game."""

    CASUAL = "casual"
    FOG = "fog"
    MOVEMENT = "movement"


class GameType(StrEnum):
    LOCAL = "local"
    MULTIPLAYER = "multiplayer"


class GameResult(StrEnum):
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    TIMEOUT = "timeout"


class SessionPhase(StrEnum):
    LOBBY = "lobby"
    LOCAL = "local"
    MATCHMAKING = "matchmaking"
    IN_ROOM = "in room"


class SessionEvent(StrEnum):
    """Notifications a session hands to whatever UI is listening."""

    ROOM_JOINED = "room joined"
    OPPONENT_JOINED = "opponent joined"
    OPPONENT_LEFT = "opponent left"
    MATCH_FOUND = "match found"
    GAME_OVER = "game over"
    RETURNED_TO_LOBBY = "returned to lobby"
