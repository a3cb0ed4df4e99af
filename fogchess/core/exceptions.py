"""Custom exceptions. Everything derives from GameError so callers can catch a single type at a layer boundary."""


class GameError(Exception):
    """Base class for all errors raised by this package."""


class GameStateError(GameError):
    """Requested action is not allowed in the current state of the game."""


class IllegalMoveError(GameError):
    """The move is not in the set of legal moves."""


class NotYourTurnError(GameError):
    """Player tried to act while the opponent is to move."""


class InvalidRequestError(GameError):
    """Input could not be interpreted (bad configuration value, malformed payload, ...)."""


class RepositoryError(GameError):
    """Reading from / writing to the shared document store failed."""


class SessionError(GameError):
    """Lobby action rejected. The message is meant to be shown to the user as-is."""


class RoomNotFoundError(SessionError):
    def __init__(self, message: str = "Room not found") -> None:
        super().__init__(message)


class RoomFullError(SessionError):
    def __init__(self, message: str = "Room is full") -> None:
        super().__init__(message)
