"""
Custom exceptions, shared across layers.

NOTE: The Game itself never raises for a rejected move. It answers with False and leaves its state untouched.
These exceptions are for malformed input, and for the service layer that has to turn a False into a meaningful error.
"""


class GameError(Exception):
    """Base class for everything the chess application raises on purpose."""


class InvalidArgumentError(GameError, ValueError):
    """An argument outside of the accepted values (ex. a color name that is not white/black/random)."""


class InvalidFENError(GameError):
    """String cannot be interpreted as FEN."""


class InvalidRequestError(GameError):
    """
    Request data did not pass validation.

    NOTE: deliberately NOT a ValueError. Pydantic would wrap a ValueError raised inside a validator into a ValidationError.
    """


class GameStateError(GameError):
    """The game is not in a state that allows the requested operation (ex. making a move while reviewing history)."""


class IllegalMoveError(GameError):
    """The move got rejected by the rules."""


class RepositoryError(GameError):
    """Game could not be found / stored."""
