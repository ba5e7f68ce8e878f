"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, the API layer (higher) and domain/db layers (lower) use the model defined here to send to/receive from the Service
(Decouples the data model of the domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass


@dataclass
class GameModel:
    """
    Transport-safe representation of a chess game used between API, Service, DB, and Game layers.

    Everything needed to rebuild the Game: the starting FEN and the moves (UCI) to replay,
    plus where in the history the game was navigated to.
    """

    starting_fen: str
    current_fen: str
    moves_uci: list[str]
    moves_san: list[str]
    current_move_index: int
    is_in_review_mode: bool
    player_color: str
    mode: str
    pass_and_play: bool
    status: str
