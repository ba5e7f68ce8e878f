"""
Type definitions used across layers
"""

from enum import StrEnum

# --- NOTE the domain layer (src/chess) has its own Color / PieceType enums.
# --- These are the string versions the API speaks. The imports show which versions are used in what part of the code


class Status(StrEnum):
    IN_PROGRESS = "in_progress"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW_INSUFFICIENT_MATERIAL = "draw_insufficient_material"
    DRAW_FIFTY_MOVE_RULE = "draw_fifty_move_rule"
    DRAW_REPETITION = "draw_repetition"


class ColorChoice(StrEnum):
    WHITE = "white"
    BLACK = "black"
    RANDOM = "random"


class GameModeName(StrEnum):
    AI = "ai"
    LOCAL = "local"
    ONLINE = "online"


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class Navigation(StrEnum):
    """Ways to travel through the move history"""

    BACKWARD = "backward"
    FORWARD = "forward"
    START = "start"
    END = "end"
    JUMP = "jump"
    RESUME = "resume"
