"""Requests and Response models"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from src.chess.fen import is_valid_square
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import ColorChoice, GameModeName, Navigation, PieceType, Status


def _validate_square(value: str) -> str:
    """Square names in algebraic notation: a1 - h8"""
    if not is_valid_square(value):
        raise InvalidRequestError(
            f"Cannot interpret {value!r} as a valid square name."
        )
    return value


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    color: Optional[ColorChoice] = None
    mode: Optional[GameModeName] = None
    pass_and_play: Optional[bool] = None
    starting_fen: Optional[str] = None

    @field_validator("starting_fen")
    @classmethod
    def validate_starting_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value

        parts = value.strip().split(" ")
        if len(parts) != 6:
            raise InvalidRequestError(
                "FEN string must contain 6 space-separated parts."
            )
        return value.strip()


class GetGameRequest(BaseModel):
    game_id: UUID


class LegalMovesRequest(BaseModel):
    game_id: UUID
    from_square: str

    @field_validator("from_square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class MoveRequest(BaseModel):
    game_id: UUID
    from_square: str
    to_square: str
    promote_to: Optional[PieceType] = None

    @field_validator(*["from_square", "to_square"])
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class NavigationRequest(BaseModel):
    game_id: UUID
    direction: Navigation
    # only for Navigation.JUMP: -1 is the starting position
    move_index: Optional[int] = None

    @model_validator(mode="after")
    def validate_move_index(self) -> "NavigationRequest":
        if self.direction == Navigation.JUMP and self.move_index is None:
            raise InvalidRequestError("Jumping through the history requires a move_index.")
        return self


class DeleteGameRequest(BaseModel):
    game_id: UUID


# --- RESPONSE MODELS ---
class GameResponse(BaseModel):
    game_id: UUID
    fen_state: str
    starting_state: str
    move_history: list[str]
    notation: list[str]
    current_move_index: int
    is_in_review_mode: bool
    player_color: str
    status: Status
    result: str


class LegalMovesResponse(BaseModel):
    game_id: UUID
    from_square: str
    legal_moves: list[str]
