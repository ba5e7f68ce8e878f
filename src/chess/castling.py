"""Helpers for implementing Castling rules. Need to be imported by multiple sources"""

from dataclasses import dataclass
from enum import Enum

from src.chess.position import Position


class CastlingSide(Enum):
    """Values are the notation written for the castling move."""

    KING_SIDE = "O-O"
    QUEEN_SIDE = "O-O-O"


@dataclass(frozen=True)
class CastlingSquares:
    """
    Store the squares where king/rook start from/end up in by castling.
    """

    king_from: Position
    king_to: Position
    rook_from: Position
    rook_to: Position

    @property
    def side(self) -> CastlingSide:
        return (
            CastlingSide.KING_SIDE
            if self.king_to.file > self.king_from.file
            else CastlingSide.QUEEN_SIDE
        )


# (direction the king travels along the rank, rook starting file, rook destination file)
CASTLING_FILES: dict[CastlingSide, tuple[int, int, int]] = {
    CastlingSide.KING_SIDE: (1, 7, 5),
    CastlingSide.QUEEN_SIDE: (-1, 0, 3),
}


def castling_squares(king_from: Position, side: CastlingSide) -> CastlingSquares:
    """The king always travels two files towards the rook, the rook lands on the f-file (d-file)."""
    direction, rook_from_file, rook_to_file = CASTLING_FILES[side]
    rank = king_from.rank
    return CastlingSquares(
        king_from=king_from,
        king_to=king_from.offset(0, 2 * direction),
        rook_from=Position(rank, rook_from_file),
        rook_to=Position(rank, rook_to_file),
    )


def squares_between_on_rank(from_square: Position, to_square: Position) -> list[Position]:
    """
    Find the squares in between the two squares specified that are on the same rank

    Needed for checking if you can still castle (the path between king and rook must be empty).
    """
    if from_square.rank != to_square.rank:
        raise ValueError(
            f"squares_between_on_rank requires both squares to lie on the same rank. \n from: {from_square}\n to:{to_square}"
        )

    step = 1 if to_square.file > from_square.file else -1
    return [
        Position(from_square.rank, file)
        for file in range(from_square.file + step, to_square.file, step)
    ]
