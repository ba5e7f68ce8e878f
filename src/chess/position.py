"""
A position (square coordinate) on the board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

# Chess board is always 8x8. Kept as a constant so the bounds checks all read the same.
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True)
class Position:
    """Zero-based coordinates: rank 0 is White's back rank, file 0 is the a-file."""

    rank: int
    file: int

    @classmethod
    def from_algebraic(cls, sq: str) -> Self:
        """Algebraic notation: 'a1' - 'h8' get converted to (0,0) - (7,7)"""
        file = ord(sq[0]) - ord("a")
        rank = int(sq[1]) - 1
        return cls(rank, file)

    def to_algebraic(self) -> str:
        return f"{chr(self.file + ord('a'))}{self.rank + 1}"

    def is_within_bounds(self) -> bool:
        return (0 <= self.rank < BOARD_DIMENSIONS[1]) and (
            0 <= self.file < BOARD_DIMENSIONS[0]
        )

    def offset(self, d_rank: int, d_file: int) -> Position:
        """Shifted copy. Can land off the board, callers check bounds."""
        return Position(self.rank + d_rank, self.file + d_file)

    def __str__(self) -> str:
        return self.to_algebraic()
