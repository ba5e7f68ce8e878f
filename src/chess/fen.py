"""
FEN (Forsyth-Edwards Notation): used to set up a Game from an arbitrary position and to describe the current one.
"""

from dataclasses import dataclass
from string import ascii_lowercase
from typing import Optional, Self

from src.chess.pieces import FEN_TO_PIECE, Color
from src.chess.position import BOARD_DIMENSIONS, Position
from src.core.exceptions import InvalidFENError

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
# order in which the castling rights are written
CASTLING_ORDER = "KQkq"


def is_valid_fen(fen: str) -> bool:
    """
    Check if given string follows proper FEN notation.
    """

    # there should be 6 parts to the string
    parts = fen.split(" ")
    if len(parts) != 6:
        return False

    position, color, castling, en_passant, half_move_counter, full_move_counter = parts
    if not is_valid_position(position):
        return False

    if not is_valid_color_code(color):
        return False

    if not is_valid_castling_rights(castling):
        return False

    if not is_valid_en_passant(en_passant):
        return False

    if not (
        is_valid_move_counter(half_move_counter)
        and is_valid_move_counter(full_move_counter)
    ):
        return False
    return True


def is_valid_position(position: str) -> bool:
    """Only check the part of the FEN encoding for the board position."""
    num_files, num_ranks = BOARD_DIMENSIONS
    rank_fens = position.split("/")
    if len(rank_fens) != num_ranks:
        return False

    for rank_fen in rank_fens:
        file_count = 0
        for character in rank_fen:
            # make sure every character is valid
            if character.isdigit():
                file_count += int(character)
            elif character.lower() in FEN_TO_PIECE:
                file_count += 1
            else:
                # immediately invalidate if the character is anything else
                return False

        # make sure you are creating a correctly sized board
        if file_count != num_files:
            return False
    return True


def is_valid_color_code(color: str) -> bool:
    return color in {"w", "b"}


def is_valid_castling_rights(castling: str) -> bool:
    """A valid castling encoding has either KQkq, KQk, etc. (in that order) or a '-' if all rights have been revoked."""
    if castling == "-":
        return True
    if not castling or len(set(castling)) != len(castling):
        return False
    if any(character not in CASTLING_ORDER for character in castling):
        return False
    return list(castling) == sorted(castling, key=CASTLING_ORDER.index)


def is_valid_en_passant(en_passant: str) -> bool:
    """Valid en passant square encoding should be a square that exists on the board or a '-'"""
    return (en_passant == "-") or is_valid_square(en_passant)


def is_valid_square(square: str) -> bool:
    """Valid square should be a letter for the file + a number for the rank"""
    num_files, num_ranks = BOARD_DIMENSIONS
    if len(square) != 2:
        return False

    file_char, rank_char = square[0], square[1:]
    allowed_file_names = ascii_lowercase[:num_files]
    if file_char not in allowed_file_names:
        return False

    if not rank_char.isdigit():
        return False

    if not (1 <= int(rank_char) <= num_ranks):
        return False

    return True


def is_valid_move_counter(counter: str) -> bool:
    return counter.isdigit()


@dataclass
class FENState:
    """
    Data that can be constructed from a FEN string.
    ----

    <board position string><active color><castling rights><en passant square><# half move clock><number turns played>

    * The active color is either "w" or "b"
    * Castling rights are denoted as "k" for king-side or "q" for queen-side. Capital letters for the white pieces, small letters for the black pieces.
    * The en passant square is the square a pawn skipped by advancing two squares. If not available a "-" is used.
    * The half move clock counts the number of moves made since the last pawn move or capture.
    * The number of turns starts at 1 and increments after every move black makes.

    ex) The standard starting position has a FEN
    rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1
    """

    position: str
    color_to_move: Color
    castling_rights: str
    en_passant_square: Optional[Position]
    half_move_clock: int
    num_turns: int

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data"""

        # raise an exception if invalid FEN:
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen}")

        (
            position,
            active_color,
            castling_str,
            en_passant_algebraic,
            half_move_clock,
            num_turns,
        ) = fen.split(" ")

        color_to_move = Color.WHITE if active_color == "w" else Color.BLACK
        castling_rights = "" if castling_str == "-" else castling_str
        en_passant_square = (
            Position.from_algebraic(en_passant_algebraic)
            if en_passant_algebraic != "-"
            else None
        )
        return cls(
            position,
            color_to_move,
            castling_rights,
            en_passant_square,
            int(half_move_clock),
            int(num_turns),
        )

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        active_color = "w" if self.color_to_move == Color.WHITE else "b"
        castling_str = self.castling_rights or "-"
        en_passant_algebraic = (
            self.en_passant_square.to_algebraic()
            if self.en_passant_square is not None
            else "-"
        )
        return f"{self.position} {active_color} {castling_str} {en_passant_algebraic} {self.half_move_clock} {self.num_turns}"

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)
