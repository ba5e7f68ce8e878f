"""
The Board is a pure 8x8 grid of (optional) pieces plus a pointer to the last executed move.

It has no knowledge of which moves are legal. It can only place pieces and mechanically apply (or take back) a move
that the Game already resolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Self

from src.chess.moves import Move
from src.chess.pieces import Color, Piece, PieceType
from src.chess.position import BOARD_DIMENSIONS, Position

STARTING_POSITION_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"
EMPTY_FEN = "/".join(["8"] * BOARD_DIMENSIONS[1])


def all_positions() -> list[Position]:
    return [
        Position(rank, file)
        for rank in range(BOARD_DIMENSIONS[1])
        for file in range(BOARD_DIMENSIONS[0])
    ]


@dataclass
class Board:
    squares: dict[Position, Optional[Piece]] = field(
        default_factory=lambda: {position: None for position in all_positions()}
    )
    # Not owned by the board. Only used to find out if the last move was a pawn double advance (en passant).
    last_move: Optional[Move] = None

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using the placement part of a FEN string.

        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces.
        """
        board = cls()
        board.initialize(fen_str)
        return board

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_POSITION_FEN)

    def initialize(self, fen_str: str = STARTING_POSITION_FEN) -> None:
        """(Re)place all pieces in place: every square is cleared first, the last move is forgotten."""
        for position in all_positions():
            self.squares[position] = None
        self.last_move = None

        fen_by_ranks = fen_str.split("/")
        for rank_idx, fen_one_rank in enumerate(fen_by_ranks):
            # FEN string is read from top rank (8th) to bottom rank (1st)
            rank = BOARD_DIMENSIONS[1] - 1 - rank_idx
            # ... but the first character is the a-file, so reads in normal direction
            file = 0
            for character in fen_one_rank:
                if character.isalpha():
                    self.set_piece_at(Position(rank, file), Piece.from_fen(character))
                    file += 1
                else:
                    # A number denotes the amount of empty squares after each other
                    file += int(character)

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1] - 1, -1, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(BOARD_DIMENSIONS[0]):
            piece = self.piece_at(Position(rank, file))

            if piece is not None:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(piece.to_fen())
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    # --- GRID ACCESS ---
    def is_valid_position(self, position: Position) -> bool:
        return position.is_within_bounds()

    def piece_at(self, position: Position) -> Optional[Piece]:
        """The piece on the square. None for an empty square or a square off the board."""
        return self.squares.get(position)

    def set_piece_at(self, position: Position, piece: Optional[Piece]) -> None:
        """Place (or remove, with None) a piece. Silently ignored off the board."""
        if not self.is_valid_position(position):
            return
        self.squares[position] = piece

    def pieces(self) -> list[tuple[Position, Piece]]:
        return [
            (position, piece)
            for position, piece in self.squares.items()
            if piece is not None
        ]

    def locate_color(self, color: Color) -> list[Position]:
        return [position for position, piece in self.pieces() if piece.color == color]

    def find_king(self, color: Color) -> Optional[Position]:
        return next(
            (
                position
                for position, piece in self.pieces()
                if piece.type == PieceType.KING and piece.color == color
            ),
            None,
        )

    def copy(self) -> Board:
        """Deep copy of every piece. The last move is kept by reference."""
        squares = {
            position: (piece.copy() if piece is not None else None)
            for position, piece in self.squares.items()
        }
        return Board(squares=squares, last_move=self.last_move)

    # --- APPLYING RESOLVED MOVES ---
    def execute_move(self, move: Move) -> None:
        """
        Update the position on the board.
        ----

        1. promotion: the promoted piece appears on the destination square, the pawn disappears.
        2. castling: the rook jumps over the king as well.
        3. en passant: the captured pawn is removed from its own square (not the destination).

        The moving piece (and a castling rook) are marked as moved.
        """
        piece = self.piece_at(move.start)
        if piece is None:
            return

        if move.en_passant_square is not None:
            self.set_piece_at(move.en_passant_square, None)

        if move.castling is not None:
            rook = self.piece_at(move.castling.rook_from)
            if rook is not None:
                rook.has_moved = True
                self.set_piece_at(move.castling.rook_to, rook)
                self.set_piece_at(move.castling.rook_from, None)

        if move.promote_to is not None:
            self.set_piece_at(move.end, Piece(move.promote_to, piece.color, True))
        else:
            piece.has_moved = True
            self.set_piece_at(move.end, piece)
        self.set_piece_at(move.start, None)

    def undo_move(self, move: Move) -> None:
        """
        Exact inverse of `execute_move`. Uses the snapshots stored on the move.
        ----

        NOTE: requires the move to carry its snapshots (moving_piece, captured_piece), which the Game fills in.
        """
        # for the type checker: the Game always snapshots the moving piece before executing
        assert move.moving_piece is not None

        self.set_piece_at(move.start, move.moving_piece.copy())
        self.set_piece_at(move.end, None)

        captured = move.captured_piece.copy() if move.captured_piece else None
        self.set_piece_at(move.capture_square, captured)

        if move.castling is not None:
            rook = self.piece_at(move.castling.rook_to)
            if move.castling_rook is not None:
                rook = move.castling_rook.copy()
            self.set_piece_at(move.castling.rook_from, rook)
            self.set_piece_at(move.castling.rook_to, None)

    def count_material(self) -> dict[Color, int]:
        """Tally the points of material each player has on the board"""
        return {
            color: sum(self.squares[position].points for position in self.locate_color(color))
            for color in Color
        }
