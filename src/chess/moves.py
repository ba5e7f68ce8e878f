"""
Geometry/Base movement and capturing/attacking rules

Key idea: Use strategy pattern to define pseudo-legal move sets for each piece type.


Legality (not leaving your own king in check) is checked later by Game
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Self

from src.chess.castling import (
    CastlingSide,
    CastlingSquares,
    castling_squares,
    squares_between_on_rank,
)
from src.chess.pieces import (
    FEN_TO_PIECE,
    PIECE_TO_FEN,
    PIECE_TO_NOTATION,
    Color,
    Piece,
    PieceType,
)
from src.chess.position import Position


class Board(Protocol):
    """Just the parts the movement strategies need"""

    last_move: Optional[Move]

    def piece_at(self, position: Position) -> Optional[Piece]: ...
    def is_valid_position(self, position: Position) -> bool: ...
    def pieces(self) -> list[tuple[Position, Piece]]: ...


# (delta rank, delta file)
Vector = tuple[int, int]


@dataclass(eq=False)
class Move:
    """
    A transition from `start` to `end`, plus everything needed to apply it to a board and take it back again.
    ----

    * `moving_piece` / `captured_piece` are snapshots taken right before the move was made.
    * `castling`: the squares of king and rook. `castling_rook` is the snapshot of the rook.
    * `en_passant_square`: where the captured pawn stands. Differs from `end` for en passant captures.
    * `promote_to`: the piece type a pawn turns into.
    * `is_check`, `is_checkmate`, `notation` and `half_move_clock` get filled in once the Game accepts the move.

    NOTE: Two moves are equal when start and end agree. The promotion choice is ignored on purpose:
    equality is only used to match a selected destination against the candidate moves.
    """

    start: Position
    end: Position
    moving_piece: Optional[Piece] = None
    captured_piece: Optional[Piece] = None
    promote_to: Optional[PieceType] = None
    castling: Optional[CastlingSquares] = None
    castling_rook: Optional[Piece] = None
    en_passant_square: Optional[Position] = None
    is_check: bool = False
    is_checkmate: bool = False
    notation: str = ""
    half_move_clock: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Move):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self) -> int:
        return hash((self.start, self.end))

    @property
    def is_castling(self) -> bool:
        return self.castling is not None

    @property
    def is_en_passant(self) -> bool:
        return self.en_passant_square is not None

    @property
    def is_promotion(self) -> bool:
        return self.promote_to is not None

    @property
    def capture_square(self) -> Position:
        """Square of the piece that gets taken (only differs from the destination for en passant)"""
        return self.en_passant_square if self.en_passant_square else self.end

    @classmethod
    def from_uci(cls, uci: str) -> Self:
        """
        Universal Chess Interface:
        ---
        ---
        One of the standard chess notations for moves

        examples:
        * "e2e4": move the piece that was on e2 to e4
        * "e7e8q" : (pawn) moves from e7 to e8 and promotes to a queen (the q)
        * "e1g1": the king castles king side

        NOTE: Castling / En Passant will be resolved later by the Game class
        """
        start = Position.from_algebraic(uci[:2])
        end = Position.from_algebraic(uci[2:4])
        move = cls(start, end)
        if len(uci) == 5:
            move.promote_to = FEN_TO_PIECE[uci[4]]
        return move

    def to_uci(self) -> str:
        """Convert into UCI notation"""
        piece_char = PIECE_TO_FEN[self.promote_to] if self.promote_to else ""
        return f"{self.start.to_algebraic()}{self.end.to_algebraic()}{piece_char}"

    def __str__(self) -> str:
        return self.notation or self.to_uci()


# --- MOVEMENT RULES ---
def raycasting_move(
    position: Position, board: Board, directions: list[Vector]
) -> list[Move]:
    """
    Raycasting algorithm
    -----

    ---
    The main trick we use to check the 'line of sight of a piece'.
    We define move directions and move along them until we hit another piece or
    the edge of the board.
    """
    player_color = board.piece_at(position).color

    moves: list[Move] = []
    for d_rank, d_file in directions:
        target = position
        while True:
            target = target.offset(d_rank, d_file)
            if not board.is_valid_position(target):
                break

            occupant = board.piece_at(target)
            if occupant is not None:
                # only need to add the first occupied square found if it is the opponent's: then it can be captured.
                if occupant.color != player_color:
                    moves.append(Move(position, target))
                break

            moves.append(Move(position, target))
    return moves


def single_step_move(position: Position, board: Board, deltas: list[Vector]) -> list[Move]:
    """Raycasting is for sliding pieces. This is the equivalent for kings and knights that just can move a single step along a direction"""
    player_color = board.piece_at(position).color
    moves: list[Move] = []
    for d_rank, d_file in deltas:
        target = position.offset(d_rank, d_file)
        if not board.is_valid_position(target):
            continue

        occupant = board.piece_at(target)
        if occupant is None or occupant.color != player_color:
            moves.append(Move(position, target))

    return moves


# -- PAWN GEOMETRY --
# white moves UP the board, black moves DOWN
PAWN_DIRECTION: dict[Color, int] = {Color.WHITE: 1, Color.BLACK: -1}
PAWN_HOME_RANK: dict[Color, int] = {Color.WHITE: 1, Color.BLACK: 6}
PROMOTION_RANK: dict[Color, int] = {Color.WHITE: 7, Color.BLACK: 0}
# the rank your pawn must stand on to take en passant
EN_PASSANT_RANK: dict[Color, int] = {Color.WHITE: 4, Color.BLACK: 3}

PROMOTION_OPTIONS: list[PieceType] = [
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
]


def pawn_moves_w_promotion(pawn_move: Move) -> list[Move]:
    """Return multiple copies of the pawn move with the piece type to promote into filled in."""
    return [
        Move(start=pawn_move.start, end=pawn_move.end, promote_to=piece_type)
        for piece_type in PROMOTION_OPTIONS
    ]


def _add_pawn_move(moves: list[Move], move: Move, color: Color) -> None:
    """A move landing on the promotion rank turns into one move per promotion option."""
    if move.end.rank == PROMOTION_RANK[color]:
        moves.extend(pawn_moves_w_promotion(move))
    else:
        moves.append(move)


def is_pawn_double_advance(move: Optional[Move]) -> bool:
    """Was this a pawn moving two squares forward? (the only move that enables en passant)"""
    if move is None or move.moving_piece is None:
        return False
    return (
        move.moving_piece.type == PieceType.PAWN
        and abs(move.start.rank - move.end.rank) == 2
    )


def en_passant_move(position: Position, board: Board) -> Optional[Move]:
    """
    The en passant capture available to the pawn on `position`, if any.
    ----

    Only possible right after the opponent pushed a pawn by two squares, ending up next to your pawn.
    The capturing pawn lands on the square the enemy pawn skipped.
    """
    pawn = board.piece_at(position)
    if position.rank != EN_PASSANT_RANK[pawn.color]:
        return None

    last_move = board.last_move
    if not is_pawn_double_advance(last_move):
        return None

    # for the type checker: is_pawn_double_advance already made sure these exist
    assert last_move is not None and last_move.moving_piece is not None
    if last_move.moving_piece.color == pawn.color:
        return None

    enemy_square = last_move.end
    if enemy_square.rank != position.rank or abs(enemy_square.file - position.file) != 1:
        return None

    target = Position(position.rank + PAWN_DIRECTION[pawn.color], enemy_square.file)
    return Move(start=position, end=target, en_passant_square=enemy_square)


def candidate_pawn_moves(position: Position, board: Board) -> list[Move]:
    """
    A pawn:
    - moves by a single square forward.
    - It can move by two in their first move (so when on their starting rank)
    - takes diagonally
    - promotes on the last rank
    - can take en passant
    """
    pawn = board.piece_at(position)
    direction = PAWN_DIRECTION[pawn.color]
    moves: list[Move] = []

    # Pawn pushes
    one_step = position.offset(direction, 0)
    if board.is_valid_position(one_step) and board.piece_at(one_step) is None:
        _add_pawn_move(moves, Move(position, one_step), pawn.color)

        two_steps = one_step.offset(direction, 0)
        if (
            position.rank == PAWN_HOME_RANK[pawn.color]
            and board.is_valid_position(two_steps)
            and board.piece_at(two_steps) is None
        ):
            moves.append(Move(position, two_steps))

    # pawns take diagonally:
    for d_file in (-1, 1):
        target = position.offset(direction, d_file)
        if not board.is_valid_position(target):
            continue
        occupant = board.piece_at(target)
        if occupant is not None and occupant.color != pawn.color:
            _add_pawn_move(moves, Move(position, target), pawn.color)

    en_passant = en_passant_move(position, board)
    if en_passant is not None:
        moves.append(en_passant)
    return moves


KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
DIAGONALS: list[Vector] = [(1, 1), (-1, -1), (1, -1), (-1, 1)]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]
KING_DELTAS: list[Vector] = STRAIGHTS + DIAGONALS


def candidate_knight_moves(position: Position, board: Board) -> list[Move]:
    """Knights always move such that |delta_rank| + |delta_file| = 3"""
    return single_step_move(position, board, KNIGHT_DELTAS)


def candidate_bishop_moves(position: Position, board: Board) -> list[Move]:
    """Bishops move diagonally: |delta_rank| = |delta_file|"""
    return raycasting_move(position, board, DIAGONALS)


def candidate_rook_moves(position: Position, board: Board) -> list[Move]:
    """Rooks move either horizontally or vertically"""
    return raycasting_move(position, board, STRAIGHTS)


def candidate_queen_moves(position: Position, board: Board) -> list[Move]:
    """
    The Queen combines the rook moves (horizontal + vertical movements) and bishop moves (diagonal movement)
    """
    return raycasting_move(position, board, STRAIGHTS + DIAGONALS)


def candidate_king_moves(position: Position, board: Board) -> list[Move]:
    """
    The king can move by a single square at the time.

    Castling is modelled as a special king move: only generated while the king has not moved yet.
    """
    moves = single_step_move(position, board, KING_DELTAS)

    king = board.piece_at(position)
    if not king.has_moved:
        for side in CastlingSide:
            if can_castle(position, side, board):
                squares = castling_squares(position, side)
                moves.append(Move(position, squares.king_to, castling=squares))
    return moves


# -- STRATEGY PATTERN: MOVEMENT RULES ---
CandidateMovesFn = Callable[[Position, Board], list[Move]]
MOVEMENT_RULES: dict[PieceType, CandidateMovesFn] = {
    PieceType.PAWN: candidate_pawn_moves,
    PieceType.KNIGHT: candidate_knight_moves,
    PieceType.BISHOP: candidate_bishop_moves,
    PieceType.ROOK: candidate_rook_moves,
    PieceType.QUEEN: candidate_queen_moves,
    PieceType.KING: candidate_king_moves,
}


def candidate_moves(position: Position, board: Board) -> list[Move]:
    """Pseudo-legal moves of whatever piece stands on `position` (nothing for an empty square)."""
    piece = board.piece_at(position)
    if piece is None:
        return []
    return MOVEMENT_RULES[piece.type](position, board)


# --- ATTACKING RULES ---
def pawn_attack_squares(position: Position, color: Color) -> list[Position]:
    """The two squares diagonally in front of a pawn, whether or not something stands there."""
    direction = PAWN_DIRECTION[color]
    return [position.offset(direction, d_file) for d_file in (-1, 1)]


def is_square_attacked(target: Position, by_color: Color, board: Board) -> bool:
    """
    Could any piece of `by_color` move onto (take on) `target`?
    ----

    * Kings are tested by distance. Generating their moves would generate castling moves,
      which asks this function again about the other king: infinite mutual recursion.
    * Pawns are tested by their diagonals: a pawn push is not an attack, and a diagonal
      is attacked even when it is empty.
    * All other pieces: reuse their movement rules.
    """
    for position, piece in board.pieces():
        if piece.color != by_color:
            continue

        if piece.type == PieceType.KING:
            distance = max(
                abs(position.rank - target.rank), abs(position.file - target.file)
            )
            if 0 < distance <= 1:
                return True
            continue

        # not the pawn movement rule: pushes never attack, empty diagonals do
        if piece.type == PieceType.PAWN:
            if target in pawn_attack_squares(position, piece.color):
                return True
            continue

        movement_rule = MOVEMENT_RULES[piece.type]
        if any(move.end == target for move in movement_rule(position, board)):
            return True
    return False


# -- CASTLING MOVES ---
def can_castle(king_square: Position, side: CastlingSide, board: Board) -> bool:
    """
    **you are allowed to castle towards `side` if**

    * The rook on that side is still on its starting square and has not moved.
    * Every square in between the king and the rook is empty.
    * None of the squares the king starts on, passes through or lands on is under attack.

    (The king not having moved is checked by the caller.)
    """
    king = board.piece_at(king_square)
    squares = castling_squares(king_square, side)
    if not board.is_valid_position(squares.king_to):
        return False

    rook = board.piece_at(squares.rook_from)
    if rook is None or rook.type != PieceType.ROOK or rook.color != king.color:
        return False
    if rook.has_moved:
        return False

    path = squares_between_on_rank(king_square, squares.rook_from)
    if any(board.piece_at(square) is not None for square in path):
        return False

    king_path = [king_square] + squares_between_on_rank(king_square, squares.king_to)
    king_path.append(squares.king_to)
    opponent_color = king.color.opponent
    return not any(
        is_square_attacked(square, opponent_color, board) for square in king_path
    )


# -- NOTATION --
def algebraic_notation(move: Move) -> str:
    """
    Short algebraic notation of a finalized move (moving piece, captured piece and check flags filled in).
    ----

    * piece letter (nothing for pawns) + 'x' when capturing + destination square, ex. Nf3, Bxe5
    * pawn captures start with the file the pawn came from, ex. exd5
    * castling is written O-O (king side) or O-O-O (queen side)
    * promotions get the new piece appended, ex. e8=Q
    * '+' for check, '#' for checkmate

    NOTE: No file/rank disambiguation is added when two identical pieces can reach the same square.
    """
    piece = move.moving_piece
    if move.castling is not None:
        notation = move.castling.side.value
    else:
        is_pawn = piece is not None and piece.type == PieceType.PAWN
        letter = "" if (piece is None or is_pawn) else PIECE_TO_NOTATION[piece.type]

        is_capture = move.captured_piece is not None or (
            is_pawn and move.start.file != move.end.file
        )
        capture = ""
        if is_capture:
            capture = f"{move.start.to_algebraic()[0]}x" if is_pawn else "x"

        notation = f"{letter}{capture}{move.end.to_algebraic()}"
        if move.promote_to is not None:
            notation += f"={PIECE_TO_NOTATION[move.promote_to]}"

    if move.is_checkmate:
        notation += "#"
    elif move.is_check:
        notation += "+"
    return notation
