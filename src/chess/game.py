"""
The Game class is the entrypoint into the chess rules for everything outside of the domain layer
(board views, clocks, dialogs, the service layer).

It owns the Board, decides which moves are legal, executes them, keeps the move history for navigating back and forth
and detects the end of the game. Callers only ever get True/False back for a move attempt: a rejected move leaves
the Game exactly as it was.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Iterator, Optional, Self

from src.chess.board import Board
from src.chess.castling import CastlingSide, castling_squares
from src.chess.fen import STARTING_FEN, FENState
from src.chess.moves import (
    PAWN_DIRECTION,
    PROMOTION_OPTIONS,
    Move,
    algebraic_notation,
    candidate_moves,
    is_pawn_double_advance,
)
from src.chess.pieces import AVAILABLE_COLOR_NAMES, Color, Piece, PieceType
from src.chess.position import Position
from src.core.exceptions import GameStateError, InvalidArgumentError
from src.core.models import GameModel

logger = logging.getLogger(__name__)

# 50 moves by each player = 100 half-moves
FIFTY_MOVE_RULE_HALF_MOVES = 100
REPETITIONS_FOR_DRAW = 3

# castling right letters per color: (king side, queen side)
CASTLING_LETTERS: dict[Color, dict[CastlingSide, str]] = {
    Color.WHITE: {CastlingSide.KING_SIDE: "K", CastlingSide.QUEEN_SIDE: "Q"},
    Color.BLACK: {CastlingSide.KING_SIDE: "k", CastlingSide.QUEEN_SIDE: "q"},
}

# a king anywhere else cannot castle, whatever the castling rights say
KING_HOME_SQUARE: dict[Color, Position] = {
    Color.WHITE: Position(0, 4),
    Color.BLACK: Position(7, 4),
}


class GameMode(Enum):
    AI = auto()  # placeholder: there is no computer opponent
    LOCAL = auto()
    ONLINE = auto()


class Status(Enum):
    IN_PROGRESS = auto()
    CHECKMATE = auto()
    STALEMATE = auto()
    DRAW_INSUFFICIENT_MATERIAL = auto()
    DRAW_FIFTY_MOVE_RULE = auto()
    DRAW_REPETITION = auto()


# checkmate is missing: that message names the winner
GAME_RESULT_MESSAGES: dict[Status, str] = {
    Status.IN_PROGRESS: "Game in progress",
    Status.STALEMATE: "Game drawn by stalemate!",
    Status.DRAW_INSUFFICIENT_MATERIAL: "Game drawn due to insufficient material!",
    Status.DRAW_FIFTY_MOVE_RULE: "Game drawn by fifty-move rule!",
    Status.DRAW_REPETITION: "Game drawn by threefold repetition!",
}


@dataclass(frozen=True)
class Player:
    color: Color


@dataclass
class Game:
    # --- SETUP ---
    starting_state: FENState = field(default_factory=FENState.starting_position)
    mode: GameMode = GameMode.LOCAL
    pass_and_play: bool = False
    # the side the local player sits on (only used by the presentation)
    player_color: Color = Color.WHITE

    # --- STATE ---
    board: Board = field(init=False)
    players: dict[Color, Player] = field(init=False)
    current_player: Player = field(init=False)
    move_history: list[Move] = field(init=False, default_factory=list)
    current_move_index: int = field(init=False, default=-1)
    is_in_review_mode: bool = field(init=False, default=False)
    half_move_clock: int = field(init=False, default=0)
    # a pawn double advance encoded in the starting FEN (en passant square), if any
    _initial_last_move: Optional[Move] = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        self.board = Board()
        self.players = {color: Player(color) for color in Color}
        self._initialize_position()

    @classmethod
    def from_fen(cls, fen: str = STARTING_FEN, mode: GameMode = GameMode.LOCAL) -> Self:
        """Start a game from a custom position (ex. an endgame study)"""
        return cls(starting_state=FENState.from_fen(fen), mode=mode)

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """
        Define how to construct a Game from the information the Service layer actually has
        ----

        The moves get replayed from the starting position (so every snapshot/flag/notation is rebuilt by the rules),
        after which the game navigates back to the stored move index.
        """
        mode_name = model.mode.upper()
        if mode_name not in GameMode.__members__:
            raise GameStateError(
                f"Invalid game mode: {model.mode!r}. \nPick one from {','.join([mode.name.lower() for mode in GameMode])}"
            )

        game = cls.from_fen(model.starting_fen, GameMode[mode_name])
        game.pass_and_play = model.pass_and_play
        game.set_player_color(model.player_color)

        for uci in model.moves_uci:
            if not game.play_move(Move.from_uci(uci)):
                raise GameStateError(f"Stored move {uci!r} cannot be replayed.")

        if not game.jump_to(model.current_move_index):
            raise GameStateError(
                f"Move index {model.current_move_index} outside of the history ({len(model.moves_uci)} moves)."
            )
        if not model.is_in_review_mode:
            game.resume_play()
        return game

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""
        return GameModel(
            starting_fen=self.starting_state.to_fen(),
            current_fen=self.to_fen(),
            moves_uci=[move.to_uci() for move in self.move_history],
            moves_san=[move.notation for move in self.move_history],
            current_move_index=self.current_move_index,
            is_in_review_mode=self.is_in_review_mode,
            player_color=self.player_color.name.lower(),
            mode=self.mode.name.lower(),
            pass_and_play=self.pass_and_play,
            status=self.status.name.lower(),
        )

    # --- DOMAIN LAYER API ---
    def set_player_color(self, color: str) -> None:
        """Accepts 'white', 'black' or 'random' (case insensitive)"""
        normalized_color = color.lower()
        if normalized_color == "random":
            self.player_color = random.choice(list(Color))
        elif normalized_color.upper() in AVAILABLE_COLOR_NAMES:
            self.player_color = Color[normalized_color.upper()]
        else:
            raise InvalidArgumentError(
                f"Color must be either 'white', 'black', or 'random'. Got {color!r}"
            )

    @property
    def last_move(self) -> Optional[Move]:
        """The move the board currently reflects (None before the first move / when navigated to the start)"""
        if self.current_move_index < 0:
            return None
        return self.move_history[self.current_move_index]

    def move_piece(self, start: Position, end: Position) -> bool:
        """
        Attempt to make a move
        -----

        1. no moves while reviewing the history
        2. the piece must be yours and the move must follow its movement rules
        3. the move may not leave your own king in check
        4. finalize the move (snapshots, check/checkmate flags, notation)
        5. commit it to the board and the history

        A pawn reaching the last rank promotes to a queen. Use `play_move` to choose another piece.
        """
        if self.is_in_review_mode:
            logger.debug("Rejected %s%s: game is in review mode", start, end)
            return False

        candidate = self._find_candidate(start, end)
        if candidate is None:
            logger.debug("Rejected %s%s: not a move for %s", start, end, self.current_player.color)
            return False

        return self._try_move(candidate)

    def play_move(self, move: Move) -> bool:
        """
        Commit a fully specified move. Used when the caller already resolved which piece a pawn promotes into.

        The move goes through the same validation as `move_piece`.
        """
        if self.is_in_review_mode:
            logger.debug("Rejected %s: game is in review mode", move.to_uci())
            return False

        candidate = self._find_candidate(move.start, move.end)
        if candidate is None:
            logger.debug("Rejected %s: not a move for %s", move.to_uci(), self.current_player.color)
            return False

        if move.promote_to is not None:
            if not candidate.is_promotion or move.promote_to not in PROMOTION_OPTIONS:
                logger.debug("Rejected %s: invalid promotion", move.to_uci())
                return False
            candidate = replace(candidate, promote_to=move.promote_to)

        return self._try_move(candidate)

    def would_put_king_in_check(self, start: Position, end: Position) -> bool:
        """Hypothetical: would moving the piece on `start` to `end` leave its own king in check? (board is left untouched)"""
        piece = self.board.piece_at(start)
        if piece is None:
            return False

        candidate = next(
            (move for move in candidate_moves(start, self.board) if move.end == end),
            Move(start, end),
        )
        return self._leaves_king_in_check(self._prepare_move(candidate))

    def legal_moves_from(self, start: Position) -> list[Move]:
        """
        Legal moves of the piece on `start`, for the side to move.

        Used by a board view to highlight where a selected piece can go. Promotions show up once per promotion option.
        """
        if self.is_in_review_mode:
            return []

        piece = self.board.piece_at(start)
        if piece is None or piece.color != self.current_player.color:
            return []

        return [
            move
            for move in candidate_moves(start, self.board)
            if not self._leaves_king_in_check(self._prepare_move(move))
        ]

    def evaluate_position(self) -> int:
        """Flat material count. Positive when White is ahead."""
        material = self.board.count_material()
        return material[Color.WHITE] - material[Color.BLACK]

    def to_fen(self) -> str:
        """FEN of the position the board currently shows"""
        return FENState(
            position=self.board.to_fen(),
            color_to_move=self.current_player.color,
            castling_rights=self._castling_rights(),
            en_passant_square=self._en_passant_target(),
            half_move_clock=self.half_move_clock,
            num_turns=self._num_turns(),
        ).to_fen()

    # --- END OF GAME ---
    def is_check(self) -> bool:
        """Is the side to move in check?"""
        return self._is_king_attacked(self.current_player.color)

    def is_checkmate(self) -> bool:
        return self.is_check() and not self._can_escape_check()

    def is_stalemate(self) -> bool:
        # reuse the escape search: it simply looks for any move that does not end up in check
        return not self.is_check() and not self._can_escape_check()

    def has_insufficient_material(self) -> bool:
        """
        K vs K, K+B vs K, K+N vs K, K+B vs K+B (bishops on same colored squares)

        NOTE: The bishop test only passes when every bishop stands on a square with an even (rank + file).
        Two bishops that share the other square color are not recognized.
        """
        remaining_pieces = self.board.pieces()

        # King vs King
        if len(remaining_pieces) == 2:
            return True

        # King and Bishop/Knight vs King
        if len(remaining_pieces) == 3:
            return all(
                piece.type in (PieceType.BISHOP, PieceType.KNIGHT)
                for _, piece in remaining_pieces
                if piece.type != PieceType.KING
            )

        # King and Bishop vs King and Bishop
        if len(remaining_pieces) == 4:
            bishop_squares = [
                position
                for position, piece in remaining_pieces
                if piece.type == PieceType.BISHOP
            ]
            if len(bishop_squares) == 2:
                return all((square.rank + square.file) % 2 == 0 for square in bishop_squares)

        return False

    def is_fifty_move_rule(self) -> bool:
        return self.half_move_clock >= FIFTY_MOVE_RULE_HALF_MOVES

    def is_threefold_repetition(self) -> bool:
        """
        Replay the whole history from the starting position and count how often every position occurs.

        A position is the placement of the pieces + the side to move.
        """
        board = Board.from_fen(self.starting_state.position)
        color_to_move = self.starting_state.color_to_move
        position_count: Counter[str] = Counter()
        position_count[self._position_key(board, color_to_move)] += 1

        for move in self.move_history:
            board.execute_move(move)
            color_to_move = color_to_move.opponent
            key = self._position_key(board, color_to_move)
            position_count[key] += 1
            if position_count[key] >= REPETITIONS_FOR_DRAW:
                return True
        return False

    def is_game_over(self) -> bool:
        return self.status != Status.IN_PROGRESS

    @property
    def status(self) -> Status:
        """Same order of precedence as `get_game_result`"""
        if self.is_checkmate():
            return Status.CHECKMATE
        if self.is_stalemate():
            return Status.STALEMATE
        if self.has_insufficient_material():
            return Status.DRAW_INSUFFICIENT_MATERIAL
        if self.is_fifty_move_rule():
            return Status.DRAW_FIFTY_MOVE_RULE
        if self.is_threefold_repetition():
            return Status.DRAW_REPETITION
        return Status.IN_PROGRESS

    @property
    def winner(self) -> Optional[Color]:
        """
        Only a checkmate has a winner.
        Given we know it is checkmate, the player to move just got mated and the opponent must be the winner
        """
        if not self.is_checkmate():
            return None
        return self.current_player.color.opponent

    def get_game_result(self) -> str:
        """Human readable reason the game ended (or that it did not)"""
        status = self.status
        if status == Status.CHECKMATE:
            return f"{self.current_player.color.opponent} wins by checkmate!"
        return GAME_RESULT_MESSAGES[status]

    # --- MOVE HISTORY NAVIGATION ---
    def can_move_backward(self) -> bool:
        return self.current_move_index >= 0

    def can_move_forward(self) -> bool:
        return self.current_move_index < len(self.move_history) - 1

    def move_backward(self) -> bool:
        """Take back the move the board shows. Enters review mode."""
        if not self.can_move_backward():
            return False

        self.board.undo_move(self.move_history[self.current_move_index])
        self.current_move_index -= 1
        self.is_in_review_mode = True
        self._sync_with_history()
        self._switch_turn()
        logger.debug("Moved back to move index %d", self.current_move_index)
        return True

    def move_forward(self) -> bool:
        """Redo the next move of the history. Leaves review mode when the last move is reached."""
        if not self.can_move_forward():
            return False

        self.current_move_index += 1
        self.board.execute_move(self.move_history[self.current_move_index])
        self.is_in_review_mode = self.current_move_index < len(self.move_history) - 1
        self._sync_with_history()
        self._switch_turn()
        logger.debug("Moved forward to move index %d", self.current_move_index)
        return True

    def set_current_move_index(self, index: int) -> None:
        """
        Point at another move of the history. Out of range indices are ignored.

        NOTE: Only moves the pointer. Follow up with `reset_and_replay_moves` to bring the board in line.
        """
        if -1 <= index < len(self.move_history):
            self.current_move_index = index

    def jump_to(self, index: int) -> bool:
        """Show the position after move `index` (-1: the starting position) by replaying the history up to there."""
        if not -1 <= index < len(self.move_history):
            return False
        self.set_current_move_index(index)
        self.reset_and_replay_moves()
        return True

    def reset(self) -> None:
        """
        Back to the starting position. The history is kept, so one can navigate through it again.
        (Which means we are reviewing as soon as there is any history.)
        """
        self._initialize_position()
        self.current_move_index = -1
        self.is_in_review_mode = bool(self.move_history)

    def reset_and_replay_moves(self) -> None:
        """
        Rebuild the board from scratch and replay every move up to the current move index.
        ----

        Reliable for jumping any distance: en passant and castling depend on the moves right before,
        which a replay gets right by construction.
        """
        target_index = self.current_move_index
        self._initialize_position()

        for move in self.move_history[: target_index + 1]:
            self.board.execute_move(move)
            self.board.last_move = move
            self._switch_turn()

        self.current_move_index = target_index
        self.is_in_review_mode = self.current_move_index < len(self.move_history) - 1
        self._sync_with_history()
        logger.debug("Replayed history up to move index %d", target_index)

    def resume_play(self) -> bool:
        """
        Leave review mode at the position on the board. The next move overwrites the moves after it.

        Returns False when not reviewing.
        """
        if not self.is_in_review_mode:
            return False
        self.is_in_review_mode = False
        logger.debug("Resumed play at move index %d", self.current_move_index)
        return True

    # -- PRIVATE HELPERS ---
    def _initialize_position(self) -> None:
        """Pieces, side to move, half move clock and last move as described by the starting FEN"""
        state = self.starting_state
        self.board.initialize(state.position)
        self._apply_castling_rights(state.castling_rights)

        self._initial_last_move = None
        if state.en_passant_square is not None:
            self._initial_last_move = self._double_advance_through(
                state.en_passant_square, state.color_to_move.opponent
            )
        self.board.last_move = self._initial_last_move

        self.current_player = self.players[state.color_to_move]
        self.half_move_clock = state.half_move_clock

    def _apply_castling_rights(self, castling_rights: str) -> None:
        """Without the right to castle, the king (or the corresponding rook) counts as moved."""
        for color, letters in CASTLING_LETTERS.items():
            king_square = self.board.find_king(color)
            if king_square is None:
                continue
            king = self.board.piece_at(king_square)
            assert king is not None

            has_rights = any(letter in castling_rights for letter in letters.values())
            if not has_rights or king_square != KING_HOME_SQUARE[color]:
                king.has_moved = True

            for side, letter in letters.items():
                rook_square = castling_squares(king_square, side).rook_from
                rook = self.board.piece_at(rook_square)
                is_own_rook = (
                    rook is not None
                    and rook.type == PieceType.ROOK
                    and rook.color == color
                )
                if is_own_rook and letter not in castling_rights:
                    rook.has_moved = True

    @staticmethod
    def _double_advance_through(en_passant_square: Position, color: Color) -> Move:
        """Reconstruct the pawn double advance that skipped the given square"""
        direction = PAWN_DIRECTION[color]
        return Move(
            start=en_passant_square.offset(-direction, 0),
            end=en_passant_square.offset(direction, 0),
            moving_piece=Piece(PieceType.PAWN, color, has_moved=True),
        )

    def _switch_turn(self) -> None:
        self.current_player = self.players[self.current_player.color.opponent]

    def _sync_with_history(self) -> None:
        """Last move and half move clock as they were right after the current move"""
        last_move = self.last_move
        if last_move is None:
            self.board.last_move = self._initial_last_move
            self.half_move_clock = self.starting_state.half_move_clock
        else:
            self.board.last_move = last_move
            self.half_move_clock = last_move.half_move_clock

    def _find_candidate(self, start: Position, end: Position) -> Optional[Move]:
        """The pseudo-legal move start -> end of the side to move. (For promotions: the first option, a queen)"""
        piece = self.board.piece_at(start)
        if piece is None or piece.color != self.current_player.color:
            return None
        return next(
            (move for move in candidate_moves(start, self.board) if move.end == end),
            None,
        )

    def _try_move(self, candidate: Move) -> bool:
        move = self._prepare_move(candidate)
        if self._leaves_king_in_check(move):
            logger.debug("Rejected %s: leaves the king in check", move.to_uci())
            return False

        self._finalize_move(move)
        self._commit(move)
        return True

    def _prepare_move(self, candidate: Move) -> Move:
        """Snapshot of the pieces involved, taken before the board changes."""
        moving_piece = self.board.piece_at(candidate.start)
        captured_piece = self.board.piece_at(candidate.capture_square)
        castling_rook = (
            self.board.piece_at(candidate.castling.rook_from)
            if candidate.castling is not None
            else None
        )
        return replace(
            candidate,
            moving_piece=moving_piece.copy() if moving_piece else None,
            captured_piece=captured_piece.copy() if captured_piece else None,
            castling_rook=castling_rook.copy() if castling_rook else None,
        )

    @contextmanager
    def _probe(self, move: Move) -> Iterator[None]:
        """
        Apply a move, let the caller inspect the board, and take the move back.
        The board gets reverted on every way out of the with-block.
        """
        previous_last_move = self.board.last_move
        self.board.execute_move(move)
        self.board.last_move = move
        try:
            yield
        finally:
            self.board.undo_move(move)
            self.board.last_move = previous_last_move

    @contextmanager
    def _opponent_to_move(self) -> Iterator[None]:
        """Temporarily hand the turn to the other player"""
        self._switch_turn()
        try:
            yield
        finally:
            self._switch_turn()

    def _leaves_king_in_check(self, move: Move) -> bool:
        if move.moving_piece is None:
            return False
        with self._probe(move):
            return self._is_king_attacked(move.moving_piece.color)

    def _is_king_attacked(self, color: Color) -> bool:
        """Can any opposing piece move onto the king's square?"""
        king_square = self.board.find_king(color)
        if king_square is None:
            return False

        for position, piece in self.board.pieces():
            if piece.color == color:
                continue
            if any(move.end == king_square for move in candidate_moves(position, self.board)):
                return True
        return False

    def _can_escape_check(self) -> bool:
        """Does the side to move have any move that does not leave its king in check?"""
        color = self.current_player.color
        for position, piece in self.board.pieces():
            if piece.color != color:
                continue
            for candidate in candidate_moves(position, self.board):
                if not self._leaves_king_in_check(self._prepare_move(candidate)):
                    return True
        return False

    def _finalize_move(self, move: Move) -> None:
        """
        Check / checkmate flags and notation describe the position AFTER the move.
        So: play the move, look at it from the opponent's side, and take it back again.
        """
        with self._probe(move), self._opponent_to_move():
            is_check = self.is_check()
            is_checkmate = is_check and not self._can_escape_check()

        move.is_check = is_check
        move.is_checkmate = is_checkmate
        move.notation = algebraic_notation(move)

    def _commit(self, move: Move) -> None:
        """
        Update the board, the history (overwriting moves after the current one, if any), the half move clock and the turn.
        """
        self.board.execute_move(move)

        if self.current_move_index < len(self.move_history) - 1:
            self._truncate_move_history()
        self.move_history.append(move)
        self.current_move_index = len(self.move_history) - 1
        self.is_in_review_mode = False

        if self._resets_half_move_clock(move):
            self.half_move_clock = 0
        else:
            self.half_move_clock += 1
        move.half_move_clock = self.half_move_clock

        self.board.last_move = move
        logger.info("%s played %s", self.current_player.color, move.notation)
        if move.is_checkmate:
            logger.info("Checkmate. %s wins", self.current_player.color)
        self._switch_turn()

    def _truncate_move_history(self) -> None:
        discarded = len(self.move_history) - (self.current_move_index + 1)
        del self.move_history[self.current_move_index + 1 :]
        logger.debug("Discarded %d move(s) after move index %d", discarded, self.current_move_index)

    @staticmethod
    def _resets_half_move_clock(move: Move) -> bool:
        is_pawn_move = move.moving_piece is not None and move.moving_piece.type == PieceType.PAWN
        return is_pawn_move or move.captured_piece is not None

    @staticmethod
    def _position_key(board: Board, color_to_move: Color) -> str:
        return f"{board.to_fen()} {color_to_move.name}"

    def _castling_rights(self) -> str:
        rights = ""
        for color, letters in CASTLING_LETTERS.items():
            king_square = self.board.find_king(color)
            if king_square is None:
                continue
            king = self.board.piece_at(king_square)
            if king is None or king.has_moved:
                continue
            for side, letter in letters.items():
                rook = self.board.piece_at(castling_squares(king_square, side).rook_from)
                if (
                    rook is not None
                    and rook.type == PieceType.ROOK
                    and rook.color == color
                    and not rook.has_moved
                ):
                    rights += letter
        return rights

    def _en_passant_target(self) -> Optional[Position]:
        """The square skipped by a pawn that just advanced two squares"""
        last_move = self.board.last_move
        if last_move is None or not is_pawn_double_advance(last_move):
            return None
        return Position((last_move.start.rank + last_move.end.rank) // 2, last_move.start.file)

    def _num_turns(self) -> int:
        """Full move number: increments after every move black makes"""
        plies = self.current_move_index + 1
        if self.starting_state.color_to_move == Color.WHITE:
            black_moves = plies // 2
        else:
            black_moves = (plies + 1) // 2
        return self.starting_state.num_turns + black_moves
