"""Unit tests for /src/chess/game.py"""

from typing import Callable
from unittest.mock import patch

import pytest

from src.chess.board import Board
from src.chess.fen import STARTING_FEN
from src.chess.game import Game, GameMode, Status
from src.chess.moves import Move
from src.chess.pieces import Color, Piece, PieceType
from src.chess.position import Position
from src.core.exceptions import GameStateError, InvalidArgumentError

Play = Callable[[Game, list[str]], None]

FOOLS_MATE = ["f2f3", "e7e5", "g2g4", "d8h4"]
KNIGHT_SHUFFLE = ["g1f3", "g8f6", "f3g1", "f6g8"]


def sq(name: str) -> Position:
    return Position.from_algebraic(name)


# --- MAKING MOVES ---
def test_opening_push() -> None:
    """White e2-e4"""
    game = Game()
    assert game.move_piece(Position(1, 4), Position(3, 4))

    assert game.board.piece_at(Position(1, 4)) is None
    assert game.board.piece_at(Position(3, 4)) == Piece(PieceType.PAWN, Color.WHITE, has_moved=True)
    assert game.half_move_clock == 0
    assert game.current_player.color == Color.BLACK
    assert game.current_move_index == 0
    assert game.last_move is game.move_history[0]
    assert game.board.last_move is game.last_move
    assert game.last_move.notation == "e4"


@pytest.mark.parametrize(
    "start, end",
    [
        ("e7", "e5"),  # not your turn
        ("e2", "e5"),  # not how a pawn moves
        ("e4", "e5"),  # empty square
        ("g1", "e2"),  # own piece on the target square
    ],
)
def test_rejected_move_leaves_game_untouched(start: str, end: str) -> None:
    game = Game()
    fen_before = game.to_fen()

    assert not game.move_piece(sq(start), sq(end))
    assert game.to_fen() == fen_before
    assert game.move_history == []
    assert game.current_move_index == -1
    assert game.current_player.color == Color.WHITE


def test_pinned_piece_cannot_move() -> None:
    game = Game.from_fen("4k3/4r3/8/8/8/8/4B3/4K3 w - - 0 1")

    assert game.would_put_king_in_check(sq("e2"), sq("d3"))
    assert not game.move_piece(sq("e2"), sq("d3"))
    assert game.legal_moves_from(sq("e2")) == []
    # the probe put everything back
    assert game.board.piece_at(sq("e2")) == Piece(PieceType.BISHOP, Color.WHITE)
    assert game.move_piece(sq("e1"), sq("d1"))


def test_king_cannot_step_into_check() -> None:
    game = Game.from_fen("4k3/8/8/8/8/8/3r4/4K3 w - - 0 1")
    assert not game.move_piece(sq("e1"), sq("e2"))
    assert game.move_piece(sq("e1"), sq("d2"))
    assert game.last_move.notation == "Kxd2"


def test_check_flag_and_notation() -> None:
    game = Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    assert game.move_piece(sq("a1"), sq("a8"))

    assert game.last_move.is_check
    assert not game.last_move.is_checkmate
    assert game.last_move.notation == "Ra8+"
    assert game.is_check()
    assert not game.is_checkmate()


def test_legal_moves_of_a_piece() -> None:
    game = Game()
    assert {move.end for move in game.legal_moves_from(sq("e2"))} == {sq("e3"), sq("e4")}
    # not black's turn
    assert game.legal_moves_from(sq("e7")) == []
    assert game.legal_moves_from(sq("e4")) == []


# --- CASTLING ---
def test_castling_and_taking_it_back() -> None:
    fen = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"
    game = Game.from_fen(fen)
    assert game.move_piece(sq("e1"), sq("g1"))

    assert game.board.piece_at(sq("g1")) == Piece(PieceType.KING, Color.WHITE, has_moved=True)
    assert game.board.piece_at(sq("f1")) == Piece(PieceType.ROOK, Color.WHITE, has_moved=True)
    assert game.board.piece_at(sq("h1")) is None
    assert game.last_move.notation == "O-O"
    assert game.to_fen() == "r3k2r/8/8/8/8/8/8/R4RK1 b kq - 1 1"

    assert game.move_backward()
    assert game.board == Game.from_fen(fen).board
    assert not game.board.piece_at(sq("h1")).has_moved
    assert not game.board.piece_at(sq("e1")).has_moved


def test_no_castling_without_castling_rights() -> None:
    game = Game.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w kq - 0 1")
    assert not game.move_piece(sq("e1"), sq("g1"))
    assert not game.move_piece(sq("e1"), sq("c1"))


@pytest.mark.parametrize(
    "fen, start, end",
    [
        ("4k3/8/8/8/8/8/8/5K1R w K - 0 1", "f1", "h1"),
        ("4k3/8/8/8/8/8/8/3K3R w K - 0 1", "d1", "f1"),
    ],
)
def test_castling_rights_ignored_when_the_king_is_not_on_its_home_square(fen: str, start: str, end: str) -> None:
    """The rook would land on the king (or the king would jump over it): the FEN rights cannot be honoured"""
    game = Game.from_fen(fen)
    assert game.board.piece_at(sq(start)).has_moved
    assert not game.move_piece(sq(start), sq(end))

    assert game.board.piece_at(sq(start)) == Piece(PieceType.KING, Color.WHITE, has_moved=True)
    assert game.board.piece_at(sq("h1")) == Piece(PieceType.ROOK, Color.WHITE)
    assert game.to_fen().split(" ")[2] == "-"


def test_no_castling_after_the_king_moved(play: Play) -> None:
    """Even when the king went back to its starting square"""
    game = Game.from_fen("r3k2r/pppppppp/8/8/8/8/PPPPPPPP/R3K2R w KQkq - 0 1")
    play(game, ["e1f1", "a7a6", "f1e1", "a6a5"])
    assert not game.move_piece(sq("e1"), sq("g1"))
    assert "KQ" not in game.to_fen()


def test_no_castling_through_an_attacked_square() -> None:
    game = Game.from_fen("5rk1/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    assert not game.move_piece(sq("e1"), sq("g1"))
    assert game.move_piece(sq("e1"), sq("c1"))
    assert game.board.piece_at(sq("d1")) == Piece(PieceType.ROOK, Color.WHITE, has_moved=True)
    assert game.last_move.notation == "O-O-O"


# --- EN PASSANT ---
def test_en_passant_right_after_the_double_advance(play: Play) -> None:
    game = Game()
    play(game, ["e2e4", "a7a6", "e4e5", "d7d5"])
    assert game.to_fen().split(" ")[3] == "d6"

    assert game.move_piece(sq("e5"), sq("d6"))
    assert game.board.piece_at(sq("d5")) is None
    assert game.board.piece_at(sq("d6")) == Piece(PieceType.PAWN, Color.WHITE, has_moved=True)
    assert game.last_move.notation == "exd6"
    assert game.half_move_clock == 0

    # and back: the black pawn returns to d5, not d6
    assert game.move_backward()
    assert game.board.piece_at(sq("d5")) == Piece(PieceType.PAWN, Color.BLACK, has_moved=True)
    assert game.board.piece_at(sq("d6")) is None
    assert game.board.piece_at(sq("e5")) == Piece(PieceType.PAWN, Color.WHITE, has_moved=True)


def test_en_passant_window_is_one_ply(play: Play) -> None:
    game = Game()
    play(game, ["e2e4", "a7a6", "e4e5", "d7d5", "h2h3", "h7h6"])
    assert not game.move_piece(sq("e5"), sq("d6"))


def test_en_passant_square_from_fen() -> None:
    """The en passant square of the FEN stands for a double advance right before the game started"""
    game = Game.from_fen("4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1")
    assert sq("e3") in {move.end for move in game.legal_moves_from(sq("d4"))}

    assert game.move_piece(sq("d4"), sq("e3"))
    assert game.board.piece_at(sq("e4")) is None

    assert game.move_backward()
    assert game.board.piece_at(sq("e4")) == Piece(PieceType.PAWN, Color.WHITE)
    assert game.to_fen() == "4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1"


# --- PROMOTION ---
PROMOTION_FEN = "8/P6k/8/8/8/8/8/K7 w - - 0 1"


def test_default_promotion_is_a_queen() -> None:
    game = Game.from_fen(PROMOTION_FEN)
    assert game.move_piece(sq("a7"), sq("a8"))
    assert game.board.piece_at(sq("a8")) == Piece(PieceType.QUEEN, Color.WHITE, has_moved=True)
    assert game.last_move.notation == "a8=Q"

    assert game.move_backward()
    assert game.board.piece_at(sq("a7")) == Piece(PieceType.PAWN, Color.WHITE)
    assert game.board.piece_at(sq("a8")) is None


def test_underpromotion() -> None:
    game = Game.from_fen(PROMOTION_FEN)
    assert game.play_move(Move(sq("a7"), sq("a8"), promote_to=PieceType.KNIGHT))
    assert game.board.piece_at(sq("a8")) == Piece(PieceType.KNIGHT, Color.WHITE, has_moved=True)
    assert game.last_move.to_uci() == "a7a8n"


@pytest.mark.parametrize(
    "move",
    [
        Move(Position(6, 0), Position(7, 0), promote_to=PieceType.KING),
        Move(Position(6, 0), Position(7, 0), promote_to=PieceType.PAWN),
        # not a promotion at all
        Move(Position(0, 0), Position(0, 1), promote_to=PieceType.QUEEN),
    ],
)
def test_invalid_promotion_choice(move: Move) -> None:
    game = Game.from_fen(PROMOTION_FEN)
    assert not game.play_move(move)
    assert game.move_history == []


# --- END OF GAME ---
def test_fools_mate(play: Play) -> None:
    game = Game()
    play(game, FOOLS_MATE)

    assert game.last_move.notation == "Qh4#"
    assert game.is_check()
    assert game.is_checkmate()
    assert not game.is_stalemate()
    assert game.is_game_over()
    assert game.status == Status.CHECKMATE
    assert game.winner == Color.BLACK
    assert game.get_game_result() == "Black wins by checkmate!"


def test_white_wins_by_checkmate() -> None:
    """Back rank mate"""
    game = Game.from_fen("6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1")
    assert game.move_piece(sq("a1"), sq("a8"))
    assert game.get_game_result() == "White wins by checkmate!"


def test_stalemate() -> None:
    game = Game.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert not game.is_check()
    assert game.is_stalemate()
    assert not game.is_checkmate()
    assert game.winner is None
    assert game.get_game_result() == "Game drawn by stalemate!"


@pytest.mark.parametrize(
    "placement, expected",
    [
        ("8/8/8/4k3/8/8/8/4K3", True),  # K vs K
        ("8/8/8/4k3/8/8/8/2B1K3", True),  # K+B vs K
        ("8/8/8/4k3/8/8/8/1N2K3", True),  # K+N vs K
        ("5b2/8/8/4k3/8/8/8/2B1K3", True),  # K+B vs K+B, both bishops on c1/f8
        ("5b2/8/8/4k3/8/8/8/4KB2", False),  # K+B vs K+B, bishops on different colors
        ("2b5/8/8/4k3/8/8/8/4KB2", False),  # same color (f1/c8), but not the recognized one
        ("8/8/8/4k3/8/8/8/R3K3", False),  # K+R vs K
        ("8/8/8/4k3/8/8/4P3/4K3", False),  # K+P vs K
        ("6n1/8/8/4k3/8/8/8/1N2K3", False),  # K+N vs K+N
    ],
)
def test_insufficient_material(placement: str, expected: bool) -> None:
    game = Game.from_fen(f"{placement} w - - 0 1")
    assert game.has_insufficient_material() is expected


def test_insufficient_material_result() -> None:
    game = Game.from_fen("8/8/8/4k3/8/8/8/4K3 w - - 0 1")
    assert game.is_game_over()
    assert game.get_game_result() == "Game drawn due to insufficient material!"


def test_half_move_clock(play: Play) -> None:
    """+1 for every move, back to 0 for a pawn move or a capture"""
    game = Game()
    play(game, ["g1f3", "g8f6"])
    assert game.half_move_clock == 2
    play(game, ["e2e4"])
    assert game.half_move_clock == 0
    play(game, ["f6e4"])  # capture
    assert game.half_move_clock == 0
    play(game, ["b1c3"])
    assert game.half_move_clock == 1


def test_fifty_move_rule_at_exactly_one_hundred_half_moves(play: Play) -> None:
    game = Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 98 60")
    play(game, ["a1a2"])
    assert game.half_move_clock == 99
    assert not game.is_fifty_move_rule()
    assert not game.is_game_over()

    play(game, ["e8d8"])
    assert game.half_move_clock == 100
    assert game.is_fifty_move_rule()
    assert game.get_game_result() == "Game drawn by fifty-move rule!"


def test_threefold_repetition(play: Play) -> None:
    game = Game()
    play(game, KNIGHT_SHUFFLE)
    # the starting position occurred twice
    assert not game.is_threefold_repetition()

    play(game, KNIGHT_SHUFFLE)
    assert game.is_threefold_repetition()
    assert game.is_game_over()
    assert game.get_game_result() == "Game drawn by threefold repetition!"


def test_game_in_progress() -> None:
    game = Game()
    assert not game.is_game_over()
    assert game.status == Status.IN_PROGRESS
    assert game.get_game_result() == "Game in progress"


# --- MOVE HISTORY NAVIGATION ---
def test_undo_everything_returns_to_the_start(play: Play) -> None:
    """Every move back restores the board exactly as it was before that move"""
    game = Game()
    boards = [game.board.copy()]
    for uci in ["e2e4", "d7d5", "e4d5", "d8d5", "b1c3", "d5a5", "g1f3", "c8g4", "f1e2", "b8c6"]:
        play(game, [uci])
        boards.append(game.board.copy())
    final_fen = game.to_fen()

    for expected_board in reversed(boards[:-1]):
        assert game.move_backward()
        assert game.board.squares == expected_board.squares

    assert not game.can_move_backward()
    assert not game.move_backward()
    assert game.board.squares == Board.starting_position().squares
    assert game.board.last_move is None
    assert game.current_player.color == Color.WHITE

    while game.move_forward():
        pass
    assert game.to_fen() == final_fen
    assert not game.is_in_review_mode


def test_review_mode_rejects_moves(play: Play) -> None:
    game = Game()
    play(game, ["e2e4", "e7e5", "g1f3"])

    assert game.move_backward()
    assert game.is_in_review_mode
    assert game.current_move_index == 1
    assert game.current_player.color == Color.WHITE
    assert game.last_move.notation == "e5"

    assert not game.move_piece(sq("g1"), sq("f3"))
    assert len(game.move_history) == 3

    assert game.move_forward()
    assert not game.is_in_review_mode
    assert not game.can_move_forward()
    assert not game.move_forward()


def test_new_move_truncates_forward_branch(play: Play) -> None:
    game = Game()
    play(game, ["e2e4", "e7e5", "g1f3"])
    game.move_backward()
    game.move_backward()

    assert game.resume_play()
    assert not game.resume_play()
    play(game, ["d7d5"])

    assert [move.notation for move in game.move_history] == ["e4", "d5"]
    assert game.current_move_index == 1
    assert not game.can_move_forward()
    assert game.current_player.color == Color.WHITE


def test_reset_keeps_the_history(play: Play) -> None:
    game = Game()
    play(game, ["e2e4", "e7e5", "g1f3"])

    game.reset()
    assert game.is_in_review_mode
    assert game.current_move_index == -1
    assert len(game.move_history) == 3
    assert game.to_fen() == STARTING_FEN

    # without any history there is nothing to review
    fresh_game = Game()
    fresh_game.reset()
    assert not fresh_game.is_in_review_mode


def test_jumping_through_the_history(play: Play) -> None:
    game = Game()
    play(game, ["e2e4", "e7e5", "g1f3"])

    game.set_current_move_index(1)
    game.reset_and_replay_moves()
    assert game.to_fen() == "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq e6 0 2"
    assert game.is_in_review_mode

    # out of range indices are ignored
    game.set_current_move_index(7)
    assert game.current_move_index == 1
    assert not game.jump_to(3)
    assert not game.jump_to(-2)

    assert game.jump_to(2)
    assert not game.is_in_review_mode
    assert game.to_fen() == "rnbqkbnr/pppp1ppp/8/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R b KQkq - 1 2"

    assert game.jump_to(-1)
    assert game.to_fen() == STARTING_FEN
    assert game.last_move is None


def test_navigation_restores_the_half_move_clock(play: Play) -> None:
    game = Game()
    play(game, ["g1f3", "g8f6"])
    game.move_backward()
    assert game.half_move_clock == 1
    game.move_backward()
    assert game.half_move_clock == 0
    game.move_forward()
    assert game.half_move_clock == 1


def test_en_passant_survives_a_replay(play: Play) -> None:
    """Replaying up to the double advance makes en passant available again"""
    game = Game()
    play(game, ["e2e4", "a7a6", "e4e5", "d7d5", "e5d6"])
    game.jump_to(3)
    game.resume_play()
    assert game.move_piece(sq("e5"), sq("d6"))
    assert game.board.piece_at(sq("d5")) is None


# --- PLAYER SETTINGS / EVALUATION ---
@pytest.mark.parametrize(
    "color_name, color",
    [("white", Color.WHITE), ("BLACK", Color.BLACK), ("Black", Color.BLACK)],
)
def test_set_player_color(color_name: str, color: Color) -> None:
    game = Game()
    game.set_player_color(color_name)
    assert game.player_color == color


def test_set_random_player_color() -> None:
    game = Game()
    with patch("src.chess.game.random.choice", return_value=Color.BLACK) as mock_choice:
        game.set_player_color("Random")
    mock_choice.assert_called_once()
    assert game.player_color == Color.BLACK


@pytest.mark.parametrize("color_name", ["green", "", "w"])
def test_set_invalid_player_color(color_name: str) -> None:
    game = Game()
    with pytest.raises(InvalidArgumentError):
        game.set_player_color(color_name)
    # also a ValueError for callers that do not know the custom exceptions
    with pytest.raises(ValueError):
        game.set_player_color(color_name)


def test_evaluate_position(play: Play) -> None:
    game = Game()
    assert game.evaluate_position() == 0
    play(game, ["e2e4", "d7d5", "e4d5"])
    assert game.evaluate_position() == 1
    play(game, ["d8d5"])
    assert game.evaluate_position() == 0


def test_game_defaults() -> None:
    game = Game()
    assert game.mode == GameMode.LOCAL
    assert not game.pass_and_play
    assert game.player_color == Color.WHITE
    assert set(game.players) == {Color.WHITE, Color.BLACK}


# --- CONVERSION FROM/TO THE SERVICE LAYER MODEL ---
def test_model_roundtrip(play: Play) -> None:
    game = Game(mode=GameMode.ONLINE, pass_and_play=True)
    game.set_player_color("black")
    play(game, ["e2e4", "e7e5", "g1f3"])
    game.move_backward()

    model = game.to_model()
    assert model.moves_uci == ["e2e4", "e7e5", "g1f3"]
    assert model.moves_san == ["e4", "e5", "Nf3"]
    assert model.current_move_index == 1
    assert model.is_in_review_mode
    assert model.status == "in_progress"

    restored = Game.from_model(model)
    assert restored.to_model() == model
    assert restored.board == game.board
    assert restored.mode == GameMode.ONLINE
    assert restored.player_color == Color.BLACK


def test_model_of_a_resumed_game(play: Play) -> None:
    """Behind the tail but no longer reviewing: the next move overwrites the rest of the history"""
    game = Game()
    play(game, ["e2e4", "e7e5", "g1f3"])
    game.move_backward()
    game.resume_play()

    restored = Game.from_model(game.to_model())
    assert not restored.is_in_review_mode
    assert restored.current_move_index == 1
    assert restored.move_piece(sq("d2"), sq("d4"))
    assert len(restored.move_history) == 3


def test_model_with_an_illegal_move() -> None:
    model = Game().to_model()
    model.moves_uci = ["e2e5"]
    model.current_move_index = 0
    with pytest.raises(GameStateError):
        Game.from_model(model)


def test_model_with_unknown_mode() -> None:
    model = Game().to_model()
    model.mode = "correspondence"
    with pytest.raises(GameStateError):
        Game.from_model(model)
