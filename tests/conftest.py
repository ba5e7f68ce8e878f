"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Callable, Generator

import pytest

from src.chess.game import Game
from src.chess.position import Position
from src.core.config import get_settings
from src.db.memory_repository import InMemoryGameRepository


def sq(name: str) -> Position:
    """Shorthand: algebraic square name to Position"""
    return Position.from_algebraic(name)


@pytest.fixture
def play() -> Callable[[Game, list[str]], None]:
    """Call the inner function with a game and a list of UCI moves. Every move must be accepted."""

    def _play(game: Game, moves_uci: list[str]) -> None:
        for uci in moves_uci:
            assert game.move_piece(sq(uci[:2]), sq(uci[2:4])), f"move {uci} got rejected"

    return _play


@pytest.fixture
def repository() -> Generator[InMemoryGameRepository, None, None]:
    """Ensures to clear the repository between tests"""
    repo = InMemoryGameRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process: environment changes made by a test should not leak into the next one."""
    get_settings.cache_clear()
    try:
        yield
    finally:
        get_settings.cache_clear()
