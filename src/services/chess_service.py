"""Orchestration of communication from the presentation layer to the chess rules and the repository (and the reverse direction)."""

import logging
from typing import Optional
from uuid import UUID

from src.api.models import (
    CreateGameRequest,
    DeleteGameRequest,
    GameResponse,
    GetGameRequest,
    LegalMovesRequest,
    LegalMovesResponse,
    MoveRequest,
    NavigationRequest,
)
from src.chess.fen import STARTING_FEN
from src.chess.game import Game, GameMode
from src.chess.moves import Move
from src.chess.pieces import PieceType
from src.chess.position import Position
from src.core.config import Settings, get_settings
from src.core.exceptions import (
    GameStateError,
    IllegalMoveError,
    InvalidArgumentError,
    RepositoryError,
)
from src.core.logging import configure_logging
from src.core.models import GameModel
from src.core.shared_types import Navigation, Status
from src.db.repository import GameRepository

logger = logging.getLogger(__name__)


class ChessService:
    """Orchestration of layers for chess game."""

    def __init__(
        self, repository: GameRepository, settings: Optional[Settings] = None
    ) -> None:
        self.repo = repository
        self.settings = settings or get_settings()
        configure_logging(self.settings.log_level)

    # -- Presentation layer logic ---
    def create_game(self, request: CreateGameRequest) -> GameResponse:
        """Start a new game. Anything left out of the request falls back to the configured defaults."""

        mode_name = (request.mode or self.settings.default_mode).upper()
        if mode_name not in GameMode.__members__:
            raise InvalidArgumentError(
                f"Cannot create new game. Mode {mode_name.lower()!r} not in {','.join([mode.name.lower() for mode in GameMode])}."
            )
        new_game = Game.from_fen(request.starting_fen or STARTING_FEN, GameMode[mode_name])
        new_game.set_player_color(request.color or self.settings.default_player_color)
        new_game.pass_and_play = (
            request.pass_and_play
            if request.pass_and_play is not None
            else self.settings.default_pass_and_play
        )

        stored_game, game_id = self.repo.create_game(new_game.to_model())
        logger.info("Created game %s (%s)", game_id, new_game.mode.name.lower())
        return self._create_game_response(game_id, stored_game, new_game)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used by the presentation layer to redraw the board after every action.
        """
        game = self._load_game(request.game_id)
        return self._create_game_response(request.game_id, game.to_model(), game)

    def legal_moves(self, request: LegalMovesRequest) -> LegalMovesResponse:
        """Where can the piece on the requested square go? (UCI moves, promotions show up once per piece type)"""
        game = self._load_game(request.game_id)
        moves = game.legal_moves_from(Position.from_algebraic(request.from_square))
        return LegalMovesResponse(
            game_id=request.game_id,
            from_square=request.from_square,
            legal_moves=[move.to_uci() for move in moves],
        )

    def make_move(self, request: MoveRequest) -> GameResponse:
        """Make a move attempt."""

        game = self._load_game(request.game_id)
        if game.is_in_review_mode:
            raise GameStateError(
                "Cannot make a move while reviewing the move history. Navigate to the end or resume play first."
            )

        move = Move(
            Position.from_algebraic(request.from_square),
            Position.from_algebraic(request.to_square),
            promote_to=(
                PieceType[request.promote_to.name] if request.promote_to else None
            ),
        )
        if not game.play_move(move):
            raise IllegalMoveError(
                f"Move {move.to_uci()!r} is not legal for {game.current_player.color} in this position."
            )

        return self._store(request.game_id, game)

    def navigate(self, request: NavigationRequest) -> GameResponse:
        """Travel through the move history. Steps beyond the start/end of the history are ignored."""

        game = self._load_game(request.game_id)
        if request.direction == Navigation.BACKWARD:
            game.move_backward()
        elif request.direction == Navigation.FORWARD:
            game.move_forward()
        elif request.direction == Navigation.START:
            game.jump_to(-1)
        elif request.direction == Navigation.END:
            game.jump_to(len(game.move_history) - 1)
        elif request.direction == Navigation.JUMP:
            # for the type checker: the request validation makes sure there is an index to jump to
            assert request.move_index is not None
            if not game.jump_to(request.move_index):
                raise GameStateError(
                    f"Cannot jump to move {request.move_index}: the game has {len(game.move_history)} moves."
                )
        elif request.direction == Navigation.RESUME:
            game.resume_play()

        return self._store(request.game_id, game)

    def list_games(self) -> list[UUID]:
        """Show all recorded games."""
        return self.repo.list_game_ids()

    def delete_game(self, request: DeleteGameRequest) -> None:
        """Handle a request to delete a Game record."""
        if self.repo.delete_game(request.game_id) is None:
            raise RepositoryError(f"Game with {request.game_id=} not found.")
        logger.info("Deleted game %s", request.game_id)

    # -- Internal helpers --
    def _store(self, game_id: UUID, game: Game) -> GameResponse:
        updated = self.repo.update_game(game_id, game.to_model())
        if updated is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        return self._create_game_response(game_id, updated, game)

    def _create_game_response(
        self, game_id: UUID, model: GameModel, game: Game
    ) -> GameResponse:
        """Convert info in GameModel to a GameResponse (for game with given ID.)"""
        return GameResponse(
            game_id=game_id,
            fen_state=model.current_fen,
            starting_state=model.starting_fen,
            move_history=model.moves_uci,
            notation=model.moves_san,
            current_move_index=model.current_move_index,
            is_in_review_mode=model.is_in_review_mode,
            player_color=model.player_color,
            status=Status(model.status),
            result=game.get_game_result(),
        )

    def _load_game(self, game_id: UUID) -> Game:
        """Attempt to find the game in the repository (raise error if it fails) and rebuild it."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        return Game.from_model(game_model)
