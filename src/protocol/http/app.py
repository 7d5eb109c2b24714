from __future__ import annotations

import logging
from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel, Field

from .error import install_error_handlers
from .logging_middleware import RequestIDLoggingMiddleware
from ...engine.board import BoardInvariantError
from ...engine.game import Game
from ...engine.move import Move, is_square
from ...engine.piece import Piece
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)

ColorName = Literal["w", "b"]
KindName = Literal["P", "N", "B", "R", "Q", "K"]
MoveTypeName = Literal["normal", "capture", "king", "king_capture", "O-O", "O-O-O"]


class CreateGameRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="Start from this position")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class MoveModel(BaseModel):
    color: ColorName
    kind: KindName
    type: MoveTypeName
    to: Optional[str] = Field(default=None, description="Destination square, e.g. e4")
    origin: str = Field(default="", description="Origin hint: file, rank or square")
    promotion: Optional[Literal["N", "B", "R", "Q"]] = None

    def to_move(self) -> Move:
        return Move(
            color=self.color,
            kind=self.kind,
            move_type=self.type,
            to_sq=self.to,
            origin=self.origin,
            promotion=self.promotion,
        )

    @classmethod
    def from_move(cls, move: Move) -> "MoveModel":
        return cls.model_validate(move.to_dict())


class PieceModel(BaseModel):
    color: ColorName
    kind: KindName
    square: str

    @classmethod
    def from_piece(cls, piece: Piece) -> "PieceModel":
        return cls(color=piece.color, kind=piece.kind, square=piece.square)


class SquaresModel(BaseModel):
    free: List[str]
    used: Dict[str, List[str]]


class PreviousMoveModel(BaseModel):
    kind: KindName
    from_sq: str
    to_sq: str


class StatusModel(BaseModel):
    turn: ColorName
    squares: SquaresModel
    space: Dict[str, List[str]]
    attack: Dict[str, List[str]]
    previous_move: Dict[str, Optional[PreviousMoveModel]]
    castling: Dict[str, Dict[str, bool]]


class GameState(BaseModel):
    game_id: str
    fen: str
    status: StatusModel
    in_check: bool
    checkmate: bool
    stalemate: bool
    last_move: Optional[MoveModel]
    move_history: List[MoveModel]


def create_app(log_level: str = "INFO") -> FastAPI:
    app = FastAPI(title="Chess Rules Engine API", version="0.1.0")

    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO))

    app.add_middleware(RequestIDLoggingMiddleware)
    install_error_handlers(app)

    store = InMemorySessionStore()

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        fen = req.fen if req is not None else None
        try:
            game = Game.from_fen(fen) if fen is not None else Game.new()
        except (ValueError, BoardInvariantError) as e:
            raise HTTPException(status_code=400, detail=f"invalid position: {e}")
        game_id = store.create(game)
        logger.info("created game %s", game_id, extra={"game_id": game_id})
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.get("/api/games/{game_id}/pieces", response_model=List[PieceModel])
    async def get_pieces(game_id: str, color: Optional[ColorName] = None) -> List[PieceModel]:
        board = _require_game(store, game_id).board
        pieces = board.pieces if color is None else board.get_pieces_by_color(color)
        return [PieceModel.from_piece(p) for p in pieces]

    @app.get("/api/games/{game_id}/pieces/{square}", response_model=PieceModel)
    async def get_piece(game_id: str, square: str) -> PieceModel:
        board = _require_game(store, game_id).board
        if not is_square(square):
            raise HTTPException(status_code=400, detail=f"invalid square: {square}")
        piece = board.get_piece_by_square(square)
        if piece is None:
            raise HTTPException(status_code=404, detail=f"no piece on {square}")
        return PieceModel.from_piece(piece)

    @app.get("/api/games/{game_id}/legal-moves", response_model=List[MoveModel])
    async def legal_moves(game_id: str) -> List[MoveModel]:
        game = _require_game(store, game_id)
        return [MoveModel.from_move(m) for m in game.legal_moves()]

    @app.post("/api/games/{game_id}/play", response_model=GameState)
    async def play(game_id: str, req: MoveModel) -> GameState:
        game = _require_game(store, game_id)
        try:
            move = req.to_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not game.play(move):
            raise HTTPException(status_code=400, detail="illegal move")
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        try:
            game.undo_move()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state(game_id, game)

    @app.delete("/api/games/{game_id}", status_code=204)
    async def delete_game(game_id: str) -> Response:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return Response(status_code=204)

    return app


def _state(game_id: str, game: Game) -> GameState:
    history = [MoveModel.from_move(m) for m in game.move_stack]
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        status=StatusModel.model_validate(game.board.get_status().to_dict()),
        in_check=game.in_check(),
        checkmate=game.checkmate(),
        stalemate=game.stalemate(),
        last_move=history[-1] if history else None,
        move_history=history,
    )


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game


# Default app for non-factory servers
app = create_app()
