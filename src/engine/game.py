from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .board import Board
from .move import Move


@dataclass
class Game:
    """Game wrapper around a board with helper operations.

    Responsibility: track accepted moves, expose legal moves and end-of-game
    flags, undo by restoring the board snapshot taken before each move.
    """

    board: Board
    move_stack: List[Move] = field(default_factory=list)
    _snapshots: List[Board] = field(default_factory=list, repr=False)

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.startpos())

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        return cls(board=Board.from_fen(fen))

    def to_fen(self) -> str:
        return self.board.to_fen()

    def legal_moves(self) -> List[Move]:
        return self.board.generate_legal_moves()

    def play(self, move: Move) -> bool:
        snapshot = self.board.fork()
        if not self.board.play(move):
            return False
        self._snapshots.append(snapshot)
        self.move_stack.append(move)
        return True

    def undo_move(self) -> Move:
        if not self.move_stack:
            raise ValueError("no moves to undo")
        self.board = self._snapshots.pop()
        return self.move_stack.pop()

    # --- State flags for protocol ---
    def in_check(self) -> bool:
        return self.board.is_check()

    def checkmate(self) -> bool:
        return self.board.is_check() and not self.board.has_legal_moves()

    def stalemate(self) -> bool:
        return (not self.board.is_check()) and (not self.board.has_legal_moves())

    def move_history(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self.move_stack]
