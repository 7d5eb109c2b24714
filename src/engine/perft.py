from __future__ import annotations

from typing import Dict

from .board import Board


def perft(board: Board, depth: int) -> int:
    """Compute perft node count for `board` at `depth`.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Every child is played on a fork, so `board` itself is never modified.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = board.generate_legal_moves()
    if depth == 1:
        return len(moves)
    nodes = 0
    for m in moves:
        child = board.fork()
        child.play(m)
        nodes += perft(child, depth - 1)
    return nodes


def divide(board: Board, depth: int) -> Dict[str, int]:
    """Return the perft count below each root move, keyed by the move's text."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out: Dict[str, int] = {}
    for m in board.generate_legal_moves():
        child = board.fork()
        child.play(m)
        out[str(m)] = perft(child, depth - 1)
    return out
