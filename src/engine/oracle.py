from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from .move import BLACK, KING, PAWN, WHITE
from .piece import Piece
from .squares import SquareStats


def _reach(piece: Piece, squares: SquareStats) -> FrozenSet[str]:
    # Kings and pawns control their geometric squares; pawns only diagonally.
    if piece.kind == KING:
        return piece.scope()
    if piece.kind == PAWN:
        return piece.diagonals()
    return frozenset(piece.legal_moves(squares))


def control(
    pieces: Iterable[Piece], squares: SquareStats
) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    """Compute space and attack for both colors in one pass.

    Returns:
        Tuple[Dict[str, List[str]], Dict[str, List[str]]]: ``(space, attack)``.
        Space holds the empty squares each color reaches; attack holds the
        opponent-occupied ones. Both lists are sorted and free of duplicates.
    """
    space: Dict[str, Set[str]] = {WHITE: set(), BLACK: set()}
    attack: Dict[str, Set[str]] = {WHITE: set(), BLACK: set()}
    for piece in pieces:
        reach = _reach(piece, squares)
        space[piece.color].update(reach & squares.free)
        attack[piece.color].update(reach & squares.used[piece.opponent])
    return (
        {color: sorted(sqs) for color, sqs in space.items()},
        {color: sorted(sqs) for color, sqs in attack.items()},
    )
