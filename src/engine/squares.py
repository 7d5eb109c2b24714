from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterable

from .move import BLACK, SQUARES, WHITE

if TYPE_CHECKING:
    from .piece import Piece


@dataclass(frozen=True)
class SquareStats:
    """Occupancy summary of the board.

    Attributes:
        free (FrozenSet[str]): Squares holding no piece.
        used (Dict[str, FrozenSet[str]]): Occupied squares keyed by color.
    """

    free: FrozenSet[str]
    used: Dict[str, FrozenSet[str]]

    @classmethod
    def from_pieces(cls, pieces: Iterable["Piece"]) -> "SquareStats":
        used: Dict[str, set] = {WHITE: set(), BLACK: set()}
        for piece in pieces:
            used[piece.color].add(piece.square)
        occupied = used[WHITE] | used[BLACK]
        return cls(
            free=frozenset(sq for sq in SQUARES if sq not in occupied),
            used={color: frozenset(squares) for color, squares in used.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "free": sorted(self.free),
            "used": {color: sorted(squares) for color, squares in self.used.items()},
        }
