from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .move import BLACK, LONG, SHORT, WHITE
from .squares import SquareStats


@dataclass(frozen=True)
class PreviousMove:
    """Last move made by one side: piece kind plus origin and destination."""

    kind: str
    from_sq: str
    to_sq: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "from_sq": self.from_sq, "to_sq": self.to_sq}


def no_castling() -> Dict[str, Dict[str, bool]]:
    return {WHITE: {SHORT: False, LONG: False}, BLACK: {SHORT: False, LONG: False}}


@dataclass
class Status:
    """Derived board state read by evaluators.

    Everything except ``turn``, ``previous_move`` and ``castling`` is
    recomputed from the piece set after every accepted move.
    """

    turn: str
    squares: SquareStats
    space: Dict[str, List[str]] = field(default_factory=lambda: {WHITE: [], BLACK: []})
    attack: Dict[str, List[str]] = field(default_factory=lambda: {WHITE: [], BLACK: []})
    previous_move: Dict[str, Optional[PreviousMove]] = field(
        default_factory=lambda: {WHITE: None, BLACK: None}
    )
    castling: Dict[str, Dict[str, bool]] = field(default_factory=no_castling)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "squares": self.squares.to_dict(),
            "space": {color: list(sqs) for color, sqs in self.space.items()},
            "attack": {color: list(sqs) for color, sqs in self.attack.items()},
            "previous_move": {
                color: (pm.to_dict() if pm is not None else None)
                for color, pm in self.previous_move.items()
            },
            "castling": {color: dict(sides) for color, sides in self.castling.items()},
        }
