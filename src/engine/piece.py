from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .move import (
    BISHOP,
    BLACK,
    COLORS,
    KING,
    KNIGHT,
    PAWN,
    PIECE_KINDS,
    QUEEN,
    ROOK,
    WHITE,
    coords_to_str,
    is_square,
    opponent,
    shift,
    str_to_coords,
)
from .squares import SquareStats
from .status import PreviousMove


# Slider directions as (file, rank) steps, one ray per entry
RAYS: Dict[str, Tuple[Tuple[int, int], ...]] = {
    ROOK: ((0, 1), (0, -1), (-1, 0), (1, 0)),
    BISHOP: ((-1, 1), (1, 1), (-1, -1), (1, -1)),
}
RAYS[QUEEN] = RAYS[ROOK] + RAYS[BISHOP]

JUMPS: Dict[str, Tuple[Tuple[int, int], ...]] = {
    KNIGHT: ((-1, 2), (1, 2), (-2, 1), (2, 1), (-2, -1), (2, -1), (-1, -2), (1, -2)),
    KING: ((-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (-1, 1), (0, 1), (1, 1)),
}

PAWN_DIRECTION = {WHITE: 1, BLACK: -1}
PAWN_START_RANK = {WHITE: 1, BLACK: 6}
LAST_RANK = {WHITE: 7, BLACK: 0}


@dataclass(frozen=True)
class Piece:
    """A piece standing on a square.

    Pieces are values: a move never changes ``square`` but replaces the piece
    with a new instance on the destination.

    Notes:
    - ``scope`` and the ray/pawn helpers depend on the square only.
    - ``legal_moves`` needs the occupancy (and, for pawns and kings, the
      opponent's last move and controlled space), which callers pass in.
    """

    color: str
    kind: str
    square: str

    def __post_init__(self) -> None:
        if self.color not in COLORS:
            raise ValueError(f"invalid color: {self.color!r}")
        if self.kind not in PIECE_KINDS:
            raise ValueError(f"invalid piece kind: {self.kind!r}")
        if not is_square(self.square):
            raise ValueError(f"invalid square: {self.square!r}")

    @property
    def opponent(self) -> str:
        return opponent(self.color)

    @property
    def is_slider(self) -> bool:
        return self.kind in RAYS

    def rays(self) -> Tuple[Tuple[str, ...], ...]:
        """Return one ray per direction, nearest square first.

        Rook rays are up, down, left, right; bishop rays are up-left, up-right,
        down-left, down-right; the queen has both sets. Non-sliders have none.
        """
        if not self.is_slider:
            return ()
        out: List[Tuple[str, ...]] = []
        for df, dr in RAYS[self.kind]:
            ray: List[str] = []
            sq = shift(self.square, df, dr)
            while sq is not None:
                ray.append(sq)
                sq = shift(sq, df, dr)
            out.append(tuple(ray))
        return tuple(out)

    def advances(self) -> Tuple[str, ...]:
        """Pawn forward squares: one step, or two from the starting rank."""
        if self.kind != PAWN:
            return ()
        step = PAWN_DIRECTION[self.color]
        one = shift(self.square, 0, step)
        if one is None:
            return ()
        if str_to_coords(self.square)[1] == PAWN_START_RANK[self.color]:
            two = shift(one, 0, step)
            if two is not None:
                return (one, two)
        return (one,)

    def diagonals(self) -> FrozenSet[str]:
        """Pawn capture squares by geometry alone."""
        if self.kind != PAWN:
            return frozenset()
        step = PAWN_DIRECTION[self.color]
        return frozenset(
            sq for sq in (shift(self.square, -1, step), shift(self.square, 1, step)) if sq
        )

    def scope(self) -> FrozenSet[str]:
        """Squares reachable by geometry, ignoring every other piece."""
        if self.is_slider:
            return frozenset(sq for ray in self.rays() for sq in ray)
        if self.kind in JUMPS:
            return frozenset(
                sq for sq in (shift(self.square, df, dr) for df, dr in JUMPS[self.kind]) if sq
            )
        return frozenset(self.advances()) | self.diagonals()

    def en_passant_square(self, previous: Optional[PreviousMove]) -> Optional[str]:
        """Return the en-passant destination opened by the opponent's last move.

        Args:
            previous (Optional[PreviousMove]): The opponent's previous move.

        Returns:
            Optional[str]: The square passed over by an adjacent two-square
                pawn advance, or ``None`` when no such capture exists.
        """
        if self.kind != PAWN or previous is None or previous.kind != PAWN:
            return None
        pf, pr = str_to_coords(previous.from_sq)
        tf, tr = str_to_coords(previous.to_sq)
        if pf != tf or abs(tr - pr) != 2:
            return None
        f, r = str_to_coords(self.square)
        if tr != r or abs(tf - f) != 1:
            return None
        return coords_to_str(tf, (pr + tr) // 2)

    def legal_moves(
        self,
        squares: SquareStats,
        previous: Optional[PreviousMove] = None,
        enemy_space: Iterable[str] = (),
    ) -> List[str]:
        """Filter the scope by occupancy.

        Args:
            squares (SquareStats): Current occupancy.
            previous (Optional[PreviousMove]): Opponent's last move, used for
                en passant.
            enemy_space (Iterable[str]): Squares the opponent controls; the
                king may not step onto them.

        Returns:
            List[str]: Destinations in ray order for sliders, otherwise sorted.
        """
        own = squares.used[self.color]
        enemy = squares.used[self.opponent]
        if self.is_slider:
            moves: List[str] = []
            for ray in self.rays():
                for sq in ray:
                    if sq in own:
                        break
                    moves.append(sq)
                    if sq in enemy:
                        break
            return moves
        if self.kind == PAWN:
            moves = []
            for sq in self.advances():
                if sq not in squares.free:
                    break
                moves.append(sq)
            moves.extend(sorted(sq for sq in self.diagonals() if sq in enemy))
            ep = self.en_passant_square(previous)
            if ep is not None and ep in squares.free:
                moves.append(ep)
            return moves
        if self.kind == KING:
            controlled = set(enemy_space)
            return sorted(
                sq
                for sq in self.scope()
                if sq in enemy or (sq in squares.free and sq not in controlled)
            )
        return sorted(sq for sq in self.scope() if sq not in own)
