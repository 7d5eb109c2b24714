from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


WHITE = "w"
BLACK = "b"
COLORS = (WHITE, BLACK)

PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING = "P", "N", "B", "R", "Q", "K"
PIECE_KINDS = (PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING)
PROMOTION_PIECES = {KNIGHT, BISHOP, ROOK, QUEEN}

# Move types handed over by the notation decoder
NORMAL = "normal"
CAPTURE = "capture"
KING_MOVE = "king"
KING_CAPTURE = "king_capture"
CASTLE_SHORT = "O-O"
CASTLE_LONG = "O-O-O"
MOVE_TYPES = (NORMAL, CAPTURE, KING_MOVE, KING_CAPTURE, CASTLE_SHORT, CASTLE_LONG)

SHORT = "short"
LONG = "long"
CASTLING_SIDES = {CASTLE_SHORT: SHORT, CASTLE_LONG: LONG}

FILES = "abcdefgh"
RANKS = "12345678"


def opponent(color: str) -> str:
    return BLACK if color == WHITE else WHITE


def str_to_coords(s: str) -> Tuple[int, int]:
    """Convert algebraic notation into 0-based ``(file, rank)`` coordinates.

    Args:
        s (str): Square name such as ``"e4"``.

    Returns:
        Tuple[int, int]: File and rank indices, both in range 0..7.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if not isinstance(s, str) or len(s) != 2 or s[0] not in FILES or s[1] not in RANKS:
        raise ValueError(f"invalid square: {s!r}")
    return FILES.index(s[0]), RANKS.index(s[1])


def coords_to_str(file: int, rank: int) -> str:
    """Convert 0-based coordinates into algebraic notation.

    Raises:
        ValueError: If either coordinate is off the board.
    """
    if not (0 <= file < 8 and 0 <= rank < 8):
        raise ValueError(f"invalid coordinates: ({file}, {rank})")
    return FILES[file] + RANKS[rank]


def is_square(s: Any) -> bool:
    return isinstance(s, str) and len(s) == 2 and s[0] in FILES and s[1] in RANKS


def shift(sq: str, df: int, dr: int) -> Optional[str]:
    """Return the square ``df`` files and ``dr`` ranks away, or None off the board."""
    f, r = str_to_coords(sq)
    tf, tr = f + df, r + dr
    if 0 <= tf < 8 and 0 <= tr < 8:
        return FILES[tf] + RANKS[tr]
    return None


SQUARES = tuple(f + r for r in RANKS for f in FILES)


def matches_origin(square: str, hint: str) -> bool:
    """Tell whether ``square`` satisfies a disambiguation hint.

    An empty hint matches everything, a file letter or rank digit matches that
    file or rank, and a full square matches only itself.
    """
    if not hint:
        return True
    if len(hint) == 1:
        return square[0] == hint if hint in FILES else square[1] == hint
    return square == hint


@dataclass(frozen=True)
class Move:
    """Structured move as produced by an external notation decoder.

    Attributes:
        color (str): Side making the move, ``"w"`` or ``"b"``.
        kind (str): Kind of the moving piece (``"P"``, ``"N"``, ...).
        move_type (str): One of ``MOVE_TYPES``.
        to_sq (Optional[str]): Destination square; unused for castling.
        origin (str): Origin hint: empty, a file, a rank, or a full square.
        promotion (Optional[str]): Promotion kind for a pawn reaching its last
            rank; a queen is assumed when omitted.
    """

    color: str
    kind: str
    move_type: str
    to_sq: Optional[str] = None
    origin: str = ""
    promotion: Optional[str] = None

    def __post_init__(self) -> None:
        if self.color not in COLORS:
            raise ValueError(f"invalid color: {self.color!r}")
        if self.kind not in PIECE_KINDS:
            raise ValueError(f"invalid piece kind: {self.kind!r}")
        if self.move_type not in MOVE_TYPES:
            raise ValueError(f"invalid move type: {self.move_type!r}")
        king_types = (KING_MOVE, KING_CAPTURE, CASTLE_SHORT, CASTLE_LONG)
        if (self.kind == KING) != (self.move_type in king_types):
            raise ValueError(f"move type {self.move_type!r} does not fit piece {self.kind!r}")
        if not self.is_castle and not is_square(self.to_sq):
            raise ValueError(f"invalid destination square: {self.to_sq!r}")
        if self.origin and not (
            is_square(self.origin)
            or (len(self.origin) == 1 and (self.origin in FILES or self.origin in RANKS))
        ):
            raise ValueError(f"invalid origin hint: {self.origin!r}")
        if self.promotion is not None:
            if self.kind != PAWN:
                raise ValueError("only pawns can promote")
            if self.promotion not in PROMOTION_PIECES:
                raise ValueError(f"invalid promotion piece: {self.promotion!r}")

    @property
    def is_castle(self) -> bool:
        return self.move_type in CASTLING_SIDES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "color": self.color,
            "kind": self.kind,
            "type": self.move_type,
            "to": self.to_sq,
            "origin": self.origin,
            "promotion": self.promotion,
        }

    def __str__(self) -> str:
        if self.is_castle:
            return f"{self.color} {self.move_type}"
        sep = "x" if self.move_type in (CAPTURE, KING_CAPTURE) else ""
        promo = f"={self.promotion}" if self.promotion else ""
        return f"{self.color} {self.kind}{self.origin}{sep}{self.to_sq}{promo}"
