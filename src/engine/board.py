from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .move import (
    BISHOP,
    BLACK,
    CAPTURE,
    CASTLE_LONG,
    CASTLE_SHORT,
    CASTLING_SIDES,
    COLORS,
    FILES,
    KING,
    KING_CAPTURE,
    KING_MOVE,
    KNIGHT,
    LONG,
    NORMAL,
    PAWN,
    PIECE_KINDS,
    QUEEN,
    ROOK,
    SHORT,
    WHITE,
    Move,
    coords_to_str,
    matches_origin,
    opponent,
    str_to_coords,
)
from .oracle import control
from .piece import LAST_RANK, Piece
from .squares import SquareStats
from .status import PreviousMove, Status, no_castling


logger = logging.getLogger(__name__)


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"

BACK_RANK = (ROOK, KNIGHT, BISHOP, QUEEN, KING, BISHOP, KNIGHT, ROOK)


class BoardInvariantError(RuntimeError):
    """The piece set is structurally impossible, e.g. a king is missing."""


@dataclass(frozen=True)
class CastlingPath:
    king_from: str
    king_to: str
    rook_from: str
    rook_to: str
    between: Tuple[str, ...]  # must be empty
    transit: Tuple[str, ...]  # must not be controlled by the opponent


CASTLING_PATHS: Dict[str, Dict[str, CastlingPath]] = {
    WHITE: {
        SHORT: CastlingPath("e1", "g1", "h1", "f1", ("f1", "g1"), ("f1", "g1")),
        LONG: CastlingPath("e1", "c1", "a1", "d1", ("b1", "c1", "d1"), ("d1", "c1")),
    },
    BLACK: {
        SHORT: CastlingPath("e8", "g8", "h8", "f8", ("f8", "g8"), ("f8", "g8")),
        LONG: CastlingPath("e8", "c8", "a8", "d8", ("b8", "c8", "d8"), ("d8", "c8")),
    },
}


def standard_pieces() -> List[Piece]:
    pieces: List[Piece] = []
    for color, back, front in ((WHITE, "1", "2"), (BLACK, "8", "7")):
        for file, kind in zip(FILES, BACK_RANK):
            pieces.append(Piece(color, kind, file + back))
            pieces.append(Piece(color, PAWN, file + front))
    return pieces


class Board:
    """Set of pieces, unique by square, plus the derived status.

    Notes:
    - ``play`` is the only public mutator. It either applies a move and fully
      recomputes the status, or returns False and leaves the board untouched.
    - Hypothetical positions are evaluated on ``fork()`` copies that share no
      mutable state with this board.
    """

    def __init__(
        self,
        pieces: Optional[Iterable[Piece]] = None,
        *,
        turn: str = WHITE,
        castling: Optional[Dict[str, Dict[str, bool]]] = None,
        previous_move: Optional[Dict[str, Optional[PreviousMove]]] = None,
    ) -> None:
        if turn not in COLORS:
            raise ValueError("turn must be 'w' or 'b'")
        self._pieces: Dict[str, Piece] = {}
        for piece in standard_pieces() if pieces is None else pieces:
            if piece.square in self._pieces:
                raise BoardInvariantError(f"two pieces on {piece.square}")
            self._pieces[piece.square] = piece
        for color in COLORS:
            kings = [p for p in self._pieces.values() if p.color == color and p.kind == KING]
            if len(kings) != 1:
                raise BoardInvariantError(f"expected one {color} king, found {len(kings)}")

        rights = no_castling()
        source = castling if castling is not None else self._home_castling()
        for color in COLORS:
            for side in (SHORT, LONG):
                rights[color][side] = bool(source.get(color, {}).get(side, False))
        previous: Dict[str, Optional[PreviousMove]] = {WHITE: None, BLACK: None}
        previous.update(previous_move or {})

        self._status = Status(
            turn=turn,
            squares=SquareStats.from_pieces(self._pieces.values()),
            previous_move=previous,
            castling=rights,
        )
        self._recompute()

    @classmethod
    def startpos(cls) -> "Board":
        return cls()

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from the leading fields of a FEN string.

        Only piece placement, side to move, castling availability and the
        en-passant target are read; move counters are ignored.

        Args:
            fen (str): FEN string, at least the placement field.

        Returns:
            Board: Board holding the described position.

        Raises:
            ValueError: If a field is malformed.
            BoardInvariantError: If the placement lacks a king for either side.
        """
        if not fen or not isinstance(fen, str):
            raise ValueError("FEN must be a non-empty string")
        parts = fen.strip().split()
        if not parts or len(parts) > 6:
            raise ValueError("FEN must have between 1 and 6 fields")
        placement = parts[0]
        stm = parts[1] if len(parts) > 1 else WHITE
        castling = parts[2] if len(parts) > 2 else "-"
        ep = parts[3] if len(parts) > 3 else "-"

        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError("FEN board must have 8 ranks")
        pieces: List[Piece] = []
        for rank_idx, rank in enumerate(ranks[::-1]):  # start from rank 1 (bottom)
            file_idx = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise ValueError("invalid empty count in FEN rank")
                    file_idx += n
                    continue
                if ch.upper() not in PIECE_KINDS:
                    raise ValueError(f"invalid piece in FEN: {ch!r}")
                if file_idx >= 8:
                    raise ValueError("too many squares in FEN rank")
                color = WHITE if ch.isupper() else BLACK
                pieces.append(Piece(color, ch.upper(), coords_to_str(file_idx, rank_idx)))
                file_idx += 1
            if file_idx != 8:
                raise ValueError("rank does not sum to 8 squares in FEN")

        if stm not in COLORS:
            raise ValueError("side to move must be 'w' or 'b'")

        rights = no_castling()
        if castling != "-":
            for ch in castling:
                if ch not in "KQkq":
                    raise ValueError("invalid castling rights")
                rights[WHITE if ch.isupper() else BLACK][SHORT if ch in "Kk" else LONG] = True

        previous: Dict[str, Optional[PreviousMove]] = {WHITE: None, BLACK: None}
        if ep != "-":
            try:
                file_idx, rank_idx = str_to_coords(ep)
            except ValueError as e:
                raise ValueError("invalid en passant square") from e
            # The target square implies the double step that was just played
            if rank_idx == 2:
                mover, start, passed, landed = WHITE, 1, 2, 3
            elif rank_idx == 5:
                mover, start, passed, landed = BLACK, 6, 5, 4
            else:
                raise ValueError("invalid en passant square rank")
            if stm != opponent(mover):
                raise ValueError("en passant square does not fit the side to move")
            by_square = {p.square: p for p in pieces}
            start_sq, landed_sq = coords_to_str(file_idx, start), coords_to_str(file_idx, landed)
            if by_square.get(landed_sq) != Piece(mover, PAWN, landed_sq):
                raise ValueError(f"no pawn on {landed_sq} for en passant square {ep}")
            if start_sq in by_square or coords_to_str(file_idx, passed) in by_square:
                raise ValueError(f"en passant square {ep} does not follow a double step")
            previous[mover] = PreviousMove(PAWN, start_sq, landed_sq)

        return cls(pieces, turn=stm, castling=rights, previous_move=previous)

    def to_fen(self) -> str:
        """Serialize placement, side to move, castling and en-passant target."""
        rows: List[str] = []
        for rank_idx in range(7, -1, -1):
            run = 0
            row: List[str] = []
            for file_idx in range(8):
                piece = self._pieces.get(coords_to_str(file_idx, rank_idx))
                if piece is None:
                    run += 1
                    continue
                if run > 0:
                    row.append(str(run))
                    run = 0
                row.append(piece.kind if piece.color == WHITE else piece.kind.lower())
            if run > 0:
                row.append(str(run))
            rows.append("".join(row))

        rights = self._status.castling
        castling = "".join(
            ch
            for ch, color, side in (
                ("K", WHITE, SHORT),
                ("Q", WHITE, LONG),
                ("k", BLACK, SHORT),
                ("q", BLACK, LONG),
            )
            if rights[color][side]
        )
        ep = "-"
        last = self._status.previous_move[opponent(self._status.turn)]
        if last is not None and last.kind == PAWN:
            ff, fr = str_to_coords(last.from_sq)
            tf, tr = str_to_coords(last.to_sq)
            if ff == tf and abs(tr - fr) == 2:
                ep = coords_to_str(tf, (fr + tr) // 2)
        return f"{'/'.join(rows)} {self._status.turn} {castling or '-'} {ep}"

    # --- Read accessors ---
    def __iter__(self) -> Iterator[Piece]:
        return iter(self.pieces)

    def __len__(self) -> int:
        return len(self._pieces)

    @property
    def pieces(self) -> List[Piece]:
        return [self._pieces[sq] for sq in sorted(self._pieces)]

    @property
    def turn(self) -> str:
        return self._status.turn

    def get_status(self) -> Status:
        """Return a snapshot of the status; mutating it does not touch the board."""
        return copy.deepcopy(self._status)

    def get_piece(self, color: str, kind: str) -> Optional[Piece]:
        for piece in self.pieces:
            if piece.color == color and piece.kind == kind:
                return piece
        return None

    def get_piece_by_square(self, square: str) -> Optional[Piece]:
        return self._pieces.get(square)

    def get_pieces_by_color(self, color: str) -> List[Piece]:
        return [p for p in self.pieces if p.color == color]

    def king(self, color: str) -> Piece:
        king = self.get_piece(color, KING)
        if king is None:
            raise BoardInvariantError(f"no {color} king on the board")
        return king

    def is_check(self, color: Optional[str] = None) -> bool:
        """Return True if the king of ``color`` (default: side to move) is attacked."""
        c = self._status.turn if color is None else color
        if c not in COLORS:
            raise ValueError("color must be 'w' or 'b'")
        return self.king(c).square in self._status.attack[opponent(c)]

    # --- Move execution ---
    def play(self, move: Move) -> bool:
        """Try to play ``move``.

        Returns:
            bool: True if the move was legal and applied; False otherwise, in
                which case the board is left exactly as it was.
        """
        if move.color != self._status.turn:
            logger.debug("rejected %s: %s is not to move", move, move.color)
            return False
        candidates = self._pick(move)
        if not candidates:
            logger.debug("rejected %s: no matching piece", move)
            return False
        if move.is_castle:
            return self._castle(candidates[0], move)
        for piece in candidates:
            if not self._is_movable(piece, move) or self._leaves_king_attacked(piece, move):
                continue
            if piece.kind == KING and not self._king_may_move(piece, move):
                break
            self._move(piece, move)
            logger.debug("played %s from %s", move, piece.square)
            return True
        logger.debug("rejected %s: no legal candidate", move)
        return False

    def fork(self) -> "Board":
        """Return an independent copy for speculative play.

        Pieces are immutable values and are shared; the square index and the
        status are copied so nothing done to the fork reaches this board.
        """
        other = Board.__new__(Board)
        other._pieces = dict(self._pieces)
        other._status = copy.deepcopy(self._status)
        return other

    def is_legal(self, move: Move) -> bool:
        return self.fork().play(move)

    def generate_legal_moves(self) -> List[Move]:
        """Return every legal move for the side to move.

        Notes:
            Each candidate is played on a fork, so this costs one speculative
            game step per candidate.
        """
        return [m for m in self._candidate_moves() if self.is_legal(m)]

    def has_legal_moves(self) -> bool:
        return any(self.is_legal(m) for m in self._candidate_moves())

    def _candidate_moves(self) -> List[Move]:
        color = self._status.turn
        opp = opponent(color)
        squares = self._status.squares
        previous = self._status.previous_move[opp]
        moves: List[Move] = []
        for piece in self.get_pieces_by_color(color):
            for to_sq in piece.legal_moves(squares, previous, self._status.space[opp]):
                occupied = to_sq in squares.used[opp]
                if piece.kind == KING:
                    moves.append(Move(color, KING, KING_CAPTURE if occupied else KING_MOVE, to_sq))
                    continue
                # Diagonal pawn steps onto an empty square are en passant
                capture = occupied or (piece.kind == PAWN and to_sq[0] != piece.square[0])
                move_type = CAPTURE if capture else NORMAL
                if piece.kind == PAWN and str_to_coords(to_sq)[1] == LAST_RANK[color]:
                    for promo in (QUEEN, ROOK, BISHOP, KNIGHT):
                        moves.append(Move(color, PAWN, move_type, to_sq, piece.square, promo))
                else:
                    moves.append(Move(color, piece.kind, move_type, to_sq, piece.square))
            if piece.kind == KING:
                moves.append(Move(color, KING, CASTLE_SHORT))
                moves.append(Move(color, KING, CASTLE_LONG))
        return moves

    def _pick(self, move: Move) -> List[Piece]:
        if move.kind == KING:
            return [self.king(move.color)]
        return [
            p
            for p in self.get_pieces_by_color(move.color)
            if p.kind == move.kind and matches_origin(p.square, move.origin)
        ]

    def _is_movable(self, piece: Piece, move: Move) -> bool:
        target = self._pieces.get(move.to_sq)
        if target is not None and target.kind == KING:
            return False
        if move.promotion is not None and str_to_coords(move.to_sq)[1] != LAST_RANK[piece.color]:
            return False
        if self._is_en_passant(piece, move.to_sq):
            if self._passed_pawn(piece, move.to_sq) is None:
                return False
        status = self._status
        legal = piece.legal_moves(
            status.squares, status.previous_move[piece.opponent], status.space[piece.opponent]
        )
        return move.to_sq in legal

    def _is_en_passant(self, piece: Piece, to_sq: str) -> bool:
        return piece.kind == PAWN and to_sq[0] != piece.square[0] and to_sq not in self._pieces

    def _passed_pawn(self, piece: Piece, to_sq: str) -> Optional[Piece]:
        # The pawn taken en passant stands beside the mover, on the target file
        beside = self._pieces.get(to_sq[0] + piece.square[1])
        if beside is not None and beside.color == piece.opponent and beside.kind == PAWN:
            return beside
        return None

    def _leaves_king_attacked(self, piece: Piece, move: Move) -> bool:
        fork = self.fork()
        fork._move(piece, move)
        return fork.king(piece.color).square in fork._status.attack[piece.opponent]

    def _king_may_move(self, king: Piece, move: Move) -> bool:
        if move.move_type == KING_CAPTURE:
            # Take the captured piece off a fork, then judge a plain king move there
            fork = self.fork()
            fork._pieces.pop(move.to_sq, None)
            fork._recompute()
            return fork._king_may_move(king, replace(move, move_type=KING_MOVE))
        return move.to_sq not in self._status.space[king.opponent]

    def _castle(self, king: Piece, move: Move) -> bool:
        side = CASTLING_SIDES[move.move_type]
        path = CASTLING_PATHS[king.color][side]
        opp = king.opponent
        rook = self._pieces.get(path.rook_from)
        reason = None
        if not self._status.castling[king.color][side]:
            reason = "castling right revoked"
        elif king.square != path.king_from or rook != Piece(king.color, ROOK, path.rook_from):
            reason = "king or rook not on its home square"
        elif any(sq in self._pieces for sq in path.between):
            reason = "path is not empty"
        elif king.square in self._status.attack[opp]:
            reason = "king is in check"
        elif any(sq in self._status.space[opp] for sq in path.transit):
            reason = "king would cross a controlled square"
        else:
            fork = self.fork()
            fork._castle_pieces(king, rook, path)
            if fork.king(king.color).square in fork._status.attack[opp]:
                reason = "king would end in check"
        if reason is not None:
            logger.debug("rejected %s: %s", move, reason)
            return False
        self._castle_pieces(king, rook, path)
        logger.debug("played %s", move)
        return True

    # --- State transitions (no validation) ---
    def _castle_pieces(self, king: Piece, rook: Piece, path: CastlingPath) -> None:
        del self._pieces[king.square]
        del self._pieces[rook.square]
        self._pieces[path.king_to] = Piece(king.color, KING, path.king_to)
        self._pieces[path.rook_to] = Piece(rook.color, ROOK, path.rook_to)
        self._refresh(king, path.king_to, None)

    def _move(self, piece: Piece, move: Move) -> None:
        to_sq = move.to_sq
        captured = self._pieces.pop(to_sq, None)
        if captured is None and self._is_en_passant(piece, to_sq):
            passed = self._passed_pawn(piece, to_sq)
            if passed is not None:
                captured = self._pieces.pop(passed.square)
        del self._pieces[piece.square]
        kind = piece.kind
        if kind == PAWN and str_to_coords(to_sq)[1] == LAST_RANK[piece.color]:
            kind = move.promotion or QUEEN
        self._pieces[to_sq] = Piece(piece.color, kind, to_sq)
        self._refresh(piece, to_sq, captured)

    def _refresh(self, piece: Piece, to_sq: str, captured: Optional[Piece]) -> None:
        status = self._status
        status.turn = piece.opponent
        status.previous_move[piece.color] = PreviousMove(piece.kind, piece.square, to_sq)
        rights = status.castling[piece.color]
        if piece.kind == KING:
            rights[SHORT] = False
            rights[LONG] = False
        elif piece.kind == ROOK:
            for side, path in CASTLING_PATHS[piece.color].items():
                if piece.square == path.rook_from:
                    rights[side] = False
        if captured is not None and captured.kind == ROOK:
            for side, path in CASTLING_PATHS[captured.color].items():
                if captured.square == path.rook_from:
                    status.castling[captured.color][side] = False
        self._recompute()

    def _recompute(self) -> None:
        squares = SquareStats.from_pieces(self._pieces.values())
        self._status.squares = squares
        self._status.space, self._status.attack = control(self._pieces.values(), squares)

    def _home_castling(self) -> Dict[str, Dict[str, bool]]:
        rights = no_castling()
        for color, paths in CASTLING_PATHS.items():
            for side, path in paths.items():
                rights[color][side] = (
                    self._pieces.get(path.king_from) == Piece(color, KING, path.king_from)
                    and self._pieces.get(path.rook_from) == Piece(color, ROOK, path.rook_from)
                )
        return rights
