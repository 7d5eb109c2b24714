from __future__ import annotations

import pytest

from src.engine.board import Board, BoardInvariantError
from src.engine.move import (
    BLACK,
    CAPTURE,
    KING,
    KING_CAPTURE,
    KING_MOVE,
    KNIGHT,
    NORMAL,
    PAWN,
    QUEEN,
    ROOK,
    WHITE,
    Move,
)
from src.engine.piece import Piece
from src.engine.status import PreviousMove


def snapshot(b: Board):
    return b.to_fen(), b.pieces, b.get_status().to_dict()


def test_e4_e5_alternates_turn(start_board: Board) -> None:
    b = start_board
    assert b.play(Move(WHITE, PAWN, NORMAL, "e4", "e"))
    assert b.turn == BLACK
    assert b.play(Move(BLACK, PAWN, NORMAL, "e5", "e"))
    assert b.turn == WHITE

    status = b.get_status()
    assert status.previous_move[WHITE] == PreviousMove(PAWN, "e2", "e4")
    assert status.previous_move[BLACK] == PreviousMove(PAWN, "e7", "e5")
    # The pawns face each other: no en passant for anyone
    for pawn in b.get_pieces_by_color(WHITE):
        assert pawn.en_passant_square(status.previous_move[BLACK]) is None
    assert b.get_piece_by_square("e4") == Piece(WHITE, PAWN, "e4")
    assert b.get_piece_by_square("e2") is None


def test_move_replaces_piece_instance(start_board: Board) -> None:
    before = start_board.get_piece_by_square("g1")
    assert start_board.play(Move(WHITE, KNIGHT, NORMAL, "f3"))
    after = start_board.get_piece_by_square("f3")
    assert before == Piece(WHITE, KNIGHT, "g1")
    assert after == Piece(WHITE, KNIGHT, "f3")
    assert after is not before


def test_rejected_move_leaves_board_identical(start_board: Board) -> None:
    before = snapshot(start_board)
    assert not start_board.play(Move(WHITE, PAWN, NORMAL, "e5", "e"))  # three squares
    assert not start_board.play(Move(WHITE, ROOK, NORMAL, "a3"))  # blocked by own pawn
    assert not start_board.play(Move(WHITE, QUEEN, NORMAL, "h5"))  # blocked
    assert not start_board.play(Move(WHITE, KNIGHT, NORMAL, "d2"))  # own piece
    assert snapshot(start_board) == before


def test_out_of_turn_move_is_rejected(start_board: Board) -> None:
    before = snapshot(start_board)
    assert not start_board.play(Move(BLACK, PAWN, NORMAL, "e5", "e"))
    assert snapshot(start_board) == before


def test_missing_piece_is_rejected(start_board: Board) -> None:
    # No white knight stands on the c-file
    assert not start_board.play(Move(WHITE, KNIGHT, NORMAL, "d3", "c"))


def test_disambiguation_by_file() -> None:
    fen = "4k3/8/8/8/8/2N3N1/8/4K3 w - -"
    b = Board.from_fen(fen)
    assert b.play(Move(WHITE, KNIGHT, NORMAL, "e4", "g"))
    assert b.get_piece_by_square("g3") is None
    assert b.get_piece_by_square("c3") == Piece(WHITE, KNIGHT, "c3")


def test_disambiguation_without_hint_takes_first_viable() -> None:
    b = Board.from_fen("4k3/8/8/8/8/2N3N1/8/4K3 w - -")
    assert b.play(Move(WHITE, KNIGHT, NORMAL, "e4"))
    assert b.get_piece_by_square("c3") is None
    assert b.get_piece_by_square("g3") == Piece(WHITE, KNIGHT, "g3")


def test_disambiguation_by_rank_and_square() -> None:
    b = Board.from_fen("4k3/8/8/R7/8/8/8/R3K3 w - -")
    assert b.play(Move(WHITE, ROOK, NORMAL, "a3", "5"))
    assert b.get_piece_by_square("a1") == Piece(WHITE, ROOK, "a1")

    b = Board.from_fen("4k3/8/8/R7/8/8/8/R3K3 w - -")
    assert b.play(Move(WHITE, ROOK, NORMAL, "a3", "a1"))
    assert b.get_piece_by_square("a5") == Piece(WHITE, ROOK, "a5")


def test_first_candidate_blocked_second_moves() -> None:
    # The c3 knight is pinned against the king, so the g3 knight takes e4
    b = Board.from_fen("4k3/8/8/b7/8/2N3N1/8/4K3 w - -")
    assert b.play(Move(WHITE, KNIGHT, NORMAL, "e4"))
    assert b.get_piece_by_square("c3") == Piece(WHITE, KNIGHT, "c3")
    assert b.get_piece_by_square("e4") == Piece(WHITE, KNIGHT, "e4")


def test_capture_removes_opponent_piece() -> None:
    b = Board.from_fen("4k3/8/8/3p4/4P3/8/8/4K3 w - -")
    assert b.play(Move(WHITE, PAWN, CAPTURE, "d5", "e"))
    assert b.get_piece_by_square("d5") == Piece(WHITE, PAWN, "d5")
    assert b.get_pieces_by_color(BLACK) == [Piece(BLACK, KING, "e8")]


def test_pinned_piece_cannot_leave_the_line() -> None:
    b = Board.from_fen("k3r3/8/8/8/8/8/4R3/4K3 w - -")
    assert not b.play(Move(WHITE, ROOK, NORMAL, "d2"))
    assert b.play(Move(WHITE, ROOK, NORMAL, "e3"))


def test_king_cannot_step_into_controlled_square() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/r3K3 w - -")
    assert b.is_check(WHITE)
    assert not b.play(Move(WHITE, KING, KING_MOVE, "d1"))
    # f1 lies behind the king on the rook's line
    assert not b.play(Move(WHITE, KING, KING_MOVE, "f1"))
    assert b.play(Move(WHITE, KING, KING_MOVE, "e2"))
    assert not b.is_check(WHITE)


def test_king_captures_unprotected_piece() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/3r4/4K3 w - -")
    assert b.play(Move(WHITE, KING, KING_CAPTURE, "d2"))
    assert b.get_piece_by_square("d2") == Piece(WHITE, KING, "d2")
    assert b.get_pieces_by_color(BLACK) == [Piece(BLACK, KING, "e8")]


def test_king_cannot_capture_protected_piece() -> None:
    b = Board.from_fen("3rk3/8/8/8/8/8/3r4/4K3 w - -")
    before = snapshot(b)
    assert not b.play(Move(WHITE, KING, KING_CAPTURE, "d2"))
    assert snapshot(b) == before


def test_no_move_may_capture_a_king() -> None:
    b = Board([Piece(WHITE, KING, "e1"), Piece(WHITE, ROOK, "e2"), Piece(BLACK, KING, "e8")])
    assert not b.play(Move(WHITE, ROOK, CAPTURE, "e8"))


def test_en_passant_capture_removes_passed_pawn() -> None:
    b = Board.from_fen("4k3/8/8/3Pp3/8/8/8/4K3 w - e6")
    assert b.play(Move(WHITE, PAWN, CAPTURE, "e6", "d"))
    assert b.get_piece_by_square("e6") == Piece(WHITE, PAWN, "e6")
    assert b.get_piece_by_square("e5") is None
    assert b.get_piece_by_square("d5") is None


def test_en_passant_after_played_double_step() -> None:
    b = Board.from_fen("4k3/4p3/8/3P4/8/8/8/4K3 w - -")
    assert b.play(Move(WHITE, KING, KING_MOVE, "f1"))
    assert b.play(Move(BLACK, PAWN, NORMAL, "e5", "e"))
    assert b.play(Move(WHITE, PAWN, CAPTURE, "e6", "d"))
    assert b.get_piece_by_square("e5") is None


def test_en_passant_expires_after_one_move() -> None:
    b = Board.from_fen("4k3/4p3/8/3P4/8/8/8/4K3 w - -")
    assert b.play(Move(WHITE, KING, KING_MOVE, "f1"))
    assert b.play(Move(BLACK, PAWN, NORMAL, "e5", "e"))
    assert b.play(Move(WHITE, KING, KING_MOVE, "g1"))
    assert b.play(Move(BLACK, KING, KING_MOVE, "f8"))
    assert not b.play(Move(WHITE, PAWN, CAPTURE, "e6", "d"))
    assert b.play(Move(WHITE, PAWN, NORMAL, "d6", "d"))


def test_promotion_defaults_to_queen() -> None:
    b = Board.from_fen("4k3/P7/8/8/8/8/8/4K3 w - -")
    assert b.play(Move(WHITE, PAWN, NORMAL, "a8", "a"))
    assert b.get_piece_by_square("a8") == Piece(WHITE, QUEEN, "a8")
    assert b.get_piece(WHITE, PAWN) is None


def test_promotion_to_requested_kind_with_capture() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/6p1/4K2R b - -")
    assert b.play(Move(BLACK, PAWN, CAPTURE, "h1", "g", promotion=KNIGHT))
    assert b.get_piece_by_square("h1") == Piece(BLACK, KNIGHT, "h1")
    assert b.get_piece(WHITE, ROOK) is None


def test_promotion_hint_before_last_rank_is_rejected(start_board: Board) -> None:
    assert not start_board.play(Move(WHITE, PAWN, NORMAL, "e3", "e", promotion=QUEEN))


def test_status_snapshot_is_detached(start_board: Board) -> None:
    status = start_board.get_status()
    status.space[WHITE].clear()
    status.castling[WHITE]["short"] = False
    fresh = start_board.get_status()
    assert fresh.space[WHITE]
    assert fresh.castling[WHITE]["short"] is True


def test_board_requires_one_king_per_color() -> None:
    with pytest.raises(BoardInvariantError):
        Board([Piece(WHITE, KING, "e1")])
    with pytest.raises(BoardInvariantError):
        Board([Piece(WHITE, KING, "e1"), Piece(BLACK, KING, "e8"), Piece(BLACK, KING, "a8")])


def test_board_rejects_two_pieces_on_one_square() -> None:
    with pytest.raises(BoardInvariantError):
        Board([Piece(WHITE, KING, "e1"), Piece(BLACK, KING, "e8"), Piece(BLACK, ROOK, "e1")])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"color": "x", "kind": PAWN, "move_type": NORMAL, "to_sq": "e4"},
        {"color": WHITE, "kind": "X", "move_type": NORMAL, "to_sq": "e4"},
        {"color": WHITE, "kind": PAWN, "move_type": "jump", "to_sq": "e4"},
        {"color": WHITE, "kind": PAWN, "move_type": NORMAL, "to_sq": "e9"},
        {"color": WHITE, "kind": KING, "move_type": NORMAL, "to_sq": "e2"},
        {"color": WHITE, "kind": ROOK, "move_type": KING_MOVE, "to_sq": "e2"},
        {"color": WHITE, "kind": PAWN, "move_type": NORMAL, "to_sq": "e4", "origin": "z"},
        {"color": WHITE, "kind": ROOK, "move_type": NORMAL, "to_sq": "a8", "promotion": QUEEN},
        {"color": WHITE, "kind": PAWN, "move_type": NORMAL, "to_sq": "a8", "promotion": KING},
    ],
)
def test_malformed_move_raises(kwargs) -> None:
    with pytest.raises(ValueError):
        Move(**kwargs)


def test_en_passant_rejected_when_it_exposes_king_on_rank() -> None:
    # Both pawns leave the fifth rank, opening it for the h5 rook
    b = Board.from_fen("8/8/8/KPp4r/8/8/8/4k3 w - c6")
    before = snapshot(b)
    assert not b.play(Move(WHITE, PAWN, CAPTURE, "c6", "b"))
    assert snapshot(b) == before
    assert b.play(Move(WHITE, PAWN, NORMAL, "b6", "b"))


def test_en_passant_only_takes_a_pawn() -> None:
    pieces = [
        Piece(WHITE, KING, "e1"),
        Piece(WHITE, KNIGHT, "e4"),
        Piece(BLACK, KING, "e8"),
        Piece(BLACK, PAWN, "d4"),
    ]
    b = Board(pieces, turn=BLACK, previous_move={WHITE: PreviousMove(PAWN, "e2", "e4")})
    assert not b.play(Move(BLACK, PAWN, CAPTURE, "e3", "d"))
    assert b.get_piece_by_square("e4") == Piece(WHITE, KNIGHT, "e4")
    assert b.get_piece_by_square("d4") == Piece(BLACK, PAWN, "d4")
