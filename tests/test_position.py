import pytest

from chesscore.core import (
    CastlingRights,
    Color,
    Move,
    MoveType,
    Piece,
    PieceType,
    SQ_NONE,
    parse_square,
    square_bb,
)
from chesscore.position import Position
from chesscore.zobrist import ZobristKeys

START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def mv(a, b, mtype=MoveType.NORMAL, promo=PieceType.KNIGHT):
    return Move.make(parse_square(a), parse_square(b), mtype, promo)


def fresh(fen):
    return Position().set(fen)


def test_start_fen_round_trip():
    assert fresh(START).fen() == START


def test_start_is_ok_and_counts():
    pos = fresh(START)
    assert pos.pos_is_ok()
    assert pos.count(PieceType.PAWN) == 16
    assert pos.king_square(Color.WHITE) == parse_square("e1")


def test_do_undo_restores_state():
    pos = fresh(START)
    key = pos.key()
    m = mv("e2", "e4")
    pos.do_move(m)
    assert pos.side_to_move() == Color.BLACK
    pos.undo_move(m)
    assert pos.fen() == START
    assert pos.key() == key


def test_incremental_keys_match_fresh():
    pos = fresh(START)
    for m in (mv("e2", "e4"), mv("d7", "d5"), mv("e4", "d5")):
        pos.do_move(m)
    ref = fresh(pos.fen())
    assert pos.key() == ref.key()
    assert pos.material_key() == ref.material_key()
    assert pos.pawn_key() == ref.pawn_key()
    assert pos.captured_piece() == Piece.B_PAWN


def test_castling_move():
    pos = fresh("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    dp = pos.do_move(mv("e1", "h1", MoveType.CASTLING))
    assert pos.fen() == "r3k2r/8/8/8/8/8/8/R4RK1 b kq - 1 1"
    assert dp.dirty_num == 2
    ref = fresh(pos.fen())
    assert pos.key() == ref.key()
    assert pos.non_pawn_key(Color.WHITE) == ref.non_pawn_key(Color.WHITE)
    pos.undo_move(mv("e1", "h1", MoveType.CASTLING))
    assert pos.fen() == "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"


def test_promotion():
    pos = fresh("8/P7/8/8/8/8/8/k6K w - - 0 1")
    m = mv("a7", "a8", MoveType.PROMOTION, PieceType.QUEEN)
    pos.do_move(m)
    assert pos.fen() == "Q7/8/8/8/8/8/8/k6K b - - 0 1"
    ref = fresh(pos.fen())
    assert pos.material_key() == ref.material_key()
    assert pos.key() == ref.key()
    assert pos.non_pawn_material(Color.WHITE) == 2538


def test_en_passant_square_kept_only_when_capturable():
    assert fresh("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2").ep_square() == parse_square("d6")
    assert fresh("4k3/8/8/3p4/8/8/8/4K3 w - d6 0 2").ep_square() == SQ_NONE


def test_en_passant_capture_keys():
    fen = "4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2"
    pos = fresh(fen)
    m = mv("e5", "d6", MoveType.EN_PASSANT)
    pos.do_move(m)
    assert pos.empty(parse_square("d5"))
    assert pos.key() == fresh(pos.fen()).key()
    pos.undo_move(m)
    assert pos.fen() == fen


def test_repetition():
    pos = fresh(START)
    moves = [mv("g1", "f3"), mv("g8", "f6"), mv("f3", "g1")]
    for m in moves:
        pos.do_move(m)
    assert pos.upcoming_repetition(4)
    pos.do_move(mv("f6", "g8"))
    assert pos.is_repetition(5)
    assert not pos.is_repetition(4)
    assert pos.has_repeated()


def test_null_move():
    pos = fresh(START)
    key = pos.key()
    pos.do_null_move()
    assert pos.side_to_move() == Color.BLACK
    assert pos.key() == key ^ pos.keys.side
    pos.undo_null_move()
    assert pos.key() == key


def test_null_move_in_check_rejected():
    pos = fresh("4k3/8/8/8/8/8/8/4R1K1 b - - 0 1")
    with pytest.raises(ValueError):
        pos.do_null_move()


def test_checkers_and_pins():
    assert fresh("4k3/8/8/8/8/8/8/4R1K1 b - - 0 1").checkers() == square_bb(parse_square("e1"))
    pos = fresh("4k3/4n3/8/8/8/8/8/4R1K1 b - - 0 1")
    assert pos.blockers_for_king(Color.BLACK) == square_bb(parse_square("e7"))
    assert pos.pinners(Color.WHITE) == square_bb(parse_square("e1"))


def test_flip_twice_is_identity():
    pos = fresh(START)
    pos.do_move(mv("e2", "e4"))
    before = pos.fen()
    pos.flip()
    assert pos.side_to_move() == Color.WHITE
    pos.flip()
    assert pos.fen() == before


def test_set_from_code():
    pos = Position().set_from_code("KBPKN", Color.WHITE)
    assert pos.count(PieceType.BISHOP, Color.WHITE) == 1
    assert pos.count(PieceType.KNIGHT, Color.BLACK) == 1
    assert pos.count(PieceType.PAWN, Color.WHITE) == 1


def test_set_from_code_rejects_bad_code():
    with pytest.raises(ValueError):
        Position().set_from_code("QK", Color.WHITE)


def test_rule50_key_adjustment():
    base = fresh("4k3/8/8/8/8/8/8/4K2R w - - 0 1")
    late = fresh("4k3/8/8/8/8/8/8/4K2R w - - 14 1")
    assert late.key() == base.key() ^ ZobristKeys.rule50_key(0)


def test_castling_queries():
    pos = fresh(START)
    assert pos.castling_rights(Color.WHITE) == CastlingRights.WHITE_CASTLING
    assert pos.castling_impeded(CastlingRights.WHITE_OO)
    assert pos.castling_rook_square(CastlingRights.WHITE_OOO) == parse_square("a1")


def test_diagram_contains_fen():
    pos = fresh(START)
    assert f"Fen: {START}" in pos.diagram()


def test_bad_fen_errors():
    with pytest.raises(ValueError):
        Position().set("")
    with pytest.raises(ValueError):
        Position().set("4k3/8/8/8/8/8/8/4K3 w K - 0 1")


def test_undo_without_move():
    with pytest.raises(RuntimeError):
        fresh(START).undo_move(mv("e2", "e4"))