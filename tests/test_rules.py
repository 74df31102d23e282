import pytest

from chesscore.core import (
    KNIGHT_VALUE,
    PAWN_VALUE,
    ROOK_VALUE,
    Color,
    Move,
    MoveType,
    PieceType,
    parse_square,
    square_bb,
)
from chesscore.position import Position
from chesscore.rules import gives_check, legal, see_ge

START = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def pos(fen):
    return Position().set(fen)


def mv(a, b, kind=MoveType.NORMAL, promo=PieceType.KNIGHT):
    return Move.make(parse_square(a), parse_square(b), kind, promo)


def test_start_position_pawn_push_is_legal_and_quiet():
    p = pos(START)
    assert legal(p, mv("e2", "e4")) is True
    assert gives_check(p, mv("e2", "e4")) is False


def test_pinned_bishop_cannot_leave_the_line():
    p = pos("4r1k1/8/8/8/8/8/4B3/4K3 w - - 0 1")
    assert legal(p, mv("e2", "d3")) is False
    assert legal(p, mv("e1", "d1")) is True


def test_pinned_rook_may_move_along_the_pin():
    p = pos("4r1k1/8/8/8/8/8/4R3/4K3 w - - 0 1")
    assert legal(p, mv("e2", "e5")) is True
    assert legal(p, mv("e2", "e8")) is True
    assert legal(p, mv("e2", "d2")) is False


def test_king_cannot_step_along_the_checking_ray():
    p = pos("4k3/8/8/8/8/8/8/r3K3 w - - 0 1")
    assert legal(p, mv("e1", "f1")) is False
    assert legal(p, mv("e1", "d1")) is False
    assert legal(p, mv("e1", "d2")) is True


def test_en_passant_exposing_king_on_rank_is_illegal():
    p = pos("8/8/8/KPp4r/8/8/8/7k w - c6 0 1")
    assert p.ep_square() == parse_square("c6")
    assert legal(p, mv("b5", "c6", MoveType.EN_PASSANT)) is False


def test_en_passant_without_pinner_is_legal():
    p = pos("8/8/8/KPp5/8/8/8/7k w - c6 0 1")
    assert legal(p, mv("b5", "c6", MoveType.EN_PASSANT)) is True


def test_castling_through_attacked_square_is_illegal():
    p = pos("r3kr2/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    assert legal(p, mv("e1", "h1", MoveType.CASTLING)) is False
    assert legal(p, mv("e1", "a1", MoveType.CASTLING)) is True


def test_castling_both_sides_legal_when_unattacked():
    p = pos("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    assert legal(p, mv("e1", "h1", MoveType.CASTLING)) is True
    assert legal(p, mv("e1", "a1", MoveType.CASTLING)) is True


def test_direct_rook_check():
    p = pos("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    assert gives_check(p, mv("a1", "a8")) is True
    assert gives_check(p, mv("a1", "a7")) is False


def test_discovered_check_by_knight_move():
    p = pos("4k3/8/8/8/8/8/4N3/4R1K1 w - - 0 1")
    assert p.blockers_for_king(Color.BLACK) & square_bb(parse_square("e2"))
    assert gives_check(p, mv("e2", "c3")) is True


def test_promotion_checks_depend_on_piece():
    p = pos("7k/P7/8/8/8/8/8/K7 w - - 0 1")
    assert gives_check(p, mv("a7", "a8", MoveType.PROMOTION, PieceType.QUEEN)) is True
    assert gives_check(p, mv("a7", "a8", MoveType.PROMOTION, PieceType.ROOK)) is True
    assert gives_check(p, mv("a7", "a8", MoveType.PROMOTION, PieceType.KNIGHT)) is False


def test_en_passant_discovered_check_through_captured_pawn():
    p = pos("8/8/8/R2pP2k/8/8/8/4K3 w - d6 0 1")
    m = mv("e5", "d6", MoveType.EN_PASSANT)
    assert legal(p, m) is True
    assert gives_check(p, m) is True


def test_castling_rook_gives_check():
    p = pos("5k2/8/8/8/8/8/8/4K2R w K - 0 1")
    assert gives_check(p, mv("e1", "h1", MoveType.CASTLING)) is True


@pytest.mark.parametrize(
    "fen,move",
    [
        ("4k3/8/8/8/8/8/8/R3K3 w - - 0 1", ("a1", "a8")),
        ("4k3/8/8/8/8/8/8/R3K3 w - - 0 1", ("a1", "a7")),
        ("4k3/8/8/8/8/8/4N3/4R1K1 w - - 0 1", ("e2", "c3")),
        (START, ("g1", "f3")),
    ],
)
def test_gives_check_matches_checkers_after_move(fen, move):
    p = pos(fen)
    m = mv(*move)
    expected = gives_check(p, m)
    p.do_move(m)
    assert bool(p.checkers()) == expected


def test_see_quiet_pawn_push():
    p = pos(START)
    assert see_ge(p, mv("e2", "e4"), 0) is True
    assert see_ge(p, mv("e2", "e4"), 1) is False


def test_see_pawn_takes_defended_knight():
    p = pos("4k3/8/3p4/4n3/3P4/8/8/4K3 w - - 0 1")
    m = mv("d4", "e5")
    gain = KNIGHT_VALUE - PAWN_VALUE
    assert see_ge(p, m, gain) is True
    assert see_ge(p, m, gain + 1) is False


def test_see_rook_takes_defended_pawn_loses_material():
    p = pos("4k3/8/3p4/4p3/8/8/8/4R1K1 w - - 0 1")
    m = mv("e1", "e5")
    net = PAWN_VALUE - ROOK_VALUE
    assert see_ge(p, m, 0) is False
    assert see_ge(p, m, net) is True
    assert see_ge(p, m, net + 1) is False


def test_see_non_normal_moves_only_pass_non_positive_threshold():
    p = pos("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    m = mv("e1", "h1", MoveType.CASTLING)
    assert see_ge(p, m, 0) is True
    assert see_ge(p, m, 1) is False


@pytest.mark.parametrize("func", [legal, gives_check, see_ge])
def test_rejects_none_and_null_moves(func):
    p = pos(START)
    with pytest.raises(ValueError):
        func(p, Move.none())
    with pytest.raises(ValueError):
        func(p, Move.null())