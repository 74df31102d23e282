import itertools

import pytest

from chesscore.core import PIECES, Color, Move, Piece, PieceType, attacks_bb, iter_squares, parse_square
from chesscore.zobrist import (
    CuckooTable,
    PRNG,
    ZobristKeys,
    default_cuckoo,
    default_keys,
    h1,
    h2,
)


def test_prng_rejects_zero_seed():
    with pytest.raises(ValueError):
        PRNG(0)


def test_default_keys_match_explicit_seed():
    keys = ZobristKeys(1070372)
    d = default_keys()
    assert keys.psq == d.psq
    assert keys.enpassant == d.enpassant
    assert keys.castling == d.castling
    assert (keys.side, keys.no_pawns) == (d.side, d.no_pawns)
    assert default_keys() is d


def test_pawn_keys_zero_on_promotion_ranks():
    keys = default_keys()
    for f in range(8):
        assert keys.psq[Piece.W_PAWN][56 + f] == 0
        assert keys.psq[Piece.B_PAWN][f] == 0
        assert keys.psq[Piece.W_PAWN][8 + f] != 0 and keys.psq[Piece.B_PAWN][48 + f] != 0


def test_unused_piece_slots_are_zero():
    keys = default_keys()
    for idx in (0, 7, 8, 15):
        assert list(keys.psq[idx]) == [0] * 64


def test_all_keys_distinct():
    keys = default_keys()
    values = [v for pc in PIECES for v in keys.psq[pc] if v]
    values += list(keys.enpassant) + list(keys.castling) + [keys.side, keys.no_pawns]
    assert len(set(values)) == len(values)


def test_rule50_key_buckets_distinct():
    values = [ZobristKeys.rule50_key(b) for b in range(10)]
    assert len(set(values)) == len(values)
    assert all(0 <= v < 2**64 for v in values)


def test_hash_functions():
    for key in (0, 0xDEADBEEFCAFEBABE, 2**64 - 1, 123456789):
        assert 0 <= h1(key) < 8192
        assert 0 <= h2(key) < 8192
        assert h1(key) == h1(key ^ (0xFFFF << 13))
        assert h2(key) == h2(key ^ 0xFFFF)


def test_cuckoo_counts_reversible_moves():
    assert default_cuckoo().count == 3668
    assert len(default_cuckoo()) == 3668


def _move_key(keys, piece, a, b):
    return keys.psq[piece][a] ^ keys.psq[piece][b] ^ keys.side


def test_cuckoo_finds_knight_moves():
    keys = default_keys()
    table = default_cuckoo()
    g1 = parse_square("g1")
    for target in iter_squares(attacks_bb(PieceType.KNIGHT, g1)):
        lo, hi = sorted((g1, target))
        found = table.lookup(_move_key(keys, Piece.W_KNIGHT, g1, target))
        assert found == Move.make(lo, hi)


def test_cuckoo_finds_black_rook_moves():
    keys = default_keys()
    table = default_cuckoo()
    a8 = parse_square("a8")
    for target in iter_squares(attacks_bb(PieceType.ROOK, a8)):
        found = table.lookup(_move_key(keys, Piece.B_ROOK, target, a8))
        assert found == Move.make(min(a8, target), max(a8, target))


def test_cuckoo_misses_pawn_moves_and_zero():
    keys = default_keys()
    table = default_cuckoo()
    e2, e3 = parse_square("e2"), parse_square("e3")
    assert table.lookup(_move_key(keys, Piece.W_PAWN, e2, e3)) is None
    assert table.lookup(0) is None


def test_cuckoo_rebuild_matches_default():
    keys = ZobristKeys(1070372)
    table = CuckooTable(keys)
    assert table.count == default_cuckoo().count
    d1, d4 = parse_square("d1"), parse_square("d4")
    assert table.lookup(_move_key(keys, Piece.W_QUEEN, d1, d4)) == Move.make(d1, d4)


def test_other_seed_gives_other_keys():
    a = ZobristKeys(7)
    b = default_keys()
    assert a.side != b.side
    assert CuckooTable(a).count == default_cuckoo().count
    assert Color.WHITE == 0