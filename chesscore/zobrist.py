"""Zobrist hashing keys and the cuckoo table of reversible moves."""

from __future__ import annotations

from functools import lru_cache
from typing import Iterator

from .core import PIECE_NB, PIECES, SQUARE_NB, Move, Piece, PieceType, attacks_bb, type_of

DEFAULT_SEED = 1070372
CUCKOO_SIZE = 8192

_MASK64 = (1 << 64) - 1


class PRNG:
    """xorshift64* generator of 64-bit values."""

    def __init__(self, seed: int) -> None:
        if seed & _MASK64 == 0:
            raise ValueError("seed must be non-zero")
        self._state = seed & _MASK64

    def rand(self) -> int:
        s = self._state
        s ^= s >> 12
        s = (s ^ (s << 25)) & _MASK64
        s ^= s >> 27
        self._state = s
        return (s * 2685821657736338717) & _MASK64

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        return self.rand()


class ZobristKeys:
    """Random keys for pieces on squares, en passant files, castling rights and side to move."""

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        rng = PRNG(seed)
        psq = [[0] * SQUARE_NB for _ in range(PIECE_NB)]
        for pc in PIECES:
            psq[pc] = [rng.rand() for _ in range(SQUARE_NB)]
        # Pawns never stand on these squares: they would promote.
        for s in range(56, 64):
            psq[Piece.W_PAWN][s] = 0
        for s in range(8):
            psq[Piece.B_PAWN][s] = 0
        self.psq: tuple[tuple[int, ...], ...] = tuple(tuple(row) for row in psq)
        self.enpassant: tuple[int, ...] = tuple(rng.rand() for _ in range(8))
        self.castling: tuple[int, ...] = tuple(rng.rand() for _ in range(16))
        self.side: int = rng.rand()
        self.no_pawns: int = rng.rand()

    @staticmethod
    def rule50_key(bucket: int) -> int:
        """Key mixed in for a given bucket of the fifty-move counter."""
        return (bucket * 6364136223846793005 + 1442695040888963407) & _MASK64


def h1(key: int) -> int:
    return key & 0x1FFF


def h2(key: int) -> int:
    return (key >> 16) & 0x1FFF


class CuckooTable:
    """Two-hash table mapping the key change of every reversible piece move to that move."""

    def __init__(self, keys: ZobristKeys) -> None:
        self._keys = [0] * CUCKOO_SIZE
        self._moves = [Move.none()] * CUCKOO_SIZE
        count = 0
        for pc in PIECES:
            pt = type_of(pc)
            if pt == PieceType.PAWN:
                continue
            row = keys.psq[pc]
            for s1 in range(SQUARE_NB):
                reach = attacks_bb(pt, s1) >> (s1 + 1)
                s2 = s1 + 1
                while reach:
                    if reach & 1:
                        self._insert(row[s1] ^ row[s2] ^ keys.side, Move.make(s1, s2))
                        count += 1
                    reach >>= 1
                    s2 += 1
        self.count = count

    def _insert(self, key: int, move: Move) -> None:
        i = h1(key)
        while True:
            self._keys[i], key = key, self._keys[i]
            self._moves[i], move = move, self._moves[i]
            if not move:
                return
            i = h2(key) if i == h1(key) else h1(key)

    def lookup(self, move_key: int) -> Move | None:
        """The move whose key change equals ``move_key``, or None."""
        for j in (h1(move_key), h2(move_key)):
            if self._keys[j] == move_key and self._moves[j]:
                return self._moves[j]
        return None

    def __len__(self) -> int:
        return self.count


@lru_cache(maxsize=None)
def default_keys() -> ZobristKeys:
    """Keys generated from the standard seed."""
    return ZobristKeys(DEFAULT_SEED)


@lru_cache(maxsize=None)
def default_cuckoo() -> CuckooTable:
    """Cuckoo table built from the standard keys."""
    return CuckooTable(default_keys())