"""Board geometry, piece and move encodings, and bitboard attack tables."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Iterator


class Color(IntEnum):
    WHITE = 0
    BLACK = 1

    def __invert__(self) -> "Color":
        return Color(int(self) ^ 1)


class PieceType(IntEnum):
    NO_PIECE_TYPE = 0
    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6
    ALL_PIECES = 0


class Piece(IntEnum):
    NO_PIECE = 0
    W_PAWN = 1
    W_KNIGHT = 2
    W_BISHOP = 3
    W_ROOK = 4
    W_QUEEN = 5
    W_KING = 6
    B_PAWN = 9
    B_KNIGHT = 10
    B_BISHOP = 11
    B_ROOK = 12
    B_QUEEN = 13
    B_KING = 14


class MoveType(IntEnum):
    NORMAL = 0
    PROMOTION = 1 << 14
    EN_PASSANT = 2 << 14
    CASTLING = 3 << 14


class CastlingRights(IntFlag):
    NO_CASTLING = 0
    WHITE_OO = 1
    WHITE_OOO = 2
    BLACK_OO = 4
    BLACK_OOO = 8
    KING_SIDE = 5
    QUEEN_SIDE = 10
    WHITE_CASTLING = 3
    BLACK_CASTLING = 12
    ANY_CASTLING = 15

    def restricted_to(self, color: Color) -> "CastlingRights":
        """The part of these rights that belongs to ``color``."""
        side = (
            CastlingRights.WHITE_CASTLING
            if color == Color.WHITE
            else CastlingRights.BLACK_CASTLING
        )
        return CastlingRights(self & side)


PIECES = (
    Piece.W_PAWN, Piece.W_KNIGHT, Piece.W_BISHOP, Piece.W_ROOK, Piece.W_QUEEN, Piece.W_KING,
    Piece.B_PAWN, Piece.B_KNIGHT, Piece.B_BISHOP, Piece.B_ROOK, Piece.B_QUEEN, Piece.B_KING,
)
PIECE_NB = 16

SQUARE_NB = 64
SQ_NONE = 64
FILE_NB = 8
RANK_NB = 8
SQ_A1, SQ_C1, SQ_D1, SQ_F1, SQ_G1, SQ_H1 = 0, 2, 3, 5, 6, 7
SQ_A8, SQ_H8 = 56, 63

NORTH = 8
SOUTH = -8
EAST = 1
WEST = -1

BB_ALL = (1 << 64) - 1
FILE_A_BB = 0x0101010101010101
RANK_1_BB = 0xFF
RANK_2_BB = 0xFF << 8
RANK_7_BB = 0xFF << 48
RANK_8_BB = 0xFF << 56

PAWN_VALUE = 208
KNIGHT_VALUE = 781
BISHOP_VALUE = 825
ROOK_VALUE = 1276
QUEEN_VALUE = 2538

_TYPE_VALUES = (0, PAWN_VALUE, KNIGHT_VALUE, BISHOP_VALUE, ROOK_VALUE, QUEEN_VALUE, 0, 0)
PIECE_VALUES = _TYPE_VALUES + _TYPE_VALUES

_FILE_CHARS = "abcdefgh"
_PROMOTION_CHARS = " pnbrqk"


def make_piece(color: Color, piece_type: PieceType) -> Piece:
    return Piece((int(color) << 3) + int(piece_type))


def color_of(piece: Piece) -> Color:
    return Color(int(piece) >> 3)


def type_of(piece: Piece) -> PieceType:
    return PieceType(int(piece) & 7)


def make_square(file: int, rank: int) -> int:
    return (rank << 3) + file


def file_of(square: int) -> int:
    return square & 7


def rank_of(square: int) -> int:
    return square >> 3


def _check_square(square: int) -> None:
    if not 0 <= square < SQUARE_NB:
        raise ValueError(f"square out of range: {square}")


def square_name(square: int) -> str:
    """Algebraic name of a square, such as ``e4``."""
    _check_square(square)
    return _FILE_CHARS[file_of(square)] + str(rank_of(square) + 1)


def parse_square(name: str) -> int:
    """Square index of an algebraic name such as ``e4``."""
    if len(name) != 2 or name[0] not in _FILE_CHARS or name[1] not in "12345678":
        raise ValueError(f"not a square: {name!r}")
    return make_square(_FILE_CHARS.index(name[0]), int(name[1]) - 1)


def relative_square(color: Color, square: int) -> int:
    return square ^ (int(color) * 56)


def relative_rank(color: Color, rank: int) -> int:
    return rank ^ (int(color) * 7)


def pawn_push(color: Color) -> int:
    return NORTH if color == Color.WHITE else SOUTH


def square_bb(square: int) -> int:
    _check_square(square)
    return 1 << square


def popcount(bb: int) -> int:
    return bb.bit_count()


def lsb(bb: int) -> int:
    """Index of the least significant set bit."""
    if not bb:
        raise ValueError("empty bitboard has no least significant square")
    return (bb & -bb).bit_length() - 1


def more_than_one(bb: int) -> bool:
    return bool(bb & (bb - 1))


def iter_squares(bb: int) -> Iterator[int]:
    """Yield the squares of a bitboard from lowest to highest."""
    while bb:
        low = bb & -bb
        yield low.bit_length() - 1
        bb ^= low


def _offset_table(offsets: tuple[tuple[int, int], ...]) -> tuple[int, ...]:
    table = []
    for sq in range(SQUARE_NB):
        f, r = file_of(sq), rank_of(sq)
        bb = 0
        for df, dr in offsets:
            nf, nr = f + df, r + dr
            if 0 <= nf < 8 and 0 <= nr < 8:
                bb |= 1 << make_square(nf, nr)
        table.append(bb)
    return tuple(table)


def _ray(square: int, df: int, dr: int) -> int:
    f, r = file_of(square), rank_of(square)
    bb = 0
    while True:
        f += df
        r += dr
        if not (0 <= f < 8 and 0 <= r < 8):
            return bb
        bb |= 1 << make_square(f, r)


_KNIGHT_ATTACKS = _offset_table(((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2)))
_KING_ATTACKS = _offset_table(((1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1)))
_PAWN_ATTACKS = (
    _offset_table(((-1, 1), (1, 1))),
    _offset_table(((-1, -1), (1, -1))),
)

# Each direction carries its ray table and whether squares grow along it.
_ROOK_DIRS = tuple(
    (tuple(_ray(sq, df, dr) for sq in range(SQUARE_NB)), dr > 0 or (dr == 0 and df > 0))
    for df, dr in ((0, 1), (0, -1), (1, 0), (-1, 0))
)
_BISHOP_DIRS = tuple(
    (tuple(_ray(sq, df, dr) for sq in range(SQUARE_NB)), dr > 0)
    for df, dr in ((1, 1), (-1, 1), (1, -1), (-1, -1))
)


def _slide(directions, square: int, occupied: int) -> int:
    attacks = 0
    for rays, ascending in directions:
        ray = rays[square]
        blockers = ray & occupied
        if blockers:
            stop = (blockers & -blockers).bit_length() - 1 if ascending else blockers.bit_length() - 1
            ray ^= rays[stop]
        attacks |= ray
    return attacks


def pawn_attacks_bb(color: Color, square: int) -> int:
    """Squares a pawn of ``color`` on ``square`` attacks."""
    _check_square(square)
    return _PAWN_ATTACKS[int(color)][square]


def attacks_bb(piece_type: PieceType, square: int, occupied: int = 0) -> int:
    """Squares attacked by a non-pawn piece, sliders stopping at occupied squares."""
    _check_square(square)
    if piece_type == PieceType.KNIGHT:
        return _KNIGHT_ATTACKS[square]
    if piece_type == PieceType.KING:
        return _KING_ATTACKS[square]
    if piece_type == PieceType.BISHOP:
        return _slide(_BISHOP_DIRS, square, occupied)
    if piece_type == PieceType.ROOK:
        return _slide(_ROOK_DIRS, square, occupied)
    if piece_type == PieceType.QUEEN:
        return _slide(_BISHOP_DIRS, square, occupied) | _slide(_ROOK_DIRS, square, occupied)
    raise ValueError(f"no colour-free attacks for {piece_type!r}; use pawn_attacks_bb for pawns")


def _build_lines() -> tuple[list[int], list[int]]:
    line = [0] * (SQUARE_NB * SQUARE_NB)
    between = [0] * (SQUARE_NB * SQUARE_NB)
    for s1 in range(SQUARE_NB):
        for pt in (PieceType.BISHOP, PieceType.ROOK):
            pseudo = attacks_bb(pt, s1)
            for s2 in iter_squares(pseudo):
                idx = s1 * SQUARE_NB + s2
                line[idx] = (pseudo & attacks_bb(pt, s2)) | (1 << s1) | (1 << s2)
                between[idx] = attacks_bb(pt, s1, 1 << s2) & attacks_bb(pt, s2, 1 << s1)
        for s2 in range(SQUARE_NB):
            between[s1 * SQUARE_NB + s2] |= 1 << s2
    return line, between


_LINE_BB, _BETWEEN_BB = _build_lines()


def between_bb(a: int, b: int) -> int:
    """Squares strictly between ``a`` and ``b`` plus ``b`` itself; just ``b`` if not aligned."""
    _check_square(a)
    _check_square(b)
    return _BETWEEN_BB[a * SQUARE_NB + b]


def line_bb(a: int, b: int) -> int:
    """The full edge-to-edge line through ``a`` and ``b``, or 0 if they are not aligned."""
    _check_square(a)
    _check_square(b)
    return _LINE_BB[a * SQUARE_NB + b]


@dataclass(frozen=True)
class Move:
    """A move packed in 16 bits: destination, origin, promotion piece and move type."""

    data: int = 0

    @classmethod
    def none(cls) -> "Move":
        return cls(0)

    @classmethod
    def null(cls) -> "Move":
        return cls(65)

    @classmethod
    def make(
        cls,
        from_sq: int,
        to_sq: int,
        move_type: MoveType = MoveType.NORMAL,
        promotion: PieceType = PieceType.KNIGHT,
    ) -> "Move":
        _check_square(from_sq)
        _check_square(to_sq)
        if not PieceType.KNIGHT <= promotion <= PieceType.QUEEN:
            raise ValueError(f"invalid promotion piece: {promotion!r}")
        return cls(int(move_type) | ((int(promotion) - PieceType.KNIGHT) << 12) | (from_sq << 6) | to_sq)

    @property
    def from_sq(self) -> int:
        return (self.data >> 6) & 0x3F

    @property
    def to_sq(self) -> int:
        return self.data & 0x3F

    @property
    def move_type(self) -> MoveType:
        return MoveType(self.data & (3 << 14))

    @property
    def promotion_type(self) -> PieceType:
        return PieceType(((self.data >> 12) & 3) + PieceType.KNIGHT)

    def is_ok(self) -> bool:
        return self.data not in (0, 65)

    def from_to(self) -> int:
        return self.data & 0xFFF

    def __bool__(self) -> bool:
        return self.data != 0

    def uci(self, chess960: bool = False) -> str:
        """Coordinate notation; standard castling is written as the king's two-square step."""
        if self.data == 0:
            return "(none)"
        if self.data == 65:
            return "0000"
        origin, target = self.from_sq, self.to_sq
        if self.move_type == MoveType.CASTLING and not chess960:
            target = make_square(6 if target > origin else 2, rank_of(origin))
        text = square_name(origin) + square_name(target)
        if self.move_type == MoveType.PROMOTION:
            text += _PROMOTION_CHARS[self.promotion_type]
        return text

    def __str__(self) -> str:
        return self.uci()