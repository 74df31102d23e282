"""Move legality, check detection and static exchange evaluation for a position."""

from __future__ import annotations

from .core import (
    BISHOP_VALUE,
    KNIGHT_VALUE,
    PAWN_VALUE,
    PIECE_VALUES,
    QUEEN_VALUE,
    ROOK_VALUE,
    SQ_C1,
    SQ_D1,
    SQ_F1,
    SQ_G1,
    Move,
    MoveType,
    PieceType,
    attacks_bb,
    file_of,
    line_bb,
    make_square,
    pawn_push,
    rank_of,
    relative_square,
    square_bb,
    type_of,
)
from .position import Position

EAST = 1
WEST = -1


def _require_ok(move: Move) -> None:
    if not move.is_ok():
        raise ValueError(f"not a real move: {move!r}")


def legal(position: Position, move: Move) -> bool:
    """Whether a pseudo-legal move leaves the mover's king safe."""
    _require_ok(move)
    P = PieceType
    us = position.side_to_move()
    them = ~us
    from_sq, to_sq = move.from_sq, move.to_sq
    mtype = move.move_type

    if mtype == MoveType.EN_PASSANT:
        ksq = position.king_square(us)
        capsq = to_sq - pawn_push(us)
        occupied = (position.pieces() ^ square_bb(from_sq) ^ square_bb(capsq)) | square_bb(to_sq)
        return not (
            attacks_bb(P.ROOK, ksq, occupied) & position.pieces_of(them, P.QUEEN, P.ROOK)
        ) and not (
            attacks_bb(P.BISHOP, ksq, occupied) & position.pieces_of(them, P.QUEEN, P.BISHOP)
        )

    if mtype == MoveType.CASTLING:
        # The king ends on the same squares as in standard chess.
        king_side = to_sq > from_sq
        kto = relative_square(us, SQ_G1 if king_side else SQ_C1)
        step = WEST if kto > from_sq else EAST
        s = kto
        while s != from_sq:
            if position.attackers_to_exist(s, position.pieces(), them):
                return False
            s += step
        # In Chess960 the castling rook may have been shielding the king.
        return not position.is_chess960() or not (
            position.blockers_for_king(us) & square_bb(to_sq)
        )

    if type_of(position.piece_on(from_sq)) == P.KING:
        return not position.attackers_to_exist(
            to_sq, position.pieces() ^ square_bb(from_sq), them
        )

    return not (position.blockers_for_king(us) & square_bb(from_sq)) or bool(
        line_bb(from_sq, to_sq) & position.pieces_of(us, P.KING)
    )


def gives_check(position: Position, move: Move) -> bool:
    """Whether a pseudo-legal move puts the opponent's king in check."""
    _require_ok(move)
    P = PieceType
    stm = position.side_to_move()
    them = ~stm
    from_sq, to_sq = move.from_sq, move.to_sq
    to_bb = square_bb(to_sq)

    if position.check_squares(type_of(position.piece_on(from_sq))) & to_bb:
        return True

    if position.blockers_for_king(them) & square_bb(from_sq):
        return (
            not (line_bb(from_sq, to_sq) & position.pieces_of(them, P.KING))
            or move.move_type == MoveType.CASTLING
        )

    mtype = move.move_type
    if mtype == MoveType.NORMAL:
        return False

    if mtype == MoveType.PROMOTION:
        return bool(
            attacks_bb(move.promotion_type, to_sq, position.pieces() ^ square_bb(from_sq))
            & position.pieces_of(them, P.KING)
        )

    if mtype == MoveType.EN_PASSANT:
        # Only a discovered check through the captured pawn is left to find.
        capsq = make_square(file_of(to_sq), rank_of(from_sq))
        b = (position.pieces() ^ square_bb(from_sq) ^ square_bb(capsq)) | to_bb
        ksq = position.king_square(them)
        return bool(
            (attacks_bb(P.ROOK, ksq, b) & position.pieces_of(stm, P.QUEEN, P.ROOK))
            | (attacks_bb(P.BISHOP, ksq, b) & position.pieces_of(stm, P.QUEEN, P.BISHOP))
        )

    # Castling is encoded as the king capturing its own rook.
    rto = relative_square(stm, SQ_F1 if to_sq > from_sq else SQ_D1)
    return bool(position.check_squares(P.ROOK) & square_bb(rto))


def see_ge(position: Position, move: Move, threshold: int = 0) -> bool:
    """Whether the static exchange value of ``move`` is at least ``threshold``."""
    _require_ok(move)
    P = PieceType

    if move.move_type != MoveType.NORMAL:
        return 0 >= threshold

    from_sq, to_sq = move.from_sq, move.to_sq

    swap = PIECE_VALUES[position.piece_on(to_sq)] - threshold
    if swap < 0:
        return False

    swap = PIECE_VALUES[position.piece_on(from_sq)] - swap
    if swap <= 0:
        return True

    occupied = position.pieces() ^ square_bb(from_sq) ^ square_bb(to_sq)
    stm = position.side_to_move()
    attackers = position.attackers_to(to_sq, occupied)
    res = 1

    while True:
        stm = ~stm
        attackers &= occupied

        stm_attackers = attackers & position.pieces_of(stm)
        if not stm_attackers:
            break

        # Pinned pieces may not join while their pinners are still on the board.
        if position.pinners(~stm) & occupied:
            stm_attackers &= ~position.blockers_for_king(stm)
            if not stm_attackers:
                break

        res ^= 1

        bb = stm_attackers & position.pieces(P.PAWN)
        if bb:
            swap = PAWN_VALUE - swap
            if swap < res:
                break
            occupied ^= bb & -bb
            attackers |= attacks_bb(P.BISHOP, to_sq, occupied) & position.pieces(P.BISHOP, P.QUEEN)
            continue

        bb = stm_attackers & position.pieces(P.KNIGHT)
        if bb:
            swap = KNIGHT_VALUE - swap
            if swap < res:
                break
            occupied ^= bb & -bb
            continue

        bb = stm_attackers & position.pieces(P.BISHOP)
        if bb:
            swap = BISHOP_VALUE - swap
            if swap < res:
                break
            occupied ^= bb & -bb
            attackers |= attacks_bb(P.BISHOP, to_sq, occupied) & position.pieces(P.BISHOP, P.QUEEN)
            continue

        bb = stm_attackers & position.pieces(P.ROOK)
        if bb:
            swap = ROOK_VALUE - swap
            if swap < res:
                break
            occupied ^= bb & -bb
            attackers |= attacks_bb(P.ROOK, to_sq, occupied) & position.pieces(P.ROOK, P.QUEEN)
            continue

        bb = stm_attackers & position.pieces(P.QUEEN)
        if bb:
            swap = QUEEN_VALUE - swap
            occupied ^= bb & -bb
            attackers |= (
                attacks_bb(P.BISHOP, to_sq, occupied) & position.pieces(P.BISHOP, P.QUEEN)
            ) | (attacks_bb(P.ROOK, to_sq, occupied) & position.pieces(P.ROOK, P.QUEEN))
            continue

        # Capturing with the king only works if the opponent has no attackers left.
        return bool(res ^ 1 if attackers & ~position.pieces_of(stm) else res)

    return bool(res)