"""Board position: piece placement, incremental hashing, making and unmaking moves."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

from .core import (
    PIECES,
    PIECE_NB,
    PIECE_VALUES,
    RANK_1_BB,
    RANK_8_BB,
    SQ_A1,
    SQ_C1,
    SQ_D1,
    SQ_F1,
    SQ_G1,
    SQ_H1,
    SQ_A8,
    SQ_NONE,
    SQUARE_NB,
    CastlingRights,
    Color,
    Move,
    MoveType,
    Piece,
    PieceType,
    attacks_bb,
    between_bb,
    color_of,
    file_of,
    iter_squares,
    lsb,
    make_piece,
    make_square,
    more_than_one,
    pawn_attacks_bb,
    pawn_push,
    popcount,
    rank_of,
    relative_rank,
    relative_square,
    square_bb,
    square_name,
    type_of,
)
from .zobrist import CuckooTable, ZobristKeys, default_cuckoo, default_keys

_PIECE_CHARS = " PNBRQK  pnbrqk"
_SEPARATOR = "\n +---+---+---+---+---+---+---+---+\n"


def _two() -> list[int]:
    return [0, 0]


@dataclass
class StateInfo:
    """Per-ply information needed to restore a position when a move is retracted."""

    material_key: int = 0
    pawn_key: int = 0
    minor_piece_key: int = 0
    non_pawn_key: list[int] = field(default_factory=_two)
    non_pawn_material: list[int] = field(default_factory=_two)
    castling_rights: int = 0
    rule50: int = 0
    plies_from_null: int = 0
    ep_square: int = SQ_NONE
    key: int = 0
    checkers_bb: int = 0
    blockers_for_king: list[int] = field(default_factory=_two)
    pinners: list[int] = field(default_factory=_two)
    check_squares: list[int] = field(default_factory=lambda: [0] * 7)
    captured_piece: Piece = Piece.NO_PIECE
    repetition: int = 0

    def carried_forward(self) -> "StateInfo":
        """A new state holding the fields that survive a move."""
        return StateInfo(
            material_key=self.material_key,
            pawn_key=self.pawn_key,
            minor_piece_key=self.minor_piece_key,
            non_pawn_key=list(self.non_pawn_key),
            non_pawn_material=list(self.non_pawn_material),
            castling_rights=self.castling_rights,
            rule50=self.rule50,
            plies_from_null=self.plies_from_null,
            ep_square=self.ep_square,
        )


@dataclass
class DirtyPiece:
    """Pieces changed by a move: each entry is (piece, from square, to square)."""

    pieces: list[Piece] = field(default_factory=list)
    from_squares: list[int] = field(default_factory=list)
    to_squares: list[int] = field(default_factory=list)

    def add(self, piece: Piece, from_sq: int, to_sq: int) -> None:
        self.pieces.append(piece)
        self.from_squares.append(from_sq)
        self.to_squares.append(to_sq)

    @property
    def dirty_num(self) -> int:
        return len(self.pieces)


def _parse_int(text: str | None) -> int:
    try:
        return int(text) if text is not None else 0
    except ValueError:
        return 0


class Position:
    """A chess position with a history of states for undoing moves and detecting repetitions."""

    def __init__(self, keys: ZobristKeys | None = None) -> None:
        self.keys = keys if keys is not None else default_keys()
        self._cuckoo: CuckooTable = default_cuckoo() if keys is None else CuckooTable(self.keys)
        self._reset()

    def _reset(self) -> None:
        self._board = [Piece.NO_PIECE] * SQUARE_NB
        self._by_type = [0] * 7
        self._by_color = [0, 0]
        self._piece_count = [0] * PIECE_NB
        self._castling_rights_mask = [0] * SQUARE_NB
        self._castling_rook_square = [SQ_NONE] * 16
        self._castling_path = [0] * 16
        self._states: list[StateInfo] = [StateInfo()]
        self._game_ply = 0
        self._side_to_move = Color.WHITE
        self._chess960 = False

    @property
    def _st(self) -> StateInfo:
        return self._states[-1]

    # ------------------------------------------------------------------ FEN

    def set(self, fen: str, chess960: bool = False) -> "Position":
        """Set up the position from a FEN (or Shredder/X-FEN castling) string."""
        fields = fen.split()
        if not fields:
            raise ValueError("empty FEN string")
        self._reset()
        st = self._st

        sq = SQ_A8
        for token in fields[0]:
            if token.isdigit():
                sq += int(token)
            elif token == "/":
                sq -= 16
            elif token in _PIECE_CHARS and token != " ":
                if not 0 <= sq < SQUARE_NB:
                    raise ValueError(f"piece placement runs off the board: {fields[0]!r}")
                self.put_piece(Piece(_PIECE_CHARS.index(token)), sq)
                sq += 1

        self._side_to_move = Color.WHITE if len(fields) > 1 and fields[1] == "w" else Color.BLACK

        for token in fields[2] if len(fields) > 2 else "":
            c = Color.BLACK if token.islower() else Color.WHITE
            rook = make_piece(c, PieceType.ROOK)
            up = token.upper()
            if up == "K":
                rsq = relative_square(c, SQ_H1)
                while self._board[rsq] != rook:
                    rsq -= 1
                    if rank_of(rsq) != rank_of(relative_square(c, SQ_H1)) or rsq < 0:
                        raise ValueError(f"no rook for castling right {token!r}")
            elif up == "Q":
                rsq = relative_square(c, SQ_A1)
                while self._board[rsq] != rook:
                    rsq += 1
                    if rsq >= SQUARE_NB or rank_of(rsq) != rank_of(relative_square(c, SQ_A1)):
                        raise ValueError(f"no rook for castling right {token!r}")
            elif "A" <= up <= "H":
                rsq = make_square(ord(up) - ord("A"), relative_rank(c, 0))
            else:
                continue
            self._set_castling_right(c, rsq)

        us = self._side_to_move
        them = ~us
        enpassant = False
        ep_field = fields[3] if len(fields) > 3 else ""
        if (
            len(ep_field) >= 2
            and "a" <= ep_field[0] <= "h"
            and ep_field[1] == ("6" if us == Color.WHITE else "3")
        ):
            ep = make_square(ord(ep_field[0]) - ord("a"), int(ep_field[1]) - 1)
            st.ep_square = ep
            enpassant = bool(
                pawn_attacks_bb(them, ep) & self.pieces_of(us, PieceType.PAWN)
                and self.pieces_of(them, PieceType.PAWN) & square_bb(ep + pawn_push(them))
                and not (self.pieces() & (square_bb(ep) | square_bb(ep + pawn_push(us))))
            )
        if not enpassant:
            st.ep_square = SQ_NONE

        st.rule50 = _parse_int(fields[4] if len(fields) > 4 else None)
        fullmove = _parse_int(fields[5] if len(fields) > 5 else None)
        self._game_ply = max(2 * (fullmove - 1), 0) + (us == Color.BLACK)

        self._chess960 = chess960
        self._set_state()
        return self

    def set_from_code(self, code: str, color: Color) -> "Position":
        """Set up a position from an endgame code such as ``KBPKN``; ``color`` is the strong side."""
        if not code or code[0] != "K":
            raise ValueError(f"endgame code must start with K: {code!r}")
        second = code.find("K", 1)
        if second < 0:
            raise ValueError(f"endgame code needs two kings: {code!r}")
        v = code.find("v")
        end = min(v if v >= 0 else len(code), second)
        sides = [code[second:], code[:end]]
        for side in sides:
            if not 0 < len(side) < 8:
                raise ValueError(f"bad side in endgame code: {code!r}")
        sides[int(color)] = sides[int(color)].lower()
        fen = (
            "8/" + sides[0] + str(8 - len(sides[0])) + "/8/8/8/8/"
            + sides[1] + str(8 - len(sides[1])) + "/8 w - - 0 10"
        )
        return self.set(fen, False)

    def fen(self) -> str:
        """FEN of the position; Shredder notation for castling in Chess960."""
        rows = []
        for r in range(7, -1, -1):
            row = ""
            empty = 0
            for f in range(8):
                pc = self._board[make_square(f, r)]
                if pc == Piece.NO_PIECE:
                    empty += 1
                    continue
                if empty:
                    row += str(empty)
                    empty = 0
                row += _PIECE_CHARS[pc]
            if empty:
                row += str(empty)
            rows.append(row)
        out = "/".join(rows)
        out += " w " if self._side_to_move == Color.WHITE else " b "

        castling = ""
        for cr, std_char, base in (
            (CastlingRights.WHITE_OO, "K", "A"),
            (CastlingRights.WHITE_OOO, "Q", "A"),
            (CastlingRights.BLACK_OO, "k", "a"),
            (CastlingRights.BLACK_OOO, "q", "a"),
        ):
            if self.can_castle(cr):
                if self._chess960:
                    castling += chr(ord(base) + file_of(self._castling_rook_square[cr]))
                else:
                    castling += std_char
        out += castling or "-"

        ep = self.ep_square()
        out += " - " if ep == SQ_NONE else f" {square_name(ep)} "
        fullmove = 1 + (self._game_ply - (self._side_to_move == Color.BLACK)) // 2
        return out + f"{self._st.rule50} {fullmove}"

    def diagram(self) -> str:
        """ASCII board with FEN, hash key and checking squares."""
        out = _SEPARATOR
        for r in range(7, -1, -1):
            for f in range(8):
                out += " | " + _PIECE_CHARS[self._board[make_square(f, r)]]
            out += f" | {r + 1}" + _SEPARATOR
        out += "   a   b   c   d   e   f   g   h\n"
        out += f"\nFen: {self.fen()}\nKey: {self.key():016X}\nCheckers: "
        for s in iter_squares(self.checkers()):
            out += square_name(s) + " "
        return out

    def __str__(self) -> str:
        return self.diagram()

    # ------------------------------------------------------ board queries

    def pieces(self, *args: PieceType) -> int:
        if not args:
            return self._by_type[0]
        bb = 0
        for pt in args:
            bb |= self._by_type[int(pt)]
        return bb

    def pieces_of(self, color: Color, *args: PieceType) -> int:
        return self._by_color[int(color)] & self.pieces(*args)

    def piece_on(self, square: int) -> Piece:
        if not 0 <= square < SQUARE_NB:
            raise ValueError(f"square out of range: {square}")
        return self._board[square]

    def empty(self, square: int) -> bool:
        return self.piece_on(square) == Piece.NO_PIECE

    def count(self, piece_type: PieceType, color: Color | None = None) -> int:
        if color is None:
            return self.count(piece_type, Color.WHITE) + self.count(piece_type, Color.BLACK)
        return self._piece_count[(int(color) << 3) + int(piece_type)]

    def king_square(self, color: Color) -> int:
        return lsb(self.pieces_of(color, PieceType.KING))

    def ep_square(self) -> int:
        return self._st.ep_square

    def can_castle(self, rights: CastlingRights) -> bool:
        return bool(self._st.castling_rights & rights)

    def castling_rights(self, color: Color) -> CastlingRights:
        return CastlingRights(self._st.castling_rights).restricted_to(color)

    def castling_impeded(self, rights: CastlingRights) -> bool:
        return bool(self.pieces() & self._castling_path[rights])

    def castling_rook_square(self, rights: CastlingRights) -> int:
        return self._castling_rook_square[rights]

    def checkers(self) -> int:
        return self._st.checkers_bb

    def blockers_for_king(self, color: Color) -> int:
        return self._st.blockers_for_king[int(color)]

    def pinners(self, color: Color) -> int:
        return self._st.pinners[int(color)]

    def check_squares(self, piece_type: PieceType) -> int:
        return self._st.check_squares[int(piece_type)]

    def attackers_to(self, square: int, occupied: int | None = None) -> int:
        """All pieces of either colour attacking ``square`` given the occupancy."""
        if occupied is None:
            occupied = self.pieces()
        P = PieceType
        return (
            (attacks_bb(P.ROOK, square, occupied) & self.pieces(P.ROOK, P.QUEEN))
            | (attacks_bb(P.BISHOP, square, occupied) & self.pieces(P.BISHOP, P.QUEEN))
            | (pawn_attacks_bb(Color.BLACK, square) & self.pieces_of(Color.WHITE, P.PAWN))
            | (pawn_attacks_bb(Color.WHITE, square) & self.pieces_of(Color.BLACK, P.PAWN))
            | (attacks_bb(P.KNIGHT, square) & self.pieces(P.KNIGHT))
            | (attacks_bb(P.KING, square) & self.pieces(P.KING))
        )

    def attackers_to_exist(self, square: int, occupied: int, color: Color) -> bool:
        P = PieceType
        rq = self.pieces_of(color, P.ROOK, P.QUEEN)
        bq = self.pieces_of(color, P.BISHOP, P.QUEEN)
        if attacks_bb(P.ROOK, square) & rq and attacks_bb(P.ROOK, square, occupied) & rq:
            return True
        if attacks_bb(P.BISHOP, square) & bq and attacks_bb(P.BISHOP, square, occupied) & bq:
            return True
        return bool(
            (
                (pawn_attacks_bb(~color, square) & self.pieces(P.PAWN))
                | (attacks_bb(P.KNIGHT, square) & self.pieces(P.KNIGHT))
                | (attacks_bb(P.KING, square) & self.pieces(P.KING))
            )
            & self.pieces_of(color)
        )

    def attacks_by(self, piece_type: PieceType, color: Color) -> int:
        threats = 0
        for s in iter_squares(self.pieces_of(color, piece_type)):
            if piece_type == PieceType.PAWN:
                threats |= pawn_attacks_bb(color, s)
            else:
                threats |= attacks_bb(piece_type, s, self.pieces())
        return threats

    def moved_piece(self, move: Move) -> Piece:
        return self.piece_on(move.from_sq)

    def captured_piece(self) -> Piece:
        return self._st.captured_piece

    def capture(self, move: Move) -> bool:
        return (
            not self.empty(move.to_sq) and move.move_type != MoveType.CASTLING
        ) or move.move_type == MoveType.EN_PASSANT

    def capture_stage(self, move: Move) -> bool:
        return self.capture(move) or move.promotion_type == PieceType.QUEEN

    # ---------------------------------------------------------- hash keys

    def key(self) -> int:
        st = self._st
        if st.rule50 < 14:
            return st.key
        return st.key ^ self.keys.rule50_key((st.rule50 - 14) // 8)

    def material_key(self) -> int:
        return self._st.material_key

    def pawn_key(self) -> int:
        return self._st.pawn_key

    def minor_piece_key(self) -> int:
        return self._st.minor_piece_key

    def non_pawn_key(self, color: Color) -> int:
        return self._st.non_pawn_key[int(color)]

    def side_to_move(self) -> Color:
        return self._side_to_move

    def game_ply(self) -> int:
        return self._game_ply

    def is_chess960(self) -> bool:
        return self._chess960

    def rule50_count(self) -> int:
        return self._st.rule50

    def non_pawn_material(self, color: Color | None = None) -> int:
        if color is None:
            return sum(self._st.non_pawn_material)
        return self._st.non_pawn_material[int(color)]

    # ------------------------------------------------------- piece edits

    def put_piece(self, piece: Piece, square: int) -> None:
        b = square_bb(square)
        self._board[square] = piece
        self._by_type[0] |= b
        self._by_type[int(type_of(piece))] |= b
        self._by_color[int(color_of(piece))] |= b
        self._piece_count[piece] += 1
        self._piece_count[int(color_of(piece)) << 3] += 1

    def remove_piece(self, square: int) -> None:
        piece = self._board[square]
        if piece == Piece.NO_PIECE:
            raise ValueError(f"no piece on {square_name(square)}")
        b = square_bb(square)
        self._by_type[0] ^= b
        self._by_type[int(type_of(piece))] ^= b
        self._by_color[int(color_of(piece))] ^= b
        self._board[square] = Piece.NO_PIECE
        self._piece_count[piece] -= 1
        self._piece_count[int(color_of(piece)) << 3] -= 1

    def _move_piece(self, from_sq: int, to_sq: int) -> None:
        piece = self._board[from_sq]
        ft = square_bb(from_sq) | square_bb(to_sq)
        self._by_type[0] ^= ft
        self._by_type[int(type_of(piece))] ^= ft
        self._by_color[int(color_of(piece))] ^= ft
        self._board[from_sq] = Piece.NO_PIECE
        self._board[to_sq] = piece

    # ------------------------------------------------------ setup helpers

    def _set_castling_right(self, c: Color, rfrom: int) -> None:
        kfrom = self.king_square(c)
        side = CastlingRights.KING_SIDE if kfrom < rfrom else CastlingRights.QUEEN_SIDE
        cr = side.restricted_to(c)
        self._st.castling_rights |= int(cr)
        self._castling_rights_mask[kfrom] |= int(cr)
        self._castling_rights_mask[rfrom] |= int(cr)
        self._castling_rook_square[cr] = rfrom
        king_side = bool(cr & CastlingRights.KING_SIDE)
        kto = relative_square(c, SQ_G1 if king_side else SQ_C1)
        rto = relative_square(c, SQ_F1 if king_side else SQ_D1)
        self._castling_path[cr] = (between_bb(rfrom, rto) | between_bb(kfrom, kto)) & ~(
            square_bb(kfrom) | square_bb(rfrom)
        )

    def _update_slider_blockers(self, c: Color) -> None:
        st = self._st
        P = PieceType
        ksq = self.king_square(c)
        st.blockers_for_king[int(c)] = 0
        st.pinners[int(~c)] = 0
        snipers = (
            (attacks_bb(P.ROOK, ksq) & self.pieces(P.QUEEN, P.ROOK))
            | (attacks_bb(P.BISHOP, ksq) & self.pieces(P.QUEEN, P.BISHOP))
        ) & self.pieces_of(~c)
        occupancy = self.pieces() ^ snipers
        for sniper in iter_squares(snipers):
            b = between_bb(ksq, sniper) & occupancy
            if b and not more_than_one(b):
                st.blockers_for_king[int(c)] |= b
                if b & self.pieces_of(c):
                    st.pinners[int(~c)] |= square_bb(sniper)

    def _set_check_info(self) -> None:
        self._update_slider_blockers(Color.WHITE)
        self._update_slider_blockers(Color.BLACK)
        st = self._st
        P = PieceType
        ksq = self.king_square(~self._side_to_move)
        occ = self.pieces()
        st.check_squares[P.PAWN] = pawn_attacks_bb(~self._side_to_move, ksq)
        st.check_squares[P.KNIGHT] = attacks_bb(P.KNIGHT, ksq)
        st.check_squares[P.BISHOP] = attacks_bb(P.BISHOP, ksq, occ)
        st.check_squares[P.ROOK] = attacks_bb(P.ROOK, ksq, occ)
        st.check_squares[P.QUEEN] = st.check_squares[P.BISHOP] | st.check_squares[P.ROOK]
        st.check_squares[P.KING] = 0

    def _set_state(self) -> None:
        st = self._st
        keys = self.keys
        st.key = st.material_key = st.minor_piece_key = 0
        st.non_pawn_key = [0, 0]
        st.pawn_key = keys.no_pawns
        st.non_pawn_material = [0, 0]
        us = self._side_to_move
        st.checkers_bb = self.attackers_to(self.king_square(us)) & self.pieces_of(~us)
        self._set_check_info()

        for s in iter_squares(self.pieces()):
            pc = self._board[s]
            z = keys.psq[pc][s]
            st.key ^= z
            pt = type_of(pc)
            if pt == PieceType.PAWN:
                st.pawn_key ^= z
            else:
                st.non_pawn_key[int(color_of(pc))] ^= z
                if pt != PieceType.KING:
                    st.non_pawn_material[int(color_of(pc))] += PIECE_VALUES[pc]
                    if pt <= PieceType.BISHOP:
                        st.minor_piece_key ^= z

        if st.ep_square != SQ_NONE:
            st.key ^= keys.enpassant[file_of(st.ep_square)]
        if us == Color.BLACK:
            st.key ^= keys.side
        st.key ^= keys.castling[st.castling_rights]

        for pc in PIECES:
            for cnt in range(self._piece_count[pc]):
                st.material_key ^= keys.psq[pc][8 + cnt]

    # ------------------------------------------------------ making moves

    def _do_castling(self, do: bool, us: Color, from_sq: int, to_sq: int) -> tuple[int, int, int]:
        king_side = to_sq > from_sq
        rfrom = to_sq
        rto = relative_square(us, SQ_F1 if king_side else SQ_D1)
        kto = relative_square(us, SQ_G1 if king_side else SQ_C1)
        self.remove_piece(from_sq if do else kto)
        self.remove_piece(rfrom if do else rto)
        self.put_piece(make_piece(us, PieceType.KING), kto if do else from_sq)
        self.put_piece(make_piece(us, PieceType.ROOK), rto if do else rfrom)
        return kto, rfrom, rto

    def do_move(self, move: Move, gives_check: bool | None = None) -> DirtyPiece:
        """Make a legal move; ``gives_check`` None means the checkers are computed in full."""
        if not move.is_ok():
            raise ValueError(f"cannot make move {move!r}")
        keys = self.keys
        old = self._st
        k = old.key ^ keys.side
        st = old.carried_forward()
        self._states.append(st)

        self._game_ply += 1
        st.rule50 += 1
        st.plies_from_null += 1

        dp = DirtyPiece()
        us = self._side_to_move
        them = ~us
        from_sq, to_sq = move.from_sq, move.to_sq
        mtype = move.move_type
        pc = self._board[from_sq]
        if pc == Piece.NO_PIECE:
            self._states.pop()
            self._game_ply -= 1
            raise ValueError(f"no piece on {square_name(from_sq)}")
        captured = make_piece(them, PieceType.PAWN) if mtype == MoveType.EN_PASSANT else self._board[to_sq]
        capture_entry = None

        if mtype == MoveType.CASTLING:
            kto, rfrom, rto = self._do_castling(True, us, from_sq, to_sq)
            to_sq = kto
            dp.add(make_piece(us, PieceType.KING), from_sq, kto)
            dp.add(make_piece(us, PieceType.ROOK), rfrom, rto)
            delta = keys.psq[captured][rfrom] ^ keys.psq[captured][rto]
            k ^= delta
            st.non_pawn_key[int(us)] ^= delta
            captured = Piece.NO_PIECE
        elif captured:
            capsq = to_sq
            if type_of(captured) == PieceType.PAWN:
                if mtype == MoveType.EN_PASSANT:
                    capsq -= pawn_push(us)
                st.pawn_key ^= keys.psq[captured][capsq]
            else:
                st.non_pawn_material[int(them)] -= PIECE_VALUES[captured]
                st.non_pawn_key[int(them)] ^= keys.psq[captured][capsq]
                if type_of(captured) <= PieceType.BISHOP:
                    st.minor_piece_key ^= keys.psq[captured][capsq]
            capture_entry = (captured, capsq, SQ_NONE)
            self.remove_piece(capsq)
            k ^= keys.psq[captured][capsq]
            st.material_key ^= keys.psq[captured][8 + self._piece_count[captured]]
            st.rule50 = 0

        k ^= keys.psq[pc][from_sq] ^ keys.psq[pc][to_sq]

        if st.ep_square != SQ_NONE:
            k ^= keys.enpassant[file_of(st.ep_square)]
            st.ep_square = SQ_NONE

        mask = self._castling_rights_mask[from_sq] | self._castling_rights_mask[to_sq]
        if st.castling_rights and mask:
            k ^= keys.castling[st.castling_rights]
            st.castling_rights &= ~mask
            k ^= keys.castling[st.castling_rights]

        if mtype != MoveType.CASTLING:
            dp.add(pc, from_sq, to_sq)
            if capture_entry is not None:
                dp.add(*capture_entry)
            self._move_piece(from_sq, to_sq)

        if type_of(pc) == PieceType.PAWN:
            if (to_sq ^ from_sq) == 16 and (
                pawn_attacks_bb(us, to_sq - pawn_push(us)) & self.pieces_of(them, PieceType.PAWN)
            ):
                st.ep_square = to_sq - pawn_push(us)
                k ^= keys.enpassant[file_of(st.ep_square)]
            elif mtype == MoveType.PROMOTION:
                promotion = make_piece(us, move.promotion_type)
                self.remove_piece(to_sq)
                self.put_piece(promotion, to_sq)
                dp.to_squares[0] = SQ_NONE
                dp.add(promotion, SQ_NONE, to_sq)
                k ^= keys.psq[promotion][to_sq]
                st.material_key ^= (
                    keys.psq[promotion][8 + self._piece_count[promotion] - 1]
                    ^ keys.psq[pc][8 + self._piece_count[pc]]
                )
                if type_of(promotion) <= PieceType.BISHOP:
                    st.minor_piece_key ^= keys.psq[promotion][to_sq]
                st.non_pawn_material[int(us)] += PIECE_VALUES[promotion]
            st.pawn_key ^= keys.psq[pc][from_sq] ^ keys.psq[pc][to_sq]
            st.rule50 = 0
        else:
            delta = keys.psq[pc][from_sq] ^ keys.psq[pc][to_sq]
            st.non_pawn_key[int(us)] ^= delta
            if type_of(pc) <= PieceType.BISHOP:
                st.minor_piece_key ^= delta

        st.key = k
        st.captured_piece = captured
        if gives_check is None or gives_check:
            st.checkers_bb = self.attackers_to(self.king_square(them)) & self.pieces_of(us)
        else:
            st.checkers_bb = 0

        self._side_to_move = them
        self._set_check_info()

        st.repetition = 0
        end = min(st.rule50, st.plies_from_null)
        n = len(self._states) - 1
        for i in range(4, end + 1, 2):
            prior = self._states[n - i]
            if prior.key == st.key:
                st.repetition = -i if prior.repetition else i
                break
        return dp

    def undo_move(self, move: Move) -> None:
        """Retract the last move made with :meth:`do_move`."""
        if len(self._states) < 2:
            raise RuntimeError("no move to undo")
        self._side_to_move = ~self._side_to_move
        us = self._side_to_move
        from_sq, to_sq = move.from_sq, move.to_sq
        mtype = move.move_type
        st = self._st

        if mtype == MoveType.PROMOTION:
            self.remove_piece(to_sq)
            self.put_piece(make_piece(us, PieceType.PAWN), to_sq)

        if mtype == MoveType.CASTLING:
            self._do_castling(False, us, from_sq, to_sq)
        else:
            self._move_piece(to_sq, from_sq)
            if st.captured_piece:
                capsq = to_sq
                if mtype == MoveType.EN_PASSANT:
                    capsq -= pawn_push(us)
                self.put_piece(st.captured_piece, capsq)

        self._states.pop()
        self._game_ply -= 1

    def do_null_move(self) -> None:
        """Pass the turn without moving a piece; not allowed while in check."""
        if self.checkers():
            raise ValueError("cannot make a null move while in check")
        st = copy.deepcopy(self._st)
        self._states.append(st)
        if st.ep_square != SQ_NONE:
            st.key ^= self.keys.enpassant[file_of(st.ep_square)]
            st.ep_square = SQ_NONE
        st.key ^= self.keys.side
        st.plies_from_null = 0
        self._side_to_move = ~self._side_to_move
        self._set_check_info()
        st.repetition = 0

    def undo_null_move(self) -> None:
        if len(self._states) < 2:
            raise RuntimeError("no null move to undo")
        self._states.pop()
        self._side_to_move = ~self._side_to_move

    # -------------------------------------------------------- repetition

    def is_repetition(self, ply: int) -> bool:
        rep = self._st.repetition
        return bool(rep) and rep < ply

    def has_repeated(self) -> bool:
        st = self._st
        end = min(st.rule50, st.plies_from_null)
        idx = len(self._states) - 1
        while end >= 4:
            end -= 1
            if self._states[idx].repetition:
                return True
            idx -= 1
        return False

    def upcoming_repetition(self, ply: int) -> bool:
        """Whether the side to move has a reversible move that repeats an earlier position."""
        st = self._st
        end = min(st.rule50, st.plies_from_null)
        if end < 3:
            return False
        n = len(self._states) - 1
        original = st.key
        other = original ^ self._states[n - 1].key ^ self.keys.side
        for i in range(3, end + 1, 2):
            other ^= self._states[n - i + 1].key ^ self._states[n - i].key ^ self.keys.side
            if other != 0:
                continue
            stp = self._states[n - i]
            move = self._cuckoo.lookup(original ^ stp.key)
            if move is None:
                continue
            s1, s2 = move.from_sq, move.to_sq
            if not ((between_bb(s1, s2) ^ square_bb(s2)) & self.pieces()):
                if ply > i or stp.repetition:
                    return True
        return False

    # -------------------------------------------------------- debugging

    def flip(self) -> None:
        """Mirror the position, swapping the colours."""
        fields = self.fen().split(" ")
        placement, side, castling, ep = fields[0], fields[1], fields[2], fields[3]
        f = "/".join(reversed(placement.split("/"))) + " "
        f += "B " if side == "w" else "W "
        f += castling + " "
        f = f.swapcase()
        f += ep if ep == "-" else ep[0] + ("6" if ep[1] == "3" else "3")
        f += " " + " ".join(fields[4:])
        self.set(f, self._chess960)

    def pos_is_ok(self) -> bool:
        """Consistency check of the internal representation."""
        P = PieceType
        try:
            wk = self.king_square(Color.WHITE)
            bk = self.king_square(Color.BLACK)
        except ValueError:
            return False
        us = self._side_to_move
        ep = self.ep_square()
        if (
            self._board[wk] != Piece.W_KING
            or self._board[bk] != Piece.B_KING
            or (ep != SQ_NONE and relative_rank(us, rank_of(ep)) != 5)
        ):
            return False
        if (
            self._piece_count[Piece.W_KING] != 1
            or self._piece_count[Piece.B_KING] != 1
            or self.attackers_to_exist(self.king_square(~us), self.pieces(), us)
        ):
            return False
        if (
            self.pieces(P.PAWN) & (RANK_1_BB | RANK_8_BB)
            or self._piece_count[Piece.W_PAWN] > 8
            or self._piece_count[Piece.B_PAWN] > 8
        ):
            return False
        white, black = self.pieces_of(Color.WHITE), self.pieces_of(Color.BLACK)
        if white & black or (white | black) != self.pieces() or popcount(white) > 16 or popcount(black) > 16:
            return False
        types = [P.PAWN, P.KNIGHT, P.BISHOP, P.ROOK, P.QUEEN, P.KING]
        for p1 in types:
            for p2 in types:
                if p1 != p2 and self.pieces(p1) & self.pieces(p2):
                    return False
        for pc in PIECES:
            n = self._piece_count[pc]
            if n != popcount(self.pieces_of(color_of(pc), type_of(pc))) or n != self._board.count(pc):
                return False
        for c in (Color.WHITE, Color.BLACK):
            for side in (CastlingRights.KING_SIDE, CastlingRights.QUEEN_SIDE):
                cr = side.restricted_to(c)
                if not self.can_castle(cr):
                    continue
                rsq = self._castling_rook_square[cr]
                if (
                    self._board[rsq] != make_piece(c, P.ROOK)
                    or self._castling_rights_mask[rsq] != cr
                    or (self._castling_rights_mask[self.king_square(c)] & cr) != cr
                ):
                    return False
        return True