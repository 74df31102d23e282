# chesscore

A small, dependency-free library for working with chess positions. It
covers bitboards, FEN input and output, Zobrist hashing, and making and
unmaking moves. It also has legality and check tests, static exchange
evaluation, and some data types for a game-tree search.

## Installation

```
pip install .
```

## Modules

- `chesscore.core`: the basic types and board geometry.
  - Types: `Color`, `PieceType`, `Piece`, `MoveType` and `CastlingRights`.
  - Square helpers: `make_square`, `file_of`, `rank_of`, `square_name`,
    `parse_square`, `relative_square` and `relative_rank`.
  - Bitboard helpers: `square_bb`, `popcount`, `lsb`, `more_than_one` and
    `iter_squares`.
  - Attack tables: `pawn_attacks_bb`, `attacks_bb`, `between_bb` and
    `line_bb`.
  - `Move`, a 16-bit move encoding. It has `Move.make`, `Move.none()`,
    `Move.null()`, `from_sq`, `to_sq`, `move_type`, `promotion_type` and
    `uci()`.
- `chesscore.zobrist`: hashing keys and the repetition table.
  - `PRNG`, an xorshift64* generator.
  - `ZobristKeys`, the tables of random keys. They are seeded with
    `DEFAULT_SEED` by default.
  - `CuckooTable`, which maps the key change of each reversible piece move
    to that move.
  - `default_keys()` and `default_cuckoo()`, cached instances of the two.
- `chesscore.position`: the `Position` class, together with `StateInfo`
  and `DirtyPiece`.
  - Setting up and printing: `set()` reads FEN, including Shredder-FEN and
    X-FEN castling fields. `set_from_code()` builds a position from an
    endgame code such as `"KBPKN"`. `fen()` writes FEN, and `diagram()`
    draws an ASCII board.
  - Board queries: `pieces()`, `pieces_of()`, `piece_on()`,
    `king_square()`, `checkers()`, `pinners()`, `attackers_to()`, and more.
  - Moves: `do_move()` and `undo_move()`, and `do_null_move()` and
    `undo_null_move()` for null moves. `do_move()` returns a `DirtyPiece`
    that lists the pieces that changed.
  - Hash keys: `key()`, `pawn_key()`, `material_key()`,
    `minor_piece_key()` and `non_pawn_key()`.
  - Repetitions: `is_repetition()`, `has_repeated()` and
    `upcoming_repetition()`.
  - Debugging: `flip()` mirrors the colours, and `pos_is_ok()` is a
    consistency check.
- `chesscore.rules`: three functions that take a position and a move.
  - `legal(position, move)` tells whether a pseudo-legal move leaves the
    mover's king safe.
  - `gives_check(position, move)` tells whether a move checks the
    opponent's king.
  - `see_ge(position, move, threshold=0)` tells whether the move's static
    exchange value is at least `threshold`.
- `chesscore.score`: search value constants (`VALUE_MATE`, `VALUE_TB`, ...).
  - Value tests and helpers: `is_valid`, `is_win`, `is_loss`,
    `is_decisive`, `mate_in` and `mated_in`.
  - `score_from_value(value, to_cp)` turns a search value into `Mate`,
    `Tablebase` or `InternalUnits`. Ordinary values become `InternalUnits`
    through the `to_cp` callback you supply.
- `chesscore.searchtools`: data types for a search.
  - `NodeType`.
  - `RootMove`, with `sort_key()` and `matches()`. `sort_root_moves()`
    stably sorts root moves, best first.
  - `LimitsType`, with `use_time_management()`.
  - `Skill`, a strength level that can be derived from an Elo rating.
  - Report records: `InfoShort`, `InfoFull` and `InfoIteration`.
  - `ConthistBonus`.

## Example

```python
from chesscore.core import Move, parse_square
from chesscore.position import Position
from chesscore.rules import gives_check, legal

pos = Position()
pos.set("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", False)

move = Move.make(parse_square("e2"), parse_square("e4"))
if legal(pos, move):
    pos.do_move(move, gives_check(pos, move))

print(pos.fen())
print(pos.diagram())
pos.undo_move(move)
```

A position must have one king of each colour. Setting up a position
without one raises `ValueError`.

## What this package does not do

This is a library of building blocks, not a playing program. It leaves
out the following:

- **Move generation.** There is no move generator. `legal()` expects a
  move that is already pseudo-legal, and there is no pseudo-legality test
  for arbitrary moves.
- **Game results.** Stalemate, checkmate and fifty-move draws are not
  detected. Only the repetition checks are provided.
- **Playing chess.** There is no evaluation function, no search, no
  transposition table and no time management.
- **Outside interfaces.** There is no command-line program, no engine
  protocol and no endgame tablebase probing.

## Running the tests

```
pip install .[test]
pytest
```