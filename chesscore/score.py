"""Search value ranges and the conversion of raw values to reportable scores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

MAX_PLY = 246

VALUE_ZERO = 0
VALUE_DRAW = 0
VALUE_NONE = 32002
VALUE_INFINITE = 32001
VALUE_MATE = 32000
VALUE_MATE_IN_MAX_PLY = VALUE_MATE - MAX_PLY
VALUE_MATED_IN_MAX_PLY = -VALUE_MATE_IN_MAX_PLY
VALUE_TB = VALUE_MATE_IN_MAX_PLY - 1
VALUE_TB_WIN_IN_MAX_PLY = VALUE_TB - MAX_PLY
VALUE_TB_LOSS_IN_MAX_PLY = -VALUE_TB_WIN_IN_MAX_PLY


@dataclass(frozen=True)
class Mate:
    """Mate in ``plies``; negative when the side to move is being mated."""

    plies: int


@dataclass(frozen=True)
class Tablebase:
    """A tablebase win or loss ``plies`` away from the tablebase boundary."""

    plies: int
    win: bool


@dataclass(frozen=True)
class InternalUnits:
    """An ordinary evaluation expressed in centipawns."""

    value: int


Score = Union[Mate, Tablebase, InternalUnits]


def is_valid(value: int) -> bool:
    return value != VALUE_NONE


def is_win(value: int) -> bool:
    return value >= VALUE_TB_WIN_IN_MAX_PLY


def is_loss(value: int) -> bool:
    return value <= VALUE_TB_LOSS_IN_MAX_PLY


def is_decisive(value: int) -> bool:
    return is_win(value) or is_loss(value)


def mate_in(ply: int) -> int:
    return VALUE_MATE - ply


def mated_in(ply: int) -> int:
    return -VALUE_MATE + ply


def score_from_value(value: int, to_cp: Callable[[int], int]) -> Score:
    """Classify a search value as a mate, a tablebase result or centipawns via ``to_cp``."""
    if not -VALUE_INFINITE < value < VALUE_INFINITE:
        raise ValueError(f"value out of range: {value}")
    if not is_decisive(value):
        return InternalUnits(to_cp(value))
    if abs(value) <= VALUE_TB:
        distance = VALUE_TB - abs(value)
        return Tablebase(distance, True) if value > 0 else Tablebase(-distance, False)
    distance = VALUE_MATE - abs(value)
    return Mate(distance) if value > 0 else Mate(-distance)