"""Data carried between the search and its caller: root moves, limits, skill and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .core import Move
from .score import VALUE_INFINITE, Score


class NodeType(Enum):
    NON_PV = 0
    PV = 1
    ROOT = 2


@dataclass
class RootMove:
    """A move at the root with its scores and principal variation."""

    pv: list[Move]
    effort: int = 0
    score: int = -VALUE_INFINITE
    previous_score: int = -VALUE_INFINITE
    average_score: int = -VALUE_INFINITE
    mean_squared_score: int = -VALUE_INFINITE * VALUE_INFINITE
    uci_score: int = -VALUE_INFINITE
    score_lowerbound: bool = False
    score_upperbound: bool = False
    sel_depth: int = 0
    tb_rank: int = 0
    tb_score: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.pv, Move):
            self.pv = [self.pv]
        else:
            self.pv = list(self.pv)
        if not self.pv:
            raise ValueError("a root move needs at least its own move")

    def sort_key(self) -> tuple[int, int]:
        """Key ordering moves by descending score, then descending previous score."""
        return (-self.score, -self.previous_score)

    def matches(self, move: Move) -> bool:
        return self.pv[0] == move

    def __lt__(self, other: "RootMove") -> bool:
        return self.sort_key() < other.sort_key()


def sort_root_moves(root_moves: list[RootMove], start: int = 0, end: int | None = None) -> None:
    """Stably sort ``root_moves[start:end]`` in place, best first."""
    if end is None:
        end = len(root_moves)
    root_moves[start:end] = sorted(root_moves[start:end], key=RootMove.sort_key)


def _two() -> list[int]:
    return [0, 0]


@dataclass
class LimitsType:
    """What the caller asked the search for: clocks, depth, nodes and so on."""

    searchmoves: list[str] = field(default_factory=list)
    time: list[int] = field(default_factory=_two)
    inc: list[int] = field(default_factory=_two)
    npmsec: int = 0
    movetime: int = 0
    start_time: int = 0
    movestogo: int = 0
    depth: int = 0
    mate: int = 0
    perft: int = 0
    infinite: int = 0
    nodes: int = 0
    ponder_mode: bool = False

    def use_time_management(self) -> bool:
        return bool(self.time[0] or self.time[1])


class Skill:
    """Strength limit expressed as a level from 0 to 20, optionally derived from an Elo."""

    LOWEST_ELO = 1320
    HIGHEST_ELO = 3190

    def __init__(self, skill_level: int, uci_elo: int = 0) -> None:
        if uci_elo:
            e = (uci_elo - self.LOWEST_ELO) / (self.HIGHEST_ELO - self.LOWEST_ELO)
            raw = ((37.2473 * e - 40.8525) * e + 22.2943) * e - 0.311438
            self.level = min(max(raw, 0.0), 19.0)
        else:
            self.level = float(skill_level)
        self.best = Move.none()

    def enabled(self) -> bool:
        return self.level < 20.0

    def time_to_pick(self, depth: int) -> bool:
        return depth == 1 + int(self.level)


@dataclass
class InfoShort:
    depth: int
    score: Score


@dataclass
class InfoFull(InfoShort):
    sel_depth: int = 0
    multi_pv: int = 1
    wdl: str = ""
    bound: str = ""
    time_ms: int = 0
    nodes: int = 0
    nps: int = 0
    tb_hits: int = 0
    pv: str = ""
    hashfull: int = 0


@dataclass
class InfoIteration:
    depth: int
    currmove: str
    currmovenumber: int


@dataclass(frozen=True)
class ConthistBonus:
    index: int
    weight: int