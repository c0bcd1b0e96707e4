"""
First-fit-decreasing length packing for one raw stock type.

Each demand is one strip to be crosscut from a board of length ``L``. A board
holding lengths ``l1..ln`` uses ``sum(l) + kerf * (n - 1)``, which must not
exceed ``L``. This is a heuristic: FFD is fast and usually within a board or
two of optimal, which is acceptable because cross-section reuse dominates the
objective.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from lumberlogic.contracts import BoardCut, BoardLayout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LengthDemand:
    """One strip to crosscut. ``order`` keeps the sort stable across runs."""

    label: str
    length: float
    order: int = 0


@dataclass
class _OpenBoard:
    kerf: float
    pieces: List[LengthDemand] = field(default_factory=list)
    used: float = 0.0

    def usage_with(self, length: float) -> float:
        if not self.pieces:
            return length
        return self.used + self.kerf + length

    def place(self, demand: LengthDemand) -> None:
        self.used = self.usage_with(demand.length)
        self.pieces.append(demand)


@dataclass(frozen=True)
class LengthCutResult:
    boards: Tuple[BoardLayout, ...]

    @property
    def board_count(self) -> int:
        return len(self.boards)

    @property
    def total_waste(self) -> float:
        return sum(b.waste for b in self.boards)


def _group_cuts(pieces: Sequence[LengthDemand]) -> Tuple[BoardCut, ...]:
    groups: List[BoardCut] = []
    for piece in pieces:
        if groups and groups[-1].part_name == piece.label and groups[-1].length == piece.length:
            last = groups[-1]
            groups[-1] = BoardCut(last.part_name, last.length, last.count + 1)
        else:
            groups.append(BoardCut(piece.label, piece.length, 1))
    return tuple(groups)


def cut_lengths(
    board_length: float,
    demands: Sequence[LengthDemand],
    kerf: float,
    tolerance: float = 1e-9,
) -> LengthCutResult:
    """Pack strip lengths into as few boards as FFD finds.

    Raises:
        ValueError: a demand is longer than the board.
    """
    ordered = sorted(demands, key=lambda d: (-d.length, d.order))
    boards: List[_OpenBoard] = []

    for demand in ordered:
        if demand.length > board_length + tolerance:
            raise ValueError(
                f"Cut '{demand.label}' length {demand.length:g} exceeds board length {board_length:g}"
            )
        for board in boards:
            if board.usage_with(demand.length) <= board_length + tolerance:
                board.place(demand)
                break
        else:
            board = _OpenBoard(kerf=kerf)
            board.place(demand)
            boards.append(board)

    layouts = tuple(
        BoardLayout(
            index=i,
            cuts=_group_cuts(board.pieces),
            used_length=board.used,
            waste=max(0.0, board_length - board.used),
        )
        for i, board in enumerate(boards)
    )
    logger.debug(
        "Packed %d strips into %d boards of %g (kerf %g)",
        len(ordered), len(layouts), board_length, kerf,
    )
    return LengthCutResult(boards=layouts)
