"""
Lamination planning with offcut reuse.

When a raw strip is narrower (or thinner) than the finished part, strips are
glued edge to edge (or face to face) until the block reaches the machining
target. The block usually overshoots; a leftover wider than the minimum
usable strip is ripped off and registered in the offcut pool so a later part
can glue it in place of a fresh raw strip.

Example (width allowance 5, kerf 0): two parts 90 wide from 70 wide stock.
Part A glues 70 + 70 = 140 and frees a 45 offcut (140 - 95). Part B glues one
new 70 strip to that offcut (115 >= 95), so three raw strips are used
instead of four. The rip that frees an offcut costs one kerf, so at the
default 3 kerf the offcut is 42 and Part B's block is 112.

The pool is shared, order-sensitive state. Candidate trials only read it
through ``OffcutPool.available``; ``commit_plan`` applies the chosen trial.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from lumberlogic.contracts import (
    Offcut,
    PlannerConfig,
    RawStock,
    Strip,
    THICKNESS,
    UnitBlock,
    WIDTH,
)
from lumberlogic.errors import LaminationInfeasible
from lumberlogic.fit import FitReport
from lumberlogic.units import AxisTarget, MachiningTargets

logger = logging.getLogger(__name__)


class OffcutPool:
    """Arena of offcuts in generation order.

    Offcuts are identified by a sequence id, consumed by reference and never
    duplicated. A part may only consume offcuts generated by strictly earlier
    parts.
    """

    def __init__(self):
        self._offcuts: List[Offcut] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._offcuts)

    @property
    def offcuts(self) -> Tuple[Offcut, ...]:
        return tuple(self._offcuts)

    def get(self, offcut_id: int) -> Offcut:
        for offcut in self._offcuts:
            if offcut.offcut_id == offcut_id:
                return offcut
        raise KeyError(offcut_id)

    def available(
        self,
        *,
        stock_id: str,
        axis: str,
        min_length: float,
        part_index: int,
        exclude: Iterable[int] = (),
        tolerance: float = 1e-9,
    ) -> List[Offcut]:
        """Unconsumed offcuts usable by ``part_index``, oldest first."""
        skip = set(exclude)
        return [
            o for o in self._offcuts
            if o.consumed_by is None
            and o.generated_after < part_index
            and o.source_stock_id == stock_id
            and o.axis == axis
            and o.length >= min_length - tolerance
            and o.offcut_id not in skip
        ]

    def register(
        self,
        *,
        stock_id: str,
        axis: str,
        width: float,
        thickness: float,
        length: float,
        part_index: int,
    ) -> Offcut:
        offcut = Offcut(
            offcut_id=self._next_id,
            source_stock_id=stock_id,
            axis=axis,
            width=width,
            thickness=thickness,
            length=length,
            generated_after=part_index,
        )
        self._next_id += 1
        self._offcuts.append(offcut)
        return offcut

    def consume(self, offcut_id: int, part_index: int) -> Offcut:
        offcut = self.get(offcut_id)
        if offcut.consumed_by is not None:
            raise ValueError(f"Offcut {offcut_id} already consumed by part {offcut.consumed_by}")
        if offcut.generated_after >= part_index:
            raise ValueError(
                f"Offcut {offcut_id} from part {offcut.generated_after} "
                f"cannot be used by part {part_index}"
            )
        offcut.consumed_by = part_index
        return offcut


@dataclass(frozen=True)
class StripCombination:
    """Strips chosen for one laminated axis."""

    raw_count: int
    raw_dim: float
    threshold: float
    tight: bool
    offcut: Optional[Offcut] = None

    @property
    def piece_count(self) -> int:
        return self.raw_count + (1 if self.offcut is not None else 0)

    @property
    def total(self) -> float:
        extra = self.offcut.dimension if self.offcut is not None else 0.0
        return self.raw_count * self.raw_dim + extra

    @property
    def leftover(self) -> float:
        return self.total - self.threshold


def _strips_needed(gap: float, raw_dim: float, tolerance: float) -> int:
    if gap <= tolerance:
        return 0
    return int(math.ceil((gap - tolerance) / raw_dim))


def _best_for_threshold(
    raw_dim: float,
    threshold: float,
    tight: bool,
    offcuts: Sequence[Offcut],
    max_pieces: int,
    tolerance: float,
) -> Optional[StripCombination]:
    options: List[Tuple[tuple, StripCombination]] = []

    n = max(1, _strips_needed(threshold, raw_dim, tolerance))
    if n <= max_pieces:
        combo = StripCombination(n, raw_dim, threshold, tight)
        options.append(((n, n, combo.leftover, 0, 0), combo))

    for offcut in offcuts:
        k = _strips_needed(threshold - offcut.dimension, raw_dim, tolerance)
        if k + 1 > max_pieces:
            continue
        combo = StripCombination(k, raw_dim, threshold, tight, offcut)
        options.append(((k, k + 1, combo.leftover, 1, offcut.offcut_id), combo))

    if not options:
        return None
    options.sort(key=lambda item: item[0])
    return options[0][1]


def choose_combination(
    raw_dim: float,
    goal: AxisTarget,
    offcuts: Sequence[Offcut],
    max_pieces: int,
    tolerance: float = 1e-9,
) -> StripCombination:
    """Pick strips for one axis: full target first, tight fit as fallback.

    Ranking: fewest new raw strips, fewest pieces, smallest leftover, then
    oldest offcut. At most one offcut is combined with raw strips.

    Raises:
        LaminationInfeasible: not even the finished size is reachable within
            ``max_pieces``.
    """
    if raw_dim <= 0:
        raise LaminationInfeasible(goal.axis, "raw dimension is not positive")

    for threshold, tight in ((goal.target, False), (goal.floor, True)):
        combo = _best_for_threshold(
            raw_dim, threshold, tight, offcuts, max_pieces, tolerance,
        )
        if combo is not None:
            return combo

    raise LaminationInfeasible(
        goal.axis,
        f"{max_pieces} strips of {raw_dim:g} cannot reach finished {goal.floor:g}",
    )


@dataclass(frozen=True)
class OffcutDraft:
    """Offcut produced by a trial, registered only on commit."""

    axis: str
    width: float
    thickness: float
    length: float


@dataclass
class LaminationPlan:
    """Trial result for all units of one part against one stock type."""

    stock_id: str
    part_index: int
    blocks: List[UnitBlock] = field(default_factory=list)
    consumed_offcut_ids: List[int] = field(default_factory=list)
    drafts: List[OffcutDraft] = field(default_factory=list)

    @property
    def raw_strips(self) -> int:
        return sum(b.raw_strip_count for b in self.blocks)

    @property
    def glue_pieces(self) -> int:
        return sum(b.piece_count - 1 for b in self.blocks)

    @property
    def uses_tight_fit(self) -> bool:
        return any(b.tight_axes for b in self.blocks)


def _offcut_draft(
    combo: StripCombination,
    axis: str,
    cross_dim: float,
    targets: MachiningTargets,
) -> Optional[OffcutDraft]:
    leftover = combo.leftover
    if leftover <= targets.min_offcut_size + targets.tolerance:
        return None
    size = leftover - targets.kerf
    if size <= targets.tolerance:
        return None
    if axis == WIDTH:
        return OffcutDraft(WIDTH, width=size, thickness=cross_dim, length=targets.length)
    return OffcutDraft(THICKNESS, width=cross_dim, thickness=size, length=targets.length)


def _row(combo: StripCombination, width: float, thickness: float) -> Tuple[Strip, ...]:
    strips = [Strip(width=width, thickness=thickness) for _ in range(combo.raw_count)]
    if combo.offcut is not None:
        strips.append(
            Strip(
                width=combo.offcut.width,
                thickness=combo.offcut.thickness,
                source="offcut",
                offcut_id=combo.offcut.offcut_id,
            )
        )
    return tuple(strips)


def plan_lamination(
    stock: RawStock,
    part_index: int,
    quantity: int,
    targets: MachiningTargets,
    fit: FitReport,
    pool: OffcutPool,
    config: PlannerConfig,
) -> LaminationPlan:
    """Plan the cross-section of every unit of one part from one stock type.

    The pool is only read. Units of the same part never see each other's
    offcuts because new offcuts are drafts until ``commit_plan``.
    """
    raw_w = stock.dimensions.width
    raw_t = stock.dimensions.thickness
    laminated = fit.laminated_axes
    plan = LaminationPlan(stock_id=stock.id, part_index=part_index)
    used: Set[int] = set()
    max_pieces = max(1, int(config.max_strips_per_axis))

    def pool_for(axis: str) -> List[Offcut]:
        if not config.reuse_offcuts:
            return []
        return pool.available(
            stock_id=stock.id,
            axis=axis,
            min_length=targets.length,
            part_index=part_index,
            exclude=used,
            tolerance=targets.tolerance,
        )

    def take(combo: StripCombination) -> None:
        if combo.offcut is not None:
            used.add(combo.offcut.offcut_id)
            plan.consumed_offcut_ids.append(combo.offcut.offcut_id)

    def keep(draft: Optional[OffcutDraft]) -> None:
        if draft is not None and config.reuse_offcuts:
            plan.drafts.append(draft)

    for _ in range(quantity):
        tight_axes = list(fit.tight_axes)

        if WIDTH in laminated and THICKNESS in laminated:
            layers_combo = choose_combination(
                raw_t, targets.thickness, [], max_pieces, targets.tolerance,
            )
            if layers_combo.tight:
                tight_axes.append(THICKNESS)
            layers = []
            for _layer in range(layers_combo.raw_count):
                row_combo = choose_combination(
                    raw_w, targets.width, pool_for(WIDTH), max_pieces, targets.tolerance,
                )
                take(row_combo)
                keep(_offcut_draft(row_combo, WIDTH, raw_t, targets))
                if row_combo.tight and WIDTH not in tight_axes:
                    tight_axes.append(WIDTH)
                layers.append(_row(row_combo, raw_w, raw_t))
            block_layers = tuple(layers)

        elif WIDTH in laminated:
            combo = choose_combination(
                raw_w, targets.width, pool_for(WIDTH), max_pieces, targets.tolerance,
            )
            take(combo)
            keep(_offcut_draft(combo, WIDTH, raw_t, targets))
            if combo.tight:
                tight_axes.append(WIDTH)
            block_layers = (_row(combo, raw_w, raw_t),)

        elif THICKNESS in laminated:
            combo = choose_combination(
                raw_t, targets.thickness, pool_for(THICKNESS), max_pieces, targets.tolerance,
            )
            take(combo)
            keep(_offcut_draft(combo, THICKNESS, raw_w, targets))
            if combo.tight:
                tight_axes.append(THICKNESS)
            # one full-width strip per layer
            block_layers = tuple((strip,) for strip in _row(combo, raw_w, raw_t))

        else:
            block_layers = ((Strip(width=raw_w, thickness=raw_t),),)

        plan.blocks.append(
            UnitBlock(layers=block_layers, tight_axes=tuple(sorted(set(tight_axes))))
        )

    return plan


def commit_plan(pool: OffcutPool, plan: LaminationPlan) -> List[Offcut]:
    """Consume the plan's offcuts and register the ones it generated."""
    for offcut_id in plan.consumed_offcut_ids:
        pool.consume(offcut_id, plan.part_index)
    created = [
        pool.register(
            stock_id=plan.stock_id,
            axis=draft.axis,
            width=draft.width,
            thickness=draft.thickness,
            length=draft.length,
            part_index=plan.part_index,
        )
        for draft in plan.drafts
    ]
    if plan.consumed_offcut_ids or created:
        logger.debug(
            "Part %d on %s: consumed offcuts %s, registered %s",
            plan.part_index, plan.stock_id, plan.consumed_offcut_ids,
            [o.offcut_id for o in created],
        )
    return created
