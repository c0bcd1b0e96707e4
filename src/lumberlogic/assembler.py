"""Aggregate per-stock assignments into the purchase plan."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from lumberlogic.assignment import AssignmentOutcome, PartAssignment
from lumberlogic.contracts import (
    Cut,
    OptimizationResult,
    RawBoardResult,
    Settings,
    UnitBlock,
    glue_label,
)
from lumberlogic.length_cutter import LengthDemand, cut_lengths

logger = logging.getLogger(__name__)


def group_cuts(assignment: PartAssignment) -> List[Cut]:
    """Collapse units of one part with the same block shape into Cut groups.

    Which offcut a unit consumed does not split a group; the ids are listed
    on the Cut in unit order.
    """
    part = assignment.part
    counts: Dict[UnitBlock, int] = {}
    offcuts: Dict[UnitBlock, List[int]] = {}
    for block in assignment.plan.blocks:
        shape = block.shape()
        counts[shape] = counts.get(shape, 0) + 1
        offcuts.setdefault(shape, []).extend(block.offcut_ids)
    return [
        Cut(
            part_id=part.id,
            part_name=glue_label(part.name, shape.is_glue_layer),
            length=part.dimensions.length,
            count=count,
            glue_layer=shape.is_glue_layer,
            raw_strips_per_unit=shape.raw_strip_count,
            block=shape,
            offcut_ids=tuple(offcuts[shape]),
        )
        for shape, count in counts.items()
    ]


def _stock_line(
    assignments: Sequence[PartAssignment],
    settings: Settings,
    tolerance: float,
) -> RawBoardResult:
    stock = assignments[0].stock
    cuts: List[Cut] = []
    demands: List[LengthDemand] = []
    for assignment in assignments:
        for cut in group_cuts(assignment):
            cuts.append(cut)
            for _ in range(cut.raw_strips):
                demands.append(LengthDemand(cut.part_name, cut.length, order=len(demands)))

    packed = cut_lengths(stock.dimensions.length, demands, settings.kerf, tolerance)
    return RawBoardResult(
        raw_stock_id=stock.id,
        raw_stock_name=stock.name,
        dimensions=stock.dimensions,
        cuts=tuple(cuts),
        waste=packed.total_waste,
        quantity_needed=packed.board_count,
        boards=packed.boards,
    )


def assemble_plan(
    outcome: AssignmentOutcome,
    settings: Settings,
    tolerance: float = 1e-9,
) -> OptimizationResult:
    """Group by stock (catalog order), cut lengths, total the volume."""
    by_stock: Dict[int, List[PartAssignment]] = {}
    for assignment in outcome.assignments:
        by_stock.setdefault(assignment.stock_index, []).append(assignment)

    plan: Tuple[RawBoardResult, ...] = tuple(
        _stock_line(by_stock[index], settings, tolerance)
        for index in sorted(by_stock)
    )
    total_raw_volume = sum(line.dimensions.volume * line.quantity_needed for line in plan)
    unmatchable = tuple(sorted(part.name for part in outcome.unmatched))

    for line in plan:
        logger.info(
            "Buy %d x '%s' (%g x %g x %g), waste length %.1f",
            line.quantity_needed, line.raw_stock_name,
            line.dimensions.thickness, line.dimensions.width, line.dimensions.length,
            line.waste,
        )

    return OptimizationResult(
        plan=plan,
        unmatchable_parts=unmatchable,
        total_raw_volume=total_raw_volume,
        unit=settings.unit,
        exclusions=tuple(outcome.exclusions),
        offcuts=tuple(replace(o) for o in outcome.pool.offcuts),
    )
