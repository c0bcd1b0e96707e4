"""
Stock assignment across the whole part list.

Parts are processed in input order because the offcut pool depends on
generation history. For each part every catalog entry is tried (fit check
plus a lamination trial against the current pool), infeasible pairings are
recorded as exclusions, and the survivor with the smallest key wins:

    (uses tight fit, raw volume per finished unit, glue pieces, catalog index)

so a full-allowance option always beats a tight fit, and ties fall back to
catalog declaration order. Only the winner's trial is committed to the pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from lumberlogic.audit import AuditTrail
from lumberlogic.contracts import (
    Exclusion,
    FinishedPart,
    PlannerConfig,
    RawStock,
    Settings,
)
from lumberlogic.errors import PairingInfeasible
from lumberlogic.fit import evaluate_fit
from lumberlogic.lamination import (
    LaminationPlan,
    OffcutPool,
    commit_plan,
    plan_lamination,
)
from lumberlogic.units import MachiningTargets

logger = logging.getLogger(__name__)

ASSIGNMENT_PHASE = 1


@dataclass(frozen=True)
class Candidate:
    """A feasible (part, stock) pairing and its trial lamination plan."""

    stock_index: int
    stock: RawStock
    plan: LaminationPlan
    score: float

    @property
    def tight(self) -> bool:
        return self.plan.uses_tight_fit

    def sort_key(self) -> Tuple[bool, float, int, int]:
        return (self.tight, self.score, self.plan.glue_pieces, self.stock_index)


@dataclass(frozen=True)
class PartAssignment:
    part_index: int
    part: FinishedPart
    stock_index: int
    stock: RawStock
    plan: LaminationPlan
    score: float


@dataclass
class AssignmentOutcome:
    assignments: List[PartAssignment] = field(default_factory=list)
    unmatched: List[FinishedPart] = field(default_factory=list)
    exclusions: List[Exclusion] = field(default_factory=list)
    pool: OffcutPool = field(default_factory=OffcutPool)


def score_plan(
    plan: LaminationPlan,
    stock: RawStock,
    part: FinishedPart,
    settings: Settings,
) -> float:
    """Raw volume consumed per finished unit.

    Cross-section of the raw strips actually glued (offcuts are free) times
    the part length plus one kerf share.
    """
    area = plan.raw_strips * stock.dimensions.cross_section_area
    return area * (part.dimensions.length + settings.kerf) / part.quantity


def evaluate_candidate(
    part_index: int,
    part: FinishedPart,
    stock_index: int,
    stock: RawStock,
    settings: Settings,
    config: PlannerConfig,
    pool: OffcutPool,
) -> Candidate:
    """Trial one pairing without touching the pool.

    Raises:
        PairingInfeasible: length, axis or lamination infeasibility.
    """
    targets = MachiningTargets.from_settings(part.dimensions, settings, config)
    fit = evaluate_fit(stock.dimensions, targets, config)
    plan = plan_lamination(
        stock, part_index, part.quantity, targets, fit, pool, config,
    )
    return Candidate(
        stock_index=stock_index,
        stock=stock,
        plan=plan,
        score=score_plan(plan, stock, part, settings),
    )


def _exclusion(part: FinishedPart, stock: RawStock, exc: PairingInfeasible) -> Exclusion:
    return Exclusion(
        part_id=part.id,
        part_name=part.name,
        stock_id=stock.id,
        stock_name=stock.name,
        reason=exc.reason,
        axis=exc.axis,
        detail=exc.detail,
    )


def _evaluate_all(
    part_index: int,
    part: FinishedPart,
    stocks: Sequence[RawStock],
    settings: Settings,
    config: PlannerConfig,
    pool: OffcutPool,
) -> List[Union[Candidate, Exclusion]]:
    def run(item: Tuple[int, RawStock]) -> Union[Candidate, Exclusion]:
        stock_index, stock = item
        try:
            return evaluate_candidate(
                part_index, part, stock_index, stock, settings, config, pool,
            )
        except PairingInfeasible as exc:
            logger.debug(
                "Excluded part '%s' on stock '%s': %s (%s axis) %s",
                part.name, stock.name, exc.reason, exc.axis, exc.detail,
            )
            return _exclusion(part, stock, exc)

    items = list(enumerate(stocks))
    if config.max_workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            return list(executor.map(run, items))
    return [run(item) for item in items]


def _record_decision(
    audit: Optional[AuditTrail],
    part: FinishedPart,
    candidates: Sequence[Candidate],
    exclusions: Sequence[Exclusion],
    chosen: Optional[Candidate],
) -> None:
    if audit is None:
        return
    alternatives = [
        {
            "name": c.stock.id,
            "cost": float(c.score),
            "tight_fit": c.tight,
            "raw_strips": c.plan.raw_strips,
            "glue_pieces": c.plan.glue_pieces,
        }
        for c in candidates
    ]
    alternatives.extend(
        {"name": e.stock_id, "cost": None, "excluded": e.reason, "axis": e.axis}
        for e in exclusions
    )
    if chosen is None:
        reasons = ["no_surviving_candidate"]
    elif chosen.tight:
        reasons = ["tight_fit_fallback", "min_raw_volume"]
    else:
        reasons = ["full_allowance", "min_raw_volume"]
    audit.append_decision(
        phase_index=ASSIGNMENT_PHASE,
        decision_type="stock_assignment",
        entity_ids=[part.id],
        alternatives=alternatives,
        selected=chosen.stock.id if chosen is not None else "unmatchable",
        reason_codes=reasons,
        numeric_evidence={
            "candidate_count": float(len(candidates)),
            "excluded_count": float(len(exclusions)),
            "score": float(chosen.score) if chosen is not None else 0.0,
            "offcuts_consumed": float(len(chosen.plan.consumed_offcut_ids)) if chosen else 0.0,
        },
    )


def assign_stock(
    parts: Sequence[FinishedPart],
    stocks: Sequence[RawStock],
    settings: Settings,
    config: Optional[PlannerConfig] = None,
    audit: Optional[AuditTrail] = None,
) -> AssignmentOutcome:
    """Choose one catalog stock type per part, threading the offcut pool."""
    if config is None:
        config = PlannerConfig()

    outcome = AssignmentOutcome()
    pool = outcome.pool

    for part_index, part in enumerate(parts):
        results = _evaluate_all(part_index, part, stocks, settings, config, pool)
        candidates = [r for r in results if isinstance(r, Candidate)]
        exclusions = [r for r in results if isinstance(r, Exclusion)]
        outcome.exclusions.extend(exclusions)

        chosen = min(candidates, key=Candidate.sort_key) if candidates else None
        _record_decision(audit, part, candidates, exclusions, chosen)

        if chosen is None:
            logger.warning(
                "Part '%s' is unmatchable: %d catalog entries excluded",
                part.name, len(exclusions),
            )
            outcome.unmatched.append(part)
            continue

        created = commit_plan(pool, chosen.plan)
        if chosen.tight:
            logger.info(
                "Part '%s' uses a tight fit on '%s' (no full-allowance option)",
                part.name, chosen.stock.name,
            )
        logger.info(
            "Assigned part '%s' x%d -> '%s': raw strips=%d glue pieces=%d "
            "offcuts used=%d new=%d score=%.1f",
            part.name, part.quantity, chosen.stock.name,
            chosen.plan.raw_strips, chosen.plan.glue_pieces,
            len(chosen.plan.consumed_offcut_ids), len(created), chosen.score,
        )
        outcome.assignments.append(
            PartAssignment(
                part_index=part_index,
                part=part,
                stock_index=chosen.stock_index,
                stock=chosen.stock,
                plan=chosen.plan,
                score=chosen.score,
            )
        )

    return outcome
