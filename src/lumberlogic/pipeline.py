"""Engine entry point: parts + catalog + settings -> purchase plan."""

from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

from lumberlogic.assembler import assemble_plan
from lumberlogic.assignment import assign_stock
from lumberlogic.audit import AuditTrail
from lumberlogic.contracts import (
    FinishedPart,
    OptimizationResult,
    PlannerConfig,
    RawStock,
    Settings,
)
from lumberlogic.validation import validate_inputs

logger = logging.getLogger(__name__)


def optimize_lumber_plan(
    parts: Sequence[FinishedPart],
    stocks: Sequence[RawStock],
    settings: Optional[Settings] = None,
    config: Optional[PlannerConfig] = None,
    audit: Optional[AuditTrail] = None,
) -> OptimizationResult:
    """Compute the purchase plan for one job.

    Deterministic for identical inputs, including list order. Holds no state
    between calls.

    Raises:
        InvalidInput: empty lists or invalid records; nothing is computed.
    """
    if settings is None:
        settings = Settings()
    if config is None:
        config = PlannerConfig()

    validate_inputs(parts, stocks, settings)
    started = time.perf_counter()

    if audit is not None:
        audit.write_checkpoint(
            phase_index=0,
            phase_name="validated_input",
            counts={
                "parts": len(parts),
                "units": sum(p.quantity for p in parts),
                "stocks": len(stocks),
            },
            metrics={
                "kerf": float(settings.kerf),
                "width_allowance": float(settings.width_allowance),
                "thickness_allowance": float(settings.thickness_allowance),
            },
        )

    outcome = assign_stock(parts, stocks, settings, config, audit)

    if audit is not None:
        audit.write_checkpoint(
            phase_index=1,
            phase_name="stock_assignment",
            counts={
                "assigned_parts": len(outcome.assignments),
                "unmatched_parts": len(outcome.unmatched),
                "exclusions": len(outcome.exclusions),
                "offcuts_generated": len(outcome.pool),
            },
            metrics={
                "raw_strips": float(sum(a.plan.raw_strips for a in outcome.assignments)),
            },
        )

    result = assemble_plan(outcome, settings, config.tolerance)

    if audit is not None:
        audit.write_checkpoint(
            phase_index=2,
            phase_name="plan_assembly",
            counts={
                "stock_lines": len(result.plan),
                "boards": sum(line.quantity_needed for line in result.plan),
            },
            metrics={"total_raw_volume": float(result.total_raw_volume)},
            outputs={"unmatchable_parts": list(result.unmatchable_parts)},
        )

    logger.info(
        "Plan complete: stock lines=%d boards=%d volume=%.1f unmatchable=%d (%.3fs)",
        len(result.plan),
        sum(line.quantity_needed for line in result.plan),
        result.total_raw_volume,
        len(result.unmatchable_parts),
        time.perf_counter() - started,
    )
    return result
