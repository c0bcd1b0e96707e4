"""
Plan metrics and the human-readable summary.

Utilization is measured along board length: the share of each purchased
board taken by strips and kerf. Cross-section waste (ripping, planing) is
reported separately through the offcut figures.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List

import numpy as np

from lumberlogic.contracts import OptimizationResult
from lumberlogic.units import INCH_TO_MM, to_mm, unit_label

CUBIC_INCHES_PER_BOARD_FOOT = 144.0

logger = logging.getLogger(__name__)


@dataclass
class StockMetrics:
    raw_stock_id: str
    raw_stock_name: str
    boards: int
    raw_strips: int
    length_utilization: float  # 0-1
    waste_length: float
    waste_volume: float
    min_board_utilization: float


@dataclass
class PlanMetrics:
    stock_lines: int
    boards: int
    raw_strips: int
    finished_units: int
    glue_layer_units: int
    unmatchable_parts: int
    excluded_pairings: int
    total_raw_volume: float
    board_feet: float
    length_utilization: float
    offcuts_generated: int
    offcuts_consumed: int
    offcuts_discarded: int
    per_stock: List[StockMetrics] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _utilization(used: np.ndarray, capacity: float) -> np.ndarray:
    if used.size == 0 or capacity <= 0:
        return np.zeros(0)
    return np.clip(used / capacity, 0.0, 1.0)


def board_feet(result: OptimizationResult) -> float:
    """Purchased volume in board feet (144 cubic inches each)."""
    mm3_per_board_foot = CUBIC_INCHES_PER_BOARD_FOOT * INCH_TO_MM ** 3
    total = 0.0
    for line in result.plan:
        d = line.dimensions
        volume_mm3 = (
            to_mm(d.thickness, result.unit)
            * to_mm(d.width, result.unit)
            * to_mm(d.length, result.unit)
        )
        total += volume_mm3 * line.quantity_needed
    return total / mm3_per_board_foot


def compute_metrics(result: OptimizationResult) -> PlanMetrics:
    per_stock: List[StockMetrics] = []
    all_used: List[float] = []
    all_capacity: List[float] = []

    for line in result.plan:
        used = np.array([b.used_length for b in line.boards], dtype=float)
        board_util = _utilization(used, line.dimensions.length)
        capacity = line.dimensions.length * len(line.boards)
        waste_length = float(np.sum(line.dimensions.length - used)) if used.size else 0.0
        per_stock.append(
            StockMetrics(
                raw_stock_id=line.raw_stock_id,
                raw_stock_name=line.raw_stock_name,
                boards=line.quantity_needed,
                raw_strips=sum(c.raw_strips for c in line.cuts),
                length_utilization=float(used.sum() / capacity) if capacity > 0 else 0.0,
                waste_length=waste_length,
                waste_volume=waste_length * line.dimensions.cross_section_area,
                min_board_utilization=float(board_util.min()) if board_util.size else 0.0,
            )
        )
        all_used.extend(used.tolist())
        all_capacity.extend([line.dimensions.length] * len(line.boards))

    used_arr = np.asarray(all_used, dtype=float)
    cap_arr = np.asarray(all_capacity, dtype=float)
    overall = float(used_arr.sum() / cap_arr.sum()) if cap_arr.size else 0.0

    cuts = [cut for line in result.plan for cut in line.cuts]
    consumed = sum(1 for o in result.offcuts if o.consumed_by is not None)

    metrics = PlanMetrics(
        stock_lines=len(result.plan),
        boards=sum(line.quantity_needed for line in result.plan),
        raw_strips=sum(c.raw_strips for c in cuts),
        finished_units=sum(c.count for c in cuts),
        glue_layer_units=sum(c.count for c in cuts if c.glue_layer),
        unmatchable_parts=len(result.unmatchable_parts),
        excluded_pairings=len(result.exclusions),
        total_raw_volume=float(result.total_raw_volume),
        board_feet=board_feet(result),
        length_utilization=overall,
        offcuts_generated=len(result.offcuts),
        offcuts_consumed=consumed,
        offcuts_discarded=len(result.offcuts) - consumed,
        per_stock=per_stock,
    )
    logger.info(
        "Metrics: boards=%d strips=%d utilization=%.1f%% offcuts %d/%d reused",
        metrics.boards, metrics.raw_strips, overall * 100,
        metrics.offcuts_consumed, metrics.offcuts_generated,
    )
    return metrics


def _bar(board, length: float, width: int = 40) -> str:
    if length <= 0:
        return ""
    chars: List[str] = []
    for i, cut in enumerate(board.cuts):
        mark = "#" if i % 2 == 0 else "="
        span = int(round(width * cut.length * cut.count / length))
        chars.append(mark * max(1, span))
    bar = "".join(chars)[:width]
    return "[" + bar.ljust(width, ".") + "]"


def build_summary(
    result: OptimizationResult,
    metrics: PlanMetrics,
    run_id: str = "",
    elapsed_s: float = 0.0,
) -> str:
    unit = result.unit.value
    lines = [
        f"# Lumber plan {run_id}".rstrip(),
        "",
        f"- Units: {unit_label(result.unit)}",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Boards to buy: {metrics.boards} ({metrics.stock_lines} stock types)",
        f"- Raw strips: {metrics.raw_strips} for {metrics.finished_units} finished units "
        f"({metrics.glue_layer_units} glued)",
        f"- Length utilization: {metrics.length_utilization * 100:.1f}%",
        f"- Offcuts: {metrics.offcuts_generated} generated, {metrics.offcuts_consumed} reused",
        f"- Total raw volume: {result.total_raw_volume:.1f} {unit}^3 "
        f"({metrics.board_feet:.2f} board feet)",
        "",
        "## Shopping list",
    ]
    if not result.plan:
        lines.append("- nothing to buy")
    for line in result.plan:
        d = line.dimensions
        lines.append(
            f"- {line.quantity_needed} x {line.raw_stock_name} "
            f"({d.thickness:g} x {d.width:g} x {d.length:g} {unit}), "
            f"waste {line.waste:.1f} {unit}"
        )

    lines.extend(["", "## Cut diagrams"])
    for line in result.plan:
        lines.append(f"### {line.raw_stock_name}")
        for board in line.boards:
            parts = ", ".join(
                f"{c.part_name} {c.length:g} x{c.count}" for c in board.cuts
            )
            lines.append(
                f"- board {board.index + 1} {_bar(board, line.dimensions.length)} "
                f"{parts} (waste {board.waste:.1f})"
            )
        lines.append("")

    if result.unmatchable_parts:
        lines.append("## Unmatchable parts")
        lines.extend(f"- {name}" for name in result.unmatchable_parts)
        lines.append("")
    return "\n".join(lines)
