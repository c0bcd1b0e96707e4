"""
Fit evaluation between one raw stock cross-section and one finished part.

Length is checked first because it can never be laminated. Width and
thickness are classified independently against the allowance-padded target
and the bare finished size.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from lumberlogic.contracts import CROSS_AXES, Dimensions, PlannerConfig
from lumberlogic.errors import AxisInfeasible, LengthInfeasible
from lumberlogic.units import MachiningTargets


class AxisFit(Enum):
    FITS = "fits"
    TIGHT_FIT = "tight_fit"
    REQUIRES_LAMINATION = "requires_lamination"
    INFEASIBLE = "infeasible"


@dataclass(frozen=True)
class FitReport:
    thickness: AxisFit
    width: AxisFit

    def axis(self, name: str) -> AxisFit:
        return getattr(self, name)

    @property
    def laminated_axes(self) -> Tuple[str, ...]:
        return tuple(
            a for a in CROSS_AXES if self.axis(a) is AxisFit.REQUIRES_LAMINATION
        )

    @property
    def tight_axes(self) -> Tuple[str, ...]:
        return tuple(a for a in CROSS_AXES if self.axis(a) is AxisFit.TIGHT_FIT)


def classify_axis(
    raw: float,
    floor: float,
    target: float,
    allow_lamination: bool = True,
    tolerance: float = 1e-9,
) -> AxisFit:
    """Classify one cross axis of a single raw piece."""
    if raw >= target - tolerance:
        return AxisFit.FITS
    if raw >= floor - tolerance:
        return AxisFit.TIGHT_FIT
    if allow_lamination:
        return AxisFit.REQUIRES_LAMINATION
    return AxisFit.INFEASIBLE


def evaluate_fit(
    stock: Dimensions,
    targets: MachiningTargets,
    config: PlannerConfig,
) -> FitReport:
    """Classify a (stock, part) pairing.

    Raises:
        LengthInfeasible: stock is shorter than the part.
        AxisInfeasible: an axis is undersized and lamination is disabled.
    """
    if stock.length < targets.length - targets.tolerance:
        raise LengthInfeasible(
            f"stock length {stock.length:g} < part length {targets.length:g}"
        )

    fits: Dict[str, AxisFit] = {}
    for axis in CROSS_AXES:
        goal = targets.axis(axis)
        fit = classify_axis(
            stock.axis(axis),
            goal.floor,
            goal.target,
            allow_lamination=config.allow_lamination,
            tolerance=targets.tolerance,
        )
        if fit is AxisFit.INFEASIBLE:
            raise AxisInfeasible(
                axis,
                f"raw {stock.axis(axis):g} < finished {goal.floor:g} "
                "and lamination is disabled",
            )
        fits[axis] = fit
    return FitReport(**fits)
