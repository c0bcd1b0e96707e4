"""
Unit handling and machining targets.

Converts run settings into the per-axis sizes a raw piece must reach before
planing and jointing, and provides the mm/inch conversion used in reports.
"""

from __future__ import annotations

from dataclasses import dataclass

from lumberlogic.contracts import (
    PlannerConfig,
    Settings,
    THICKNESS,
    Unit,
    WIDTH,
)

INCH_TO_MM = 25.4


def to_mm(value: float, unit: Unit) -> float:
    return value * INCH_TO_MM if unit is Unit.INCH else value


def from_mm(value_mm: float, unit: Unit) -> float:
    return value_mm / INCH_TO_MM if unit is Unit.INCH else value_mm


def unit_label(unit: Unit) -> str:
    return "millimeters" if unit is Unit.MM else "inches"


@dataclass(frozen=True)
class AxisTarget:
    """Finished size and allowance-padded size for one cross axis."""

    axis: str
    floor: float  # finished dimension (tight-fit threshold)
    target: float  # finished dimension + allowance


@dataclass(frozen=True)
class MachiningTargets:
    thickness: AxisTarget
    width: AxisTarget
    length: float
    kerf: float
    min_offcut_size: float
    tolerance: float

    @classmethod
    def from_settings(
        cls,
        part_dims,
        settings: Settings,
        config: PlannerConfig,
    ) -> "MachiningTargets":
        min_offcut = (
            settings.kerf if config.min_offcut_size is None
            else config.min_offcut_size
        )
        return cls(
            thickness=AxisTarget(
                THICKNESS,
                floor=part_dims.thickness,
                target=part_dims.thickness + settings.thickness_allowance,
            ),
            width=AxisTarget(
                WIDTH,
                floor=part_dims.width,
                target=part_dims.width + settings.width_allowance,
            ),
            length=part_dims.length,
            kerf=settings.kerf,
            min_offcut_size=max(0.0, float(min_offcut)),
            tolerance=config.tolerance,
        )

    def axis(self, name: str) -> AxisTarget:
        return self.width if name == WIDTH else self.thickness

    def at_least(self, value: float, threshold: float) -> bool:
        return value >= threshold - self.tolerance
