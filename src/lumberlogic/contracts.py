"""Contracts for the lumber purchase-plan engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

GLUE_LAYER_SUFFIX = " (Glue Layer)"

WIDTH = "width"
THICKNESS = "thickness"
CROSS_AXES = (THICKNESS, WIDTH)


class Unit(Enum):
    """Length unit declared for a whole run."""

    MM = "mm"
    INCH = "inch"

    @classmethod
    def parse(cls, value) -> "Unit":
        if isinstance(value, Unit):
            return value
        key = str(value).strip().lower()
        aliases = {
            "mm": cls.MM,
            "metric": cls.MM,
            "millimeters": cls.MM,
            "millimetres": cls.MM,
            "inch": cls.INCH,
            "in": cls.INCH,
            "inches": cls.INCH,
            "imperial": cls.INCH,
        }
        if key not in aliases:
            raise ValueError(f"Unknown unit '{value}'. Expected 'mm' or 'inch'.")
        return aliases[key]


@dataclass(frozen=True)
class Dimensions:
    thickness: float
    width: float
    length: float

    @property
    def cross_section_area(self) -> float:
        return self.thickness * self.width

    @property
    def volume(self) -> float:
        return self.thickness * self.width * self.length

    def axis(self, name: str) -> float:
        return float(getattr(self, name))


@dataclass(frozen=True)
class FinishedPart:
    """A required finished piece and how many copies are needed."""

    id: str
    name: str
    quantity: int
    dimensions: Dimensions


@dataclass(frozen=True)
class RawStock:
    """A purchasable raw board type (catalog entry)."""

    id: str
    name: str
    dimensions: Dimensions


@dataclass(frozen=True)
class Settings:
    """Machining parameters applied uniformly for one run."""

    thickness_allowance: float = 5.0
    width_allowance: float = 5.0
    kerf: float = 3.0
    unit: Unit = Unit.MM


@dataclass(frozen=True)
class PlannerConfig:
    """Engine knobs. Defaults reproduce the documented heuristic."""

    allow_lamination: bool = True
    max_strips_per_axis: int = 8
    reuse_offcuts: bool = True
    min_offcut_size: Optional[float] = None  # None -> one kerf
    tolerance: float = 1e-9
    max_workers: int = 1


@dataclass
class Offcut:
    """Leftover strip from a glued block, reusable by a later part."""

    offcut_id: int
    source_stock_id: str
    axis: str
    width: float
    thickness: float
    length: float
    generated_after: int
    consumed_by: Optional[int] = None

    @property
    def dimension(self) -> float:
        return self.width if self.axis == WIDTH else self.thickness


@dataclass(frozen=True)
class Strip:
    """One physical piece inside a laminated block."""

    width: float
    thickness: float
    source: str = "raw"  # "raw" | "offcut"
    offcut_id: Optional[int] = None


Layer = Tuple[Strip, ...]


@dataclass(frozen=True)
class UnitBlock:
    """Cross-section composition of one finished unit.

    Thickness layers stacked face to face, each layer a row of strips glued
    edge to edge.
    """

    layers: Tuple[Layer, ...]
    tight_axes: Tuple[str, ...] = ()

    @property
    def piece_count(self) -> int:
        return sum(len(layer) for layer in self.layers)

    @property
    def raw_strip_count(self) -> int:
        return sum(1 for layer in self.layers for s in layer if s.source == "raw")

    @property
    def is_glue_layer(self) -> bool:
        return self.piece_count > 1

    @property
    def width(self) -> float:
        return min(sum(s.width for s in layer) for layer in self.layers)

    @property
    def thickness(self) -> float:
        return sum(min(s.thickness for s in layer) for layer in self.layers)

    @property
    def offcut_ids(self) -> Tuple[int, ...]:
        return tuple(
            s.offcut_id for layer in self.layers for s in layer
            if s.offcut_id is not None
        )

    def shape(self) -> "UnitBlock":
        """Same composition with offcut identities cleared."""
        return UnitBlock(
            layers=tuple(
                tuple(replace(s, offcut_id=None) for s in layer) for layer in self.layers
            ),
            tight_axes=self.tight_axes,
        )


@dataclass(frozen=True)
class Cut:
    """A homogeneous group of identical finished units from one stock type."""

    part_id: str
    part_name: str
    length: float
    count: int
    glue_layer: bool = False
    raw_strips_per_unit: int = 1
    block: Optional[UnitBlock] = None
    offcut_ids: Tuple[int, ...] = ()

    @property
    def raw_strips(self) -> int:
        return self.count * self.raw_strips_per_unit


@dataclass(frozen=True)
class BoardCut:
    part_name: str
    length: float
    count: int


@dataclass(frozen=True)
class BoardLayout:
    """Cut diagram of one physical board."""

    index: int
    cuts: Tuple[BoardCut, ...]
    used_length: float
    waste: float


@dataclass(frozen=True)
class RawBoardResult:
    """One purchase line plus its cut diagram."""

    raw_stock_id: str
    raw_stock_name: str
    dimensions: Dimensions
    cuts: Tuple[Cut, ...]
    waste: float
    quantity_needed: int
    boards: Tuple[BoardLayout, ...] = ()


@dataclass(frozen=True)
class Exclusion:
    """A (part, stock) pairing rejected as a candidate."""

    part_id: str
    part_name: str
    stock_id: str
    stock_name: str
    reason: str  # "length_infeasible" | "lamination_infeasible" | "axis_infeasible"
    axis: str
    detail: str = ""


@dataclass(frozen=True)
class OptimizationResult:
    plan: Tuple[RawBoardResult, ...]
    unmatchable_parts: Tuple[str, ...]
    total_raw_volume: float
    unit: Unit = Unit.MM
    exclusions: Tuple[Exclusion, ...] = ()
    offcuts: Tuple[Offcut, ...] = field(default_factory=tuple)


def glue_label(name: str, glued: bool) -> str:
    return f"{name}{GLUE_LAYER_SUFFIX}" if glued else name
