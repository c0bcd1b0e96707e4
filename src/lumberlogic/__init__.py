"""Public API for the LumberLogic purchase-plan engine."""

from lumberlogic.contracts import (
    Cut,
    Dimensions,
    FinishedPart,
    OptimizationResult,
    PlannerConfig,
    RawBoardResult,
    RawStock,
    Settings,
    Unit,
)
from lumberlogic.errors import (
    InvalidInput,
    LaminationInfeasible,
    LengthInfeasible,
    LumberPlanError,
)
from lumberlogic.pipeline import optimize_lumber_plan
from lumberlogic.serialization import result_fingerprint

__all__ = [
    "Cut",
    "Dimensions",
    "FinishedPart",
    "InvalidInput",
    "LaminationInfeasible",
    "LengthInfeasible",
    "LumberPlanError",
    "OptimizationResult",
    "PlannerConfig",
    "RawBoardResult",
    "RawStock",
    "Settings",
    "Unit",
    "optimize_lumber_plan",
    "result_fingerprint",
]
