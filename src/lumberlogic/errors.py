"""Error taxonomy for the lumber plan engine."""

from __future__ import annotations

from typing import Iterable, List


class LumberPlanError(Exception):
    """Base class for engine errors."""


class InvalidInput(LumberPlanError, ValueError):
    """Input rejected before any computation. Fatal to the call."""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems) or "invalid input")


class PairingInfeasible(LumberPlanError):
    """A specific (part, stock) pairing cannot produce the part."""

    reason = "infeasible"

    def __init__(self, axis: str, detail: str):
        self.axis = axis
        self.detail = detail
        super().__init__(f"{axis}: {detail}")


class LengthInfeasible(PairingInfeasible):
    reason = "length_infeasible"

    def __init__(self, detail: str):
        super().__init__("length", detail)


class AxisInfeasible(PairingInfeasible):
    """Raw stock is undersized on an axis and lamination is disabled."""

    reason = "axis_infeasible"


class LaminationInfeasible(PairingInfeasible):
    reason = "lamination_infeasible"
