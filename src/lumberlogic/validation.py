"""Input validation. Everything is checked before any computation starts."""

from __future__ import annotations

import math
from typing import List, Sequence

from lumberlogic.contracts import Dimensions, FinishedPart, RawStock, Settings, Unit
from lumberlogic.errors import InvalidInput


def _positive(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


def _check_dimensions(label: str, dims: Dimensions, problems: List[str]) -> None:
    for axis in ("thickness", "width", "length"):
        value = getattr(dims, axis)
        if not _positive(value):
            problems.append(f"{label}: {axis} must be > 0 (got {value!r})")


def validate_inputs(
    parts: Sequence[FinishedPart],
    stocks: Sequence[RawStock],
    settings: Settings,
) -> None:
    """Raise InvalidInput listing every problem found."""
    problems: List[str] = []

    if not parts:
        problems.append("at least one finished part is required")
    if not stocks:
        problems.append("at least one raw stock entry is required")

    seen_parts = set()
    for part in parts:
        label = f"part '{part.name or part.id}'"
        if not str(part.name).strip():
            problems.append(f"part id '{part.id}': name must not be empty")
        if part.id in seen_parts:
            problems.append(f"{label}: duplicate id '{part.id}'")
        seen_parts.add(part.id)
        if isinstance(part.quantity, bool) or not isinstance(part.quantity, int) or part.quantity < 1:
            problems.append(f"{label}: quantity must be an integer >= 1 (got {part.quantity!r})")
        _check_dimensions(label, part.dimensions, problems)

    seen_stocks = set()
    for stock in stocks:
        label = f"stock '{stock.name or stock.id}'"
        if stock.id in seen_stocks:
            problems.append(f"{label}: duplicate id '{stock.id}'")
        seen_stocks.add(stock.id)
        _check_dimensions(label, stock.dimensions, problems)

    for name in ("thickness_allowance", "width_allowance", "kerf"):
        value = getattr(settings, name)
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            problems.append(f"settings: {name} must be >= 0 (got {value!r})")
    if not isinstance(settings.unit, Unit):
        problems.append(f"settings: unit must be 'mm' or 'inch' (got {settings.unit!r})")

    if problems:
        raise InvalidInput(problems)
