"""
JSON job and result payloads.

Jobs use the camelCase records of the lumber planner web form: parts and
stocks carry ``thickness``/``width``/``length`` flat next to ``id`` and
``name``, settings carry ``thicknessAllowance``, ``widthAllowance``, ``kerf``
and ``unit``. Results follow the same form's response schema (``plan``,
``unmatchableParts``, ``totalRawVolume``) with a few extra keys for the cut
diagrams and diagnostics.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from lumberlogic.audit import canonical_json, sha256_text
from lumberlogic.contracts import (
    Dimensions,
    FinishedPart,
    OptimizationResult,
    RawStock,
    Settings,
    Unit,
    UnitBlock,
)
from lumberlogic.errors import InvalidInput

SCHEMA_VERSION = "lumberlogic.plan.v1"


@dataclass(frozen=True)
class Job:
    parts: Tuple[FinishedPart, ...]
    stocks: Tuple[RawStock, ...]
    settings: Settings = field(default_factory=Settings)
    name: str = "lumber_plan"


def _number(record: Dict[str, Any], key: str, label: str, problems: List[str]) -> float:
    value = record.get(key)
    if isinstance(value, bool):
        value = None
    try:
        return float(value)
    except (TypeError, ValueError):
        problems.append(f"{label}: '{key}' must be a number (got {value!r})")
        return 0.0


def _dimensions(record: Dict[str, Any], label: str, problems: List[str]) -> Dimensions:
    source = record.get("dimensions", record)
    if not isinstance(source, dict):
        problems.append(f"{label}: 'dimensions' must be an object")
        source = {}
    return Dimensions(
        thickness=_number(source, "thickness", label, problems),
        width=_number(source, "width", label, problems),
        length=_number(source, "length", label, problems),
    )


def settings_from_payload(payload: Dict[str, Any]) -> Settings:
    defaults = Settings()
    problems: List[str] = []
    try:
        unit = Unit.parse(payload.get("unit", defaults.unit))
    except ValueError as exc:
        problems.append(f"settings: {exc}")
        unit = defaults.unit

    def pick(camel: str, snake: str, default: float) -> float:
        if camel in payload:
            return _number(payload, camel, "settings", problems)
        if snake in payload:
            return _number(payload, snake, "settings", problems)
        return default

    settings = Settings(
        thickness_allowance=pick(
            "thicknessAllowance", "thickness_allowance", defaults.thickness_allowance,
        ),
        width_allowance=pick("widthAllowance", "width_allowance", defaults.width_allowance),
        kerf=pick("kerf", "kerf", defaults.kerf),
        unit=unit,
    )
    if problems:
        raise InvalidInput(problems)
    return settings


def job_from_payload(payload: Dict[str, Any], name: str = "lumber_plan") -> Job:
    """Build typed records from a job payload.

    Raises:
        InvalidInput: malformed records. Range checks happen in the engine.
    """
    if not isinstance(payload, dict):
        raise InvalidInput(["job payload must be a JSON object"])

    problems: List[str] = []
    parts: List[FinishedPart] = []
    for i, record in enumerate(payload.get("parts") or []):
        label = f"parts[{i}]"
        if not isinstance(record, dict):
            problems.append(f"{label}: must be an object")
            continue
        quantity = record.get("quantity", 1)
        if isinstance(quantity, float) and quantity.is_integer():
            quantity = int(quantity)
        parts.append(
            FinishedPart(
                id=str(record.get("id", f"part-{i + 1}")),
                name=str(record.get("name", "")),
                quantity=quantity,
                dimensions=_dimensions(record, label, problems),
            )
        )

    stocks: List[RawStock] = []
    for i, record in enumerate(payload.get("stocks") or []):
        label = f"stocks[{i}]"
        if not isinstance(record, dict):
            problems.append(f"{label}: must be an object")
            continue
        stocks.append(
            RawStock(
                id=str(record.get("id", f"stock-{i + 1}")),
                name=str(record.get("name", f"stock-{i + 1}")),
                dimensions=_dimensions(record, label, problems),
            )
        )

    if problems:
        raise InvalidInput(problems)

    settings = settings_from_payload(payload.get("settings") or {})
    return Job(
        parts=tuple(parts),
        stocks=tuple(stocks),
        settings=settings,
        name=str(payload.get("name", name)),
    )


def load_job(path: Path) -> Job:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    return job_from_payload(payload, name=path.stem)


def settings_to_payload(settings: Settings) -> Dict[str, Any]:
    return {
        "thicknessAllowance": settings.thickness_allowance,
        "widthAllowance": settings.width_allowance,
        "kerf": settings.kerf,
        "unit": settings.unit.value,
    }


def _block_payload(block: UnitBlock) -> Dict[str, Any]:
    return {
        "layers": [
            [
                {
                    "width": s.width,
                    "thickness": s.thickness,
                    "source": s.source,
                }
                for s in layer
            ]
            for layer in block.layers
        ],
        "tightAxes": list(block.tight_axes),
    }


def result_to_payload(result: OptimizationResult) -> Dict[str, Any]:
    plan = []
    for line in result.plan:
        plan.append(
            {
                "rawStockId": line.raw_stock_id,
                "rawStockName": line.raw_stock_name,
                "dimensions": {
                    "thickness": line.dimensions.thickness,
                    "width": line.dimensions.width,
                    "length": line.dimensions.length,
                },
                "quantityNeeded": line.quantity_needed,
                "waste": line.waste,
                "cuts": [
                    {
                        "partId": cut.part_id,
                        "partName": cut.part_name,
                        "length": cut.length,
                        "count": cut.count,
                        "glueLayer": cut.glue_layer,
                        "rawStripsPerUnit": cut.raw_strips_per_unit,
                        "block": _block_payload(cut.block) if cut.block is not None else None,
                        "offcutIds": list(cut.offcut_ids),
                    }
                    for cut in line.cuts
                ],
                "boards": [
                    {
                        "index": board.index,
                        "usedLength": board.used_length,
                        "waste": board.waste,
                        "cuts": [
                            {"partName": c.part_name, "length": c.length, "count": c.count}
                            for c in board.cuts
                        ],
                    }
                    for board in line.boards
                ],
            }
        )
    return {
        "schema_version": SCHEMA_VERSION,
        "unit": result.unit.value,
        "plan": plan,
        "unmatchableParts": list(result.unmatchable_parts),
        "totalRawVolume": result.total_raw_volume,
        "offcuts": [
            {
                "id": o.offcut_id,
                "sourceStockId": o.source_stock_id,
                "axis": o.axis,
                "width": o.width,
                "thickness": o.thickness,
                "length": o.length,
                "generatedAfter": o.generated_after,
                "consumedBy": o.consumed_by,
            }
            for o in result.offcuts
        ],
        "exclusions": [
            {
                "partId": e.part_id,
                "partName": e.part_name,
                "stockId": e.stock_id,
                "stockName": e.stock_name,
                "reason": e.reason,
                "axis": e.axis,
                "detail": e.detail,
            }
            for e in result.exclusions
        ],
    }


def result_fingerprint(result: OptimizationResult) -> str:
    """SHA-256 of the canonical result payload."""
    return sha256_text(canonical_json(result_to_payload(result)))
