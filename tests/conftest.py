"""
Shared test fixtures for the lumber plan engine.
"""
import json
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lumberlogic.contracts import (
    Dimensions,
    FinishedPart,
    PlannerConfig,
    RawStock,
    Settings,
    Unit,
)


def make_part(part_id, thickness, width, length, quantity=1, name=None):
    return FinishedPart(
        id=part_id,
        name=name or part_id,
        quantity=quantity,
        dimensions=Dimensions(thickness, width, length),
    )


def make_stock(stock_id, thickness, width, length, name=None):
    return RawStock(
        id=stock_id,
        name=name or stock_id,
        dimensions=Dimensions(thickness, width, length),
    )


@pytest.fixture
def settings():
    """Defaults of the planner form: 5mm allowances, 3mm kerf."""
    return Settings(thickness_allowance=5.0, width_allowance=5.0, kerf=3.0, unit=Unit.MM)


@pytest.fixture
def no_kerf_settings():
    """Width allowance only, no kerf, so offcut sizes are exact."""
    return Settings(thickness_allowance=0.0, width_allowance=5.0, kerf=0.0, unit=Unit.MM)


@pytest.fixture
def config():
    return PlannerConfig()


@pytest.fixture
def strip_stock():
    """20 x 70 x 2400 board, narrower than most panels."""
    return make_stock("s70", 20.0, 70.0, 2400.0, name="20x70")


@pytest.fixture
def catalog():
    """A small rough-sawn catalog in declaration order."""
    return [
        make_stock("4-4x6", 27.0, 150.0, 2400.0, name="4/4 x 6"),
        make_stock("8-4x4", 52.0, 100.0, 2400.0, name="8/4 x 4"),
        make_stock("5-4x8", 33.0, 200.0, 2400.0, name="5/4 x 8"),
    ]


@pytest.fixture
def table_parts():
    return [
        make_part("leg", 70.0, 70.0, 720.0, quantity=4, name="Leg"),
        make_part("apron", 22.0, 90.0, 1600.0, quantity=2, name="Apron"),
        make_part("top", 28.0, 180.0, 1900.0, quantity=5, name="Top Board"),
        make_part("slat", 18.0, 60.0, 500.0, quantity=6, name="Slat"),
    ]


@pytest.fixture
def job_payload():
    return {
        "name": "fixture_job",
        "settings": {"thicknessAllowance": 5, "widthAllowance": 5, "kerf": 3, "unit": "mm"},
        "parts": [
            {"id": "leg", "name": "Leg", "quantity": 4, "thickness": 70, "width": 70, "length": 720},
            {"id": "apron", "name": "Apron", "quantity": 2, "thickness": 22, "width": 90, "length": 1600},
            {"id": "giant", "name": "Giant Beam", "quantity": 1, "thickness": 40, "width": 40, "length": 5000},
        ],
        "stocks": [
            {"id": "4-4x6", "name": "4/4 x 6", "thickness": 27, "width": 150, "length": 2400},
            {"id": "8-4x4", "name": "8/4 x 4", "thickness": 52, "width": 100, "length": 2400},
        ],
    }


@pytest.fixture
def job_file(tmp_path, job_payload):
    path = tmp_path / "fixture_job.json"
    path.write_text(json.dumps(job_payload), encoding="utf-8")
    return str(path)
