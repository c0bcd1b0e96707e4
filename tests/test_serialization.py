"""Tests for job loading and result payloads."""
import json
from pathlib import Path

import pytest

from lumberlogic import InvalidInput, Unit, optimize_lumber_plan, result_fingerprint
from lumberlogic.serialization import (
    SCHEMA_VERSION,
    job_from_payload,
    load_job,
    result_to_payload,
    settings_from_payload,
    settings_to_payload,
)


class TestJobLoading:
    def test_load_job_file(self, job_file):
        job = load_job(job_file)
        assert job.name == "fixture_job"
        assert [p.id for p in job.parts] == ["leg", "apron", "giant"]
        assert job.parts[0].quantity == 4
        assert job.parts[0].dimensions.length == pytest.approx(720.0)
        assert job.stocks[1].dimensions.thickness == pytest.approx(52.0)
        assert job.settings.kerf == pytest.approx(3.0)
        assert job.settings.unit is Unit.MM

    def test_nested_dimensions_accepted(self):
        payload = {
            "parts": [{"name": "P", "dimensions": {"thickness": 1, "width": 2, "length": 3}}],
            "stocks": [{"name": "S", "thickness": 1, "width": 2, "length": 3}],
        }
        job = job_from_payload(payload)
        assert job.parts[0].id == "part-1"
        assert job.parts[0].dimensions.width == pytest.approx(2.0)
        assert job.stocks[0].id == "stock-1"

    def test_settings_defaults_and_aliases(self):
        settings = settings_from_payload({"unit": "imperial", "width_allowance": 0.25})
        assert settings.unit is Unit.INCH
        assert settings.width_allowance == pytest.approx(0.25)
        assert settings.kerf == pytest.approx(3.0)

    def test_settings_round_trip_keys(self):
        payload = settings_to_payload(settings_from_payload({"kerf": 2}))
        assert set(payload) == {"thicknessAllowance", "widthAllowance", "kerf", "unit"}

    def test_bad_number_rejected(self):
        payload = {
            "parts": [{"name": "P", "thickness": "thick", "width": 2, "length": 3}],
            "stocks": [],
        }
        with pytest.raises(InvalidInput) as info:
            job_from_payload(payload)
        assert "thickness" in str(info.value)

    def test_bad_unit_rejected(self):
        with pytest.raises(InvalidInput):
            settings_from_payload({"unit": "cubits"})

    def test_non_object_payload(self):
        with pytest.raises(InvalidInput):
            job_from_payload(["not", "a", "job"])


class TestResultPayload:
    @pytest.fixture
    def result(self, job_file):
        job = load_job(job_file)
        return optimize_lumber_plan(job.parts, job.stocks, job.settings)

    def test_response_schema_keys(self, result):
        payload = result_to_payload(result)
        assert payload["schema_version"] == SCHEMA_VERSION
        assert payload["unmatchableParts"] == ["Giant Beam"]
        assert payload["totalRawVolume"] == pytest.approx(result.total_raw_volume)
        line = payload["plan"][0]
        assert {"rawStockName", "dimensions", "cuts", "waste", "quantityNeeded"} <= set(line)
        assert {"partName", "length", "count"} <= set(line["cuts"][0])

    def test_payload_is_json_serializable(self, result):
        text = json.dumps(result_to_payload(result))
        assert "Giant Beam" in text

    def test_fingerprint_is_stable(self, result, job_file):
        job = load_job(job_file)
        again = optimize_lumber_plan(job.parts, job.stocks, job.settings)
        assert result_fingerprint(result) == result_fingerprint(again)
        assert len(result_fingerprint(result)) == 64


JOBS_DIR = Path(__file__).resolve().parent.parent / "benchmarks" / "jobs"


@pytest.mark.parametrize("job_path", sorted(JOBS_DIR.glob("*.json")), ids=lambda p: p.stem)
def test_benchmark_jobs_plan(job_path):
    job = load_job(job_path)
    result = optimize_lumber_plan(job.parts, job.stocks, job.settings)
    assert result.plan
    json.dumps(result_to_payload(result))
