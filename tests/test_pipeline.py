"""End-to-end tests for optimize_lumber_plan: invariants and scenarios."""
from __future__ import annotations

import pytest

from conftest import make_part, make_stock
from lumberlogic import (
    InvalidInput,
    PlannerConfig,
    Settings,
    optimize_lumber_plan,
    result_fingerprint,
)
from lumberlogic.contracts import GLUE_LAYER_SUFFIX


def _cuts_for(result, part_id):
    return [cut for line in result.plan for cut in line.cuts if cut.part_id == part_id]


def _raw_strips(result):
    return sum(cut.raw_strips for line in result.plan for cut in line.cuts)


class TestInvariants:
    @pytest.fixture
    def result(self, table_parts, catalog, settings):
        parts = table_parts + [make_part("beam", 40, 40, 5000, name="Long Beam")]
        return optimize_lumber_plan(parts, catalog, settings)

    def test_conservation(self, result, table_parts):
        parts = table_parts + [make_part("beam", 40, 40, 5000, name="Long Beam")]
        for part in parts:
            counted = sum(cut.count for cut in _cuts_for(result, part.id))
            if part.name in result.unmatchable_parts:
                assert counted == 0
            else:
                assert counted == part.quantity

    def test_length_invariant(self, result):
        for line in result.plan:
            for cut in line.cuts:
                assert cut.length <= line.dimensions.length
            for board in line.boards:
                assert board.used_length <= line.dimensions.length + 1e-9
                for cut in board.cuts:
                    assert cut.length <= line.dimensions.length

    def test_volume_accounting(self, result):
        expected = sum(
            line.dimensions.thickness * line.dimensions.width * line.dimensions.length
            * line.quantity_needed
            for line in result.plan
        )
        assert result.total_raw_volume == pytest.approx(expected)
        assert result.total_raw_volume == sum(
            line.dimensions.volume * line.quantity_needed for line in result.plan
        )

    def test_board_count_matches_layouts(self, result):
        for line in result.plan:
            assert line.quantity_needed == len(line.boards)
            strips = sum(c.count for b in line.boards for c in b.cuts)
            assert strips == sum(cut.raw_strips for cut in line.cuts)

    def test_lamination_correctness(self, result, table_parts, settings):
        parts = {p.id: p for p in table_parts}
        for line in result.plan:
            for cut in line.cuts:
                if not cut.glue_layer:
                    continue
                part = parts[cut.part_id]
                block = cut.block
                assert cut.part_name.endswith(GLUE_LAYER_SUFFIX)
                assert block.width >= part.dimensions.width
                assert block.thickness >= part.dimensions.thickness
                if "width" not in block.tight_axes:
                    assert block.width >= part.dimensions.width + settings.width_allowance
                if "thickness" not in block.tight_axes:
                    assert block.thickness >= (
                        part.dimensions.thickness + settings.thickness_allowance
                    )

    def test_offcut_causality(self, result):
        for offcut in result.offcuts:
            if offcut.consumed_by is not None:
                assert offcut.consumed_by > offcut.generated_after

    def test_unmatchable_over_length(self, result):
        assert result.unmatchable_parts == ("Long Beam",)
        assert _cuts_for(result, "beam") == []
        reasons = {e.reason for e in result.exclusions if e.part_id == "beam"}
        assert reasons == {"length_infeasible"}

    def test_expected_stock_choices(self, result):
        chosen = {
            cut.part_id: line.raw_stock_id
            for line in result.plan for cut in line.cuts
        }
        assert chosen["leg"] == "8-4x4"
        assert chosen["apron"] == "4-4x6"
        assert chosen["top"] == "5-4x8"
        assert chosen["slat"] == "4-4x6"

    def test_unused_catalog_entries_absent(self, table_parts, catalog, settings):
        extra = catalog + [make_stock("huge", 100.0, 300.0, 2400.0, name="Huge")]
        result = optimize_lumber_plan(table_parts, extra, settings)
        assert "huge" not in {line.raw_stock_id for line in result.plan}


class TestScenarios:
    def test_offcut_reuse_uses_three_strips(self, strip_stock, no_kerf_settings):
        parts = [make_part("a", 20, 90, 600), make_part("b", 20, 90, 600)]
        result = optimize_lumber_plan(parts, [strip_stock], no_kerf_settings)

        assert _raw_strips(result) == 3
        cut_a, = _cuts_for(result, "a")
        cut_b, = _cuts_for(result, "b")
        assert cut_a.glue_layer and cut_b.glue_layer
        assert cut_a.part_name == "a (Glue Layer)"
        assert cut_a.raw_strips_per_unit == 2
        assert cut_b.raw_strips_per_unit == 1
        assert cut_b.block.width == pytest.approx(115.0)

        first = result.offcuts[0]
        assert first.width == pytest.approx(45.0)
        assert first.generated_after == 0
        assert first.consumed_by == 1
        assert result.plan[0].quantity_needed == 1

    def test_offcut_reuse_with_default_kerf(self, strip_stock):
        """The rip that frees the offcut costs one kerf: 140 - 95 - 3 = 42."""
        settings = Settings(thickness_allowance=0.0, width_allowance=5.0, kerf=3.0)
        parts = [make_part("a", 20, 90, 600), make_part("b", 20, 90, 600)]
        result = optimize_lumber_plan(parts, [strip_stock], settings)

        assert _raw_strips(result) == 3
        first = result.offcuts[0]
        assert first.width == pytest.approx(42.0)
        assert first.consumed_by == 1
        cut_b, = _cuts_for(result, "b")
        assert cut_b.block.width == pytest.approx(112.0)
        assert cut_b.offcut_ids == (first.offcut_id,)

    def test_units_with_different_offcuts_share_one_cut(self, strip_stock, no_kerf_settings):
        parts = [
            make_part("a", 20, 90, 600, quantity=2),
            make_part("b", 20, 90, 600, quantity=2),
        ]
        result = optimize_lumber_plan(parts, [strip_stock], no_kerf_settings)

        cut_a, = _cuts_for(result, "a")
        cut_b, = _cuts_for(result, "b")
        assert (cut_a.count, cut_a.raw_strips_per_unit) == (2, 2)
        assert (cut_b.count, cut_b.raw_strips_per_unit) == (2, 1)
        reused = [o.offcut_id for o in result.offcuts if o.consumed_by == 1]
        assert len(reused) == 2
        assert sorted(cut_b.offcut_ids) == sorted(reused)
        assert all(s.offcut_id is None for layer in cut_b.block.layers for s in layer)
        assert _raw_strips(result) == 6

    def test_reuse_is_no_worse_than_naive(self, strip_stock, no_kerf_settings):
        parts = [make_part(f"p{i}", 20, 90, 600) for i in range(5)]
        naive = optimize_lumber_plan(
            parts, [strip_stock], no_kerf_settings, PlannerConfig(reuse_offcuts=False),
        )
        reuse = optimize_lumber_plan(parts, [strip_stock], no_kerf_settings)
        assert _raw_strips(naive) == 10
        assert _raw_strips(reuse) < _raw_strips(naive)
        assert reuse.total_raw_volume <= naive.total_raw_volume

    def test_tight_fit_fallback(self, settings):
        stock = make_stock("w150", 27.0, 150.0, 2400.0)
        result = optimize_lumber_plan([make_part("p", 20, 148, 1000)], [stock], settings)
        cut, = _cuts_for(result, "p")
        assert not cut.glue_layer
        assert cut.part_name == "p"
        assert cut.block.tight_axes == ("width",)
        assert result.unmatchable_parts == ()

    def test_full_allowance_beats_tight_fit(self, settings):
        """All candidates are compared before a tight fit is accepted."""
        tight = make_stock("w150", 27.0, 150.0, 2400.0)
        narrow = make_stock("w80", 27.0, 80.0, 2400.0)
        result = optimize_lumber_plan([make_part("p", 20, 148, 1000)], [tight, narrow], settings)
        assert result.plan[0].raw_stock_id == "w80"
        cut, = result.plan[0].cuts
        assert cut.glue_layer
        assert cut.block.tight_axes == ()

    def test_lower_volume_stock_preferred(self, settings):
        big = make_stock("big", 50.0, 200.0, 2400.0)
        small = make_stock("small", 27.0, 100.0, 2400.0)
        result = optimize_lumber_plan([make_part("p", 20, 90, 1000)], [big, small], settings)
        assert result.plan[0].raw_stock_id == "small"

    def test_catalog_order_breaks_ties(self, settings):
        first = make_stock("first", 27.0, 100.0, 2400.0)
        twin = make_stock("twin", 27.0, 100.0, 2400.0)
        result = optimize_lumber_plan([make_part("p", 20, 90, 1000)], [first, twin], settings)
        assert result.plan[0].raw_stock_id == "first"

    def test_lamination_disabled_makes_part_unmatchable(self, strip_stock, settings):
        result = optimize_lumber_plan(
            [make_part("wide", 15, 90, 600)],
            [strip_stock],
            settings,
            PlannerConfig(allow_lamination=False),
        )
        assert result.unmatchable_parts == ("wide",)
        assert result.plan == ()
        assert result.exclusions[0].reason == "axis_infeasible"

    def test_strip_limit_makes_part_unmatchable(self, strip_stock, settings):
        result = optimize_lumber_plan(
            [make_part("wide", 15, 300, 600)],
            [strip_stock],
            settings,
            PlannerConfig(max_strips_per_axis=3),
        )
        assert result.unmatchable_parts == ("wide",)
        assert result.exclusions[0].reason == "lamination_infeasible"

    def test_unmatchable_names_sorted(self, settings):
        stock = make_stock("short", 27.0, 150.0, 1000.0)
        parts = [
            make_part("z", 20, 90, 2000, name="Zeta"),
            make_part("a", 20, 90, 2000, name="Alpha"),
            make_part("ok", 20, 90, 500, name="Fine"),
        ]
        result = optimize_lumber_plan(parts, [stock], settings)
        assert result.unmatchable_parts == ("Alpha", "Zeta")
        assert sum(c.count for c in _cuts_for(result, "ok")) == 1


class TestDeterminism:
    def test_identical_inputs_identical_result(self, table_parts, catalog, settings):
        first = optimize_lumber_plan(table_parts, catalog, settings)
        second = optimize_lumber_plan(table_parts, catalog, settings)
        assert first == second
        assert result_fingerprint(first) == result_fingerprint(second)

    def test_threaded_evaluation_matches_sequential(self, table_parts, catalog, settings):
        sequential = optimize_lumber_plan(table_parts, catalog, settings)
        threaded = optimize_lumber_plan(
            table_parts, catalog, settings, PlannerConfig(max_workers=4),
        )
        assert result_fingerprint(sequential) == result_fingerprint(threaded)


class TestInvalidInput:
    def test_empty_parts(self, catalog, settings):
        with pytest.raises(InvalidInput):
            optimize_lumber_plan([], catalog, settings)

    def test_empty_stocks(self, table_parts, settings):
        with pytest.raises(InvalidInput):
            optimize_lumber_plan(table_parts, [], settings)

    def test_non_positive_dimension(self, catalog, settings):
        with pytest.raises(InvalidInput) as info:
            optimize_lumber_plan([make_part("p", 0, 90, 500)], catalog, settings)
        assert any("thickness" in p for p in info.value.problems)

    def test_zero_quantity(self, catalog, settings):
        with pytest.raises(InvalidInput):
            optimize_lumber_plan([make_part("p", 20, 90, 500, quantity=0)], catalog, settings)

    def test_negative_kerf(self, table_parts, catalog):
        with pytest.raises(InvalidInput):
            optimize_lumber_plan(table_parts, catalog, Settings(kerf=-1.0))

    def test_invalid_input_is_value_error(self, catalog, settings):
        with pytest.raises(ValueError):
            optimize_lumber_plan([], catalog, settings)
