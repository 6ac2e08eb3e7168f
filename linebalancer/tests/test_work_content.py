"""
Tests for the core types and the work content adjuster.
"""
import math

import pytest

from linebalancer.balancing.errors import InvalidParameter
from linebalancer.balancing.models import (
    MaterialComplexity,
    MovementEdge,
    Operation,
    OverheadConfig,
    Style,
)
from linebalancer.balancing.work_content import WorkContentAdjuster
from linebalancer.feature_flags import BatchImpactModel, FeatureFlags


class TestStyle:
    """Raw style data and its derived figures."""

    def test_base_work_content_is_sum_of_sam(self, jogger_style, tshirt_style):
        """Base work content equals Σ SAM."""
        for style in (jogger_style, tshirt_style):
            expected = sum(op.standard_time for op in style.operations)
            assert abs(style.base_work_content - expected) <= 1e-9
        assert jogger_style.base_work_content == pytest.approx(6.962)
        assert tshirt_style.base_work_content == pytest.approx(5.8)

    def test_operations_ordered_by_step(self):
        """Operations are kept in step order whatever the input order."""
        style = Style(
            name="Unordered",
            operations=(
                Operation(30, "C", "Overlock", 0.3),
                Operation(10, "A", "Overlock", 0.1),
                Operation(20, "B", "Manual", 0.2),
            ),
        )
        assert [op.step for op in style.operations] == [10, 20, 30]

    def test_duplicate_steps_rejected(self):
        with pytest.raises(InvalidParameter):
            Style(name="Dup", operations=(
                Operation(1, "A", "Overlock", 0.1),
                Operation(1, "B", "Overlock", 0.2),
            ))

    def test_derived_figures(self, jogger_style):
        """Bottleneck (first of ties), machine count and manual content."""
        assert jogger_style.bottleneck_operation.step == 40
        assert jogger_style.bottleneck_time == 2.0
        assert jogger_style.unique_machine_count == 5
        assert jogger_style.manual_work_content == pytest.approx(2.0)

    def test_is_manual_derived_from_machine_type(self):
        assert Operation(1, "Pack", "Manual", 0.5).is_manual is True
        assert Operation(2, "Sew", "Overlock 504", 0.5).is_manual is False
        assert Operation(3, "Sew", "Overlock 504", 0.5, is_manual=True).is_manual is True

    def test_non_positive_sam_rejected(self):
        with pytest.raises(InvalidParameter):
            Operation(1, "Zero", "Manual", 0.0)
        with pytest.raises(InvalidParameter):
            Operation(1, "Negative", "Manual", -1.0)

    def test_end_of_line_edge_carries_no_time(self):
        edge = MovementEdge(60, MovementEdge.END_OF_LINE, 0.0)
        assert edge.is_end_of_line
        with pytest.raises(InvalidParameter):
            MovementEdge(60, MovementEdge.END_OF_LINE, 0.5)
        with pytest.raises(InvalidParameter):
            MovementEdge(1, 2, -0.1)


class TestSkillLevel:
    """Skill level re-timing keeps the 100% base time."""

    def test_skill_level_scales_standard_time(self):
        op = Operation(1, "Sew", "Overlock 504", 1.0).with_skill_level(80)
        assert op.standard_time == pytest.approx(1.25)
        assert op.base_standard_time == pytest.approx(1.0)
        assert op.skill_level == 80

    def test_readjustment_is_non_destructive(self):
        op = Operation(1, "Sew", "Overlock 504", 1.0)
        op = op.with_skill_level(50).with_skill_level(100)
        assert op.standard_time == pytest.approx(1.0)

    @pytest.mark.parametrize("level", [0, -10, 100.5, 150])
    def test_out_of_range_rejected(self, level):
        with pytest.raises(InvalidParameter):
            Operation(1, "Sew", "Overlock 504", 1.0).with_skill_level(level)

    def test_style_with_skill_level(self, jogger_style):
        adjusted = jogger_style.with_skill_level(40, 50)
        assert adjusted.operation_by_step(40).standard_time == pytest.approx(4.0)
        assert adjusted.base_work_content == pytest.approx(8.962)
        # the source style is untouched
        assert jogger_style.operation_by_step(40).standard_time == 2.0

    def test_style_with_skill_level_unknown_step(self, jogger_style):
        with pytest.raises(InvalidParameter):
            jogger_style.with_skill_level(99, 90)


class TestMovementTime:

    def test_per_step_movement(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(movement_time_per_step=0.1, movement_distance_factor=1.5))
        assert adjuster.movement_time(jogger_style) == pytest.approx(5 * 0.1 * 1.5)

    def test_custom_edges(self, jogger_with_edges):
        adjuster = WorkContentAdjuster(OverheadConfig(
            use_custom_movement_times=True,
            movement_distance_factor=2.0,
            movement_time_per_step=5.0,
        ))
        assert adjuster.movement_time(jogger_with_edges) == pytest.approx(1.2 * 2.0)

    def test_custom_flag_without_edges_falls_back(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(use_custom_movement_times=True, movement_time_per_step=0.2))
        assert adjuster.movement_time(jogger_style) == pytest.approx(1.0)

    def test_singleton_and_empty_styles(self):
        adjuster = WorkContentAdjuster(OverheadConfig(movement_time_per_step=0.5))
        single = Style(name="One", operations=(Operation(1, "Sew", "Overlock", 1.0),))
        assert adjuster.movement_time(single) == 0.0
        assert adjuster.movement_time(Style(name="Empty")) == 0.0


class TestHandlingOverhead:

    def test_handling_formula(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(
            handling_overhead_percentage=10,
            material_complexity=MaterialComplexity.HIGH,
            special_handling_requirements={"fragile", "static-sensitive"},
        ))
        expected = 6.962 * 0.10 * 1.3 * 1.10
        assert adjuster.handling_overhead(jogger_style) == pytest.approx(expected)

    def test_complexity_accepts_string(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(handling_overhead_percentage=10,
                                                      material_complexity="very-high"))
        assert adjuster.handling_overhead(jogger_style) == pytest.approx(6.962 * 0.1 * 1.7)


class TestBatchImpact:

    def test_additive_formula(self, jogger_style):
        """9 batches of 12 for 100 units, setup 10, transport 5, 80% processing efficiency."""
        adjuster = WorkContentAdjuster(OverheadConfig(
            batch_size=12,
            batch_setup_time=10,
            batch_transport_time=5,
            batch_processing_factor=0.8,
        ))
        base = 6.962
        loss = 100 * base / 0.8 - 100 * base
        expected = (9 * 10 + 9 * 5 + loss) / 100
        assert adjuster.batch_impact(jogger_style, 100) == pytest.approx(expected)
        assert adjuster.batch_impact(jogger_style, 100) == pytest.approx(3.0905)

    def test_additive_needs_output(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(batch_setup_time=10))
        with pytest.raises(InvalidParameter):
            adjuster.batch_impact(jogger_style, None)
        with pytest.raises(InvalidParameter):
            adjuster.batch_impact(jogger_style, 0)

    def test_no_batch_overhead_needs_no_output(self, jogger_style):
        adjuster = WorkContentAdjuster()
        assert not adjuster.batch_depends_on_output
        assert adjuster.batch_impact(jogger_style) == 0.0

    def test_efficiency_gain_formula(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(
            batch_model=BatchImpactModel.EFFICIENCY_GAIN,
            batch_efficiency_factor=10,
            batch_setup_time=6,
            batch_size=12,
        ))
        assert not adjuster.batch_depends_on_output
        assert adjuster.batch_impact(jogger_style) == pytest.approx(6.962 * 0.9 + 0.5 - 6.962)

    def test_model_follows_feature_flag(self, jogger_style):
        FeatureFlags.set_override(batch_model="efficiency_gain")
        assert WorkContentAdjuster().batch_model == BatchImpactModel.EFFICIENCY_GAIN

    def test_explicit_model_wins_over_flag(self):
        FeatureFlags.set_override(batch_model="efficiency_gain")
        adjuster = WorkContentAdjuster(OverheadConfig(batch_model="additive"))
        assert adjuster.batch_model == BatchImpactModel.ADDITIVE


class TestAdjust:

    def test_adjusted_is_sum_of_components(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(
            movement_time_per_step=0.1,
            batch_size=10,
            batch_setup_time=20,
            handling_overhead_percentage=5,
        ))
        adjusted = adjuster.adjust(jogger_style, output=200)
        assert adjusted.output == 200
        assert adjusted.batch_impact == pytest.approx(20 * 20 / 200)
        assert adjusted.adjusted_work_content == pytest.approx(
            adjusted.base_work_content + adjusted.movement_time
            + adjusted.batch_impact + adjusted.handling_overhead
        )

    def test_adjust_without_output_omits_output_dependent_batch(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(batch_setup_time=20, movement_time_per_step=0.1))
        adjusted = adjuster.adjust_without_output(jogger_style)
        assert adjusted.batch_impact == 0.0
        assert adjusted.adjusted_work_content == pytest.approx(6.962 + 0.5)

    def test_adjusted_style_does_not_modify_style(self, jogger_style):
        adjuster = WorkContentAdjuster(OverheadConfig(handling_overhead_percentage=50))
        adjuster.adjust(jogger_style)
        assert jogger_style.base_work_content == pytest.approx(6.962)

    @pytest.mark.parametrize("overrides", [
        {"batch_size": 0},
        {"batch_size": -5},
        {"batch_processing_factor": 0},
        {"batch_processing_factor": 1.5},
        {"batch_efficiency_factor": 100},
        {"batch_setup_time": -1},
        {"movement_distance_factor": 0},
        {"movement_time_per_step": -0.1},
        {"handling_overhead_percentage": -2},
        {"batch_size": math.inf},
    ])
    def test_invalid_overheads_rejected(self, overrides):
        with pytest.raises(InvalidParameter):
            WorkContentAdjuster(OverheadConfig(**overrides))
