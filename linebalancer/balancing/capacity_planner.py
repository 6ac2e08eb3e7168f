"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    CAPACITY PLANNER — Cycle Time, Operators and Output per Style
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Converts adjusted work content into a cycle time, an operator count and an output per style.

Mathematical Model:
─────────────────────────────────────────────────────────────────────────────────────────────────────

Parameters:
    M       : available minutes per period
    N       : available operators (operators → output)
    Q       : target output per period (output → operators)
    W'_s    : adjusted work content of style s
    b_s     : bottleneck SAM of style s

Operators → Output:
    C_theo  = Σ_s W'_s / N
    C       = max(C_theo, max_s b_s)
    P       = ⌊M / C⌋
    q_s     = ⌊P / S⌋  (balanced)  or  ⌊P × r_s / Σ r⌋  (custom)
    n_s     = ⌈W'_s / C⌉,   total = min(Σ n_s, N)
    eff     = Σ W'_s / (N × C) × 100

Output → Operators:
    q_s     = ⌊Q / S⌋  or  ⌊Q × r_s / Σ r⌋
    C_s     = max(M / q_s, b_s)
    n_s     = ⌈W'_s / C_s⌉
    eff     = Σ W'_s / (Σ n_s × C̄) × 100,   C̄ = output-weighted mean of C_s

Floor rounding of shares is not redistributed; the loss is reported.
A share that floors to zero is rejected.

═══════════════════════════════════════════════════════════════════════════════════════════════════════
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from .errors import InvalidParameter, require_non_negative, require_positive
from .models import (
    CalculationMode,
    LineBalancingResults,
    OutputDistribution,
    Style,
    StyleResult,
)
from .work_content import WorkContentAdjuster

logger = logging.getLogger(__name__)

CEIL_TOLERANCE = 1e-9


def ceil_count(value: float) -> int:
    """Ceiling that ignores floating-point noise (3.0000000000000004 → 3)."""
    return math.ceil(value - CEIL_TOLERANCE)


def compute_available_minutes(
    total_hours: float,
    pfd_factor: float,
    shifts_per_day: int = 1,
    shift_hours: Optional[Sequence[float]] = None,
    days_per_week: int = 5,
) -> float:
    """
    Productive minutes per period.

    Single shift: total_hours × 60 × pfd_factor.
    Multiple shifts: Σ shift_hours[:shifts_per_day] × days_per_week × 60 × pfd_factor.

    Example:
        >>> compute_available_minutes(45, 0.85)
        2295.0
    """
    require_positive("pfd_factor", pfd_factor)
    if pfd_factor > 1:
        raise InvalidParameter("pfd_factor", pfd_factor, "must be in (0, 1]")
    require_positive("shifts_per_day", shifts_per_day)

    if shifts_per_day > 1:
        if not shift_hours or len(shift_hours) < shifts_per_day:
            raise InvalidParameter("shift_hours", shift_hours,
                                   f"needs one entry per shift ({shifts_per_day})")
        require_positive("days_per_week", days_per_week)
        hours = [require_non_negative(f"shift_hours[{i}]", h)
                 for i, h in enumerate(shift_hours[:shifts_per_day])]
        weekly_hours = sum(hours) * days_per_week
        require_positive("shift_hours", weekly_hours)
        return weekly_hours * 60 * pfd_factor

    require_positive("total_hours", total_hours)
    return total_hours * 60 * pfd_factor


class CapacityPlanner:
    """
    Capacity stage of the engine.

    Takes raw styles rather than adjusted ones: the additive batch term depends
    on each style's output share, so the planner re-adjusts once shares are known.

    Usage:
        planner = CapacityPlanner(WorkContentAdjuster(overheads))
        results = planner.plan(styles, CalculationMode.OPERATORS_TO_OUTPUT,
                               OutputDistribution.BALANCED, 2295, available_operators=17)
    """

    def __init__(self, adjuster: Optional[WorkContentAdjuster] = None):
        self.adjuster = adjuster or WorkContentAdjuster()

    def plan(
        self,
        styles: Sequence[Style],
        calculation_mode: CalculationMode,
        distribution: OutputDistribution,
        available_minutes: float,
        available_operators: Optional[int] = None,
        target_output: Optional[int] = None,
    ) -> Optional[LineBalancingResults]:
        """
        Run the capacity calculation.

        Returns None when there are no styles ("no data yet").

        Raises:
            InvalidParameter: non-positive minutes, operators, output or custom
                ratio, or an output share that floors to zero
        """
        calculation_mode = CalculationMode(calculation_mode)
        distribution = OutputDistribution(distribution)
        require_positive("available_minutes", available_minutes)

        if calculation_mode == CalculationMode.OPERATORS_TO_OUTPUT:
            _require_count("available_operators", available_operators)
        else:
            _require_count("target_output", target_output)

        if not styles:
            logger.info("Capacity plan skipped: no styles loaded")
            return None

        if distribution == OutputDistribution.CUSTOM:
            self._validate_ratios(styles)

        if calculation_mode == CalculationMode.OPERATORS_TO_OUTPUT:
            results = self._operators_to_output(styles, distribution, available_minutes,
                                                int(available_operators))
        else:
            results = self._output_to_operators(styles, distribution, available_minutes,
                                                int(target_output))

        logger.info(
            f"Capacity plan ({calculation_mode.value}, {distribution.value}): "
            f"{len(styles)} styles, output={results.total_allocated_output}, "
            f"operators={results.total_operators_required}, efficiency={results.efficiency:.1f}%"
        )
        if results.output_lost_to_rounding > 0:
            logger.warning(f"{results.output_lost_to_rounding} units lost to per-style rounding")
        return results

    # ═══════════════════════════════════════════════════════════════════════════
    # DISTRIBUTION
    # ═══════════════════════════════════════════════════════════════════════════

    @staticmethod
    def _validate_ratios(styles: Sequence[Style]) -> None:
        for style in styles:
            require_positive(f"styles[{style.name}].custom_ratio", style.custom_ratio)

    @staticmethod
    def distribute(total: int, styles: Sequence[Style], distribution: OutputDistribution) -> List[int]:
        """Split ``total`` units between styles, flooring each share."""
        if distribution == OutputDistribution.BALANCED:
            share = total // len(styles)
            return [share] * len(styles)
        total_ratio = sum(style.custom_ratio for style in styles)
        return [math.floor(total * style.custom_ratio / total_ratio) for style in styles]

    @staticmethod
    def allocated_percentages(styles: Sequence[Style], distribution: OutputDistribution) -> List[float]:
        if distribution == OutputDistribution.BALANCED:
            return [100 / len(styles)] * len(styles)
        total_ratio = sum(style.custom_ratio for style in styles)
        return [style.custom_ratio / total_ratio * 100 for style in styles]

    # ═══════════════════════════════════════════════════════════════════════════
    # MODES
    # ═══════════════════════════════════════════════════════════════════════════

    def _operators_to_output(
        self,
        styles: Sequence[Style],
        distribution: OutputDistribution,
        available_minutes: float,
        available_operators: int,
    ) -> LineBalancingResults:
        adjuster = self.adjuster
        preliminary = [adjuster.adjust_without_output(style) for style in styles]

        total_preliminary = sum(a.adjusted_work_content for a in preliminary)
        theoretical_cycle = total_preliminary / available_operators
        max_bottleneck = max(a.bottleneck_time for a in preliminary)
        cycle_time = max(theoretical_cycle, max_bottleneck)
        if cycle_time <= 0:
            raise InvalidParameter("styles", [s.name for s in styles], "total work content is zero")

        total_possible = math.floor(available_minutes / cycle_time)
        shares = self.distribute(total_possible, styles, distribution)
        _require_shares(styles, shares, total_possible)
        percentages = self.allocated_percentages(styles, distribution)

        style_results = []
        for style, pre, share, pct in zip(styles, preliminary, shares, percentages):
            adjusted = adjuster.adjust(style, share) if adjuster.batch_depends_on_output else pre
            operators = ceil_count(adjusted.adjusted_work_content / cycle_time)
            logger.debug(f"Style '{style.name}': output={share}, operators={operators}")
            style_results.append(StyleResult(
                adjusted=adjusted,
                allocated_output=share,
                allocated_percentage=pct,
                cycle_time=cycle_time,
                operators_required=operators,
            ))

        total_adjusted = sum(r.adjusted_work_content for r in style_results)
        operators_sum = sum(r.operators_required for r in style_results)
        if operators_sum > available_operators:
            logger.warning(
                f"Operators required ({operators_sum}) capped to available operators ({available_operators})"
            )

        return self._build_results(
            calculation_mode=CalculationMode.OPERATORS_TO_OUTPUT,
            distribution=distribution,
            available_minutes=available_minutes,
            style_results=style_results,
            total_possible_output=total_possible,
            total_operators_required=min(operators_sum, available_operators),
            efficiency=total_adjusted / (available_operators * cycle_time) * 100,
            available_operators=available_operators,
            theoretical_cycle_time=theoretical_cycle,
            actual_cycle_time=cycle_time,
        )

    def _output_to_operators(
        self,
        styles: Sequence[Style],
        distribution: OutputDistribution,
        available_minutes: float,
        target_output: int,
    ) -> LineBalancingResults:
        """
        Cycle time per style from its share of the target.

        ``total_possible_output`` is deliberately the target itself, not the sum
        of the floored shares, so ``output_lost_to_rounding`` shows what
        flooring dropped.
        """
        shares = self.distribute(target_output, styles, distribution)
        _require_shares(styles, shares, target_output)
        percentages = self.allocated_percentages(styles, distribution)

        style_results = []
        for style, share, pct in zip(styles, shares, percentages):
            adjusted = self.adjuster.adjust(style, share)
            required_cycle = available_minutes / share
            cycle_time = max(required_cycle, adjusted.bottleneck_time)
            operators = ceil_count(adjusted.adjusted_work_content / cycle_time)
            logger.debug(
                f"Style '{style.name}': output={share}, cycle={cycle_time:.3f}, operators={operators}"
            )
            style_results.append(StyleResult(
                adjusted=adjusted,
                allocated_output=share,
                allocated_percentage=pct,
                cycle_time=cycle_time,
                operators_required=operators,
            ))

        total_adjusted = sum(r.adjusted_work_content for r in style_results)
        operators_sum = sum(r.operators_required for r in style_results)
        weighted_cycle = float(np.average(
            [r.cycle_time for r in style_results],
            weights=[r.allocated_output for r in style_results],
        ))
        denominator = operators_sum * weighted_cycle
        efficiency = total_adjusted / denominator * 100 if denominator > 0 else 0.0

        return self._build_results(
            calculation_mode=CalculationMode.OUTPUT_TO_OPERATORS,
            distribution=distribution,
            available_minutes=available_minutes,
            style_results=style_results,
            total_possible_output=target_output,
            total_operators_required=operators_sum,
            efficiency=efficiency,
            target_output=target_output,
            actual_cycle_time=weighted_cycle,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # AGGREGATES
    # ═══════════════════════════════════════════════════════════════════════════

    @staticmethod
    def impact_percentages(style_results: Sequence[StyleResult]) -> dict:
        """
        Overhead impact as a percentage of raw work content.

        The batch figure is an output-weighted mean and is reported negative
        because it lowers efficiency.
        """
        total_base = sum(r.adjusted.base_work_content for r in style_results)
        if total_base <= 0:
            return {"movement_time": 0.0, "batch_processing": 0.0, "handling_overhead": 0.0}

        movement = sum(r.adjusted.movement_time for r in style_results)
        handling = sum(r.adjusted.handling_overhead for r in style_results)
        total_output = sum(r.allocated_output for r in style_results)
        batch = 0.0
        if total_output > 0:
            batch = sum(r.adjusted.batch_impact * r.allocated_output for r in style_results) / total_output

        return {
            "movement_time": movement / total_base * 100,
            "batch_processing": -batch / total_base * 100,
            "handling_overhead": handling / total_base * 100,
        }

    def _build_results(
        self,
        calculation_mode: CalculationMode,
        distribution: OutputDistribution,
        available_minutes: float,
        style_results: List[StyleResult],
        total_possible_output: int,
        total_operators_required: int,
        efficiency: float,
        available_operators: Optional[int] = None,
        target_output: Optional[int] = None,
        theoretical_cycle_time: Optional[float] = None,
        actual_cycle_time: Optional[float] = None,
    ) -> LineBalancingResults:
        impacts = self.impact_percentages(style_results)
        return LineBalancingResults(
            calculation_mode=calculation_mode,
            distribution=distribution,
            available_minutes=available_minutes,
            style_results=tuple(style_results),
            total_work_content=sum(r.adjusted.base_work_content for r in style_results),
            total_adjusted_work_content=sum(r.adjusted_work_content for r in style_results),
            total_possible_output=total_possible_output,
            total_allocated_output=sum(r.allocated_output for r in style_results),
            total_operators_required=total_operators_required,
            efficiency=efficiency,
            movement_time_impact=impacts["movement_time"],
            batch_processing_impact=impacts["batch_processing"],
            handling_overhead_impact=impacts["handling_overhead"],
            available_operators=available_operators,
            target_output=target_output,
            theoretical_cycle_time=theoretical_cycle_time,
            actual_cycle_time=actual_cycle_time,
        )


def _require_count(field: str, value: Optional[float]) -> None:
    """Positive whole number (operators, units)."""
    number = require_positive(field, value)
    if number != int(number):
        raise InvalidParameter(field, value, "must be a whole number")


def _require_shares(styles: Sequence[Style], shares: Sequence[int], total: int) -> None:
    """Every style must receive at least one unit."""
    for style, share in zip(styles, shares):
        if share <= 0:
            raise InvalidParameter(
                f"styles[{style.name}].allocated_output", share,
                f"output {total} leaves no units for this style",
            )
