"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    LINE BALANCING ENGINE — Unified Entry Point
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Wires the stages together:

    MultiStyleCombiner (optional)
        → WorkContentAdjuster (per style)
        → CapacityPlanner        (cycle time, operators, output)
        → OperationAllocator     (consumes cycle time)
        → WorkloadBalanceAnalyzer (consumes allocation)

Every call is a pure function of its request. Plans are memoized in a bounded
LRU keyed by an md5 fingerprint of the full request and the active batch model.
"""

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..feature_flags import FeatureFlags
from .capacity_planner import CapacityPlanner
from .errors import EmptyInput
from .models import (
    AllocationEntry,
    CalculationMode,
    CombinedStyle,
    LineBalancingResults,
    OperatorLoad,
    OutputDistribution,
    OverheadConfig,
    Style,
)
from .operator_allocator import OperationAllocator, PackingPolicy
from .style_combiner import MultiStyleCombiner
from .work_content import WorkContentAdjuster
from .workload_balance import (
    AllocationComparison,
    BalanceReport,
    WorkloadBalanceAnalyzer,
    compare_allocations,
    derive_operators,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanningRequest:
    """Complete, immutable input snapshot of a capacity plan."""
    styles: Tuple[Style, ...]
    calculation_mode: CalculationMode = CalculationMode.OPERATORS_TO_OUTPUT
    distribution: OutputDistribution = OutputDistribution.BALANCED
    available_minutes: float = 0.0
    available_operators: Optional[int] = None
    target_output: Optional[int] = None
    overheads: OverheadConfig = field(default_factory=OverheadConfig)

    def __post_init__(self):
        object.__setattr__(self, "styles", tuple(self.styles))
        object.__setattr__(self, "calculation_mode", CalculationMode(self.calculation_mode))
        object.__setattr__(self, "distribution", OutputDistribution(self.distribution))

    def fingerprint(self) -> str:
        batch_model = self.overheads.batch_model or FeatureFlags.get_batch_model()
        key_str = f"{self!r}|{batch_model.value}"
        return hashlib.md5(key_str.encode()).hexdigest()


@dataclass(frozen=True)
class CombinedAllocation:
    """Allocation of all styles on one shared line."""
    combined: CombinedStyle
    cycle_time: float
    entries: List[AllocationEntry]
    operators: List[OperatorLoad]
    balance: BalanceReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.combined.name,
            "styles": list(self.combined.style_names),
            "cycle_time": self.cycle_time,
            "adjusted_work_content": self.combined.adjusted_work_content,
            "entries": [e.to_dict() for e in self.entries],
            "operators": [op.to_dict() for op in self.operators],
            "balance": self.balance.to_dict(),
        }


class LineBalancingEngine:
    """
    Facade over the capacity and packing stages.

    Usage:
        engine = LineBalancingEngine()

        request = PlanningRequest(
            styles=(jogger,),
            available_minutes=compute_available_minutes(45, 0.85),
            available_operators=17,
        )
        results = engine.plan(request)

        style_result = results.style_results[0]
        entries = engine.allocate(jogger, style_result.cycle_time)
        report = engine.balance(entries, style_result.cycle_time)
    """

    def __init__(self, policy: Optional[PackingPolicy] = None):
        self.allocator = OperationAllocator(policy)
        self.analyzer = WorkloadBalanceAnalyzer()
        self._results_cache: "OrderedDict[str, Optional[LineBalancingResults]]" = OrderedDict()
        self.cache_hits = 0
        self.cache_misses = 0

    # ═══════════════════════════════════════════════════════════════════════════
    # CAPACITY
    # ═══════════════════════════════════════════════════════════════════════════

    def plan(self, request: PlanningRequest) -> Optional[LineBalancingResults]:
        """
        Capacity plan for ``request``; None when it holds no styles.

        Raises:
            InvalidParameter: see CapacityPlanner.plan
        """
        if not FeatureFlags.is_enabled("result_cache"):
            return self._compute(request)

        key = request.fingerprint()
        if key in self._results_cache:
            self.cache_hits += 1
            self._results_cache.move_to_end(key)
            logger.debug(f"Plan cache hit {key}")
            return self._results_cache[key]

        self.cache_misses += 1
        results = self._compute(request)
        self._results_cache[key] = results
        max_size = FeatureFlags.get_config().result_cache_size
        while len(self._results_cache) > max_size:
            self._results_cache.popitem(last=False)
        return results

    def _compute(self, request: PlanningRequest) -> Optional[LineBalancingResults]:
        planner = CapacityPlanner(WorkContentAdjuster(request.overheads))
        return planner.plan(
            request.styles,
            request.calculation_mode,
            request.distribution,
            request.available_minutes,
            available_operators=request.available_operators,
            target_output=request.target_output,
        )

    def clear_cache(self) -> None:
        self._results_cache.clear()
        self.cache_hits = 0
        self.cache_misses = 0

    def cache_info(self) -> Dict[str, int]:
        return {
            "hits": self.cache_hits,
            "misses": self.cache_misses,
            "size": len(self._results_cache),
            "max_size": FeatureFlags.get_config().result_cache_size,
        }

    # ═══════════════════════════════════════════════════════════════════════════
    # ALLOCATION
    # ═══════════════════════════════════════════════════════════════════════════

    def allocate(
        self,
        style: Union[Style, CombinedStyle],
        cycle_time: float,
        manual_overrides: Optional[Mapping[Any, Any]] = None,
        use_manual: bool = False,
        style_index: int = 0,
    ) -> List[AllocationEntry]:
        return self.allocator.allocate(style, cycle_time, manual_overrides, use_manual, style_index)

    def operators(self, entries: Sequence[AllocationEntry], cycle_time: float) -> List[OperatorLoad]:
        return derive_operators(entries, cycle_time)

    def balance(self, entries: Sequence[AllocationEntry], cycle_time: float) -> BalanceReport:
        return self.analyzer.analyze_entries(entries, cycle_time)

    def compare(
        self,
        style: Union[Style, CombinedStyle],
        cycle_time: float,
        manual_overrides: Optional[Mapping[Any, Any]] = None,
        style_index: int = 0,
    ) -> AllocationComparison:
        """Automatic vs manual allocation of one style at one cycle time."""
        return compare_allocations(
            style, cycle_time, manual_overrides, style_index,
            allocator=self.allocator, analyzer=self.analyzer,
        )

    def allocate_combined(
        self,
        request: PlanningRequest,
        results: Optional[LineBalancingResults] = None,
    ) -> CombinedAllocation:
        """
        Allocate every style of ``request`` on one shared line.

        cycle = max(Σ adjusted / total operators required, max bottleneck)
        """
        if results is None:
            results = self.plan(request)
        if results is None:
            raise EmptyInput()

        adjusted_styles = [r.adjusted for r in results.style_results]
        combiner = MultiStyleCombiner(WorkContentAdjuster(request.overheads))
        combined = combiner.combine(request.styles, adjusted_styles)

        max_bottleneck = max(a.bottleneck_time for a in adjusted_styles)
        cycle_time = max(
            combined.adjusted_work_content / results.total_operators_required,
            max_bottleneck,
        )
        entries = self.allocator.allocate(combined, cycle_time)
        operators = derive_operators(entries, cycle_time)
        logger.info(
            f"Combined line '{combined.name}': cycle={cycle_time:.3f}, operators={len(operators)}"
        )
        return CombinedAllocation(
            combined=combined,
            cycle_time=cycle_time,
            entries=entries,
            operators=operators,
            balance=self.analyzer.analyze(operators, cycle_time),
        )


def execute_line_balancing(
    styles: Sequence[Style],
    available_minutes: float,
    calculation_mode: Union[str, CalculationMode] = CalculationMode.OPERATORS_TO_OUTPUT,
    distribution: Union[str, OutputDistribution] = OutputDistribution.BALANCED,
    available_operators: Optional[int] = None,
    target_output: Optional[int] = None,
    overheads: Optional[OverheadConfig] = None,
) -> Optional[LineBalancingResults]:
    """
    Convenience function to run one capacity plan.

    Returns:
        LineBalancingResults, or None if ``styles`` is empty
    """
    request = PlanningRequest(
        styles=tuple(styles),
        calculation_mode=calculation_mode,
        distribution=distribution,
        available_minutes=available_minutes,
        available_operators=available_operators,
        target_output=target_output,
        overheads=overheads or OverheadConfig(),
    )
    return LineBalancingEngine().plan(request)
