"""
Workload Balance Analyzer
=========================

Operator utilization and balance score for an allocation.

    utilization_i = workload_i / C × 100
    balance_score = max(0, 100 - σ(utilization))     σ = population stddev
    efficiency    = Σ workload / (operators × C) × 100

Automatic and manual allocations are scored from two independent allocator runs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from .models import AllocationEntry, CombinedStyle, OperatorLoad, Style
from .operator_allocator import OperationAllocator

logger = logging.getLogger(__name__)


def derive_operators(entries: Sequence[AllocationEntry], cycle_time: float) -> List[OperatorLoad]:
    """Group an allocation by operator, ordered by operator number."""
    workloads: Dict[int, float] = {}
    steps: Dict[int, List[int]] = {}
    for entry in entries:
        workloads[entry.operator_number] = workloads.get(entry.operator_number, 0.0) + entry.standard_time
        steps.setdefault(entry.operator_number, []).append(entry.step)
    return [
        OperatorLoad(
            operator_number=number,
            workload=workloads[number],
            cycle_time=cycle_time,
            steps=tuple(steps[number]),
        )
        for number in sorted(workloads)
    ]


@dataclass(frozen=True)
class BalanceReport:
    """Balance figures for one allocation."""
    operator_count: int
    cycle_time: float
    utilizations: List[float] = field(default_factory=list)
    mean_utilization: float = 0.0
    std_utilization: float = 0.0
    balance_score: float = 0.0
    efficiency: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator_count": self.operator_count,
            "cycle_time": self.cycle_time,
            "utilizations": list(self.utilizations),
            "mean_utilization": self.mean_utilization,
            "std_utilization": self.std_utilization,
            "balance_score": self.balance_score,
            "efficiency": self.efficiency,
        }


class WorkloadBalanceAnalyzer:
    """Scores how evenly an allocation loads its operators."""

    def analyze(self, operators: Sequence[OperatorLoad], cycle_time: float) -> BalanceReport:
        if not operators:
            return BalanceReport(operator_count=0, cycle_time=cycle_time)

        workloads = np.array([op.workload for op in operators], dtype=float)
        utilizations = workloads / cycle_time * 100
        std = float(np.std(utilizations))

        return BalanceReport(
            operator_count=len(operators),
            cycle_time=cycle_time,
            utilizations=[float(u) for u in utilizations],
            mean_utilization=float(np.mean(utilizations)),
            std_utilization=std,
            balance_score=max(0.0, 100 - std),
            efficiency=float(workloads.sum() / (len(operators) * cycle_time) * 100),
        )

    def analyze_entries(self, entries: Sequence[AllocationEntry], cycle_time: float) -> BalanceReport:
        return self.analyze(derive_operators(entries, cycle_time), cycle_time)


# ═══════════════════════════════════════════════════════════════════════════════
# AUTOMATIC VS MANUAL
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AllocationComparison:
    """Automatic and manual allocation of the same style at the same cycle time."""
    automatic_entries: List[AllocationEntry]
    manual_entries: List[AllocationEntry]
    automatic: BalanceReport
    manual: BalanceReport

    @property
    def better(self) -> str:
        """'manual' only when it strictly beats the automatic balance score."""
        return "manual" if self.manual.balance_score > self.automatic.balance_score else "automatic"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "automatic": {
                **self.automatic.to_dict(),
                "entries": [e.to_dict() for e in self.automatic_entries],
            },
            "manual": {
                **self.manual.to_dict(),
                "entries": [e.to_dict() for e in self.manual_entries],
            },
            "better": self.better,
        }


def compare_allocations(
    style: Union[Style, CombinedStyle],
    cycle_time: float,
    manual_overrides: Optional[Mapping[Any, Any]] = None,
    style_index: int = 0,
    allocator: Optional[OperationAllocator] = None,
    analyzer: Optional[WorkloadBalanceAnalyzer] = None,
) -> AllocationComparison:
    """Run the allocator with and without pins and score both runs."""
    allocator = allocator or OperationAllocator()
    analyzer = analyzer or WorkloadBalanceAnalyzer()

    automatic_entries = allocator.allocate(style, cycle_time, style_index=style_index)
    manual_entries = allocator.allocate(style, cycle_time, manual_overrides,
                                        use_manual=True, style_index=style_index)
    comparison = AllocationComparison(
        automatic_entries=automatic_entries,
        manual_entries=manual_entries,
        automatic=analyzer.analyze_entries(automatic_entries, cycle_time),
        manual=analyzer.analyze_entries(manual_entries, cycle_time),
    )
    logger.info(
        f"Balance comparison for '{style.name}': automatic={comparison.automatic.balance_score:.1f} "
        f"manual={comparison.manual.balance_score:.1f}"
    )
    return comparison
