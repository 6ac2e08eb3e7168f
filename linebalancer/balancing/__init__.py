"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    LINE BALANCING ENGINE
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Distributes manual-assembly work across operators for one or more product styles:
- Overhead-inclusive work content (movement, batch, handling)
- Capacity planning: operators → output and output → operators
- Balanced or custom-ratio output distribution across styles
- Greedy operation → operator packing with manual pins
- Workload balance scoring (automatic vs manual)
- Combined-line allocation of several styles
"""

from .errors import (
    LineBalancingError,
    InvalidParameter,
    EmptyInput,
)

from .models import (
    MANUAL_MACHINE_TYPE,
    CalculationMode,
    OutputDistribution,
    MaterialComplexity,
    Operation,
    MovementEdge,
    Style,
    OverheadConfig,
    AdjustedStyle,
    SourcedOperation,
    CombinedStyle,
    AllocationEntry,
    OperatorLoad,
    StyleResult,
    LineBalancingResults,
)

from .work_content import WorkContentAdjuster

from .capacity_planner import (
    CapacityPlanner,
    compute_available_minutes,
)

from .operator_allocator import (
    OperationAllocator,
    PackingPolicy,
    SequentialPackingPolicy,
    normalize_overrides,
)

from .workload_balance import (
    WorkloadBalanceAnalyzer,
    BalanceReport,
    AllocationComparison,
    compare_allocations,
    derive_operators,
)

from .style_combiner import MultiStyleCombiner

from .line_balancing_engine import (
    LineBalancingEngine,
    PlanningRequest,
    CombinedAllocation,
    execute_line_balancing,
)

from .reporting import (
    allocation_to_frame,
    operators_to_frame,
    style_results_to_frame,
)

__all__ = [
    # Errors
    "LineBalancingError",
    "InvalidParameter",
    "EmptyInput",
    # Types
    "MANUAL_MACHINE_TYPE",
    "CalculationMode",
    "OutputDistribution",
    "MaterialComplexity",
    "Operation",
    "MovementEdge",
    "Style",
    "OverheadConfig",
    "AdjustedStyle",
    "SourcedOperation",
    "CombinedStyle",
    "AllocationEntry",
    "OperatorLoad",
    "StyleResult",
    "LineBalancingResults",
    # Work content
    "WorkContentAdjuster",
    # Capacity
    "CapacityPlanner",
    "compute_available_minutes",
    # Allocation
    "OperationAllocator",
    "PackingPolicy",
    "SequentialPackingPolicy",
    "normalize_overrides",
    # Balance
    "WorkloadBalanceAnalyzer",
    "BalanceReport",
    "AllocationComparison",
    "compare_allocations",
    "derive_operators",
    # Combiner
    "MultiStyleCombiner",
    # Engine
    "LineBalancingEngine",
    "PlanningRequest",
    "CombinedAllocation",
    "execute_line_balancing",
    # Reporting
    "allocation_to_frame",
    "operators_to_frame",
    "style_results_to_frame",
]
