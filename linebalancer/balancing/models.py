"""
Line Balancing - Core Types
===========================

Types shared by every stage of the engine.

Structure:
- Operation / MovementEdge / Style: raw, user-editable input
- OverheadConfig: movement, batch and handling parameters
- AdjustedStyle: derived per call, never edited in place
- AllocationEntry / OperatorLoad: output of the packing stage
- StyleResult / LineBalancingResults: output of the capacity stage

All input types are frozen so a full request can be fingerprinted and memoized.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple

from ..feature_flags import BatchImpactModel
from .errors import InvalidParameter


MANUAL_MACHINE_TYPE = "Manual"


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class CalculationMode(str, Enum):
    """Direction of the capacity calculation."""
    OPERATORS_TO_OUTPUT = "operators-to-output"   # given operators, compute output
    OUTPUT_TO_OPERATORS = "output-to-operators"   # given output, compute operators


class OutputDistribution(str, Enum):
    """How the line output is split between styles."""
    BALANCED = "balanced"   # equal units per style
    CUSTOM = "custom"       # proportional to Style.custom_ratio


class MaterialComplexity(str, Enum):
    """Material complexity class used to scale handling overhead."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


COMPLEXITY_FACTORS: Dict[MaterialComplexity, float] = {
    MaterialComplexity.LOW: 0.8,
    MaterialComplexity.MEDIUM: 1.0,
    MaterialComplexity.HIGH: 1.3,
    MaterialComplexity.VERY_HIGH: 1.7,
}

SPECIAL_HANDLING_IMPACT = 0.05  # per special handling requirement


# ═══════════════════════════════════════════════════════════════════════════════
# INPUT TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Operation:
    """One indivisible unit of work with a standard allowed time (SAM, minutes)."""
    step: int
    name: str
    machine_type: str
    standard_time: float
    is_manual: Optional[bool] = None            # derived from machine_type when absent
    skill_level: Optional[float] = None         # percentage, (0, 100]
    base_standard_time: Optional[float] = None  # SAM at 100% skill

    def __post_init__(self):
        if not self.standard_time > 0:
            raise InvalidParameter(f"operations[{self.step}].standard_time", self.standard_time,
                                   "must be greater than zero")
        if self.is_manual is None:
            object.__setattr__(self, "is_manual", self.machine_type == MANUAL_MACHINE_TYPE)
        if self.skill_level is not None:
            _check_skill_level(self.skill_level)
        if self.base_standard_time is None:
            base = self.standard_time
            if self.skill_level is not None:
                base = self.standard_time * (self.skill_level / 100)
            object.__setattr__(self, "base_standard_time", base)

    def with_skill_level(self, skill_level: float) -> "Operation":
        """
        Re-time the operation for an operator skill level.

        standard_time = base_standard_time / (skill_level / 100). The base is kept,
        so applying another level later starts from the same 100% figure.
        """
        _check_skill_level(skill_level)
        return replace(
            self,
            skill_level=skill_level,
            standard_time=self.base_standard_time / (skill_level / 100),
        )


def _check_skill_level(skill_level: float) -> None:
    if not 0 < skill_level <= 100:
        raise InvalidParameter("skill_level", skill_level, "must be in (0, 100]")


@dataclass(frozen=True)
class MovementEdge:
    """Material movement time between two steps (minutes)."""
    END_OF_LINE: ClassVar[int] = -1

    from_step: int
    to_step: int
    time: float

    def __post_init__(self):
        if self.time < 0:
            raise InvalidParameter("movement_edge.time", self.time, "must not be negative")
        if self.to_step == self.END_OF_LINE and self.time != 0:
            raise InvalidParameter("movement_edge.time", self.time,
                                   "edges to end of line carry zero time")

    @property
    def is_end_of_line(self) -> bool:
        return self.to_step == self.END_OF_LINE


@dataclass(frozen=True)
class Style:
    """A product style: its operations ordered by step, plus movement edges."""
    name: str
    operations: Tuple[Operation, ...] = ()
    movement_edges: Tuple[MovementEdge, ...] = ()
    custom_ratio: float = 1.0

    def __post_init__(self):
        ordered = tuple(sorted(self.operations, key=lambda op: op.step))
        steps = [op.step for op in ordered]
        if len(set(steps)) != len(steps):
            raise InvalidParameter(f"styles[{self.name}].operations", steps,
                                   "step numbers must be unique within a style")
        object.__setattr__(self, "operations", ordered)
        object.__setattr__(self, "movement_edges", tuple(self.movement_edges))

    @property
    def base_work_content(self) -> float:
        return sum(op.standard_time for op in self.operations)

    @property
    def operation_count(self) -> int:
        return len(self.operations)

    @property
    def bottleneck_operation(self) -> Optional[Operation]:
        """Operation with the largest SAM; the first one wins on ties."""
        bottleneck = None
        for op in self.operations:
            if bottleneck is None or op.standard_time > bottleneck.standard_time:
                bottleneck = op
        return bottleneck

    @property
    def bottleneck_time(self) -> float:
        bottleneck = self.bottleneck_operation
        return bottleneck.standard_time if bottleneck else 0.0

    @property
    def unique_machine_count(self) -> int:
        return len({op.machine_type for op in self.operations if not op.is_manual})

    @property
    def manual_work_content(self) -> float:
        return sum(op.standard_time for op in self.operations if op.is_manual)

    def operation_by_step(self, step: int) -> Optional[Operation]:
        for op in self.operations:
            if op.step == step:
                return op
        return None

    def with_skill_level(self, step: int, skill_level: float) -> "Style":
        """Return a copy of the style with one operation re-timed for a skill level."""
        if self.operation_by_step(step) is None:
            raise InvalidParameter("step", step, f"no such step in style '{self.name}'")
        operations = tuple(
            op.with_skill_level(skill_level) if op.step == step else op
            for op in self.operations
        )
        return replace(self, operations=operations)


@dataclass(frozen=True)
class OverheadConfig:
    """
    Overhead parameters applied on top of the raw work content.

    Defaults add no overhead at all.
    """
    # Batch processing
    batch_size: float = 1
    batch_setup_time: float = 0.0           # minutes per batch
    batch_transport_time: float = 0.0       # minutes per batch
    batch_processing_factor: float = 1.0    # (0, 1], additive model
    batch_efficiency_factor: float = 0.0    # [0, 100) percent reduction, efficiency-gain model
    batch_model: Optional[BatchImpactModel] = None  # None = feature flag

    # Material movement
    movement_time_per_step: float = 0.0     # minutes
    movement_distance_factor: float = 1.0
    use_custom_movement_times: bool = False

    # Material handling
    handling_overhead_percentage: float = 0.0
    material_complexity: MaterialComplexity = MaterialComplexity.MEDIUM
    special_handling_requirements: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "material_complexity", MaterialComplexity(self.material_complexity))
        object.__setattr__(self, "special_handling_requirements",
                           frozenset(self.special_handling_requirements))
        if self.batch_model is not None:
            object.__setattr__(self, "batch_model", BatchImpactModel(self.batch_model))


# ═══════════════════════════════════════════════════════════════════════════════
# DERIVED TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AdjustedStyle:
    """A style plus its overhead-inclusive work content. Recomputed on every call."""
    style: Style
    movement_time: float
    batch_impact: float
    handling_overhead: float
    batch_model: BatchImpactModel
    output: Optional[int] = None    # output the batch impact was evaluated at

    @property
    def name(self) -> str:
        return self.style.name

    @property
    def base_work_content(self) -> float:
        return self.style.base_work_content

    @property
    def adjusted_work_content(self) -> float:
        return self.base_work_content + self.movement_time + self.batch_impact + self.handling_overhead

    @property
    def bottleneck_operation(self) -> Optional[Operation]:
        return self.style.bottleneck_operation

    @property
    def bottleneck_time(self) -> float:
        return self.style.bottleneck_time

    @property
    def unique_machine_count(self) -> int:
        return self.style.unique_machine_count

    @property
    def manual_work_content(self) -> float:
        return self.style.manual_work_content


@dataclass(frozen=True)
class SourcedOperation:
    """An operation tagged with the style it came from (combined-line mode)."""
    operation: Operation
    style_index: int
    style_name: str = ""


@dataclass(frozen=True)
class CombinedStyle:
    """Pseudo-style holding the operations of several styles in packing order."""
    name: str
    operations: Tuple[SourcedOperation, ...]
    adjusted_work_content: float
    style_names: Tuple[str, ...] = ()

    @property
    def base_work_content(self) -> float:
        return sum(item.operation.standard_time for item in self.operations)

    @property
    def bottleneck_time(self) -> float:
        return max((item.operation.standard_time for item in self.operations), default=0.0)


# ═══════════════════════════════════════════════════════════════════════════════
# OUTPUT TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AllocationEntry:
    """
    One operation placed on one operator.

    Offsets are local to the operator's share of the cycle, not wall-clock time.
    """
    step: int
    operator_number: int
    start_offset: float
    end_offset: float
    standard_time: float
    operation_name: str = ""
    machine_type: str = ""
    source_style_index: Optional[int] = None
    is_manually_assigned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "operation": self.operation_name,
            "type": self.machine_type,
            "sam": self.standard_time,
            "operator_number": self.operator_number,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "source_style_index": self.source_style_index,
            "is_manually_assigned": self.is_manually_assigned,
        }


@dataclass(frozen=True)
class OperatorLoad:
    """Workload of one operator under a given cycle time."""
    operator_number: int
    workload: float
    cycle_time: float
    steps: Tuple[int, ...] = ()

    @property
    def name(self) -> str:
        return f"Operator {self.operator_number}"

    @property
    def utilization(self) -> float:
        """Fraction of the cycle used (can exceed 1 for an oversized operation)."""
        return self.workload / self.cycle_time

    @property
    def utilization_pct(self) -> float:
        return self.utilization * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator_number": self.operator_number,
            "name": self.name,
            "workload": self.workload,
            "utilization_pct": self.utilization_pct,
            "steps": list(self.steps),
        }


@dataclass(frozen=True)
class StyleResult:
    """Capacity figures for one style."""
    adjusted: AdjustedStyle
    allocated_output: int
    allocated_percentage: float
    cycle_time: float
    operators_required: int

    @property
    def name(self) -> str:
        return self.adjusted.name

    @property
    def adjusted_work_content(self) -> float:
        return self.adjusted.adjusted_work_content

    def to_dict(self) -> Dict[str, Any]:
        adjusted = self.adjusted
        bottleneck = adjusted.bottleneck_operation
        return {
            "name": self.name,
            "allocated_output": self.allocated_output,
            "allocated_percentage": self.allocated_percentage,
            "cycle_time": self.cycle_time,
            "operators_required": self.operators_required,
            "base_work_content": adjusted.base_work_content,
            "adjusted_work_content": adjusted.adjusted_work_content,
            "movement_time": adjusted.movement_time,
            "batch_impact": adjusted.batch_impact,
            "handling_overhead": adjusted.handling_overhead,
            "bottleneck_step": bottleneck.step if bottleneck else None,
            "bottleneck_time": adjusted.bottleneck_time,
            "unique_machines": adjusted.unique_machine_count,
            "manual_work_content": adjusted.manual_work_content,
        }


@dataclass(frozen=True)
class LineBalancingResults:
    """Whole-line result of the capacity stage."""
    calculation_mode: CalculationMode
    distribution: OutputDistribution
    available_minutes: float
    style_results: Tuple[StyleResult, ...]

    total_work_content: float
    total_adjusted_work_content: float
    total_possible_output: int
    total_allocated_output: int
    total_operators_required: int
    efficiency: float

    # Overhead impact, % of raw work content
    movement_time_impact: float = 0.0
    batch_processing_impact: float = 0.0
    handling_overhead_impact: float = 0.0

    # Mode-specific inputs and figures
    available_operators: Optional[int] = None
    target_output: Optional[int] = None
    theoretical_cycle_time: Optional[float] = None
    actual_cycle_time: Optional[float] = None

    @property
    def output_lost_to_rounding(self) -> int:
        return self.total_possible_output - self.total_allocated_output

    def style_result(self, name: str) -> Optional[StyleResult]:
        for result in self.style_results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calculation_mode": self.calculation_mode.value,
            "distribution": self.distribution.value,
            "available_minutes": self.available_minutes,
            "available_operators": self.available_operators,
            "target_output": self.target_output,
            "total_work_content": self.total_work_content,
            "total_adjusted_work_content": self.total_adjusted_work_content,
            "theoretical_cycle_time": self.theoretical_cycle_time,
            "actual_cycle_time": self.actual_cycle_time,
            "total_possible_output": self.total_possible_output,
            "total_allocated_output": self.total_allocated_output,
            "output_lost_to_rounding": self.output_lost_to_rounding,
            "total_operators_required": self.total_operators_required,
            "efficiency": self.efficiency,
            "impacts": {
                "movement_time": self.movement_time_impact,
                "batch_processing": self.batch_processing_impact,
                "handling_overhead": self.handling_overhead_impact,
            },
            "styles": [result.to_dict() for result in self.style_results],
        }

