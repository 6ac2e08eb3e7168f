"""
Line Balancing - REST API
=========================

Endpoints:
- GET  /line-balancing/status               - Engine status and active flags
- POST /line-balancing/plan                 - Capacity plan (cycle time, operators, output)
- POST /line-balancing/allocation           - Operation → operator allocation for one style
- POST /line-balancing/allocation/compare   - Automatic vs manual allocation
- POST /line-balancing/available-minutes    - Productive minutes from hours, PFD and shifts

Parameter errors return 400 with the error's ``to_dict()`` as detail.
An empty style list is not an error: the plan endpoint returns ``result: null``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..feature_flags import FeatureFlags
from .capacity_planner import compute_available_minutes
from .errors import LineBalancingError
from .line_balancing_engine import LineBalancingEngine, PlanningRequest
from .models import MovementEdge, Operation, OverheadConfig, Style

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/line-balancing", tags=["Line Balancing"])

_engine: Optional[LineBalancingEngine] = None


def get_engine() -> LineBalancingEngine:
    """Shared engine instance (holds the plan cache)."""
    global _engine
    if _engine is None:
        _engine = LineBalancingEngine()
    return _engine


# ═══════════════════════════════════════════════════════════════════════════════
# REQUEST/RESPONSE MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class OperationIn(BaseModel):
    """One operation row, as produced by the tabular loader."""
    step: int
    operation: str = Field(default="", description="Operation name")
    type: str = Field(default="Unknown", description="Machine type; 'Manual' marks a human-only step")
    sam: float = Field(..., description="Standard allowed minutes at 100% skill")
    is_manual: Optional[bool] = Field(default=None, description="Derived from type when absent")
    skill_level: Optional[float] = Field(default=None, description="Operator skill level, % in (0, 100]")


class MovementEdgeIn(BaseModel):
    from_step: int
    to_step: int = Field(..., description="-1 marks the end of line")
    time: float = 0.0


class StyleIn(BaseModel):
    name: str
    operations: List[OperationIn] = Field(default_factory=list)
    movement_edges: List[MovementEdgeIn] = Field(default_factory=list)
    custom_ratio: float = Field(default=1.0, description="Share weight under custom distribution")


class OverheadsIn(BaseModel):
    """Overhead parameters. Defaults add no overhead."""
    batch_size: float = Field(default=1, description="Units per batch")
    batch_setup_time: float = Field(default=0.0, description="Minutes per batch")
    batch_transport_time: float = Field(default=0.0, description="Minutes per batch")
    batch_processing_factor: float = Field(default=1.0, description="Additive model, (0, 1]")
    batch_efficiency_factor: float = Field(default=0.0, description="Efficiency-gain model, % in [0, 100)")
    batch_model: Optional[str] = Field(default=None, description="additive | efficiency_gain; null uses the flag")
    movement_time_per_step: float = 0.0
    movement_distance_factor: float = 1.0
    use_custom_movement_times: bool = False
    handling_overhead_percentage: float = 0.0
    material_complexity: str = Field(default="medium", description="low | medium | high | very-high")
    special_handling_requirements: List[str] = Field(default_factory=list)


class PlanRequestIn(BaseModel):
    """Capacity plan request. Give available_minutes, or total_hours and pfd_factor."""
    styles: List[StyleIn] = Field(default_factory=list)
    calculation_mode: str = Field(default="operators-to-output",
                                  description="operators-to-output | output-to-operators")
    distribution: str = Field(default="balanced", description="balanced | custom")
    available_minutes: Optional[float] = None
    total_hours: Optional[float] = None
    pfd_factor: Optional[float] = None
    available_operators: Optional[int] = None
    target_output: Optional[int] = None
    overheads: OverheadsIn = Field(default_factory=OverheadsIn)
    include_combined: bool = Field(default=False, description="Also allocate all styles on one line")


class ManualOverrideIn(BaseModel):
    style_index: int = 0
    step: int
    operator_number: int


class AllocationRequestIn(BaseModel):
    style: StyleIn
    cycle_time: float
    style_index: int = 0
    use_manual: bool = False
    manual_overrides: List[ManualOverrideIn] = Field(default_factory=list)


class AvailableMinutesIn(BaseModel):
    total_hours: float = 0.0
    pfd_factor: float = 1.0
    shifts_per_day: int = 1
    shift_hours: Optional[List[float]] = None
    days_per_week: int = 5


# ═══════════════════════════════════════════════════════════════════════════════
# CONVERSION
# ═══════════════════════════════════════════════════════════════════════════════

def to_operation(row: OperationIn) -> Operation:
    operation = Operation(
        step=row.step,
        name=row.operation,
        machine_type=row.type,
        standard_time=row.sam,
        is_manual=row.is_manual,
    )
    if row.skill_level is not None:
        operation = operation.with_skill_level(row.skill_level)
    return operation


def to_style(style: StyleIn) -> Style:
    return Style(
        name=style.name,
        operations=tuple(to_operation(row) for row in style.operations),
        movement_edges=tuple(
            MovementEdge(from_step=e.from_step, to_step=e.to_step, time=e.time)
            for e in style.movement_edges
        ),
        custom_ratio=style.custom_ratio,
    )


def to_overheads(overheads: OverheadsIn) -> OverheadConfig:
    data = overheads.model_dump()
    data["special_handling_requirements"] = frozenset(data["special_handling_requirements"])
    return OverheadConfig(**data)


def to_overrides(overrides: List[ManualOverrideIn]) -> Dict[tuple, int]:
    return {(o.style_index, o.step): o.operator_number for o in overrides}


def _bad_request(exc: LineBalancingError) -> HTTPException:
    logger.warning(f"Rejected line balancing request: {exc.message}")
    return HTTPException(status_code=400, detail=exc.to_dict())


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/status")
async def get_line_balancing_status():
    """Engine status, active feature flags and plan cache statistics."""
    return {
        "service": "Line Balancing Engine",
        "status": "operational",
        "calculation_modes": ["operators-to-output", "output-to-operators"],
        "distributions": ["balanced", "custom"],
        "flags": FeatureFlags.to_dict(),
        "cache": get_engine().cache_info(),
    }


@router.post("/plan")
async def create_plan(request: PlanRequestIn) -> Dict[str, Any]:
    """
    Capacity plan for the given styles.

    **Modes:**
    - `operators-to-output`: needs `available_operators`
    - `output-to-operators`: needs `target_output`
    """
    try:
        if request.available_minutes is not None:
            available_minutes = request.available_minutes
        else:
            available_minutes = compute_available_minutes(request.total_hours, request.pfd_factor)

        planning_request = PlanningRequest(
            styles=tuple(to_style(s) for s in request.styles),
            calculation_mode=request.calculation_mode,
            distribution=request.distribution,
            available_minutes=available_minutes,
            available_operators=request.available_operators,
            target_output=request.target_output,
            overheads=to_overheads(request.overheads),
        )
        engine = get_engine()
        results = engine.plan(planning_request)
        if results is None:
            return {"result": None, "message": "No styles loaded yet"}

        response: Dict[str, Any] = {"result": results.to_dict(), "message": "ok"}
        if request.include_combined:
            response["combined"] = engine.allocate_combined(planning_request, results).to_dict()
        return response
    except LineBalancingError as e:
        raise _bad_request(e)
    except ValueError as e:
        # Unknown enum values (mode, distribution, complexity, batch model)
        raise HTTPException(status_code=400, detail={"type": "InvalidParameter", "message": str(e)})


@router.post("/allocation")
async def create_allocation(request: AllocationRequestIn) -> Dict[str, Any]:
    """Allocate one style's operations to operators at the given cycle time."""
    try:
        engine = get_engine()
        entries = engine.allocate(
            to_style(request.style),
            request.cycle_time,
            to_overrides(request.manual_overrides),
            use_manual=request.use_manual,
            style_index=request.style_index,
        )
        operators = engine.operators(entries, request.cycle_time)
        return {
            "entries": [e.to_dict() for e in entries],
            "operators": [op.to_dict() for op in operators],
            "balance": engine.balance(entries, request.cycle_time).to_dict(),
        }
    except LineBalancingError as e:
        raise _bad_request(e)


@router.post("/allocation/compare")
async def compare_allocation(request: AllocationRequestIn) -> Dict[str, Any]:
    """Automatic vs manual allocation of one style at the same cycle time."""
    try:
        comparison = get_engine().compare(
            to_style(request.style),
            request.cycle_time,
            to_overrides(request.manual_overrides),
            style_index=request.style_index,
        )
        return comparison.to_dict()
    except LineBalancingError as e:
        raise _bad_request(e)


@router.post("/available-minutes")
async def get_available_minutes(request: AvailableMinutesIn) -> Dict[str, float]:
    """Productive minutes per period."""
    try:
        minutes = compute_available_minutes(
            request.total_hours,
            request.pfd_factor,
            shifts_per_day=request.shifts_per_day,
            shift_hours=request.shift_hours,
            days_per_week=request.days_per_week,
        )
        return {"available_minutes": minutes}
    except LineBalancingError as e:
        raise _bad_request(e)
