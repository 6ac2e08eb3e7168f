"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    OPERATION ALLOCATOR — Operation to Operator Assignment
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Assigns ordered operations to operator slots bounded by the cycle time.

Model:
─────────────────────────────────────────────────────────────────────────────────────────────────────

Sets:
    O = (o_1, ..., o_n) : Operations, in style order (or combiner order)
    K = {1, ..., m}     : Operators
    P ⊆ O × K           : Manual pins, keyed by (style_index, step)

Rules:
    (1) Every operation is assigned exactly once
    (2) Pinned operations go to their pinned operator
    (3) The remaining operations are packed by a PackingPolicy
        (default: sequential greedy, never reordered)
    (4) With pins, offsets are laid out per operator from 0 in iteration order

The greedy packer opens a new operator when offset + t > C and offset > 0, so an
operation longer than C still gets an operator of its own.

═══════════════════════════════════════════════════════════════════════════════════════════════════════
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import logging

from .errors import InvalidParameter
from .models import AllocationEntry, CombinedStyle, Style

logger = logging.getLogger(__name__)

OVERFLOW_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PackingItem:
    """One operation as seen by the allocator."""
    step: int
    standard_time: float
    operation_name: str = ""
    machine_type: str = ""
    style_index: int = 0


# ═══════════════════════════════════════════════════════════════════════════════
# PACKING POLICIES
# ═══════════════════════════════════════════════════════════════════════════════

class PackingPolicy(ABC):
    """
    Places the automatically assigned operations.

    Implementations receive the items in allocation order and return one
    (operator_number, start_offset) pair per item, operators numbered from 1.
    """

    name: str = "abstract"

    @abstractmethod
    def place(self, items: Sequence[PackingItem], cycle_time: float) -> List[Tuple[int, float]]:
        ...


class SequentialPackingPolicy(PackingPolicy):
    """Greedy next-fit in declaration order."""

    name = "sequential"

    def place(self, items: Sequence[PackingItem], cycle_time: float) -> List[Tuple[int, float]]:
        placements = []
        operator = 1
        offset = 0.0
        for item in items:
            if offset > 0 and offset + item.standard_time > cycle_time + OVERFLOW_TOLERANCE:
                operator += 1
                offset = 0.0
            if item.standard_time > cycle_time + OVERFLOW_TOLERANCE:
                logger.warning(
                    f"Step {item.step} ({item.standard_time:.3f} min) exceeds the cycle time "
                    f"({cycle_time:.3f} min); placed alone on operator {operator}"
                )
            placements.append((operator, offset))
            offset += item.standard_time
        return placements


# ═══════════════════════════════════════════════════════════════════════════════
# ALLOCATOR
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_overrides(raw: Optional[Mapping[Any, Any]]) -> Dict[Tuple[int, int], int]:
    """
    Accept overrides as ``{(style_index, step): operator}`` or nested
    ``{style_index: {step: operator}}`` and return the flat form.
    """
    if not raw:
        return {}
    flat: Dict[Tuple[int, int], int] = {}
    for key, value in raw.items():
        if isinstance(value, Mapping):
            for step, operator in value.items():
                flat[(int(key), int(step))] = operator
        elif isinstance(key, tuple) and len(key) == 2:
            flat[(int(key[0]), int(key[1]))] = value
        else:
            raise InvalidParameter("manual_overrides", key, "keys must be (style_index, step)")
    for key, operator in flat.items():
        if isinstance(operator, bool) or not isinstance(operator, int) or operator < 1:
            raise InvalidParameter(f"manual_overrides[{key}]", operator,
                                   "operator numbers start at 1")
    return flat


class OperationAllocator:
    """
    Packing stage of the engine.

    Usage:
        allocator = OperationAllocator()
        entries = allocator.allocate(style, cycle_time=2.0)

        # With pins for style 0
        entries = allocator.allocate(style, 2.0, {(0, 40): 3}, use_manual=True)
    """

    def __init__(self, policy: Optional[PackingPolicy] = None):
        self.policy = policy or SequentialPackingPolicy()

    @staticmethod
    def items_for(style: Union[Style, CombinedStyle], style_index: int = 0) -> List[PackingItem]:
        if isinstance(style, CombinedStyle):
            return [
                PackingItem(
                    step=sourced.operation.step,
                    standard_time=sourced.operation.standard_time,
                    operation_name=sourced.operation.name,
                    machine_type=sourced.operation.machine_type,
                    style_index=sourced.style_index,
                )
                for sourced in style.operations
            ]
        return [
            PackingItem(
                step=op.step,
                standard_time=op.standard_time,
                operation_name=op.name,
                machine_type=op.machine_type,
                style_index=style_index,
            )
            for op in style.operations
        ]

    def allocate(
        self,
        style: Union[Style, CombinedStyle],
        cycle_time: float,
        manual_overrides: Optional[Mapping[Any, Any]] = None,
        use_manual: bool = False,
        style_index: int = 0,
    ) -> List[AllocationEntry]:
        """
        Assign every operation of ``style`` to an operator.

        Args:
            style: a Style, or a CombinedStyle from MultiStyleCombiner
            cycle_time: governing cycle time (minutes), > 0
            manual_overrides: (style_index, step) -> operator_number
            use_manual: honour the overrides; steps without one are packed automatically
            style_index: index used to look up overrides for a plain Style

        Returns:
            AllocationEntry list in iteration order
        """
        if cycle_time is None or not cycle_time > 0:
            raise InvalidParameter("cycle_time", cycle_time, "must be greater than zero")

        items = self.items_for(style, style_index)
        pins = normalize_overrides(manual_overrides) if use_manual else {}

        auto_items = [item for item in items if (item.style_index, item.step) not in pins]
        placements = iter(self.policy.place(auto_items, cycle_time))

        entries: List[AllocationEntry] = []
        pinned = 0
        for item in items:
            key = (item.style_index, item.step)
            if key in pins:
                operator, offset = pins[key], 0.0
                pinned += 1
            else:
                operator, offset = next(placements)
            entries.append(AllocationEntry(
                step=item.step,
                operator_number=operator,
                start_offset=offset,
                end_offset=offset + item.standard_time,
                standard_time=item.standard_time,
                operation_name=item.operation_name,
                machine_type=item.machine_type,
                source_style_index=item.style_index if isinstance(style, CombinedStyle) else None,
                is_manually_assigned=key in pins,
            ))

        if pinned:
            entries = self._relayout(entries)

        operator_count = len({entry.operator_number for entry in entries})
        logger.info(
            f"Allocated {len(entries)} operations to {operator_count} operators "
            f"(cycle={cycle_time:.3f}, policy={self.policy.name}, pinned={pinned})"
        )
        return entries

    @staticmethod
    def _relayout(entries: List[AllocationEntry]) -> List[AllocationEntry]:
        """Lay out each operator's entries back to back from 0, keeping iteration order."""
        offsets: Dict[int, float] = {}
        laid_out = []
        for entry in entries:
            start = offsets.get(entry.operator_number, 0.0)
            end = start + entry.standard_time
            offsets[entry.operator_number] = end
            laid_out.append(replace(entry, start_offset=start, end_offset=end))
        return laid_out
