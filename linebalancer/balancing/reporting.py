"""
Tabular views of engine output for a reporting layer.
"""

from typing import Sequence

import pandas as pd

from .models import AllocationEntry, LineBalancingResults, OperatorLoad

ALLOCATION_COLUMNS = [
    "step", "operation", "type", "sam", "operator_number",
    "start_offset", "end_offset", "source_style_index", "is_manually_assigned",
]

OPERATOR_COLUMNS = ["operator_number", "name", "workload", "utilization_pct", "steps"]


def allocation_to_frame(entries: Sequence[AllocationEntry]) -> pd.DataFrame:
    """One row per allocated operation, in allocation order."""
    return pd.DataFrame([entry.to_dict() for entry in entries], columns=ALLOCATION_COLUMNS)


def operators_to_frame(operators: Sequence[OperatorLoad]) -> pd.DataFrame:
    """One row per operator."""
    return pd.DataFrame([op.to_dict() for op in operators], columns=OPERATOR_COLUMNS)


def style_results_to_frame(results: LineBalancingResults) -> pd.DataFrame:
    """Per-style capacity figures, indexed by style name."""
    frame = pd.DataFrame([r.to_dict() for r in results.style_results])
    return frame.set_index("name")
