"""
════════════════════════════════════════════════════════════════════════════════
CSV LOADER - Operation Tables to Styles
════════════════════════════════════════════════════════════════════════════════

Reads operation tables (Step, Operation, Type, SAM, IsManual) into Style objects.

Rules:
- Column names are matched case-insensitively against a list of aliases
- Rows whose SAM is missing, non-numeric or <= 0 are dropped
- Missing Step → row position + 1
- Missing Operation → "Operation <position + 1>"
- Missing Type → "Unknown"
- Missing IsManual → Type == "Manual"
- Style name defaults to the file stem
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from ..balancing.errors import InvalidParameter
from ..balancing.models import MANUAL_MACHINE_TYPE, Operation, Style

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

COLUMN_ALIASES: Dict[str, List[str]] = {
    "step": ["Step", "Step No", "Seq", "Sequence"],
    "operation": ["Operation", "Operation Name", "Description"],
    "type": ["Type", "Machine Type", "Machine"],
    "sam": ["SAM", "Standard Time", "SMV"],
    "is_manual": ["IsManual", "Is Manual", "Manual"],
}

REQUIRED_COLUMNS = ["sam"]

TRUE_VALUES = {"true", "1", "yes", "y"}


def _map_columns(df: pd.DataFrame) -> Dict[str, str]:
    """Map canonical field names to the DataFrame's actual column names."""
    normalized = {str(col).lower().strip(): col for col in df.columns}
    mapping: Dict[str, str] = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            column = normalized.get(alias.lower())
            if column is not None:
                mapping[field_name] = column
                break
    return mapping


def _parse_bool(value) -> Optional[bool]:
    if value is None or pd.isna(value):
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


# ═══════════════════════════════════════════════════════════════════════════════
# PARSING
# ═══════════════════════════════════════════════════════════════════════════════

def style_from_dataframe(df: pd.DataFrame, name: str, custom_ratio: float = 1.0) -> Style:
    """
    Build a Style from an operation table.

    Raises:
        InvalidParameter: no SAM column, or duplicated step numbers
    """
    mapping = _map_columns(df)
    missing = [field_name for field_name in REQUIRED_COLUMNS if field_name not in mapping]
    if missing:
        raise InvalidParameter("columns", list(df.columns), f"missing required columns: {', '.join(missing)}")

    df = df.reset_index(drop=True)
    sam = pd.to_numeric(df[mapping["sam"]], errors="coerce")
    steps = (
        pd.to_numeric(df[mapping["step"]], errors="coerce")
        if "step" in mapping else pd.Series([float("nan")] * len(df))
    )

    operations = []
    dropped = 0
    for position in range(len(df)):
        standard_time = sam.iloc[position]
        if pd.isna(standard_time) or standard_time <= 0:
            dropped += 1
            continue

        row = df.iloc[position]
        step = steps.iloc[position]
        step = int(step) if not pd.isna(step) else position + 1

        op_name = row.get(mapping["operation"]) if "operation" in mapping else None
        if op_name is None or pd.isna(op_name) or str(op_name).strip() == "":
            op_name = f"Operation {position + 1}"

        machine_type = row.get(mapping["type"]) if "type" in mapping else None
        if machine_type is None or pd.isna(machine_type) or str(machine_type).strip() == "":
            machine_type = "Unknown"

        is_manual = _parse_bool(row.get(mapping["is_manual"])) if "is_manual" in mapping else None
        if is_manual is None:
            is_manual = str(machine_type).strip() == MANUAL_MACHINE_TYPE

        operations.append(Operation(
            step=step,
            name=str(op_name).strip(),
            machine_type=str(machine_type).strip(),
            standard_time=float(standard_time),
            is_manual=is_manual,
        ))

    if dropped:
        logger.warning(f"Style '{name}': dropped {dropped} rows with missing or non-positive SAM")
    logger.info(f"Loaded style '{name}' with {len(operations)} operations")
    return Style(name=name, operations=tuple(operations), custom_ratio=custom_ratio)


def load_style_csv(
    path: Union[str, Path],
    name: Optional[str] = None,
    custom_ratio: float = 1.0,
) -> Style:
    """Read one style from a CSV file; the name defaults to the file stem."""
    path = Path(path)
    df = pd.read_csv(path, skip_blank_lines=True)
    return style_from_dataframe(df, name or path.stem, custom_ratio=custom_ratio)


def load_styles(paths: List[Union[str, Path]]) -> List[Style]:
    """One style per CSV file, in the given order."""
    return [load_style_csv(path) for path in paths]
