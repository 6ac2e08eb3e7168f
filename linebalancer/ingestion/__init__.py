"""
Tabular loaders producing Style objects for the line balancing engine.
"""

from .csv_loader import (
    COLUMN_ALIASES,
    style_from_dataframe,
    load_style_csv,
    load_styles,
)

__all__ = [
    "COLUMN_ALIASES",
    "style_from_dataframe",
    "load_style_csv",
    "load_styles",
]
