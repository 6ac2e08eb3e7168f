"""
Line Balancing engine package.

Capacity planning and operation-to-operator allocation for manual assembly lines.
"""
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent

__all__ = ["PACKAGE_ROOT", "PROJECT_ROOT"]
