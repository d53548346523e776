"""
Unit conversion and "pretty" dimension snapping for foam cutting.

Trace loops arrive in inches or millimeters. Every dimension that ends up in
a layout (block length/width, chamfer size, cavity extents) is converted to
inches and snapped to the value a shop floor would expect: whole inches
first, then eighths, quarters and halves, and finally the nearest 1/16".
"""
import math
from typing import Tuple

INCH_TO_MM = 25.4

# (step, tolerance) pairs tried in priority order before falling back to 1/16".
SNAP_STEPS: Tuple[Tuple[float, float], ...] = (
    (1.0, 0.01),
    (0.125, 0.005),
    (0.25, 0.005),
    (0.5, 0.005),
)
FALLBACK_STEP = 0.0625

_MM_ALIASES = ("mm", "millimeter", "millimeters", "millimetre", "millimetres")


def normalize_units(units) -> str:
    """Return "mm" or "in"; anything unrecognised is treated as inches."""
    text = str(units or "").strip().lower()
    return "mm" if text in _MM_ALIASES else "in"


def to_inches(value: float, units: str = "in") -> float:
    if normalize_units(units) == "mm":
        return float(value) / INCH_TO_MM
    return float(value)


def round_to_step(value: float, step: float) -> float:
    """Round to the nearest multiple of step, halves away from -inf."""
    return math.floor(value / step + 0.5) * step


def snap_pretty(value: float, units: str = "in") -> float:
    """Convert to inches and snap to the prettiest nearby fraction.

    Args:
        value: Raw measurement.
        units: "in" or "mm".

    Returns:
        Snapped inches. Non-finite input yields 0.0.
    """
    inches = to_inches(value, units)
    if not math.isfinite(inches):
        return 0.0

    for step, tol in SNAP_STEPS:
        candidate = round_to_step(inches, step)
        if abs(inches - candidate) <= tol + 1e-12:
            return float(candidate)

    return float(round_to_step(inches, FALLBACK_STEP))


def format_inches(value: float) -> str:
    """Compact 4-decimal text: 2.5 -> "2.5", 10.0 -> "10", 100.0625 -> "100.0625"."""
    if not math.isfinite(value):
        return "0"
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text
