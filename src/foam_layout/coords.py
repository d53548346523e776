"""
Coordinate spaces used by the layout engine.

Four spaces, each with its own point type:

  TracePoint  raw trace units, y-up, arbitrary origin
  BlockPoint  block-local inches, origin at the outer bbox min, y-up
              (DXF entities are written in this space)
  NormPoint   normalized top-left unit square, y-down, [0, 1]
  SvgPoint    block inches, origin at the top-left corner, y-down

The y flip lives in block_to_norm and nowhere else. norm_to_block is its
inverse; norm_to_svg is a pure scale.
"""
import math
from typing import NamedTuple, Tuple

from foam_layout.units import to_inches


class TracePoint(NamedTuple):
    x: float
    y: float


class BlockPoint(NamedTuple):
    x: float
    y: float


class NormPoint(NamedTuple):
    x: float
    y: float


class SvgPoint(NamedTuple):
    x: float
    y: float


def clamp01(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return min(1.0, max(0.0, value))


def clamp_norm(point) -> NormPoint:
    return NormPoint(clamp01(float(point[0])), clamp01(float(point[1])))


def trace_to_block(point: TracePoint, origin: TracePoint, units: str) -> BlockPoint:
    """Translate to the outer bbox origin and convert to inches."""
    return BlockPoint(
        to_inches(point.x - origin.x, units),
        to_inches(point.y - origin.y, units),
    )


def block_to_norm(point: BlockPoint, length_in: float, width_in: float) -> NormPoint:
    """Normalize into the top-left unit square (flips y)."""
    return NormPoint(
        clamp01(point.x / max(1e-9, length_in)),
        clamp01(1.0 - point.y / max(1e-9, width_in)),
    )


def norm_to_block(point: NormPoint, length_in: float, width_in: float) -> BlockPoint:
    return BlockPoint(point.x * length_in, (1.0 - point.y) * width_in)


def norm_to_svg(point: NormPoint, length_in: float, width_in: float) -> SvgPoint:
    return SvgPoint(point.x * length_in, point.y * width_in)


def cavity_box_svg(
    x: float,
    y: float,
    w: float,
    h: float,
    length_in: float,
    width_in: float,
) -> Tuple[float, float, float, float]:
    """Denormalize a cavity bbox to (left, top, w, h) in SVG inches.

    The box is shifted so it starts inside the block.
    """
    corner = norm_to_svg(NormPoint(x, y), length_in, width_in)
    left = max(0.0, min(length_in - w, corner.x))
    top = max(0.0, min(width_in - h, corner.y))
    return left, top, w, h


def cavity_box_block(
    x: float,
    y: float,
    w: float,
    h: float,
    length_in: float,
    width_in: float,
) -> Tuple[float, float, float, float]:
    """Denormalize a cavity bbox to (left, bottom, w, h) in block inches."""
    top_left = norm_to_block(NormPoint(x, y), length_in, width_in)
    left = max(0.0, min(length_in - w, top_left.x))
    bottom = max(0.0, min(width_in - h, top_left.y - h))
    return left, bottom, w, h
