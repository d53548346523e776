"""
Loop extraction from a traced "faces" document.

The faces document is produced by the vector tracer:

    {"units": "in" | "mm",
     "outerLoopIndex": 0,
     "loops": [{"points": [{"x": ..., "y": ...}, ...]}, ...]}

Extraction only cleans and selects; coordinates stay in trace units.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

import numpy as np

from foam_layout.coords import TracePoint
from foam_layout.units import normalize_units

logger = logging.getLogger(__name__)

MIN_LOOP_POINTS = 3


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass
class InnerLoop:
    """A candidate cavity loop and its position in the source document."""
    source_index: int
    points: List[TracePoint]


@dataclass
class ExtractedLoops:
    units: str
    outer_index: int
    outer: List[TracePoint]
    outer_bbox: BoundingBox
    inner: List[InnerLoop] = field(default_factory=list)

    @property
    def origin(self) -> TracePoint:
        return TracePoint(self.outer_bbox.min_x, self.outer_bbox.min_y)


def _coerce(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def clean_points(raw: Any) -> List[TracePoint]:
    """Keep points with finite coordinates; drop a repeated closing point.

    Accepts {"x", "y"} mappings or [x, y] pairs.
    """
    if not isinstance(raw, (list, tuple)):
        return []

    points: List[TracePoint] = []
    for item in raw:
        if isinstance(item, Mapping):
            x, y = _coerce(item.get("x")), _coerce(item.get("y"))
        elif isinstance(item, (list, tuple)) and len(item) >= 2:
            x, y = _coerce(item[0]), _coerce(item[1])
        else:
            continue
        if x is None or y is None:
            continue
        points.append(TracePoint(x, y))

    if len(points) > 1 and np.allclose(points[0], points[-1], rtol=0.0, atol=1e-9):
        points.pop()
    return points


def bounding_box(points: Sequence) -> Optional[BoundingBox]:
    if len(points) == 0:
        return None
    arr = np.asarray(points, dtype=float).reshape(-1, 2)
    arr = arr[np.isfinite(arr).all(axis=1)]
    if arr.size == 0:
        return None
    mins = arr.min(axis=0)
    maxs = arr.max(axis=0)
    return BoundingBox(float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))


def _loop_points(loop: Any) -> List[TracePoint]:
    if isinstance(loop, Mapping):
        return clean_points(loop.get("points"))
    return clean_points(loop)


def _outer_index(raw: Any, loop_count: int) -> int:
    idx = _coerce(raw)
    if idx is None or not idx.is_integer():
        return 0
    idx = int(idx)
    return idx if 0 <= idx < loop_count else 0


def extract_loops(faces: Any) -> Optional[ExtractedLoops]:
    """Clean a faces document and pick out the outer boundary.

    Returns:
        ExtractedLoops, or None when there is no usable outer loop
        (the caller falls back to the default layout).
    """
    if not isinstance(faces, Mapping):
        logger.info("Faces document is not a mapping; nothing to extract")
        return None

    loops = faces.get("loops")
    if not isinstance(loops, list) or not loops:
        logger.info("Faces document has no loops")
        return None

    units = normalize_units(faces.get("units"))
    outer_index = _outer_index(faces.get("outerLoopIndex"), len(loops))
    outer = _loop_points(loops[outer_index])
    outer_bbox = bounding_box(outer)
    if outer_bbox is None or outer_bbox.is_degenerate:
        logger.info("Outer loop %d has a degenerate bounding box", outer_index)
        return None

    inner: List[InnerLoop] = []
    for i, loop in enumerate(loops):
        if i == outer_index:
            continue
        pts = _loop_points(loop)
        if len(pts) < MIN_LOOP_POINTS:
            logger.debug("Skipping loop %d: %d usable points", i, len(pts))
            continue
        inner.append(InnerLoop(source_index=i, points=pts))

    return ExtractedLoops(
        units=units,
        outer_index=outer_index,
        outer=outer,
        outer_bbox=outer_bbox,
        inner=inner,
    )
