"""
Shape classification for traced loops.

Every test here is purely geometric: distinct-coordinate counting for
chamfered outer blocks, radius dispersion for circles, and bounding-box fill
for axis-aligned rectangles. Points are block-local inches.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from shapely.geometry import Polygon

from foam_layout.contracts import CavityShape, FallbackPolicy
from foam_layout.coords import BlockPoint
from foam_layout.loop_extractor import BoundingBox, bounding_box

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifierConfig:
    """Tolerances for shape recognition."""
    dedupe_tol: float = 1e-6
    chamfer_min_vertices: int = 5
    chamfer_run_ratio_max: float = 1.25       # 4x4 distinct coordinates
    chamfer_simplified_ratio_max: float = 2.0  # 3x3 distinct coordinates
    circle_min_vertices: int = 12
    circle_max_dispersion: float = 0.02        # stdev / mean radius
    rect_min_fill: float = 0.98                # polygon area / bbox area
    chamfer_edge_tol: float = 0.25             # diagonal length vs run*sqrt(2)


@dataclass(frozen=True)
class CircleFit:
    center: BlockPoint
    radius: float

    @property
    def diameter(self) -> float:
        return 2.0 * self.radius


@dataclass
class ShapeFit:
    """Result of classifying one inner loop."""
    shape: CavityShape
    bbox: BoundingBox
    circle: Optional[CircleFit] = None
    points: List[BlockPoint] = field(default_factory=list)


def unique_sorted(values: Sequence[float], tol: float = 1e-6) -> List[float]:
    """Sorted values with neighbours closer than tol merged."""
    out: List[float] = []
    for v in sorted(float(x) for x in values if np.isfinite(x)):
        if not out or abs(v - out[-1]) > tol:
            out.append(v)
    return out


def detect_chamfer(
    points: Sequence[BlockPoint],
    config: Optional[ClassifierConfig] = None,
) -> Optional[float]:
    """Chamfer size of an axis-aligned outer loop with 45 degree corner cuts.

    Returns:
        Chamfer run in the units of points, or None for square corners.
    """
    if config is None:
        config = ClassifierConfig()
    if len(points) < config.chamfer_min_vertices:
        return None

    xs = unique_sorted([p[0] for p in points], config.dedupe_tol)
    ys = unique_sorted([p[1] for p in points], config.dedupe_tol)

    if len(xs) == 4 and len(ys) == 4:
        runs = [xs[1] - xs[0], xs[3] - xs[2], ys[1] - ys[0], ys[3] - ys[2]]
        if min(runs) <= 0:
            return None
        if max(runs) / min(runs) > config.chamfer_run_ratio_max:
            return None
        chamfer = min(runs)
    elif len(xs) == 3 and len(ys) == 3:
        candidates = sorted(
            [xs[1] - xs[0], xs[2] - xs[1], ys[1] - ys[0], ys[2] - ys[1]]
        )
        a, b = candidates[0], candidates[1]
        if a <= 0 or b / a > config.chamfer_simplified_ratio_max:
            return None
        chamfer = (a + b) / 2.0
    else:
        return None

    # An L-shaped outline also has 3x3 coordinates; a real chamfer is
    # strictly smaller than half of the shorter side.
    half_side = min(xs[-1] - xs[0], ys[-1] - ys[0]) / 2.0
    if chamfer >= half_side:
        return None

    # Extra vertices along straight edges give the same coordinate counts;
    # only a diagonal edge across a bbox corner is a cut.
    if not _has_corner_cut(points, xs, ys, chamfer, config):
        return None
    return chamfer


def _has_corner_cut(
    points: Sequence[BlockPoint],
    xs: List[float],
    ys: List[float],
    chamfer: float,
    config: ClassifierConfig,
) -> bool:
    """True when some edge runs diagonally from a bbox side to an adjacent one."""
    tol = config.dedupe_tol
    expected = chamfer * math.sqrt(2.0)

    def on_x_side(p) -> bool:
        return abs(p[0] - xs[0]) <= tol or abs(p[0] - xs[-1]) <= tol

    def on_y_side(p) -> bool:
        return abs(p[1] - ys[0]) <= tol or abs(p[1] - ys[-1]) <= tol

    for i in range(len(points)):
        a, b = points[i], points[(i + 1) % len(points)]
        dx, dy = b[0] - a[0], b[1] - a[1]
        if abs(dx) <= tol or abs(dy) <= tol:
            continue
        if abs(math.hypot(dx, dy) - expected) > config.chamfer_edge_tol * expected:
            continue
        if (on_x_side(a) and on_y_side(b)) or (on_y_side(a) and on_x_side(b)):
            return True
    return False


def detect_circle(
    points: Sequence[BlockPoint],
    config: Optional[ClassifierConfig] = None,
) -> Optional[CircleFit]:
    """Fit a circle when the radius from the mean centroid is consistent."""
    if config is None:
        config = ClassifierConfig()
    if len(points) < config.circle_min_vertices:
        return None

    arr = np.asarray(points, dtype=float).reshape(-1, 2)
    arr = arr[np.isfinite(arr).all(axis=1)]
    if len(arr) < config.circle_min_vertices:
        return None

    centroid = arr.mean(axis=0)
    radii = np.hypot(arr[:, 0] - centroid[0], arr[:, 1] - centroid[1])
    radii = radii[radii > 0]
    if len(radii) < config.circle_min_vertices:
        return None

    mean = float(radii.mean())
    if mean <= 0:
        return None
    dispersion = float(radii.std()) / mean
    if dispersion > config.circle_max_dispersion:
        return None

    return CircleFit(center=BlockPoint(float(centroid[0]), float(centroid[1])), radius=mean)


def is_axis_aligned_rect(
    points: Sequence[BlockPoint],
    config: Optional[ClassifierConfig] = None,
) -> bool:
    """True when the outline fills (almost) all of its bounding box."""
    if config is None:
        config = ClassifierConfig()
    bb = bounding_box(points)
    if bb is None or bb.is_degenerate or len(points) < 3:
        return False
    area = Polygon(points).area
    return area / (bb.width * bb.height) >= config.rect_min_fill


def classify_inner_loop(
    points: Sequence[BlockPoint],
    policy: FallbackPolicy = FallbackPolicy.POLY,
    config: Optional[ClassifierConfig] = None,
) -> Optional[ShapeFit]:
    """Classify one cavity loop as circle, rectangle or polygon.

    Returns:
        ShapeFit, or None when the loop has no area.
    """
    if config is None:
        config = ClassifierConfig()

    bb = bounding_box(points)
    if bb is None or bb.is_degenerate:
        return None

    circle = detect_circle(points, config)
    if circle is not None:
        return ShapeFit(shape=CavityShape.CIRCLE, bbox=bb, circle=circle)

    if is_axis_aligned_rect(points, config) or policy == FallbackPolicy.RECT:
        return ShapeFit(shape=CavityShape.RECT, bbox=bb)

    return ShapeFit(
        shape=CavityShape.POLY,
        bbox=bb,
        points=[BlockPoint(float(p[0]), float(p[1])) for p in points],
    )
