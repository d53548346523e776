"""
Shared test fixtures for the foam layout engine.
"""
import math
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from foam_layout.contracts import (
    Block,
    CircleCavity,
    Layer,
    LayoutModel,
    RectCavity,
)


def _pts(coords):
    return [{"x": float(x), "y": float(y)} for x, y in coords]


@pytest.fixture
def rect_loop():
    """Factory: axis-aligned rectangle loop from two corners."""
    def make(x0, y0, x1, y1):
        return {"points": _pts([(x0, y0), (x1, y0), (x1, y1), (x0, y1)])}
    return make


@pytest.fixture
def circle_loop():
    """Factory: regular n-gon inscribed in a circle."""
    def make(cx, cy, r, n=16):
        return {
            "points": _pts(
                (cx + r * math.cos(2 * math.pi * k / n), cy + r * math.sin(2 * math.pi * k / n))
                for k in range(n)
            )
        }
    return make


@pytest.fixture
def ellipse_loop():
    """Factory: sampled ellipse with semi-axes a (x) and b (y)."""
    def make(cx, cy, a, b, n=32):
        return {
            "points": _pts(
                (cx + a * math.cos(2 * math.pi * k / n), cy + b * math.sin(2 * math.pi * k / n))
                for k in range(n)
            )
        }
    return make


@pytest.fixture
def polygon_loop():
    """Factory: loop from explicit (x, y) vertices."""
    def make(coords):
        return {"points": _pts(coords)}
    return make


@pytest.fixture
def block_with_circle_faces(rect_loop, circle_loop):
    """10 x 6 in. block with a 1 in. circle centered at (5, 3)."""
    return {
        "units": "in",
        "outerLoopIndex": 0,
        "loops": [rect_loop(0, 0, 10, 6), circle_loop(5, 3, 0.5)],
    }


@pytest.fixture
def two_layer_model():
    """12 x 8 block with cavities split over two layers."""
    block = Block(length_in=12.0, width_in=8.0, thickness_in=3.0)
    top = Layer(
        id="layer-1",
        label="Top",
        thickness_in=1.0,
        cavities=[
            RectCavity(id="a", length_in=3.0, width_in=2.0, depth_in=1.0, x=0.25, y=0.25),
        ],
    )
    bottom = Layer(
        id="layer-2",
        label="Bottom",
        thickness_in=2.0,
        cavities=[
            CircleCavity(id="b", diameter_in=2.0, depth_in=1.5, x=0.5, y=0.5),
            RectCavity(id="c", length_in=1.0, width_in=1.0, depth_in=0.5, x=0.0, y=0.0),
        ],
    )
    return LayoutModel(block=block, cavities=[], stack=[top, bottom])
