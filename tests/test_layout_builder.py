"""Tests for layout_builder module."""
import math

import pytest

from foam_layout.contracts import (
    CavityShape,
    CircleCavity,
    CornerStyle,
    FallbackPolicy,
    PolyCavity,
    RectCavity,
)
from foam_layout.layout_builder import (
    BuildConfig,
    build_layout_from_faces,
    cavity_label,
    default_layout,
)


def _assert_default(model):
    assert model.block.length_in == 10
    assert model.block.width_in == 10
    assert model.block.thickness_in == 2
    assert model.cavities == []
    assert len(model.stack) == 1
    assert model.stack[0].cavities == []
    assert model.stack[0].thickness_in == 2


class TestFallback:

    @pytest.mark.parametrize(
        "faces",
        [
            {"units": "in", "loops": []},
            {},
            None,
            "not a document",
            {"loops": [{"points": [{"x": 1, "y": 1}, {"x": 1, "y": 5}]}]},
        ],
    )
    def test_unusable_faces_give_default_model(self, faces):
        _assert_default(build_layout_from_faces(faces))

    def test_block_snapping_to_zero_gives_default(self, rect_loop):
        _assert_default(build_layout_from_faces({"loops": [rect_loop(0, 0, 0.01, 0.01)]}))

    def test_default_layout(self):
        _assert_default(default_layout())


class TestBlock:

    def test_snapped_dimensions(self, rect_loop):
        model = build_layout_from_faces({"units": "in", "loops": [rect_loop(3, 4, 13.004, 10.122)]})
        assert model.block.length_in == 10.0
        assert model.block.width_in == 6.125
        assert model.block.corner_style == CornerStyle.SQUARE

    def test_millimeter_trace(self, rect_loop, circle_loop):
        faces = {
            "units": "mm",
            "loops": [rect_loop(0, 0, 254, 152.4), circle_loop(127, 76.2, 12.7)],
        }
        model = build_layout_from_faces(faces)
        assert model.block.length_in == 10.0
        assert model.block.width_in == 6.0
        assert model.cavities[0].shape == CavityShape.CIRCLE
        assert model.cavities[0].diameter_in == 1.0

    def test_thickness_from_config(self, rect_loop):
        model = build_layout_from_faces(
            {"loops": [rect_loop(0, 0, 10, 6)]}, BuildConfig(block_thickness_in=3.0)
        )
        assert model.block.thickness_in == 3.0
        assert model.stack[0].thickness_in == 3.0

    @pytest.mark.parametrize("c", [0.5, 1.0])
    def test_chamfered_outer_loop(self, polygon_loop, c):
        s = 12.0
        outer = polygon_loop(
            [(c, 0), (s - c, 0), (s, c), (s, s - c), (s - c, s), (c, s), (0, s - c), (0, c)]
        )
        model = build_layout_from_faces({"loops": [outer]})
        assert model.block.corner_style == CornerStyle.CHAMFER
        assert model.block.chamfer_in == pytest.approx(c)
        assert model.block.to_dict()["cornerStyle"] == "chamfer"

    @pytest.mark.parametrize(
        "coords",
        [
            [(0, 0), (3, 0), (10, 0), (10, 2), (10, 8), (0, 8)],
            [(0, 0), (1, 0), (9, 0), (10, 0), (10, 1), (10, 9), (10, 10), (0, 10)],
        ],
    )
    def test_extra_edge_points_keep_square_corners(self, polygon_loop, coords):
        model = build_layout_from_faces({"loops": [polygon_loop(coords)]})
        assert model.block.corner_style == CornerStyle.SQUARE
        assert model.block.chamfer_in is None

    def test_two_corner_chamfer(self, polygon_loop):
        outer = polygon_loop([(0, 0), (9, 0), (10, 1), (10, 6), (1, 6), (0, 5)])
        model = build_layout_from_faces({"loops": [outer]})
        assert model.block.chamfer_in == pytest.approx(1.0)
        assert model.block.length_in == 10.0
        assert model.block.width_in == 6.0


class TestCavities:

    def test_circle_cavity_placement(self, block_with_circle_faces):
        model = build_layout_from_faces(block_with_circle_faces)
        assert len(model.cavities) == 1
        cav = model.cavities[0]
        assert isinstance(cav, CircleCavity)
        assert cav.diameter_in == 1.0
        # Top-left of the circle's box: (4.5, 3.5) block-local, y flipped once.
        assert cav.x == pytest.approx(0.45)
        assert cav.y == pytest.approx(1 - 3.5 / 6)
        assert cav.depth_in == 1.0
        assert cav.label == "⌀1×1 circle"
        assert cav.id == "seed-cav-1"

    def test_rect_cavity(self, rect_loop):
        faces = {"loops": [rect_loop(0, 0, 10, 6), rect_loop(1, 1, 3.5, 2.5)]}
        cav = build_layout_from_faces(faces).cavities[0]
        assert isinstance(cav, RectCavity)
        assert cav.length_in == 2.5
        assert cav.width_in == 1.5
        assert cav.x == pytest.approx(0.1)
        assert cav.y == pytest.approx(1 - 2.5 / 6)
        assert cav.label == "2.5×1.5×1 rect"

    def test_offset_trace_is_block_local(self, rect_loop):
        faces = {"loops": [rect_loop(100, 50, 110, 56), rect_loop(101, 51, 103.5, 52.5)]}
        cav = build_layout_from_faces(faces).cavities[0]
        assert cav.x == pytest.approx(0.1)
        assert cav.y == pytest.approx(1 - 2.5 / 6)

    def test_polygon_cavity_preserves_outline(self, rect_loop, polygon_loop):
        l_shape = polygon_loop([(1, 1), (5, 1), (5, 2), (2, 2), (2, 4), (1, 4)])
        model = build_layout_from_faces({"loops": [rect_loop(0, 0, 10, 5), l_shape]})
        cav = model.cavities[0]
        assert isinstance(cav, PolyCavity)
        assert len(cav.points) == 6
        assert cav.length_in == 4.0
        assert cav.width_in == 3.0
        assert cav.points[0].x == pytest.approx(0.1)
        assert cav.points[0].y == pytest.approx(0.8)
        assert cav.x == pytest.approx(0.1)
        assert cav.y == pytest.approx(0.2)
        assert cav.label == "4×3×1 poly"

    def test_legacy_rect_policy(self, rect_loop, polygon_loop):
        l_shape = polygon_loop([(1, 1), (5, 1), (5, 2), (2, 2), (2, 4), (1, 4)])
        model = build_layout_from_faces(
            {"loops": [rect_loop(0, 0, 10, 5), l_shape]},
            BuildConfig(fallback_policy=FallbackPolicy.RECT),
        )
        cav = model.cavities[0]
        assert isinstance(cav, RectCavity)
        assert (cav.length_in, cav.width_in) == (4.0, 3.0)

    def test_ellipse_is_not_a_circle(self, rect_loop, ellipse_loop):
        faces = {"loops": [rect_loop(0, 0, 10, 6), ellipse_loop(5, 3, 1.2, 1.0)]}
        cav = build_layout_from_faces(faces).cavities[0]
        assert cav.shape != CavityShape.CIRCLE

    def test_placement_clamped_when_outside_block(self, rect_loop, polygon_loop):
        faces = {
            "loops": [
                rect_loop(0, 0, 10, 6),
                rect_loop(-1, -1, 2, 2),
                rect_loop(8, 5, 12, 8),
                polygon_loop([(9, 4), (13, 5), (9, 9)]),
            ]
        }
        model = build_layout_from_faces(faces)
        assert len(model.cavities) == 3
        for cav in model.cavities:
            assert 0.0 <= cav.x <= 1.0
            assert 0.0 <= cav.y <= 1.0
            for p in getattr(cav, "points", []):
                assert 0.0 <= p.x <= 1.0
                assert 0.0 <= p.y <= 1.0
        assert model.cavities[0].x == 0.0
        assert model.cavities[1].y == 0.0

    def test_non_finite_points_ignored(self, rect_loop, circle_loop):
        circle = circle_loop(5, 3, 0.5)
        circle["points"].append({"x": math.nan, "y": 1})
        circle["points"].append({"x": 2, "y": None})
        model = build_layout_from_faces({"loops": [rect_loop(0, 0, 10, 6), circle]})
        assert model.cavities[0].shape == CavityShape.CIRCLE

    def test_depth_override(self, block_with_circle_faces):
        model = build_layout_from_faces(block_with_circle_faces, BuildConfig(default_depth_in=0.75))
        assert model.cavities[0].depth_in == 0.75
        assert model.cavities[0].label == "⌀1×0.75 circle"

    def test_ids_are_sequential(self, rect_loop, circle_loop):
        faces = {
            "loops": [
                rect_loop(0, 0, 10, 6),
                rect_loop(1, 1, 2, 2),
                {"points": [{"x": 1, "y": 1}]},
                circle_loop(6, 3, 1),
            ]
        }
        ids = [c.id for c in build_layout_from_faces(faces).cavities]
        assert ids == ["seed-cav-1", "seed-cav-2"]


class TestStackSync:

    def test_single_layer_mirrors_flat_list(self, block_with_circle_faces, rect_loop):
        faces = dict(block_with_circle_faces)
        faces["loops"] = faces["loops"] + [rect_loop(1, 1, 2, 2)]
        model = build_layout_from_faces(faces)
        assert len(model.stack) == 1
        assert model.stack[0].cavities == model.cavities
        assert model.stack[0].cavities[0] is not model.cavities[0]
        assert model.stack[0].id == "seed-layer-1"
        assert model.stack[0].label == "Layer 1"


class TestCavityLabel:

    def test_rect_label(self):
        cav = RectCavity(id="r", length_in=2.5, width_in=1.5, depth_in=1.0, x=0, y=0)
        assert cavity_label(cav) == "2.5×1.5×1 rect"

    def test_circle_label(self):
        cav = CircleCavity(id="c", diameter_in=1.25, depth_in=0.75, x=0, y=0)
        assert cavity_label(cav) == "⌀1.25×0.75 circle"
