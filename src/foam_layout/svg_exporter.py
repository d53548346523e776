"""
SVG preview export for foam layouts.

One drawing per layer, in block inches with a top-left origin
(viewBox "0 0 L W"), so the preview needs no further transform. Stroke widths
scale with the block so outlines stay visible at any size.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import svgwrite
from shapely.geometry import Polygon, box

from foam_layout.contracts import (
    Block,
    Cavity,
    CavityShape,
    Layer,
    LayoutModel,
    outline_chamfer_in,
)
from foam_layout.coords import cavity_box_svg, norm_to_svg
from foam_layout.units import format_inches

logger = logging.getLogger(__name__)


@dataclass
class SVGExportConfig:
    """Styling for layer previews."""
    block_stroke: str = "#111827"
    block_fill: str = "#ffffff"
    cavity_stroke: str = "#ef4444"
    block_stroke_divisor: float = 250.0
    block_stroke_min: float = 0.04
    cavity_stroke_divisor: float = 300.0
    cavity_stroke_min: float = 0.03
    add_labels: bool = False
    label_fill: str = "#111827"
    label_divisor: float = 30.0


def _r(value: float) -> float:
    return round(float(value), 4)


def stroke_widths(block: Block, config: SVGExportConfig) -> Tuple[float, float]:
    """(block, cavity) stroke widths relative to the shorter block side."""
    short_side = min(block.length_in, block.width_in)
    return (
        max(config.block_stroke_min, short_side / config.block_stroke_divisor),
        max(config.cavity_stroke_min, short_side / config.cavity_stroke_divisor),
    )


def _block_outline(dwg, block: Block, layer: Optional[Layer], stroke_width: float, config: SVGExportConfig):
    L, W = block.length_in, block.width_in
    style = {
        "fill": config.block_fill,
        "stroke": config.block_stroke,
        "stroke_width": _r(stroke_width),
    }
    c = outline_chamfer_in(block, layer)
    if c > 1e-4:
        # Top-left and bottom-right corners are cut.
        d = (
            f"M {_r(c)} 0 L {_r(L)} 0 L {_r(L)} {_r(W - c)} "
            f"L {_r(L - c)} {_r(W)} L 0 {_r(W)} L 0 {_r(c)} Z"
        )
        return dwg.path(d=d, **style)
    return dwg.rect(insert=(0, 0), size=(_r(L), _r(W)), **style)


def _cavity_element(dwg, cavity: Cavity, block: Block, stroke_width: float, config: SVGExportConfig):
    """SVG element for one cavity, or None when it has no area in the block."""
    L, W = block.length_in, block.width_in
    block_area = box(0.0, 0.0, L, W)
    style = {"fill": "none", "stroke": config.cavity_stroke, "stroke_width": _r(stroke_width)}

    if cavity.shape == CavityShape.POLY:
        pts = [norm_to_svg(p, L, W) for p in cavity.points]
        if len(pts) < 3:
            return None
        outline = Polygon(pts)
        if not outline.is_valid:
            outline = outline.buffer(0)
        if outline.intersection(block_area).area <= 0:
            return None
        return dwg.polygon(points=[(_r(p.x), _r(p.y)) for p in pts], **style)

    left, top, w, h = cavity_box_svg(cavity.x, cavity.y, cavity.length_in, cavity.width_in, L, W)
    if w <= 0 or h <= 0 or box(left, top, left + w, top + h).intersection(block_area).area <= 0:
        return None

    if cavity.shape == CavityShape.CIRCLE:
        return dwg.circle(
            center=(_r(left + w / 2), _r(top + h / 2)),
            r=_r(cavity.diameter_in / 2),
            **style,
        )

    radius = max(0.0, min(cavity.corner_radius_in, w / 2, h / 2))
    if radius > 0:
        return dwg.rect(
            insert=(_r(left), _r(top)), size=(_r(w), _r(h)), rx=_r(radius), ry=_r(radius), **style,
        )
    return dwg.rect(insert=(_r(left), _r(top)), size=(_r(w), _r(h)), **style)


def _cavity_label(dwg, cavity: Cavity, block: Block, config: SVGExportConfig):
    L, W = block.length_in, block.width_in
    left, top, w, h = cavity_box_svg(cavity.x, cavity.y, cavity.length_in, cavity.width_in, L, W)
    text = cavity.label or (
        f"⌀{format_inches(cavity.length_in)}" if cavity.shape == CavityShape.CIRCLE
        else f"{format_inches(cavity.length_in)}×{format_inches(cavity.width_in)}"
    )
    return dwg.text(
        text,
        insert=(_r(left + w / 2), _r(top + h / 2)),
        font_size=_r(min(L, W) / config.label_divisor),
        fill=config.label_fill,
        text_anchor="middle",
    )


def layout_layer_to_svg(
    model: Optional[LayoutModel],
    layer_index: int = 0,
    config: Optional[SVGExportConfig] = None,
) -> Optional[str]:
    """Render one layer as SVG markup.

    Args:
        model: Layout to render.
        layer_index: Stack index of the layer.
        config: Styling.

    Returns:
        SVG text, or None when the block is missing or has no area.
    """
    if model is None or model.block is None or not model.block.is_valid():
        logger.info("No SVG output: layout has no usable block")
        return None
    if config is None:
        config = SVGExportConfig()

    block = model.block
    L, W = block.length_in, block.width_in
    block_sw, cavity_sw = stroke_widths(block, config)

    dwg = svgwrite.Drawing(
        size=("100%", "100%"),
        viewBox=f"0 0 {format_inches(L)} {format_inches(W)}",
    )
    dwg.add(_block_outline(dwg, block, model.layer(layer_index), block_sw, config))

    omitted = 0
    for cavity in model.layer_cavities(layer_index):
        element = _cavity_element(dwg, cavity, block, cavity_sw, config)
        if element is None:
            omitted += 1
            continue
        dwg.add(element)
        if config.add_labels:
            dwg.add(_cavity_label(dwg, cavity, block, config))

    if omitted:
        logger.debug("Layer %d: omitted %d degenerate cavities", layer_index, omitted)
    return dwg.tostring()


def layout_to_layer_svgs(
    model: Optional[LayoutModel],
    config: Optional[SVGExportConfig] = None,
) -> List[Tuple[int, Layer, str]]:
    """(index, layer, svg) for every displayable layer."""
    if model is None or not model.stack:
        return []
    out = []
    for index in model.display_layers():
        svg = layout_layer_to_svg(model, index, config)
        if svg is not None:
            out.append((index, model.stack[index], svg))
    return out
