"""
Build a structured LayoutModel from a traced faces document.

Pipeline per document:
  1. extract and clean loops (trace units)
  2. outer loop -> snapped block dimensions + optional chamfer
  3. each inner loop -> block-local inches -> classify -> snap -> normalize

Malformed input never raises; it degrades to the default 10 x 10 x 2 in
single-layer model or to fewer cavities.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from foam_layout.contracts import (
    Block,
    Cavity,
    CavityShape,
    CircleCavity,
    CornerStyle,
    FallbackPolicy,
    LayoutModel,
    PolyCavity,
    RectCavity,
)
from foam_layout.coords import BlockPoint, block_to_norm, trace_to_block
from foam_layout.loop_extractor import ExtractedLoops, extract_loops
from foam_layout.shape_classifier import (
    ClassifierConfig,
    ShapeFit,
    classify_inner_loop,
    detect_chamfer,
)
from foam_layout.units import format_inches, snap_pretty

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_IN = (10.0, 10.0, 2.0)


@dataclass(frozen=True)
class BuildConfig:
    """Defaults applied while seeding a layout from traced loops."""
    default_depth_in: float = 1.0
    block_thickness_in: float = 2.0
    fallback_policy: FallbackPolicy = FallbackPolicy.POLY
    layer_id: str = "seed-layer-1"
    layer_label: str = "Layer 1"
    cavity_id_prefix: str = "seed-cav"
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)


def default_layout(config: Optional[BuildConfig] = None) -> LayoutModel:
    """The empty 10 x 10 x 2 in. model used when tracing gives nothing usable."""
    if config is None:
        config = BuildConfig()
    length, width, thickness = DEFAULT_BLOCK_IN
    block = Block(length_in=length, width_in=width, thickness_in=thickness)
    return LayoutModel.single_layer(
        block, [], layer_id=config.layer_id, layer_label=config.layer_label,
    )


def cavity_label(cavity: Cavity) -> str:
    """Human-readable label, e.g. "2.5×1.5×1 rect" or "⌀1.25×0.75 circle"."""
    depth = format_inches(cavity.depth_in)
    if cavity.shape == CavityShape.CIRCLE:
        return f"⌀{format_inches(cavity.diameter_in)}×{depth} circle"
    length = format_inches(cavity.length_in)
    width = format_inches(cavity.width_in)
    return f"{length}×{width}×{depth} {cavity.shape.value}"


def build_layout_from_faces(
    faces: Any,
    config: Optional[BuildConfig] = None,
) -> LayoutModel:
    """Reconstruct a single-layer LayoutModel from a faces document.

    Args:
        faces: Parsed faces JSON ({units, outerLoopIndex?, loops}).
        config: Build defaults and classifier tolerances.

    Returns:
        LayoutModel whose stack[0].cavities mirrors the flat cavity list.
    """
    if config is None:
        config = BuildConfig()

    loops = extract_loops(faces)
    if loops is None:
        logger.info("Falling back to the default layout")
        return default_layout(config)

    block = _build_block(loops, config)
    if block is None:
        logger.info("Outer loop snaps to an empty block; using default layout")
        return default_layout(config)

    cavities: List[Cavity] = []
    for loop in loops.inner:
        pts = [trace_to_block(p, loops.origin, loops.units) for p in loop.points]
        fit = classify_inner_loop(pts, config.fallback_policy, config.classifier)
        if fit is None:
            logger.debug("Skipping loop %d: zero-area bounding box", loop.source_index)
            continue
        cavity = _build_cavity(fit, block, len(cavities) + 1, config)
        if cavity is None:
            logger.debug("Skipping loop %d: snaps to an empty cavity", loop.source_index)
            continue
        cavities.append(cavity)

    logger.info(
        "Built %sx%sx%s in. layout with %d cavities",
        format_inches(block.length_in),
        format_inches(block.width_in),
        format_inches(block.thickness_in),
        len(cavities),
    )
    return LayoutModel.single_layer(
        block, cavities, layer_id=config.layer_id, layer_label=config.layer_label,
    )


def _build_block(loops: ExtractedLoops, config: BuildConfig) -> Optional[Block]:
    length = snap_pretty(loops.outer_bbox.width, loops.units)
    width = snap_pretty(loops.outer_bbox.height, loops.units)
    if length <= 0 or width <= 0:
        return None

    outer_pts = [trace_to_block(p, loops.origin, loops.units) for p in loops.outer]
    chamfer = detect_chamfer(outer_pts, config.classifier)
    chamfer_in = snap_pretty(chamfer) if chamfer is not None else 0.0
    if 0 < chamfer_in < min(length, width) / 2.0:
        return Block(
            length_in=length,
            width_in=width,
            thickness_in=config.block_thickness_in,
            corner_style=CornerStyle.CHAMFER,
            chamfer_in=chamfer_in,
        )
    return Block(length_in=length, width_in=width, thickness_in=config.block_thickness_in)


def _build_cavity(
    fit: ShapeFit,
    block: Block,
    number: int,
    config: BuildConfig,
) -> Optional[Cavity]:
    cavity_id = f"{config.cavity_id_prefix}-{number}"
    L, W = block.length_in, block.width_in

    if fit.shape == CavityShape.CIRCLE and fit.circle is not None:
        diameter = snap_pretty(fit.circle.diameter)
        if diameter <= 0:
            return None
        center = fit.circle.center
        corner = block_to_norm(
            BlockPoint(center.x - diameter / 2.0, center.y + diameter / 2.0), L, W,
        )
        cavity: Cavity = CircleCavity(
            id=cavity_id,
            diameter_in=diameter,
            depth_in=config.default_depth_in,
            x=corner.x,
            y=corner.y,
        )
    else:
        length = snap_pretty(fit.bbox.width)
        width = snap_pretty(fit.bbox.height)
        if length <= 0 or width <= 0:
            return None
        corner = block_to_norm(BlockPoint(fit.bbox.min_x, fit.bbox.max_y), L, W)
        if fit.shape == CavityShape.POLY:
            cavity = PolyCavity(
                id=cavity_id,
                points=[block_to_norm(p, L, W) for p in fit.points],
                length_in=length,
                width_in=width,
                depth_in=config.default_depth_in,
                x=corner.x,
                y=corner.y,
            )
        else:
            cavity = RectCavity(
                id=cavity_id,
                length_in=length,
                width_in=width,
                depth_in=config.default_depth_in,
                x=corner.x,
                y=corner.y,
            )

    cavity.label = cavity_label(cavity)
    return cavity
