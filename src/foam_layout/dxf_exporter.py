"""
DXF export for foam layouts.

Two writers share one entity plan so they can never disagree:
  - layout_to_dxf: minimal R12 ASCII text (HEADER/TABLES/BLOCKS/ENTITIES),
    inches, 4-decimal numbers. This is what gets stored with a layout
    package and offered for download.
  - layout_to_dxf_file: the same entities written through ezdxf as an
    R2010 drawing with BLOCK and CAVITY layers, for CAD hand-off.

Entities are in block-local inches: origin at the bottom-left block corner,
y up. Passing layer_index=None merges every layer's cavities in stack order,
so a combined export is always the per-layer exports concatenated.
"""
import io
import logging
import math
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import ezdxf
from ezdxf.lldxf.tagger import ascii_tags_loader

from foam_layout.contracts import (
    Block,
    Cavity,
    CavityShape,
    Layer,
    LayoutModel,
    outline_chamfer_in,
)
from foam_layout.coords import BlockPoint, cavity_box_block, norm_to_block

logger = logging.getLogger(__name__)

DxfTag = Tuple[int, str]


@dataclass
class DXFExportConfig:
    """Configuration for DXF export."""
    layer_name: str = "0"       # R12 text export (TABLES stays empty)
    precision: int = 4
    chamfer_outline: bool = False
    block_layer: str = "BLOCK"  # ezdxf document export
    cavity_layer: str = "CAVITY"
    block_color: int = 7        # ACI white/black
    cavity_color: int = 1       # ACI red


@dataclass(frozen=True)
class DxfLine:
    start: BlockPoint
    end: BlockPoint
    is_cavity: bool = False


@dataclass(frozen=True)
class DxfCircle:
    center: BlockPoint
    radius: float
    is_cavity: bool = True


@dataclass(frozen=True)
class DxfArc:
    center: BlockPoint
    radius: float
    start_angle: float  # degrees, counter-clockwise
    end_angle: float
    is_cavity: bool = True


DxfEntity = Union[DxfLine, DxfCircle, DxfArc]


# ─── Entity plan ─────────────────────────────────────────────────────────────

def _closed_lines(points: List[BlockPoint], is_cavity: bool) -> List[DxfLine]:
    return [
        DxfLine(points[i], points[(i + 1) % len(points)], is_cavity)
        for i in range(len(points))
    ]


def block_outline_entities(
    block: Block,
    config: Optional[DXFExportConfig] = None,
    layer: Optional[Layer] = None,
) -> List[DxfEntity]:
    """Outer block outline as LINE entities.

    Square: (0,0)->(L,0)->(L,W)->(0,W)->(0,0). With chamfer_outline on and a
    cropped outline (the layer flag, else the block style), the top-left and
    bottom-right corners are cut.
    """
    if config is None:
        config = DXFExportConfig()
    L, W = block.length_in, block.width_in

    if config.chamfer_outline:
        c = outline_chamfer_in(block, layer)
        if c > 1e-4:
            return _closed_lines(
                [
                    BlockPoint(0.0, 0.0),
                    BlockPoint(L - c, 0.0),
                    BlockPoint(L, c),
                    BlockPoint(L, W),
                    BlockPoint(c, W),
                    BlockPoint(0.0, W - c),
                ],
                is_cavity=False,
            )

    return _closed_lines(
        [BlockPoint(0.0, 0.0), BlockPoint(L, 0.0), BlockPoint(L, W), BlockPoint(0.0, W)],
        is_cavity=False,
    )


def _rounded_rect_entities(
    left: float, bottom: float, w: float, h: float, radius: float,
) -> List[DxfEntity]:
    r = max(0.0, min(radius, w / 2, h / 2))
    right, top = left + w, bottom + h
    return [
        DxfLine(BlockPoint(left + r, bottom), BlockPoint(right - r, bottom), True),
        DxfLine(BlockPoint(right, bottom + r), BlockPoint(right, top - r), True),
        DxfLine(BlockPoint(right - r, top), BlockPoint(left + r, top), True),
        DxfLine(BlockPoint(left, top - r), BlockPoint(left, bottom + r), True),
        DxfArc(BlockPoint(right - r, bottom + r), r, 270.0, 360.0),
        DxfArc(BlockPoint(right - r, top - r), r, 0.0, 90.0),
        DxfArc(BlockPoint(left + r, top - r), r, 90.0, 180.0),
        DxfArc(BlockPoint(left + r, bottom + r), r, 180.0, 270.0),
    ]


def cavity_entities(cavity: Cavity, block: Block) -> List[DxfEntity]:
    """Denormalize one cavity into block-local DXF entities."""
    L, W = block.length_in, block.width_in

    if cavity.shape == CavityShape.POLY:
        if len(cavity.points) < 3:
            return []
        pts = [norm_to_block(p, L, W) for p in cavity.points]
        return _closed_lines(pts, is_cavity=True)

    left, bottom, w, h = cavity_box_block(
        cavity.x, cavity.y, cavity.length_in, cavity.width_in, L, W,
    )
    if w <= 0 or h <= 0:
        return []

    if cavity.shape == CavityShape.CIRCLE:
        center = BlockPoint(left + w / 2, bottom + h / 2)
        return [DxfCircle(center, cavity.diameter_in / 2)]

    if cavity.corner_radius_in > 0:
        return _rounded_rect_entities(left, bottom, w, h, cavity.corner_radius_in)

    return _closed_lines(
        [
            BlockPoint(left, bottom),
            BlockPoint(left + w, bottom),
            BlockPoint(left + w, bottom + h),
            BlockPoint(left, bottom + h),
        ],
        is_cavity=True,
    )


def layer_cavities(model: LayoutModel, layer_index: Optional[int]) -> List[Cavity]:
    """Cavities for one layer, or every layer in stack order for None."""
    if layer_index is None:
        cavities: List[Cavity] = []
        for i in range(model.layer_count()):
            cavities.extend(model.layer_cavities(i))
        return cavities
    return model.layer_cavities(layer_index)


def plan_dxf_entities(
    model: Optional[LayoutModel],
    layer_index: Optional[int] = None,
    config: Optional[DXFExportConfig] = None,
) -> Optional[List[DxfEntity]]:
    """Outline followed by the cavities of the requested layer(s).

    Returns:
        Entity list, or None when there is no usable block.
    """
    if model is None or model.block is None or not model.block.is_valid():
        return None
    if config is None:
        config = DXFExportConfig()

    entities = block_outline_entities(model.block, config, model.layer(layer_index))
    for cavity in layer_cavities(model, layer_index):
        entities.extend(cavity_entities(cavity, model.block))
    return entities


# ─── R12 text writer ─────────────────────────────────────────────────────────

def format_number(value: float, precision: int = 4) -> str:
    if not math.isfinite(value):
        value = 0.0
    text = f"{value:.{precision}f}"
    # "-0.0000" would break text equality between export paths.
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    return text


def _entity_tags(entity: DxfEntity, config: DXFExportConfig) -> List[DxfTag]:
    def f(value: float) -> str:
        return format_number(value, config.precision)

    layer = (8, config.layer_name)

    if isinstance(entity, DxfLine):
        return [
            (0, "LINE"), layer,
            (10, f(entity.start.x)), (20, f(entity.start.y)), (30, f(0.0)),
            (11, f(entity.end.x)), (21, f(entity.end.y)), (31, f(0.0)),
        ]
    if isinstance(entity, DxfCircle):
        return [
            (0, "CIRCLE"), layer,
            (10, f(entity.center.x)), (20, f(entity.center.y)), (30, f(0.0)),
            (40, f(entity.radius)),
        ]
    return [
        (0, "ARC"), layer,
        (10, f(entity.center.x)), (20, f(entity.center.y)), (30, f(0.0)),
        (40, f(entity.radius)),
        (50, f(entity.start_angle)), (51, f(entity.end_angle)),
    ]


_HEADER_TAGS: List[DxfTag] = [
    (0, "SECTION"), (2, "HEADER"),
    (9, "$ACADVER"), (1, "AC1009"),
    (9, "$INSUNITS"), (70, "1"),
    (0, "ENDSEC"),
    (0, "SECTION"), (2, "TABLES"), (0, "ENDSEC"),
    (0, "SECTION"), (2, "BLOCKS"), (0, "ENDSEC"),
    (0, "SECTION"), (2, "ENTITIES"),
]
_FOOTER_TAGS: List[DxfTag] = [(0, "ENDSEC"), (0, "EOF")]


def layout_to_dxf(
    model: Optional[LayoutModel],
    layer_index: Optional[int] = None,
    config: Optional[DXFExportConfig] = None,
) -> Optional[str]:
    """Render a layout as R12 ASCII DXF text.

    Args:
        model: Layout to export.
        layer_index: Layer to export, or None to merge every layer.
        config: DXF export settings.

    Returns:
        DXF text, or None when the block is missing or has no area.
    """
    if config is None:
        config = DXFExportConfig()
    entities = plan_dxf_entities(model, layer_index, config)
    if entities is None:
        logger.info("No DXF output: layout has no usable block")
        return None

    tags = list(_HEADER_TAGS)
    for entity in entities:
        tags.extend(_entity_tags(entity, config))
    tags.extend(_FOOTER_TAGS)
    return "\n".join(f"{code}\n{value}" for code, value in tags)


def layout_to_layer_dxfs(
    model: Optional[LayoutModel],
    config: Optional[DXFExportConfig] = None,
) -> List[Optional[str]]:
    """One DXF text per stack layer, in stack order."""
    if model is None:
        return []
    return [layout_to_dxf(model, i, config) for i in range(model.layer_count())]


def read_dxf_entities(dxf_text: str) -> List[List[DxfTag]]:
    """Split the ENTITIES section of DXF text into per-entity tag lists."""
    entities: List[List[DxfTag]] = []
    in_entities = False
    current: Optional[List[DxfTag]] = None

    for tag in ascii_tags_loader(io.StringIO(dxf_text)):
        code, value = int(tag.code), str(tag.value).strip()
        if not in_entities:
            if code == 2 and value == "ENTITIES":
                in_entities = True
            continue
        if code == 0:
            if current is not None:
                entities.append(current)
                current = None
            if value in ("ENDSEC", "EOF"):
                break
            current = [(code, value)]
        elif current is not None:
            current.append((code, value))

    if current is not None:
        entities.append(current)
    return entities


# ─── ezdxf document writer ───────────────────────────────────────────────────

def layout_to_dxf_file(
    model: Optional[LayoutModel],
    filepath: str,
    layer_index: Optional[int] = None,
    config: Optional[DXFExportConfig] = None,
) -> Optional[str]:
    """Export a layout to an R2010 DXF file through ezdxf.

    Returns:
        Path to created DXF file, or None when the block is unusable.
    """
    if config is None:
        config = DXFExportConfig()
    entities = plan_dxf_entities(model, layer_index, config)
    if entities is None:
        logger.info("Skipping DXF file %s: layout has no usable block", filepath)
        return None

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.IN
    doc.layers.add(config.block_layer, color=config.block_color)
    doc.layers.add(config.cavity_layer, color=config.cavity_color)
    msp = doc.modelspace()

    for entity in entities:
        attribs = {"layer": config.cavity_layer if entity.is_cavity else config.block_layer}
        if isinstance(entity, DxfLine):
            msp.add_line(tuple(entity.start), tuple(entity.end), dxfattribs=attribs)
        elif isinstance(entity, DxfCircle):
            msp.add_circle(tuple(entity.center), entity.radius, dxfattribs=attribs)
        else:
            msp.add_arc(
                tuple(entity.center),
                entity.radius,
                entity.start_angle,
                entity.end_angle,
                dxfattribs=attribs,
            )

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported DXF: %s", filepath)
    return filepath
