"""Contracts for the foam layout model: block, cavities, layers, stack."""

from __future__ import annotations

import copy
import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from foam_layout.coords import NormPoint, clamp01, clamp_norm

logger = logging.getLogger(__name__)


class CornerStyle(Enum):
    SQUARE = "square"
    CHAMFER = "chamfer"


class CavityShape(Enum):
    RECT = "rect"
    CIRCLE = "circle"
    POLY = "poly"


class FallbackPolicy(Enum):
    """What to do with an inner loop that is neither circle nor rectangle.

    POLY keeps every vertex. RECT keeps only the bounding box and is the
    deprecated legacy behavior.
    """
    POLY = "poly"
    RECT = "rect"


_SHAPE_ALIASES = {
    "rect": "rect",
    "rectangle": "rect",
    "square": "rect",
    "roundedrect": "roundedRect",
    "roundrect": "roundedRect",
    "rounded-rect": "roundedRect",
    "rounded_rectangle": "roundedRect",
    "rounded rectangle": "roundedRect",
    "circle": "circle",
    "round": "circle",
    "circular": "circle",
    "poly": "poly",
    "polygon": "poly",
}


def _num(value: Any) -> Optional[float]:
    """Float or None for anything missing or non-finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _positive(value: Any) -> Optional[float]:
    out = _num(value)
    return out if out is not None and out > 0 else None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# Chamfer drawn for a cropped layer when the block records no size.
DEFAULT_CHAMFER_IN = 1.0


@dataclass
class Block:
    """The outer foam slab, in inches."""

    length_in: float
    width_in: float
    thickness_in: float
    corner_style: CornerStyle = CornerStyle.SQUARE
    chamfer_in: Optional[float] = None

    def __post_init__(self) -> None:
        if self.corner_style != CornerStyle.CHAMFER:
            self.corner_style = CornerStyle.SQUARE
            self.chamfer_in = None
            return
        chamfer = _positive(self.chamfer_in)
        if chamfer is None:
            self.corner_style = CornerStyle.SQUARE
            self.chamfer_in = None
            return
        limit = self.max_chamfer_in()
        if limit <= 0:
            self.corner_style = CornerStyle.SQUARE
            self.chamfer_in = None
            return
        self.chamfer_in = min(chamfer, limit)

    def max_chamfer_in(self) -> float:
        """Largest chamfer strictly below half of the shorter side."""
        return min(self.length_in, self.width_in) / 2.0 - 1e-6

    @property
    def is_chamfered(self) -> bool:
        return self.corner_style == CornerStyle.CHAMFER and bool(self.chamfer_in)

    def is_valid(self) -> bool:
        return all(
            math.isfinite(v) and v > 0 for v in (self.length_in, self.width_in)
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "lengthIn": self.length_in,
            "widthIn": self.width_in,
            "thicknessIn": self.thickness_in,
        }
        if self.is_chamfered:
            payload["cornerStyle"] = self.corner_style.value
            payload["chamferIn"] = self.chamfer_in
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["Block"]:
        if not isinstance(payload, Mapping):
            return None
        length = _positive(_pick(payload, "lengthIn", "length_in"))
        if length is None:
            return None
        # A missing width means a square block (legacy editors).
        width = _positive(_pick(payload, "widthIn", "width_in")) or length
        thickness = _num(_pick(payload, "thicknessIn", "thickness_in"))
        style = str(_pick(payload, "cornerStyle", "corner_style") or "").lower()
        cropped = bool(_pick(payload, "croppedCorners", "cropped_corners"))
        chamfered = style == CornerStyle.CHAMFER.value or cropped
        return cls(
            length_in=length,
            width_in=width,
            thickness_in=thickness if thickness is not None else 0.0,
            corner_style=CornerStyle.CHAMFER if chamfered else CornerStyle.SQUARE,
            chamfer_in=_num(_pick(payload, "chamferIn", "chamfer_in")),
        )


@dataclass
class RectCavity:
    id: str
    length_in: float
    width_in: float
    depth_in: float
    x: float
    y: float
    corner_radius_in: float = 0.0
    label: str = ""

    shape: ClassVar[CavityShape] = CavityShape.RECT

    def __post_init__(self) -> None:
        self.x = clamp01(self.x)
        self.y = clamp01(self.y)
        radius = _num(self.corner_radius_in) or 0.0
        self.corner_radius_in = max(0.0, radius)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shape": self.shape.value,
            "label": self.label,
            "lengthIn": self.length_in,
            "widthIn": self.width_in,
            "cornerRadiusIn": self.corner_radius_in,
            "depthIn": self.depth_in,
            "x": self.x,
            "y": self.y,
        }


@dataclass
class CircleCavity:
    id: str
    diameter_in: float
    depth_in: float
    x: float
    y: float
    label: str = ""

    shape: ClassVar[CavityShape] = CavityShape.CIRCLE

    def __post_init__(self) -> None:
        self.x = clamp01(self.x)
        self.y = clamp01(self.y)

    @property
    def length_in(self) -> float:
        return self.diameter_in

    @property
    def width_in(self) -> float:
        return self.diameter_in

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shape": self.shape.value,
            "label": self.label,
            "lengthIn": self.diameter_in,
            "widthIn": self.diameter_in,
            "diameterIn": self.diameter_in,
            "depthIn": self.depth_in,
            "x": self.x,
            "y": self.y,
        }


@dataclass
class PolyCavity:
    """Arbitrary outline; points are normalized top-left vertices."""

    id: str
    points: List[NormPoint]
    length_in: float
    width_in: float
    depth_in: float
    x: float
    y: float
    label: str = ""

    shape: ClassVar[CavityShape] = CavityShape.POLY

    def __post_init__(self) -> None:
        self.x = clamp01(self.x)
        self.y = clamp01(self.y)
        self.points = [clamp_norm(p) for p in self.points]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shape": self.shape.value,
            "label": self.label,
            "lengthIn": self.length_in,
            "widthIn": self.width_in,
            "depthIn": self.depth_in,
            "x": self.x,
            "y": self.y,
            "points": [{"x": p.x, "y": p.y} for p in self.points],
        }


Cavity = Union[RectCavity, CircleCavity, PolyCavity]


def _norm_points(raw: Any) -> List[NormPoint]:
    points: List[NormPoint] = []
    if not isinstance(raw, list):
        return points
    for item in raw:
        if isinstance(item, Mapping):
            px, py = _num(item.get("x")), _num(item.get("y"))
        elif isinstance(item, (list, tuple)) and len(item) >= 2:
            px, py = _num(item[0]), _num(item[1])
        else:
            continue
        if px is None or py is None:
            continue
        points.append(NormPoint(px, py))
    return points


def cavity_from_dict(payload: Any, index: int = 0) -> Optional[Cavity]:
    """Parse one persisted cavity; returns None for unusable payloads."""
    if not isinstance(payload, Mapping):
        return None

    raw_shape = _pick(payload, "shape", "cavityShape", "cavity_shape", "type", "kind")
    shape = _SHAPE_ALIASES.get(str(raw_shape or "rect").strip().lower())
    if shape is None:
        logger.debug("Skipping cavity with unknown shape %r", raw_shape)
        return None

    cavity_id = str(payload.get("id") or f"cav-{index + 1}")
    label = str(payload.get("label") or "")
    depth = _num(_pick(payload, "depthIn", "depth_in"))
    depth = depth if depth is not None else 0.0
    x = _num(payload.get("x")) or 0.0
    y = _num(payload.get("y")) or 0.0
    length = _positive(_pick(payload, "lengthIn", "length_in"))
    width = _positive(_pick(payload, "widthIn", "width_in"))

    if shape == "circle":
        diameter = _positive(_pick(payload, "diameterIn", "diameter_in", "diameter"))
        if diameter is None and length is not None:
            diameter = min(length, width or length)
        if diameter is None:
            return None
        return CircleCavity(
            id=cavity_id, diameter_in=diameter, depth_in=depth, x=x, y=y, label=label,
        )

    if length is None:
        return None
    width = width or length

    if shape == "poly":
        points = _norm_points(payload.get("points"))
        if len(points) >= 3:
            return PolyCavity(
                id=cavity_id, points=points, length_in=length, width_in=width,
                depth_in=depth, x=x, y=y, label=label,
            )
        # Without a usable outline the bbox is the best remaining guess.
        logger.debug("Poly cavity %s has < 3 points; keeping its bbox", cavity_id)

    radius = _num(_pick(payload, "cornerRadiusIn", "corner_radius_in", "cornerRadius"))
    return RectCavity(
        id=cavity_id, length_in=length, width_in=width, depth_in=depth,
        x=x, y=y, corner_radius_in=radius or 0.0, label=label,
    )


def _parse_list(raw: Any, parser) -> list:
    """Apply parser(item, index) to a JSON list, dropping None results."""
    if not isinstance(raw, list):
        return []
    parsed = (parser(item, i) for i, item in enumerate(raw))
    return [item for item in parsed if item is not None]


@dataclass
class Layer:
    """One foam sheet of the stack.

    crop_corners overrides the block's corner style for this layer's
    outline; None inherits it.
    """

    id: str
    label: str
    thickness_in: float
    cavities: List[Cavity] = field(default_factory=list)
    crop_corners: Optional[bool] = None

    @property
    def is_displayable(self) -> bool:
        return math.isfinite(self.thickness_in) and self.thickness_in > 0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "thicknessIn": self.thickness_in,
            "cavities": [c.to_dict() for c in self.cavities],
        }
        if self.crop_corners is not None:
            payload["cropCorners"] = self.crop_corners
        return payload

    @classmethod
    def from_dict(cls, payload: Any, index: int = 0) -> Optional["Layer"]:
        if not isinstance(payload, Mapping):
            return None
        label = _pick(payload, "label", "name", "title")
        thickness = _num(_pick(payload, "thicknessIn", "thickness_in", "thickness"))
        cavities = _parse_list(payload.get("cavities"), cavity_from_dict)

        crop: Optional[bool] = None
        raw_crop = _pick(payload, "cropCorners", "croppedCorners", "cropped_corners", "crop_corners")
        if raw_crop is not None:
            crop = _flag(raw_crop)
        else:
            style = str(_pick(payload, "cornerStyle", "corner_style") or "").strip().lower()
            if style in (CornerStyle.CHAMFER.value, CornerStyle.SQUARE.value):
                crop = style == CornerStyle.CHAMFER.value

        return cls(
            id=str(payload.get("id") or f"layer-{index + 1}"),
            label=str(label).strip() if label and str(label).strip() else f"Layer {index + 1}",
            thickness_in=thickness if thickness is not None else 0.0,
            cavities=cavities,
            crop_corners=crop,
        )


def outline_chamfer_in(block: Block, layer: Optional[Layer] = None) -> float:
    """Chamfer to draw on a block outline, 0.0 for square corners.

    A layer's own crop flag wins over the block's corner style.
    """
    if layer is not None and layer.crop_corners is not None:
        cropped = layer.crop_corners
    else:
        cropped = block.is_chamfered
    if not cropped:
        return 0.0
    chamfer = block.chamfer_in if block.chamfer_in else DEFAULT_CHAMFER_IN
    return max(0.0, min(chamfer, block.max_chamfer_in()))


@dataclass
class LayoutModel:
    """Aggregate root: block, flat cavity list, and the layer stack."""

    block: Block
    cavities: List[Cavity] = field(default_factory=list)
    stack: List[Layer] = field(default_factory=list)

    @classmethod
    def single_layer(
        cls,
        block: Block,
        cavities: List[Cavity],
        layer_id: str = "seed-layer-1",
        layer_label: str = "Layer 1",
    ) -> "LayoutModel":
        """Build a model whose only layer mirrors the flat cavity list."""
        layer = Layer(
            id=layer_id,
            label=layer_label,
            thickness_in=block.thickness_in,
            cavities=copy.deepcopy(cavities),
        )
        return cls(block=block, cavities=copy.deepcopy(cavities), stack=[layer])

    def layer_cavities(self, index: int) -> List[Cavity]:
        """Cavities scoped to one layer; legacy models use the flat list."""
        if not self.stack:
            return list(self.cavities) if index == 0 else []
        if index < 0 or index >= len(self.stack):
            return []
        return list(self.stack[index].cavities)

    def layer(self, index: Optional[int]) -> Optional[Layer]:
        if index is None or index < 0 or index >= len(self.stack):
            return None
        return self.stack[index]

    def layer_count(self) -> int:
        return len(self.stack) if self.stack else 1

    def display_layers(self) -> List[int]:
        """Indices of layers with a positive thickness."""
        if not self.stack:
            return [0]
        return [i for i, layer in enumerate(self.stack) if layer.is_displayable]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "block": self.block.to_dict(),
            "cavities": [c.to_dict() for c in self.cavities],
            "stack": [layer.to_dict() for layer in self.stack],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["LayoutModel"]:
        """Parse persisted layout JSON; None when the block is unusable."""
        if not isinstance(payload, Mapping):
            return None
        block = Block.from_dict(payload.get("block"))
        if block is None:
            return None

        cavities = _parse_list(payload.get("cavities"), cavity_from_dict)

        raw_stack = payload.get("stack")
        if not isinstance(raw_stack, list) or not raw_stack:
            raw_stack = payload.get("layers")
        stack = _parse_list(raw_stack, Layer.from_dict)
        if not stack:
            return cls.single_layer(block, cavities)
        return cls(block=block, cavities=cavities, stack=stack)

    @classmethod
    def from_json(cls, text: str) -> Optional["LayoutModel"]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.info("Layout JSON is not parseable: %s", exc)
            return None
        return cls.from_dict(payload)
