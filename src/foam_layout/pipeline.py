"""Single-path pipeline: faces JSON -> layout model -> layout package."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from foam_layout.contracts import LayoutModel
from foam_layout.dxf_exporter import DXFExportConfig, layout_to_dxf, layout_to_layer_dxfs
from foam_layout.layout_builder import BuildConfig, build_layout_from_faces
from foam_layout.svg_exporter import SVGExportConfig, layout_layer_to_svg, layout_to_layer_svgs

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    build: BuildConfig = field(default_factory=BuildConfig)
    dxf: DXFExportConfig = field(default_factory=DXFExportConfig)
    svg: SVGExportConfig = field(default_factory=SVGExportConfig)
    export_layers: bool = True


@dataclass
class LayoutPackage:
    """A layout together with its rendered cut files.

    svg_text previews the first layer; dxf_text merges every layer.
    """
    layout: LayoutModel
    svg_text: Optional[str]
    dxf_text: Optional[str]
    layer_dxf_texts: List[Optional[str]] = field(default_factory=list)
    layer_svg_texts: Dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        layers = []
        for i, layer in enumerate(self.layout.stack):
            layers.append(
                {
                    "id": layer.id,
                    "label": layer.label,
                    "dxf_text": self.layer_dxf_texts[i] if i < len(self.layer_dxf_texts) else None,
                    "svg_text": self.layer_svg_texts.get(i),
                }
            )
        return {
            "layout_json": self.layout.to_dict(),
            "svg_text": self.svg_text,
            "dxf_text": self.dxf_text,
            "layers": layers,
        }


def load_faces_json(path: str) -> Dict[str, Any]:
    """Read a faces document from disk.

    Raises:
        FileNotFoundError, json.JSONDecodeError: the file is unusable.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def package_layout(
    model: LayoutModel,
    config: Optional[PipelineConfig] = None,
) -> LayoutPackage:
    """Render every export of an existing layout."""
    if config is None:
        config = PipelineConfig()

    package = LayoutPackage(
        layout=model,
        svg_text=layout_layer_to_svg(model, 0, config.svg),
        dxf_text=layout_to_dxf(model, None, config.dxf),
    )
    if config.export_layers:
        package.layer_dxf_texts = layout_to_layer_dxfs(model, config.dxf)
        package.layer_svg_texts = {
            index: svg for index, _, svg in layout_to_layer_svgs(model, config.svg)
        }
    return package


def run_faces_pipeline(
    faces: Any,
    config: Optional[PipelineConfig] = None,
) -> LayoutPackage:
    if config is None:
        config = PipelineConfig()

    model = build_layout_from_faces(faces, config.build)
    package = package_layout(model, config)
    logger.info(
        "Packaged layout: %d layers, %d cavities",
        len(model.stack),
        len(model.cavities),
    )
    return package
