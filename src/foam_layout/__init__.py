"""Public API for the foam layout geometry engine."""

from foam_layout.contracts import (
    Block,
    CavityShape,
    CircleCavity,
    CornerStyle,
    FallbackPolicy,
    Layer,
    LayoutModel,
    PolyCavity,
    RectCavity,
    cavity_from_dict,
)
from foam_layout.dxf_exporter import DXFExportConfig, layout_to_dxf, layout_to_dxf_file
from foam_layout.layout_builder import BuildConfig, build_layout_from_faces, default_layout
from foam_layout.pipeline import LayoutPackage, PipelineConfig, run_faces_pipeline
from foam_layout.svg_exporter import SVGExportConfig, layout_layer_to_svg
from foam_layout.units import snap_pretty

__all__ = [
    "Block",
    "BuildConfig",
    "CavityShape",
    "CircleCavity",
    "CornerStyle",
    "DXFExportConfig",
    "FallbackPolicy",
    "Layer",
    "LayoutModel",
    "LayoutPackage",
    "PipelineConfig",
    "PolyCavity",
    "RectCavity",
    "SVGExportConfig",
    "build_layout_from_faces",
    "cavity_from_dict",
    "default_layout",
    "layout_layer_to_svg",
    "layout_to_dxf",
    "layout_to_dxf_file",
    "run_faces_pipeline",
    "snap_pretty",
]
