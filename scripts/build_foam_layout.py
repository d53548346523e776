#!/usr/bin/env python3
"""Build a foam layout from a traced faces document and write its cut files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from foam_layout.artifacts import prepare_export_dir
from foam_layout.contracts import FallbackPolicy
from foam_layout.dxf_exporter import DXFExportConfig, layout_to_dxf_file
from foam_layout.layout_builder import BuildConfig
from foam_layout.pipeline import PipelineConfig, load_faces_json, run_faces_pipeline

logger = logging.getLogger("build_foam_layout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed a foam layout from traced loops and export DXF/SVG"
    )
    parser.add_argument("--faces", required=True, help="Path to faces JSON")
    parser.add_argument("--out-dir", default="runs", help="Output root")
    parser.add_argument("--name", default="layout", help="Run name")
    parser.add_argument(
        "--fallback",
        choices=[p.value for p in FallbackPolicy],
        default=FallbackPolicy.POLY.value,
        help="Outline policy for loops that are neither circle nor rectangle "
        "('rect' is deprecated)",
    )
    parser.add_argument(
        "--depth-in", type=float, default=1.0, help="Cavity depth in inches"
    )
    parser.add_argument(
        "--thickness-in", type=float, default=2.0, help="Block thickness in inches"
    )
    parser.add_argument(
        "--chamfer-outline",
        action="store_true",
        help="Draw chamfered block corners in DXF output",
    )
    parser.add_argument(
        "--cad-dxf",
        action="store_true",
        help="Also write an R2010 DXF with BLOCK/CAVITY layers",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        faces = load_faces_json(args.faces)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Cannot read faces file %s: %s", args.faces, exc)
        return 2

    started = time.perf_counter()
    paths = prepare_export_dir(args.out_dir, args.name)
    paths.copy_faces(args.faces)

    dxf_config = DXFExportConfig(chamfer_outline=args.chamfer_outline)
    config = PipelineConfig(
        build=BuildConfig(
            default_depth_in=max(0.0, float(args.depth_in)),
            block_thickness_in=max(0.0, float(args.thickness_in)),
            fallback_policy=FallbackPolicy(args.fallback),
        ),
        dxf=dxf_config,
    )
    package = run_faces_pipeline(faces, config)

    layer_files = paths.write_package(package)

    cad_path = None
    if args.cad_dxf:
        cad_path = layout_to_dxf_file(
            package.layout, str(paths.cad_dxf_path), config=dxf_config
        )

    block = package.layout.block
    paths.write_manifest(
        {
            "name": args.name,
            "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "elapsed_s": round(time.perf_counter() - started, 3),
            "fallback_policy": args.fallback,
            "block": block.to_dict(),
            "cavity_count": len(package.layout.cavities),
            "layers": layer_files,
            "cad_dxf": Path(cad_path).name if cad_path else None,
        },
    )

    print(f"Run ID: {paths.run_id}")
    print(f"Block: {block.length_in} x {block.width_in} x {block.thickness_in} in")
    print(f"Cavities: {len(package.layout.cavities)}")
    print(f"Output: {paths.run_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
