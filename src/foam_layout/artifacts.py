"""Per-run export folder: layout JSON, cut files and a manifest.

A run folder looks like::

    20260118_142233_tool-tray/
        input/faces.json
        layout.json
        layout.dxf
        layout_r2010.dxf        (optional)
        layers/layer_01.dxf
        layers/layer_01.svg
        manifest.json
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from foam_layout.pipeline import LayoutPackage

logger = logging.getLogger(__name__)


@dataclass
class ExportPaths:
    run_id: str
    run_dir: Path
    input_dir: Path
    layers_dir: Path

    @property
    def layout_path(self) -> Path:
        return self.run_dir / "layout.json"

    @property
    def dxf_path(self) -> Path:
        return self.run_dir / "layout.dxf"

    @property
    def cad_dxf_path(self) -> Path:
        return self.run_dir / "layout_r2010.dxf"

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    def layer_dxf_path(self, index: int) -> Path:
        return self.layers_dir / f"layer_{index + 1:02d}.dxf"

    def layer_svg_path(self, index: int) -> Path:
        return self.layers_dir / f"layer_{index + 1:02d}.svg"

    def copy_faces(self, faces_path: str) -> Path:
        """Keep the traced input next to its outputs, always as faces.json."""
        dst = self.input_dir / "faces.json"
        shutil.copyfile(faces_path, dst)
        return dst

    def write_package(self, package: LayoutPackage) -> List[Dict[str, Any]]:
        """Write the layout, combined DXF and per-layer files.

        Returns one manifest entry per layer with the file names written for
        it; a layer without a usable drawing only carries its index.
        """
        _write(self.layout_path, json.dumps(package.layout.to_dict(), indent=2))
        if package.dxf_text is not None:
            _write(self.dxf_path, package.dxf_text)

        entries = []
        for index, dxf_text in enumerate(package.layer_dxf_texts):
            entry: Dict[str, Any] = {"index": index}
            if dxf_text is not None:
                entry["dxf"] = _write(self.layer_dxf_path(index), dxf_text).name
            svg_text = package.layer_svg_texts.get(index)
            if svg_text is not None:
                entry["svg"] = _write(self.layer_svg_path(index), svg_text).name
            entries.append(entry)
        logger.debug("Wrote %d layer entries under %s", len(entries), self.layers_dir)
        return entries

    def write_manifest(self, payload: Dict[str, Any]) -> Path:
        manifest = {"run_id": self.run_id, **payload}
        return _write(self.manifest_path, json.dumps(manifest, indent=2, ensure_ascii=False))


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def slugify(value: str) -> str:
    value = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return value.strip("-") or "layout"


def create_run_id(name: str, when: Optional[datetime] = None) -> str:
    """``YYYYMMDD_HHMMSS_<slug>`` in UTC."""
    when = when or datetime.now(timezone.utc)
    return f"{when:%Y%m%d_%H%M%S}_{slugify(name)}"


def prepare_export_dir(out_root: str, name: str, when: Optional[datetime] = None) -> ExportPaths:
    """Create a fresh run folder; a second run in the same second gets -2, -3, ..."""
    run_id = create_run_id(name, when)
    root = Path(out_root)
    candidate, n = run_id, 1
    while (root / candidate).exists():
        n += 1
        candidate = f"{run_id}-{n}"

    run_dir = root / candidate
    paths = ExportPaths(
        run_id=candidate,
        run_dir=run_dir,
        input_dir=run_dir / "input",
        layers_dir=run_dir / "layers",
    )
    paths.input_dir.mkdir(parents=True)
    paths.layers_dir.mkdir()
    return paths
