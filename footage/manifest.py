"""Per-group render manifest for audit and reproducibility."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .crop import CropRect
from .group_config import GroupConfig


@dataclass
class RenderManifest:
    folder: Path
    group: str
    route: str
    config: GroupConfig
    stages: List[str] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)
    crop_rect: Optional[CropRect] = None
    filter_graph: Optional[str] = None
    encoder_profile: Optional[str] = None
    source_duration: Optional[float] = None
    trim_duration: Optional[float] = None
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))

    def to_dict(self) -> Dict[str, Any]:
        config = self.config
        return {
            "folder": str(self.folder),
            "group": self.group,
            "route": self.route,
            "stages": list(self.stages),
            "outputs": dict(self.outputs),
            "preview": config.preview,
            "preview_duration": config.preview_length,
            "crop": {
                "left": config.left_crop,
                "right": config.right_crop,
                "bottom": config.bottom_crop,
                "rect": asdict(self.crop_rect) if self.crop_rect else None,
            },
            "trim": {
                "start": config.start_trim,
                "end": config.end_trim,
                "duration": self.trim_duration,
            },
            "source_duration": self.source_duration,
            "filter_graph": self.filter_graph,
            "encoder_profile": self.encoder_profile,
            "generated_at": self.generated_at,
        }


def manifest_path_for(directory: Path) -> Path:
    return directory / f"{directory.name}_manifest.json"


def write_manifest(manifest: RenderManifest) -> Path:
    path = manifest_path_for(manifest.folder)
    path.write_text(json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    return path
