"""Tool-level configuration loader for footage-render.

The tool runs without any configuration file. When `footage.yaml` (or the
path given with `--config`) exists, it can override logging, the ffmpeg
binaries and the per-codec encoder profiles:

    ```yaml
    logging:
        level: INFO
        file: logs/footage.log
    ffmpeg:
        ffmpeg_path: ffmpeg
        ffprobe_path: ffprobe
        threads: 12
    encoders:
        h264:
            video_codec: h264_videotoolbox
            bitrate: 60M
    editor: nano
    scheduler:
        jobs: 1
    ```
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import yaml  # type: ignore
except ModuleNotFoundError as exc:  # pragma: no cover - import guard
    raise RuntimeError(
        "PyYAML is required. Please install it with `pip install pyyaml`."
    ) from exc


DEFAULT_CONFIG_NAME = "footage.yaml"


@dataclass
class AppConfig:
    """Wrapper around raw configuration with resolved paths."""

    raw: Dict[str, Any]
    config_path: Optional[Path]
    project_root: Path

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.raw.get(name, {})
        return section if isinstance(section, dict) else {}

    @property
    def logging_level(self) -> str:
        level = self._section("logging").get("level") or self._section("logging").get("LEVEL") or "INFO"
        return str(level).upper()

    @property
    def log_file(self) -> Optional[Path]:
        name = self._section("logging").get("file")
        if not name:
            return None
        return (self.project_root / str(name)).resolve()

    @property
    def ffmpeg_path(self) -> str:
        return str(self._section("ffmpeg").get("ffmpeg_path") or "ffmpeg")

    @property
    def ffprobe_path(self) -> str:
        return str(self._section("ffmpeg").get("ffprobe_path") or "ffprobe")

    @property
    def threads(self) -> Optional[int]:
        value = self._section("ffmpeg").get("threads")
        try:
            return int(value) if value else None
        except (TypeError, ValueError):
            return None

    @property
    def editor(self) -> Optional[str]:
        value = self.raw.get("editor")
        return str(value) if value else None

    @property
    def jobs(self) -> int:
        value = self._section("scheduler").get("jobs", 1)
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return 1

    def encoder_overrides(self, family: str) -> Dict[str, Any]:
        overrides = self._section("encoders").get(family, {})
        return dict(overrides) if isinstance(overrides, dict) else {}

    def to_debug_dict(self) -> Dict[str, Any]:
        return {
            "config_path": str(self.config_path) if self.config_path else None,
            "logging_level": self.logging_level,
            "log_file": str(self.log_file) if self.log_file else None,
            "ffmpeg_path": self.ffmpeg_path,
            "ffprobe_path": self.ffprobe_path,
        }

    def dumps(self) -> str:
        """Return a JSON string for diagnostics."""
        return json.dumps(self.to_debug_dict(), ensure_ascii=False, indent=2)


def load_config(path: Path | str | None = None, project_root: Path | None = None) -> AppConfig:
    """Load YAML config; an explicit path must exist, the default one is optional."""
    root = project_root.resolve() if project_root else Path.cwd()

    if path is None:
        candidate = root / DEFAULT_CONFIG_NAME
        if not candidate.exists():
            return AppConfig(raw={}, config_path=None, project_root=root)
        config_path = candidate.resolve()
    else:
        config_path = Path(path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path}")

    return AppConfig(raw=raw, config_path=config_path, project_root=project_root.resolve() if project_root else config_path.parent)
