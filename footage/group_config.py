"""Per-group settings stored as `<group>.cfg` key=value files."""
from __future__ import annotations

import math
import os
import shlex
import subprocess
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Protocol

from logging_utils import get_logger

from .errors import ConfigParseError
from .filters import split_filter_list

logger = get_logger(__name__)

DEFAULT_SCALE = "scale=3840:2160:flags=lanczos"
DEFAULT_PREVIEW_LENGTH = 10.0

CONFIG_KEYS = (
    "left-crop",
    "right-crop",
    "bottom-crop",
    "start-trim",
    "end-trim",
    "preview",
    "preview-length",
    "default-scale",
    "default-denoise",
    "default-sharpen",
    "additional-params",
)

_TRUE_WORDS = {"true", "yes", "1", "on"}
_FALSE_WORDS = {"false", "no", "0", "off"}


@dataclass(frozen=True)
class GroupConfig:
    left_crop: float = 0.0
    right_crop: float = 0.0
    bottom_crop: float = 0.0
    start_trim: float = 0.0
    end_trim: float = 0.0
    preview: bool = True
    preview_length: float = DEFAULT_PREVIEW_LENGTH
    default_scale: str = DEFAULT_SCALE
    default_denoise: str = ""
    default_sharpen: str = ""
    additional_params: str = ""
    extra: Mapping[str, str] = field(default_factory=dict)

    @property
    def needs_crop(self) -> bool:
        return self.left_crop > 0 or self.right_crop > 0 or self.bottom_crop > 0

    def filter_overrides(self) -> List[str]:
        """User filter expressions in the order they are applied to the chain."""
        expressions: List[str] = []
        for text in (self.default_denoise, self.default_sharpen, self.additional_params):
            expressions.extend(split_filter_list(text))
        return expressions

    def with_preview(self, enabled: bool, length: Optional[float] = None) -> "GroupConfig":
        return replace(
            self,
            preview=enabled,
            preview_length=self.preview_length if length is None else float(length),
        )

    def to_lines(self) -> List[str]:
        lines = [
            f"left-crop={self.left_crop}",
            f"right-crop={self.right_crop}",
            f"bottom-crop={self.bottom_crop}",
            f"start-trim={self.start_trim}",
            f"end-trim={self.end_trim}",
            f"preview={'true' if self.preview else 'false'}",
            f"preview-length={_format_number(self.preview_length)}",
            f"default-scale={self.default_scale}",
            f"default-denoise={self.default_denoise}",
            f"default-sharpen={self.default_sharpen}",
            f"additional-params={self.additional_params}",
        ]
        lines.extend(f"{key}={value}" for key, value in self.extra.items())
        return lines


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def config_path_for(directory: Path) -> Path:
    return directory / f"{directory.name}.cfg"


def _parse_float(key: str, value: str, default: float) -> float:
    try:
        number = float(value)
    except ValueError:
        number = math.nan
    if not math.isfinite(number):
        logger.debug("Ignoring non-numeric %s=%r", key, value)
        return default
    return number


def _parse_bool(key: str, value: str, default: bool) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    logger.debug("Ignoring non-boolean %s=%r", key, value)
    return default


def parse_config_text(text: str) -> GroupConfig:
    """Parse key=value lines; malformed lines are skipped, missing keys default."""
    values: Dict[str, str] = {}
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = "".join(key.split())
        value = "".join(value.split())
        if key:
            values[key] = value

    defaults = GroupConfig()

    def number(key: str, default: float) -> float:
        return _parse_float(key, values[key], default) if key in values else default

    return GroupConfig(
        left_crop=number("left-crop", defaults.left_crop),
        right_crop=number("right-crop", defaults.right_crop),
        bottom_crop=number("bottom-crop", defaults.bottom_crop),
        start_trim=number("start-trim", defaults.start_trim),
        end_trim=number("end-trim", defaults.end_trim),
        preview=_parse_bool("preview", values["preview"], defaults.preview)
        if "preview" in values
        else defaults.preview,
        preview_length=number("preview-length", defaults.preview_length),
        default_scale=values.get("default-scale", defaults.default_scale),
        default_denoise=values.get("default-denoise", defaults.default_denoise),
        default_sharpen=values.get("default-sharpen", defaults.default_sharpen),
        additional_params=values.get("additional-params", defaults.additional_params),
        extra={key: value for key, value in values.items() if key not in CONFIG_KEYS},
    )


def load_group_config(path: Path) -> GroupConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigParseError(f"Cannot read config: {exc}", path=path, stage="config") from exc
    return parse_config_text(text)


def write_group_config(path: Path, config: GroupConfig) -> Path:
    header = [
        f"# Render settings for {path.stem}",
        "# Crop fractions are the share of the frame removed from that edge (split in half).",
        "# Trims are seconds removed from the start/end of the combined timeline.",
        "# Set preview=false to render the final output.",
    ]
    path.write_text("\n".join(header + config.to_lines()) + "\n", encoding="utf-8")
    return path


def ensure_group_config(directory: Path) -> Path:
    """Create `<group>.cfg` with defaults when missing; return its path."""
    path = config_path_for(directory)
    if not path.exists():
        write_group_config(path, GroupConfig())
        logger.info("Created default config: %s", path)
    return path


class ConfigEditor(Protocol):
    def edit(self, path: Path, config: GroupConfig) -> GroupConfig:
        ...


class PassthroughConfigEditor:
    """Headless editor: keeps the settings as stored on disk."""

    def edit(self, path: Path, config: GroupConfig) -> GroupConfig:
        return config


class TerminalConfigEditor:
    """Open the cfg in $EDITOR, wait for ENTER, then re-read it."""

    def __init__(
        self,
        editor: Optional[str] = None,
        *,
        prompt: Callable[[str], str] = input,
    ) -> None:
        self.editor = editor or os.environ.get("EDITOR") or "nano"
        self.prompt = prompt

    def edit(self, path: Path, config: GroupConfig) -> GroupConfig:
        logger.info("Edit config: %s", path)
        cmd = shlex.split(self.editor) + [str(path)]
        try:
            subprocess.run(cmd, check=False)
        except OSError as exc:
            logger.warning("Could not launch editor %r: %s", self.editor, exc)
        try:
            self.prompt("Press ENTER to continue...")
        except EOFError:
            pass
        return load_group_config(path)


def resolve_group_config(directory: Path, editor: Optional[ConfigEditor] = None) -> GroupConfig:
    """Load or create the group's settings and hand them to the editor."""
    path = ensure_group_config(directory)
    config = load_group_config(path)
    if editor is not None:
        config = editor.edit(path, config)
    logger.debug("Config for %s: %s", directory.name, config)
    return config
