"""Ordered video filter chain assembled from defaults and user overrides."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional


class FilterStage(str, Enum):
    CROP = "crop"
    SCALE = "scale"
    DENOISE = "denoise"
    TEXTURE = "texture"
    SHARPEN = "sharpen"
    COLOR = "color"
    LOOK = "look"


DENOISE_FILTERS = frozenset(
    {"hqdn3d", "nlmeans", "atadenoise", "bm3d", "dctdnoiz", "fftdnoiz", "owdenoise", "vaguedenoiser", "removegrain"}
)
SHARPEN_FILTERS = frozenset({"unsharp", "cas", "smartblur", "sharpen_npp"})
COLOR_FILTERS = frozenset(
    {
        "eq",
        "colorbalance",
        "colorchannelmixer",
        "colorlevels",
        "colortemperature",
        "colorcontrast",
        "curves",
        "hue",
        "selectivecolor",
        "vibrance",
    }
)
LOOK_FILTERS = frozenset({"lut3d", "lut1d", "lut", "lutrgb", "lutyuv", "haldclut"})

# Stages before the pixel-format conversion; the rest run after it.
_PRE_FORMAT = (FilterStage.CROP, FilterStage.SCALE)
_POST_FORMAT = (
    FilterStage.DENOISE,
    FilterStage.TEXTURE,
    FilterStage.SHARPEN,
    FilterStage.COLOR,
    FilterStage.LOOK,
)


def filter_name(expression: str) -> str:
    return expression.split("=", 1)[0].strip().lower()


def classify_filter(expression: str) -> FilterStage:
    """Map a filter expression to the chain slot it belongs to."""
    name = filter_name(expression)
    if name == "crop":
        return FilterStage.CROP
    if name == "scale":
        return FilterStage.SCALE
    if name in DENOISE_FILTERS:
        return FilterStage.DENOISE
    if name in SHARPEN_FILTERS:
        return FilterStage.SHARPEN
    if name in COLOR_FILTERS:
        return FilterStage.COLOR
    if name in LOOK_FILTERS:
        return FilterStage.LOOK
    return FilterStage.TEXTURE


def split_filter_list(text: str) -> List[str]:
    """Split a comma-separated filter list.

    Commas escaped as ``\\,`` or inside single quotes belong to the filter's
    arguments and do not separate filters.
    """
    parts: List[str] = []
    current: List[str] = []
    quoted = False
    escaped = False
    for char in text or "":
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "\\":
            current.append(char)
            escaped = True
            continue
        if char == "'":
            quoted = not quoted
            current.append(char)
            continue
        if char == "," and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


class FilterChain:
    """Seven named slots rendered in a fixed order.

    Single-valued slots are replaced by the last override that targets them;
    the texture slot accumulates every unrecognized filter in arrival order.
    """

    def __init__(self, *, crop: Optional[str] = None, scale: Optional[str] = None) -> None:
        self._slots: Dict[FilterStage, List[str]] = {stage: [] for stage in FilterStage}
        if crop:
            self._slots[FilterStage.CROP] = [crop]
        if scale:
            self._slots[FilterStage.SCALE] = [scale]

    def apply(self, expressions: Iterable[str]) -> "FilterChain":
        for expression in expressions:
            for item in split_filter_list(expression):
                stage = classify_filter(item)
                if stage is FilterStage.TEXTURE:
                    self._slots[stage].append(item)
                else:
                    self._slots[stage] = [item]
        return self

    def slot(self, stage: FilterStage) -> str:
        return ",".join(self._slots[stage])

    def render(self, pix_fmt: Optional[str] = None) -> str:
        """crop -> scale -> format -> denoise -> texture -> sharpen -> color -> look."""
        parts = [self.slot(stage) for stage in _PRE_FORMAT]
        if pix_fmt:
            parts.append(f"format={pix_fmt}")
        parts.extend(self.slot(stage) for stage in _POST_FORMAT)
        return ",".join(part for part in parts if part)

    def __repr__(self) -> str:
        filled = {stage.value: self.slot(stage) for stage in FilterStage if self._slots[stage]}
        return f"FilterChain({filled})"
