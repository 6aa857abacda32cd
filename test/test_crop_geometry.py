from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from footage.crop import CropRect, compute_crop


def test_side_crop_keeps_16_9_from_top() -> None:
    rect = compute_crop(3840, 2160, 0.1, 0.1, 0.0)
    assert rect.x == 192
    assert rect.width == 3840 - 192 - 192 == 3456
    assert rect.height == 1944
    assert rect.y == 216
    assert rect.filter_expr() == "crop=w=3456:h=1944:x=192:y=216"


def test_top_offset_clamps_to_zero_when_bottom_crop_is_large() -> None:
    rect = compute_crop(3840, 2160, 0.1, 0.1, 0.2)
    # bottom = floor(2160 * 0.2 / 2) = 216, 2160 - 216 - 1944 == 0
    assert rect.y == 0
    assert rect.height == 2160 - 216

    rect = compute_crop(3840, 2160, 0.1, 0.1, 0.4)
    assert rect.y == 0
    assert rect.height == 2160 - 432


def test_no_crop_is_identity() -> None:
    rect = compute_crop(1920, 1080, 0.0, 0.0, 0.0)
    assert rect == CropRect(x=0, y=0, width=1920, height=1080)
    assert rect.is_identity(1920, 1080)


def test_fraction_is_halved_per_edge() -> None:
    rect = compute_crop(1000, 1000, 0.25, 0.0, 0.0)
    assert rect.x == 125
    assert rect.width == 875
