"""Crop rectangle derivation from fractional edge crops."""
from __future__ import annotations

import math
from dataclasses import dataclass

# Output aspect ratio forced on the height: 16:9.
ASPECT_NUM = 16
ASPECT_DEN = 9


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int

    def filter_expr(self) -> str:
        return f"crop=w={self.width}:h={self.height}:x={self.x}:y={self.y}"

    def is_identity(self, source_width: int, source_height: int) -> bool:
        return (
            self.x == 0
            and self.y == 0
            and self.width == source_width
            and self.height == source_height
        )


def compute_crop(width: int, height: int, left: float, right: float, bottom: float) -> CropRect:
    """Convert edge fractions into a pixel crop rectangle.

    A fraction is the total share of the frame dimension removed for that
    edge, split in half: ``left=0.1`` on a 3840 px frame removes
    ``floor(3840 * 0.1 / 2) = 192`` px. Prior renders depend on this
    convention, so it must not be "corrected".

    The height is derived from the remaining width so the output is 16:9;
    pixels are taken from the top. When bottom crop plus the ideal height
    exceed the frame, the top offset clamps to 0 and the output is taller
    than 16:9.

    Fractions are not validated here.
    """
    crop_left_px = math.floor(width * left / 2)
    crop_right_px = math.floor(width * right / 2)
    crop_bottom_px = math.floor(height * bottom / 2)

    remaining_width = width - crop_left_px - crop_right_px
    # floor(remaining / (16/9)) in exact integer arithmetic
    ideal_height = (remaining_width * ASPECT_DEN) // ASPECT_NUM
    crop_top_px = max(0, height - crop_bottom_px - ideal_height)

    crop_w = width - crop_left_px - crop_right_px
    crop_h = height - crop_top_px - crop_bottom_px
    return CropRect(x=crop_left_px, y=crop_top_px, width=crop_w, height=crop_h)
