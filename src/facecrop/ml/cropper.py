"""Padded face cropping."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from facecrop.ml.face_detector import Region

DEFAULT_PADDING_FRACTION: float = 0.125


class CropBox(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


def padded_box(
    region: Region,
    image_width: int,
    image_height: int,
    padding_fraction: float = DEFAULT_PADDING_FRACTION,
) -> CropBox:
    """Grow a region by a margin on every side and clamp it to the image.

    The margin is ``floor((width + height) * padding_fraction)`` pixels, i.e.
    the given fraction of twice the average side length. Near the image
    border the box is cut, not shifted, so it can end up smaller than the
    padded size.
    """
    padding = math.floor((region.width + region.height) * padding_fraction)

    left = max(region.x - padding, 0)
    top = max(region.y - padding, 0)
    right = min(region.x + region.width + padding, image_width)
    bottom = min(region.y + region.height + padding, image_height)

    return CropBox(x=left, y=top, width=max(right - left, 0), height=max(bottom - top, 0))


def crop_face(
    image: NDArray[np.uint8],
    region: Region,
    padding_fraction: float = DEFAULT_PADDING_FRACTION,
) -> NDArray[np.uint8]:
    """Return the padded face as a view into ``image``."""
    height, width = image.shape[:2]
    box = padded_box(region, width, height, padding_fraction)
    return image[box.y : box.bottom, box.x : box.right]
