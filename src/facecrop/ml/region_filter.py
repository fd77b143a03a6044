"""Quality filter for detected face regions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from facecrop.ml.face_detector import Region

# Face area as a fraction of the image area (exclusive bounds).
MIN_AREA_RATIO: float = 0.02
MAX_AREA_RATIO: float = 0.4

# Applied on top of the detector's own score threshold.
MIN_CONFIDENCE: float = 2.0

# Width over height (exclusive bounds).
MIN_ASPECT_RATIO: float = 0.5
MAX_ASPECT_RATIO: float = 2.0

MIN_SIDE_PIXELS: int = 40


def is_valid_region(region: Region, image_width: int, image_height: int) -> bool:
    """Return True if a region is worth cropping.

    Rejects faces that are tiny or fill most of the frame, low-confidence
    detections, implausibly thin or wide boxes and anything under 40 pixels
    on a side. Degenerate boxes and images are rejected rather than raising.
    """
    image_area = image_width * image_height
    if image_area <= 0:
        return False

    aspect_ratio = region.aspect_ratio
    if aspect_ratio is None:
        return False

    area_ratio = region.area / image_area
    return (
        MIN_AREA_RATIO < area_ratio < MAX_AREA_RATIO
        and region.confidence > MIN_CONFIDENCE
        and MIN_ASPECT_RATIO < aspect_ratio < MAX_ASPECT_RATIO
        and region.width >= MIN_SIDE_PIXELS
        and region.height >= MIN_SIDE_PIXELS
    )


def filter_regions(candidates: Iterable[Region], image_width: int, image_height: int) -> list[Region]:
    """Return the valid candidates, preserving detector order."""
    return [region for region in candidates if is_valid_region(region, image_width, image_height)]
