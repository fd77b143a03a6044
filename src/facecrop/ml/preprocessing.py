"""Image decoding and encoding.

Decodes files into BGR uint8 numpy arrays (EXIF orientation applied by
OpenCV), enforces the pixel limit from the file header before decoding,
converts to grayscale for detection, and writes crops back to disk.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

if TYPE_CHECKING:
    from pathlib import Path

    from numpy.typing import NDArray

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png", ".bmp"})


def read_dimensions(data: NDArray[np.uint8], path: Path) -> tuple[int, int]:
    """Return ``(width, height)`` from the image header without decoding pixels.

    Raises:
        ValueError: If the header cannot be parsed.
    """
    try:
        with Image.open(io.BytesIO(data.tobytes())) as header:
            return header.size
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise ValueError(f"Failed to decode image: {path}: {exc}") from exc


def decode_image(path: Path, max_pixels: int | None = None) -> NDArray[np.uint8]:
    """Decode an image file into an HxWx3 BGR uint8 numpy array.

    Args:
        path: Image file (any format OpenCV can read).
        max_pixels: Reject images with more pixels than this, checked
            against the header before any pixel data is decoded.

    Returns:
        HxWx3 BGR uint8 numpy array.

    Raises:
        ValueError: If the file is empty, cannot be decoded, or exceeds size limits.
        OSError: If the file cannot be read.
    """
    # np.fromfile + imdecode copes with non-ASCII paths, unlike cv2.imread.
    data = np.fromfile(path, dtype=np.uint8)
    if data.size == 0:
        raise ValueError(f"Empty image file: {path}")

    if max_pixels is not None:
        width, height = read_dimensions(data, path)
        if width * height > max_pixels:
            raise ValueError(f"Image {path} has {width}x{height} pixels, limit is {max_pixels}")

    try:
        image = cv2.imdecode(data, cv2.IMREAD_COLOR)
    except cv2.error as exc:
        raise ValueError(f"Failed to decode image: {path}: {exc}") from exc
    if image is None:
        raise ValueError(f"Failed to decode image: {path}")
    return image


def to_grayscale(image: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Convert a BGR image to a single-channel grayscale image."""
    if image.ndim == 2:
        return image
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def save_image(image: NDArray[np.uint8], path: Path) -> None:
    """Encode an image using the format implied by the path suffix and write it.

    Raises:
        ValueError: If the image is empty or OpenCV cannot encode it.
        OSError: If the file cannot be written.
    """
    if image.size == 0:
        raise ValueError(f"Refusing to write empty crop to {path}")
    try:
        ok, buffer = cv2.imencode(path.suffix, image)
    except cv2.error as exc:
        raise ValueError(f"Failed to encode image for {path}: {exc}") from exc
    if not ok:
        raise ValueError(f"Failed to encode image for {path}")
    buffer.tofile(path)
