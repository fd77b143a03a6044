"""Batch face extraction.

Walks an image tree and feeds each file through decode -> detect -> filter ->
crop -> save until the target number of faces has been written.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from facecrop.ml.cropper import DEFAULT_PADDING_FRACTION, crop_face
from facecrop.ml.preprocessing import SUPPORTED_EXTENSIONS, decode_image, save_image, to_grayscale
from facecrop.ml.region_filter import filter_regions

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np
    from numpy.typing import NDArray

    from facecrop.config import Settings
    from facecrop.ml.face_detector import FaceDetector, Region

logger = logging.getLogger(__name__)


class ExtractionCounter:
    """Number of faces written so far, bounded by a target."""

    def __init__(self, target: int) -> None:
        if target <= 0:
            raise ValueError(f"target must be positive, got {target}")
        self._target = target
        self._value: int = 0
        self._lock = threading.Lock()

    @property
    def target(self) -> int:
        return self._target

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    @property
    def reached(self) -> bool:
        with self._lock:
            return self._value >= self._target

    def reserve(self) -> int | None:
        """Claim the next 1-based face index, or return None at the target.

        The check and the increment happen under one lock, so concurrent
        callers never claim the same index or overshoot the target.
        """
        with self._lock:
            if self._value >= self._target:
                return None
            self._value += 1
            return self._value

    def release(self) -> None:
        """Give back a reserved index whose face could not be saved."""
        with self._lock:
            if self._value == 0:
                raise RuntimeError("release() called without a reservation")
            self._value -= 1


@dataclass
class RunSummary:
    """Outcome of one extraction run."""

    images_found: int = 0
    images_processed: int = 0
    images_errored: int = 0
    faces_extracted: int = 0
    target_reached: bool = False
    output_dir: Path | None = None

    @property
    def images_attempted(self) -> int:
        return self.images_processed + self.images_errored


def discover_images(root: Path) -> list[Path]:
    """Return supported image files under ``root``, recursively and sorted."""
    if not root.is_dir():
        logger.warning("Input directory %s does not exist or is not a directory", root)
        return []

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.suffix.lower() in SUPPORTED_EXTENSIONS and path.is_file():
                found.append(path)
    return found


def face_filename(source: Path, index: int, confidence: float, extension: str) -> str:
    """Build the output name ``{stem}_{index:04d}_{confidence*100:.0f}.{ext}``."""
    return f"{source.stem}_{index:04d}_{confidence * 100:.0f}.{extension}"


class FaceExtractor:
    """Runs the per-file pipeline and enforces the target count."""

    def __init__(
        self,
        detector: FaceDetector,
        output_dir: Path,
        counter: ExtractionCounter,
        *,
        padding_fraction: float = DEFAULT_PADDING_FRACTION,
        output_format: str = "jpg",
        max_image_pixels: int | None = None,
    ) -> None:
        self._detector = detector
        self._output_dir = output_dir
        self._counter = counter
        self._padding_fraction = padding_fraction
        self._output_format = output_format
        self._max_image_pixels = max_image_pixels

    @property
    def counter(self) -> ExtractionCounter:
        return self._counter

    def process_image(self, path: Path) -> int:
        """Extract faces from one image and return how many were saved.

        Raises:
            ValueError: If the image cannot be decoded or a crop cannot be encoded.
            OSError: If the image cannot be read or a crop cannot be written.
        """
        if self._counter.reached:
            return 0

        image = decode_image(path, max_pixels=self._max_image_pixels)
        height, width = image.shape[:2]

        candidates = self._detector.detect(to_grayscale(image))
        if not candidates:
            logger.debug("No faces detected in %s", path)
            return 0

        regions = filter_regions(candidates, width, height)
        if not regions:
            logger.debug("No faces in %s passed the filter (%d candidates)", path, len(candidates))
            return 0

        extracted = 0
        for region in regions:
            index = self._counter.reserve()
            if index is None:
                break
            try:
                self._save_face(image, region, path, index)
            except (ValueError, OSError):
                self._counter.release()
                raise
            extracted += 1
        return extracted

    def run(self, image_paths: Sequence[Path]) -> RunSummary:
        """Process files in order until they run out or the target is reached."""
        summary = RunSummary(images_found=len(image_paths), output_dir=self._output_dir)
        total = len(image_paths)

        for i, path in enumerate(image_paths, start=1):
            if self._counter.reached:
                logger.info("Target reached! Extracted %d faces", self._counter.value)
                summary.target_reached = True
                break

            logger.info("[%d/%d] Processing: %s", i, total, path)
            try:
                extracted = self.process_image(path)
            except (ValueError, OSError) as exc:
                summary.images_errored += 1
                logger.error("Error processing %s: %s", path, exc)
                continue

            summary.images_processed += 1
            if extracted > 0:
                logger.info("Extracted %d faces from %s", extracted, path)

        summary.faces_extracted = self._counter.value
        summary.target_reached = summary.target_reached or self._counter.reached
        return summary

    def _save_face(self, image: NDArray[np.uint8], region: Region, source: Path, index: int) -> Path:
        face = crop_face(image, region, self._padding_fraction)
        face_path = self._output_dir / face_filename(source, index, region.confidence, self._output_format)
        save_image(face, face_path)
        logger.debug("Saved %s", face_path)
        return face_path


def extract_faces(settings: Settings, detector: FaceDetector) -> RunSummary:
    """Run a complete extraction with the given settings and detector.

    The output directory is created here as well as in ``main`` so library
    callers do not have to prepare it; the call is idempotent.

    Raises:
        OSError: If the output directory cannot be created.
    """
    output_dir = settings.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    image_paths = discover_images(settings.input_dir)
    logger.info("Found %d images to process in %s", len(image_paths), settings.input_dir)
    if not image_paths:
        logger.info("No images found in %s", settings.input_dir)
        return RunSummary(output_dir=output_dir)

    extractor = FaceExtractor(
        detector,
        output_dir,
        ExtractionCounter(settings.target_faces),
        padding_fraction=settings.padding_fraction,
        output_format=settings.output_format,
        max_image_pixels=settings.max_image_pixels,
    )
    summary = extractor.run(image_paths)

    logger.info(
        "Processing complete: images processed=%d, errors=%d, faces extracted=%d, output directory=%s",
        summary.images_processed,
        summary.images_errored,
        summary.faces_extracted,
        output_dir,
    )
    return summary
