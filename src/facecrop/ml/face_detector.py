"""Face detection backends.

Implementations: OpenCV cascade classifier (Haar XML models).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import cv2
import numpy as np

if TYPE_CHECKING:
    from pathlib import Path

    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class ModelLoadError(RuntimeError):
    """Raised when a face detection model cannot be resolved or loaded."""


@dataclass(frozen=True)
class Region:
    """A candidate face: pixel bounding box plus detector confidence.

    The confidence scale is defined by the backend and is not normalized
    to [0, 1].
    """

    x: int
    y: int
    width: int
    height: int
    confidence: float

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float | None:
        """Width over height, or None for a degenerate zero-height box."""
        if self.height == 0:
            return None
        return self.width / self.height


@dataclass(frozen=True)
class DetectorOptions:
    """Backend-independent detector tuning.

    ``pyramid_scale_factor`` is the per-level shrink factor of the image
    pyramid (0.8 means each level is 80% of the previous one).
    ``slide_window_step`` applies to backends with a configurable scan
    stride.
    """

    min_face_size: int = 40
    score_threshold: float = 2.0
    pyramid_scale_factor: float = 0.8
    slide_window_step: int = 4
    min_neighbors: int = 3


class FaceDetector(Protocol):
    """Protocol for face detection models."""

    @property
    def model_name(self) -> str:
        """Return the model identifier string."""
        ...

    def detect(self, gray: NDArray[np.uint8]) -> list[Region]:
        """Detect faces in a grayscale image.

        Args:
            gray: HxW uint8 array.

        Returns:
            Candidate regions in detector order.
        """
        ...


class CascadeFaceDetector:
    """Face detector backed by an OpenCV cascade classifier.

    Confidences are the cascade level weights reported by
    ``detectMultiScale3``. Candidates weighted below the configured score
    threshold are dropped here. OpenCV picks its own scan stride, so
    ``slide_window_step`` has no effect on this backend.
    """

    def __init__(self, model_path: Path, options: DetectorOptions) -> None:
        try:
            self._classifier = cv2.CascadeClassifier()
        except AttributeError as exc:
            raise ModelLoadError(f"Installed OpenCV {cv2.__version__} has no cascade classifier support") from exc
        try:
            loaded = self._classifier.load(str(model_path))
        except cv2.error as exc:
            raise ModelLoadError(f"Failed to parse cascade model {model_path}: {exc}") from exc
        if not loaded:
            raise ModelLoadError(f"Failed to load cascade model from {model_path}")
        self._options = options
        self._model_name = model_path.stem
        logger.debug("Loaded cascade %s from %s", self._model_name, model_path)

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def options(self) -> DetectorOptions:
        return self._options

    def detect(self, gray: NDArray[np.uint8]) -> list[Region]:
        opts = self._options
        rects, _levels, weights = self._classifier.detectMultiScale3(
            gray,
            scaleFactor=1.0 / opts.pyramid_scale_factor,
            minNeighbors=opts.min_neighbors,
            minSize=(opts.min_face_size, opts.min_face_size),
            outputRejectLevels=True,
        )

        regions: list[Region] = []
        # OpenCV returns empty tuples rather than arrays when nothing is found.
        for (x, y, w, h), weight in zip(rects, np.ravel(weights), strict=True):
            score = float(weight)
            if score < opts.score_threshold:
                continue
            regions.append(Region(x=int(x), y=int(y), width=int(w), height=int(h), confidence=score))
        return regions
