"""Model manager: resolve a configured model and build its detector.

A model is either the name of a cascade bundled with OpenCV or a path to a
model file on disk. Models are never downloaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

import cv2

from facecrop.ml.face_detector import CascadeFaceDetector, DetectorOptions, ModelLoadError

if TYPE_CHECKING:
    from facecrop.config import Settings
    from facecrop.ml.face_detector import FaceDetector

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Model registry
# ---------------------------------------------------------------------------


class DetectorBackend(StrEnum):
    CASCADE = "cascade"


@dataclass(frozen=True)
class ModelSpec:
    """Static metadata for a bundled detection model."""

    name: str
    filename: str
    backend: DetectorBackend


MODEL_REGISTRY: dict[str, ModelSpec] = {
    "haarcascade_frontalface_default": ModelSpec(
        name="haarcascade_frontalface_default",
        filename="haarcascade_frontalface_default.xml",
        backend=DetectorBackend.CASCADE,
    ),
    "haarcascade_frontalface_alt": ModelSpec(
        name="haarcascade_frontalface_alt",
        filename="haarcascade_frontalface_alt.xml",
        backend=DetectorBackend.CASCADE,
    ),
    "haarcascade_frontalface_alt2": ModelSpec(
        name="haarcascade_frontalface_alt2",
        filename="haarcascade_frontalface_alt2.xml",
        backend=DetectorBackend.CASCADE,
    ),
    "haarcascade_profileface": ModelSpec(
        name="haarcascade_profileface",
        filename="haarcascade_profileface.xml",
        backend=DetectorBackend.CASCADE,
    ),
}

_SUFFIX_BACKENDS: dict[str, DetectorBackend] = {
    ".xml": DetectorBackend.CASCADE,
}


# ---------------------------------------------------------------------------
# Resolution and loading
# ---------------------------------------------------------------------------


def bundled_models_dir() -> Path:
    """Return the directory holding the cascades shipped with OpenCV.

    Raises:
        ModelLoadError: If the installed OpenCV build ships no cascades.
    """
    haarcascades = getattr(getattr(cv2, "data", None), "haarcascades", None)
    if not haarcascades:
        raise ModelLoadError(f"Installed OpenCV {cv2.__version__} ships no bundled cascade models")
    return Path(haarcascades)


def resolve_model(model: str) -> tuple[Path, DetectorBackend]:
    """Map a registry name or file path to a model file and its backend.

    Raises:
        ModelLoadError: If the file does not exist or its format is unknown.
    """
    spec = MODEL_REGISTRY.get(model)
    if spec is not None:
        path = bundled_models_dir() / spec.filename
        backend = spec.backend
    else:
        path = Path(model).expanduser()
        try:
            backend = _SUFFIX_BACKENDS[path.suffix.lower()]
        except KeyError:
            raise ModelLoadError(f"Unsupported model format: {path}") from None

    if not path.is_file():
        raise ModelLoadError(f"Model file not found: {path}")
    return path, backend


def detector_options(settings: Settings) -> DetectorOptions:
    """Extract detector tuning from run settings."""
    return DetectorOptions(
        min_face_size=settings.min_face_size,
        score_threshold=settings.threshold,
        pyramid_scale_factor=settings.pyramid_scale_factor,
        slide_window_step=settings.slide_window_step,
        min_neighbors=settings.min_neighbors,
    )


def load_detector(settings: Settings) -> FaceDetector:
    """Resolve the configured model and return a ready detector.

    Raises:
        ModelLoadError: If the model cannot be resolved or loaded.
    """
    path, backend = resolve_model(settings.model)
    options = detector_options(settings)

    if backend is DetectorBackend.CASCADE:
        detector: FaceDetector = CascadeFaceDetector(path, options)
    else:  # pragma: no cover - every registered backend is handled above
        raise ModelLoadError(f"No detector implementation for backend {backend}")

    logger.info(
        "Loaded %s detector %s (min_face_size=%s, threshold=%s, pyramid_scale_factor=%s)",
        backend,
        detector.model_name,
        options.min_face_size,
        options.score_threshold,
        options.pyramid_scale_factor,
    )
    return detector
