"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from facecrop.config import Settings, get_settings
from facecrop.extractor import extract_faces
from facecrop.ml.face_detector import ModelLoadError
from facecrop.ml.model_manager import load_detector

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _default(field: str) -> object:
    return Settings.model_fields[field].default


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Every option defaults to None so unset flags fall back to FACECROP_*
    environment variables and then to the settings defaults.
    """
    parser = argparse.ArgumentParser(
        prog="facecrop",
        description="Extract faces from images using an OpenCV face detector",
    )
    parser.add_argument(
        "-i", "--input", dest="input_dir", type=Path,
        help=f"input directory containing images (default: {_default('input_dir')})",
    )
    parser.add_argument(
        "-o", "--output", dest="output_dir", type=Path,
        help=f"output directory for extracted faces (default: {_default('output_dir')})",
    )
    parser.add_argument(
        "-m", "--model",
        help=f"bundled model name or path to a model file (default: {_default('model')})",
    )
    parser.add_argument(
        "--min-face-size", dest="min_face_size", type=int,
        help=f"minimum face size in pixels (default: {_default('min_face_size')})",
    )
    parser.add_argument(
        "--threshold", type=float,
        help=f"detector confidence threshold, 0.0-5.0 (default: {_default('threshold')})",
    )
    parser.add_argument(
        "--target-faces", dest="target_faces", type=int,
        help=f"stop after this many faces (default: {_default('target_faces')})",
    )
    parser.add_argument(
        "--output-format", dest="output_format", choices=["jpg", "png", "bmp"],
        help=f"image format of the saved crops (default: {_default('output_format')})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="enable debug logging",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Validate parsed arguments into settings.

    Raises:
        ValidationError: If any value is out of range.
    """
    overrides = {
        key: value
        for key, value in vars(args).items()
        if key != "verbose" and value is not None
    }
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return get_settings(**overrides)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the extractor and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        parser.error(str(exc))

    configure_logging(settings.log_level)
    logger.info(
        "Starting face extraction (target=%s, model=%s, input=%s, output=%s)",
        settings.target_faces,
        settings.model,
        settings.input_dir,
        settings.output_dir,
    )

    try:
        settings.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Failed to create output directory %s: %s", settings.output_dir, exc)
        return 1

    try:
        detector = load_detector(settings)
    except ModelLoadError as exc:
        logger.error("Failed to load face detection model: %s", exc)
        return 1

    extract_faces(settings, detector)
    return 0
