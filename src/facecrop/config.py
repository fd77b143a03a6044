"""Environment-based configuration for facecrop."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Run settings loaded from FACECROP_* environment variables.

    Command-line flags are passed as keyword overrides, so they win over the
    environment. The object is frozen once validated.
    """

    model_config = SettingsConfigDict(
        env_prefix="FACECROP_",
        case_sensitive=False,
        frozen=True,
    )

    # Filesystem
    input_dir: Path = Path("./images")
    output_dir: Path = Path("./faces")
    output_format: Literal["jpg", "png", "bmp"] = "jpg"

    # Model: registry name of a bundled cascade, or a path to a model file
    model: str = "haarcascade_frontalface_default"

    # Detector tuning
    min_face_size: int = Field(default=40, ge=1)
    threshold: float = Field(default=2.0, ge=0.0, le=5.0)
    pyramid_scale_factor: float = Field(default=0.8, gt=0.0, lt=1.0)
    slide_window_step: int = Field(default=4, ge=1)
    min_neighbors: int = Field(default=3, ge=0)

    # Extraction
    target_faces: int = Field(default=5000, gt=0)
    padding_fraction: float = Field(default=0.125, ge=0.0, le=1.0)

    # Input limits
    max_image_pixels: int = Field(default=16_777_216, ge=1)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


def get_settings(**overrides: object) -> Settings:
    """Create and return run settings, applying explicit overrides."""
    return Settings(**overrides)  # type: ignore[arg-type]
