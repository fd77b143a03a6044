"""Tests for the command-line entry point."""

from __future__ import annotations

import logging
import runpy
from pathlib import Path
from unittest.mock import MagicMock, patch

import cv2
import pytest

from facecrop.extractor import RunSummary
from facecrop.main import build_parser, main, settings_from_args


class TestSettingsFromArgs:
    def test_unset_flags_keep_defaults(self) -> None:
        settings = settings_from_args(build_parser().parse_args([]))
        assert settings.target_faces == 5000
        assert settings.log_level == "INFO"

    def test_flags_map_to_settings(self) -> None:
        args = build_parser().parse_args(
            [
                "-i", "photos",
                "-o", "crops",
                "-m", "haarcascade_frontalface_alt",
                "--min-face-size", "64",
                "--threshold", "3.5",
                "--target-faces", "10",
                "--output-format", "png",
                "-v",
            ]
        )

        settings = settings_from_args(args)

        assert settings.input_dir == Path("photos")
        assert settings.output_dir == Path("crops")
        assert settings.model == "haarcascade_frontalface_alt"
        assert settings.min_face_size == 64
        assert settings.threshold == 3.5
        assert settings.target_faces == 10
        assert settings.output_format == "png"
        assert settings.log_level == "DEBUG"

    def test_flags_override_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FACECROP_TARGET_FACES", "7")
        assert settings_from_args(build_parser().parse_args([])).target_faces == 7
        assert settings_from_args(build_parser().parse_args(["--target-faces", "9"])).target_faces == 9


class TestMain:
    def test_empty_input_exits_zero(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO)
        inputs = tmp_path / "in"
        inputs.mkdir()

        code = main(["-i", str(inputs), "-o", str(tmp_path / "out")])

        assert code == 0
        assert (tmp_path / "out").is_dir()
        assert "No images found" in caplog.text

    def test_missing_model_exits_one(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        code = main(["-i", str(tmp_path), "-o", str(tmp_path / "out"), "-m", str(tmp_path / "model.xml")])

        assert code == 1
        assert "Failed to load face detection model" in caplog.text

    def test_opencv_without_cascade_support_exits_one(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        model_file = tmp_path / "custom.xml"
        model_file.write_text("<opencv_storage></opencv_storage>")
        monkeypatch.delattr(cv2, "CascadeClassifier")

        code = main(["-i", str(tmp_path), "-o", str(tmp_path / "out"), "-m", str(model_file)])

        assert code == 1
        assert "no cascade classifier support" in caplog.text

    def test_uncreatable_output_dir_exits_one(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("occupied")

        code = main(["-i", str(tmp_path), "-o", str(blocker / "out")])

        assert code == 1
        assert "Failed to create output directory" in caplog.text

    @pytest.mark.parametrize("argv", [["--target-faces", "0"], ["--threshold", "-1.0"], ["--threshold", "9"]])
    def test_invalid_arguments_exit_two(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 2

    @patch("facecrop.main.extract_faces")
    @patch("facecrop.main.load_detector")
    def test_runs_extraction_with_loaded_detector(
        self, mock_load: MagicMock, mock_extract: MagicMock, tmp_path: Path
    ) -> None:
        mock_extract.return_value = RunSummary(images_found=2, images_processed=1, images_errored=1)

        code = main(["-i", str(tmp_path), "-o", str(tmp_path / "out"), "--target-faces", "3"])

        assert code == 0
        settings = mock_load.call_args.args[0]
        assert settings.target_faces == 3
        mock_extract.assert_called_once_with(settings, mock_load.return_value)


class TestModuleEntryPoint:
    @patch("facecrop.main.main", return_value=0)
    def test_python_dash_m_exits_with_main_status(self, mock_main: MagicMock) -> None:
        with pytest.raises(SystemExit) as exc_info:
            runpy.run_module("facecrop", run_name="__main__")

        assert exc_info.value.code == 0
        mock_main.assert_called_once_with()
