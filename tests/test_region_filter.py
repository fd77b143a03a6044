"""Tests for the face region quality filter."""

from __future__ import annotations

import pytest

from facecrop.ml.face_detector import Region
from facecrop.ml.region_filter import filter_regions, is_valid_region


def _region(width: int, height: int, confidence: float = 3.0, x: int = 10, y: int = 10) -> Region:
    return Region(x=x, y=y, width=width, height=height, confidence=confidence)


class TestIsValidRegion:
    def test_typical_face_is_accepted(self) -> None:
        assert is_valid_region(_region(60, 60), 200, 200)

    @pytest.mark.parametrize(
        ("region", "image_size"),
        [
            # area ratio exactly 0.02
            (_region(40, 40), (400, 200)),
            # area ratio exactly 0.4
            (_region(160, 100), (200, 200)),
            # aspect ratio exactly 2.0 and 0.5
            (_region(80, 40), (200, 200)),
            (_region(40, 80), (200, 200)),
            # confidence exactly at the fixed gate
            (_region(60, 60, confidence=2.0), (200, 200)),
        ],
    )
    def test_boundary_values_are_excluded(self, region: Region, image_size: tuple[int, int]) -> None:
        assert not is_valid_region(region, *image_size)

    @pytest.mark.parametrize(
        ("region", "image_size"),
        [
            (_region(41, 40), (400, 200)),
            (_region(159, 100), (200, 200)),
            (_region(79, 40), (200, 200)),
            (_region(41, 80), (200, 200)),
            (_region(60, 60, confidence=2.01), (200, 200)),
        ],
    )
    def test_values_just_inside_bounds_are_accepted(self, region: Region, image_size: tuple[int, int]) -> None:
        assert is_valid_region(region, *image_size)

    @pytest.mark.parametrize("confidence", [-1.0, 0.0, 1.99, 2.0])
    def test_low_confidence_rejected_regardless_of_geometry(self, confidence: float) -> None:
        assert not is_valid_region(_region(60, 60, confidence=confidence), 200, 200)

    @pytest.mark.parametrize(("width", "height"), [(39, 45), (45, 39), (39, 39)])
    def test_sides_under_40_pixels_rejected(self, width: int, height: int) -> None:
        # Small enough image that the area ratio would otherwise pass.
        assert not is_valid_region(_region(width, height, confidence=4.0), 120, 120)

    def test_zero_height_rejected_without_error(self) -> None:
        assert not is_valid_region(_region(60, 0), 200, 200)

    def test_empty_image_rejected_without_error(self) -> None:
        assert not is_valid_region(_region(60, 60), 0, 0)


class TestFilterRegions:
    def test_preserves_detector_order(self) -> None:
        first = _region(60, 60, confidence=2.5)
        rejected = _region(20, 20, confidence=9.0)
        second = _region(70, 60, confidence=4.0, x=100)

        assert filter_regions([first, rejected, second], 200, 200) == [first, second]

    def test_empty_candidates(self) -> None:
        assert filter_regions([], 200, 200) == []

    def test_is_idempotent(self) -> None:
        candidates = [_region(60, 60), _region(10, 10), _region(90, 40, confidence=5.0), _region(60, 60, 1.0)]

        once = filter_regions(candidates, 200, 200)

        assert filter_regions(candidates, 200, 200) == once
        assert filter_regions(once, 200, 200) == once

    def test_accepts_any_iterable(self) -> None:
        assert filter_regions(iter([_region(60, 60)]), 200, 200) == [_region(60, 60)]

    def test_accepted_regions_satisfy_all_bounds(self) -> None:
        candidates = [
            _region(w, h, confidence=c)
            for w in range(20, 200, 17)
            for h in range(20, 200, 19)
            for c in (1.5, 2.0, 2.5, 6.0)
        ]

        for region in filter_regions(candidates, 200, 200):
            assert region.width >= 40
            assert region.height >= 40
            assert 0.02 < region.area / 40_000 < 0.4
            assert 0.5 < region.width / region.height < 2.0
            assert region.confidence > 2.0
