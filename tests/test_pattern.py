"""Tests for dimension descriptors and pattern scoring."""

import numpy as np
import pytest

from cloth_identity.dimensions import extract_dimensions
from cloth_identity.errors import GeometryError
from cloth_identity.pattern import (
    aspect_symmetry_score, complexity_score, mirror_symmetry_score, score_pattern,
)

TEXTURE = {"mean_intensity": 128.0, "std_deviation": 10.0,
           "contrast": 0.5, "homogeneity": 0.8}


class TestExtractDimensions:
    """Tests for native pixel geometry."""

    def test_values(self):
        dims = extract_dimensions(100, 200).values
        assert dims == {"width": 100.0, "height": 200.0,
                        "aspect_ratio": 0.5, "area": 20000.0}

    def test_zero_height_raises(self):
        with pytest.raises(GeometryError):
            extract_dimensions(100, 0)

    def test_zero_width_raises(self):
        with pytest.raises(GeometryError):
            extract_dimensions(0, 100)


class TestComplexity:

    def test_average_of_std_and_contrast(self):
        assert complexity_score(TEXTURE) == pytest.approx(5.25)


class TestMirrorSymmetry:
    """Tests for the left/right pixel mirror comparison."""

    def test_symmetric_image_scores_100(self):
        img = np.zeros((20, 40), dtype=np.uint8)
        img[:, :10] = 200
        img[:, 30:] = 200
        assert mirror_symmetry_score(img) == pytest.approx(100.0)

    def test_opposite_halves_score_0(self):
        img = np.zeros((20, 40), dtype=np.uint8)
        img[:, 20:] = 255
        assert mirror_symmetry_score(img) == pytest.approx(0.0)

    def test_odd_width_skips_middle_column(self):
        img = np.full((10, 21), 50, dtype=np.uint8)
        img[:, 10] = 255
        assert mirror_symmetry_score(img) == pytest.approx(100.0)

    def test_partial_agreement(self):
        img = np.zeros((10, 2), dtype=np.uint8)
        img[:, 1] = 51  # |0 - 51| / 255 = 0.2
        assert mirror_symmetry_score(img) == pytest.approx(80.0)

    def test_single_column_raises(self):
        with pytest.raises(ValueError):
            mirror_symmetry_score(np.zeros((10, 1), dtype=np.uint8))


class TestScorePattern:
    """Tests for the pattern scorer and its flagged fallback."""

    def test_uses_mirror_when_pixels_available(self):
        dims = extract_dimensions(40, 20).values
        img = np.full((20, 40), 90, dtype=np.uint8)
        result = score_pattern(TEXTURE, dims, img)
        assert result.degraded is False
        assert result.values["symmetry_score"] == pytest.approx(100.0)
        assert result.values["complexity_score"] == pytest.approx(5.25)

    def test_fallback_is_flagged(self):
        dims = extract_dimensions(300, 200).values
        result = score_pattern(TEXTURE, dims, None)
        assert result.degraded is True
        assert result.values["symmetry_score"] == pytest.approx(50.0)

    def test_fallback_on_single_column(self):
        dims = extract_dimensions(1, 10).values
        result = score_pattern(TEXTURE, dims, np.zeros((10, 1), dtype=np.uint8))
        assert result.degraded is True
        assert result.values["symmetry_score"] == pytest.approx(90.0)

    def test_fallback_capped_at_100(self):
        assert aspect_symmetry_score({"aspect_ratio": 5.0}) == 100.0
