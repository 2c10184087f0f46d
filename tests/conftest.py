"""Shared test fixtures for cloth identity tests."""

import numpy as np
import cv2
import pytest

from cloth_identity.models import DescriptorSet


@pytest.fixture
def red_square_image():
    """Generate a 200x200 red square on white background (BGR)."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [30, 30, 200]  # Red square
    return img


@pytest.fixture
def textured_image():
    """Generate a 200x160 checkerboard weave pattern."""
    img = np.ones((160, 200, 3), dtype=np.uint8) * 200
    for y in range(0, 160, 20):
        for x in range(0, 200, 20):
            if (x // 20 + y // 20) % 2 == 0:
                img[y:y+20, x:x+20] = [50, 60, 70]
    return img


@pytest.fixture
def wide_textured_image(textured_image):
    """The checkerboard tiled twice horizontally: 400x160, aspect ratio 2.5."""
    return np.tile(textured_image, (1, 2, 1))


@pytest.fixture
def noise_image():
    """Generate a 200x200 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (200, 200, 3), dtype=np.uint8)


@pytest.fixture
def blank_image():
    """Generate a flat mid-gray 100x100 image."""
    return np.ones((100, 100, 3), dtype=np.uint8) * 128


@pytest.fixture
def write_png(tmp_path):
    """Factory writing a BGR array to a lossless PNG and returning its path."""
    def _write(image, name="item.png"):
        ok, encoded = cv2.imencode(".png", image)
        assert ok
        path = tmp_path / name
        path.write_bytes(encoded.tobytes())
        return path
    return _write


@pytest.fixture
def make_descriptors():
    """Factory for a hand-built DescriptorSet; keyword overrides replace fields."""
    def _make(**overrides):
        data = dict(
            texture={"mean_intensity": 128.123456, "std_deviation": 10.0,
                     "contrast": 0.5, "homogeneity": 0.8},
            histogram=[0.0, 0.333333, 1.0, 0.25] * 192,
            dimensions={"width": 100.0, "height": 200.0,
                        "aspect_ratio": 0.5, "area": 20000.0},
            edge=[0.0123456, 0.5],
            pattern={"complexity_score": 5.25, "symmetry_score": 97.123449},
            capture_time=1700000000.0,
        )
        data.update(overrides)
        return DescriptorSet(**data)
    return _make
