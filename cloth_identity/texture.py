"""
Fabric texture descriptors from the smoothed grayscale image.

Two independent measurements:
    - Local binary pattern (LBP): each interior pixel is compared against
      ``lbp_neighbors`` samples on a circle of ``lbp_radius``. Samples that
      fall between pixels are bilinearly interpolated. The mean and standard
      deviation of the resulting codes describe weave regularity.
    - Gray-level co-occurrence (GLCM): the image is quantized to
      ``glcm_levels`` gray levels and horizontal distance-1 pairs are counted.
      Contrast and homogeneity are read off the normalized matrix.

Neighbor enumeration starts at angle 0 (to the right of the center) and runs
counter-clockwise, so bit ``p`` of a code always refers to the same neighbor.
"""

import logging
from typing import Dict

import numpy as np

from .config import IdentityConfig, DEFAULT_CONFIG
from .models import Analysis, TEXTURE_KEYS

logger = logging.getLogger(__name__)

# Interpolated samples can land a hair below an equal-valued center
_INTERP_TOLERANCE = 1e-6

# Offsets are rounded so cos(pi/2) and friends collapse to exact integers
_OFFSET_DECIMALS = 9


def zero_texture() -> Dict[str, float]:
    return {key: 0.0 for key in TEXTURE_KEYS}


def _shifted_view(image: np.ndarray, margin: int, dy: int, dx: int) -> np.ndarray:
    """Interior window of ``image`` displaced by (dy, dx)."""
    h, w = image.shape
    return image[margin + dy:h - margin + dy, margin + dx:w - margin + dx]


def _sample_neighbor(image: np.ndarray, margin: int,
                     dy: float, dx: float) -> np.ndarray:
    """Bilinear sample of every interior pixel's neighbor at offset (dy, dx)."""
    y0 = int(np.floor(dy))
    x0 = int(np.floor(dx))
    fy = dy - y0
    fx = dx - x0

    taps = (
        ((1.0 - fy) * (1.0 - fx), 0, 0),
        ((1.0 - fy) * fx, 0, 1),
        (fy * (1.0 - fx), 1, 0),
        (fy * fx, 1, 1),
    )

    sample = None
    for weight, oy, ox in taps:
        if weight == 0.0:
            continue
        term = weight * _shifted_view(image, margin, y0 + oy, x0 + ox)
        sample = term if sample is None else sample + term
    return sample


def local_binary_pattern(gray: np.ndarray,
                         neighbors: int = 8,
                         radius: float = 1) -> np.ndarray:
    """
    Compute per-pixel LBP codes for the interior of a grayscale image.

    Bit ``p`` is set when neighbor ``p`` is >= the center value.

    Args:
        gray: 2-D grayscale image.
        neighbors: Number of samples on the circle.
        radius: Circle radius in pixels.

    Returns:
        Integer array of shape (h - 2m, w - 2m) with m = ceil(radius).

    Raises:
        ValueError: if the image has no interior pixels.
    """
    image = gray.astype(np.float64)
    h, w = image.shape
    margin = int(np.ceil(radius))
    if h <= 2 * margin or w <= 2 * margin:
        raise ValueError(
            f"Image {w}x{h} too small for LBP radius {radius}"
        )

    center = _shifted_view(image, margin, 0, 0)
    codes = np.zeros(center.shape, dtype=np.int64)

    for p in range(neighbors):
        angle = 2.0 * np.pi * p / neighbors
        dy = round(-radius * np.sin(angle), _OFFSET_DECIMALS) + 0.0
        dx = round(radius * np.cos(angle), _OFFSET_DECIMALS) + 0.0
        sample = _sample_neighbor(image, margin, dy, dx)
        bit = (sample >= center - _INTERP_TOLERANCE).astype(np.int64)
        codes |= bit << p

    return codes


def cooccurrence_matrix(gray: np.ndarray, levels: int = 8) -> np.ndarray:
    """
    Horizontal distance-1 co-occurrence matrix, normalized to sum to 1.

    Raises:
        ValueError: if the image is narrower than two pixels.
    """
    quantized = (gray.astype(np.int64) * levels) // 256
    left = quantized[:, :-1].ravel()
    right = quantized[:, 1:].ravel()
    if left.size == 0:
        raise ValueError("Co-occurrence needs an image at least 2 pixels wide")

    counts = np.bincount(left * levels + right, minlength=levels * levels)
    matrix = counts.reshape(levels, levels).astype(np.float64)
    return matrix / matrix.sum()


def glcm_contrast_homogeneity(matrix: np.ndarray):
    """Return (contrast, homogeneity) of a normalized co-occurrence matrix."""
    i, j = np.indices(matrix.shape)
    diff_sq = (i - j).astype(np.float64) ** 2
    contrast = float(np.sum(matrix * diff_sq))
    homogeneity = float(np.sum(matrix / (1.0 + diff_sq)))
    return contrast, homogeneity


def extract_texture_features(smoothed: np.ndarray,
                             config: IdentityConfig = DEFAULT_CONFIG) -> Analysis:
    """
    Extract {mean_intensity, std_deviation, contrast, homogeneity}.

    Degrades to all zeros (flagged) on any internal failure so one broken
    analysis path does not block registration of an otherwise valid image.

    Args:
        smoothed: Smoothed grayscale image.
        config: Pinned LBP and co-occurrence parameters.

    Returns:
        Analysis(values=dict, degraded=bool).
    """
    try:
        codes = local_binary_pattern(
            smoothed, config.lbp_neighbors, config.lbp_radius
        )
        matrix = cooccurrence_matrix(smoothed, config.glcm_levels)
        contrast, homogeneity = glcm_contrast_homogeneity(matrix)

        return Analysis({
            "mean_intensity": float(np.mean(codes)),
            "std_deviation": float(np.std(codes)),
            "contrast": contrast,
            "homogeneity": homogeneity,
        })

    except Exception as e:
        logger.error(f"Texture extraction failed, using zeros: {e}")
        return Analysis(zero_texture(), degraded=True)
