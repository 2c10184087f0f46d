"""
Pattern complexity and symmetry scores.

Runs after the texture and dimension analyzers since both scores are derived
from their outputs. Symmetry is a true left/right mirror comparison of the
smoothed image. ``aspect_symmetry_score`` is a lower-fidelity stand-in kept
only for descriptor sets that must be scored without their pixels; whenever it
is used the result is flagged, it never silently replaces the mirror score.
"""

import logging
from typing import Mapping, Optional

import numpy as np

from .models import Analysis

logger = logging.getLogger(__name__)

MAX_INTENSITY = 255.0


def complexity_score(texture: Mapping[str, float]) -> float:
    return (texture["std_deviation"] + texture["contrast"]) / 2.0


def mirror_symmetry_score(smoothed: np.ndarray) -> float:
    """
    Left half vs. mirrored right half, averaged per pixel pair, in [0, 100].

    For odd widths the middle column is left out of both halves.

    Raises:
        ValueError: if the image is narrower than two pixels.
    """
    h, w = smoothed.shape[:2]
    half = w // 2
    if half == 0:
        raise ValueError(f"Image {w}x{h} too narrow for a mirror comparison")

    left = smoothed[:, :half].astype(np.float64)
    right = smoothed[:, w - half:][:, ::-1].astype(np.float64)

    agreement = 1.0 - np.abs(left - right) / MAX_INTENSITY
    return float(np.mean(agreement) * 100.0)


def aspect_symmetry_score(dimensions: Mapping[str, float]) -> float:
    """Stand-in derived from |1 - aspect_ratio| * 100, capped at 100."""
    return float(min(abs(1.0 - dimensions["aspect_ratio"]) * 100.0, 100.0))


def score_pattern(texture: Mapping[str, float],
                  dimensions: Mapping[str, float],
                  smoothed: Optional[np.ndarray] = None) -> Analysis:
    """
    Compute {complexity_score, symmetry_score}.

    Args:
        texture: Texture analyzer output.
        dimensions: Dimension analyzer output.
        smoothed: Smoothed grayscale image. When missing or too narrow, the
            aspect-ratio stand-in is used and the result is flagged degraded.

    Returns:
        Analysis(values=dict, degraded=True if the fallback was used).
    """
    complexity = complexity_score(texture)

    if smoothed is not None:
        try:
            symmetry = mirror_symmetry_score(smoothed)
            return Analysis({
                "complexity_score": complexity,
                "symmetry_score": symmetry,
            })
        except ValueError as e:
            logger.warning(f"Mirror symmetry unavailable: {e}")

    logger.warning("Using aspect-ratio symmetry fallback (lower fidelity)")
    return Analysis({
        "complexity_score": complexity,
        "symmetry_score": aspect_symmetry_score(dimensions),
    }, degraded=True)
