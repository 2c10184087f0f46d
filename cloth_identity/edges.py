"""
Edge density and dominant edge orientation.

Density is the share of Canny edge pixels. Orientation is the circular mean
of Sobel gradient angles over pixels whose gradient magnitude exceeds a fixed
threshold; weaker gradients are noise, not weave edges, and are left out.
The mean angle is folded into [0, 180) degrees and scaled to [0, 1].
"""

import logging
from typing import List

import cv2
import numpy as np

from .config import IdentityConfig, DEFAULT_CONFIG
from .models import Analysis, EDGE_LENGTH

logger = logging.getLogger(__name__)


def edge_density(smoothed: np.ndarray, low: int, high: int) -> float:
    edges = cv2.Canny(smoothed, low, high)
    density = np.count_nonzero(edges) / edges.size
    return float(min(max(density, 0.0), 1.0))


def mean_orientation(smoothed: np.ndarray, magnitude_threshold: float) -> float:
    """
    Circular mean gradient orientation, normalized to [0, 1).

    Returns 0.0 when no pixel clears the magnitude threshold.
    """
    gx = cv2.Sobel(smoothed, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(smoothed, cv2.CV_64F, 0, 1, ksize=3)

    magnitude = np.hypot(gx, gy)
    strong = magnitude > magnitude_threshold
    if not np.any(strong):
        return 0.0

    angles = np.arctan2(gy[strong], gx[strong])
    mean_angle = np.arctan2(np.mean(np.sin(angles)), np.mean(np.cos(angles)))

    # Rounded first so sin(pi) residue cannot land a hair below 180
    degrees = round(float(np.degrees(mean_angle)), 9) % 180.0
    if degrees >= 180.0:
        degrees = 0.0
    return degrees / 180.0


def extract_edge_features(smoothed: np.ndarray,
                          config: IdentityConfig = DEFAULT_CONFIG) -> Analysis:
    """
    Extract the ordered pair [density, orientation].

    Degrades to [0.0, 0.0] (flagged) on internal failure.
    """
    try:
        values: List[float] = [
            edge_density(smoothed, config.canny_low, config.canny_high),
            mean_orientation(smoothed, config.gradient_threshold),
        ]
        return Analysis(values)

    except Exception as e:
        logger.error(f"Edge extraction failed, using zeros: {e}")
        return Analysis([0.0] * EDGE_LENGTH, degraded=True)
