"""Raw geometric descriptors at native pixel resolution."""

from typing import Dict

from .errors import GeometryError
from .models import Analysis


def extract_dimensions(width: int, height: int) -> Analysis:
    """
    Compute {width, height, aspect_ratio, area}.

    No rescaling happens anywhere upstream, so photographing the same item at
    a different resolution is penalized by the area term during comparison.

    Raises:
        GeometryError: if either side is zero or negative. Never degraded
            to zeros: an image without height has no meaningful aspect ratio.
    """
    if height <= 0:
        raise GeometryError(f"Image height must be positive, got {height}")
    if width <= 0:
        raise GeometryError(f"Image width must be positive, got {width}")

    values: Dict[str, float] = {
        "width": float(width),
        "height": float(height),
        "aspect_ratio": float(width) / float(height),
        "area": float(width) * float(height),
    }
    return Analysis(values)
