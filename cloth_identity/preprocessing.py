"""
Image decoding and preprocessing shared by every analyzer.

Registration and verification must decode, convert and smooth identically,
otherwise descriptor values drift and matching silently degrades. All
parameters therefore come from the pinned ``IdentityConfig``. No resizing is
done: dimension descriptors reflect the native pixel size.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from .config import IdentityConfig, DEFAULT_CONFIG
from .errors import DecodeError

logger = logging.getLogger(__name__)

ImageSource = Union[str, os.PathLike, bytes, bytearray, np.ndarray]


@dataclass(frozen=True)
class PreparedImage:
    """Decoded BGR image plus its grayscale and smoothed grayscale views."""

    color: np.ndarray
    gray: np.ndarray
    smoothed: np.ndarray

    @property
    def height(self) -> int:
        return int(self.gray.shape[0])

    @property
    def width(self) -> int:
        return int(self.gray.shape[1])


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 with three BGR channels."""
    if image_np.dtype != np.uint8:
        if image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)

    if image_np.ndim == 2:
        image_np = cv2.cvtColor(image_np, cv2.COLOR_GRAY2BGR)
    elif image_np.ndim == 3 and image_np.shape[2] == 4:
        image_np = cv2.cvtColor(image_np, cv2.COLOR_BGRA2BGR)
    elif image_np.ndim == 3 and image_np.shape[2] == 1:
        image_np = cv2.cvtColor(image_np, cv2.COLOR_GRAY2BGR)
    elif image_np.ndim != 3 or image_np.shape[2] != 3:
        raise DecodeError(f"Unsupported image shape: {image_np.shape}")

    return image_np


def load_image(source: ImageSource) -> np.ndarray:
    """
    Decode an image from a path, raw encoded bytes, or an in-memory array.

    Arrays are taken to be in OpenCV's BGR channel order, the same order
    ``cv2.imread`` produces.

    Raises:
        DecodeError: if the input is empty, missing, or cannot be decoded.
    """
    if isinstance(source, np.ndarray):
        if source.size == 0:
            raise DecodeError("Empty image array")
        return normalize_image(source.copy())

    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise DecodeError("Empty image buffer")
        buffer = np.frombuffer(bytes(source), dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None:
            raise DecodeError("Could not decode image buffer")
        return image

    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.is_file():
            raise DecodeError(f"Image not found: {path}")
        if path.stat().st_size == 0:
            raise DecodeError(f"Image file is empty: {path}")
        # imdecode instead of imread so non-ASCII paths work everywhere
        buffer = np.fromfile(str(path), dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None:
            raise DecodeError(f"Could not decode image: {path}")
        return image

    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


def prepare_image(source: ImageSource,
                  config: IdentityConfig = DEFAULT_CONFIG) -> PreparedImage:
    """
    Decode, convert to grayscale and smooth an image.

    Args:
        source: Path, encoded bytes, or BGR array.
        config: Pinned parameters (smoothing kernel and strength).

    Returns:
        PreparedImage holding the three views.
    """
    color = load_image(source)
    if color.shape[0] == 0 or color.shape[1] == 0:
        raise DecodeError(f"Image has no pixels: {color.shape}")

    gray = cv2.cvtColor(color, cv2.COLOR_BGR2GRAY)
    kernel = (config.gaussian_kernel, config.gaussian_kernel)
    smoothed = cv2.GaussianBlur(gray, kernel, config.gaussian_sigma)

    logger.debug(f"Prepared image {gray.shape[1]}x{gray.shape[0]}")
    return PreparedImage(color=color, gray=gray, smoothed=smoothed)
