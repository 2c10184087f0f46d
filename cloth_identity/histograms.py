"""
Per-channel color histograms and FAISS candidate retrieval.

Each BGR channel is histogrammed over ``histogram_bins`` bins, min-max
normalized to [0, 1] on its own, and the channels are concatenated in the
pinned ``channel_order``. The result has ``bins * 3`` entries and its layout
is part of the canonical format.

The same vectors, L2-normalized, back a FAISS index used to shortlist
registered items before running the full similarity comparison. Histograms
alone cannot tell two bolts of the same fabric apart, which is why they only
drive the shortlist and never the authenticity verdict.
"""

import logging
from typing import Dict, List, Sequence, Tuple

import cv2
import faiss
import numpy as np

from .config import IdentityConfig, DEFAULT_CONFIG
from .models import Analysis

logger = logging.getLogger(__name__)

# cv2.split() order for a BGR image
_CHANNEL_INDEX: Dict[str, int] = {"blue": 0, "green": 1, "red": 2}

# Switch from exact to approximate search above this many registered items
IVF_THRESHOLD = 1000


def histogram_length(config: IdentityConfig = DEFAULT_CONFIG) -> int:
    return config.histogram_length


def _minmax(hist: np.ndarray) -> np.ndarray:
    low = float(hist.min())
    high = float(hist.max())
    if high <= low:
        return np.zeros_like(hist)
    return (hist - low) / (high - low)


def extract_color_histogram(color: np.ndarray,
                            config: IdentityConfig = DEFAULT_CONFIG) -> Analysis:
    """
    Build the concatenated per-channel histogram of a BGR image.

    Degrades to an all-zero vector of the configured length (flagged) on
    internal failure.

    Args:
        color: BGR uint8 image.
        config: Pinned bin count, range and channel order.

    Returns:
        Analysis(values=list of floats, degraded=bool).
    """
    try:
        channels = cv2.split(color)
        low, high = config.histogram_range
        values: List[float] = []

        for name in config.channel_order:
            channel = channels[_CHANNEL_INDEX[name]]
            hist = cv2.calcHist([channel], [0], None,
                                [config.histogram_bins], [low, high])
            values.extend(_minmax(hist.flatten().astype(np.float64)).tolist())

        return Analysis(values)

    except Exception as e:
        logger.error(f"Color histogram extraction failed, using zeros: {e}")
        return Analysis([0.0] * histogram_length(config), degraded=True)


def histogram_vector(histogram: Sequence[float]) -> np.ndarray:
    """L2-normalized float32 copy of a histogram for FAISS search."""
    vector = np.asarray(histogram, dtype=np.float32)
    norm = np.linalg.norm(vector)
    if norm > 0:
        vector = vector / norm
    # Small epsilon to avoid exact-zero vectors
    return vector + 1e-8


def build_histogram_index(vectors: Sequence[np.ndarray]) -> faiss.Index:
    """
    Build a FAISS L2 index over histogram vectors.

    Small registries use exact FlatL2 search; large ones switch to IVFFlat.
    """
    data = np.vstack(vectors).astype(np.float32)
    dim = data.shape[1]

    if len(data) >= IVF_THRESHOLD:
        nlist = max(100, int(np.sqrt(len(data))))
        quantizer = faiss.IndexFlatL2(dim)
        index = faiss.IndexIVFFlat(quantizer, dim, nlist)
        index.train(data)
        index.add(data)
        logger.info(f"Built IVFFlat histogram index: {nlist} clusters, {dim}d vectors")
    else:
        index = faiss.IndexFlatL2(dim)
        index.add(data)
        logger.debug(f"Built FlatL2 histogram index: {len(data)} vectors, {dim}d")

    return index


def search_histogram_index(index: faiss.Index,
                           query: np.ndarray,
                           k: int = 50,
                           nprobe: int = 20) -> Tuple[np.ndarray, np.ndarray]:
    """
    Nearest registered histograms to a query vector.

    Returns:
        Tuple of (distances, indices) arrays, each shape (1, k').

    Raises:
        ValueError: If query dimensions don't match index.
    """
    query = np.asarray(query, dtype=np.float32).reshape(1, -1)

    if query.shape[1] != index.d:
        raise ValueError(
            f"Query dimension {query.shape[1]} doesn't match "
            f"index dimension {index.d}"
        )

    if hasattr(index, "nprobe"):
        index.nprobe = nprobe

    k = min(k, index.ntotal)
    return index.search(query, k)
