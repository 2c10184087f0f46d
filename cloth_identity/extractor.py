"""
Descriptor extraction pipeline.

Orchestrates the analyzers for one image:
    1. Decode, grayscale and smooth (preprocessing)
    2. Texture, edge, histogram and dimension analyzers, independently
    3. Pattern scorer, once texture and dimensions are in (fan-in)

The four independent analyzers share no mutable state and may run on a
thread pool; OpenCV and numpy release the GIL for the heavy lifting. Each of
texture, edge and histogram degrades to zeros on internal failure and the
category is reported in ``DescriptorSet.degraded``. Decode and geometry
failures are never degraded: they abort the extraction.
"""

import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Union

from .config import IdentityConfig, DEFAULT_CONFIG
from .dimensions import extract_dimensions
from .edges import extract_edge_features
from .histograms import extract_color_histogram
from .models import Analysis, DescriptorSet
from .pattern import score_pattern
from .preprocessing import ImageSource, PreparedImage, prepare_image
from .texture import extract_texture_features

logger = logging.getLogger(__name__)


def _describe(source: ImageSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    if hasattr(source, "shape"):
        return f"<array {source.shape}>"
    return str(source)


def _run_analyzers(prepared: PreparedImage,
                   config: IdentityConfig) -> Dict[str, Analysis]:
    tasks: Dict[str, Callable[[], Analysis]] = {
        "texture": lambda: extract_texture_features(prepared.smoothed, config),
        "edge": lambda: extract_edge_features(prepared.smoothed, config),
        "histogram": lambda: extract_color_histogram(prepared.color, config),
        "dimensions": lambda: extract_dimensions(prepared.width, prepared.height),
    }

    if not config.parallel_analyzers:
        return {name: task() for name, task in tasks.items()}

    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = {name: pool.submit(task) for name, task in tasks.items()}
        # .result() re-raises DecodeError / GeometryError from the worker
        return {name: future.result() for name, future in futures.items()}


def extract_prepared(prepared: PreparedImage,
                     config: IdentityConfig = DEFAULT_CONFIG) -> DescriptorSet:
    """Run every analyzer over an already prepared image."""
    results = _run_analyzers(prepared, config)

    pattern = score_pattern(
        results["texture"].values,
        results["dimensions"].values,
        prepared.smoothed,
    )

    degraded = {name for name, result in results.items() if result.degraded}
    if pattern.degraded:
        degraded.add("symmetry")

    if degraded:
        logger.warning(f"Degraded feature categories: {sorted(degraded)}")

    return DescriptorSet(
        texture=results["texture"].values,
        histogram=results["histogram"].values,
        dimensions=results["dimensions"].values,
        edge=results["edge"].values,
        pattern=pattern.values,
        capture_time=time.time(),
        degraded=frozenset(degraded),
    )


def extract(image: ImageSource,
            config: IdentityConfig = DEFAULT_CONFIG) -> DescriptorSet:
    """
    Extract the full descriptor set of one image.

    Args:
        image: Path, encoded image bytes, or BGR uint8 array.
        config: Pinned parameters; must match the ones used at registration.

    Returns:
        DescriptorSet with every category fully populated.

    Raises:
        DecodeError: if the image is missing, empty or undecodable.
        GeometryError: if the image has degenerate dimensions.
    """
    prepared = prepare_image(image, config)
    descriptors = extract_prepared(prepared, config)
    logger.info(
        f"Extracted descriptors for {_describe(image)} "
        f"({prepared.width}x{prepared.height})"
    )
    return descriptors


def extract_many(images: Sequence[ImageSource],
                 config: IdentityConfig = DEFAULT_CONFIG,
                 max_workers: Optional[int] = None
                 ) -> List[Union[DescriptorSet, Exception]]:
    """
    Extract descriptor sets for a batch of images, one task per image.

    A failing image does not abort the batch: its slot holds the exception
    it raised instead of a DescriptorSet. Results keep input order.
    """
    def _one(image: ImageSource) -> Union[DescriptorSet, Exception]:
        try:
            return extract(image, config)
        except Exception as e:
            logger.warning(f"Failed to extract {_describe(image)}: {e}")
            return e

    if not images:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(_one, images))

    failed = sum(1 for r in results if isinstance(r, Exception))
    logger.info(f"Batch extraction: {len(results) - failed} ok, {failed} failed")
    return results
