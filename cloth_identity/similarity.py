"""
Weighted similarity scoring between a reference and a candidate item.

Combines three per-category similarities into one authenticity verdict:

    texture_sim   = 1 - avg(|d mean_intensity| / 255, |d contrast|, |d homogeneity|)
    pattern_sim   = 1 - avg(|d complexity| / 100, |d symmetry| / 100)
    dimension_sim = 1 - avg(|d aspect_ratio|, |d area| / reference.area)
    total         = w_t * texture_sim + w_p * pattern_sim + w_d * dimension_sim

Each category is clamped to [0, 1] before weighting. Weights and threshold
come from ``IdentityConfig``. NaN and infinities are replaced as in the
canonical form, but values are not rounded here: a change of d in one feature
moves its category score by exactly d over the formula's divisor.

A missing key is an error, never a zero: defaulting would bias the average
in a direction nobody could predict.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Mapping, Tuple, Union

from .canonical import finite_features
from .config import IdentityConfig, DEFAULT_CONFIG
from .errors import GeometryError, MissingFeatureError
from .models import DescriptorSet

logger = logging.getLogger(__name__)

# Per-category keys each formula reads
REQUIRED_FEATURES: Dict[str, Tuple[str, ...]] = {
    "texture": ("mean_intensity", "contrast", "homogeneity"),
    "pattern": ("complexity_score", "symmetry_score"),
    "dimensions": ("aspect_ratio", "area"),
}

MEAN_INTENSITY_SCALE = 255.0
PATTERN_SCALE = 100.0


@dataclass(frozen=True)
class SimilarityResult:
    texture_sim: float
    pattern_sim: float
    dimension_sim: float
    total: float
    authentic: bool

    def to_dict(self) -> Dict[str, Union[float, bool]]:
        return asdict(self)


def _clamp(value: float) -> float:
    return float(min(max(value, 0.0), 1.0))


def _require(features: Mapping, category: str) -> Mapping[str, float]:
    values = features.get(category)
    if values is None:
        raise MissingFeatureError(category, REQUIRED_FEATURES[category][0])
    for key in REQUIRED_FEATURES[category]:
        if key not in values:
            raise MissingFeatureError(category, key)
    return values


def texture_similarity(reference: Mapping[str, float],
                       candidate: Mapping[str, float]) -> float:
    mean_diff = abs(reference["mean_intensity"] - candidate["mean_intensity"]) / MEAN_INTENSITY_SCALE
    contrast_diff = abs(reference["contrast"] - candidate["contrast"])
    homogeneity_diff = abs(reference["homogeneity"] - candidate["homogeneity"])
    return _clamp(1.0 - (mean_diff + contrast_diff + homogeneity_diff) / 3.0)


def pattern_similarity(reference: Mapping[str, float],
                       candidate: Mapping[str, float]) -> float:
    complexity_diff = abs(reference["complexity_score"] - candidate["complexity_score"]) / PATTERN_SCALE
    symmetry_diff = abs(reference["symmetry_score"] - candidate["symmetry_score"]) / PATTERN_SCALE
    return _clamp(1.0 - (complexity_diff + symmetry_diff) / 2.0)


def dimension_similarity(reference: Mapping[str, float],
                         candidate: Mapping[str, float]) -> float:
    """
    Raises:
        GeometryError: if the reference area is zero.
    """
    if reference["area"] == 0:
        raise GeometryError("Reference area is zero; cannot compare dimensions")
    aspect_diff = abs(reference["aspect_ratio"] - candidate["aspect_ratio"])
    area_diff = abs(reference["area"] - candidate["area"]) / reference["area"]
    return _clamp(1.0 - (aspect_diff + area_diff) / 2.0)


def compare(reference: Union[DescriptorSet, Mapping],
            candidate: Union[DescriptorSet, Mapping],
            config: IdentityConfig = DEFAULT_CONFIG) -> SimilarityResult:
    """
    Score a candidate against a reference descriptor set.

    Pure: no state, no I/O, inputs are never modified.

    Args:
        reference: Registered descriptor set (or its canonical value).
        candidate: Freshly extracted descriptor set.
        config: Weights and threshold.

    Returns:
        SimilarityResult with per-category scores, total and verdict.

    Raises:
        MissingFeatureError: if either side lacks a required key.
        GeometryError: if the reference area is zero.
    """
    ref = finite_features(reference)
    cand = finite_features(candidate)

    ref_texture, cand_texture = _require(ref, "texture"), _require(cand, "texture")
    ref_pattern, cand_pattern = _require(ref, "pattern"), _require(cand, "pattern")
    ref_dims, cand_dims = _require(ref, "dimensions"), _require(cand, "dimensions")

    texture_sim = texture_similarity(ref_texture, cand_texture)
    pattern_sim = pattern_similarity(ref_pattern, cand_pattern)
    dimension_sim = dimension_similarity(ref_dims, cand_dims)

    total = (
        config.texture_weight * texture_sim
        + config.pattern_weight * pattern_sim
        + config.dimension_weight * dimension_sim
    )
    total = _clamp(total)
    authentic = total >= config.authenticity_threshold

    logger.debug(
        f"Similarity: texture={texture_sim:.4f} pattern={pattern_sim:.4f} "
        f"dimension={dimension_sim:.4f} total={total:.4f} authentic={authentic}"
    )

    return SimilarityResult(
        texture_sim=texture_sim,
        pattern_sim=pattern_sim,
        dimension_sim=dimension_sim,
        total=total,
        authentic=authentic,
    )


def rank_results(results: List[Tuple[str, SimilarityResult]]) -> List[Tuple[str, SimilarityResult]]:
    """
    Sort (item_id, result) pairs by total similarity (primary), texture
    similarity (secondary) and item id (stable tiebreaker).

    Returns:
        Sorted list (best match first).
    """
    return sorted(
        results,
        key=lambda x: (-x[1].total, -x[1].texture_sim, x[0])
    )
