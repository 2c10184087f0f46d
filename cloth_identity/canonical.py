"""
Canonical projection of a descriptor set for hashing and comparison.

Rules, applied to every real number:
    - NaN -> 0.0, +Infinity -> 1.0, -Infinity -> 0.0
    - round half-up to ``precision`` decimal digits

Rounding goes through ``Decimal`` on the shortest repr of the float, so a
value that is already rounded re-rounds to itself and canonicalization is
idempotent. Mapping keys are emitted in ascending order; sequences keep their
generation order. ``capture_time`` and ``degraded`` are metadata and never
part of the canonical value.

Only complete descriptor sets are canonicalized: every category present,
mappings with exactly their fixed keys, sequences with their fixed lengths.
"""

import math
from decimal import Decimal, Context, ROUND_HALF_UP
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .config import DEFAULT_CONFIG
from .errors import InvalidDescriptorError, MissingFeatureError
from .models import (
    CATEGORIES, DIMENSION_KEYS, EDGE_LENGTH, PATTERN_KEYS, TEXTURE_KEYS,
    DescriptorSet,
)

CanonicalValue = Mapping[str, Any]

# Wide enough for any pixel area at any sane precision
_DECIMAL_CONTEXT = Context(prec=64)

_MAPPING_KEYS = {
    "dimensions": DIMENSION_KEYS,
    "pattern": PATTERN_KEYS,
    "texture": TEXTURE_KEYS,
}


def finite(value: float) -> float:
    """Replace NaN and infinities; finite values pass through unchanged."""
    value = float(value)
    if math.isnan(value):
        return 0.0
    if math.isinf(value):
        return 1.0 if value > 0 else 0.0
    return value


def round_half_up(value: float, precision: int = DEFAULT_CONFIG.precision) -> float:
    """Replace non-finite values, then round half-up to ``precision`` digits."""
    value = float(value)
    if not math.isfinite(value):
        return finite(value)

    quantum = Decimal(1).scaleb(-precision)
    rounded = Decimal(repr(value)).quantize(
        quantum, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT
    )
    # + 0.0 folds -0.0 into 0.0 so both serialize identically
    return float(rounded) + 0.0


def _canonical_node(node: Any, precision: Optional[int]) -> Any:
    if isinstance(node, Mapping):
        return MappingProxyType({
            str(key): _canonical_node(node[key], precision)
            for key in sorted(node, key=str)
        })
    if isinstance(node, (list, tuple)):
        return tuple(_canonical_node(item, precision) for item in node)
    if precision is None:
        return finite(node) + 0.0
    return round_half_up(node, precision)


def _features_of(descriptors: Union[DescriptorSet, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(descriptors, DescriptorSet):
        return descriptors.features()
    return descriptors.get("features", descriptors)


def _check_sequence(category: str, values: Any, length: Optional[int]) -> None:
    if length is None:
        return
    if len(values) < length:
        raise MissingFeatureError(category, f"[{len(values)}]")
    if len(values) > length:
        raise InvalidDescriptorError(
            f"Category '{category}' has {len(values)} entries, expected {length}"
        )


def check_complete(features: Mapping[str, Any],
                   histogram_length: Optional[int] = None) -> None:
    """
    Verify a feature mapping has every category with its fixed shape.

    Args:
        features: Feature categories (``DescriptorSet.features()`` form).
        histogram_length: Expected histogram entries; unchecked when None.

    Raises:
        MissingFeatureError: for an absent category, key or sequence entry.
        InvalidDescriptorError: for unexpected keys or surplus entries.
    """
    for category in CATEGORIES:
        if category not in features:
            raise MissingFeatureError(category, "*")

    for category, keys in _MAPPING_KEYS.items():
        values = features[category]
        for key in keys:
            if key not in values:
                raise MissingFeatureError(category, key)
        extra = sorted(set(values) - set(keys))
        if extra:
            raise InvalidDescriptorError(
                f"Unexpected keys in category '{category}': {extra}"
            )

    _check_sequence("edge", features["edge"], EDGE_LENGTH)
    _check_sequence("histogram", features["histogram"], histogram_length)


def canonicalize(descriptors: Union[DescriptorSet, Mapping[str, Any]],
                 precision: int = DEFAULT_CONFIG.precision,
                 histogram_length: Optional[int] = None) -> CanonicalValue:
    """
    Build the immutable canonical value of a descriptor set.

    Args:
        descriptors: A DescriptorSet, its ``to_dict()`` form, or an already
            canonical value.
        precision: Decimal digits to keep.
        histogram_length: Expected histogram entries; unchecked when None.

    Returns:
        Read-only mapping with sorted keys, tuples for sequences and rounded
        finite floats. Canonicalizing the result again returns an equal value.

    Raises:
        InvalidDescriptorError: if the descriptor set is incomplete or has
            surplus keys (MissingFeatureError for the incomplete case).
    """
    features = _features_of(descriptors)
    check_complete(features, histogram_length)

    selected = {name: features[name] for name in CATEGORIES}
    return _canonical_node(selected, precision)


def finite_features(descriptors: Union[DescriptorSet, Mapping[str, Any]]) -> CanonicalValue:
    """
    Read-only projection with non-finite values replaced but nothing rounded.

    Categories that are absent stay absent; callers check the keys they need.
    """
    features = _features_of(descriptors)
    selected = {name: features[name] for name in CATEGORIES if name in features}
    return _canonical_node(selected, None)

def to_plain(canonical: Any) -> Any:
    """Convert a canonical value into JSON-ready dicts and lists."""
    if isinstance(canonical, Mapping):
        return {key: to_plain(value) for key, value in canonical.items()}
    if isinstance(canonical, (list, tuple)):
        return [to_plain(item) for item in canonical]
    return canonical


def canonical_descriptor_set(descriptors: DescriptorSet,
                             precision: int = DEFAULT_CONFIG.precision,
                             histogram_length: Optional[int] = None) -> DescriptorSet:
    """Fresh DescriptorSet carrying canonical values and the original metadata."""
    canonical = canonicalize(descriptors, precision, histogram_length)
    data: Dict[str, Any] = {
        "features": to_plain(canonical),
        "capture_time": descriptors.capture_time,
        "degraded": sorted(descriptors.degraded),
    }
    return DescriptorSet.from_dict(data)
