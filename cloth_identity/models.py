"""
Descriptor set and identity record value types.

Both are frozen: every extraction step builds a fresh value instead of
filling a shared container, so the value that was hashed can never be
altered by a later caller.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, NamedTuple, Optional, Tuple

TEXTURE_KEYS = ("contrast", "homogeneity", "mean_intensity", "std_deviation")
DIMENSION_KEYS = ("area", "aspect_ratio", "height", "width")
PATTERN_KEYS = ("complexity_score", "symmetry_score")
EDGE_LENGTH = 2  # [density, orientation]

# Feature categories, in the order the canonical value lists them
CATEGORIES = ("dimensions", "edge", "histogram", "pattern", "texture")


class Analysis(NamedTuple):
    """One analyzer's output and whether it fell back to zeros."""

    values: Any
    degraded: bool = False


def _freeze_mapping(values: Mapping[str, Any]) -> Mapping[str, float]:
    return MappingProxyType({str(k): float(v) for k, v in values.items()})


def _freeze_sequence(values: Iterable[Any]) -> Tuple[float, ...]:
    return tuple(float(v) for v in values)


@dataclass(frozen=True)
class DescriptorSet:
    """
    All numeric characteristics extracted from one image.

    Attributes:
        texture: mean_intensity, std_deviation, contrast, homogeneity.
        histogram: per-channel normalized bins, concatenated in channel order.
        dimensions: width, height, aspect_ratio, area.
        edge: (density, orientation), both in [0, 1].
        pattern: complexity_score, symmetry_score.
        capture_time: epoch seconds of extraction. Metadata only, never hashed.
        degraded: categories that fell back to zeros (or "symmetry" when the
            aspect-ratio stand-in was used). Metadata only, never hashed.
    """

    texture: Mapping[str, float]
    histogram: Tuple[float, ...]
    dimensions: Mapping[str, float]
    edge: Tuple[float, ...]
    pattern: Mapping[str, float]
    capture_time: float = field(default=0.0, compare=False)
    degraded: FrozenSet[str] = field(default=frozenset(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, "texture", _freeze_mapping(self.texture))
        object.__setattr__(self, "dimensions", _freeze_mapping(self.dimensions))
        object.__setattr__(self, "pattern", _freeze_mapping(self.pattern))
        object.__setattr__(self, "histogram", _freeze_sequence(self.histogram))
        object.__setattr__(self, "edge", _freeze_sequence(self.edge))
        object.__setattr__(self, "degraded", frozenset(self.degraded))

    def features(self) -> Dict[str, Any]:
        """Feature categories only, as plain containers."""
        return {
            "dimensions": dict(self.dimensions),
            "edge": list(self.edge),
            "histogram": list(self.histogram),
            "pattern": dict(self.pattern),
            "texture": dict(self.texture),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "features": self.features(),
            "capture_time": self.capture_time,
            "degraded": sorted(self.degraded),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DescriptorSet":
        """
        Rebuild from ``to_dict()`` output or from a bare feature mapping.

        Missing categories come back empty; comparison reports them as
        ``MissingFeatureError`` instead of substituting zeros here.
        """
        features = data.get("features", data)
        return cls(
            texture=features.get("texture", {}),
            histogram=features.get("histogram", ()),
            dimensions=features.get("dimensions", {}),
            edge=features.get("edge", ()),
            pattern=features.get("pattern", {}),
            capture_time=float(data.get("capture_time", 0.0)),
            degraded=frozenset(data.get("degraded", ())),
        )


@dataclass(frozen=True)
class IdentityRecord:
    """Registration-time digital identity of one physical item."""

    item_id: str
    features_hash: str
    timestamp_hash: str
    combined_hash: str
    creation_time: int
    image_reference: Optional[str] = None
    algorithm_version: str = ""
    config_fingerprint: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "features_hash": self.features_hash,
            "timestamp_hash": self.timestamp_hash,
            "combined_hash": self.combined_hash,
            "creation_time": self.creation_time,
            "image_reference": self.image_reference,
            "algorithm_version": self.algorithm_version,
            "config_fingerprint": self.config_fingerprint,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IdentityRecord":
        return cls(
            item_id=data["item_id"],
            features_hash=data["features_hash"],
            timestamp_hash=data["timestamp_hash"],
            combined_hash=data["combined_hash"],
            creation_time=int(data["creation_time"]),
            image_reference=data.get("image_reference"),
            algorithm_version=data.get("algorithm_version", ""),
            config_fingerprint=data.get("config_fingerprint", ""),
        )
