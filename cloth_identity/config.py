"""
Pinned extraction, canonicalization and scoring parameters.

Every value here feeds into either the descriptor values or their hash, so
the whole set is versioned together: changing any of them invalidates hashes
produced under a previous parameter set. Stored identities record both
``algorithm_version`` and ``fingerprint()`` so older records stay verifiable.

Each parameter can be overridden through a ``CLOTH_*`` environment variable
via ``IdentityConfig.from_env()``. Library calls take the config explicitly;
nothing reads the environment behind the caller's back.
"""

import os
import json
import hashlib
from dataclasses import dataclass, asdict
from typing import Mapping, Optional, Tuple

ALGORITHM_VERSION = "1"

# Histogram channel order is part of the canonical format. Do not reorder.
CHANNEL_ORDER = ("blue", "green", "red")


@dataclass(frozen=True)
class IdentityConfig:
    """Immutable parameter set threaded through extraction and comparison."""

    # Preprocessing
    gaussian_kernel: int = 5
    gaussian_sigma: float = 1.0

    # Texture: local binary pattern + co-occurrence
    lbp_radius: int = 1
    lbp_neighbors: int = 8
    glcm_levels: int = 8

    # Edges
    canny_low: int = 50
    canny_high: int = 150
    gradient_threshold: float = 10.0

    # Histograms
    histogram_bins: int = 256
    histogram_range: Tuple[int, int] = (0, 256)
    channel_order: Tuple[str, ...] = CHANNEL_ORDER

    # Canonicalization / hashing
    precision: int = 4
    hash_algorithm: str = "sha256"

    # Similarity
    texture_weight: float = 0.4
    pattern_weight: float = 0.4
    dimension_weight: float = 0.2
    authenticity_threshold: float = 0.80

    parallel_analyzers: bool = True
    algorithm_version: str = ALGORITHM_VERSION

    def __post_init__(self):
        if self.gaussian_kernel <= 0 or self.gaussian_kernel % 2 == 0:
            raise ValueError(
                f"gaussian_kernel must be a positive odd number, got {self.gaussian_kernel}"
            )
        if self.lbp_radius < 1 or self.lbp_neighbors < 1:
            raise ValueError("lbp_radius and lbp_neighbors must be >= 1")
        if self.glcm_levels < 2:
            raise ValueError(f"glcm_levels must be >= 2, got {self.glcm_levels}")
        if self.histogram_bins <= 0:
            raise ValueError(f"histogram_bins must be positive, got {self.histogram_bins}")
        low, high = self.histogram_range
        if low >= high:
            raise ValueError(f"Invalid histogram_range {self.histogram_range}")
        if sorted(self.channel_order) != sorted(CHANNEL_ORDER):
            raise ValueError(
                f"channel_order must be a permutation of {CHANNEL_ORDER}, "
                f"got {self.channel_order}"
            )
        if self.precision < 0:
            raise ValueError(f"precision must be >= 0, got {self.precision}")

        weights = (self.texture_weight, self.pattern_weight, self.dimension_weight)
        if any(w < 0 for w in weights):
            raise ValueError(f"Similarity weights must be non-negative: {weights}")
        if abs(sum(weights) - 1.0) > 1e-9:
            raise ValueError(f"Similarity weights must sum to 1.0, got {sum(weights)}")
        if not 0.0 <= self.authenticity_threshold <= 1.0:
            raise ValueError(
                f"authenticity_threshold must be in [0, 1], got {self.authenticity_threshold}"
            )

    @property
    def histogram_length(self) -> int:
        return self.histogram_bins * len(self.channel_order)

    @property
    def weights(self) -> dict:
        return {
            "texture": self.texture_weight,
            "pattern": self.pattern_weight,
            "dimension": self.dimension_weight,
        }

    def fingerprint(self) -> str:
        """
        Short digest over every hash-affecting parameter.

        ``parallel_analyzers`` is excluded since it changes scheduling only.
        """
        params = asdict(self)
        params.pop("parallel_analyzers")
        blob = json.dumps(params, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:16]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IdentityConfig":
        """Build a config with ``CLOTH_*`` environment overrides applied."""
        env = os.environ if environ is None else environ
        defaults = cls()

        channel_order = env.get("CLOTH_CHANNEL_ORDER")
        if channel_order:
            channels = tuple(c.strip() for c in channel_order.split(","))
        else:
            channels = defaults.channel_order

        return cls(
            gaussian_kernel=int(env.get("CLOTH_GAUSSIAN_KERNEL", defaults.gaussian_kernel)),
            gaussian_sigma=float(env.get("CLOTH_GAUSSIAN_SIGMA", defaults.gaussian_sigma)),
            lbp_radius=int(env.get("CLOTH_LBP_RADIUS", defaults.lbp_radius)),
            lbp_neighbors=int(env.get("CLOTH_LBP_NEIGHBORS", defaults.lbp_neighbors)),
            glcm_levels=int(env.get("CLOTH_GLCM_LEVELS", defaults.glcm_levels)),
            canny_low=int(env.get("CLOTH_CANNY_LOW", defaults.canny_low)),
            canny_high=int(env.get("CLOTH_CANNY_HIGH", defaults.canny_high)),
            gradient_threshold=float(
                env.get("CLOTH_GRADIENT_THRESHOLD", defaults.gradient_threshold)
            ),
            histogram_bins=int(env.get("CLOTH_HIST_BINS", defaults.histogram_bins)),
            channel_order=channels,
            precision=int(env.get("CLOTH_PRECISION", defaults.precision)),
            hash_algorithm=env.get("CLOTH_HASH_ALGORITHM", defaults.hash_algorithm),
            texture_weight=float(env.get("CLOTH_TEXTURE_W", defaults.texture_weight)),
            pattern_weight=float(env.get("CLOTH_PATTERN_W", defaults.pattern_weight)),
            dimension_weight=float(env.get("CLOTH_DIMENSION_W", defaults.dimension_weight)),
            authenticity_threshold=float(
                env.get("CLOTH_AUTH_THRESHOLD", defaults.authenticity_threshold)
            ),
            parallel_analyzers=env.get("CLOTH_PARALLEL", "1") not in ("0", "false", "no"),
        )


DEFAULT_CONFIG = IdentityConfig()
