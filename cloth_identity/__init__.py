"""
cloth_identity: repeatable digital identities for physical textile items.

Extracts texture, edge, color, dimension and pattern descriptors from a
photograph, canonicalizes and hashes them at registration, and scores later
photographs of the same item against the stored descriptors.

Modules:
    extractor      extract() / extract_many() orchestration
    preprocessing  Decoding, grayscale conversion and smoothing
    texture        LBP and co-occurrence texture descriptors
    edges          Edge density and mean orientation
    histograms     Per-channel histograms + FAISS shortlist
    dimensions     Native pixel geometry
    pattern        Complexity and symmetry scores
    canonical      Rounding / ordering for hashing
    hashing        Deterministic serialization and digests
    similarity     Weighted authenticity scoring
    storage        File-backed record store
    registry       Register / verify / identify workflow
    config         Pinned, versioned parameter set
"""

from .canonical import canonicalize
from .config import DEFAULT_CONFIG, IdentityConfig
from .errors import (
    ClothIdentityError,
    DecodeError,
    GeometryError,
    HashAlgorithmUnavailable,
    InvalidDescriptorError,
    MissingFeatureError,
    StorageError,
)
from .extractor import extract, extract_many
from .hashing import combined_hash, features_hash, hash_canonical
from .models import DescriptorSet, IdentityRecord
from .registry import IdentityRegistry, VerificationResult
from .similarity import SimilarityResult, compare
from .storage import RecordStore

__version__ = "1.0.0"

__all__ = [
    "canonicalize",
    "combined_hash",
    "compare",
    "extract",
    "extract_many",
    "features_hash",
    "hash_canonical",
    "ClothIdentityError",
    "DecodeError",
    "DescriptorSet",
    "GeometryError",
    "HashAlgorithmUnavailable",
    "IdentityConfig",
    "IdentityRecord",
    "IdentityRegistry",
    "InvalidDescriptorError",
    "MissingFeatureError",
    "RecordStore",
    "SimilarityResult",
    "StorageError",
    "VerificationResult",
    "DEFAULT_CONFIG",
]
