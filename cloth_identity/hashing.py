"""
Deterministic serialization and digests of canonical descriptor values.

The canonical value is encoded as compact JSON (sorted keys, no whitespace,
ASCII only, NaN rejected) in UTF-8 and digested with a 256-bit algorithm,
SHA-256 by default. Digests are rendered as 64 lowercase hex characters.
"""

import json
import hashlib
import logging
from typing import Any, Union

from .canonical import CanonicalValue, canonicalize, to_plain
from .config import IdentityConfig, DEFAULT_CONFIG
from .errors import HashAlgorithmUnavailable
from .models import DescriptorSet

logger = logging.getLogger(__name__)

DIGEST_BITS = 256


def ensure_algorithm_available(algorithm: str = DEFAULT_CONFIG.hash_algorithm) -> None:
    """
    Check once at startup that ``algorithm`` exists and yields 256 bits.

    Raises:
        HashAlgorithmUnavailable: otherwise.
    """
    try:
        digest = hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        logger.error(f"Hash algorithm not available: {algorithm}")
        raise HashAlgorithmUnavailable(f"Hash algorithm not available: {algorithm}") from e

    if digest.digest_size * 8 != DIGEST_BITS:
        raise HashAlgorithmUnavailable(
            f"Hash algorithm {algorithm} produces {digest.digest_size * 8}-bit "
            f"digests, {DIGEST_BITS} required"
        )


def serialize_canonical(canonical: CanonicalValue) -> bytes:
    """Fixed byte encoding of a canonical value."""
    text = json.dumps(
        to_plain(canonical),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        allow_nan=False,
    )
    return text.encode("utf-8")


def _digest(data: bytes, algorithm: str) -> str:
    try:
        return hashlib.new(algorithm, data).hexdigest()
    except ValueError as e:
        raise HashAlgorithmUnavailable(f"Hash algorithm not available: {algorithm}") from e


def hash_canonical(canonical: CanonicalValue,
                   algorithm: str = DEFAULT_CONFIG.hash_algorithm) -> str:
    """Hex digest of a canonical value."""
    return _digest(serialize_canonical(canonical), algorithm)


def hash_text(text: str, algorithm: str = DEFAULT_CONFIG.hash_algorithm) -> str:
    """Hex digest of a UTF-8 string (timestamps, hash pairs)."""
    return _digest(text.encode("utf-8"), algorithm)


def combined_hash(hash_a: str, hash_b: str,
                  algorithm: str = DEFAULT_CONFIG.hash_algorithm) -> str:
    """Bind two digests together: hash(hash_a + ":" + hash_b)."""
    return hash_text(f"{hash_a}:{hash_b}", algorithm)


def features_hash(descriptors: Union[DescriptorSet, Any],
                  config: IdentityConfig = DEFAULT_CONFIG) -> str:
    """
    Canonicalize with the config's precision and hash in one step.

    Raises:
        InvalidDescriptorError: if the set is incomplete or the histogram
            length does not match the config.
    """
    canonical = canonicalize(descriptors, config.precision, config.histogram_length)
    return hash_canonical(canonical, config.hash_algorithm)
