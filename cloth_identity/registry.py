"""
Registration, verification and identification of cloth items.

Registration path:
    image -> extract -> canonicalize -> hash -> store features + identity

Verification path:
    image -> extract -> canonicalize -> compare against the stored descriptors

Identification path (item id unknown):
    1. FAISS nearest-neighbor on color histograms -> shortlist
    2. Full weighted comparison against each shortlisted item
    3. Rank by total similarity
"""

import os
import time
import uuid
import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple, Union

from .canonical import canonical_descriptor_set
from .config import IdentityConfig, DEFAULT_CONFIG
from .extractor import extract, extract_many
from .hashing import combined_hash, ensure_algorithm_available, features_hash, hash_text
from .histograms import build_histogram_index, histogram_vector, search_histogram_index
from .models import DescriptorSet, IdentityRecord
from .preprocessing import ImageSource
from .similarity import SimilarityResult, compare, rank_results
from .storage import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    item_id: str
    similarity: SimilarityResult
    candidate_hash: str
    integrity_ok: bool
    degraded: FrozenSet[str] = frozenset()

    @property
    def authentic(self) -> bool:
        return self.similarity.authentic


def generate_item_id() -> str:
    return uuid.uuid4().hex[:8].upper()


def _image_reference(image: ImageSource) -> Optional[str]:
    if isinstance(image, (str, os.PathLike)):
        return str(image)
    return None


class IdentityRegistry:
    """
    Digital identity registry backed by a RecordStore.

    The histogram index used by ``identify()`` is built lazily from the
    stored records and dropped whenever the registry changes them.
    """

    def __init__(self, store: RecordStore,
                 config: IdentityConfig = DEFAULT_CONFIG):
        """
        Args:
            store: Record store holding features and identities.
            config: Pinned parameters. Raises HashAlgorithmUnavailable here,
                    at startup, if its digest algorithm is missing.
        """
        ensure_algorithm_available(config.hash_algorithm)
        self.store = store
        self.config = config
        self._index = None
        self._index_ids: List[str] = []

    # -- registration -----------------------------------------------------------

    def _build_identity(self, item_id: str, descriptors: DescriptorSet,
                        image_reference: Optional[str]) -> IdentityRecord:
        creation_time = int(time.time() * 1000)
        f_hash = features_hash(descriptors, self.config)
        t_hash = hash_text(str(creation_time), self.config.hash_algorithm)
        return IdentityRecord(
            item_id=item_id,
            features_hash=f_hash,
            timestamp_hash=t_hash,
            combined_hash=combined_hash(f_hash, t_hash, self.config.hash_algorithm),
            creation_time=creation_time,
            image_reference=image_reference,
            algorithm_version=self.config.algorithm_version,
            config_fingerprint=self.config.fingerprint(),
        )

    def _canonical(self, descriptors: DescriptorSet) -> DescriptorSet:
        return canonical_descriptor_set(
            descriptors, self.config.precision, self.config.histogram_length
        )

    def _store_registration(self, descriptors: DescriptorSet,
                            item_id: Optional[str],
                            image_reference: Optional[str]) -> IdentityRecord:
        item_id = item_id or generate_item_id()
        canonical = self._canonical(descriptors)
        identity = self._build_identity(item_id, canonical, image_reference)

        self.store.save_registration(canonical, identity)
        self._index = None

        logger.info(f"Registered {item_id}: features hash {identity.features_hash}")
        return identity

    def register(self, image: ImageSource,
                 item_id: Optional[str] = None,
                 image_reference: Optional[str] = None) -> IdentityRecord:
        """
        Extract, hash and persist a new item.

        Args:
            image: Path, encoded bytes, or BGR array.
            item_id: Optional explicit id; 8 hex chars are generated otherwise.
            image_reference: Stored as-is; defaults to the path when given one.

        Returns:
            The new IdentityRecord.
        """
        descriptors = extract(image, self.config)
        reference = image_reference or _image_reference(image)
        return self._store_registration(descriptors, item_id, reference)

    def register_many(self, images: Sequence[ImageSource],
                      max_workers: Optional[int] = None
                      ) -> List[Union[IdentityRecord, Exception]]:
        """
        Register a batch of images with parallel extraction.

        Returns one IdentityRecord or exception per image, in input order.
        """
        results: List[Union[IdentityRecord, Exception]] = []
        extracted = extract_many(images, self.config, max_workers=max_workers)

        for image, descriptors in zip(images, extracted):
            if isinstance(descriptors, Exception):
                results.append(descriptors)
                continue
            try:
                results.append(self._store_registration(
                    descriptors, None, _image_reference(image)
                ))
            except Exception as e:
                logger.warning(f"Failed to register {_image_reference(image)}: {e}")
                results.append(e)

        return results

    # -- lookup -------------------------------------------------------------------

    def get(self, item_id: str) -> Optional[IdentityRecord]:
        return self.store.get_identity(item_id)

    def list_ids(self) -> List[str]:
        return self.store.list_ids()

    def delete(self, item_id: str) -> bool:
        deleted = self.store.delete(item_id)
        if deleted:
            self._index = None
        return deleted

    # -- verification -------------------------------------------------------------

    def verify(self, item_id: str, image: ImageSource) -> Optional[VerificationResult]:
        """
        Compare a new photograph against a registered item.

        Returns:
            VerificationResult, or None when the item is not registered.
        """
        identity = self.store.get_identity(item_id)
        if identity is None:
            logger.warning(f"Item not found: {item_id}")
            return None

        if identity.algorithm_version != self.config.algorithm_version:
            logger.warning(
                f"Item {item_id} was registered with algorithm version "
                f"{identity.algorithm_version!r}, current is "
                f"{self.config.algorithm_version!r}"
            )
        elif identity.config_fingerprint != self.config.fingerprint():
            logger.warning(
                f"Item {item_id} was registered under a different parameter set; "
                f"scores may drift"
            )

        reference = self.store.get_features(item_id)
        if reference is None:
            logger.warning(f"Features for {item_id} vanished during verification")
            return None

        integrity_ok = features_hash(reference, self.config) == identity.features_hash
        if not integrity_ok:
            logger.warning(f"Stored features of {item_id} no longer match their hash")

        candidate = self._canonical(extract(image, self.config))
        similarity = compare(reference, candidate, self.config)

        logger.info(
            f"Verified {item_id}: total={similarity.total:.4f} "
            f"authentic={similarity.authentic}"
        )

        return VerificationResult(
            item_id=item_id,
            similarity=similarity,
            candidate_hash=features_hash(candidate, self.config),
            integrity_ok=integrity_ok,
            degraded=candidate.degraded,
        )

    # -- identification -------------------------------------------------------------

    def _ensure_index(self) -> bool:
        if self._index is not None:
            return True

        vectors = []
        ids = []
        for item_id in self.store.list_ids():
            features = self.store.get_features(item_id)
            if features is None or not features.histogram:
                continue
            vectors.append(histogram_vector(features.histogram))
            ids.append(item_id)

        if not vectors:
            return False

        self._index = build_histogram_index(vectors)
        self._index_ids = ids
        logger.info(f"Loaded histogram index: {len(ids)} items")
        return True

    def identify(self, image: ImageSource,
                 top_k: int = 5,
                 shortlist: int = 50) -> List[Tuple[str, SimilarityResult]]:
        """
        Find the registered items most similar to a photograph.

        Args:
            image: Query photograph.
            top_k: Maximum number of results.
            shortlist: Histogram neighbors to run the full comparison on.

        Returns:
            (item_id, SimilarityResult) pairs, best match first.
        """
        if not self._ensure_index():
            logger.warning("No registered items to identify against")
            return []

        candidate = self._canonical(extract(image, self.config))
        try:
            _, indices = search_histogram_index(
                self._index, histogram_vector(candidate.histogram), k=shortlist
            )
        except ValueError as e:
            logger.error(f"Histogram search failed: {e}")
            return []

        results = []
        for idx in indices[0]:
            if idx < 0 or idx >= len(self._index_ids):
                continue
            item_id = self._index_ids[int(idx)]
            reference = self.store.get_features(item_id)
            if reference is None:
                continue
            results.append((item_id, compare(reference, candidate, self.config)))

        results = rank_results(results)[:top_k]
        logger.info(
            f"Identify complete: {len(indices[0])} candidates -> {len(results)} results"
        )
        return results
