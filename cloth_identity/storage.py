"""
File-backed record store for descriptor sets and identity records.

Layout under the store root:
    features/<item_id>.json    descriptor set (canonical values + metadata)
    identities/<item_id>.json  identity record

Every write goes to a temp file in the target directory and is renamed into
place, so readers never see a half-written record. A registration writes the
features record first and the identity record second; an identity is only
reported when its features record exists, so a crash between the two writes
reads as "never registered".
"""

import os
import re
import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import StorageError
from .models import DescriptorSet, IdentityRecord

logger = logging.getLogger(__name__)

FEATURES_DIR = "features"
IDENTITIES_DIR = "identities"

_ITEM_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class RecordStore:
    """get / put / delete / list over JSON records on local disk."""

    def __init__(self, root: Union[str, os.PathLike]):
        self.root = Path(root)
        self.features_dir = self.root / FEATURES_DIR
        self.identities_dir = self.root / IDENTITIES_DIR
        try:
            self.features_dir.mkdir(parents=True, exist_ok=True)
            self.identities_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to initialize store at {self.root}: {e}") from e
        logger.debug(f"Record store initialized at {self.root}")

    # -- paths ------------------------------------------------------------

    @staticmethod
    def _check_id(item_id: str) -> str:
        if not isinstance(item_id, str) or not _ITEM_ID_PATTERN.match(item_id):
            raise StorageError(f"Invalid item id: {item_id!r}")
        return item_id

    def _features_path(self, item_id: str) -> Path:
        return self.features_dir / f"{self._check_id(item_id)}.json"

    def _identity_path(self, item_id: str) -> Path:
        return self.identities_dir / f"{self._check_id(item_id)}.json"

    # -- raw json -----------------------------------------------------------

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent,
                prefix=f".{path.stem}.", suffix=".tmp", delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(payload, f, indent=2, sort_keys=True, allow_nan=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except (OSError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to write {path}: {e}") from e

    def _read_json(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    # -- features ---------------------------------------------------------------

    def put_features(self, item_id: str, descriptors: DescriptorSet) -> None:
        """Persist a descriptor set. Callers store canonical values."""
        path = self._features_path(item_id)
        self._write_json(path, descriptors.to_dict())
        logger.info(f"Stored features for {item_id} at {path}")

    def get_features(self, item_id: str) -> Optional[DescriptorSet]:
        data = self._read_json(self._features_path(item_id))
        if data is None:
            return None
        try:
            return DescriptorSet.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed features record {item_id}: {e}") from e

    # -- identities -------------------------------------------------------------

    def put_identity(self, identity: IdentityRecord) -> None:
        path = self._identity_path(identity.item_id)
        self._write_json(path, identity.to_dict())
        logger.info(f"Stored identity for {identity.item_id} at {path}")

    def get_identity(self, item_id: str) -> Optional[IdentityRecord]:
        """
        Load an identity record.

        Returns None when missing, and also when the matching features record
        is missing: that registration never completed.
        """
        data = self._read_json(self._identity_path(item_id))
        if data is None:
            return None
        if not self._features_path(item_id).exists():
            logger.warning(f"Ignoring identity {item_id} without features record")
            return None
        try:
            return IdentityRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed identity record {item_id}: {e}") from e

    # -- registration unit ------------------------------------------------------

    def save_registration(self, descriptors: DescriptorSet,
                          identity: IdentityRecord) -> None:
        """
        Write features then identity as one logical unit.

        If the identity write fails the features record is removed again and
        the StorageError propagates.
        """
        if self._identity_path(identity.item_id).exists():
            raise StorageError(f"Item {identity.item_id} is already registered")

        self.put_features(identity.item_id, descriptors)
        try:
            self.put_identity(identity)
        except StorageError:
            try:
                self._features_path(identity.item_id).unlink()
            except OSError as e:
                logger.error(f"Could not roll back features for {identity.item_id}: {e}")
            raise

    # -- listing / deletion -----------------------------------------------------

    def exists(self, item_id: str) -> bool:
        return (self._identity_path(item_id).exists()
                and self._features_path(item_id).exists())

    def list_ids(self) -> List[str]:
        """Ids of completed registrations, sorted."""
        try:
            ids = sorted(
                p.stem for p in self.identities_dir.glob("*.json")
                if (self.features_dir / p.name).exists()
            )
        except OSError as e:
            raise StorageError(f"Failed to list records: {e}") from e
        logger.debug(f"Found {len(ids)} items in storage")
        return ids

    def delete(self, item_id: str) -> bool:
        """
        Remove both records of an item.

        The identity goes first so an item is never visible half-deleted.

        Returns:
            True if anything was deleted, False if the id was unknown.
        """
        deleted = False
        for path in (self._identity_path(item_id), self._features_path(item_id)):
            try:
                path.unlink()
                deleted = True
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Failed to delete {path}: {e}") from e

        if deleted:
            logger.info(f"Deleted records for {item_id}")
        return deleted
