"""Tests for the file-backed record store."""

import json

import pytest

from cloth_identity.canonical import canonical_descriptor_set
from cloth_identity.errors import StorageError
from cloth_identity.hashing import features_hash
from cloth_identity.models import IdentityRecord
from cloth_identity.storage import RecordStore


def make_identity(item_id="ITEM0001", **overrides):
    data = dict(
        item_id=item_id,
        features_hash="a" * 64,
        timestamp_hash="b" * 64,
        combined_hash="c" * 64,
        creation_time=1700000000000,
        image_reference="shirt.png",
        algorithm_version="1",
        config_fingerprint="0123456789abcdef",
    )
    data.update(overrides)
    return IdentityRecord(**data)


@pytest.fixture
def store(tmp_path):
    return RecordStore(tmp_path / "data")


class TestRecordStore:
    """Tests for get / put / delete / list."""

    def test_layout(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        assert (store.root / "features" / "ITEM0001.json").is_file()
        assert (store.root / "identities" / "ITEM0001.json").is_file()

    def test_round_trip(self, store, make_descriptors):
        descriptors = canonical_descriptor_set(make_descriptors(degraded={"edge"}))
        identity = make_identity()
        store.save_registration(descriptors, identity)

        assert store.get_identity("ITEM0001") == identity
        loaded = store.get_features("ITEM0001")
        assert loaded == descriptors
        assert loaded.degraded == frozenset({"edge"})
        assert loaded.capture_time == descriptors.capture_time

    def test_rehash_after_load_matches(self, store, make_descriptors):
        descriptors = canonical_descriptor_set(make_descriptors())
        store.save_registration(descriptors, make_identity())
        assert features_hash(store.get_features("ITEM0001")) == features_hash(descriptors)

    def test_missing_returns_none(self, store):
        assert store.get_identity("NOPE") is None
        assert store.get_features("NOPE") is None
        assert store.exists("NOPE") is False

    def test_delete(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        assert store.delete("ITEM0001") is True
        assert store.get_identity("ITEM0001") is None
        assert store.get_features("ITEM0001") is None
        assert store.list_ids() == []

    def test_delete_unknown(self, store):
        assert store.delete("NOPE") is False

    def test_list_sorted(self, store, make_descriptors):
        for item_id in ("CCC", "AAA", "BBB"):
            store.save_registration(make_descriptors(), make_identity(item_id))
        assert store.list_ids() == ["AAA", "BBB", "CCC"]

    def test_duplicate_registration_rejected(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        with pytest.raises(StorageError, match="already registered"):
            store.save_registration(make_descriptors(), make_identity())

    def test_no_temp_files_left(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        leftovers = list(store.root.rglob("*.tmp"))
        assert leftovers == []


class TestPartialRegistrations:
    """Tests for half-written or damaged records."""

    def test_identity_without_features_is_hidden(self, store):
        store.put_identity(make_identity("ORPHAN"))
        assert store.get_identity("ORPHAN") is None
        assert store.list_ids() == []

    def test_identity_failure_rolls_back_features(self, store, make_descriptors, monkeypatch):
        def failing_put(identity):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "put_identity", failing_put)
        with pytest.raises(StorageError, match="disk full"):
            store.save_registration(make_descriptors(), make_identity())

        assert store.get_features("ITEM0001") is None
        assert store.list_ids() == []

    def test_corrupt_json_raises(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        (store.root / "identities" / "ITEM0001.json").write_text("{not json")
        with pytest.raises(StorageError):
            store.get_identity("ITEM0001")

    def test_malformed_identity_raises(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        path = store.root / "identities" / "ITEM0001.json"
        path.write_text(json.dumps({"item_id": "ITEM0001"}))
        with pytest.raises(StorageError, match="Malformed"):
            store.get_identity("ITEM0001")

    def test_malformed_features_raises(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        path = store.root / "features" / "ITEM0001.json"
        path.write_text(json.dumps({"features": {"texture": {"contrast": None}}}))
        with pytest.raises(StorageError, match="Malformed features"):
            store.get_features("ITEM0001")

    def test_non_object_features_raises(self, store, make_descriptors):
        store.save_registration(make_descriptors(), make_identity())
        (store.root / "features" / "ITEM0001.json").write_text("[1, 2, 3]")
        with pytest.raises(StorageError):
            store.get_features("ITEM0001")

    def test_non_finite_values_refused(self, store, make_descriptors):
        with pytest.raises(StorageError):
            store.put_features("ITEM0001", make_descriptors(edge=[float("nan"), 0.0]))


class TestItemIds:

    @pytest.mark.parametrize("item_id", ["../escape", "a/b", "", "x" * 129, "with space"])
    def test_invalid_ids_rejected(self, store, item_id):
        with pytest.raises(StorageError, match="Invalid item id"):
            store.get_identity(item_id)
