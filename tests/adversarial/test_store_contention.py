"""Adversarial tests: a locked store fails fast and writes nothing."""

from __future__ import annotations

import sqlite3

import pytest

from pantry.core.store import RegistryStore, TransientStoreError
from pantry.models.artifacts import StoredTarball
from pantry.models.cookbooks import ArtifactMetadata
from pantry.models.identity import Identity

TARBALL = StoredTarball(content_address="sha256:" + "ab" * 32, size_bytes=1)


@pytest.fixture
def lock_holder(tmp_dir):
    """A second connection holding the write lock on the registry DB."""
    store = RegistryStore(tmp_dir / "registry.db", busy_timeout=0.1)
    store.add_category("Databases")
    conn = sqlite3.connect(str(tmp_dir / "registry.db"), isolation_level=None)
    conn.execute("BEGIN IMMEDIATE")
    yield store
    conn.execute("ROLLBACK")
    conn.close()


class TestLockedStore:
    def test_commit_raises_transient(self, lock_holder):
        # Reads still work under WAL
        assert lock_holder.find_identity("alice") is None
        with pytest.raises(TransientStoreError):
            lock_holder.add_user("alice")

    def test_publish_commit_is_transient_and_atomic(self, lock_holder):
        with pytest.raises(TransientStoreError):
            lock_holder.commit_version(
                identity=Identity(username="alice"),
                metadata=ArtifactMetadata(name="redis", version="1.0.0"),
                category="Databases",
                tarball=TARBALL,
            )
        assert lock_holder.find_cookbook("redis") is None

    def test_controller_maps_to_503(self, registry, alice, alice_keys,
                                     make_upload_request, make_tarball, tmp_dir, notifier):
        registry.store.add_category("Databases")
        conn = sqlite3.connect(str(tmp_dir / "registry.db"), isolation_level=None)
        conn.execute("BEGIN IMMEDIATE")
        try:
            response = registry.controller.create(
                make_upload_request(
                    username="alice", private_key=alice_keys[0], tarball=make_tarball()
                )
            )
        finally:
            conn.execute("ROLLBACK")
            conn.close()
        assert response.status == 503
        assert response.body["error_code"] == "SERVICE_UNAVAILABLE"
        assert notifier.published == []
        assert registry.store.find_cookbook("redis") is None
